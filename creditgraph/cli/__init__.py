"""Command-line tools for creditgraph.

- ``python -m creditgraph.cli track "Smooth Criminal" --artist "Michael Jackson"``
- ``python -m creditgraph.cli artist "Daft Punk"``
- ``python -m creditgraph.cli now-playing <lastfm-user>``
- ``python -m creditgraph.cli cache-stats`` / ``cache-clear``

The CLI builds the same component graph as the API server through
``creditgraph.main.build_components``; heavy imports are deferred until a
command actually runs.
"""
