"""Allow ``python -m creditgraph.cli`` execution."""

from creditgraph.cli.graph import main

main()
