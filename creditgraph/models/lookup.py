"""Uniform found / not-found / error result for fallback chains.

Fallback chains (recording lookup strategies, image providers) iterate
attempts until one returns :meth:`LookupResult.found`.  Keeping "nothing
there" and "could not ask" apart lets callers log them differently and
lets the image cache remember genuine misses without remembering outages.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

_T = TypeVar("_T")


class LookupStatus(str, Enum):  # noqa: UP042
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class LookupResult(Generic[_T]):
    status: LookupStatus
    value: _T | None = None
    error: BaseException | None = None
    source: str | None = None

    @classmethod
    def found(cls, value: _T, source: str | None = None) -> LookupResult[_T]:
        return cls(status=LookupStatus.FOUND, value=value, source=source)

    @classmethod
    def not_found(cls, source: str | None = None) -> LookupResult[_T]:
        return cls(status=LookupStatus.NOT_FOUND, source=source)

    @classmethod
    def failed(cls, error: BaseException, source: str | None = None) -> LookupResult[_T]:
        return cls(status=LookupStatus.ERROR, error=error, source=source)

    @property
    def is_found(self) -> bool:
        return self.status is LookupStatus.FOUND

    @property
    def is_error(self) -> bool:
        return self.status is LookupStatus.ERROR
