"""Custom exceptions and tagged outcomes for the edit engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Why a single edit could not be applied."""
    TARGET_NOT_FOUND = "TargetNotFound"
    TARGET_NOT_WRITABLE = "TargetNotWritable"
    STALE_CONTENT = "StaleContent"


class GrepEditError(Exception):
    """Base exception for grepedit operations."""

    kind: ErrorKind | None = None

    def __init__(self, message: str, error_details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.error_details = error_details or {}


class TargetNotFound(GrepEditError):
    """The file a result line points at no longer exists."""

    kind = ErrorKind.TARGET_NOT_FOUND


class TargetNotWritable(GrepEditError):
    """The target file exists but cannot be written."""

    kind = ErrorKind.TARGET_NOT_WRITABLE


class StaleContent(GrepEditError):
    """The live content no longer matches what grepedit read earlier."""

    kind = ErrorKind.STALE_CONTENT


class RestoreUnavailable(GrepEditError):
    """The shadow snapshot is gone, so the session cannot be fully restored."""


class SessionClosedError(GrepEditError):
    """An operation was attempted on a session that is already closed."""


class ReadOnlyRegionError(GrepEditError):
    """A mutation touched a protected part of the virtual document."""


class GrammarError(GrepEditError):
    """A search-result grammar could not be built from the given patterns."""


@dataclass(frozen=True)
class CommitOutcome:
    """Result of committing one edit: done, or rejected with a reason."""
    done: bool
    reason: str = ""
    kind: ErrorKind | None = None

    @classmethod
    def applied(cls) -> "CommitOutcome":
        return cls(done=True)

    @classmethod
    def rejected(cls, reason: str, kind: ErrorKind | None = None) -> "CommitOutcome":
        return cls(done=False, reason=reason, kind=kind)

    @classmethod
    def from_error(cls, exc: GrepEditError) -> "CommitOutcome":
        return cls(done=False, reason=exc.message, kind=exc.kind)
