"""Error taxonomy shared by the read and write paths.

Every failure that leaves the core is a BrevozaError with a stable ``kind``
and a human-readable ``message``. Per-item fetch failures are not raised;
they are carried as data on ItemFile.error.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Stable error kinds exposed to callers."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_INPUT = "invalid_input"
    UPSTREAM_FAILURE = "upstream_failure"
    PARTIAL_FAILURE = "partial_failure"


class BrevozaError(Exception):
    """Base class for all structured errors."""

    kind: ErrorKind = ErrorKind.UPSTREAM_FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Return the error as a transport-independent mapping."""
        return {"kind": self.kind.value, "message": self.message}


class NotFound(BrevozaError):
    """Config, collection, schema, directory or change request is absent."""

    kind = ErrorKind.NOT_FOUND


class NotADirectory(NotFound):
    """A directory listing was requested for a path that holds a file."""


class Conflict(BrevozaError):
    """Branch, file or change request already exists, or a merge is blocked."""

    kind = ErrorKind.CONFLICT


class AlreadyClosed(Conflict):
    """The change request is no longer open."""


class MergeBlocked(Conflict):
    """The host refused the merge (conflicts or failing checks)."""


class InvalidInput(BrevozaError):
    """A required parameter is missing or out of range."""

    kind = ErrorKind.INVALID_INPUT


class UpstreamFailure(BrevozaError):
    """The host call itself errored or timed out."""

    kind = ErrorKind.UPSTREAM_FAILURE

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.status_code is not None:
            data["status_code"] = self.status_code
        return data
