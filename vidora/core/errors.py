"""
Vidora service errors.

Every failure a service operation can surface is a ``ServiceError`` with a
stable machine-readable ``kind``. The HTTP status is a property of the kind
alone; call sites never pick a status code themselves.
"""
from __future__ import annotations

import enum
import uuid
from typing import Any, Dict, Optional


class ErrorKind(str, enum.Enum):
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    UPSTREAM_FAILURE = "upstream_failure"
    CONFLICT = "conflict"


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.UPSTREAM_FAILURE: 502,
    ErrorKind.CONFLICT: 409,
}


class ServiceError(Exception):
    kind: ErrorKind = ErrorKind.UPSTREAM_FAILURE

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "details": self.details}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class InvalidArgument(ServiceError):
    kind = ErrorKind.INVALID_ARGUMENT


class NotFound(ServiceError):
    kind = ErrorKind.NOT_FOUND


class Forbidden(ServiceError):
    kind = ErrorKind.FORBIDDEN


class UpstreamFailure(ServiceError):
    kind = ErrorKind.UPSTREAM_FAILURE


class Conflict(ServiceError):
    """Two writers collided on a uniqueness rule (e.g. a like toggled twice at once)."""
    kind = ErrorKind.CONFLICT


# ── Validation helpers ───────────────────────────────────────────────────

def parse_id(value: Any, name: str = "id") -> uuid.UUID:
    """Parse a resource id, raising InvalidArgument on malformed input."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        raise InvalidArgument(f"Invalid {name}.", {name: str(value)})


def require_text(value: Optional[str], name: str) -> str:
    """Reject missing or blank text fields; returns the stripped value."""
    if value is None or not value.strip():
        raise InvalidArgument(f"{name} is required.", {"field": name})
    return value.strip()


def validate_pagination(page: int, page_size: int, max_page_size: int) -> None:
    if page < 1 or page_size < 1 or page_size > max_page_size:
        raise InvalidArgument(
            "Invalid page number or page size.",
            {"page": page, "page_size": page_size, "max_page_size": max_page_size},
        )
