"""
Error taxonomy and normalization for Securitas Direct API calls.

Every failure raised by :mod:`secdirect.executor` passes through
:func:`normalize_error` first, so callers only ever deal with
:class:`ApiError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """Closed set of error kinds surfaced by the client."""

    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"


_STATUS_KINDS = {
    400: ErrorKind.INVALID_REQUEST,
    401: ErrorKind.INVALID_CREDENTIALS,
    404: ErrorKind.NOT_FOUND,
}


class ApiError(Exception):
    """
    Normalized failure of a Securitas Direct API call.

    Exposes ``code``, ``message`` and ``status_code`` so a presentation
    layer can render any failure uniformly.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | str,
        status_code: int = 0,
        code: str | None = None,
    ) -> None:
        """
        Initialize an ApiError.

        Args:
            message: Human-readable error message
            kind: Error kind from the closed taxonomy
            status_code: Transport status code, 0 when there was none
            code: Remote-specific error code; defaults to the kind's value
        """
        super().__init__(message)
        self.kind = kind if isinstance(kind, ErrorKind) else ErrorKind(kind)
        self.message = message
        self.status_code = status_code
        self.code = code or str(self.kind)

    def __str__(self) -> str:
        parts = [self.message, f"code={self.code}"]
        if self.status_code:
            parts.append(f"status={self.status_code}")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"ApiError({self.message!r}, kind={self.kind!r}, "
            f"status_code={self.status_code!r}, code={self.code!r})"
        )


def not_authenticated() -> ApiError:
    """Return the error raised by guarded operations without a session."""
    return ApiError(
        "Not authenticated. Please authenticate first.",
        kind=ErrorKind.UNAUTHORIZED,
        status_code=401,
    )


@dataclass(slots=True)
class TransportFailure:
    """A failed dispatch, captured at the transport boundary.

    Exactly one shape reaches :func:`normalize_error`, whatever went wrong
    underneath (HTTP status, GraphQL ``errors`` list, timeout, socket error).
    """

    status: int | None = None
    """HTTP status of the response, ``None`` if no response arrived."""

    body: Any = None
    """Decoded response body, if any."""

    errors: list[dict[str, Any]] | None = None
    """GraphQL ``errors`` entries carried by the response."""

    timed_out: bool = False
    """The request exceeded the transport timeout."""

    message: str | None = None
    """Transport-level message (exception text)."""

    cause: BaseException | None = field(default=None, repr=False)
    """Original exception, re-raised when the failure is unrecognized."""


def _error_kind(extension_code: object) -> ErrorKind | None:
    if isinstance(extension_code, str) and extension_code in ErrorKind.__members__:
        return ErrorKind[extension_code]
    return None


def normalize_error(failure: TransportFailure) -> ApiError:
    """Map a :class:`TransportFailure` to an :class:`ApiError`.

    Rules are applied in order; the first match wins:

    1. GraphQL ``errors`` list → ``PROTOCOL_ERROR`` (or the kind named by
       ``extensions.code``), message from the first error.
    2. HTTP status → 401 ``INVALID_CREDENTIALS``, 400 ``INVALID_REQUEST``,
       404 ``NOT_FOUND``, anything else ``SERVER_ERROR``.
    3. Timeout → ``NETWORK_ERROR`` with message ``"Request timeout"``.
    4. Any other failure with a message → ``NETWORK_ERROR``.

    Anything else is not a shape we recognize: the original exception is
    re-raised unchanged.
    """
    if failure.errors:
        first = failure.errors[0]
        extensions = first.get("extensions") or {}
        ext_code = extensions.get("code") if isinstance(extensions, dict) else None
        kind = _error_kind(ext_code) or ErrorKind.PROTOCOL_ERROR
        return ApiError(
            str(first.get("message") or "GraphQL error occurred"),
            kind=kind,
            status_code=failure.status or 0,
            code=str(ext_code) if ext_code else None,
        )

    if failure.status is not None:
        kind = _STATUS_KINDS.get(failure.status, ErrorKind.SERVER_ERROR)
        body_message = failure.body.get("message") if isinstance(failure.body, dict) else None
        return ApiError(
            str(body_message or failure.message or "Unknown error"),
            kind=kind,
            status_code=failure.status,
        )

    if failure.timed_out:
        return ApiError("Request timeout", kind=ErrorKind.NETWORK_ERROR)

    if failure.message:
        return ApiError(failure.message, kind=ErrorKind.NETWORK_ERROR)

    if failure.cause is not None:
        raise failure.cause
    raise ValueError(f"Unrecognized transport failure: {failure!r}")
