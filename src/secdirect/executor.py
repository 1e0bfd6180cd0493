"""Request construction and dispatch for the Securitas Direct API.

:class:`RequestExecutor` turns an :class:`~secdirect.operations.Operation`
plus its variables into an HTTP call, signs it with the current session (if
any), and hands back the decoded JSON payload.  Every failure is converted
into a :class:`~secdirect.errors.TransportFailure` at the transport boundary
and raised as the :class:`~secdirect.errors.ApiError` produced by
:func:`~secdirect.errors.normalize_error`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum
from typing import Any

import aiohttp

from secdirect._constants import (
    API_TIMEOUT_MS,
    APP_HEADERS,
    CALLBY,
    DEFAULT_COUNTRY,
    DEFAULT_LANGUAGE,
    GRAPHQL_URL,
    LANGUAGES,
    REQUEST_ID_PREFIX,
    REQUEST_ID_SEPARATOR,
    REST_URL,
)
from secdirect.errors import TransportFailure, normalize_error
from secdirect.operations import Operation
from secdirect.session import Session, SessionStore

logger = logging.getLogger(__name__)


class TransportStyle(StrEnum):
    """Wire shape used for a deployment."""

    GRAPHQL = "graphql"
    REST = "rest"


def build_request_id(username: str, now: datetime | None = None) -> str:
    """Build the per-request identifier for *username*.

    Format: ``OWA_______________<user>_______________YYYYMMDDHHmmss``.
    """
    now = now or datetime.now()
    return f"{REQUEST_ID_PREFIX}{username}{REQUEST_ID_SEPARATOR}{now:%Y%m%d%H%M%S}"


def language_for(country: str) -> str:
    """Language tag the API expects for *country*."""
    return LANGUAGES.get(country.upper(), DEFAULT_LANGUAGE)


def build_auth_header(
    session: Session,
    username: str,
    country: str,
    *,
    now: datetime | None = None,
) -> dict[str, object]:
    """Build the ``auth`` header object for an authenticated call."""
    return {
        "loginTimestamp": session.issued_at_ms,
        "user": username,
        "id": build_request_id(username, now),
        "country": country,
        "lang": language_for(country),
        "callby": CALLBY,
        "hash": session.auth_token,
    }


class RequestExecutor:
    """Builds, signs and dispatches API calls.

    The executor reads the :class:`SessionStore` it is given but never
    writes to it; only :class:`~secdirect.client.AlarmClient` does.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        country: str = DEFAULT_COUNTRY,
        style: TransportStyle | str = TransportStyle.GRAPHQL,
        base_url: str | None = None,
        timeout_ms: int = API_TIMEOUT_MS,
        http_session: aiohttp.ClientSession | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self.country = country.upper()
        self.style = TransportStyle(style)
        if base_url is None:
            base_url = GRAPHQL_URL if self.style is TransportStyle.GRAPHQL else REST_URL
        self.base_url = base_url.rstrip("/")
        self.timeout_ms = timeout_ms
        self.http_session = http_session
        self._clock = clock

    @property
    def language(self) -> str:
        """Language tag derived from :attr:`country`."""
        return language_for(self.country)

    def request_id(self, username: str) -> str:
        """Per-request identifier for *username* at the current clock time."""
        return build_request_id(username, self._clock())

    def build_headers(
        self, operation: Operation, username: str, *, anonymous: bool = False
    ) -> dict[str, str]:
        """Headers for one call of *operation*.

        The ``auth`` header is recomputed on every call (its ``id`` embeds
        the current time) and only added when a session is installed and
        the call is not *anonymous*.
        """
        headers = dict(APP_HEADERS)
        if self.style is TransportStyle.GRAPHQL:
            headers["X-APOLLO-OPERATION-NAME"] = operation.name

        session = None if anonymous else self._store.current()
        if session is not None:
            auth = build_auth_header(session, username, self.country, now=self._clock())
            headers["auth"] = json.dumps(auth, separators=(",", ":"))
            if self.style is TransportStyle.REST:
                headers["Authorization"] = f"Bearer {session.auth_token}"
        return headers

    def build_request(
        self, operation: Operation, variables: dict[str, Any]
    ) -> tuple[str, str, dict[str, Any]]:
        """Return ``(method, url, request kwargs)`` for *operation*."""
        if self.style is TransportStyle.GRAPHQL:
            payload = {
                "operationName": operation.name,
                "variables": variables,
                "query": operation.query,
            }
            return "POST", self.base_url, {"json": payload}

        url = f"{self.base_url}{operation.rest_path}"
        if operation.rest_method == "GET":
            return "GET", url, {"params": variables} if variables else {}
        return operation.rest_method, url, {"json": variables}

    async def execute(
        self,
        operation: Operation,
        variables: dict[str, Any] | None = None,
        *,
        username: str = "",
        anonymous: bool = False,
    ) -> Any:
        """Dispatch *operation* and return the raw decoded payload.

        Args:
            operation: Operation definition from :mod:`secdirect.operations`.
            variables: Variable bindings for the operation.
            username: Account name embedded in the ``auth`` header.
            anonymous: Send no session credentials even if a session exists.

        Raises:
            ApiError: For any transport, HTTP or protocol failure.
        """
        variables = variables or {}
        headers = self.build_headers(operation, username, anonymous=anonymous)
        method, url, kwargs = self.build_request(operation, variables)

        logger.debug("Dispatching %s (%s %s %s)", operation.name, self.style, method, url)
        result = await self._dispatch(method, url, headers, kwargs)
        if isinstance(result, TransportFailure):
            error = normalize_error(result)
            logger.debug("%s failed: %r", operation.name, error)
            raise error
        return result

    async def _dispatch(
        self, method: str, url: str, headers: dict[str, str], kwargs: dict[str, Any]
    ) -> Any:
        """Send the request; return the payload or a :class:`TransportFailure`."""
        timeout = aiohttp.ClientTimeout(total=self.timeout_ms / 1000)
        try:
            if self.http_session is not None:
                status, reason, text = await _send(
                    self.http_session, method, url, headers, timeout, kwargs
                )
            else:
                async with aiohttp.ClientSession() as session:
                    status, reason, text = await _send(
                        session, method, url, headers, timeout, kwargs
                    )
        except TimeoutError as e:
            return TransportFailure(timed_out=True, message=str(e) or None, cause=e)
        except aiohttp.ClientError as e:
            return TransportFailure(message=str(e) or type(e).__name__, cause=e)

        logger.debug("%s %s returned HTTP %s", method, url, status)
        return self._check_response(status, reason, text)

    def _check_response(self, status: int, reason: str | None, text: str) -> Any:
        body = _decode_body(text)
        errors = _graphql_errors(body) if self.style is TransportStyle.GRAPHQL else None

        if not 200 <= status < 300:
            return TransportFailure(status=status, body=body, errors=errors, message=reason)
        if errors:
            return TransportFailure(status=status, body=body, errors=errors)
        if body is None:
            return TransportFailure(
                status=status, errors=[{"message": "Malformed response from server"}]
            )
        return body


async def _send(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    headers: dict[str, str],
    timeout: aiohttp.ClientTimeout,
    kwargs: dict[str, Any],
) -> tuple[int, str | None, str]:
    async with session.request(method, url, headers=headers, timeout=timeout, **kwargs) as resp:
        raw = await resp.read()
        return resp.status, resp.reason, raw.decode("utf-8", errors="replace")


def _decode_body(text: str) -> Any:
    """Decode a JSON response body; ``None`` if it is empty or not JSON."""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def _graphql_errors(body: Any) -> list[dict[str, Any]] | None:
    if not isinstance(body, dict):
        return None
    errors = body.get("errors")
    if isinstance(errors, list) and errors:
        return [e if isinstance(e, dict) else {"message": str(e)} for e in errors]
    return None
