"""Securitas Direct alarm API client.

Provides programmatic access to Securitas Direct installations through the
customer API.  :class:`AlarmClient` is the main entry point::

    import asyncio
    from secdirect import AlarmClient, ArmMode, Credentials

    async with AlarmClient("ES") as client:
        result = await client.authenticate(Credentials("user@example.com", "password"))
        if not result.success:
            raise SystemExit(result.message)

        installations = await client.get_installations()
        inst = installations[0]
        status = await client.get_status(inst.number)
        await client.arm(inst.number, inst.panel, ArmMode.NIGHT)

Failures of the call itself (network, HTTP, protocol) raise
:class:`~secdirect.errors.ApiError`.  A rejected login or a rejected
arm/disarm is an ordinary result with ``success=False``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from types import TracebackType
from typing import Any

import aiohttp

from secdirect._constants import API_TIMEOUT_MS, CALLBY, DEFAULT_COUNTRY, SUCCESS_CODE
from secdirect._identity import DeviceIdentity, generate_device_identity
from secdirect.errors import ApiError, ErrorKind, not_authenticated
from secdirect.executor import RequestExecutor, TransportStyle
from secdirect.models import (
    AlarmStatus,
    AuthResult,
    CommandResult,
    Credentials,
    Installation,
)
from secdirect.operations import (
    ARM_PANEL,
    DISARM_PANEL,
    LIST_INSTALLATIONS,
    LOGIN,
    STATUS,
    ArmMode,
    DisarmMode,
    Operation,
    resolve_mode,
)
from secdirect.session import Session, SessionStore

logger = logging.getLogger(__name__)

# Errors that mean the server answered and refused the login
_LOGIN_REJECTIONS = frozenset({ErrorKind.INVALID_CREDENTIALS, ErrorKind.PROTOCOL_ERROR})


class AlarmClient:
    """Securitas Direct API client.

    Each instance owns one :class:`SessionStore` and one
    :class:`DeviceIdentity`, so several independent clients can live in the
    same process.

    Use as an async context manager to share one HTTP connection pool
    across calls; otherwise every call opens a short-lived session.
    """

    def __init__(
        self,
        country: str = DEFAULT_COUNTRY,
        *,
        style: TransportStyle | str = TransportStyle.GRAPHQL,
        base_url: str | None = None,
        timeout_ms: int = API_TIMEOUT_MS,
        http_session: aiohttp.ClientSession | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = SessionStore()
        self._identity = generate_device_identity(country)
        self._credentials: Credentials | None = None
        self._installation_id: str | None = None
        self._owns_http_session = False
        self._executor = RequestExecutor(
            self._store,
            country=country,
            style=style,
            base_url=base_url,
            timeout_ms=timeout_ms,
            http_session=http_session,
            clock=clock,
        )

    async def __aenter__(self) -> AlarmClient:
        if self._executor.http_session is None:
            self._executor.http_session = aiohttp.ClientSession()
            self._owns_http_session = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_http_session and self._executor.http_session is not None:
            await self._executor.http_session.close()
            self._executor.http_session = None
            self._owns_http_session = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def identity(self) -> DeviceIdentity:
        """Device identity presented to the API for this client's lifetime."""
        return self._identity

    @property
    def country(self) -> str:
        """Country code used for the ``auth`` header and login variables."""
        return self._executor.country

    @property
    def username(self) -> str:
        """Username of the stored credentials, or an empty string."""
        return self._credentials.username if self._credentials else ""

    @property
    def installation_id(self) -> str | None:
        """Number of the installation chosen by :meth:`select_installation`."""
        return self._installation_id

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def authenticate(self, credentials: Credentials) -> AuthResult:
        """Log in and install a new session.

        The previous session never survives this call: it is replaced on
        success and cleared on any failure.  A login refused by the server
        is returned as ``AuthResult(success=False)``; network and server
        failures raise :class:`ApiError`.

        The credentials are kept for :meth:`refresh_session`.
        """
        self._credentials = credentials
        if credentials.country:
            self._executor.country = credentials.country.upper()

        variables = {
            "user": credentials.username,
            "password": credentials.password,
            "id": self._executor.request_id(credentials.username),
            "country": self.country,
            "lang": self._executor.language,
            "callby": CALLBY,
            **self._identity.as_login_variables(),
        }

        try:
            payload = await self._executor.execute(
                LOGIN, variables, username=credentials.username, anonymous=True
            )
        except ApiError as e:
            self._store.clear()
            if e.kind in _LOGIN_REJECTIONS:
                logger.debug("Login rejected for %s: %s", credentials.username, e.message)
                return AuthResult(success=False, message=e.message)
            raise
        except BaseException:
            self._store.clear()
            raise

        data = self._result(payload, LOGIN)
        if not isinstance(data, dict):
            self._store.clear()
            return AuthResult(
                success=False, message=f"Invalid response from server: {payload!r}"
            )

        token = data.get("hash")
        if not token:
            self._store.clear()
            message = str(data.get("msg") or "Authentication failed")
            return AuthResult(success=False, message=message)

        refresh_token = data.get("refreshToken") or None
        self._store.install(Session.issue(str(token), refresh_token))
        logger.debug("Authenticated as %s", credentials.username)
        return AuthResult(
            success=True,
            message=str(data.get("msg") or "Authentication successful"),
            hash=str(token),
            refresh_token=refresh_token,
        )

    def is_authenticated(self) -> bool:
        """True while a session is installed."""
        return self._store.is_authenticated()

    def get_session(self) -> Session | None:
        """The current session, or ``None``."""
        return self._store.current()

    async def refresh_session(self) -> bool:
        """Re-authenticate with the credentials from the last :meth:`authenticate`.

        Returns ``False`` without any network call if no credentials were
        ever stored, and ``False`` if the new attempt fails.
        """
        if self._credentials is None:
            return False
        try:
            result = await self.authenticate(self._credentials)
        except ApiError as e:
            logger.warning("Session refresh failed: %s", e)
            return False
        return result.success

    def logout(self) -> None:
        """Forget the session, the stored credentials and the selected installation."""
        self._store.clear()
        self._credentials = None
        self._installation_id = None

    # ------------------------------------------------------------------
    # Installations and status
    # ------------------------------------------------------------------

    async def get_installations(self) -> list[Installation]:
        """Fetch every installation on the account.  Not cached."""
        self._check_authenticated()
        payload = await self._execute(LIST_INSTALLATIONS)
        data = self._require(payload, LIST_INSTALLATIONS)
        items = data.get("installations") if isinstance(data, dict) else data
        return [Installation.from_api(i) for i in items or []]

    async def select_installation(self, installation_id: str | None = None) -> Installation:
        """Pick an installation and remember its number.

        Without *installation_id* the previously selected installation is
        kept if it still exists, otherwise the first one is chosen.

        Raises:
            KeyError: If the account has no installations, or none matches.
        """
        self._check_authenticated()
        installations = await self.get_installations()
        if not installations:
            raise KeyError("No installations found on this account.")

        wanted = installation_id or self._installation_id
        if wanted is not None:
            for inst in installations:
                if inst.number == wanted:
                    self._installation_id = inst.number
                    return inst
            if installation_id is not None:
                raise KeyError(f"No installation with number '{installation_id}'.")

        self._installation_id = installations[0].number
        return installations[0]

    async def get_status(self, installation_id: str) -> AlarmStatus:
        """Fetch the current panel status for *installation_id*."""
        self._check_authenticated()
        payload = await self._execute(STATUS, {"numinst": installation_id})
        return AlarmStatus.from_api(self._require(payload, STATUS))

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    async def arm(
        self,
        installation_id: str,
        panel: str,
        mode: ArmMode | str = ArmMode.FULL,
        current_status: str = "",
    ) -> CommandResult:
        """Send an arm request.

        Args:
            installation_id: Installation number (``numinst``).
            panel: Panel identifier of that installation.
            mode: ``full``, ``night`` or ``partial`` (or a raw request token).
            current_status: Last known panel status, forwarded as-is.

        Returns:
            ``success=True`` only when the server acknowledges with ``OK``.
            A response without an acknowledgment object counts as a
            rejection rather than a protocol error.

        Raises:
            ValueError: If *mode* is not a known arm mode.
        """
        self._check_authenticated()
        request = resolve_mode(mode, ArmMode)
        payload = await self._execute(
            ARM_PANEL,
            {
                "numinst": installation_id,
                "request": request,
                "panel": panel,
                "currentStatus": current_status,
            },
        )
        return CommandResult.from_api(self._result(payload, ARM_PANEL), SUCCESS_CODE)

    async def disarm(
        self,
        installation_id: str,
        panel: str,
        mode: DisarmMode | str = DisarmMode.FULL,
    ) -> CommandResult:
        """Send a disarm request.

        Same result contract as :meth:`arm`, including an empty
        acknowledgment being reported as a rejection.
        """
        self._check_authenticated()
        request = resolve_mode(mode, DisarmMode)
        payload = await self._execute(
            DISARM_PANEL,
            {"numinst": installation_id, "request": request, "panel": panel},
        )
        return CommandResult.from_api(self._result(payload, DISARM_PANEL), SUCCESS_CODE)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _check_authenticated(self) -> None:
        if not self._store.is_authenticated():
            raise not_authenticated()

    async def _execute(self, operation: Operation, variables: dict[str, Any] | None = None) -> Any:
        return await self._executor.execute(operation, variables, username=self.username)

    def _result(self, payload: Any, operation: Operation) -> Any:
        """Extract the operation's result object from a raw payload."""
        if self._executor.style is TransportStyle.REST:
            return payload
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            return None
        return data.get(operation.root)

    def _require(self, payload: Any, operation: Operation) -> Any:
        result = self._result(payload, operation)
        if result is None:
            raise ApiError(
                f"Unexpected response to {operation.name}: missing {operation.root}",
                kind=ErrorKind.PROTOCOL_ERROR,
            )
        return result
