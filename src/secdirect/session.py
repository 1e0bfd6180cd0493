"""Authentication session state for a single client instance."""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass(frozen=True)
class Session:
    """An authenticated session issued by the login call."""

    auth_token: str
    """Opaque session hash, sent back in the ``auth`` header."""

    refresh_token: str | None = None
    """Opaque refresh token, if the server issued one."""

    issued_at_ms: int = 0
    """Local issuance time in epoch milliseconds (``loginTimestamp``)."""

    authenticated: bool = True

    @classmethod
    def issue(cls, auth_token: str, refresh_token: str | None = None) -> Session:
        """Create a session stamped with the current time."""
        return cls(auth_token, refresh_token or None, int(time.time() * 1000))


class SessionStore:
    """Single mutable slot holding the current :class:`Session`.

    :meth:`install` and :meth:`clear` are the only writers.  Both are a
    single reference assignment with no await in between, so a reader on
    the event loop never sees a partially updated session.
    """

    def __init__(self) -> None:
        self._session: Session | None = None

    def is_authenticated(self) -> bool:
        """True while an authenticated session is installed."""
        session = self._session
        return session is not None and session.authenticated

    def current(self) -> Session | None:
        """The installed session, or ``None``."""
        return self._session

    def install(self, session: Session) -> None:
        """Replace the stored session."""
        self._session = session

    def clear(self) -> None:
        """Drop the stored session.  Safe to call repeatedly."""
        self._session = None
