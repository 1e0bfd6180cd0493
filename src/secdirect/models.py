"""Public datatypes returned by :class:`~secdirect.client.AlarmClient`."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Credentials:
    """Account credentials supplied to :meth:`AlarmClient.authenticate`."""

    username: str
    password: str
    country: str | None = None

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, country={self.country!r})"


@dataclass
class Installation:
    """A security-panel site registered to the account."""

    number: str
    """External installation number (``numinst``)."""

    alias: str = ""
    panel: str = ""
    """Panel identifier required by arm/disarm."""

    type: str = ""
    name: str = ""
    surname: str = ""
    address: str = ""
    city: str = ""
    postcode: str = ""
    province: str = ""
    email: str = ""
    phone: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Installation:
        return cls(
            number=str(data.get("numinst", "")),
            alias=str(data.get("alias") or ""),
            panel=str(data.get("panel") or ""),
            type=str(data.get("type") or ""),
            name=str(data.get("name") or ""),
            surname=str(data.get("surname") or ""),
            address=str(data.get("address") or ""),
            city=str(data.get("city") or ""),
            postcode=str(data.get("postcode") or ""),
            province=str(data.get("province") or ""),
            email=str(data.get("email") or ""),
            phone=str(data.get("phone") or ""),
        )

    @property
    def display_name(self) -> str:
        """Alias if set, otherwise the account holder name."""
        return self.alias or self.name or self.number


@dataclass
class StatusException:
    """A device reported as an exception by the status query."""

    status: str
    device_type: str
    alias: str


@dataclass
class AlarmStatus:
    """Panel status as reported by the remote side; codes are not interpreted."""

    status: str
    timestamp_update: str = ""
    exceptions: list[StatusException] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> AlarmStatus:
        return cls(
            status=str(data.get("status") or ""),
            timestamp_update=str(data.get("timestampUpdate") or ""),
            exceptions=[
                StatusException(
                    status=str(e.get("status") or ""),
                    device_type=str(e.get("deviceType") or ""),
                    alias=str(e.get("alias") or ""),
                )
                for e in data.get("exceptions") or []
            ],
        )


@dataclass
class AuthResult:
    """Outcome of a login attempt.

    A rejected login is an expected outcome and is reported with
    ``success=False``; it is never raised.
    """

    success: bool
    message: str
    hash: str | None = None
    refresh_token: str | None = None


@dataclass
class CommandResult:
    """Outcome of an arm or disarm request."""

    success: bool
    message: str
    reference_id: str | None = None
    """Opaque handle correlating the asynchronous panel operation."""

    @classmethod
    def from_api(cls, data: dict[str, Any] | None, success_code: str) -> CommandResult:
        data = data or {}
        ref = data.get("referenceId")
        return cls(
            success=data.get("res") == success_code,
            message=str(data.get("msg") or ""),
            reference_id=str(ref) if ref else None,
        )
