"""Python API and CLI for Securitas Direct alarm panels."""

from secdirect.client import AlarmClient
from secdirect.errors import ApiError, ErrorKind
from secdirect.executor import TransportStyle
from secdirect.models import AlarmStatus, AuthResult, CommandResult, Credentials, Installation
from secdirect.operations import ArmMode, DisarmMode
from secdirect.session import Session

__all__ = [
    "AlarmClient",
    "AlarmStatus",
    "ApiError",
    "ArmMode",
    "AuthResult",
    "CommandResult",
    "Credentials",
    "DisarmMode",
    "ErrorKind",
    "Installation",
    "Session",
    "TransportStyle",
]
