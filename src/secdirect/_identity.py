"""Synthetic device identity presented to the remote API."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass

from secdirect._constants import (
    DEFAULT_COUNTRY,
    DEVICE_BRAND,
    DEVICE_NAME,
    DEVICE_OS_VERSION,
    DEVICE_RESOLUTION,
    DEVICE_TYPE,
    DEVICE_VERSION,
)


@dataclass(frozen=True)
class DeviceIdentity:
    """Identifiers and device metadata sent with the login call.

    Generated once per :class:`~secdirect.client.AlarmClient` so that the
    remote side sees the same device for every call of a session.
    """

    device_id: str
    uuid: str
    push_id: str
    brand: str = DEVICE_BRAND
    name: str = DEVICE_NAME
    os_version: str = DEVICE_OS_VERSION
    type: str = DEVICE_TYPE
    version: str = DEVICE_VERSION
    resolution: str = DEVICE_RESOLUTION

    def as_login_variables(self) -> dict[str, str]:
        """Return the device fields under the names the login mutation expects."""
        return {
            "idDevice": self.device_id,
            "idDeviceIndigitall": self.push_id,
            "deviceType": self.type,
            "deviceVersion": self.version,
            "deviceResolution": self.resolution,
            "deviceName": self.name,
            "deviceBrand": self.brand,
            "deviceOsVersion": self.os_version,
            "uuid": self.uuid,
        }


def generate_device_id(country: str | None = None) -> str:
    """Create a ``<COUNTRY>_<epoch ms>_<16 hex>`` device identifier."""
    region = (country or DEFAULT_COUNTRY).upper()
    return f"{region}_{int(time.time() * 1000)}_{secrets.token_hex(8)}"


def generate_uuid() -> str:
    """Create the 16-character installation uuid."""
    return secrets.token_hex(8)


def generate_push_id() -> str:
    """Create the 32-character push-notification (Indigitall) identifier."""
    return secrets.token_hex(16)


def generate_device_identity(country: str | None = None) -> DeviceIdentity:
    """Build a fresh :class:`DeviceIdentity`.

    *country* only changes the region tag embedded in ``device_id``.
    """
    return DeviceIdentity(
        device_id=generate_device_id(country),
        uuid=generate_uuid(),
        push_id=generate_push_id(),
    )
