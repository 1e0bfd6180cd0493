"""Remote operation definitions: the single source of truth for the API schema."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


@dataclass(frozen=True)
class Operation:
    """A remote operation definition.

    Carries both wire shapes: the GraphQL document sent to the single
    endpoint, and the verb + path used by REST deployments.
    """

    name: str
    """GraphQL ``operationName`` (also sent as ``X-APOLLO-OPERATION-NAME``)."""

    query: str
    """GraphQL document."""

    root: str
    """Field under ``data`` that holds the operation result."""

    rest_method: str
    """HTTP verb for REST deployments."""

    rest_path: str
    """Path relative to the REST base URL."""


LOGIN = Operation(
    name="mkLoginToken",
    query=(
        "mutation mkLoginToken($user: String!, $password: String!, $id: String!, "
        "$country: String!, $lang: String!, $callby: String!, $idDevice: String!, "
        "$idDeviceIndigitall: String!, $deviceType: String!, $deviceVersion: String!, "
        "$deviceResolution: String!, $deviceName: String!, $deviceBrand: String!, "
        "$deviceOsVersion: String!, $uuid: String!) { xSLoginToken(user: $user, "
        "password: $password, country: $country, lang: $lang, callby: $callby, id: $id, "
        "idDevice: $idDevice, idDeviceIndigitall: $idDeviceIndigitall, "
        "deviceType: $deviceType, deviceVersion: $deviceVersion, "
        "deviceResolution: $deviceResolution, deviceName: $deviceName, "
        "deviceBrand: $deviceBrand, deviceOsVersion: $deviceOsVersion, uuid: $uuid) "
        "{ __typename res msg hash refreshToken legals changePassword "
        "needDeviceAuthorization mainUser } }"
    ),
    root="xSLoginToken",
    rest_method="POST",
    rest_path="/login",
)

LIST_INSTALLATIONS = Operation(
    name="mkInstallationList",
    query=(
        "query mkInstallationList {\n  xSInstallations {\n    installations {\n"
        "      numinst\n      alias\n      panel\n      type\n      name\n"
        "      surname\n      address\n      city\n      postcode\n      province\n"
        "      email\n      phone\n    }\n  }\n}\n"
    ),
    root="xSInstallations",
    rest_method="GET",
    rest_path="/installations",
)

STATUS = Operation(
    name="Status",
    query=(
        "query Status($numinst: String!) {\n  xSStatus(numinst: $numinst) {\n"
        "    status\n    timestampUpdate\n    exceptions {\n      status\n"
        "      deviceType\n      alias\n    }\n  }\n}"
    ),
    root="xSStatus",
    rest_method="GET",
    rest_path="/status",
)

ARM_PANEL = Operation(
    name="xSArmPanel",
    query=(
        "mutation xSArmPanel($numinst: String!, $request: ArmCodeRequest!, "
        "$panel: String!, $currentStatus: String) {\n  xSArmPanel(numinst: $numinst, "
        "request: $request, panel: $panel, currentStatus: $currentStatus) {\n"
        "    res\n    msg\n    referenceId\n  }\n}\n"
    ),
    root="xSArmPanel",
    rest_method="POST",
    rest_path="/arm",
)

DISARM_PANEL = Operation(
    name="xSDisarmPanel",
    query=(
        "mutation xSDisarmPanel($numinst: String!, $request: DisarmCodeRequest!, "
        "$panel: String!) {\n  xSDisarmPanel(numinst: $numinst, request: $request, "
        "panel: $panel) {\n    res\n    msg\n    referenceId\n  }\n}\n"
    ),
    root="xSDisarmPanel",
    rest_method="POST",
    rest_path="/disarm",
)

OPERATIONS: list[Operation] = [LOGIN, LIST_INSTALLATIONS, STATUS, ARM_PANEL, DISARM_PANEL]


class ArmMode(StrEnum):
    """Arm requests accepted by ``xSArmPanel``."""

    FULL = "ARM1"
    NIGHT = "ARMNIGHT"
    PARTIAL = "ARMDAY"


class DisarmMode(StrEnum):
    """Disarm requests accepted by ``xSDisarmPanel``."""

    FULL = "DARM1"


def resolve_mode(mode: str, kind: type[ArmMode] | type[DisarmMode]) -> str:
    """Resolve a mode given by member name (``"night"``) or raw token (``"ARMNIGHT"``).

    Raises :class:`ValueError` for anything outside the closed set.
    """
    if isinstance(mode, kind):
        return mode.value
    key = str(mode).upper()
    if key in kind.__members__:
        return kind[key].value
    try:
        return kind(key).value
    except ValueError:
        choices = ", ".join(m.name.lower() for m in kind)
        raise ValueError(f"Invalid mode '{mode}'. Expected: {choices}") from None
