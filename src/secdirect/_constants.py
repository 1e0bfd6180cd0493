"""Internal constants for the Securitas Direct customer API."""

from __future__ import annotations

from pathlib import Path

GRAPHQL_URL = "https://customers.securitasdirect.es/owa-api/graphql"
REST_URL = "https://api.securitasdirect.es/api"

API_TIMEOUT_MS = 30_000

DEFAULT_COUNTRY = "GB"
DEFAULT_LANGUAGE = "en"

# Country code -> language tag sent in the auth header and login variables
LANGUAGES: dict[str, str] = {
    "AR": "es",
    "BR": "pt",
    "CL": "es",
    "ES": "es",
    "FR": "fr",
    "GB": "en",
    "IE": "en",
    "IT": "it",
    "PT": "pt",
}

CALLBY = "OWA_10"

# Per-request identifier: prefix + username + separator + YYYYMMDDHHmmss
REQUEST_ID_PREFIX = "OWA_______________"
REQUEST_ID_SEPARATOR = "_______________"

# Values reported for the emulated device
DEVICE_BRAND = "samsung"
DEVICE_NAME = "SM-S901U"
DEVICE_OS_VERSION = "12"
DEVICE_TYPE = ""
DEVICE_VERSION = "10.102.0"
DEVICE_RESOLUTION = ""

SUCCESS_CODE = "OK"

CONFIG_DIR = Path.home() / ".config" / "secdirect"
CONFIG_FILE = CONFIG_DIR / "config.json"

APP_HEADERS: dict[str, str] = {
    "Content-Type": "application/json",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/102.0.5005.124 Safari/537.36"
    ),
}
