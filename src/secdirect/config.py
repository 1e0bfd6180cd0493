"""Local config file used by the CLI between runs."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass

from secdirect._constants import CONFIG_DIR, CONFIG_FILE

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Persisted CLI state: ``{username?, password?, installationId?}``."""

    username: str | None = None
    password: str | None = None
    installationId: str | None = None  # noqa: N815 - matches the file format

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    def to_json(self) -> str:
        return json.dumps({k: v for k, v in asdict(self).items() if v is not None}, indent=2)


def load_config() -> Config:
    """Read the config file; an absent or unreadable file yields an empty config."""
    path = CONFIG_FILE
    if not path.exists():
        return Config()
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        logger.warning("Could not load config file %s: %s", path, e)
        return Config()
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: not a JSON object", path)
        return Config()
    return Config(
        username=data.get("username"),
        password=data.get("password"),
        installationId=data.get("installationId"),
    )


def save_config(config: Config) -> None:
    """Persist *config* to ``~/.config/secdirect/config.json`` (mode 0600)."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    path = CONFIG_FILE
    path.write_text(config.to_json())
    path.chmod(0o600)
