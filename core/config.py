"""Configuration models and loading."""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

CONFIG_DIR = Path.home() / ".config" / "reddit-forward-proxy"
CONFIG_FILE = CONFIG_DIR / "config.json"

REQUIRED_ROLE = "reddit-forward-proxy-access"
USER_AGENT = "reddit-forward-proxy/0.1"


class ProxySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = Field(default=8089, ge=1, le=65535)


class AuthSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Identity provider instance, e.g. "<instance>.zitadel.cloud"
    domain: str = ""
    key_path: str = ""
    required_role: str = REQUIRED_ROLE
    # None waits forever on the identity provider
    timeout: float | None = None


class UpstreamSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_agent: str = USER_AGENT
    # None waits forever on the upstream
    timeout: float | None = None
    follow_redirects: bool = True


class Config(BaseModel):
    model_config = ConfigDict(frozen=True)

    proxy: ProxySettings = Field(default_factory=ProxySettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)


def load_config(config_file: Path = CONFIG_FILE) -> Config:
    """Load configuration from JSON file, creating default if needed."""
    if not config_file.exists():
        config_file.parent.mkdir(parents=True, exist_ok=True)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default

    try:
        data = json.loads(config_file.read_text())
        return Config.model_validate(data)
    except (json.JSONDecodeError, ValidationError):
        # Backup corrupted config and recreate default
        backup = config_file.with_suffix(".json.bak")
        config_file.rename(backup)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default


def apply_overrides(
    config: Config,
    *,
    domain: str | None = None,
    key_path: str | None = None,
    port: int | None = None,
) -> Config:
    """Return a copy of config with command line values layered on top."""
    auth_update: dict[str, Any] = {}
    if domain:
        auth_update["domain"] = domain
    if key_path:
        auth_update["key_path"] = key_path

    proxy = config.proxy
    if port is not None:
        proxy = ProxySettings.model_validate({**proxy.model_dump(), "port": port})

    return config.model_copy(
        update={
            "auth": config.auth.model_copy(update=auth_update),
            "proxy": proxy,
        }
    )


def unbounded_timeouts(config: Config) -> list[str]:
    """Name the outbound calls that have no timeout configured."""
    names = []
    if config.auth.timeout is None:
        names.append("auth.timeout")
    if config.upstream.timeout is None:
        names.append("upstream.timeout")
    return names
