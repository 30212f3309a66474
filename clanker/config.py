"""
Bot configuration.

Values are layered: built-in defaults, then an optional YAML file, then
environment variables, then whatever the command line passes explicitly.

Example YAML:

    room_id: "734117"
    username: Jumble Clanker
    hosts:
      - https://classic.talkomatic.co
      - https://dev.talkomatic.co
    join_attempts:
      - {event: join room, field: roomId}
      - {event: join room, field: null}
    reply_probability: 0.6
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from clanker.errors import ConfigError
from clanker.join import JoinAttempt, default_join_attempts
from clanker.state import MAX_RECENT
from clanker.transport import DEFAULT_USER_AGENT, AuthOptions
from shared.log import get_logger
from shared.utils import as_int, is_http_url

logger = get_logger(__name__)


DEFAULT_HOSTS = [
    "https://classic.talkomatic.co",
    "https://dev.talkomatic.co",
]

# Environment variable -> config attribute
ENV_VARS = {
    "ROOM_ID": "room_id",
    "USERNAME": "username",
    "LOCATION": "location",
    "GUEST_ID": "guest_id",
    "GUEST_FILE": "guest_file",
    "PORT": "http_port",
}


@dataclass
class BotConfig:
    room_id: str = "734117"
    username: str = "Jumble Clanker"
    location: str = "Clanker Jungle, Clanker"
    guest_id: Optional[str] = None
    guest_file: Path = Path(".guest_id")
    hosts: List[str] = field(default_factory=lambda: list(DEFAULT_HOSTS))
    join_attempts: List[JoinAttempt] = field(default_factory=default_join_attempts)
    join_retry_interval: float = 1.5
    max_recent: int = MAX_RECENT
    base_delay_ms: float = 28
    jitter_ms: float = 40
    reply_probability: float = 0.6
    word_count: int = 24
    greeting: str = "Hello from Jumble Clanker!"
    user_agent: str = DEFAULT_USER_AGENT
    http_host: str = "0.0.0.0"
    http_port: int = 3000

    def auth_options(self) -> AuthOptions:
        if not self.guest_id:
            raise ConfigError("guest_id must be resolved before connecting")
        return AuthOptions(guest_id=self.guest_id, user_agent=self.user_agent)

    def validate(self) -> "BotConfig":
        if not self.room_id:
            raise ConfigError("room_id is required")
        if not self.hosts:
            raise ConfigError("at least one host is required")
        for host in self.hosts:
            if not is_http_url(host):
                raise ConfigError(f"host must be an http(s) URL: {host!r}")
        if not self.join_attempts:
            raise ConfigError("at least one join attempt is required")
        if not 0.0 <= self.reply_probability <= 1.0:
            raise ConfigError("reply_probability must be between 0 and 1")
        if self.max_recent < 1:
            raise ConfigError("max_recent must be positive")
        if self.join_retry_interval <= 0:
            raise ConfigError("join_retry_interval must be positive")
        if self.base_delay_ms < 0 or self.jitter_ms < 0:
            raise ConfigError("typing delays must not be negative")
        return self

    def merged(self, overrides: Mapping[str, Any]) -> "BotConfig":
        """Return a copy with the given raw values applied (None values are skipped)."""
        return replace(self, **_coerce(overrides))


_FIELD_NAMES = {f.name for f in fields(BotConfig)}


def _coerce(raw: Mapping[str, Any]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        if value is None:
            continue
        if key not in _FIELD_NAMES:
            raise ConfigError(f"unknown config key: {key}")
        try:
            if key == "hosts":
                if isinstance(value, str):
                    value = [h.strip() for h in value.split(",") if h.strip()]
                value = [str(h) for h in value]
            elif key == "join_attempts":
                value = [a if isinstance(a, JoinAttempt) else JoinAttempt.from_dict(a) for a in value]
            elif key == "guest_file":
                value = Path(value).expanduser()
            elif key in ("max_recent", "word_count", "http_port"):
                number = as_int(value, None)
                if number is None:
                    raise ConfigError(f"{key} must be an integer, got {value!r}")
                value = number
            elif key in ("join_retry_interval", "base_delay_ms", "jitter_ms", "reply_probability"):
                value = float(value)
            else:
                value = str(value)
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"invalid value for {key}: {value!r} ({e})") from e
        values[key] = value
    return values


def load_yaml(path: Path) -> Dict[str, Any]:
    """Read a YAML config file; a missing file yields an empty mapping."""
    if not path.exists():
        logger.info("No config file at %s; using defaults", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"cannot parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    env = os.environ if environ is None else environ
    return {attr: env[var] for var, attr in ENV_VARS.items() if env.get(var)}


def load_config(
    path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> BotConfig:
    """Build the effective configuration: defaults < YAML < environment < overrides."""
    config = BotConfig()
    if path is not None:
        config = config.merged(load_yaml(path))
    config = config.merged(env_overrides(environ))
    if overrides:
        config = config.merged(overrides)
    return config.validate()
