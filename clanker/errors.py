from __future__ import annotations

from typing import Sequence


class ClankerError(Exception):
    """Base class for session errors."""


class ConfigError(ClankerError):
    """Raised when the configuration file or environment holds unusable values."""


class TransportError(ClankerError):
    """Connecting to, or consuming from, the active host failed."""

    def __init__(self, host: str, reason: str) -> None:
        super().__init__(f"{host}: {reason}")
        self.host = host
        self.reason = reason


class JoinTimeout(ClankerError):
    """A join-request shape went unacknowledged for the whole retry interval."""

    def __init__(self, attempt: int, event: str) -> None:
        super().__init__(f"join attempt {attempt} ({event}) not acknowledged")
        self.attempt = attempt
        self.event = event


class JoinExhausted(ClankerError):
    """Every configured join-request shape was sent without a confirmation."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"no room confirmation after {attempts} join attempts")
        self.attempts = attempts


class HostsExhausted(ClankerError):
    """Every candidate host failed to connect."""

    def __init__(self, hosts: Sequence[str]) -> None:
        super().__init__(f"exhausted hosts: {', '.join(hosts) or '(none configured)'}")
        self.hosts = list(hosts)
