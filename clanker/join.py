"""
Room join negotiation.

The room service has shipped several incompatible join handshakes, so the bot
does not know up front which request shape will be accepted. JoinNegotiator
sends the configured shapes one at a time, waiting ``retry_interval`` seconds
for a ``room joined`` confirmation before moving on. It stops for good once a
confirmation arrives or the list runs out; it never starts over.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from clanker.errors import ConfigError, JoinExhausted, JoinTimeout
from clanker.events import EventName, JOIN_EVENTS
from shared.log import get_logger
from shared.utils import is_digits

logger = get_logger(__name__)

SendEvent = Callable[[str, Any], Awaitable[object]]


@dataclass(frozen=True)
class JoinAttempt:
    """
    One join-request shape.

    ``field`` names the payload key holding the room id; None sends the bare
    id as the payload. ``numeric`` sends all-digit ids as integers.
    """
    event: str
    field: Optional[str] = "roomId"
    numeric: bool = False

    def room_value(self, room_id: str) -> Any:
        if self.numeric and is_digits(room_id):
            return int(room_id)
        return room_id

    def payload(self, room_id: str) -> Any:
        value = self.room_value(room_id)
        if self.field is None:
            return value
        return {self.field: value}

    def describe(self) -> str:
        target = "<bare>" if self.field is None else self.field
        return f"{self.event} -> {target}{' (numeric)' if self.numeric else ''}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JoinAttempt":
        """Parse a config entry like ``{event: "join room", field: roomCode}``."""
        event = data.get("event", EventName.JOIN_ROOM.value)
        if not isinstance(event, str) or not event:
            raise ConfigError(f"join attempt event must be a non-empty string: {data!r}")
        if not any(event == e.value for e in JOIN_EVENTS):
            logger.warning("Join attempt uses unrecognised event %r", event)
        field = data.get("field", "roomId")
        if field is not None and not isinstance(field, str):
            raise ConfigError(f"join attempt field must be a string or null: {data!r}")
        return cls(event=event, field=field, numeric=bool(data.get("numeric", False)))


def default_join_attempts() -> List[JoinAttempt]:
    """Shapes accepted by the various deployments of the room service, most likely first."""
    return [
        JoinAttempt(EventName.JOIN_ROOM.value, "roomId"),
        JoinAttempt(EventName.JOIN_ROOM.value, "roomId", numeric=True),
        JoinAttempt(EventName.JOIN_ROOM.value, None),
        JoinAttempt(EventName.JOIN_ROOM.value, "roomCode"),
        JoinAttempt(EventName.JOIN_ROOM_CODE.value, "code"),
    ]


class JoinNegotiator:
    """Drives one connection's join handshake through the candidate shapes."""

    def __init__(
        self,
        room_id: str,
        attempts: Sequence[JoinAttempt],
        send: SendEvent,
        *,
        retry_interval: float = 1.5,
        on_attempt: Optional[Callable[[int, JoinAttempt], None]] = None,
    ) -> None:
        self.room_id = room_id
        self.attempts = list(attempts)
        self.retry_interval = retry_interval
        self._send = send
        self._on_attempt = on_attempt
        self._confirmed = asyncio.Event()
        self.sent: List[Tuple[str, Any]] = []
        self.finished = False

    @property
    def confirmed(self) -> bool:
        return self._confirmed.is_set()

    def confirm(self) -> bool:
        """
        Record a room confirmation. Returns True only for the first one.

        Safe to call after the negotiator gave up; nothing is restarted.
        """
        if self._confirmed.is_set():
            return False
        self._confirmed.set()
        return True

    async def run(self) -> int:
        """
        Send shapes until confirmed. Returns the number of requests sent.

        Raises JoinExhausted when every shape went unacknowledged.
        """
        try:
            for index, attempt in enumerate(self.attempts):
                if self.confirmed:
                    return len(self.sent)
                payload = attempt.payload(self.room_id)
                logger.info("Trying join %d/%d: %s = %r", index + 1, len(self.attempts), attempt.describe(), payload,
                            extra={"room_id": self.room_id})
                if self._on_attempt is not None:
                    self._on_attempt(index, attempt)
                await self._send(attempt.event, payload)
                self.sent.append((attempt.event, payload))
                try:
                    await asyncio.wait_for(self._confirmed.wait(), timeout=self.retry_interval)
                    return len(self.sent)
                except asyncio.TimeoutError:
                    logger.debug("%s", JoinTimeout(index + 1, attempt.event))
            if self.confirmed:
                return len(self.sent)
            raise JoinExhausted(len(self.sent))
        finally:
            self.finished = True

    def stats(self) -> Dict[str, Any]:
        return {
            "attempts": len(self.attempts),
            "sent": len(self.sent),
            "confirmed": self.confirmed,
            "finished": self.finished,
        }
