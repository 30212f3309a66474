from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

import socketio
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from clanker.errors import TransportError
from shared.log import get_logger

logger = get_logger(__name__)


EventHandler = Callable[[Any], Awaitable[None]]

DEFAULT_TRANSPORTS = ("polling", "websocket")
DEFAULT_USER_AGENT = "JumbleClanker/1.0"


@dataclass(frozen=True)
class AuthOptions:
    """Handshake credentials; the guest id doubles as the browser fingerprint."""
    guest_id: str
    user_agent: str = DEFAULT_USER_AGENT

    def auth_payload(self) -> Dict[str, str]:
        return {"guestId": self.guest_id, "fingerprint": self.guest_id}

    def headers(self) -> Dict[str, str]:
        return {"X-Guest-Id": self.guest_id, "User-Agent": self.user_agent}


class RoomConnection:
    """
    Socket.IO connection to one room host.

    Sends are best-effort: a failed emit is logged and reported as False, it
    is never raised to the caller.
    """

    def __init__(
        self,
        host: str,
        auth: AuthOptions,
        *,
        transports: Sequence[str] = DEFAULT_TRANSPORTS,
        socketio_path: str = "socket.io",
        connect_timeout: float = 10.0,
        client: Optional[socketio.AsyncClient] = None,
    ) -> None:
        self.host = host
        self.auth = auth
        self.transports = list(transports)
        self.socketio_path = socketio_path
        self.connect_timeout = connect_timeout
        self.sio = client or socketio.AsyncClient(reconnection=True, logger=False, engineio_logger=False)

    @property
    def connected(self) -> bool:
        return bool(self.sio.connected)

    def on(self, event: str, handler: EventHandler) -> None:
        """Register the handler for an event; it receives the first event argument or None."""

        async def _dispatch(*args: Any) -> None:
            try:
                await handler(args[0] if args else None)
            except Exception as e:
                logger.error("Handler for %r failed: %s", event, e, extra={"host": self.host})

        self.sio.on(event, _dispatch)

    async def open(self) -> None:
        """Connect to the host. Raises TransportError on failure."""
        logger.info("Connecting", extra={"host": self.host})
        try:
            await self.sio.connect(
                self.host,
                headers=self.auth.headers(),
                auth=self.auth.auth_payload(),
                transports=self.transports,
                socketio_path=self.socketio_path,
                wait_timeout=self.connect_timeout,
            )
        except SocketIOConnectionError as e:
            raise TransportError(self.host, str(e) or type(e).__name__) from e
        except (OSError, ValueError) as e:
            raise TransportError(self.host, str(e) or type(e).__name__) from e

    async def send(self, event: str, payload: Any) -> bool:
        try:
            await self.sio.emit(event, payload)
            logger.debug("Sent %s", event, extra={"host": self.host})
            return True
        except Exception as e:
            logger.warning("Failed to send %s: %s", event, e, extra={"host": self.host})
            return False

    async def close(self) -> None:
        """Disconnect and stop any pending reconnect loop for this client."""
        try:
            await self.sio.shutdown()
        except Exception as e:
            logger.error("Error closing connection: %s", e, extra={"host": self.host})


ConnectionFactory = Callable[[str, AuthOptions], RoomConnection]
