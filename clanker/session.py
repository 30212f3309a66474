"""
Room session controller.

Owns the single active connection and every piece of mutable session state
(roster, recent corpus, output slot). The host fallback is an explicit loop
over the candidate list:

    DISCONNECTED -> CONNECTING(host) -> AWAITING_JOIN(host, attempt)
                 -> JOINED(host) -> (transport failure) CONNECTING(next host)
                 -> ... -> DISCONNECTED once the list is exhausted

Inbound handlers mutate state synchronously and never wait on output, so
edits keep flowing while a typing run is paused between characters.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set

from clanker.config import BotConfig
from clanker.edits import FullReplace, parse_diff
from clanker.errors import HostsExhausted, JoinExhausted, TransportError
from clanker.events import EventName
from clanker.jumble import generate
from clanker.join import JoinAttempt, JoinNegotiator
from clanker.state import RecentCorpus, Roster
from clanker.transport import ConnectionFactory, RoomConnection
from clanker.typist import OutputSlot, Sleep, TypingScheduler
from shared.log import get_logger

logger = get_logger(__name__)


class Phase(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_JOIN = "awaiting_join"
    JOINED = "joined"


@dataclass(frozen=True)
class SessionState:
    phase: Phase
    host: Optional[str] = None
    attempt: Optional[int] = None

    @classmethod
    def disconnected(cls) -> "SessionState":
        return cls(Phase.DISCONNECTED)


class SessionController:

    def __init__(
        self,
        config: BotConfig,
        connection_factory: ConnectionFactory = RoomConnection,
        *,
        rng: Optional[random.Random] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config
        self._connection_factory = connection_factory
        self._rng = rng or random.Random()

        self.roster = Roster()
        self.corpus = RecentCorpus(config.max_recent)
        self.output = OutputSlot("typing")
        self.typist = TypingScheduler(
            self._send_text,
            base_delay_ms=config.base_delay_ms,
            jitter_ms=config.jitter_ms,
            sleep=sleep,
            rng=self._rng,
        )

        self.state = SessionState.disconnected()
        self.connection: Optional[RoomConnection] = None
        self.negotiator: Optional[JoinNegotiator] = None
        self.join_failure: Optional[JoinExhausted] = None
        self.hosts_remaining: List[str] = []
        self.joined = False

        self._negotiation_task: Optional[asyncio.Task] = None
        self._background_tasks: Set[asyncio.Task] = set()
        self._host_failed: Optional[asyncio.Event] = None
        self._stop = asyncio.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        if state != self.state:
            logger.debug("State %s -> %s", self.state, state)
        self.state = state

    def _track_background_task(self, task: asyncio.Task) -> None:
        """Keep a strong reference to background tasks until completion."""
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def run(self) -> None:
        """
        Connect to the candidate hosts in order and stay on the first that works.

        Returns after shutdown(). Raises HostsExhausted when every host failed.
        """
        self.hosts_remaining = list(self.config.hosts)
        while self.hosts_remaining and not self._stop.is_set():
            host = self.hosts_remaining[0]
            if not await self._run_host(host):
                break
            self.hosts_remaining.pop(0)
            if self.hosts_remaining:
                logger.info("Falling back to %s", self.hosts_remaining[0])

        self._set_state(SessionState.disconnected())
        if not self._stop.is_set():
            logger.error("Exhausted hosts; giving up", extra={"room_id": self.config.room_id})
            raise HostsExhausted(self.config.hosts)

    async def _run_host(self, host: str) -> bool:
        """Hold one host until it fails (returns True) or the session stops (False)."""
        self._set_state(SessionState(Phase.CONNECTING, host))
        self.joined = False
        self.negotiator = None
        self.join_failure = None
        self._host_failed = asyncio.Event()

        connection = self._connection_factory(host, self.config.auth_options())
        self.connection = connection
        self._register_handlers(connection)

        try:
            await connection.open()
        except TransportError as e:
            logger.warning("Connect failed: %s", e.reason, extra={"host": host})
            await self._drop_connection(connection)
            return True

        failed = asyncio.create_task(self._host_failed.wait())
        stopped = asyncio.create_task(self._stop.wait())
        try:
            await asyncio.wait({failed, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in (failed, stopped):
                waiter.cancel()

        if self._stop.is_set():
            return False
        await self._drop_connection(connection)
        return True

    async def _drop_connection(self, connection: RoomConnection) -> None:
        if self._negotiation_task is not None:
            self._negotiation_task.cancel()
            self._negotiation_task = None
        self.output.cancel()
        await connection.close()
        if self.connection is connection:
            self.connection = None

    async def shutdown(self) -> None:
        """
        Stop the session: abandon any typing run, clear our visible text and
        close the connection. Delivery of the clear is best-effort.
        """
        self._stop.set()
        self.output.cancel()
        if self._negotiation_task is not None:
            self._negotiation_task.cancel()
        for task in list(self._background_tasks):
            task.cancel()
        connection = self.connection
        if connection is not None:
            await connection.send(EventName.CHAT_UPDATE.value, FullReplace("").to_payload())
            await connection.close()
        logger.info("Session stopped")

    def get_status(self) -> Dict[str, Any]:
        return {
            "phase": self.state.phase.value,
            "host": self.state.host,
            "attempt": self.state.attempt,
            "room_id": self.config.room_id,
            "joined": self.joined,
            "occupants": len(self.roster),
            "recent_messages": len(self.corpus),
            "typing": self.output.busy,
            "hosts_remaining": list(self.hosts_remaining),
            "join": self.negotiator.stats() if self.negotiator else None,
        }

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    def _register_handlers(self, connection: RoomConnection) -> None:
        # Handlers are bound to their connection; events from a replaced
        # connection are dropped.
        def bind(handler):
            async def _handler(payload: Any) -> None:
                if connection is not self.connection:
                    logger.debug("Ignoring event from stale connection", extra={"host": connection.host})
                    return
                await handler(connection, payload)
            return _handler

        connection.on(EventName.CONNECT.value, bind(self._on_connect))
        connection.on(EventName.CONNECT_ERROR.value, bind(self._on_connect_error))
        connection.on(EventName.DISCONNECT.value, bind(self._on_disconnect))
        connection.on(EventName.SERVER_ERROR.value, bind(self._on_server_error))
        connection.on(EventName.NOTICE.value, bind(self._on_notice))
        connection.on(EventName.ROOM_JOINED.value, bind(self._on_room_joined))
        connection.on(EventName.USER_JOINED.value, bind(self._on_user_joined))
        connection.on(EventName.USER_LEFT.value, bind(self._on_user_left))
        connection.on(EventName.CHAT_UPDATE.value, bind(self._on_chat_update))

    async def _on_connect(self, connection: RoomConnection, _payload: Any) -> None:
        logger.info("Connected; joining lobby", extra={"host": connection.host})
        await connection.send(EventName.JOIN_LOBBY.value, {
            "username": self.config.username,
            "location": self.config.location,
            "guestId": self.config.guest_id,
        })
        if self.joined or self._negotiation_task is not None:
            return
        self._set_state(SessionState(Phase.AWAITING_JOIN, connection.host, 0))
        self.negotiator = JoinNegotiator(
            self.config.room_id,
            self.config.join_attempts,
            connection.send,
            retry_interval=self.config.join_retry_interval,
            on_attempt=self._on_join_attempt,
        )
        self._negotiation_task = asyncio.create_task(self._negotiate(self.negotiator, connection))
        self._track_background_task(self._negotiation_task)

    def _on_join_attempt(self, index: int, attempt: JoinAttempt) -> None:
        if not self.joined:
            self._set_state(SessionState(Phase.AWAITING_JOIN, self.state.host, index))

    async def _negotiate(self, negotiator: JoinNegotiator, connection: RoomConnection) -> None:
        try:
            sent = await negotiator.run()
            logger.info("Join confirmed after %d request(s)", sent, extra={"host": connection.host})
        except JoinExhausted as e:
            # No automatic recovery; a late confirmation is still honoured.
            self.join_failure = e
            logger.error("%s", e, extra={"host": connection.host, "room_id": self.config.room_id})

    async def _on_connect_error(self, connection: RoomConnection, reason: Any) -> None:
        logger.warning("Connect error: %s", reason, extra={"host": connection.host})
        if self._host_failed is not None:
            self._host_failed.set()

    async def _on_disconnect(self, connection: RoomConnection, reason: Any) -> None:
        logger.info("Disconnected (%s)", reason or "no reason", extra={"host": connection.host})

    async def _on_server_error(self, connection: RoomConnection, message: Any) -> None:
        logger.warning("[server error] %s", message, extra={"host": connection.host})

    async def _on_notice(self, connection: RoomConnection, message: Any) -> None:
        logger.info("[notice] %s", message, extra={"host": connection.host})

    async def _on_room_joined(self, connection: RoomConnection, data: Any) -> None:
        if self.negotiator is not None:
            self.negotiator.confirm()
        if self.joined:
            logger.debug("Duplicate room confirmation ignored", extra={"host": connection.host})
            return
        self.joined = True
        self._set_state(SessionState(Phase.JOINED, connection.host))

        data = data if isinstance(data, Mapping) else {}
        users = data.get("users") or []
        current = data.get("currentMessages") or {}
        self.roster.snapshot(
            users if isinstance(users, list) else [],
            current if isinstance(current, Mapping) else {},
        )
        logger.info("Room joined with %d occupant(s)", len(self.roster),
                    extra={"host": connection.host, "room_id": self.config.room_id})
        self.output.start(lambda: self.typist.emit(self.config.greeting))

    async def _on_user_joined(self, connection: RoomConnection, user: Any) -> None:
        if not isinstance(user, Mapping) or user.get("id") is None:
            logger.debug("Ignoring malformed user joined payload: %r", user)
            return
        self.roster.on_join(user["id"], user.get("username"))
        logger.info("User joined: %s", user.get("username"), extra={"user_id": user["id"]})

    async def _on_user_left(self, connection: RoomConnection, payload: Any) -> None:
        identity = payload
        if isinstance(payload, Mapping):
            identity = payload.get("id", payload.get("userId"))
        if identity is None:
            return
        self.roster.on_leave(identity)
        logger.info("User left", extra={"user_id": identity})

    async def _on_chat_update(self, connection: RoomConnection, data: Any) -> None:
        if not isinstance(data, Mapping):
            return
        identity = data.get("userId")
        if identity is None or identity == "":
            return

        if data.get("diff") is not None:
            op = parse_diff(data["diff"])
            if op is not None:
                self.roster.apply_edit(identity, op)
            return

        message = data.get("message")
        if isinstance(message, str):
            self.roster.apply_edit(identity, FullReplace(message))
            if self.corpus.record(message):
                self.maybe_reply()

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def maybe_reply(self) -> Optional[asyncio.Task]:
        """Start a jumble typing run with probability reply_probability, unless one is running."""
        if self.output.busy or not len(self.corpus):
            return None
        if self._rng.random() >= self.config.reply_probability:
            return None
        phrase = generate(self.corpus.word_pool(), self.config.word_count, rng=self._rng)
        logger.debug("Replying with %d characters", len(phrase))
        return self.output.start(lambda: self.typist.emit(phrase))

    async def _send_text(self, text: str) -> None:
        connection = self.connection
        if connection is None:
            return
        await connection.send(EventName.CHAT_UPDATE.value, FullReplace(text).to_payload())
