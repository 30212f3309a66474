from __future__ import annotations

from enum import Enum
from typing import Set

class EventName(str, Enum):
    """Socket.IO event names spoken by the room service."""

    # Transport lifecycle (emitted locally by the Socket.IO client)
    CONNECT = "connect"
    CONNECT_ERROR = "connect_error"
    DISCONNECT = "disconnect"

    # Server -> bot
    SERVER_ERROR = "error"
    NOTICE = "notice"
    ROOM_JOINED = "room joined"
    USER_JOINED = "user joined"
    USER_LEFT = "user left"
    CHAT_UPDATE = "chat update"          # inbound editUpdate, also outbound typing

    # Bot -> server
    JOIN_LOBBY = "join lobby"
    JOIN_ROOM = "join room"
    JOIN_ROOM_CODE = "join room code"


class DiffType(str, Enum):
    """`diff.type` values carried by chat update payloads."""
    FULL_REPLACE = "full-replace"
    ADD = "add"
    DELETE = "delete"
    REPLACE = "replace"


# Events accepted as the first element of a join-request shape
JOIN_EVENTS: Set[EventName] = {
    EventName.JOIN_ROOM,
    EventName.JOIN_ROOM_CODE,
}
