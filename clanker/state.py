from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Hashable, Iterable, List, Mapping, Optional

from clanker.edits import EditOperation, apply_edit
from shared.log import get_logger
from shared.utils import short_id

logger = get_logger(__name__)

# Remote-assigned participant id; a string or a number depending on the server
Identity = Hashable

DEFAULT_DISPLAY_NAME = "Anonymous"
MAX_RECENT = 200


def placeholder_name(identity: Identity) -> str:
    return f"User-{short_id(identity)}"


@dataclass
class UserEntry:
    identity: Identity
    display_name: str
    text: str = ""


@dataclass
class Roster:
    """Occupants currently believed present, keyed by identity."""
    entries: Dict[Identity, UserEntry] = field(default_factory=dict)

    def snapshot(self, users: Iterable[Mapping[str, Any]], text_by_identity: Optional[Mapping[Any, str]] = None) -> None:
        """Replace the roster with the occupant list from a room confirmation."""
        texts = text_by_identity or {}
        self.entries.clear()
        for user in users:
            if not isinstance(user, Mapping):
                continue
            identity = user.get("id")
            if identity is None:
                continue
            text = texts.get(identity)
            if text is None:
                # JSON object keys are always strings
                text = texts.get(str(identity), "")
            self.entries[identity] = UserEntry(
                identity,
                user.get("username") or DEFAULT_DISPLAY_NAME,
                text if isinstance(text, str) else "",
            )

    def on_join(self, identity: Identity, display_name: Optional[str]) -> None:
        self.entries[identity] = UserEntry(identity, display_name or DEFAULT_DISPLAY_NAME)

    def on_leave(self, identity: Identity) -> None:
        self.entries.pop(identity, None)

    def apply_edit(self, identity: Identity, op: EditOperation) -> UserEntry:
        """
        Apply ``op`` to the identity's text.

        Join/leave delivery is not reliable, so an edit for an unknown identity
        creates a placeholder entry instead of being dropped.
        """
        entry = self.entries.get(identity)
        if entry is None:
            entry = UserEntry(identity, placeholder_name(identity))
            self.entries[identity] = entry
            logger.debug("Created placeholder entry %s", entry.display_name, extra={"user_id": identity})
        entry.text = apply_edit(entry.text, op)
        return entry

    def get(self, identity: Identity) -> Optional[UserEntry]:
        return self.entries.get(identity)

    def text_of(self, identity: Identity) -> Optional[str]:
        entry = self.entries.get(identity)
        return entry.text if entry else None

    def identities(self) -> List[Identity]:
        return list(self.entries.keys())

    def __contains__(self, identity: object) -> bool:
        return identity in self.entries

    def __len__(self) -> int:
        return len(self.entries)


class RecentCorpus:
    """Most recent finalized messages, oldest first, FIFO-evicted."""

    def __init__(self, max_size: int = MAX_RECENT) -> None:
        self.max_size = max_size
        self._messages: Deque[str] = deque(maxlen=max_size)

    def record(self, message: str) -> bool:
        """Store the trimmed message. Blank messages are ignored and return False."""
        trimmed = message.strip() if isinstance(message, str) else ""
        if not trimmed:
            return False
        self._messages.append(trimmed)
        return True

    def word_pool(self) -> List[str]:
        return [word for message in self._messages for word in message.split()]

    def messages(self) -> List[str]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
