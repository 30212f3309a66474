"""
Edit operations applied to a participant's in-progress text.

Every operation is a small frozen dataclass with an ``apply(current)`` method
returning the new text. Indices coming off the wire are untrusted, so they are
clamped instead of validated: a bad edit degrades the mirror, it never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from clanker.events import DiffType
from shared.log import get_logger
from shared.utils import as_int, clamp

logger = get_logger(__name__)


@dataclass(frozen=True)
class FullReplace:
    text: str

    def apply(self, current: str) -> str:
        return self.text

    def to_payload(self) -> Dict[str, Any]:
        """Outbound `chat update` body."""
        return {"diff": {"type": DiffType.FULL_REPLACE.value, "text": self.text}}


@dataclass(frozen=True)
class Insert:
    index: Optional[int]  # None appends
    text: str

    def apply(self, current: str) -> str:
        idx = len(current) if self.index is None else clamp(self.index, 0, len(current))
        return current[:idx] + self.text + current[idx:]


@dataclass(frozen=True)
class Delete:
    index: int
    count: int

    def apply(self, current: str) -> str:
        idx = clamp(self.index, 0, len(current))
        cnt = clamp(self.count, 0, len(current) - idx)
        return current[:idx] + current[idx + cnt:]


@dataclass(frozen=True)
class Replace:
    """
    Overwrite starting at ``index``.

    The removed span is one character longer than the inserted text. That is
    the room service's convention and other clients render against it, so it
    is kept as-is.
    """
    index: int
    text: str

    def apply(self, current: str) -> str:
        idx = clamp(self.index, 0, len(current))
        return current[:idx] + self.text + current[idx + len(self.text) + 1:]


EditOperation = Union[FullReplace, Insert, Delete, Replace]


def apply_edit(current: str, op: EditOperation) -> str:
    return op.apply(current or "")


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def parse_diff(diff: Any) -> Optional[EditOperation]:
    """
    Build an EditOperation from an inbound ``diff`` mapping.

    Returns None for anything that is not a recognised diff so the caller can
    drop it.
    """
    if not isinstance(diff, Mapping):
        logger.debug("Ignoring non-mapping diff: %r", diff)
        return None

    kind = diff.get("type")
    text = _text(diff.get("text"))

    if kind == DiffType.FULL_REPLACE.value:
        return FullReplace(text)
    if kind == DiffType.ADD.value:
        return Insert(as_int(diff.get("index"), None), text)
    if kind == DiffType.DELETE.value:
        return Delete(as_int(diff.get("index"), 0), as_int(diff.get("count"), 0))
    if kind == DiffType.REPLACE.value:
        return Replace(as_int(diff.get("index"), 0), text)

    logger.debug("Ignoring unknown diff type: %r", kind)
    return None
