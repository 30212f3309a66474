from __future__ import annotations
import os
import tempfile
import uuid
from pathlib import Path

from shared.log import get_logger
from shared.utils import ms

logger = get_logger(__name__)


def generate_guest_id() -> str:
    """Random token plus a millisecond timestamp, e.g. ``k3j9x0q1a2b-1718000000000``."""
    return f"{uuid.uuid4().hex[:11]}-{ms()}"


def load_guest_id(path: Path) -> str | None:
    try:
        if path.exists():
            value = path.read_text(encoding="utf-8").strip()
            if value:
                return value
    except OSError as e:
        logger.warning("Cannot read guest id from %s: %s", path, e)
    return None


def persist_guest_id_atomic(path: Path, guest_id: str) -> bool:
    """Write the guest id via temp file + rename so a crash never leaves a torn file."""
    dir_name = path.parent if str(path.parent) else Path(".")
    try:
        dir_name.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".guest.", suffix=".tmp", dir=dir_name)
    except OSError as e:
        logger.warning("Cannot persist guest id to %s: %s", path, e)
        return False
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(guest_id)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_path, path)
        return True
    except OSError as e:
        logger.warning("Cannot persist guest id to %s: %s", path, e)
        return False
    finally:
        # If replace failed, ensure temp is cleaned up
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass


def load_or_create_guest_id(path: Path) -> str:
    """
    Stable identity token so the room service recognises the bot across restarts.

    Persisting is best-effort; the generated id is returned even if it could
    not be written.
    """
    existing = load_guest_id(path)
    if existing:
        return existing
    guest_id = generate_guest_id()
    if persist_guest_id_atomic(path, guest_id):
        logger.info("Created new guest id in %s", path)
    return guest_id
