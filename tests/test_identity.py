from pathlib import Path

from clanker.identity import generate_guest_id, load_or_create_guest_id


def test_creates_and_persists_guest_id(tmp_path: Path):
    path = tmp_path / "state" / ".guest_id"
    first = load_or_create_guest_id(path)

    assert path.read_text(encoding="utf-8") == first
    assert load_or_create_guest_id(path) == first
    assert [p.name for p in path.parent.iterdir()] == [".guest_id"]


def test_existing_file_is_trimmed(tmp_path: Path):
    path = tmp_path / ".guest_id"
    path.write_text("  saved-id-123\n", encoding="utf-8")
    assert load_or_create_guest_id(path) == "saved-id-123"


def test_blank_file_is_replaced(tmp_path: Path):
    path = tmp_path / ".guest_id"
    path.write_text("\n", encoding="utf-8")
    guest_id = load_or_create_guest_id(path)
    assert guest_id
    assert path.read_text(encoding="utf-8") == guest_id


def test_generated_ids_are_unique_and_timestamped():
    a, b = generate_guest_id(), generate_guest_id()
    assert a != b
    token, stamp = a.split("-")
    assert len(token) == 11
    assert stamp.isdigit()
