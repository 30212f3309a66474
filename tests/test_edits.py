import pytest

from clanker.edits import Delete, FullReplace, Insert, Replace, apply_edit, parse_diff


def test_full_replace_ignores_prior_text():
    for prior in ("", "something", "x" * 50):
        assert apply_edit(prior, FullReplace("new")) == "new"


def test_insert_and_append():
    assert apply_edit("held", Insert(3, "l")) == "helld"
    assert apply_edit("ab", Insert(None, "c")) == "abc"


def test_insert_clamps_index():
    assert apply_edit("ab", Insert(99, "x")) == "abx"
    assert apply_edit("ab", Insert(-5, "x")) == "xab"


def test_delete_clamps_index_and_count():
    assert apply_edit("abcdef", Delete(1, 2)) == "adef"
    assert apply_edit("abc", Delete(1, 99)) == "a"
    assert apply_edit("abc", Delete(-3, 1)) == "bc"
    assert apply_edit("abc", Delete(10, 1)) == "abc"
    assert apply_edit("abc", Delete(0, -2)) == "abc"


@pytest.mark.parametrize("index,count", [(0, 0), (0, 3), (2, 2), (5, 1), (6, 0)])
def test_delete_then_reinsert_restores_text(index, count):
    original = "jumble"
    removed = original[index:index + count]
    deleted = apply_edit(original, Delete(index, count))
    assert apply_edit(deleted, Insert(index, removed)) == original


def test_replace_removes_one_extra_character():
    # "EY" replaces three characters starting at index 1
    assert apply_edit("hello", Replace(1, "EY")) == "hEYo"
    assert apply_edit("abc", Replace(0, "")) == "bc"
    assert apply_edit("abc", Replace(50, "z")) == "abcz"


def test_full_replace_payload_shape():
    assert FullReplace("hi").to_payload() == {"diff": {"type": "full-replace", "text": "hi"}}


def test_parse_diff_variants_and_defaults():
    assert parse_diff({"type": "full-replace"}) == FullReplace("")
    assert parse_diff({"type": "add", "text": "x"}) == Insert(None, "x")
    assert parse_diff({"type": "add", "index": 2, "text": "x"}) == Insert(2, "x")
    assert parse_diff({"type": "delete"}) == Delete(0, 0)
    assert parse_diff({"type": "delete", "index": "3", "count": 2.0}) == Delete(3, 2)
    assert parse_diff({"type": "replace", "text": "y"}) == Replace(0, "y")


def test_parse_diff_rejects_garbage():
    assert parse_diff(None) is None
    assert parse_diff("full-replace") is None
    assert parse_diff({"type": "rotate"}) is None
    # malformed numbers fall back to defaults
    assert parse_diff({"type": "delete", "index": "abc", "count": True}) == Delete(0, 0)
