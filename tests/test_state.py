from clanker.edits import FullReplace, Insert
from clanker.state import MAX_RECENT, RecentCorpus, Roster


def test_snapshot_replaces_roster_and_defaults_text():
    roster = Roster()
    roster.on_join("stale", "Old")
    users = [{"id": "u1", "username": "Ann"}, {"id": 7}, {"id": "u3", "username": "Cy"}]
    roster.snapshot(users, {"u1": "draft", "7": "numeric key"})

    assert len(roster) == len(users)
    assert "stale" not in roster
    assert roster.text_of("u1") == "draft"
    assert roster.text_of(7) == "numeric key"
    assert roster.get(7).display_name == "Anonymous"
    assert roster.text_of("u3") == ""


def test_join_overwrites_and_leave_is_idempotent():
    roster = Roster()
    roster.on_join("u1", "Ann")
    roster.apply_edit("u1", FullReplace("typing"))
    roster.on_join("u1", "Ann again")
    assert roster.get("u1").display_name == "Ann again"
    assert roster.text_of("u1") == ""

    roster.on_leave("u1")
    roster.on_leave("u1")
    roster.on_leave("never-here")
    assert len(roster) == 0


def test_edit_for_unknown_identity_creates_placeholder():
    roster = Roster()
    entry = roster.apply_edit("u1abcdef", Insert(0, "hi"))
    assert entry.text == "hi"
    assert entry.display_name == "User-u1ab"
    assert roster.identities() == ["u1abcdef"]


def test_edits_apply_in_order():
    roster = Roster()
    roster.on_join(42, "Num")
    for op in (Insert(None, "he"), Insert(None, "llo"), Insert(0, ">")):
        roster.apply_edit(42, op)
    assert roster.text_of(42) == ">hello"


def test_corpus_ignores_blank_and_trims():
    corpus = RecentCorpus()
    assert corpus.record("   ") is False
    assert corpus.record("") is False
    assert corpus.record("  hi there \n") is True
    assert corpus.messages() == ["hi there"]


def test_corpus_evicts_oldest_first():
    corpus = RecentCorpus()
    for i in range(MAX_RECENT + 1):
        corpus.record(f"message {i}")
    assert len(corpus) == MAX_RECENT
    messages = corpus.messages()
    assert "message 0" not in messages
    assert messages == [f"message {i}" for i in range(1, MAX_RECENT + 1)]


def test_word_pool_flattens_messages():
    corpus = RecentCorpus(max_size=2)
    corpus.record("one two")
    corpus.record("three\tfour  five")
    corpus.record("six")
    assert corpus.word_pool() == ["three", "four", "five", "six"]
