import logging

from shared.log import ColoredFormatter, GenericFormatter


def make_record(msg="Connect failed: %s", args=("refused",), **extra):
    record = logging.LogRecord("clanker.session", logging.WARNING, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_context_prefix_from_extra_fields():
    record = make_record(host="https://a.example", room_id="734117", user_id="abcdefghijkl", event="join room")
    line = GenericFormatter("%(message)s").format(record)
    assert line == "[host=https://a.example room=734117 user=abcdefgh event=join room] Connect failed: refused"


def test_no_context_leaves_message_alone():
    assert GenericFormatter("%(message)s").format(make_record()) == "Connect failed: refused"


def test_formatting_does_not_leak_between_handlers():
    record = make_record(host="https://a.example")
    colored = ColoredFormatter("%(levelname)s %(message)s")
    plain = GenericFormatter("%(levelname)s %(message)s")

    first = colored.format(record)
    second = plain.format(record)

    assert "\033[33m" in first
    assert first.endswith("[host=https://a.example] Connect failed: refused")
    assert second == "WARNING [host=https://a.example] Connect failed: refused"
    assert record.levelname == "WARNING"
    assert record.msg == "Connect failed: %s"
