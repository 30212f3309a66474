import asyncio

import pytest

from clanker.errors import ConfigError, JoinExhausted
from clanker.join import JoinAttempt, JoinNegotiator, default_join_attempts


class SendLog:
    def __init__(self):
        self.sent = []

    async def __call__(self, event, payload):
        self.sent.append((event, payload))


def test_default_shapes_for_numeric_room():
    shapes = [(a.event, a.payload("734117")) for a in default_join_attempts()]
    assert shapes == [
        ("join room", {"roomId": "734117"}),
        ("join room", {"roomId": 734117}),
        ("join room", "734117"),
        ("join room", {"roomCode": "734117"}),
        ("join room code", {"code": "734117"}),
    ]


def test_numeric_shape_keeps_non_digit_room_as_string():
    attempt = JoinAttempt("join room", "roomId", numeric=True)
    assert attempt.payload("lobby-9") == {"roomId": "lobby-9"}


def test_describe_names_event_and_target():
    assert [a.describe() for a in default_join_attempts()] == [
        "join room -> roomId",
        "join room -> roomId (numeric)",
        "join room -> <bare>",
        "join room -> roomCode",
        "join room code -> code",
    ]


def test_attempt_from_config_entry():
    assert JoinAttempt.from_dict({"event": "join room code", "field": "code"}) == JoinAttempt("join room code", "code")
    assert JoinAttempt.from_dict({"field": None}).payload("5") == "5"
    with pytest.raises(ConfigError):
        JoinAttempt.from_dict({"event": ""})
    with pytest.raises(ConfigError):
        JoinAttempt.from_dict({"event": "join room", "field": 3})


@pytest.mark.asyncio
async def test_unacknowledged_shapes_are_each_sent_once_then_stop():
    send = SendLog()
    attempts = default_join_attempts()[:3]
    negotiator = JoinNegotiator("734117", attempts, send, retry_interval=0.05)

    loop = asyncio.get_running_loop()
    started = loop.time()
    with pytest.raises(JoinExhausted) as excinfo:
        await negotiator.run()
    elapsed = loop.time() - started

    assert excinfo.value.attempts == 3
    assert len(send.sent) == 3
    assert len({repr(s) for s in send.sent}) == 3
    assert elapsed >= 0.05 * 3 * 0.9
    assert negotiator.finished

    # nothing more goes out afterwards
    await asyncio.sleep(0.1)
    assert len(send.sent) == 3


@pytest.mark.asyncio
async def test_confirmation_stops_further_attempts():
    send = SendLog()
    negotiator = JoinNegotiator("1", default_join_attempts(), send, retry_interval=0.05)
    task = asyncio.create_task(negotiator.run())

    while len(send.sent) < 2:
        await asyncio.sleep(0.01)
    assert negotiator.confirm() is True
    assert await task == 2

    await asyncio.sleep(0.1)
    assert len(send.sent) == 2
    assert negotiator.confirm() is False


@pytest.mark.asyncio
async def test_late_confirmation_after_exhaustion_does_not_restart():
    send = SendLog()
    negotiator = JoinNegotiator("1", default_join_attempts()[:1], send, retry_interval=0.01)
    with pytest.raises(JoinExhausted):
        await negotiator.run()

    assert negotiator.confirm() is True
    await asyncio.sleep(0.05)
    assert len(send.sent) == 1
    assert negotiator.stats() == {"attempts": 1, "sent": 1, "confirmed": True, "finished": True}


@pytest.mark.asyncio
async def test_attempt_callback_reports_index():
    seen = []
    negotiator = JoinNegotiator(
        "1", default_join_attempts()[:2], SendLog(), retry_interval=0.01,
        on_attempt=lambda index, attempt: seen.append((index, attempt.field)),
    )
    with pytest.raises(JoinExhausted):
        await negotiator.run()
    assert seen == [(0, "roomId"), (1, "roomId")]
