import asyncio
import random

import pytest

from clanker.typist import OutputSlot, TypingScheduler


class Recorder:
    def __init__(self):
        self.frames = []
        self.sleeps = []

    async def send(self, text):
        self.frames.append(text)

    async def sleep(self, seconds):
        self.sleeps.append(seconds)


@pytest.mark.asyncio
async def test_emit_sends_growing_prefixes_with_paced_delays():
    rec = Recorder()
    typist = TypingScheduler(rec.send, base_delay_ms=28, jitter_ms=40, sleep=rec.sleep, rng=random.Random(1))

    frames = await typist.emit("héllo")

    assert frames == 5
    assert rec.frames == ["h", "hé", "hél", "héll", "héllo"]
    assert len(rec.sleeps) == 5
    assert all(0.028 <= s <= 0.068 for s in rec.sleeps)


@pytest.mark.asyncio
async def test_emit_empty_text_sends_nothing():
    rec = Recorder()
    typist = TypingScheduler(rec.send, sleep=rec.sleep)
    assert await typist.emit("") == 0
    assert rec.frames == []


@pytest.mark.asyncio
async def test_base_delay_override():
    rec = Recorder()
    typist = TypingScheduler(rec.send, base_delay_ms=28, jitter_ms=0, sleep=rec.sleep)
    await typist.emit("ab", base_delay_ms=100)
    assert rec.sleeps == [pytest.approx(0.1), pytest.approx(0.1)]


@pytest.mark.asyncio
async def test_slot_skips_start_while_busy():
    slot = OutputSlot()
    gate = asyncio.Event()
    runs = []

    async def job(name):
        runs.append(name)
        await gate.wait()

    first = slot.start(lambda: job("first"))
    assert first is not None
    await asyncio.sleep(0)
    assert slot.busy

    assert slot.start(lambda: job("second")) is None

    gate.set()
    await slot.wait()
    assert not slot.busy
    assert runs == ["first"]

    again = slot.start(lambda: job("third"))
    await again
    assert runs == ["first", "third"]


@pytest.mark.asyncio
async def test_slot_releases_after_failure():
    slot = OutputSlot()

    async def boom():
        raise RuntimeError("send failed")

    task = slot.start(boom)
    await asyncio.gather(task, return_exceptions=True)
    assert not slot.busy
    assert slot.start(lambda: asyncio.sleep(0)) is not None
    await slot.wait()


@pytest.mark.asyncio
async def test_slot_cancel_abandons_run():
    slot = OutputSlot()
    task = slot.start(lambda: asyncio.sleep(10))
    await asyncio.sleep(0)
    slot.cancel()
    await asyncio.gather(task, return_exceptions=True)
    assert task.cancelled()
    assert not slot.busy
