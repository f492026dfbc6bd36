from __future__ import annotations

import asyncio

from services.debounce import Debouncer, SearchSequencer


def test_only_last_call_runs_after_quiet_period():
    calls = []

    async def run():
        debouncer = Debouncer(0.2)
        for term in ("d", "do", "docker"):
            async def callback(term=term):
                calls.append(term)
            debouncer.call("chat", callback)
            await asyncio.sleep(0.01)
        assert calls == []
        await asyncio.sleep(0.4)
        assert not debouncer.pending("chat")

    asyncio.run(run())
    assert calls == ["docker"]


def test_keys_are_independent():
    calls = []

    async def run():
        debouncer = Debouncer(0.02)

        async def first():
            calls.append(1)

        async def second():
            calls.append(2)

        debouncer.call(1, first)
        debouncer.call(2, second)
        await asyncio.sleep(0.06)

    asyncio.run(run())
    assert sorted(calls) == [1, 2]


def test_cancel_drops_pending_call():
    calls = []

    async def run():
        debouncer = Debouncer(0.02)

        async def callback():
            calls.append("x")

        debouncer.call("chat", callback)
        assert debouncer.pending("chat")
        assert debouncer.cancel("chat") is True
        assert debouncer.cancel("chat") is False
        await asyncio.sleep(0.05)

    asyncio.run(run())
    assert calls == []


def test_callback_errors_do_not_escape():
    async def run():
        debouncer = Debouncer(0)

        async def callback():
            raise RuntimeError("boom")

        task = debouncer.call("chat", callback)
        await task
        return task

    task = asyncio.run(run())
    assert task.exception() is None


def test_sequencer_accepts_only_latest_response():
    sequencer = SearchSequencer()
    first = sequencer.issue("chat")
    second = sequencer.issue("chat")
    other = sequencer.issue("other")

    # Ответ на первый запрос пришёл позже второго: он устарел
    assert sequencer.is_current("chat", second)
    assert not sequencer.is_current("chat", first)
    assert sequencer.is_current("other", other)
    assert not sequencer.is_current("unknown", 1)
