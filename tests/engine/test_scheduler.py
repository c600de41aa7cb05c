import asyncio

import pytest

from defense_in_depth.engine.scheduler import AsyncioScheduler, VirtualScheduler


def test_fires_in_time_order(scheduler):
    fired = []
    scheduler.call_later(300, lambda: fired.append("c"))
    scheduler.call_later(100, lambda: fired.append("a"))
    scheduler.call_later(200, lambda: fired.append("b"))
    assert scheduler.advance(250) == 2
    assert fired == ["a", "b"]
    assert scheduler.now() == 250
    scheduler.advance(50)
    assert fired == ["a", "b", "c"]


def test_same_due_time_keeps_insertion_order(scheduler):
    fired = []
    scheduler.call_later(100, lambda: fired.append(1))
    scheduler.call_later(100, lambda: fired.append(2))
    scheduler.advance(100)
    assert fired == [1, 2]


def test_cancelled_callbacks_do_not_fire(scheduler):
    fired = []
    handle = scheduler.call_later(100, lambda: fired.append(1))
    handle.cancel()
    handle.cancel()
    assert handle.cancelled
    assert scheduler.pending == 0
    assert scheduler.advance(500) == 0
    assert fired == []


def test_chained_callbacks_fire_within_window(scheduler):
    fired = []

    def step():
        fired.append(scheduler.now())
        if len(fired) < 3:
            scheduler.call_later(1000, step)

    scheduler.call_later(1000, step)
    scheduler.advance(5000)
    assert fired == [1000, 2000, 3000]


def test_fractional_intervals_accumulate(scheduler):
    fired = []

    def step():
        fired.append(1)
        scheduler.call_later(2000 / 1.5, step)

    scheduler.call_later(2000 / 1.5, step)
    for _ in range(3):
        scheduler.advance(2000 / 1.5)
    assert len(fired) == 3


def test_negative_values_rejected(scheduler):
    with pytest.raises(ValueError):
        scheduler.advance(-1)
    with pytest.raises(ValueError):
        scheduler.call_later(-1, lambda: None)


def test_asyncio_scheduler_runs_on_loop():
    fired = []

    async def run():
        scheduler = AsyncioScheduler()
        scheduler.call_later(10, lambda: fired.append("tick"))
        cancelled = scheduler.call_later(10, lambda: fired.append("cancelled"))
        cancelled.cancel()
        await asyncio.sleep(0.05)
        return cancelled

    handle = asyncio.run(run())
    assert fired == ["tick"]
    assert handle.cancelled


def test_virtual_scheduler_starts_at_zero():
    assert VirtualScheduler().now() == 0
