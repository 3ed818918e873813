"""Tests for dwatcher_core.debounce."""

import asyncio

import pytest

from dwatcher_core.debounce import DebounceController
from dwatcher_core.models import ChangeEvent


def _event(path="src/app.js"):
    return ChangeEvent(path=path, event_type="modified")


@pytest.fixture
def fired():
    """Times at which the debounced action ran."""
    return []


@pytest.fixture
def controller(fake_loop, fired):
    return DebounceController(fake_loop, 100, lambda: fired.append(fake_loop.time()))


def test_single_event_fires_after_quiet_period(controller, fake_loop, fired):
    assert controller.on_qualifying_event(_event())
    assert controller.pending

    fake_loop.advance(0.099)
    assert fired == []

    fake_loop.advance(0.002)
    assert fired == [pytest.approx(0.1)]
    assert not controller.pending


def test_burst_coalesces_into_one_restart(controller, fake_loop, fired):
    """Events at 0, 50 and 90 ms with a 100 ms debounce fire once, at 190 ms."""
    controller.on_qualifying_event(_event())
    fake_loop.advance(0.05)
    controller.on_qualifying_event(_event())
    fake_loop.advance(0.04)
    controller.on_qualifying_event(_event())

    fake_loop.advance(1.0)

    assert fired == [pytest.approx(0.19)]


@pytest.mark.parametrize(
    "gaps",
    [
        [0.01] * 20,
        [0.099, 0.001, 0.05, 0.099],
        [0.0, 0.0, 0.0],
    ],
)
def test_gaps_below_debounce_fire_once_from_last_event(controller, fake_loop, fired, gaps):
    controller.on_qualifying_event(_event())
    for gap in gaps:
        fake_loop.advance(gap)
        controller.on_qualifying_event(_event())
    last = fake_loop.time()

    fake_loop.advance(1.0)

    assert fired == [pytest.approx(last + 0.1)]


def test_events_separated_by_more_than_debounce_fire_twice(controller, fake_loop, fired):
    controller.on_qualifying_event(_event())
    fake_loop.advance(0.15)
    controller.on_qualifying_event(_event())
    fake_loop.advance(0.15)

    assert fired == [pytest.approx(0.1), pytest.approx(0.25)]


def test_only_one_timer_in_flight(controller, fake_loop):
    for _ in range(5):
        controller.on_qualifying_event(_event())

    live = [t for t in fake_loop.timers if not t.cancelled]
    assert len(live) == 1


def test_suppressed_events_are_dropped(fake_loop, fired):
    restarting = True
    controller = DebounceController(
        fake_loop, 100, lambda: fired.append(fake_loop.time()), is_suppressed=lambda: restarting
    )

    assert controller.on_qualifying_event(_event()) is False
    assert not controller.pending

    fake_loop.advance(1.0)
    assert fired == []

    restarting = False
    assert controller.on_qualifying_event(_event()) is True
    fake_loop.advance(1.0)
    assert len(fired) == 1


def test_cancel_drops_pending_restart(controller, fake_loop, fired):
    controller.on_qualifying_event(_event())
    controller.cancel()
    controller.cancel()

    fake_loop.advance(1.0)

    assert fired == []
    assert not controller.pending


def test_last_event_tracks_most_recent(controller):
    controller.on_qualifying_event(_event("a.js"))
    controller.on_qualifying_event(_event("b.js"))
    assert controller.last_event.path == "b.js"


@pytest.mark.asyncio
async def test_with_real_event_loop():
    """Works against a real asyncio loop."""
    loop = asyncio.get_running_loop()
    done = asyncio.Event()
    calls = []

    def action():
        calls.append(loop.time())
        done.set()

    controller = DebounceController(loop, 20, action)
    for _ in range(3):
        controller.on_qualifying_event(_event())
        await asyncio.sleep(0.005)

    await asyncio.wait_for(done.wait(), timeout=2.0)
    await asyncio.sleep(0.05)

    assert len(calls) == 1
