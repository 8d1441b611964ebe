from __future__ import annotations

from datetime import UTC, datetime, timedelta

from crewfit.core.clock import ManualClock


def test_manual_clock_starts_at_fixed_moment() -> None:
    assert ManualClock().now() == datetime(2024, 6, 3, 8, 0, tzinfo=UTC)


def test_callbacks_fire_in_due_order() -> None:
    clock = ManualClock()
    fired: list[str] = []
    clock.call_later(300, lambda: fired.append("b"))
    clock.call_later(100, lambda: fired.append("a"))
    clock.call_later(100, lambda: fired.append("a2"))

    clock.advance(99)
    assert fired == []

    clock.advance(1000)
    assert fired == ["a", "a2", "b"]


def test_callback_sees_its_due_time() -> None:
    clock = ManualClock()
    start = clock.now()
    seen: list[datetime] = []
    clock.call_later(250, lambda: seen.append(clock.now()))

    clock.advance(1000)

    assert seen == [start + timedelta(milliseconds=250)]
    assert clock.now() == start + timedelta(seconds=1)


def test_cancelled_callbacks_do_not_fire() -> None:
    clock = ManualClock()
    fired: list[int] = []
    handle = clock.call_later(10, lambda: fired.append(1))
    handle.cancel()

    clock.advance(100)

    assert fired == []
    assert clock.pending == 0


def test_rescheduling_inside_window_fires_again() -> None:
    clock = ManualClock()
    ticks: list[int] = []

    def tick() -> None:
        ticks.append(len(ticks))
        clock.call_later(1000, tick)

    clock.call_later(1000, tick)
    clock.advance(3500)

    assert ticks == [0, 1, 2]
    assert clock.pending == 1
