"""Tests for the local warning countdown."""

from __future__ import annotations

import asyncio

import pytest

from apps.bookings.application.countdown import CountdownTimer
from shared.tests.fakes import instant_sleep


@pytest.mark.asyncio
async def test_ticks_down_to_zero_then_stops():
    ticks = []
    timer = CountdownTimer(5, ticks.append, sleep=instant_sleep).start()

    await timer.wait()

    assert ticks == [4, 3, 2, 1, 0]
    assert timer.finished
    assert not timer.running
    assert timer.tick() == 0
    assert ticks == [4, 3, 2, 1, 0]


@pytest.mark.asyncio
async def test_zero_seconds_never_ticks():
    ticks = []
    timer = CountdownTimer(0, ticks.append, sleep=instant_sleep).start()

    await timer.wait()

    assert ticks == []


@pytest.mark.asyncio
async def test_cancel_stops_ticking():
    ticks = []
    timer = CountdownTimer(30, ticks.append, interval=60).start()
    await asyncio.sleep(0)

    timer.cancel()
    await timer.wait()

    assert ticks == []
    assert not timer.running
    assert timer.remaining == 30


@pytest.mark.asyncio
async def test_context_manager_cancels_on_exit():
    ticks = []
    async with CountdownTimer(30, ticks.append, interval=60) as timer:
        assert timer.running

    assert not timer.running


@pytest.mark.asyncio
async def test_failing_tick_handler_does_not_stop_the_countdown():
    seen = []

    def render(remaining):
        seen.append(remaining)
        raise RuntimeError("render failed")

    timer = CountdownTimer(3, render, sleep=instant_sleep).start()
    await timer.wait()

    assert seen == [2, 1, 0]


def test_negative_start():
    with pytest.raises(ValueError):
        CountdownTimer(-1, print)


@pytest.mark.asyncio
async def test_start_twice():
    timer = CountdownTimer(1, print, sleep=instant_sleep).start()

    with pytest.raises(RuntimeError):
        timer.start()
    await timer.wait()
