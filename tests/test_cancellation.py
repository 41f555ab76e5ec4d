"""Tests for the cancellation token."""

import asyncio

import pytest

from subtitle_translator.cancellation import CancellationController, CancellationToken
from subtitle_translator.errors import UserCancelled


async def value_after(delay, value):
    await asyncio.sleep(delay)
    return value


class TestGuard:

    def test_returns_result(self):
        token = CancellationToken()
        assert asyncio.run(token.guard(value_after(0, "ok"))) == "ok"

    def test_propagates_errors(self):
        async def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            asyncio.run(CancellationToken().guard(boom()))

    def test_already_cancelled(self):
        controller = CancellationController()
        controller.cancel()
        coro = value_after(0, "ok")

        with pytest.raises(UserCancelled):
            asyncio.run(controller.token.guard(coro))
        # the coroutine was closed, never started
        assert coro.cr_frame is None

    def test_cancels_in_flight_call(self):
        controller = CancellationController()
        started = []

        async def slow():
            started.append(True)
            await asyncio.sleep(30)
            return "late"

        async def scenario():
            task = asyncio.create_task(controller.token.guard(slow()))
            await asyncio.sleep(0.01)
            controller.cancel()
            return await task

        with pytest.raises(UserCancelled):
            asyncio.run(asyncio.wait_for(scenario(), timeout=5))
        assert started == [True]


class TestSleep:

    def test_sleep_completes(self):
        asyncio.run(CancellationToken().sleep(0.01))

    def test_sleep_wakes_on_cancel(self):
        controller = CancellationController()

        async def scenario():
            asyncio.get_running_loop().call_later(0.01, controller.cancel)
            await controller.token.sleep(30)

        with pytest.raises(UserCancelled):
            asyncio.run(asyncio.wait_for(scenario(), timeout=5))

    def test_zero_delay(self):
        asyncio.run(CancellationToken().sleep(0))


class TestController:

    def test_cancel_is_idempotent(self):
        controller = CancellationController()
        assert not controller.cancelled
        controller.cancel()
        controller.cancel()
        assert controller.cancelled
        with pytest.raises(UserCancelled):
            controller.token.raise_if_cancelled()

    def test_shares_external_token(self):
        token = CancellationToken()
        CancellationController(token).cancel()
        assert token.cancelled
