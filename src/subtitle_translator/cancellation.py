"""Cooperative cancellation shared by every model call of a run."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from .errors import UserCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """
    A one-shot signal observed by model calls and backoff sleeps.

    Once triggered it stays triggered. The underlying ``asyncio.Event`` is
    created lazily so a token can be built outside a running loop.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event: Optional[asyncio.Event] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _get_event(self) -> asyncio.Event:
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        return self._event

    def _trigger(self) -> None:
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise UserCancelled()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the token fires first.

        Raises:
            UserCancelled: If the token is, or becomes, triggered; the
                pending call is cancelled before raising
        """
        if self._cancelled:
            # 关闭未启动的协程，避免 "never awaited" 警告
            close = getattr(awaitable, "close", None)
            if close is not None:
                close()
            raise UserCancelled()

        call = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._get_event().wait())
        try:
            await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not call.done():
                call.cancel()
                # Collect the cancelled call so its outcome is not left unretrieved
                await asyncio.gather(call, return_exceptions=True)

        if call.cancelled():
            raise UserCancelled()
        return call.result()

    async def sleep(self, delay: float) -> None:
        """
        Sleep for ``delay`` seconds, waking early on cancellation.

        Raises:
            UserCancelled: If the token fires before or during the sleep
        """
        self.raise_if_cancelled()
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._get_event().wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise UserCancelled()


class CancellationController:
    """Owns the token of one translation run and exposes ``cancel()``."""

    def __init__(self, token: Optional[CancellationToken] = None) -> None:
        self.token = token or CancellationToken()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def cancel(self) -> None:
        if not self.token.cancelled:
            logger.info("Cancellation requested")
        self.token._trigger()
