"""Async cancellation primitives used by the generation stages."""

from __future__ import annotations

import asyncio
import signal
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class CancellationToken:
    """Cooperative cancellation token backed by ``asyncio.Event``."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise asyncio.CancelledError("operation cancelled")


@contextmanager
def cancel_on_interrupt(token: CancellationToken) -> Iterator[CancellationToken]:
    """
    Route SIGINT to ``token.cancel`` for the duration of the block.

    Must be entered from inside a running event loop. On platforms where the
    loop cannot install signal handlers the default KeyboardInterrupt
    behaviour is left untouched.
    """

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        yield token
        return
    try:
        yield token
    finally:
        loop.remove_signal_handler(signal.SIGINT)


__all__ = [
    "CancellationToken",
    "cancel_on_interrupt",
]
