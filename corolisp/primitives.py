"""Suspension primitives.

These are the only operations that touch host asynchronous facilities. Each
follows the coroutine calling convention (the continuation is the last
argument) and wraps its resumption in a context switch, so the continuation
runs with the ambient context captured when it suspended.

The host here is an asyncio event loop for timers and a callback-based
Stream for incoming data.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Optional

from corolisp import ContinuationFn, LispValue
from corolisp.ambient import context_switch
from corolisp.config import poll_interval
from corolisp.runtime_context import get_scheduler
from corolisp.types.errors import CoroMisuseError, CoroResourceConflictError
from corolisp.types.nil import Nil

logger = logging.getLogger(__name__)


class Scheduler:
    """Timer facility backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop if loop is not None else asyncio.new_event_loop()

    def schedule_once(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        logger.debug("Scheduling %r in %ss", callback, delay)
        return self.loop.call_later(max(delay, 0), callback)

    def run_for(self, seconds: float) -> None:
        """Drive the loop for `seconds`, firing whatever falls due."""
        if self.loop.is_running():
            raise CoroMisuseError("Cannot drive the event loop from inside itself")
        self.loop.run_until_complete(asyncio.sleep(seconds))

    def poll(self, interval: float) -> None:
        self.run_for(interval)

    def close(self) -> None:
        self.loop.close()


StreamCallback = Callable[["Stream", Any], Any]


class Stream:
    """A host stream that delivers data to at most one installed callback."""

    def __init__(self, name: str = "stream"):
        self.name = name
        self._callback: StreamCallback | None = None

    def __repr__(self) -> str:
        return f"<stream {self.name}>"

    def has_callback(self) -> bool:
        return self._callback is not None

    def install_callback(self, callback: StreamCallback) -> None:
        self._callback = callback

    def remove_callback(self) -> None:
        self._callback = None

    def feed(self, data: Any) -> None:
        """Host side: data arrived on the stream."""
        callback = self._callback
        if callback is None:
            logger.debug("Dropping data on %r: no callback installed", self)
            return
        callback(self, data)


def wait(seconds: float, continuation: ContinuationFn, *, scheduler: Scheduler | None = None) -> None:
    """Resume `continuation` with nil after `seconds`, via the host timer."""
    scheduler = scheduler if scheduler is not None else get_scheduler()
    context_switch(lambda resume: scheduler.schedule_once(
        seconds, lambda: resume(continuation, Nil)))


def read(stream: Stream, continuation: ContinuationFn) -> None:
    """Resume `continuation` with the next chunk of data from `stream`.

    Raises CoroResourceConflictError if a callback is already installed;
    the existing callback is left in place.
    """
    if stream.has_callback():
        raise CoroResourceConflictError(f"{stream!r} already has a read callback installed")

    def install(resume):
        def on_data(source: Stream, data: Any) -> None:
            source.remove_callback()
            logger.debug("One-shot read on %r fired", source)
            resume(continuation, data)
        stream.install_callback(on_data)

    context_switch(install)


_blocking_depth = 0


def blocking_call(
    invoker: Callable[[ContinuationFn], Any],
    *,
    scheduler: Scheduler | None = None,
    interval: float | None = None,
) -> LispValue:
    """Run a coroutine to completion and return its result.

    `invoker(k)` starts the coroutine with continuation `k`. The calling
    thread then polls the scheduler every `interval` seconds until a result
    is recorded.

    WARNING: this blocks the whole process and defeats cooperative
    suspension. Use it only where the caller cannot itself be made
    asynchronous; never on hot paths, never from inside the running event
    loop, and never nested inside another blocking_call.
    """
    global _blocking_depth
    if _blocking_depth:
        raise CoroMisuseError("blocking_call may not be nested")
    scheduler = scheduler if scheduler is not None else get_scheduler()
    interval = interval if interval is not None else poll_interval()
    result: list[LispValue] = []

    _blocking_depth += 1
    try:
        invoker(result.append)
        started = time.monotonic()
        while not result:
            scheduler.poll(interval)
        logger.debug("blocking_call finished after %.3fs", time.monotonic() - started)
    finally:
        _blocking_depth -= 1
    return result[0]
