"""Ambient context capture and restore.

Resumed continuations must observe the ambient state they had before
suspending. Here that state is an editing cursor: the current buffer and
the point (position) inside it. A captured Location stays resolvable until
its buffer is killed.

The service contract is three methods (capture_current_location,
is_location_still_valid, switch_to_location); Cursor is the bundled
implementation, and any object with those methods can be installed
with runtime_context.set_ambient().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol, TypeVar

from corolisp import LispValue
from corolisp.runtime_context import get_ambient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Buffer:
    """A named text buffer with a cursor position."""

    def __init__(self, name: str, point: int = 0):
        self.name = name
        self.point = point
        self.live = True

    def kill(self) -> None:
        self.live = False

    def __repr__(self) -> str:
        state = "" if self.live else " killed"
        return f"<buffer {self.name} point={self.point}{state}>"


@dataclass(frozen=True)
class Location:
    """A position anchored to its containing buffer."""
    buffer: Buffer
    position: int


class AmbientService(Protocol):
    def capture_current_location(self) -> Location: ...
    def is_location_still_valid(self, location: Location) -> bool: ...
    def switch_to_location(self, location: Location) -> None: ...


class Cursor:
    """Tracks the current buffer; the bundled ambient service."""

    def __init__(self, buffer: Buffer | None = None):
        self.current_buffer = buffer if buffer is not None else Buffer("*scratch*")

    def capture_current_location(self) -> Location:
        return Location(self.current_buffer, self.current_buffer.point)

    def is_location_still_valid(self, location: Location) -> bool:
        return location.buffer.live

    def switch_to_location(self, location: Location) -> None:
        self.current_buffer = location.buffer
        location.buffer.point = location.position


def capture(service: AmbientService | None = None) -> Location:
    service = service if service is not None else get_ambient()
    return service.capture_current_location()


def restore(ctx: Location, service: AmbientService | None = None) -> bool:
    """Switch back to `ctx` if it can still be resolved. Returns whether it did."""
    service = service if service is not None else get_ambient()
    if service.is_location_still_valid(ctx):
        service.switch_to_location(ctx)
        return True
    logger.debug("Captured location %r is gone; staying in the current context", ctx)
    return False


def with_context(ctx: Location, fn: Callable[[], T], service: AmbientService | None = None) -> T:
    """Run `fn` in the captured context if it is still valid, else in the current one.

    `fn` always runs. The buffer that was current before is made current
    again afterwards; the point moved by `fn` is left where `fn` put it.
    """
    service = service if service is not None else get_ambient()
    previous = service.capture_current_location()
    restore(ctx, service)
    try:
        return fn()
    finally:
        if service.is_location_still_valid(previous):
            service.switch_to_location(
                Location(previous.buffer, previous.buffer.point))


Resume = Callable[..., LispValue]


def context_switch(body: Callable[[Resume], T], service: AmbientService | None = None) -> T:
    """Capture the context once and call body(resume).

    resume(k, *args) re-enters the captured context and calls k(*args).
    Suspension primitives hand `resume` to the host so the continuation
    runs with the ambient state it had when it suspended.
    """
    ctx = capture(service)

    def resume(k: Callable[..., LispValue], *args: LispValue) -> LispValue:
        return with_context(ctx, lambda: k(*args), service)

    return body(resume)


class ContextOperation:
    """capture/restore as a value embedded in generated code.

    Generated code calls these objects directly instead of looking up a
    name, so user bindings cannot replace them.
    """

    __slots__ = ("name", "fn")

    def __init__(self, name: str, fn: Callable[..., LispValue]):
        self.name = name
        self.fn = fn

    def __call__(self, *args: LispValue) -> LispValue:
        return self.fn(*args)

    def __repr__(self) -> str:
        return f"#<{self.name}>"


CAPTURE_CONTEXT = ContextOperation("capture-context", capture)
RESTORE_CONTEXT = ContextOperation("restore-context", restore)
