from __future__ import annotations

from typing import TYPE_CHECKING

from corolisp.types.environment import Environment

if TYPE_CHECKING:
    from corolisp.types.lambda_fn import Closure


class TailCall:
    """A pending closure call returned from tail position, run by the trampoline."""

    __slots__ = ("fn", "env")

    def __init__(self, fn: Closure, env: Environment):
        self.fn = fn
        self.env = env
