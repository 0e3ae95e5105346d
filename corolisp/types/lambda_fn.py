"""Runtime closure representation for compiled corolisp lambdas."""

from __future__ import annotations

from io import StringIO
from typing import Callable

from corolisp import LispValue
from corolisp.types.bind import bind_arguments
from corolisp.types.environment import Environment
from corolisp.types.symbol import Symbol
from corolisp.types.tail_call import TailCall

CompiledBody = Callable[[Environment], LispValue]


class Closure:
    """A first-class lambda: formal parameters, compiled body and closure env.

    Calling a Closure from Python runs the body and then drives the
    trampoline until no TailCall is left, so continuation chains and loop
    closures produced by the CPS engine use constant Python stack.
    """

    __slots__ = ("formals", "body", "env", "name")

    def __init__(
        self,
        formals: list[Symbol],
        body: CompiledBody,
        env: Environment | None = None,
        name: str | None = None,
    ):
        self.formals: list[Symbol] = formals
        self.body: CompiledBody = body
        self.env: Environment = env if env is not None else Environment()
        self.name = name

    def __str__(self) -> str:
        with StringIO() as buffer:
            buffer.write("(λ (")
            buffer.write(" ".join(str(f) for f in self.formals))
            buffer.write(")")
            if self.name:
                buffer.write(f" {self.name}")
            buffer.write(")")
            return buffer.getvalue()

    def __repr__(self) -> str:
        return str(self)

    def extend_env(self, args: list[LispValue]) -> Environment:
        return bind_arguments(self.formals, args, self.env)

    def tail_call(self, args: list[LispValue]) -> TailCall:
        return TailCall(self, self.extend_env(args))

    def __call__(self, *args: LispValue) -> LispValue:
        return trampoline(self.body(self.extend_env(list(args))))


def trampoline(result: LispValue) -> LispValue:
    while isinstance(result, TailCall):
        result = result.fn.body(result.env)
    return result
