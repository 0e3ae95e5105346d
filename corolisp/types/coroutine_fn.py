"""Runtime representation of a compiled coroutine."""

from __future__ import annotations

from corolisp import LispValue
from corolisp.types.errors import CoroMisuseError
from corolisp.types.lambda_fn import Closure
from corolisp.types.symbol import Symbol


class Coroutine:
    """A procedure compiled to take one extra trailing continuation parameter.

    Call it as coro(*args, continuation); the result is delivered by calling
    continuation(result), possibly long after the call returned.

    A host function that calls its continuation before returning nests one
    Python frame per suspension, so a long loop over such a function can
    exhaust the stack. Hosts should resume from their own dispatch loop
    (an event loop callback), as the suspension primitives do.
    """

    __slots__ = ("name", "params", "closure", "expansion")

    def __init__(self, name: Symbol, params: list[Symbol], closure: Closure, expansion=None):
        self.name = name
        self.params = params
        self.closure = closure
        # The CPS-converted body, kept for inspection.
        self.expansion = expansion

    def __repr__(self) -> str:
        params = " ".join(str(p) for p in self.params)
        return f"<coroutine {self.name} ({params})>"

    def check_call(self, args: list[LispValue]) -> None:
        if not args or not callable(args[-1]):
            raise CoroMisuseError(
                f"Coroutine {self.name} called without a continuation "
                f"(args: {args!r}); use coroutine-call"
            )

    def __call__(self, *args: LispValue) -> LispValue:
        self.check_call(list(args))
        return self.closure(*args)
