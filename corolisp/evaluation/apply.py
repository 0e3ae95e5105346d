"""Application engine for corolisp.

Centralizes function application for compiled code:
- Closures in tail position return a TailCall for the trampoline.
- Coroutines are checked for a trailing continuation, then applied as their closure.
- Builtins registered with @builtin receive (env, args).
- Any other Python callable is called positionally.
"""

from __future__ import annotations

from typing import Callable

from corolisp import LispValue
from corolisp.debug_utils.pprint import pformat
from corolisp.types.coroutine_fn import Coroutine
from corolisp.types.environment import Environment
from corolisp.types.errors import CoroTypeError
from corolisp.types.lambda_fn import Closure
from corolisp.types.tail_call import TailCall

BUILTIN_ATTR = "_corolisp_builtin"


def builtin(name: str):
    """Mark a Python function `(env, args) -> value` as a builtin named `name`."""
    def decorator(fn: Callable[[Environment, list[LispValue]], LispValue]):
        setattr(fn, BUILTIN_ATTR, True)
        fn.lisp_name = name
        return fn
    return decorator


def is_builtin(fn) -> bool:
    return getattr(fn, BUILTIN_ATTR, False)


def apply(
    head: LispValue,
    args: list[LispValue],
    env: Environment,
    tail: bool = False,
) -> LispValue | TailCall:
    if isinstance(head, Coroutine):
        head.check_call(args)
        head = head.closure
    if isinstance(head, Closure):
        return head.tail_call(args) if tail else head(*args)
    if is_builtin(head):
        return head(env, args)
    if callable(head):
        return head(*args)
    raise CoroTypeError(f"Cannot apply non-function {pformat(head)}")
