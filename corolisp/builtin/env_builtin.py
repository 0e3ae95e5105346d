"""Built-in functions for the corolisp runtime environment.

This module defines core arithmetic, comparison and list processing, the
ambient-context builtins used by save-context, the suspension builtins that
follow the coroutine calling convention, and registration utilities.
"""
from __future__ import annotations

from corolisp import LispValue
from corolisp.ambient import Location, capture, restore
from corolisp.evaluation.apply import apply, builtin
from corolisp.primitives import blocking_call, read, wait
from corolisp.runtime_context import get_ambient
from corolisp.types.environment import Environment
from corolisp.types.errors import CoroArityError, CoroTypeError
from corolisp.types.lambda_fn import trampoline
from corolisp.types.nil import Nil, is_true
from corolisp.types.symbol import Symbol


def _arity(name: str, args: list[LispValue], n: int) -> None:
    if len(args) != n:
        raise CoroArityError(f"{name} requires exactly {n} argument(s), got {len(args)}")


def is_equal(a, b) -> bool:
    """Deep equality for Lisp values, with element-wise comparison for lists."""
    if a is b:
        return True
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if len(a) != len(b):
            return False
        return all(is_equal(x, y) for x, y in zip(a, b))
    if type(a) != type(b):
        return False
    return a == b


# -------------------------------
# Arithmetic
# -------------------------------
@builtin("+")
def add(env: Environment, args: list[LispValue]) -> LispValue:
    """Return the numeric sum of all arguments; errors if any arg is non-numeric."""
    try:
        return sum(args)
    except TypeError:
        raise CoroTypeError("All arguments to + must be numbers") from None


@builtin("-")
def sub(env: Environment, args: list[LispValue]) -> LispValue:
    """Subtract all subsequent numbers from the first; unary negation for one arg."""
    if not args:
        raise CoroArityError("- requires at least 1 argument")
    try:
        if len(args) == 1:
            return -args[0]
        result = args[0]
        for x in args[1:]:
            result -= x
        return result
    except TypeError:
        raise CoroTypeError("All arguments to - must be numbers") from None


@builtin("*")
def mul(env: Environment, args: list[LispValue]) -> LispValue:
    result = 1
    try:
        for x in args:
            result *= x
        return result
    except TypeError:
        raise CoroTypeError("All arguments to * must be numbers") from None


@builtin("/")
def div(env: Environment, args: list[LispValue]) -> LispValue:
    """Divide left-to-right; with one arg returns the reciprocal."""
    if not args:
        raise CoroArityError("/ requires at least 1 argument")
    try:
        if len(args) == 1:
            return 1 / args[0]
        result = args[0]
        for x in args[1:]:
            result /= x
        return result
    except TypeError:
        raise CoroTypeError("All arguments to / must be numbers") from None


@builtin("mod")
def mod(env: Environment, args: list[LispValue]) -> LispValue:
    """(mod n d) => n % d. Exactly 2 integer arguments."""
    _arity("mod", args, 2)
    n, d = args
    if not isinstance(n, int) or not isinstance(d, int):
        raise CoroTypeError("All arguments to mod must be integers")
    if d == 0:
        raise ZeroDivisionError("Modulo by zero")
    return n % d


# -------------------------------
# Comparison and predicates
# -------------------------------
@builtin("=")
def equals(env: Environment, args: list[LispValue]) -> bool:
    """True if all arguments are equal (or zero/one arg)."""
    return all(is_equal(args[0], other) for other in args[1:]) if args else True


@builtin("/=")
def not_equals(env: Environment, args: list[LispValue]) -> bool:
    return not equals(env, args)


@builtin("<")
def lt(env: Environment, args: list[LispValue]) -> bool:
    """Chainable less-than: a0 < a1 < a2 ..."""
    return all(a < b for a, b in zip(args, args[1:]))


@builtin("<=")
def lte(env: Environment, args: list[LispValue]) -> bool:
    return all(a <= b for a, b in zip(args, args[1:]))


@builtin(">")
def gt(env: Environment, args: list[LispValue]) -> bool:
    return all(a > b for a, b in zip(args, args[1:]))


@builtin(">=")
def gte(env: Environment, args: list[LispValue]) -> bool:
    return all(a >= b for a, b in zip(args, args[1:]))


@builtin("not")
def logical_not(env: Environment, args: list[LispValue]) -> bool:
    _arity("not", args, 1)
    return not is_true(args[0])


@builtin("eq")
def eq(env: Environment, args: list[LispValue]) -> bool:
    """Identity for compound values, equality for numbers, strings and symbols."""
    _arity("eq", args, 2)
    a, b = args
    if isinstance(a, (list, tuple)) or isinstance(b, (list, tuple)):
        return a is b
    return type(a) == type(b) and a == b


@builtin("null")
def null(env: Environment, args: list[LispValue]) -> bool:
    """True if the single argument is nil or the empty list."""
    _arity("null", args, 1)
    x = args[0]
    return x is Nil or x == []


# -------------------------------
# Lists
# -------------------------------
@builtin("list")
def list_builtin(env: Environment, args: list[LispValue]) -> list[LispValue]:
    return list(args)


@builtin("cons")
def cons(env: Environment, args: list[LispValue]) -> LispValue:
    """Prepend head to a list (non-destructively); a non-list tail makes a dotted pair."""
    _arity("cons", args, 2)
    head, tail = args
    if tail is Nil:
        return [head]
    if isinstance(tail, list):
        return [head] + tail
    return (head, tail)


@builtin("car")
def car(env: Environment, args: list[LispValue]) -> LispValue:
    _arity("car", args, 1)
    xs = args[0]
    if isinstance(xs, (list, tuple)) and xs:
        return xs[0]
    return Nil


@builtin("cdr")
def cdr(env: Environment, args: list[LispValue]) -> LispValue:
    """Tail of a list (nil for empty or singletons), or the tail of a dotted pair."""
    _arity("cdr", args, 1)
    xs = args[0]
    if isinstance(xs, tuple):
        return xs[1] if len(xs) > 1 else Nil
    if isinstance(xs, list):
        return xs[1:] if len(xs) > 1 else Nil
    return Nil


def _to_string(x: LispValue) -> str:
    """Printable form of a Lisp value (Nil -> "nil", Symbol -> id)."""
    if x is Nil:
        return "nil"
    if isinstance(x, Symbol):
        return x.id
    return str(x)


@builtin("print")
def print_builtin(env: Environment, args: list[LispValue]) -> LispValue:
    """Print space-separated representations of args followed by newline; returns Nil."""
    print(" ".join(_to_string(a) for a in args))
    return Nil


@builtin("funcall")
def funcall(env: Environment, args: list[LispValue]) -> LispValue:
    """(funcall f args...) applies f; coroutines still need a trailing continuation."""
    if not args:
        raise CoroArityError("funcall requires a function")
    return trampoline(apply(args[0], list(args[1:]), env))


# -------------------------------
# Ambient context
# -------------------------------
@builtin("capture-context")
def capture_context(env: Environment, args: list[LispValue]) -> Location:
    _arity("capture-context", args, 0)
    return capture()


@builtin("restore-context")
def restore_context(env: Environment, args: list[LispValue]) -> bool:
    _arity("restore-context", args, 1)
    ctx = args[0]
    if not isinstance(ctx, Location):
        raise CoroTypeError(f"restore-context expects a captured context, got {ctx!r}")
    return restore(ctx)


@builtin("current-buffer")
def current_buffer(env: Environment, args: list[LispValue]) -> LispValue:
    _arity("current-buffer", args, 0)
    return capture().buffer


@builtin("point")
def point(env: Environment, args: list[LispValue]) -> int:
    _arity("point", args, 0)
    return capture().buffer.point


@builtin("goto-char")
def goto_char(env: Environment, args: list[LispValue]) -> int:
    _arity("goto-char", args, 1)
    position = args[0]
    if not isinstance(position, int):
        raise CoroTypeError(f"goto-char expects an integer position, got {position!r}")
    get_ambient().switch_to_location(Location(capture().buffer, position))
    return position


# -------------------------------
# Suspension (continuation is the last argument)
# -------------------------------
def _continuation(name: str, args: list[LispValue], n: int):
    if len(args) != n + 1 or not callable(args[-1]):
        raise CoroArityError(
            f"{name} takes {n} argument(s) and a continuation; use (coroutine-call {name} ...)")
    return args[-1]


@builtin("wait")
def wait_builtin(env: Environment, args: list[LispValue]) -> LispValue:
    """(coroutine-call wait seconds) resumes with nil after `seconds`."""
    k = _continuation("wait", args, 1)
    wait(args[0], k)
    return Nil


@builtin("read-stream")
def read_stream(env: Environment, args: list[LispValue]) -> LispValue:
    """(coroutine-call read-stream stream) resumes with the next chunk of data."""
    k = _continuation("read-stream", args, 1)
    read(args[0], k)
    return Nil


@builtin("blocking-call")
def blocking_call_builtin(env: Environment, args: list[LispValue]) -> LispValue:
    """(blocking-call coro args...) runs a coroutine to completion and returns its result."""
    if not args:
        raise CoroArityError("blocking-call requires a coroutine")
    fn, rest = args[0], list(args[1:])
    return blocking_call(lambda k: trampoline(apply(fn, [*rest, k], env)))


BUILTINS = [
    add, sub, mul, div, mod,
    equals, not_equals, lt, lte, gt, gte, logical_not, eq, null,
    list_builtin, cons, car, cdr, print_builtin, funcall,
    capture_context, restore_context, current_buffer, point, goto_char,
    wait_builtin, read_stream, blocking_call_builtin,
]


def register(env: Environment) -> None:
    env.update({Symbol(fn.lisp_name): fn for fn in BUILTINS})
    env.define(Symbol("t"), True)
