"""Binding sugar: await a coroutine result into a name and carry on in direct style.

These are pure rewrites. `await_one` and `await_many` hand their work to the
CPS engine; `cps_bind` does not use the engine at all and assumes the call
already takes a continuation as its last argument.
"""

from __future__ import annotations

from typing import Sequence

from corolisp.config import CompileOptions
from corolisp.cps.transform import transform_one
from corolisp.syntax.expressions import Call, CoroutineCall, Expression, Lambda, Let, Progn
from corolisp.syntax.unparse import describe
from corolisp.types.errors import CoroTranslationError
from corolisp.types.symbol import Symbol


def await_one(
    name: Symbol,
    expr: Expression,
    body: Sequence[Expression],
    options: CompileOptions | None = None,
) -> Expression:
    """Evaluate `expr` (which may suspend), bind its result to `name`, run `body`."""
    return transform_one(expr, lambda x: Let(((name, x),), tuple(body)), options)


def await_many(
    bindings: Sequence[tuple[Symbol, Expression]],
    body: Sequence[Expression],
    options: CompileOptions | None = None,
) -> Expression:
    """Nested await_one, left to right; each expression sees the names bound before it."""
    if not bindings:
        return Progn(tuple(body))
    (name, expr), *rest = bindings
    return await_one(name, expr, (await_many(rest, body, options),), options)


def cps_bind(
    names: Sequence[Symbol],
    call_expr: Expression,
    body: Sequence[Expression],
) -> Call:
    """(f args...) => (f args... (lambda (names...) body...))"""
    if not isinstance(call_expr, (Call, CoroutineCall)):
        raise CoroTranslationError(f"cps-bind needs a function call, got {describe(call_expr)}")
    callee = call_expr.callee if isinstance(call_expr, Call) else call_expr.fn
    return Call(callee, (*call_expr.args, Lambda(tuple(names), tuple(body))))
