from __future__ import annotations

from dataclasses import fields
from typing import Iterator

from corolisp.syntax.expressions import EXPRESSION_TYPES, Atom, Expression, Quote, Setq
from corolisp.types.symbol import Symbol


def iter_subexpressions(expr: Expression) -> Iterator[Expression]:
    """Yield `expr` and every Expression nested in it, depth first."""
    yield expr
    if isinstance(expr, Quote):
        return
    stack = [getattr(expr, f.name) for f in reversed(fields(expr))]
    while stack:
        item = stack.pop()
        if isinstance(item, EXPRESSION_TYPES):
            yield from iter_subexpressions(item)
        elif isinstance(item, tuple):
            stack.extend(reversed(item))


def mentioned_names(expr: Expression) -> set[Symbol]:
    """Every variable name referenced or assigned anywhere inside `expr`.

    Over-approximates free variables: bound occurrences are included too.
    """
    names: set[Symbol] = set()
    for sub in iter_subexpressions(expr):
        if isinstance(sub, Atom) and sub.is_variable:
            names.add(sub.value)
        elif isinstance(sub, Setq):
            names.add(sub.name)
    return names
