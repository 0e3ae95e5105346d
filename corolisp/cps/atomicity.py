"""Atomicity analysis.

An expression is atomic when no control path through it can reach a
coroutine call. The CPS engine uses this to keep whole subtrees in direct
style. The answer must never be a false positive: anything the analyzer
does not recognise counts as non-atomic.
"""

from __future__ import annotations

from corolisp.syntax.expressions import (
    And, Atom, Call, Cond, CoroutineCall, Expression, FunctionRef, If, Inline,
    Lambda, Let, LetStar, Or, Prog1, Prog2, Progn, Quote, SaveContext, Setq, While,
)


def _all_atomic(exprs) -> bool:
    return all(is_atomic(e) for e in exprs)


def is_atomic(expr: Expression) -> bool:
    match expr:
        case Atom() | Quote() | FunctionRef():
            return True
        case Lambda():
            # Creating a closure runs nothing; its body is never CPS-converted.
            return True
        case CoroutineCall():
            return False
        case Call(callee, args):
            return is_atomic(callee) and _all_atomic(args)
        case Setq(_, value):
            return is_atomic(value)
        case If(cond, then, else_):
            return is_atomic(cond) and is_atomic(then) and _all_atomic(else_)
        case And(exprs) | Or(exprs) | Progn(exprs) | Inline(exprs) | SaveContext(exprs):
            return _all_atomic(exprs)
        case Cond(clauses):
            return all(_all_atomic(clause) for clause in clauses)
        case Let(bindings, body) | LetStar(bindings, body):
            return _all_atomic(init for _, init in bindings) and _all_atomic(body)
        case While(cond, body):
            return is_atomic(cond) and _all_atomic(body)
        case Prog1(first, rest):
            return is_atomic(first) and _all_atomic(rest)
        case Prog2(first, second, rest):
            return is_atomic(first) and is_atomic(second) and _all_atomic(rest)
    return False


class AtomicityCache:
    """Memoises is_atomic per node for the lifetime of one transformation.

    Keyed by id(): nodes may hold unhashable quoted data, and the tree being
    transformed keeps every node alive while the cache is in use.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._seen: dict[int, tuple[Expression, bool]] = {}

    def __call__(self, expr: Expression) -> bool:
        if not self.enabled:
            return False
        hit = self._seen.get(id(expr))
        if hit is not None and hit[0] is expr:
            return hit[1]
        result = is_atomic(expr)
        self._seen[id(expr)] = (expr, result)
        return result
