"""Render Expression trees back into s-expressions."""

from __future__ import annotations

from corolisp import SExpression
from corolisp.debug_utils.pprint import pformat, pprint_expr
from corolisp.syntax.expressions import (
    And, Atom, Call, Cond, CoroutineCall, Expression, FunctionRef, If, Inline,
    Lambda, Let, LetStar, Or, Prog1, Prog2, Progn, Quote, SaveContext, Setq, While,
)
from corolisp.types.symbol import Symbol

S = Symbol


def _seq(exprs) -> list[SExpression]:
    return [to_sexp(e) for e in exprs]


def _bindings(bindings) -> list[SExpression]:
    return [[name, to_sexp(init)] for name, init in bindings]


def to_sexp(expr: Expression) -> SExpression:
    match expr:
        case Atom(value):
            return value
        case Quote(value):
            return [S("quote"), value]
        case FunctionRef(name):
            return [S("function"), name]
        case Lambda(params, body):
            return [S("lambda"), list(params), *_seq(body)]
        case Setq(name, value):
            return [S("setq"), name, to_sexp(value)]
        case CoroutineCall(fn, args):
            return [S("coroutine-call"), to_sexp(fn), *_seq(args)]
        case Call(callee, args):
            return [to_sexp(callee), *_seq(args)]
        case If(cond, then, else_):
            return [S("if"), to_sexp(cond), to_sexp(then), *_seq(else_)]
        case And(conds):
            return [S("and"), *_seq(conds)]
        case Or(conds):
            return [S("or"), *_seq(conds)]
        case Cond(clauses):
            return [S("cond"), *[_seq(clause) for clause in clauses]]
        case Progn(exprs):
            return [S("progn"), *_seq(exprs)]
        case Inline(exprs):
            return [S("inline"), *_seq(exprs)]
        case Let(bindings, body):
            return [S("let"), _bindings(bindings), *_seq(body)]
        case LetStar(bindings, body):
            return [S("let*"), _bindings(bindings), *_seq(body)]
        case While(cond, body):
            return [S("while"), to_sexp(cond), *_seq(body)]
        case Prog1(first, rest):
            return [S("prog1"), to_sexp(first), *_seq(rest)]
        case Prog2(first, second, rest):
            return [S("prog2"), to_sexp(first), to_sexp(second), *_seq(rest)]
        case SaveContext(body):
            return [S("save-context"), *_seq(body)]
    # Not an Expression: show it as-is so error messages stay readable.
    return expr


def describe(expr) -> str:
    """One-line source text for an Expression (or any s-expression)."""
    return pformat(to_sexp(expr))


def pretty(expr) -> str:
    return pprint_expr(to_sexp(expr))
