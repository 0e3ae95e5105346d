from __future__ import annotations

from typing import NamedTuple, TYPE_CHECKING

from corolisp import SExpression
from corolisp.types.errors import CoroSyntaxError
from corolisp.types.symbol import Symbol

if TYPE_CHECKING:
    from corolisp.reader.parser import TokenStream


def subst(expr: SExpression, bindings: dict[Symbol, SExpression]) -> SExpression:
    """Shallow syntactic substitution over lists and Symbols."""
    if isinstance(expr, Symbol):
        return bindings.get(expr, expr)
    if isinstance(expr, list):
        return [subst(x, bindings) for x in expr]
    return expr


class ReaderTemplate(NamedTuple):
    formals: list[Symbol]
    body: SExpression


class ReaderMacros:
    """
    Registry of reader macros. Maps prefix tokens (like ' and #') to
    templates that consume the next parsed expression(s) syntactically.
    """

    def __init__(self):
        self.macros: dict[str, ReaderTemplate] = {}

    def define(self, token: str, template: ReaderTemplate) -> None:
        self.macros[token] = template

    def is_macro(self, token: str) -> bool:
        return token in self.macros

    def dispatch(self, token: str, stream: TokenStream) -> SExpression:
        if token not in self.macros:
            raise CoroSyntaxError(f"No reader macro defined for {token!r}")
        template = self.macros[token]
        args: list[SExpression] = []
        for _ in template.formals:
            if stream.peek()[0] is None:
                raise CoroSyntaxError(f"Unexpected EOF after {token!r}")
            args.append(stream.parse_expr())
        return subst(template.body, dict(zip(template.formals, args)))


reader_macros: ReaderMacros = ReaderMacros()

_x = Symbol("x")
# 'expr => (quote expr)
reader_macros.define("'", ReaderTemplate([_x], [Symbol("quote"), _x]))
# #'expr => (function expr)
reader_macros.define("#'", ReaderTemplate([_x], [Symbol("function"), _x]))
