"""Builtin macro transformers for corolisp (implemented in Python).

Each expands into the fixed form set understood by from_sexp and the CPS
engine, so bodies using them can be converted without further support.
"""

from typing import Any

from corolisp import SExpression
from corolisp.types.errors import CoroArityError, CoroTypeError
from corolisp.types.macro_environment import MacroEnvironment
from corolisp.types.symbol import Symbol, gensym

S = Symbol


def when_macro(args: list[SExpression], env: Any) -> SExpression:
    """(when test body...) => (if test (progn body...))"""
    if not args:
        raise CoroArityError("when requires a test")
    return [S("if"), args[0], [S("progn"), *args[1:]]]


def unless_macro(args: list[SExpression], env: Any) -> SExpression:
    """(unless test body...) => (if test nil body...)"""
    if not args:
        raise CoroArityError("unless requires a test")
    return [S("if"), args[0], [], *args[1:]]


def dotimes_macro(args: list[SExpression], env: Any) -> SExpression:
    """
    (dotimes (var count) body...)
    => (let* ((limit count) (var 0))
         (while (< var limit) body... (setq var (+ var 1))))

    The count is evaluated once; `limit` is a generated symbol.
    """
    if not args or not isinstance(args[0], list) or len(args[0]) != 2:
        raise CoroArityError("dotimes requires (var count) followed by a body")
    var, count = args[0]
    if not isinstance(var, Symbol):
        raise CoroTypeError(f"dotimes variable must be a Symbol, got {var}")
    limit = gensym("limit")
    return [
        S("let*"), [[limit, count], [var, 0]],
        [S("while"), [S("<"), var, limit],
         *args[1:],
         [S("setq"), var, [S("+"), var, 1]]],
    ]


def _step(op: str, name: str):
    def transformer(args: list[SExpression], env: Any) -> SExpression:
        if len(args) not in (1, 2):
            raise CoroArityError(f"{name} requires a place and an optional delta")
        place = args[0]
        if not isinstance(place, Symbol):
            raise CoroTypeError(f"{name} place must be a Symbol, got {place}")
        delta = args[1] if len(args) == 2 else 1
        return [S("setq"), place, [S(op), place, delta]]
    transformer.__name__ = f"{name}_macro"
    transformer.__doc__ = f"({name} place [delta]) => (setq place ({op} place delta))"
    return transformer


incf_macro = _step("+", "incf")
decf_macro = _step("-", "decf")


def push_macro(args: list[SExpression], env: Any) -> SExpression:
    """(push value place) => (setq place (cons value place))"""
    if len(args) != 2:
        raise CoroArityError("push requires a value and a place")
    value, place = args
    if not isinstance(place, Symbol):
        raise CoroTypeError(f"push place must be a Symbol, got {place}")
    return [S("setq"), place, [S("cons"), value, place]]


def defun_macro(args: list[SExpression], env: Any) -> SExpression:
    """(defun name (params) body...) => (define name (lambda (params) body...))"""
    if len(args) < 2:
        raise CoroArityError(
            "defun requires at least 2 arguments: (defun name (params) body...)"
        )
    name, params, *body = args
    return [S("define"), name, [S("lambda"), params, *body]]


def register(macro_env: MacroEnvironment) -> None:
    """Register builtin macros in the provided MacroEnvironment."""
    macro_env.define_macro(S("when"), when_macro)
    macro_env.define_macro(S("unless"), unless_macro)
    macro_env.define_macro(S("dotimes"), dotimes_macro)
    macro_env.define_macro(S("incf"), incf_macro)
    macro_env.define_macro(S("decf"), decf_macro)
    macro_env.define_macro(S("push"), push_macro)
    macro_env.define_macro(S("defun"), defun_macro)
