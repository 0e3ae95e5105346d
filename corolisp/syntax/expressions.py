"""Expression model: the fixed form set understood by the CPS engine.

Each node is an immutable dataclass; the engine, the atomicity analyzer and
the compiler dispatch on these with structural pattern matching. Sequences
are tuples so trees can be shared between the branches of generated code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union

from corolisp.types.nil import Nil
from corolisp.types.symbol import Symbol


@dataclass(frozen=True)
class Atom:
    """A literal or a variable reference (when `value` is a Symbol)."""
    value: Any

    @property
    def is_variable(self) -> bool:
        return isinstance(self.value, Symbol)


@dataclass(frozen=True)
class Quote:
    value: Any


@dataclass(frozen=True)
class FunctionRef:
    name: Any


@dataclass(frozen=True)
class Lambda:
    params: tuple[Symbol, ...]
    body: tuple[Expression, ...]


@dataclass(frozen=True)
class Setq:
    name: Symbol
    value: Expression


@dataclass(frozen=True)
class Call:
    callee: Expression
    args: tuple[Expression, ...]


@dataclass(frozen=True)
class CoroutineCall:
    """Explicit request for coroutine calling semantics: fn(args..., k)."""
    fn: Expression
    args: tuple[Expression, ...]


@dataclass(frozen=True)
class If:
    cond: Expression
    then: Expression
    else_: tuple[Expression, ...] = ()


@dataclass(frozen=True)
class And:
    conds: tuple[Expression, ...]


@dataclass(frozen=True)
class Or:
    conds: tuple[Expression, ...]


@dataclass(frozen=True)
class Cond:
    # Each clause is (test, body...); a clause with no body yields the test value.
    clauses: tuple[tuple[Expression, ...], ...]


@dataclass(frozen=True)
class Progn:
    exprs: tuple[Expression, ...]


@dataclass(frozen=True)
class Inline:
    """Same semantics as Progn; kept distinct as a code generation hint."""
    exprs: tuple[Expression, ...]


Binding = tuple[Symbol, "Expression"]


@dataclass(frozen=True)
class Let:
    bindings: tuple[Binding, ...]
    body: tuple[Expression, ...]


@dataclass(frozen=True)
class LetStar:
    bindings: tuple[Binding, ...]
    body: tuple[Expression, ...]


@dataclass(frozen=True)
class While:
    cond: Expression
    body: tuple[Expression, ...]


@dataclass(frozen=True)
class Prog1:
    first: Expression
    rest: tuple[Expression, ...] = ()


@dataclass(frozen=True)
class Prog2:
    first: Expression
    second: Expression
    rest: tuple[Expression, ...] = ()


@dataclass(frozen=True)
class SaveContext:
    body: tuple[Expression, ...]


Expression = Union[
    Atom, Quote, FunctionRef, Lambda, Setq, Call, CoroutineCall,
    If, And, Or, Cond, Progn, Inline, Let, LetStar, While,
    Prog1, Prog2, SaveContext,
]

EXPRESSION_TYPES = (
    Atom, Quote, FunctionRef, Lambda, Setq, Call, CoroutineCall,
    If, And, Or, Cond, Progn, Inline, Let, LetStar, While,
    Prog1, Prog2, SaveContext,
)

# Meta-level continuation: result expression -> rest of the program.
Continuation = Callable[[Expression], Expression]

NIL = Atom(Nil)
TRUE = Atom(True)


def var(name: Symbol | str) -> Atom:
    return Atom(name if isinstance(name, Symbol) else Symbol(name))


def call(callee: Symbol | str | Expression, *args: Expression) -> Call:
    if isinstance(callee, (Symbol, str)):
        callee = var(callee)
    return Call(callee, tuple(args))
