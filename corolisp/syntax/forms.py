"""Conversion of fully macro-expanded source (s-expressions) into the Expression model."""

from __future__ import annotations

from typing import Protocol

from corolisp import SExpression
from corolisp.config import CompileOptions
from corolisp.debug_utils.pprint import pformat
from corolisp.syntax.expressions import (
    NIL, And, Atom, Call, Cond, CoroutineCall, Expression, FunctionRef, If, Inline,
    Lambda, Let, LetStar, Or, Prog1, Prog2, Progn, Quote, SaveContext, Setq, While,
)
from corolisp.types.errors import CoroTranslationError
from corolisp.types.nil import NilType
from corolisp.types.symbol import Symbol

S = Symbol

# Special forms of the wider language that a coroutine body may not contain.
UNSUPPORTED_FORMS = frozenset(S(name) for name in (
    "define", "defmacro", "defcoroutine", "defvar", "defconst",
    "catch", "throw", "unwind-protect", "condition-case",
    "quasiquote", "unquote", "unquote-splicing", "call/cc", "return",
))


class CoroutineNames(Protocol):
    def is_coroutine(self, name: Symbol) -> bool: ...


class _Converter:
    def __init__(
        self,
        registry: CoroutineNames | None,
        options: CompileOptions | None,
        coroutine_body: bool = False,
    ):
        self.registry = registry
        self.options = options
        self.coroutine_body = coroutine_body

    def seq(self, forms) -> tuple[Expression, ...]:
        return tuple(self.convert(f) for f in forms)

    def lambda_body(self, forms) -> tuple[Expression, ...]:
        # Lambda bodies are never CPS-transformed; sugar inside them is rewritten on the spot.
        if not self.coroutine_body:
            return self.seq(forms)
        return _Converter(self.registry, self.options).seq(forms)

    def fail(self, message: str, form: SExpression) -> CoroTranslationError:
        return CoroTranslationError(f"{message}: {pformat(form)}")

    def arity(self, form: list, minimum: int, maximum: int | None = None) -> None:
        n = len(form) - 1
        if n < minimum or (maximum is not None and n > maximum):
            expected = f"{minimum}" if maximum == minimum else (
                f"at least {minimum}" if maximum is None else f"{minimum} to {maximum}")
            raise self.fail(f"{form[0]} expects {expected} argument(s), got {n}", form)

    def name(self, obj: SExpression, form: SExpression) -> Symbol:
        if not isinstance(obj, Symbol):
            raise self.fail(f"Expected a variable name, got {pformat(obj)}", form)
        return obj

    def params(self, obj: SExpression, form: SExpression) -> tuple[Symbol, ...]:
        if isinstance(obj, NilType):
            return ()
        if not isinstance(obj, list):
            raise self.fail("Expected a parameter list", form)
        return tuple(self.name(p, form) for p in obj)

    def bindings(self, obj: SExpression, form: SExpression) -> tuple[tuple[Symbol, Expression], ...]:
        if isinstance(obj, NilType):
            return ()
        if not isinstance(obj, list):
            raise self.fail("Expected a binding list", form)
        result = []
        for binding in obj:
            if isinstance(binding, Symbol):
                result.append((binding, NIL))
            elif isinstance(binding, list) and len(binding) in (1, 2):
                init = self.convert(binding[1]) if len(binding) == 2 else NIL
                result.append((self.name(binding[0], form), init))
            else:
                raise self.fail(f"Malformed binding {pformat(binding)}", form)
        return tuple(result)

    def convert(self, form: SExpression) -> Expression:
        if isinstance(form, list):
            if not form:
                return NIL
            return self.convert_list(form)
        if isinstance(form, (tuple, dict, set)):
            raise self.fail("Unsupported literal", form)
        return Atom(form)

    def convert_list(self, form: list) -> Expression:
        head, args = form[0], form[1:]
        if not isinstance(head, Symbol):
            if isinstance(head, list) and head:
                return Call(self.convert(head), self.seq(args))
            raise self.fail("Cannot call a non-symbol", form)

        match head.id:
            case "quote":
                self.arity(form, 1, 1)
                return Quote(args[0])
            case "function":
                self.arity(form, 1, 1)
                target = args[0]
                if isinstance(target, list) and target and target[0] == S("lambda"):
                    return self.convert(target)
                return FunctionRef(target)
            case "lambda":
                self.arity(form, 1)
                return Lambda(self.params(args[0], form), self.lambda_body(args[1:]))
            case "setq":
                if len(args) % 2:
                    raise self.fail("setq needs name/value pairs", form)
                pairs = [Setq(self.name(args[i], form), self.convert(args[i + 1]))
                         for i in range(0, len(args), 2)]
                return pairs[0] if len(pairs) == 1 else Progn(tuple(pairs))
            case "if":
                self.arity(form, 2)
                return If(self.convert(args[0]), self.convert(args[1]), self.seq(args[2:]))
            case "and":
                return And(self.seq(args))
            case "or":
                return Or(self.seq(args))
            case "cond":
                clauses = []
                for clause in args:
                    if not isinstance(clause, list) or not clause:
                        raise self.fail(f"Malformed cond clause {pformat(clause)}", form)
                    clauses.append(self.seq(clause))
                return Cond(tuple(clauses))
            case "progn":
                return Progn(self.seq(args))
            case "inline":
                return Inline(self.seq(args))
            case "let":
                self.arity(form, 1)
                return Let(self.bindings(args[0], form), self.seq(args[1:]))
            case "let*":
                self.arity(form, 1)
                return LetStar(self.bindings(args[0], form), self.seq(args[1:]))
            case "while":
                self.arity(form, 1)
                return While(self.convert(args[0]), self.seq(args[1:]))
            case "prog1":
                self.arity(form, 1)
                return Prog1(self.convert(args[0]), self.seq(args[1:]))
            case "prog2":
                self.arity(form, 2)
                return Prog2(self.convert(args[0]), self.convert(args[1]), self.seq(args[2:]))
            case "save-context" | "save-excursion":
                return SaveContext(self.seq(args))
            case "coroutine-call":
                self.arity(form, 1)
                return CoroutineCall(self.convert(args[0]), self.seq(args[1:]))
            case "await":
                return self.convert_await(form, args)
            case "await*":
                return self.convert_await_many(form, args)
            case "cps-bind":
                return self.convert_cps_bind(form, args)

        if head in UNSUPPORTED_FORMS:
            raise self.fail(f"Special form {head} is not supported here", form)
        if self.registry is not None and self.registry.is_coroutine(head):
            raise self.fail(f"Coroutine {head} must be called with coroutine-call", form)
        return Call(Atom(head), self.seq(args))

    # --- binding sugar ----------------------------------------------

    def convert_await(self, form: list, args: list) -> Expression:
        from corolisp.sugar import await_one
        self.arity(form, 1)
        binding = args[0]
        if not isinstance(binding, list) or len(binding) != 2:
            raise self.fail("await expects (name expression)", form)
        name = self.name(binding[0], form)
        expr, body = self.convert(binding[1]), self.seq(args[1:])
        if self.coroutine_body:
            # The enclosing transformation threads its continuation through the body.
            return Let(((name, expr),), body)
        return await_one(name, expr, body, self.options)

    def convert_await_many(self, form: list, args: list) -> Expression:
        from corolisp.sugar import await_many
        self.arity(form, 1)
        specs = args[0] if isinstance(args[0], list) else None
        if specs is None or not all(isinstance(s, list) and len(s) == 2 for s in specs):
            raise self.fail("await* expects ((name expression) ...)", form)
        bindings = [(self.name(n, form), self.convert(e)) for n, e in specs]
        if self.coroutine_body:
            return LetStar(tuple(bindings), self.seq(args[1:]))
        return await_many(bindings, self.seq(args[1:]), self.options)

    def convert_cps_bind(self, form: list, args: list) -> Expression:
        from corolisp.sugar import cps_bind
        self.arity(form, 2)
        return cps_bind(self.params(args[0], form), self.convert(args[1]), self.seq(args[2:]))


def from_sexp(
    form: SExpression,
    registry: CoroutineNames | None = None,
    options: CompileOptions | None = None,
    coroutine_body: bool = False,
) -> Expression:
    """Convert a macro-expanded s-expression into an Expression tree.

    With `coroutine_body`, `await` and `await*` become plain bindings for the
    CPS engine to transform along with the rest of the body. Otherwise they
    are rewritten into continuation-passing calls right away.

    Raises CoroTranslationError for forms outside the supported set and for
    ordinary calls to registered coroutines.
    """
    return _Converter(registry, options, coroutine_body).convert(form)
