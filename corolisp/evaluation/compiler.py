"""Closure compiler: renders Expression trees into executable Python closures.

This is the "run code" phase, kept apart from the CPS engine, which only
builds trees. Every form of the model is compiled in direct style, so
expressions can be run both before and after CPS conversion.

A compiled node is a function `run(env) -> value`. Calls in tail position
of a lambda body return TailCall objects, which Closure.__call__ trampolines.
"""

from __future__ import annotations

from typing import Callable, Sequence

from corolisp import LispValue
from corolisp.ambient import CAPTURE_CONTEXT, RESTORE_CONTEXT
from corolisp.evaluation.apply import apply
from corolisp.syntax.expressions import (
    And, Atom, Call, Cond, CoroutineCall, Expression, FunctionRef, If, Inline,
    Lambda, Let, LetStar, Or, Prog1, Prog2, Progn, Quote, SaveContext, Setq, While,
)
from corolisp.syntax.unparse import describe
from corolisp.types.environment import Environment
from corolisp.types.errors import CoroMisuseError, CoroTranslationError
from corolisp.types.lambda_fn import Closure, trampoline
from corolisp.types.nil import Nil, is_true
from corolisp.types.symbol import Symbol

Compiled = Callable[[Environment], LispValue]


def _constant(value: LispValue) -> Compiled:
    return lambda env: value


def _lookup(name: Symbol) -> Compiled:
    return lambda env: env.lookup(name)


def _compile_body(exprs: Sequence[Expression], tail: bool) -> Compiled:
    if not exprs:
        return _constant(Nil)
    if len(exprs) == 1:
        return compile_expr(exprs[0], tail)
    leading = [compile_expr(e) for e in exprs[:-1]]
    last = compile_expr(exprs[-1], tail)

    def run(env: Environment) -> LispValue:
        for step in leading:
            step(env)
        return last(env)
    return run


def compile_expr(expr: Expression, tail: bool = False) -> Compiled:
    match expr:
        case Atom(value) if isinstance(value, Symbol):
            return _lookup(value)
        case Atom(value) | Quote(value):
            return _constant(value)
        case FunctionRef(name):
            return _lookup(name) if isinstance(name, Symbol) else _constant(name)

        case Lambda(params, body):
            formals = list(params)
            run_body = _compile_body(body, tail=True)
            return lambda env: Closure(formals, run_body, env)

        case Setq(name, value):
            run_value = compile_expr(value)

            def run(env: Environment) -> LispValue:
                result = run_value(env)
                env.set(name, result)
                return result
            return run

        case CoroutineCall():
            source = describe(expr)

            def run(env: Environment) -> LispValue:
                raise CoroMisuseError(f"{source} used outside a coroutine body")
            return run

        case Call(callee, args):
            run_callee = compile_expr(callee)
            run_args = [compile_expr(a) for a in args]

            def run(env: Environment) -> LispValue:
                fn = run_callee(env)
                return apply(fn, [a(env) for a in run_args], env, tail)
            return run

        case If(cond, then, else_):
            run_cond = compile_expr(cond)
            run_then = compile_expr(then, tail)
            run_else = _compile_body(else_, tail)
            return lambda env: run_then(env) if is_true(run_cond(env)) else run_else(env)

        # The last operand's value is returned as-is; an earlier false one yields nil.
        case And(()):
            return _constant(True)
        case And(conds):
            leading = [compile_expr(c) for c in conds[:-1]]
            last = compile_expr(conds[-1])

            def run(env: Environment) -> LispValue:
                for step in leading:
                    if not is_true(step(env)):
                        return Nil
                return last(env)
            return run

        case Or(()):
            return _constant(Nil)
        case Or(conds):
            leading = [compile_expr(c) for c in conds[:-1]]
            last = compile_expr(conds[-1])

            def run(env: Environment) -> LispValue:
                for step in leading:
                    result = step(env)
                    if is_true(result):
                        return result
                return last(env)
            return run

        case Cond(clauses):
            compiled = [(compile_expr(test), _compile_body(body, tail) if body else None)
                        for test, *body in clauses]

            def run(env: Environment) -> LispValue:
                for run_test, run_body in compiled:
                    value = run_test(env)
                    if is_true(value):
                        return value if run_body is None else run_body(env)
                return Nil
            return run

        case Progn(exprs) | Inline(exprs):
            return _compile_body(exprs, tail)

        case Let(bindings, body):
            names = [name for name, _ in bindings]
            inits = [compile_expr(init) for _, init in bindings]
            run_body = _compile_body(body, tail)

            def run(env: Environment) -> LispValue:
                values = [init(env) for init in inits]
                scope = Environment(outer=env)
                for name, value in zip(names, values):
                    scope.define(name, value)
                return run_body(scope)
            return run

        case LetStar(bindings, body):
            steps = [(name, compile_expr(init)) for name, init in bindings]
            run_body = _compile_body(body, tail)

            def run(env: Environment) -> LispValue:
                scope = Environment(outer=env)
                for name, init in steps:
                    scope.define(name, init(scope))
                return run_body(scope)
            return run

        case While(cond, body):
            run_cond = compile_expr(cond)
            run_body = _compile_body(body, tail=False)

            def run(env: Environment) -> LispValue:
                while is_true(run_cond(env)):
                    run_body(env)
                return Nil
            return run

        case Prog1(first, rest):
            run_first = compile_expr(first)
            run_rest = _compile_body(rest, tail=False)

            def run(env: Environment) -> LispValue:
                result = run_first(env)
                run_rest(env)
                return result
            return run

        case Prog2(first, second, rest):
            return compile_expr(Progn((first, Prog1(second, rest))), tail)

        case SaveContext(body):
            run_body = _compile_body(body, tail=False)

            def run(env: Environment) -> LispValue:
                ctx = CAPTURE_CONTEXT()
                try:
                    return run_body(env)
                finally:
                    RESTORE_CONTEXT(ctx)
            return run

    raise CoroTranslationError(f"Cannot compile unrecognised form: {describe(expr)}")


def evaluate(expr: Expression, env: Environment) -> LispValue:
    """Compile and run `expr` in `env`."""
    return trampoline(compile_expr(expr)(env))
