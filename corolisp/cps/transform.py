"""CPS transformation engine.

`transform_one(expr, cont)` rewrites `expr` so that its result is delivered
to the code produced by the meta-level continuation `cont`, and every
coroutine call receives an explicit continuation closure instead of
returning. `transform_sequence` does the same for a list of expressions
evaluated left to right.

Every case either recurses on a strictly smaller expression or rewrites
into forms already handled (cond -> or/if, inline -> progn,
prog2 -> progn + prog1), so the case analysis is exhaustive and
terminates. Subtrees proven atomic are kept in direct style.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from corolisp.ambient import CAPTURE_CONTEXT, RESTORE_CONTEXT
from corolisp.config import CompileOptions, default_options
from corolisp.cps.atomicity import AtomicityCache
from corolisp.syntax.expressions import (
    NIL, TRUE, And, Atom, Call, Cond, Continuation, CoroutineCall, Expression,
    FunctionRef, If, Inline, Lambda, Let, LetStar, Or, Prog1, Prog2, Progn,
    Quote, SaveContext, Setq, While,
)
from corolisp.syntax.unparse import describe
from corolisp.syntax.walk import mentioned_names
from corolisp.types.errors import CoroTranslationError
from corolisp.types.symbol import GenSym, Symbol, gensym as shared_gensym

logger = logging.getLogger(__name__)

SequenceContinuation = Callable[[tuple[Expression, ...]], Expression]


def _is_leaf(expr: Expression) -> bool:
    return isinstance(expr, (Atom, FunctionRef, Lambda, Quote))


def _is_variable(expr: Expression) -> bool:
    return (isinstance(expr, Atom) and expr.is_variable
            or isinstance(expr, FunctionRef) and isinstance(expr.name, Symbol))


class Transformer:
    """One CPS transformation run: options, fresh-name supply, atomicity memo."""

    def __init__(self, options: CompileOptions | None = None, gensym: GenSym | None = None):
        self.options = options if options is not None else default_options()
        self.gensym = gensym if gensym is not None else shared_gensym
        self.atomic = AtomicityCache(self.options.atomicity_check)

    # --- helpers -----------------------------------------------------

    def bind(self, expr: Expression, cont: Continuation, prefix: str = "v") -> Expression:
        """(let ((v expr)) cont(v)) with a fresh v."""
        v = self.gensym(prefix)
        return Let(((v, expr),), (cont(Atom(v)),))

    def closure(self, cont: Continuation) -> Lambda:
        """A one-argument runtime closure whose body is cont(argument)."""
        r = self.gensym("r")
        return Lambda((r,), (cont(Atom(r)),))

    def scoped(
        self,
        names: Sequence[Symbol],
        cont: Continuation,
        build: Callable[[Continuation], Expression],
    ) -> Expression:
        """Build code that runs inside a scope binding `names`, then continues with `cont`.

        The continuation is generated once, up front. When it mentions one of
        the scoped names it is hoisted into a closure created outside the
        scope, so the inner bindings cannot shadow what it refers to.
        """
        r = self.gensym("r")
        rest = cont(Atom(r))
        if set(names).isdisjoint(mentioned_names(rest)):
            return build(lambda x: Let(((r, x),), (rest,)))
        k = self.gensym("k")
        return Let(
            ((k, Lambda((r,), (rest,))),),
            (build(lambda x: Call(Atom(k), (x,))),),
        )

    # --- entry points ------------------------------------------------

    def sequence(self, exprs: Sequence[Expression], cont: SequenceContinuation) -> Expression:
        if not exprs:
            return cont(())
        head, *tail = exprs
        return self.one(head, lambda h: self.sequence(tail, lambda t: cont((h, *t))))

    def one(self, expr: Expression, cont: Continuation) -> Expression:
        match expr:
            case Quote() | FunctionRef():
                return cont(expr)
            case Atom() | Lambda():
                return self.bind(expr, cont)
        if self.atomic(expr):
            return self.bind(expr, cont)

        match expr:
            case And(()):
                return self.one(TRUE, cont)
            case And((c,)):
                return self.one(c, cont)
            case And((c, *rest)):
                return self.one(c, lambda x: If(
                    x, self.one(And(tuple(rest)), cont), (cont(NIL),)))

            case Or(()):
                return self.one(NIL, cont)
            case Or((c,)):
                return self.one(c, cont)
            case Or((c, *rest)):
                return self.one(c, lambda x: If(
                    x, cont(x), (self.one(Or(tuple(rest)), cont),)))

            case Cond(()):
                return self.one(NIL, cont)
            case Cond(((test,), *rest)):
                return self.one(Or((test, Cond(tuple(rest)))), cont)
            case Cond(((test, *body), *rest)):
                return self.one(If(test, Progn(tuple(body)), (Cond(tuple(rest)),)), cont)

            case If(cond, then, else_):
                return self.one(cond, lambda x: If(
                    x, self.one(then, cont), (self.one(Progn(else_), cont),)))

            case Progn(()) | Inline(()):
                return self.one(NIL, cont)
            case Progn((e,)) | Inline((e,)):
                return self.one(e, cont)
            case Progn((e, *rest)):
                return self.one(e, lambda _: self.one(Progn(tuple(rest)), cont))
            case Inline((e, *rest)):
                return self.one(e, lambda _: self.one(Inline(tuple(rest)), cont))

            case Let((), body) | LetStar((), body):
                return self.one(Progn(body), cont)
            case Let(bindings, body):
                names = [name for name, _ in bindings]
                inits = [init for _, init in bindings]
                if all(self.atomic(init) for init in inits):
                    return self.scoped(names, cont, lambda k: Let(
                        bindings, (self.one(Progn(body), k),)))
                return self.sequence(inits, lambda xs: self.scoped(names, cont, lambda k: Let(
                    tuple(zip(names, xs)), (self.one(Progn(body), k),))))
            case LetStar(((name, init), *rest), body):
                return self.one(init, lambda x: self.scoped([name], cont, lambda k: Let(
                    ((name, x),), (self.one(LetStar(tuple(rest), body), k),))))

            case While(cond, body):
                return self._loop(cond, body, cont)

            case SaveContext(body):
                ctx = self.gensym("ctx")
                restore = Call(Atom(RESTORE_CONTEXT), (Atom(ctx),))
                return Let(
                    ((ctx, Call(Atom(CAPTURE_CONTEXT), ())),),
                    (self.one(Prog1(Progn(body), (restore,)), cont),),
                )

            case Prog1(first, ()):
                return self.one(first, cont)
            case Prog1(first, rest):
                # x is a fresh variable or a constant; later forms cannot change it.
                return self.one(first, lambda x: self.one(Progn(rest), lambda _: cont(x)))
            case Prog2(first, second, rest):
                return self.one(Progn((first, Prog1(second, rest))), cont)

            case Setq(name, value):
                return self.one(value, lambda x: self.bind(Setq(name, x), cont))

            case CoroutineCall(fn, args):
                return self._call(fn, args, lambda f, xs: Call(f, (*xs, self.closure(cont))))
            case Call(callee, args):
                return self._call(callee, args, lambda f, xs: self.bind(Call(f, xs), cont))

        raise CoroTranslationError(f"Cannot CPS-transform unrecognised form: {describe(expr)}")

    def _call(
        self,
        callee: Expression,
        args: tuple[Expression, ...],
        emit: Callable[[Expression, tuple[Expression, ...]], Expression],
    ) -> Expression:
        # The callee is read before the arguments run. A variable callee can
        # stay in place only when no argument can reassign it.
        if _is_leaf(callee) and (not _is_variable(callee) or all(map(_is_leaf, args))):
            return self.sequence(args, lambda xs: emit(callee, xs))
        return self.sequence((callee, *args), lambda xs: emit(xs[0], xs[1:]))

    def _loop(self, cond: Expression, body: tuple[Expression, ...], cont: Continuation) -> Expression:
        """(let ((loop nil)) (setq loop (lambda () ...)) (loop))

        The slot is declared first and the closure assigned into it, so the
        closure can call itself through the slot.
        """
        loop = self.gensym("loop")
        again = Call(Atom(loop), ())
        step = self.one(cond, lambda x: If(
            x, self.one(Progn(body), lambda _: again), (cont(NIL),)))
        return Let(((loop, NIL),), (Setq(loop, Lambda((), (step,))), again))


def transform_one(
    expr: Expression,
    cont: Continuation,
    options: CompileOptions | None = None,
    gensym: GenSym | None = None,
) -> Expression:
    """CPS-convert `expr`, delivering its result to `cont`."""
    transformer = Transformer(options, gensym)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("CPS transform (atomicity check %s): %s",
                     "on" if transformer.options.atomicity_check else "off", describe(expr))
    return transformer.one(expr, cont)


def transform_sequence(
    exprs: Sequence[Expression],
    cont: SequenceContinuation,
    options: CompileOptions | None = None,
    gensym: GenSym | None = None,
) -> Expression:
    """CPS-convert `exprs` left to right, delivering all results to `cont`."""
    return Transformer(options, gensym).sequence(exprs, cont)
