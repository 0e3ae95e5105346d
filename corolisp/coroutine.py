"""Coroutine definition layer.

define_coroutine turns a direct-style body into a Coroutine: the body is
fully macro-expanded, converted to the Expression model, CPS-transformed
with "call the continuation with the result" as the outermost
continuation, and compiled as a closure taking one extra trailing
continuation parameter.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

from corolisp import LispValue, SExpression
from corolisp.config import CompileOptions, default_options
from corolisp.cps.transform import transform_one
from corolisp.debug_utils.pprint import pformat
from corolisp.evaluation.compiler import evaluate
from corolisp.syntax.expressions import Atom, Call, Expression, Lambda, Progn
from corolisp.syntax.forms import from_sexp
from corolisp.syntax.unparse import pretty
from corolisp.types.bind import BODY, OPTIONAL, REST
from corolisp.types.coroutine_fn import Coroutine
from corolisp.types.environment import Environment
from corolisp.types.errors import CoroMisuseError, CoroTranslationError
from corolisp.types.macro_environment import MacroEnvironment
from corolisp.types.symbol import Symbol, gensym

logger = logging.getLogger(__name__)


class CoroutineRegistry:
    """Process-wide record of which names are coroutines.

    A name is reserved while its own body compiles, so a recursive ordinary
    call inside the body is rejected like any other.
    """

    def __init__(self):
        self._coroutines: Dict[Symbol, Optional[Coroutine]] = {}

    def reserve(self, name: Symbol) -> None:
        self._coroutines.setdefault(name, None)

    def register(self, coroutine: Coroutine) -> None:
        self._coroutines[coroutine.name] = coroutine

    def discard(self, name: Symbol) -> None:
        self._coroutines.pop(name, None)

    def is_coroutine(self, name: Symbol) -> bool:
        return name in self._coroutines

    def get(self, name: Symbol) -> Optional[Coroutine]:
        return self._coroutines.get(name)

    def __contains__(self, name: Symbol) -> bool:
        return self.is_coroutine(name)


# Module-level singleton
_registry: Optional[CoroutineRegistry] = None


def get_registry() -> CoroutineRegistry:
    global _registry
    if _registry is None:
        _registry = CoroutineRegistry()
    return _registry


def _check_params(name: Symbol, params: Sequence[SExpression]) -> list[Symbol]:
    for p in params:
        if not isinstance(p, Symbol):
            raise CoroTranslationError(f"Coroutine {name} parameter must be a symbol, got {p!r}")
        if p in (OPTIONAL, REST, BODY):
            raise CoroTranslationError(
                f"Coroutine {name} takes positional parameters only, found {p}")
    if len(set(params)) != len(params):
        raise CoroTranslationError(f"Coroutine {name} has duplicate parameters")
    return list(params)


def cps_convert(
    body: Sequence[SExpression],
    *,
    env: Environment | None = None,
    macros: MacroEnvironment | None = None,
    registry: CoroutineRegistry | None = None,
    options: CompileOptions | None = None,
) -> tuple[Symbol, Expression]:
    """Expand, convert and CPS-transform a coroutine body.

    Returns the fresh continuation parameter and the transformed body, which
    delivers its result by calling that parameter.
    """
    expanded = [macros.macro_expand_all(form, env) if macros is not None else form
                for form in body]
    source = Progn(tuple(from_sexp(form, registry, options, coroutine_body=True)
                         for form in expanded))
    k = gensym("k")
    return k, transform_one(source, lambda v: Call(Atom(k), (v,)), options)


def define_coroutine(
    name: Symbol,
    params: Sequence[Symbol],
    body: Sequence[SExpression],
    *,
    env: Environment,
    macros: MacroEnvironment | None = None,
    registry: CoroutineRegistry | None = None,
    options: CompileOptions | None = None,
) -> Coroutine:
    """Compile `body` as a coroutine and bind it to `name` in `env`.

    Raises CoroTranslationError if the body uses forms outside the supported
    set or calls a coroutine without coroutine-call; nothing is registered
    or bound in that case.
    """
    if not isinstance(name, Symbol):
        raise CoroTranslationError(f"Coroutine name must be a symbol, got {name!r}")
    formals = _check_params(name, params)
    registry = registry if registry is not None else get_registry()
    options = options if options is not None else default_options()

    already_registered = registry.is_coroutine(name)
    registry.reserve(name)
    try:
        k, cps = cps_convert(body, env=env, macros=macros, registry=registry, options=options)
        closure = evaluate(Lambda((*formals, k), (cps,)), env)
    except Exception:
        if not already_registered:
            registry.discard(name)
        raise

    closure.name = str(name)
    coroutine = Coroutine(name, formals, closure, expansion=cps)
    registry.register(coroutine)
    env.define(name, coroutine)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Defined coroutine %s:\n%s", name, pretty(cps))
    return coroutine


def coroutine_call(fn, *args: LispValue) -> LispValue:
    """Marker for a suspending call; only meaningful inside a coroutine body."""
    source = pformat([Symbol("coroutine-call"), fn, *args])
    raise CoroMisuseError(
        f"{source} used outside a coroutine body; "
        "write it inside defcoroutine instead")
