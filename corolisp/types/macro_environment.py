from __future__ import annotations

from typing import Callable

from corolisp import SExpression
from corolisp.types.bind import split_lambda_list
from corolisp.types.environment import Environment
from corolisp.types.errors import CoroArityError
from corolisp.types.symbol import GenSym, Symbol

MacroTransformer = Callable[[list[SExpression], Environment | None], SExpression]

_QUOTING_HEADS = (Symbol("quote"), Symbol("function"))


class TemplateMacro:
    """A macro declared with (defmacro name (params...) template).

    Expansion substitutes the unevaluated arguments for the parameters in
    the template. A `&rest`/`&body` parameter collects the remaining
    arguments and is spliced into the list it appears in.
    """

    __slots__ = ("name", "formals", "template")

    def __init__(self, name: Symbol, formals: list[Symbol], template: SExpression):
        self.name = name
        self.formals = formals
        self.template = template
        # Validate the lambda list once, at definition time.
        split_lambda_list(formals)

    def __repr__(self) -> str:
        return f"<macro {self.name}>"

    def __call__(self, args: list[SExpression], env: Environment | None) -> SExpression:
        required, optional, rest = split_lambda_list(self.formals)
        if len(args) < len(required):
            raise CoroArityError(
                f"Macro {self.name} expects at least {len(required)} argument(s), got {len(args)}")
        if rest is None and len(args) > len(required) + len(optional):
            raise CoroArityError(f"Too many arguments to macro {self.name}: {len(args)}")

        bindings: dict[Symbol, SExpression] = dict(zip(required, args))
        remaining = list(args[len(required):])
        for name in optional:
            bindings[name] = remaining.pop(0) if remaining else []
        return self._subst(self.template, bindings, rest, remaining)

    def _subst(self, expr, bindings, rest, rest_args):
        if isinstance(expr, Symbol):
            if expr == rest:
                return list(rest_args)
            return bindings.get(expr, expr)
        if isinstance(expr, list):
            result = []
            for item in expr:
                if rest is not None and item == rest:
                    result.extend(rest_args)
                else:
                    result.append(self._subst(item, bindings, rest, rest_args))
            return result
        return expr


class MacroEnvironment:
    """
    Macro environment mapping macro names (Symbols) to template macros
    or Python callable transformer functions.

    Features:
    - Head-position macro expansion
    - Recursive nested expansion, skipping quoted data
    - Fresh symbol generation for hygienic expansions
    """

    def __init__(self, gensym: GenSym | None = None):
        self.macros: dict[Symbol, MacroTransformer] = {}
        self._gensym = gensym if gensym is not None else GenSym()

    def define_macro(self, name: Symbol, transformer: MacroTransformer) -> None:
        self.macros[name] = transformer

    def define_template(self, name: Symbol, formals: list[Symbol], template: SExpression) -> None:
        self.define_macro(name, TemplateMacro(name, formals, template))

    def is_macro(self, sym: SExpression) -> bool:
        return isinstance(sym, Symbol) and sym in self.macros

    def gen_sym(self, prefix: str = "G") -> Symbol:
        return self._gensym(prefix)

    # Single-step head expansion
    def expand_1(self, form: SExpression, env: Environment | None = None) -> SExpression:
        """Expand only the head-position macro if present."""
        if isinstance(form, list) and form and self.is_macro(form[0]):
            # Transformers must accept (args, env) and return an S-expression
            return self.macros[form[0]](form[1:], env)
        return form  # Not a macro call, unchanged

    # Fixed-point head expansion
    def macro_expand_head(self, form: SExpression, env: Environment | None = None) -> SExpression:
        cur = form
        while True:
            nxt = self.expand_1(cur, env)
            # Use structural equality to detect fixpoint (not object identity)
            if nxt == cur:
                return cur
            cur = nxt

    # Full expansion
    def macro_expand_all(self, form: SExpression, env: Environment | None = None) -> SExpression:
        expanded = self.macro_expand_head(form, env)

        if isinstance(expanded, list):
            # Do not recurse into (quote ...) or (function name) data.
            if expanded and expanded[0] in _QUOTING_HEADS:
                target = expanded[1] if len(expanded) == 2 else None
                if expanded[0] == Symbol("function") and isinstance(target, list):
                    return [expanded[0], self.macro_expand_all(target, env)]
                return expanded
            return [self.macro_expand_all(x, env) for x in expanded]

        return expanded
