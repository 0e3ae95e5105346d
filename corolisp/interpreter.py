from __future__ import annotations

from corolisp import LispValue, SExpression
from corolisp.builtin.env_builtin import register
from corolisp.builtin.macro_builtin import register as register_macros
from corolisp.config import CompileOptions, default_options
from corolisp.coroutine import CoroutineRegistry, cps_convert, define_coroutine
from corolisp.evaluation.compiler import evaluate
from corolisp.reader.parser import TokenStream, lex, read_all
from corolisp.syntax.expressions import Lambda
from corolisp.syntax.forms import from_sexp
from corolisp.syntax.unparse import to_sexp
from corolisp.types.environment import Environment
from corolisp.types.errors import CoroArityError, CoroInvalidSymbol, CoroTranslationError
from corolisp.types.macro_environment import MacroEnvironment
from corolisp.types.nil import Nil, NilType
from corolisp.types.symbol import Symbol

DEFCOROUTINE = Symbol("defcoroutine")
DEFINE = Symbol("define")
DEFMACRO = Symbol("defmacro")
PROGN = Symbol("progn")


def _param_list(form: SExpression, what: str) -> list[Symbol]:
    if isinstance(form, NilType):
        return []
    if not isinstance(form, list):
        raise CoroTranslationError(f"{what} parameter list must be a list, got {form!r}")
    return list(form)


class Interpreter:
    """
    Orchestrates reading, expanding and evaluating corolisp code.
    Maintains an Environment, a MacroEnvironment and a coroutine registry
    across calls.
    """

    def __init__(
        self,
        options: CompileOptions | None = None,
        registry: CoroutineRegistry | None = None,
    ):
        self.options = options if options is not None else default_options()
        self.registry = registry if registry is not None else CoroutineRegistry()

        self.env: Environment = Environment()
        register(self.env)

        self.macros: MacroEnvironment = MacroEnvironment()
        register_macros(self.macros)

        self._toplevel = {
            DEFCOROUTINE: self._defcoroutine,
            DEFINE: self._define,
            DEFMACRO: self._defmacro,
            PROGN: self._progn,
        }

    def eval(self, code: str) -> LispValue:
        stream = TokenStream(lex(code))
        results: list[LispValue] = [self.eval_form(expr) for expr in stream.parse_all()]
        if not results:
            return Nil
        if len(results) == 1:
            return results[0]
        return results

    def eval_form(self, form: SExpression) -> LispValue:
        """Evaluate one top-level form."""
        form = self.macros.macro_expand_head(form, self.env)
        if not (isinstance(form, list) and form):
            return self._run(form)

        handler = self._toplevel.get(form[0]) if isinstance(form[0], Symbol) else None
        if handler is not None:
            return handler(form[1:])
        return self._run(form)

    def _defcoroutine(self, args: list[SExpression]) -> LispValue:
        if len(args) < 2:
            raise CoroArityError("defcoroutine requires a name and a parameter list")
        name, params, *body = args
        return define_coroutine(
            name, _param_list(params, "defcoroutine"), body,
            env=self.env, macros=self.macros,
            registry=self.registry, options=self.options,
        )

    def _define(self, args: list[SExpression]) -> LispValue:
        if len(args) != 2:
            raise CoroArityError("define requires a name and a value")
        name, value = args
        if not isinstance(name, Symbol):
            raise CoroInvalidSymbol(f"Cannot define {name!r}")
        self.env.define(name, self._run(value))
        return name

    def _defmacro(self, args: list[SExpression]) -> LispValue:
        if len(args) != 3:
            raise CoroArityError("defmacro requires a name, a parameter list and one template")
        name, params, template = args
        if not isinstance(name, Symbol):
            raise CoroInvalidSymbol(f"Cannot define macro {name!r}")
        self.macros.define_template(name, _param_list(params, "defmacro"), template)
        return name

    def _progn(self, args: list[SExpression]) -> LispValue:
        # Subforms of a top-level progn stay top-level, so they may define things.
        result: LispValue = Nil
        for form in args:
            result = self.eval_form(form)
        return result

    def _run(self, form: SExpression) -> LispValue:
        expanded = self.macros.macro_expand_all(form, self.env)
        return evaluate(from_sexp(expanded, self.registry, self.options), self.env)

    def expand(self, code: str) -> SExpression:
        """The CPS expansion of a coroutine body, as an s-expression.

        `code` is either a single (defcoroutine name (params) body...) form
        or the body forms themselves. Nothing is defined or registered.
        """
        forms = read_all(code)
        params: list[Symbol] = []
        if len(forms) == 1 and isinstance(forms[0], list) and forms[0][:1] == [DEFCOROUTINE]:
            if len(forms[0]) < 3:
                raise CoroArityError("defcoroutine requires a name and a parameter list")
            _, _, raw_params, *forms = forms[0]
            params = _param_list(raw_params, "defcoroutine")
        k, cps = cps_convert(forms, env=self.env, macros=self.macros,
                             registry=self.registry, options=self.options)
        return to_sexp(Lambda((*params, k), (cps,)))
