from __future__ import annotations

from typing import Sequence

from corolisp import LispValue
from corolisp.types.environment import Environment
from corolisp.types.errors import CoroArityError
from corolisp.types.nil import Nil
from corolisp.types.symbol import Symbol

OPTIONAL = Symbol("&optional")
REST = Symbol("&rest")
BODY = Symbol("&body")


def split_lambda_list(formals: Sequence[Symbol]) -> tuple[list[Symbol], list[Symbol], Symbol | None]:
    """Split a lambda list into (required, optional, rest-name).

    Accepts `a b &optional c d &rest r` (`&body` is an alias of `&rest`).
    """
    required: list[Symbol] = []
    optional: list[Symbol] = []
    rest: Symbol | None = None
    target = required
    it = iter(formals)
    for formal in it:
        if formal == OPTIONAL:
            if target is optional:
                raise CoroArityError("Malformed parameter list: repeated &optional")
            target = optional
        elif formal in (REST, BODY):
            rest = next(it, None)
            if rest is None:
                raise CoroArityError("Malformed parameter list: &rest/&body must be followed by a name")
            if next(it, None) is not None:
                raise CoroArityError("Malformed parameter list: only one name may follow &rest/&body")
        else:
            target.append(formal)
    return required, optional, rest


def bind_arguments(
    formals: Sequence[Symbol],
    supplied_args: Sequence[LispValue],
    closure_env: Environment,
) -> Environment:
    """
    Bind supplied argument values to a lambda list.

    Supports:
    - Positional required parameters
    - &optional names, defaulting to nil when not supplied
    - &rest / &body (alias) capturing remaining supplied args as a list

    Returns a new Environment whose outer is the closure_env.
    """
    required, optional, rest = split_lambda_list(formals)
    supplied = list(supplied_args)
    local_env = Environment(outer=closure_env)

    if len(supplied) < len(required):
        missing = required[len(supplied):]
        raise CoroArityError(
            f"Too few arguments; missing {len(missing)} parameter(s): {[str(s) for s in missing]}"
        )
    for name, value in zip(required, supplied):
        local_env.define(name, value)
    supplied = supplied[len(required):]

    for name in optional:
        local_env.define(name, supplied.pop(0) if supplied else Nil)

    if rest is not None:
        local_env.define(rest, supplied)
    elif supplied:
        raise CoroArityError(f"Too many arguments: {supplied}")

    return local_env
