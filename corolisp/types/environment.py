"""Runtime environment for corolisp.

The Environment stores bindings of Symbols to evaluated Lisp values and supports
nested scopes via an `outer` link. Compiled code creates one frame per `let`,
per closure call and per generated binding.
"""

from __future__ import annotations

from io import StringIO
from typing import Optional

from corolisp import LispValue
from corolisp.types.errors import CoroInvalidSymbol, CoroUnboundSymbol
from corolisp.types.symbol import Symbol


class Environment:
    """Hierarchical mapping from Symbols to Lisp values."""

    __slots__ = ("vars", "outer")

    def __init__(self, outer: Optional[Environment] = None):
        self.vars: dict[Symbol, LispValue] = {}
        self.outer: Environment | None = outer

    def define(self, name: Symbol, value: LispValue) -> None:
        """Bind `name` to `value` in this frame.

        Raises CoroInvalidSymbol if `name` is not a Symbol.
        """
        if not isinstance(name, Symbol):
            raise CoroInvalidSymbol(f"Cannot define {name} as a symbol")
        self.vars[name] = value

    def find(self, symbol: Symbol) -> Optional[Environment]:
        """Find the nearest environment in the chain that contains `symbol`."""
        env: Optional[Environment] = self
        while env is not None:
            if symbol in env.vars:
                return env
            env = env.outer
        return None

    def root(self) -> Environment:
        env = self
        while env.outer is not None:
            env = env.outer
        return env

    def set(self, name: Symbol, value: LispValue) -> None:
        """Update the nearest binding for `name`.

        Assigning a name that is bound nowhere defines it in the root frame,
        which is how `setq` creates globals.
        """
        env = self.find(name)
        if env is None:
            self.root().define(name, value)
            return
        env.vars[name] = value

    def lookup(self, name: Symbol) -> LispValue:
        """Look up the value bound to `name`; CoroUnboundSymbol if absent."""
        env = self.find(name)
        if env is None:
            raise CoroUnboundSymbol(f"Cannot lookup unbound symbol {name}")
        return env.vars[name]

    def update(self, mapping: dict[Symbol, LispValue]) -> None:
        """Bulk-define a mapping of Symbol -> value in the current frame."""
        for k, v in mapping.items():
            self.define(k, v)

    def _write_vars(self, buffer: StringIO) -> None:
        buffer.write("{")
        buffer.write(", ".join(f"{k}: {v!r}" for k, v in self.vars.items()))
        buffer.write("}")

    def __str__(self) -> str:
        """Human-readable single-frame view with an indicator for parent."""
        with StringIO() as buffer:
            self._write_vars(buffer)
            if self.outer is not None:
                buffer.write(" -> ...")
            return buffer.getvalue()

    def __repr__(self) -> str:
        """Detailed chain representation for debugging purposes."""
        chain = []
        env: Optional[Environment] = self
        while env is not None:
            with StringIO() as frame:
                env._write_vars(frame)
                chain.append(frame.getvalue())
            env = env.outer
        return "<Environment chain: " + " -> ".join(chain) + ">"
