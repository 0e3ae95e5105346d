from __future__ import annotations
import sys
from itertools import count


class Symbol:
    __slots__ = ("id",)

    def __init__(self, name: str):
        # Intern to ensure fast equality/hash and reduce memory
        self.id = sys.intern(name)

    def __eq__(self, other: Symbol) -> bool:
        return isinstance(other, Symbol) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self):
        return f"Symbol({self.id!r})"

    def __str__(self):
        return self.id

    @property
    def is_generated(self) -> bool:
        return self.id.startswith(GENSYM_MARKER)


# The reader never produces symbols starting with this marker (it is not a
# valid symbol start in source), so generated names cannot capture user names.
GENSYM_MARKER = "%"


class GenSym:
    """Fresh symbol factory: GenSym()("k") -> Symbol('%k1'), Symbol('%k2'), ..."""

    def __init__(self):
        self._counter = count(1)

    def __call__(self, prefix: str = "g") -> Symbol:
        return Symbol(f"{GENSYM_MARKER}{prefix}{next(self._counter)}")


# Process-wide supply shared by the CPS engine and the binding sugar, so code
# generated by separate transformations never reuses a name.
gensym = GenSym()
