from __future__ import annotations


class NilType:
    _instance: NilType | None = None

    def __new__(cls):
        # Singleton: copies and unpickling must still compare identical
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self): return "nil"
    def __bool__(self): return False

    def __eq__(self, other):
        return isinstance(other, NilType)

    def __hash__(self):
        return hash("nil")


Nil = NilType()


def is_true(value) -> bool:
    """Lisp truthiness: everything except nil, False and None is true."""
    return not (value is Nil or value is False or value is None)
