"""Text rendering of s-expressions, used by error messages and for
inspecting the code the CPS engine generates."""

import json
from typing import Optional

from corolisp.types.nil import NilType
from corolisp.types.symbol import Symbol

# ----------------- Defaults -----------------
DEFAULT_OPTIONS = {
    "max_line_length": 80,
    "max_depth": None,
}


def pformat(obj) -> str:
    """Single-line rendering of an s-expression."""
    if isinstance(obj, Symbol):
        return obj.id
    if isinstance(obj, NilType) or obj is None:
        return "nil"
    if obj is True:
        return "#t"
    if obj is False:
        return "#f"
    if isinstance(obj, str):
        return json.dumps(obj)
    if isinstance(obj, (list, tuple)):
        return "(" + " ".join(pformat(x) for x in obj) + ")"
    return str(obj)


# ----------------- Pretty printer -----------------
def pprint_expr(
    expr,
    indent: int = 0,
    options: Optional[dict] = None,
    _current_depth: int = 0,
) -> str:
    """Multi-line rendering: lists that do not fit on one line put each
    element after the head on its own indented line."""
    options = options or DEFAULT_OPTIONS
    max_depth = options.get("max_depth")
    if max_depth is not None and _current_depth >= max_depth:
        return "…"

    if not isinstance(expr, list) or not expr:
        return pformat(expr)

    single_line = pformat(expr)
    if len(single_line) + indent * 2 <= options.get("max_line_length", 80):
        return single_line

    parts = [pprint_expr(e, indent + 1, options, _current_depth + 1) for e in expr]
    aligned_lines = ["(" + parts[0]]
    for part in parts[1:]:
        aligned_lines.append("  " * (indent + 1) + part)
    aligned_lines[-1] += ")"
    return "\n".join(aligned_lines)

