# Core type aliases for corolisp's data model.
# Source forms are plain Python values (lists, Symbols, Nil, numbers, strings);
# they are converted to the Expression model in corolisp.syntax before the CPS
# engine sees them.
#
# Naming guidance:
# - SExpression: reader/macro code, code-as-data.
# - LispValue:  runtime values produced by compiled code.

from typing import Any, Callable

LispValue = Any
SExpression = LispValue

# A Python-level continuation: called with one result to resume the caller.
ContinuationFn = Callable[[LispValue], LispValue]
