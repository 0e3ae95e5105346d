"""
  Lisp Reader, Lexer and Parser

- Streaming, lazy parsing
- Emits Python primitives instead of Cons cells:

    - nil -> Nil
    - #t / #f -> True / False
    - lists -> Python list
    - symbols -> Symbol
    - strings -> str
    - numbers -> int/float
    - quote forms -> [quote, expr], #'f -> [function, f]
"""

from __future__ import annotations

import ast
import re
from typing import Iterator, Optional

from corolisp import SExpression
from corolisp.reader.reader_macros import reader_macros
from corolisp.types.errors import CoroSyntaxError
from corolisp.types.nil import Nil
from corolisp.types.symbol import GENSYM_MARKER, Symbol


TOKEN_RE = re.compile(
    r"\s*("
    r"(?P<comment>;[^\n]*)"  # single-line comment
    r"|(?P<ml_start>#\|)"  # multi-line comment start
    r"|(?P<quote>')"  # '
    r"|(?P<lparen>\()"  # (
    r"|(?P<rparen>\))"  # )
    r'|(?P<string>"(?:\\.|[^\\"])*?")'  # double-quoted strings
    r"|(?P<char>#\\(?:newline|space|tab|return|.))"  # character literals
    r"|(?P<func_shorthand>#')"  # function shorthand #'
    r"|(?P<radix>#b[01]+|#o[0-7]+|#x[0-9A-Fa-f]+)"  # binary, octal, hex
    r'|(?P<symbol>[^\s()\'",;]+)'  # fallback: symbols
    r")",
    re.DOTALL,
)

NAMED_CHARS: dict[str, str] = {
    "space": " ",
    "newline": "\n",
    "tab": "\t",
    "return": "\r",
}

BOOLEANS: dict[str, bool] = {"#t": True, "#f": False}

INT_RE = re.compile(r"[-+]?\d+")
FLOAT_RE = re.compile(r"[-+]?(\d+\.\d*|\.\d+|\d+)([eE][-+]?\d+)?")


def lex(source: str) -> Iterator[tuple[str, str]]:
    """Token generator: yields (token_type, token_value) tuples."""
    pos = 0
    n = len(source)

    def skip_whitespace_and_comments():
        nonlocal pos
        while pos < n:
            if source[pos].isspace():
                pos += 1
                continue
            match = TOKEN_RE.match(source, pos)
            if match is None:
                raise CoroSyntaxError(f"Unexpected char at {pos}: {source[pos]!r}")
            if match.group("comment"):
                pos = match.end()
            elif match.group("ml_start"):
                pos = match.end()
                depth = 1
                while depth > 0:
                    if pos >= n:
                        raise CoroSyntaxError("Unterminated multi-line comment")
                    if source.startswith("#|", pos):
                        depth += 1
                        pos += 2
                    elif source.startswith("|#", pos):
                        depth -= 1
                        pos += 2
                    else:
                        pos += 1
            else:
                break

    while pos < n:
        skip_whitespace_and_comments()
        if pos >= n:
            break
        m = TOKEN_RE.match(source, pos)
        if m is None:
            raise CoroSyntaxError(f"Unknown token at {pos}")
        for nm in TOKEN_RE.groupindex:
            if m.group(nm):
                yield nm, m.group(nm)
                pos = m.end()
                break


def _atom(tok_val: str) -> SExpression:
    if tok_val.lower() == "nil":
        return Nil
    if tok_val in BOOLEANS:
        return BOOLEANS[tok_val]
    if INT_RE.fullmatch(tok_val):
        return int(tok_val)
    if FLOAT_RE.fullmatch(tok_val):
        return float(tok_val)
    if tok_val.startswith(GENSYM_MARKER):
        raise CoroSyntaxError(f"Symbols may not start with {GENSYM_MARKER!r}: {tok_val}")
    return Symbol(tok_val)


class TokenStream:
    def __init__(self, token_iter: Iterator[tuple[str, str]]):
        self.tokens = iter(token_iter)
        self.buffer: list[tuple[str, str]] = []

    def peek(self) -> tuple[Optional[str], Optional[str]]:
        if not self.buffer:
            try:
                self.buffer.append(next(self.tokens))
            except StopIteration:
                return None, None
        return self.buffer[0]

    def advance(self) -> tuple[Optional[str], Optional[str]]:
        if self.buffer:
            return self.buffer.pop(0)
        return next(self.tokens, (None, None))

    def parse_expr(self) -> SExpression:
        tok_type, tok_val = self.peek()
        if tok_type is None:
            return None

        # Reader macros first: ' and #'
        if tok_val in reader_macros.macros:
            self.advance()
            return reader_macros.dispatch(tok_val, self)

        if tok_type == "symbol":
            self.advance()
            return _atom(tok_val)

        if tok_type == "lparen":
            self.advance()
            items = []
            while True:
                if self.peek()[0] == "rparen":
                    self.advance()
                    break
                if self.peek()[0] is None:
                    raise CoroSyntaxError("Unmatched '('")
                items.append(self.parse_expr())
            return items

        if tok_type == "rparen":
            raise CoroSyntaxError("Unexpected ')'")

        if tok_type == "char":
            self.advance()
            val = tok_val[2:]  # strip off "#\"
            if len(val) == 1:
                return val
            return NAMED_CHARS.get(val.lower(), val)

        if tok_type == "string":
            self.advance()
            return ast.literal_eval(tok_val)

        if tok_type == "radix":
            self.advance()
            base = {"b": 2, "o": 8, "x": 16}[tok_val[1]]
            return int(tok_val[2:], base)

        raise CoroSyntaxError(f"Unknown token: {tok_type} {tok_val}")

    def parse_all(self) -> Iterator[SExpression]:
        while True:
            tok_type, _ = self.peek()
            if tok_type is None:
                break
            yield self.parse_expr()


def read_all(source: str) -> list[SExpression]:
    """Read every top-level form in `source`."""
    return list(TokenStream(lex(source)).parse_all())
