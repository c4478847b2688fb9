"""Evaluation of format-string literals (`$"..."`).

A format string's text is scanned for `{...}` spans. Each span is
replaced by, in order of preference:

1. the value of the variable it names;
2. the span itself, when it is a number;
3. the result of the arithmetic it spells out (`+ - * /` over variables,
   numbers and parentheses, usual precedence);
4. the raw span text, when none of the above applies.

Spans do not nest: the first `}` after a `{` closes it, and a `{` with no
closing `}` leaves the rest of the text untouched.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from lark import Lark, Transformer, v_args
from lark.exceptions import LarkError, VisitError

from .environment import Environment
from .errors import RubberDuckError, runtime_error
from .types import ValueKind, detect_type, format_number

SPAN_GRAMMAR = r"""
    ?start: sum

    ?sum: product
        | sum "+" product   -> add
        | sum "-" product   -> sub

    ?product: atom
        | product "*" atom  -> mul
        | product "/" atom  -> div

    ?atom: NUMBER           -> number
         | NAME             -> name
         | "-" atom         -> neg
         | "(" sum ")"

    NUMBER: /[0-9]+(\.[0-9]+)?/
    NAME: /[A-Za-z_][A-Za-z0-9_]*/

    %import common.WS
    %ignore WS
"""

SPAN_PARSER = Lark(SPAN_GRAMMAR, parser='lalr')


class NotNumeric(Exception):
    """A span operand that has no numeric value."""


@v_args(inline=True)
class SpanEvaluator(Transformer):
    """Folds a parsed span into a float, reading variables from `env`."""

    def __init__(self, env: Environment, line: int = 0):
        super().__init__()
        self.env = env
        self.line = line

    def number(self, token):
        return float(token)

    def name(self, token):
        value = self.env.lookup(str(token))
        number = value.as_number() if value is not None else None
        if number is None:
            raise NotNumeric(str(token))
        return number

    def neg(self, operand):
        return -operand

    def add(self, left, right):
        return left + right

    def sub(self, left, right):
        return left - right

    def mul(self, left, right):
        return left * right

    def div(self, left, right):
        if right == 0:
            raise runtime_error('Division by zero', self.line)
        return left / right


@lru_cache(maxsize=256)
def parse_span(text: str):
    """Parse a span; returns None when it is not an arithmetic expression."""
    try:
        return SPAN_PARSER.parse(text)
    except LarkError:
        return None


def evaluate_span(inner: str, env: Environment, line: int = 0) -> str:
    text = inner.strip(' \t\r\n\f\v')
    value = env.lookup(text)
    if value is not None:
        return value.text
    if detect_type(text) == ValueKind.NUMBER:
        return text
    tree = parse_span(text)
    if tree is None:
        return inner
    try:
        result = SpanEvaluator(env, line).transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, RubberDuckError):
            raise e.orig_exc
        if isinstance(e.orig_exc, NotNumeric):
            return inner
        raise
    return format_number(result)


def render_format_string(template: str, env: Environment, line: int = 0) -> str:
    pieces: List[str] = []
    pos = 0
    length = len(template)
    while pos < length:
        start = template.find('{', pos)
        if start == -1:
            break
        end = template.find('}', start + 1)
        if end == -1:
            break
        pieces.append(template[pos:start])
        pieces.append(evaluate_span(template[start + 1:end], env, line))
        pos = end + 1
    pieces.append(template[pos:])
    return ''.join(pieces)
