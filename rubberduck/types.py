"""Value model for the Rubber Duck interpreter.

Every runtime value has a canonical text form and a kind tag (nil,
number, string or boolean). Numbers additionally carry a cached float.
Values produced by arithmetic start from the float and only render their
text when someone asks for it; values produced from text parse the float
lazily, the first time arithmetic or a comparison needs it.
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Optional


class ValueKind(Enum):
    NIL = 'nil'
    NUMBER = 'number'
    STRING = 'string'
    BOOLEAN = 'boolean'

    def __str__(self) -> str:
        return self.value


_NUMBER_TEXT = re.compile(r'[+-]?[0-9]+(\.[0-9]+)?')
_DOUBLE_TEXT = re.compile(r'\s*[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?\s*', re.ASCII)


def format_number(value: float) -> str:
    """Render a float the way the language prints numbers.

    Fixed-point with 15 fractional digits, then trailing zeros and a
    trailing decimal point are dropped: 2.5 -> "2.5", 7.0 -> "7".
    """
    if math.isnan(value) or math.isinf(value):
        return str(value)
    text = f"{value:.15f}"
    text = text.rstrip('0')
    text = text.rstrip('.')
    return text


def detect_type(text: str) -> ValueKind:
    if text == 'nil':
        return ValueKind.NIL
    if text == 'true' or text == 'false':
        return ValueKind.BOOLEAN
    if _NUMBER_TEXT.fullmatch(text):
        return ValueKind.NUMBER
    return ValueKind.STRING


def parse_number(text: str) -> Optional[float]:
    """Parse text as a double; returns None when the text is not numeric.

    Surrounding whitespace and an exponent are accepted. `inf` and `nan`
    spellings are not.
    """
    if not _DOUBLE_TEXT.fullmatch(text):
        return None
    return float(text)


def is_truthy(text: str) -> bool:
    return text != 'false' and text != 'nil'


_UNPARSED = object()


class Value:
    """A tagged scalar: canonical text, kind, and a lazily cached float."""

    __slots__ = ('_text', '_number', 'kind')

    def __init__(self, text: str, kind: Optional[ValueKind] = None):
        self._text: Optional[str] = text
        self._number = _UNPARSED
        self.kind = detect_type(text) if kind is None else kind
        if self.kind in (ValueKind.NIL, ValueKind.BOOLEAN):
            self._number = None

    @classmethod
    def from_number(cls, number: float) -> 'Value':
        value = cls.__new__(cls)
        value._text = None
        value._number = number
        value.kind = ValueKind.NUMBER
        return value

    @classmethod
    def from_bool(cls, flag: bool) -> 'Value':
        return TRUE if flag else FALSE

    @property
    def text(self) -> str:
        if self._text is None:
            self._text = format_number(self._number)
        return self._text

    def as_number(self) -> Optional[float]:
        if self._number is _UNPARSED:
            self._number = parse_number(self._text)
        return self._number

    def is_truthy(self) -> bool:
        return is_truthy(self.text)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self.kind == other.kind and self.text == other.text

    def __hash__(self) -> int:
        return hash((self.kind, self.text))

    def __repr__(self) -> str:
        return f"Value({self.text!r}, {self.kind})"

    def __str__(self) -> str:
        return self.text


NIL = Value('nil', ValueKind.NIL)
TRUE = Value('true', ValueKind.BOOLEAN)
FALSE = Value('false', ValueKind.BOOLEAN)
