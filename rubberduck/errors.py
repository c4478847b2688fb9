"""Error and control-signal types shared by every stage of Rubber Duck.

Lexing, parsing and evaluation all report failures the same way: a
`RubberDuckError` carrying an `ErrorInfo` (kind, message, line, column).
The first error aborts the pipeline; nothing is recovered.

`break`, `continue` and `return` are not errors. Statement execution
returns one of the signal objects below and each enclosing construct
decides whether to consume or propagate it.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, TextIO

# Python frames a deeply recursive program or a deeply nested expression may use.
# Every language-level call or nesting level costs several interpreter frames.
RECURSION_LIMIT = 50_000


class ErrorKind(Enum):
    LEXING = 'Lexing Error'
    PARSING = 'Parsing Error'
    RUNTIME = 'Runtime Error'
    TYPE = 'Type Error'


@dataclass
class ErrorInfo:
    """Where and why a stage failed.

    `line` and `column` are 1-based; zero means "unknown" and is left out
    of the report.
    """
    kind: ErrorKind
    message: str
    line: int = 0
    column: int = 0

    def format(self) -> str:
        text = f"[{self.kind.value}] {self.message}"
        if self.line > 0:
            text += f" at line {self.line}"
            if self.column > 0:
                text += f", column {self.column}"
        return text


class RubberDuckError(Exception):
    """Exception type used to propagate Rubber Duck errors."""
    def __init__(self, info: ErrorInfo):
        super().__init__(info.format())
        self.info = info

    @property
    def kind(self) -> ErrorKind:
        return self.info.kind


def lexing_error(message: str, line: int = 0, column: int = 0) -> RubberDuckError:
    return RubberDuckError(ErrorInfo(ErrorKind.LEXING, message, line, column))


def parsing_error(message: str, line: int = 0) -> RubberDuckError:
    return RubberDuckError(ErrorInfo(ErrorKind.PARSING, message, line, 0))


def runtime_error(message: str, line: int = 0) -> RubberDuckError:
    return RubberDuckError(ErrorInfo(ErrorKind.RUNTIME, message, line, 0))


def type_error(message: str, line: int = 0) -> RubberDuckError:
    return RubberDuckError(ErrorInfo(ErrorKind.TYPE, message, line, 0))


def report_error(info: ErrorInfo, stream: TextIO | None = None) -> None:
    """Write a single error report line to standard error."""
    if stream is None:
        stream = sys.stderr
    stream.write(info.format() + '\n')
    stream.flush()


class BreakSignal:
    """Returned by a `break` statement until the innermost loop consumes it."""
    def __repr__(self) -> str:
        return 'BreakSignal()'


class ContinueSignal:
    """Returned by a `continue` statement until the innermost loop consumes it."""
    def __repr__(self) -> str:
        return 'ContinueSignal()'


class ReturnSignal:
    """Carries a function's return value up to the call site."""
    def __init__(self, value: Any):
        self.value = value

    def __repr__(self) -> str:
        return f'ReturnSignal({self.value!r})'


BREAK = BreakSignal()
CONTINUE = ContinueSignal()


@contextmanager
def recursion_limit(limit: int = RECURSION_LIMIT) -> Iterator[None]:
    """Raise the host recursion limit for the duration of a parse or run."""
    saved = sys.getrecursionlimit()
    sys.setrecursionlimit(max(saved, limit))
    try:
        yield
    finally:
        sys.setrecursionlimit(saved)
