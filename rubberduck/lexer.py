"""Tokenizer for Rubber Duck source text.

The lexer is a character-driven state machine with one and two
characters of lookahead. It produces a list of `Token`s terminated by an
`EOF_TOKEN`, or raises a lexing `RubberDuckError` on the first problem.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, List

from .errors import lexing_error


class TokenType(Enum):
    # Single-character tokens
    LEFT_PAREN = auto()
    RIGHT_PAREN = auto()
    LEFT_BRACE = auto()
    RIGHT_BRACE = auto()
    COMMA = auto()
    DOT = auto()
    MINUS = auto()
    PLUS = auto()
    SEMICOLON = auto()
    SLASH = auto()
    STAR = auto()
    MODULUS = auto()

    # One or two character tokens
    BANG = auto()
    BANG_EQUAL = auto()
    EQUAL = auto()
    EQUAL_EQUAL = auto()
    GREATER = auto()
    GREATER_EQUAL = auto()
    LESS = auto()
    LESS_EQUAL = auto()
    PLUS_PLUS = auto()
    MINUS_MINUS = auto()
    PLUS_EQUAL = auto()
    MINUS_EQUAL = auto()
    STAR_EQUAL = auto()
    SLASH_EQUAL = auto()
    MODULUS_EQUAL = auto()

    # Literals
    IDENTIFIER = auto()
    STRING = auto()
    FORMAT_STRING = auto()
    NUMBER = auto()

    # Keywords
    AND = auto()
    BREAK = auto()
    CLASS = auto()
    CONST = auto()
    CONTINUE = auto()
    ELSE = auto()
    FALSE = auto()
    FUN = auto()
    FOR = auto()
    IF = auto()
    NIL = auto()
    OR = auto()
    DISPLAY = auto()
    RETURN = auto()
    SUPER = auto()
    THIS = auto()
    TRUE = auto()
    WHILE = auto()
    AUTO = auto()
    BENCHMARK = auto()
    GETIN = auto()
    TYPEOF = auto()

    EOF_TOKEN = auto()


KEYWORDS: Dict[str, TokenType] = {
    'and': TokenType.AND,
    'break': TokenType.BREAK,
    'class': TokenType.CLASS,
    'const': TokenType.CONST,
    'continue': TokenType.CONTINUE,
    'else': TokenType.ELSE,
    'false': TokenType.FALSE,
    'for': TokenType.FOR,
    'fun': TokenType.FUN,
    'if': TokenType.IF,
    'nil': TokenType.NIL,
    'or': TokenType.OR,
    'display': TokenType.DISPLAY,
    'return': TokenType.RETURN,
    'super': TokenType.SUPER,
    'this': TokenType.THIS,
    'true': TokenType.TRUE,
    'while': TokenType.WHILE,
    'auto': TokenType.AUTO,
    'benchmark': TokenType.BENCHMARK,
    'getin': TokenType.GETIN,
    'typeof': TokenType.TYPEOF,
}

SINGLE_CHAR_TOKENS: Dict[str, TokenType] = {
    '(': TokenType.LEFT_PAREN,
    ')': TokenType.RIGHT_PAREN,
    '{': TokenType.LEFT_BRACE,
    '}': TokenType.RIGHT_BRACE,
    ',': TokenType.COMMA,
    '.': TokenType.DOT,
    ';': TokenType.SEMICOLON,
}

# first character -> ((second character, token type), ...), fallback type
COMPOUND_TOKENS = {
    '+': ((('+', TokenType.PLUS_PLUS), ('=', TokenType.PLUS_EQUAL)), TokenType.PLUS),
    '-': ((('-', TokenType.MINUS_MINUS), ('=', TokenType.MINUS_EQUAL)), TokenType.MINUS),
    '*': ((('=', TokenType.STAR_EQUAL),), TokenType.STAR),
    '/': ((('=', TokenType.SLASH_EQUAL),), TokenType.SLASH),
    '%': ((('=', TokenType.MODULUS_EQUAL),), TokenType.MODULUS),
    '!': ((('=', TokenType.BANG_EQUAL),), TokenType.BANG),
    '=': ((('=', TokenType.EQUAL_EQUAL),), TokenType.EQUAL),
    '<': ((('=', TokenType.LESS_EQUAL),), TokenType.LESS),
    '>': ((('=', TokenType.GREATER_EQUAL),), TokenType.GREATER),
}

ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '\\': '\\',
    '"': '"',
}


@dataclass
class Token:
    type: TokenType
    lexeme: str
    literal: str
    line: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.lexeme!r}, line={self.line})"


def is_ident_start(c: str) -> bool:
    return ('a' <= c <= 'z') or ('A' <= c <= 'Z') or c == '_'


def is_ident_char(c: str) -> bool:
    return is_ident_start(c) or ('0' <= c <= '9')


def is_digit(c: str) -> bool:
    return '0' <= c <= '9'


class Lexer:
    def __init__(self, source: str):
        self.source = source
        self.tokens: List[Token] = []
        self.start = 0
        self.current = 0
        self.line = 1

    def scan_tokens(self) -> List[Token]:
        while not self.is_at_end():
            self.start = self.current
            self.scan_token()
        self.tokens.append(Token(TokenType.EOF_TOKEN, '', '', self.line))
        return self.tokens

    def is_at_end(self) -> bool:
        return self.current >= len(self.source)

    def advance(self) -> str:
        c = self.source[self.current]
        self.current += 1
        return c

    def match(self, expected: str) -> bool:
        if self.is_at_end() or self.source[self.current] != expected:
            return False
        self.current += 1
        return True

    def peek(self) -> str:
        if self.is_at_end():
            return '\0'
        return self.source[self.current]

    def peek_next(self) -> str:
        if self.current + 1 >= len(self.source):
            return '\0'
        return self.source[self.current + 1]

    def add_token(self, token_type: TokenType, literal: str = '') -> None:
        lexeme = self.source[self.start:self.current]
        self.tokens.append(Token(token_type, lexeme, literal, self.line))

    def byte_offset(self, index: int) -> int:
        """UTF-8 byte length of the source up to `index`."""
        return len(self.source[:index].encode('utf-8'))

    def unexpected(self):
        # 1-based byte offset of the offending character's first byte
        column = self.byte_offset(self.current - 1) + 1
        return lexing_error('Unexpected character', self.line, column)

    def scan_token(self) -> None:
        c = self.advance()
        if c in SINGLE_CHAR_TOKENS:
            self.add_token(SINGLE_CHAR_TOKENS[c])
            return
        if c == '/' and self.match('/'):
            while self.peek() != '\n' and not self.is_at_end():
                self.advance()
            return
        if c in COMPOUND_TOKENS:
            followers, fallback = COMPOUND_TOKENS[c]
            for second, token_type in followers:
                if self.match(second):
                    self.add_token(token_type)
                    return
            self.add_token(fallback)
            return
        if c == '&' or c == '|':
            if not self.match(c):
                raise self.unexpected()
            self.add_token(TokenType.AND if c == '&' else TokenType.OR)
            return
        if c in (' ', '\r', '\t'):
            return
        if c == '\n':
            self.line += 1
            return
        if c == '"':
            self.add_token(TokenType.STRING, self.string('Unterminated string'))
            return
        if c == '$':
            if self.peek() != '"':
                raise self.unexpected()
            self.advance()
            self.add_token(TokenType.FORMAT_STRING, self.string('Unterminated format string'))
            return
        if is_digit(c):
            self.number()
            return
        if is_ident_start(c):
            self.identifier()
            return
        raise self.unexpected()

    def string(self, unterminated_message: str) -> str:
        """Scan a quoted payload after the opening quote, expanding escapes."""
        open_line = self.line
        open_offset = self.byte_offset(self.current - 1) + 1
        chars: List[str] = []
        while self.peek() != '"' and not self.is_at_end():
            c = self.advance()
            if c == '\n':
                self.line += 1
                chars.append(c)
                continue
            if c == '\\':
                if self.is_at_end():
                    break
                escaped = self.advance()
                if escaped == '\n':
                    self.line += 1
                if escaped in ESCAPES:
                    chars.append(ESCAPES[escaped])
                else:
                    # unknown escapes are kept as written
                    chars.append('\\' + escaped)
                continue
            chars.append(c)
        if self.is_at_end():
            raise lexing_error(unterminated_message, open_line, open_offset)
        self.advance()  # closing quote
        return ''.join(chars)

    def number(self) -> None:
        while is_digit(self.peek()):
            self.advance()
        if self.peek() == '.' and is_digit(self.peek_next()):
            self.advance()
            while is_digit(self.peek()):
                self.advance()
        self.add_token(TokenType.NUMBER, self.source[self.start:self.current])

    def identifier(self) -> None:
        while is_ident_char(self.peek()):
            self.advance()
        text = self.source[self.start:self.current]
        self.add_token(KEYWORDS.get(text, TokenType.IDENTIFIER))


def tokenize(source: str) -> List[Token]:
    """Convert source code into a list of tokens ending with EOF_TOKEN."""
    return Lexer(source).scan_tokens()
