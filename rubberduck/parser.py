"""Recursive-descent parser for Rubber Duck.

The parser consumes the token list produced by `rubberduck.lexer` and
builds statement nodes in an `ASTContext`. Besides plain parsing it does
two things worth knowing about:

* **Constant folding.** In `term` and `factor`, two number literals are
  combined at parse time (`%` uses `math.fmod`), and unary minus on a
  number literal is folded into the literal text. Dividing a literal by a
  literal zero is reported as a parsing error.
* **For-header validation.** A `for` loop with an initializer must have
  the shape `(auto i = K; i <op> L; <step>)` with integer literals, where
  `<op>` is one of `< <= > >=` and `<step>` is `i++`, `i--`, `++i`,
  `--i`, `i += N` or `i -= N`. The interpreter relies on this shape when
  it picks a fast path.

`parse_program` is the public entry point.
"""

from __future__ import annotations

import math
import re
from typing import List, Optional

from .ast import (
    ASTContext, Expr, Stmt, Literal, Variable, Grouping, Unary, Binary, Prefix,
    Postfix, Call, ExpressionStmt, EmptyStmt, VarStmt, BlockStmt, IfStmt,
    ForStmt, BreakStmt, ContinueStmt, ReturnStmt, DisplayStmt, GetinStmt,
    FunStmt, BenchmarkStmt,
)
from .errors import parsing_error, recursion_limit
from .lexer import Token, TokenType, tokenize
from .types import format_number

ASSIGNMENT_OPS = (
    TokenType.EQUAL,
    TokenType.PLUS_EQUAL,
    TokenType.MINUS_EQUAL,
    TokenType.STAR_EQUAL,
    TokenType.SLASH_EQUAL,
    TokenType.MODULUS_EQUAL,
)

COMPARISON_OPS = (
    TokenType.GREATER,
    TokenType.GREATER_EQUAL,
    TokenType.LESS,
    TokenType.LESS_EQUAL,
)

_INT_LITERAL = re.compile(r'-?[0-9]+')


def is_int_literal(expr: Optional[Expr]) -> bool:
    return (
        isinstance(expr, Literal)
        and expr.token_type == TokenType.NUMBER
        and _INT_LITERAL.fullmatch(expr.value) is not None
    )


def number_literal_value(expr: Expr) -> Optional[float]:
    if isinstance(expr, Literal) and expr.token_type == TokenType.NUMBER:
        try:
            return float(expr.value)
        except ValueError:
            return None
    return None


class Parser:
    def __init__(self, tokens: List[Token], context: Optional[ASTContext] = None):
        self.tokens = tokens
        self.pos = 0
        self.context = context if context is not None else ASTContext()

    # Token stream helpers

    def peek(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        line = self.tokens[-1].line if self.tokens else 0
        return Token(TokenType.EOF_TOKEN, '', '', line)

    def previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def is_at_end(self) -> bool:
        return self.peek().type == TokenType.EOF_TOKEN

    def advance(self) -> Token:
        if not self.is_at_end():
            self.pos += 1
        return self.previous()

    def check(self, token_type: TokenType) -> bool:
        if self.is_at_end():
            return False
        return self.peek().type == token_type

    def match(self, *token_types: TokenType) -> bool:
        for token_type in token_types:
            if self.check(token_type):
                self.advance()
                return True
        return False

    def consume(self, token_type: TokenType, message: str) -> Token:
        if self.check(token_type):
            return self.advance()
        raise parsing_error(message, self.peek().line)

    def make(self, node_type, *args, **kwargs):
        return self.context.make(node_type, *args, **kwargs)

    # Statements

    def parse(self) -> List[Stmt]:
        statements: List[Stmt] = []
        while not self.is_at_end():
            statements.append(self.statement())
        return statements

    def statement(self) -> Stmt:
        if self.match(TokenType.LEFT_BRACE):
            return self.block_statement()
        if self.match(TokenType.FUN):
            return self.fun_declaration()
        if self.match(TokenType.IF):
            return self.if_statement()
        if self.match(TokenType.FOR):
            return self.for_statement()
        if self.match(TokenType.BREAK):
            keyword = self.previous()
            self.consume(TokenType.SEMICOLON, "Expect ';' after 'break'.")
            return self.make(BreakStmt, keyword, line=keyword.line)
        if self.match(TokenType.CONTINUE):
            keyword = self.previous()
            self.consume(TokenType.SEMICOLON, "Expect ';' after 'continue'.")
            return self.make(ContinueStmt, keyword, line=keyword.line)
        if self.match(TokenType.AUTO):
            return self.var_declaration()
        if self.match(TokenType.DISPLAY):
            return self.display_statement()
        if self.match(TokenType.BENCHMARK):
            return self.benchmark_statement()
        if self.match(TokenType.GETIN):
            return self.getin_statement()
        if self.match(TokenType.RETURN):
            return self.return_statement()
        if self.match(TokenType.SEMICOLON):
            semicolon = self.previous()
            return self.make(EmptyStmt, semicolon, line=semicolon.line)
        return self.expression_statement()

    def block_statement(self) -> BlockStmt:
        line = self.previous().line
        statements = self.block_body("Expect '}' after block.")
        return self.make(BlockStmt, statements, line=line)

    def block_body(self, message: str) -> List[Stmt]:
        statements: List[Stmt] = []
        while not self.check(TokenType.RIGHT_BRACE) and not self.is_at_end():
            statements.append(self.statement())
        self.consume(TokenType.RIGHT_BRACE, message)
        return statements

    def var_declaration(self) -> VarStmt:
        name = self.consume(TokenType.IDENTIFIER, 'Expect variable name.')
        initializer = None
        if self.match(TokenType.EQUAL):
            initializer = self.expression()
        self.consume(TokenType.SEMICOLON, "Expect ';' after variable declaration.")
        return self.make(VarStmt, name.lexeme, initializer, line=name.line)

    def fun_declaration(self) -> FunStmt:
        name = self.consume(TokenType.IDENTIFIER, "Expect function name after 'fun'.")
        self.consume(TokenType.LEFT_PAREN, "Expect '(' after function name.")
        params: List[str] = []
        if not self.check(TokenType.RIGHT_PAREN):
            while True:
                self.consume(TokenType.AUTO, "Expect 'auto' before parameter name.")
                param = self.consume(TokenType.IDENTIFIER, 'Expect parameter name.')
                params.append(param.lexeme)
                if not self.match(TokenType.COMMA):
                    break
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after function parameters.")
        if self.match(TokenType.LEFT_BRACE):
            body = self.block_statement()
            return self.make(FunStmt, name.lexeme, params, body, line=name.line)
        self.consume(TokenType.SEMICOLON, "Expect ';' after function declaration.")
        return self.make(FunStmt, name.lexeme, params, None, line=name.line)

    def if_statement(self) -> IfStmt:
        line = self.previous().line
        self.consume(TokenType.LEFT_PAREN, "Expect '(' after 'if'.")
        condition = self.expression()
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after if condition.")
        then_branch = self.statement()
        else_branch = None
        if self.match(TokenType.ELSE):
            else_branch = self.statement()
        return self.make(IfStmt, condition, then_branch, else_branch, line=line)

    def for_statement(self) -> ForStmt:
        line = self.previous().line
        self.consume(TokenType.LEFT_PAREN, "Expect '(' after 'for'.")
        if self.match(TokenType.SEMICOLON):
            initializer = None
        elif self.match(TokenType.AUTO):
            initializer = self.var_declaration()
        else:
            raise parsing_error(
                "Expect 'auto' variable declaration or ';' in for-loop initializer.",
                self.peek().line,
            )

        condition = None
        if not self.check(TokenType.SEMICOLON):
            condition = self.expression()
        self.consume(TokenType.SEMICOLON, "Expect ';' after loop condition.")

        increment = None
        if not self.check(TokenType.RIGHT_PAREN):
            increment = self.expression()
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after for clauses.")

        body = self.statement()
        stmt = self.make(ForStmt, initializer, condition, increment, body, line=line)
        self.check_for_header(stmt)
        return stmt

    def check_for_header(self, stmt: ForStmt) -> None:
        init = stmt.initializer
        if init is None:
            return
        line = stmt.line
        if init.initializer is None:
            raise parsing_error(
                'For-loop initializer must declare an int variable with an initializer.', line)
        if not is_int_literal(init.initializer):
            raise parsing_error('For-loop variable must be initialized with an int literal', line)

        cond = stmt.condition
        if cond is None:
            raise parsing_error('For-loop condition is required.', line)
        if not isinstance(cond, Binary):
            raise parsing_error('For-loop condition must be a comparison.', line)
        if cond.op.type not in COMPARISON_OPS:
            raise parsing_error('For-loop condition must be <, <=, >, or >=.', line)
        if (
            not isinstance(cond.left, Variable)
            or cond.left.name != init.name
            or not is_int_literal(cond.right)
        ):
            raise parsing_error(
                'For-loop condition must compare loop variable to an int literal.', line)

        incr = stmt.increment
        if incr is None:
            raise parsing_error('For-loop increment is required.', line)
        valid = False
        if isinstance(incr, (Postfix, Prefix)):
            valid = (
                isinstance(incr.operand, Variable)
                and incr.operand.name == init.name
                and incr.op.type in (TokenType.PLUS_PLUS, TokenType.MINUS_MINUS)
            )
        elif isinstance(incr, Binary) and incr.op.type in (TokenType.PLUS_EQUAL, TokenType.MINUS_EQUAL):
            valid = (
                isinstance(incr.left, Variable)
                and incr.left.name == init.name
                and is_int_literal(incr.right)
            )
        if not valid:
            raise parsing_error(
                'For-loop increment must be ++/-- or +=/-= with an int literal.', line)

    def display_statement(self) -> DisplayStmt:
        line = self.previous().line
        values = [self.expression()]
        while self.match(TokenType.COMMA):
            values.append(self.expression())
        self.consume(TokenType.SEMICOLON, "Expect ';' after value.")
        return self.make(DisplayStmt, values, line=line)

    def getin_statement(self) -> GetinStmt:
        keyword = self.previous()
        self.consume(TokenType.LEFT_PAREN, "Expect '(' after 'getin'.")
        name = self.consume(TokenType.IDENTIFIER, 'Expect variable name in getin().')
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after variable name in getin().")
        self.consume(TokenType.SEMICOLON, "Expect ';' after getin() statement.")
        return self.make(GetinStmt, keyword, name.lexeme, line=keyword.line)

    def benchmark_statement(self) -> BenchmarkStmt:
        line = self.previous().line
        self.consume(TokenType.LEFT_BRACE, "Expect '{' after 'benchmark'.")
        statements = self.block_body("Expect '}' after benchmark body.")
        body = self.make(BlockStmt, statements, line=line)
        return self.make(BenchmarkStmt, body, line=line)

    def return_statement(self) -> ReturnStmt:
        keyword = self.previous()
        value = None
        if not self.check(TokenType.SEMICOLON):
            value = self.expression()
        self.consume(TokenType.SEMICOLON, "Expect ';' after return value.")
        return self.make(ReturnStmt, value, line=keyword.line)

    def expression_statement(self) -> ExpressionStmt:
        line = self.peek().line
        expr = self.expression()
        self.consume(TokenType.SEMICOLON, "Expect ';' after expression.")
        return self.make(ExpressionStmt, expr, line=line)

    # Expressions

    def expression(self) -> Expr:
        return self.assignment()

    def assignment(self) -> Expr:
        expr = self.logic_or()
        if self.match(*ASSIGNMENT_OPS):
            op = self.previous()
            value = self.assignment()
            if not isinstance(expr, Variable):
                raise parsing_error('Invalid assignment target', op.line)
            return self.make(Binary, expr, op, value)
        return expr

    def logic_or(self) -> Expr:
        expr = self.logic_and()
        while self.match(TokenType.OR):
            op = self.previous()
            expr = self.make(Binary, expr, op, self.logic_and())
        return expr

    def logic_and(self) -> Expr:
        expr = self.equality()
        while self.match(TokenType.AND):
            op = self.previous()
            expr = self.make(Binary, expr, op, self.equality())
        return expr

    def equality(self) -> Expr:
        expr = self.comparison()
        while self.match(TokenType.BANG_EQUAL, TokenType.EQUAL_EQUAL):
            op = self.previous()
            expr = self.make(Binary, expr, op, self.comparison())
        return expr

    def comparison(self) -> Expr:
        expr = self.term()
        while self.match(*COMPARISON_OPS):
            op = self.previous()
            expr = self.make(Binary, expr, op, self.term())
        return expr

    def term(self) -> Expr:
        expr = self.factor()
        while self.match(TokenType.MINUS, TokenType.PLUS):
            op = self.previous()
            expr = self.fold_or_build(expr, op, self.factor())
        return expr

    def factor(self) -> Expr:
        expr = self.unary()
        while self.match(TokenType.SLASH, TokenType.STAR, TokenType.MODULUS):
            op = self.previous()
            expr = self.fold_or_build(expr, op, self.unary())
        return expr

    def fold_or_build(self, left: Expr, op: Token, right: Expr) -> Expr:
        a = number_literal_value(left)
        b = number_literal_value(right)
        if a is None or b is None:
            return self.make(Binary, left, op, right)
        if op.type == TokenType.PLUS:
            result = a + b
        elif op.type == TokenType.MINUS:
            result = a - b
        elif op.type == TokenType.STAR:
            result = a * b
        elif op.type == TokenType.SLASH:
            if b == 0:
                raise parsing_error('Division by zero in constant expression', op.line)
            result = a / b
        else:
            if b == 0:
                raise parsing_error('Modulus by zero in constant expression', op.line)
            result = math.fmod(a, b)
        return self.make(Literal, format_number(result), TokenType.NUMBER)

    def unary(self) -> Expr:
        if self.match(TokenType.BANG, TokenType.MINUS):
            op = self.previous()
            right = self.unary()
            if op.type == TokenType.MINUS:
                value = number_literal_value(right)
                if value is not None:
                    return self.make(Literal, format_number(-value), TokenType.NUMBER)
            return self.make(Unary, op, right)
        return self.postfix()

    def postfix(self) -> Expr:
        expr = self.primary()
        while self.match(TokenType.PLUS_PLUS, TokenType.MINUS_MINUS):
            expr = self.make(Postfix, expr, self.previous())
        return expr

    def primary(self) -> Expr:
        if self.match(TokenType.FALSE):
            return self.make(Literal, 'false', TokenType.FALSE)
        if self.match(TokenType.TRUE):
            return self.make(Literal, 'true', TokenType.TRUE)
        if self.match(TokenType.NIL):
            return self.make(Literal, 'nil', TokenType.NIL)
        if self.match(TokenType.NUMBER, TokenType.STRING, TokenType.FORMAT_STRING):
            token = self.previous()
            return self.make(Literal, token.literal, token.type)
        if self.match(TokenType.PLUS_PLUS, TokenType.MINUS_MINUS):
            op = self.previous()
            return self.make(Prefix, op, self.primary())
        if self.match(TokenType.IDENTIFIER):
            identifier = self.previous()
            if self.match(TokenType.LEFT_PAREN):
                arguments: List[Expr] = []
                if not self.check(TokenType.RIGHT_PAREN):
                    while True:
                        arguments.append(self.expression())
                        if not self.match(TokenType.COMMA):
                            break
                self.consume(TokenType.RIGHT_PAREN, "Expect ')' after function arguments.")
                return self.make(Call, identifier.lexeme, arguments, identifier.line)
            return self.make(Variable, identifier.lexeme, identifier.line)
        if self.match(TokenType.LEFT_PAREN):
            expr = self.expression()
            self.consume(TokenType.RIGHT_PAREN, "Expect ')' after expression.")
            return self.make(Grouping, expr)
        raise parsing_error('Expect expression', self.peek().line)


def parse_tokens(tokens: List[Token], context: Optional[ASTContext] = None) -> List[Stmt]:
    parser = Parser(tokens, context)
    try:
        with recursion_limit():
            return parser.parse()
    except RecursionError:
        raise parsing_error('Maximum nesting depth exceeded', parser.peek().line)


def parse_program(source: str, context: Optional[ASTContext] = None) -> List[Stmt]:
    """Tokenize and parse Rubber Duck source into top-level statements.

    Lexing and parsing errors are raised as `RubberDuckError`.
    """
    return parse_tokens(tokenize(source), context)
