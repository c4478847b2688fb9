"""Structural matchers for the specialised `for` loops.

The parser guarantees that any loop with an initializer has the header
`(auto i = K; i <op> L; <step>)` with integer literals. These helpers turn
such a header into a `LoopHeader` and recognise the two bodies that can be
run without interpreting them at all:

* accumulation: `for (auto i = 0; i < L; i++) { acc += i; }`
* nested arithmetic: an outer loop whose body is a single inner loop whose
  body is `acc <assign-op> (i <arith-op> j)`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from .ast import (
    Binary, BlockStmt, ExpressionStmt, ForStmt, Grouping, Literal, Postfix, Prefix,
    Stmt, Variable, Expr,
)
from .errors import runtime_error
from .lexer import TokenType

ASSIGN_OPS = {
    TokenType.EQUAL: None,
    TokenType.PLUS_EQUAL: TokenType.PLUS,
    TokenType.MINUS_EQUAL: TokenType.MINUS,
    TokenType.STAR_EQUAL: TokenType.STAR,
    TokenType.SLASH_EQUAL: TokenType.SLASH,
    TokenType.MODULUS_EQUAL: TokenType.MODULUS,
}

ARITH_OPS = (
    TokenType.PLUS,
    TokenType.MINUS,
    TokenType.STAR,
    TokenType.SLASH,
    TokenType.MODULUS,
)


@dataclass
class LoopHeader:
    var: str
    start: int
    op: TokenType
    limit: int
    step: int

    def holds(self, value: float) -> bool:
        return compare_counter(self.op, value, self.limit)


@dataclass
class NestedPlan:
    outer: LoopHeader
    inner: LoopHeader
    acc: str
    assign_op: TokenType
    arith_op: TokenType
    left: str
    right: str
    line: int = 0


def compare_counter(op: TokenType, value: float, limit: float) -> bool:
    if op == TokenType.LESS:
        return value < limit
    if op == TokenType.LESS_EQUAL:
        return value <= limit
    if op == TokenType.GREATER:
        return value > limit
    return value >= limit


def apply_arith(op: TokenType, left: float, right: float, line: int = 0) -> float:
    """Arithmetic on two floats with the language's zero checks."""
    if op == TokenType.PLUS:
        return left + right
    if op == TokenType.MINUS:
        return left - right
    if op == TokenType.STAR:
        return left * right
    if op == TokenType.SLASH:
        if right == 0:
            raise runtime_error('Division by zero', line)
        return left / right
    if right == 0:
        raise runtime_error('Modulus by zero', line)
    return math.fmod(left, right)


def _int_value(expr: Expr) -> int:
    assert isinstance(expr, Literal)
    return int(expr.value)


def loop_header(stmt: ForStmt) -> Optional[LoopHeader]:
    init = stmt.initializer
    if init is None:
        return None
    cond = stmt.condition
    incr = stmt.increment
    # validated by the parser; anything else is a hand-built tree
    if not isinstance(cond, Binary) or not isinstance(cond.right, Literal):
        return None
    if not isinstance(init.initializer, Literal):
        return None
    if isinstance(incr, (Postfix, Prefix)):
        step = 1 if incr.op.type == TokenType.PLUS_PLUS else -1
    elif isinstance(incr, Binary) and isinstance(incr.right, Literal):
        step = _int_value(incr.right)
        if incr.op.type == TokenType.MINUS_EQUAL:
            step = -step
    else:
        return None
    return LoopHeader(
        var=init.name,
        start=_int_value(init.initializer),
        op=cond.op.type,
        limit=_int_value(cond.right),
        step=step,
    )


def _single_statement(body: Stmt) -> Optional[Stmt]:
    if isinstance(body, BlockStmt):
        if len(body.statements) != 1:
            return None
        return body.statements[0]
    return body


def _unwrap(expr: Expr) -> Expr:
    while isinstance(expr, Grouping):
        expr = expr.expression
    return expr


def accumulation_target(stmt: ForStmt, header: LoopHeader) -> Optional[str]:
    """Name of `acc` when the loop is `for (auto i = 0; i < L; i++) { acc += i; }`."""
    if header.start != 0 or header.step != 1 or header.op != TokenType.LESS:
        return None
    if not isinstance(stmt.body, BlockStmt):
        return None
    inner = _single_statement(stmt.body)
    if not isinstance(inner, ExpressionStmt):
        return None
    expr = inner.expression
    if not isinstance(expr, Binary) or expr.op.type != TokenType.PLUS_EQUAL:
        return None
    if not isinstance(expr.left, Variable) or not isinstance(expr.right, Variable):
        return None
    if expr.right.name != header.var or expr.left.name == header.var:
        return None
    return expr.left.name


def nested_plan(stmt: ForStmt, outer: LoopHeader) -> Optional[NestedPlan]:
    inner_loop = _single_statement(stmt.body)
    if not isinstance(inner_loop, ForStmt):
        return None
    inner = loop_header(inner_loop)
    if inner is None or inner.var == outer.var:
        return None
    body = _single_statement(inner_loop.body)
    if not isinstance(body, ExpressionStmt):
        return None
    expr = body.expression
    if not isinstance(expr, Binary) or expr.op.type not in ASSIGN_OPS:
        return None
    if not isinstance(expr.left, Variable):
        return None
    acc = expr.left.name
    if acc in (outer.var, inner.var):
        return None
    arith = _unwrap(expr.right)
    if not isinstance(arith, Binary) or arith.op.type not in ARITH_OPS:
        return None
    left = _unwrap(arith.left)
    right = _unwrap(arith.right)
    loop_vars = (outer.var, inner.var)
    if not isinstance(left, Variable) or left.name not in loop_vars:
        return None
    if not isinstance(right, Variable) or right.name not in loop_vars:
        return None
    return NestedPlan(
        outer=outer,
        inner=inner,
        acc=acc,
        assign_op=expr.op.type,
        arith_op=arith.op.type,
        left=left.name,
        right=right.name,
        line=arith.op.line,
    )
