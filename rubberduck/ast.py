"""Abstract Syntax Tree (AST) definitions for Rubber Duck.

There are two disjoint hierarchies, `Expr` and `Stmt`, one dataclass per
variant. Nodes are created through an `ASTContext`, which owns every node
of a parse and releases them together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Type, TypeVar

from .errors import runtime_error
from .lexer import Token, TokenType


@dataclass
class Node:
    """Base class for all AST nodes."""
    pass


###############################################################################
# Expressions
###############################################################################

@dataclass
class Expr(Node):
    pass


@dataclass
class Literal(Expr):
    value: str
    token_type: TokenType  # NUMBER, STRING, FORMAT_STRING, TRUE, FALSE or NIL


@dataclass
class Variable(Expr):
    name: str
    line: int = 0


@dataclass
class Grouping(Expr):
    expression: Expr


@dataclass
class Unary(Expr):
    op: Token
    right: Expr


@dataclass
class Binary(Expr):
    """Binary operator; also used for `=` and the compound assignments."""
    left: Expr
    op: Token
    right: Expr


@dataclass
class Prefix(Expr):
    op: Token
    operand: Expr


@dataclass
class Postfix(Expr):
    operand: Expr
    op: Token


@dataclass
class Call(Expr):
    callee: str
    arguments: List[Expr]
    line: int = 0


###############################################################################
# Statements
###############################################################################

@dataclass
class Stmt(Node):
    line: int = field(default=0, kw_only=True)


@dataclass
class ExpressionStmt(Stmt):
    expression: Expr


@dataclass
class EmptyStmt(Stmt):
    semicolon: Token


@dataclass
class VarStmt(Stmt):
    name: str
    initializer: Optional[Expr]


@dataclass
class BlockStmt(Stmt):
    statements: List[Stmt]


@dataclass
class IfStmt(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Optional[Stmt]


@dataclass
class ForStmt(Stmt):
    initializer: Optional[VarStmt]
    condition: Optional[Expr]
    increment: Optional[Expr]
    body: Stmt


@dataclass
class BreakStmt(Stmt):
    keyword: Token


@dataclass
class ContinueStmt(Stmt):
    keyword: Token


@dataclass
class ReturnStmt(Stmt):
    value: Optional[Expr]


@dataclass
class DisplayStmt(Stmt):
    values: List[Expr]


@dataclass
class GetinStmt(Stmt):
    keyword: Token
    name: str


@dataclass
class FunStmt(Stmt):
    name: str
    params: List[str]
    body: Optional[BlockStmt]  # None for a forward declaration


@dataclass
class BenchmarkStmt(Stmt):
    body: BlockStmt


###############################################################################
# Arena
###############################################################################

N = TypeVar('N', bound=Node)


class ASTContext:
    """Owns the nodes of one parse.

    Every node the parser builds is allocated here; `reset` drops them all
    at once. `max_nodes` bounds the arena, and running past it is reported
    the same way the interpreter reports exhausted memory.
    """

    def __init__(self, max_nodes: Optional[int] = None):
        self.max_nodes = max_nodes
        self.nodes: List[Node] = []

    def make(self, node_type: Type[N], *args: Any, **kwargs: Any) -> N:
        if self.max_nodes is not None and len(self.nodes) >= self.max_nodes:
            raise runtime_error('Out of memory: AST node limit exceeded')
        node = node_type(*args, **kwargs)
        self.nodes.append(node)
        return node

    def reset(self) -> None:
        self.nodes.clear()

    def __len__(self) -> int:
        return len(self.nodes)

    def __enter__(self) -> 'ASTContext':
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.reset()
