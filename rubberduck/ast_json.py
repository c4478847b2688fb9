"""JSON serialization/deserialization for the Rubber Duck AST.

This module converts between AST dataclasses and plain Python dict/list
structures suitable for JSON encoding. A program is wrapped as
`{"type": "Program", "body": [...]}`; every node becomes a dict with a
`type` key naming its class plus one key per dataclass field. Tokens and
token types are encoded by name.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any, Dict, List, Optional

from . import ast as nodes
from .ast import ASTContext, Node, Stmt
from .lexer import Token, TokenType

NODE_TYPES = {
    cls.__name__: cls
    for cls in vars(nodes).values()
    if isinstance(cls, type) and issubclass(cls, Node) and cls not in (Node, nodes.Expr, Stmt)
}


def ast_to_obj(node: Any) -> Any:
    # Primitives
    if node is None or isinstance(node, (int, float, str, bool)):
        return node
    if isinstance(node, list):
        return [ast_to_obj(n) for n in node]
    if isinstance(node, TokenType):
        return {"__token_type__": node.name}
    if isinstance(node, Token):
        return {
            "__token__": node.type.name,
            "lexeme": node.lexeme,
            "literal": node.literal,
            "line": node.line,
        }
    if isinstance(node, Node) and is_dataclass(node):
        obj: Dict[str, Any] = {"type": type(node).__name__}
        for f in fields(node):
            obj[f.name] = ast_to_obj(getattr(node, f.name))
        return obj
    raise TypeError(f"Unsupported AST value for JSON: {type(node)}")


def ast_from_obj(obj: Any, context: Optional[ASTContext] = None) -> Any:
    if context is None:
        context = ASTContext()
    if obj is None or isinstance(obj, (int, float, str, bool)):
        return obj
    if isinstance(obj, list):
        return [ast_from_obj(o, context) for o in obj]
    if not isinstance(obj, dict):
        raise TypeError(f"Unsupported JSON value for AST: {type(obj)}")
    if "__token_type__" in obj:
        return TokenType[obj["__token_type__"]]
    if "__token__" in obj:
        return Token(TokenType[obj["__token__"]], obj["lexeme"], obj["literal"], obj["line"])
    type_name = obj.get("type")
    node_type = NODE_TYPES.get(type_name)
    if node_type is None:
        raise ValueError(f"Unknown AST node type in JSON: {type_name}")
    kwargs = {
        f.name: ast_from_obj(obj[f.name], context)
        for f in fields(node_type)
        if f.name in obj
    }
    return context.make(node_type, **kwargs)


def program_to_obj(statements: List[Stmt]) -> Dict[str, Any]:
    return {"type": "Program", "body": [ast_to_obj(s) for s in statements]}


def program_from_obj(obj: Dict[str, Any], context: Optional[ASTContext] = None) -> List[Stmt]:
    if obj.get("type") != "Program":
        raise ValueError("AST JSON must contain a Program object at the top level")
    if context is None:
        context = ASTContext()
    return [ast_from_obj(s, context) for s in obj["body"]]
