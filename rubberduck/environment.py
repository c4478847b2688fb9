from typing import Dict, Optional

from rubberduck.errors import runtime_error
from rubberduck.types import Value


class Environment:
    """One lexical scope: the bindings declared in it plus a link outward.

    Lookups and assignments walk outward to the scope that declared the
    name, so a block can update variables of the scopes around it while
    its own declarations vanish when it ends.
    """
    def __init__(self, parent: Optional['Environment'] = None):
        self.parent = parent
        self.values: Dict[str, Value] = {}

    def find(self, name: str) -> Optional['Environment']:
        env: Optional[Environment] = self
        while env is not None:
            if name in env.values:
                return env
            env = env.parent
        return None

    def get(self, name: str, line: int = 0) -> Value:
        env = self.find(name)
        if env is None:
            raise runtime_error(
                f"Variable '{name}' must be declared with 'auto' keyword before use", line)
        return env.values[name]

    def lookup(self, name: str) -> Optional[Value]:
        env = self.find(name)
        return env.values[name] if env is not None else None

    def ensure_undeclared(self, name: str, line: int = 0):
        # Shadowing an outer scope is fine; declaring twice in one scope is not.
        # The global scope has no outer scope, so it never allows redeclaration.
        if name in self.values:
            raise runtime_error(f"Variable '{name}' has already been declared in this scope", line)

    def declare(self, name: str, value: Value, line: int = 0):
        self.ensure_undeclared(name, line)
        self.values[name] = value

    def assign(self, name: str, value: Value, line: int = 0):
        env = self.find(name)
        if env is None:
            raise runtime_error(
                f"Variable '{name}' must be declared with 'auto' keyword before use", line)
        env.values[name] = value

    def __repr__(self) -> str:
        return f"Environment({self.values!r}, parent={self.parent is not None})"
