"""Tree-walking interpreter for Rubber Duck.

The interpreter runs the statement list produced by
`rubberduck.parser.parse_program`. Every expression evaluates to a
`Value`; statements return `None` or one of the control signals from
`rubberduck.errors` (break, continue, return), and errors are raised as
`RubberDuckError`.
"""

from __future__ import annotations

import builtins
import sys
import time
from typing import Dict, List, Optional, Union

from .ast import (
    Binary, BlockStmt, BreakStmt, BenchmarkStmt, Call, ContinueStmt, DisplayStmt,
    EmptyStmt, Expr, ExpressionStmt, ForStmt, FunStmt, GetinStmt, Grouping, IfStmt,
    Literal, Postfix, Prefix, ReturnStmt, Stmt, Unary, VarStmt, Variable,
)
from .environment import Environment
from .errors import (
    BREAK, CONTINUE, BreakSignal, ContinueSignal, ReturnSignal, RubberDuckError,
    recursion_limit, report_error, runtime_error, type_error,
)
from .fastpaths import (
    ASSIGN_OPS, LoopHeader, NestedPlan, accumulation_target, apply_arith, loop_header,
    nested_plan,
)
from .formatting import render_format_string
from .lexer import TokenType
from .parser import parse_program
from .types import FALSE, NIL, TRUE, Value, ValueKind, format_number, parse_number

Signal = Union[BreakSignal, ContinueSignal, ReturnSignal, None]

OUTPUT_BUFFER_LIMIT = 4 * 1024 * 1024

ARITHMETIC_OPS = (
    TokenType.PLUS,
    TokenType.MINUS,
    TokenType.STAR,
    TokenType.SLASH,
    TokenType.MODULUS,
)

COMPARISON_OPS = (
    TokenType.LESS,
    TokenType.LESS_EQUAL,
    TokenType.GREATER,
    TokenType.GREATER_EQUAL,
    TokenType.EQUAL_EQUAL,
    TokenType.BANG_EQUAL,
)

CONCATENATION_MESSAGE = (
    "String concatenation with '+' is not allowed. "
    "Use comma-separated values in display statements instead."
)


class Interpreter:
    """Core interpreter that executes a Rubber Duck statement list."""
    def __init__(
        self,
        debug_level: int = 0,
        debug_file: str = 'debug.txt',
        fast_paths: bool = True,
        output_buffer_limit: int = OUTPUT_BUFFER_LIMIT,
    ):
        self.global_env = Environment()
        self.functions: Dict[str, FunStmt] = {}
        self.loop_depth = 0
        self.line = 0
        self.fast_paths = fast_paths
        self.buffer_output = False
        self.output_buffer: List[str] = []
        self.output_buffer_size = 0
        self.output_buffer_limit = output_buffer_limit
        self.debug_level = debug_level
        self.debug_fp = open(debug_file, 'w') if debug_level > 0 else None

    def debug(self, msg: str):
        if self.debug_level > 0:
            if self.debug_fp:
                self.debug_fp.write(msg + '\n')
                self.debug_fp.flush()
            else:
                print(msg, file=sys.stderr)

    # Public API

    def register_functions(self, statements: List[Stmt]):
        for stmt in statements:
            if isinstance(stmt, FunStmt):
                self.functions[stmt.name] = stmt
                if self.debug_level >= 1:
                    kind = 'prototype' if stmt.body is None else 'function'
                    self.debug(f"register {kind} {stmt.name}({', '.join(stmt.params)})")

    def run(self, statements: List[Stmt], env: Optional[Environment] = None) -> int:
        """Execute top-level statements; raises RubberDuckError on failure."""
        if env is None:
            env = self.global_env
        self.register_functions(statements)
        try:
            with recursion_limit():
                for stmt in statements:
                    result = self.execute(stmt, env)
                    if isinstance(result, ReturnSignal):
                        # a top-level return ends the program
                        break
        except RecursionError:
            raise runtime_error('Maximum recursion depth exceeded', self.line)
        finally:
            self.flush_output()
            if self.debug_fp:
                self.debug_fp.close()
                self.debug_fp = None
        return 0

    def interpret(self, statements: List[Stmt]) -> int:
        """Run and report: returns the process exit status."""
        try:
            return self.run(statements)
        except RubberDuckError as e:
            report_error(e.info)
            return 1

    # Output

    def write_output(self, text: str):
        if not self.buffer_output:
            sys.stdout.write(text)
            return
        self.output_buffer.append(text)
        self.output_buffer_size += len(text)
        if self.output_buffer_size >= self.output_buffer_limit:
            self.flush_output()

    def flush_output(self):
        if self.output_buffer:
            sys.stdout.write(''.join(self.output_buffer))
            self.output_buffer.clear()
            self.output_buffer_size = 0
        sys.stdout.flush()

    def read_line(self) -> str:
        self.flush_output()
        try:
            line = builtins.input()
        except EOFError:
            line = ''
        if line.endswith('\r'):
            line = line[:-1]
        return line

    # Statements

    def execute_block(self, statements: List[Stmt], env: Environment) -> Signal:
        for stmt in statements:
            result = self.execute(stmt, env)
            if result is not None:
                return result
        return None

    def execute(self, node: Stmt, env: Environment) -> Signal:
        self.line = node.line
        if isinstance(node, ExpressionStmt):
            self.evaluate(node.expression, env)
            return None
        if isinstance(node, VarStmt):
            env.ensure_undeclared(node.name, node.line)
            value = self.evaluate(node.initializer, env) if node.initializer is not None else NIL
            env.declare(node.name, value, node.line)
            if self.debug_level >= 2:
                self.debug(f"declare {node.name}: {value.kind} = {value.text}")
            return None
        if isinstance(node, BlockStmt):
            return self.execute_block(node.statements, Environment(parent=env))
        if isinstance(node, IfStmt):
            cond = self.evaluate(node.condition, env)
            truthy = cond.is_truthy()
            if self.debug_level >= 3:
                self.debug(f"if condition {cond.text} -> {truthy}")
            if truthy:
                return self.execute(node.then_branch, env)
            if node.else_branch is not None:
                return self.execute(node.else_branch, env)
            return None
        if isinstance(node, ForStmt):
            return self.execute_for(node, env)
        if isinstance(node, DisplayStmt):
            texts = [self.evaluate(expr, env).text for expr in node.values]
            self.write_output(' '.join(texts) + '\n')
            return None
        if isinstance(node, BreakStmt):
            if self.loop_depth <= 0:
                raise runtime_error("'break' used outside of a loop", node.line)
            return BREAK
        if isinstance(node, ContinueStmt):
            if self.loop_depth <= 0:
                raise runtime_error("'continue' used outside of a loop", node.line)
            return CONTINUE
        if isinstance(node, ReturnStmt):
            value = self.evaluate(node.value, env) if node.value is not None else NIL
            return ReturnSignal(value)
        if isinstance(node, GetinStmt):
            self.execute_getin(node, env)
            return None
        if isinstance(node, EmptyStmt):
            return None
        if isinstance(node, FunStmt):
            # registered before execution started
            return None
        if isinstance(node, BenchmarkStmt):
            return self.execute_benchmark(node, env)
        raise NotImplementedError(f"execute: unexpected node type {type(node)}")

    def execute_getin(self, node: GetinStmt, env: Environment):
        current = env.get(node.name, node.line)
        line = self.read_line()
        env.assign(node.name, self.coerce_input(node.name, current.kind, line, node.line), node.line)

    def coerce_input(self, name: str, kind: ValueKind, text: str, line: int) -> Value:
        if kind == ValueKind.NUMBER:
            number = parse_number(text)
            if number is None:
                raise runtime_error(f"Invalid type for variable '{name}': expected a number", line)
            return Value.from_number(number)
        if kind == ValueKind.BOOLEAN:
            lowered = text.lower()
            if lowered in ('true', '1'):
                return TRUE
            if lowered in ('false', '0'):
                return FALSE
            number = parse_number(text)
            if number is None:
                raise runtime_error(f"Invalid type for variable '{name}': expected a boolean", line)
            return Value.from_bool(number != 0)
        if kind == ValueKind.STRING:
            return Value(text, ValueKind.STRING)
        return Value(text)

    def execute_benchmark(self, node: BenchmarkStmt, env: Environment) -> Signal:
        start = time.perf_counter_ns()
        previous = self.buffer_output
        self.buffer_output = True
        try:
            result = self.execute(node.body, env)
        finally:
            self.flush_output()
            self.buffer_output = previous
        elapsed = time.perf_counter_ns() - start
        if self.debug_level >= 1:
            self.debug(f"benchmark at line {node.line}: {elapsed} ns")
        self.write_output(
            'Benchmark Results:\n'
            f'  Execution time: {elapsed} nanoseconds\n'
            f'  Execution time: {format_number(elapsed / 1e3)} microseconds\n'
            f'  Execution time: {format_number(elapsed / 1e6)} milliseconds\n'
            f'  Execution time: {format_number(elapsed / 1e9)} seconds\n'
        )
        return result

    # Loops

    def execute_for(self, node: ForStmt, env: Environment) -> Signal:
        header = loop_header(node) if self.fast_paths else None
        if header is None:
            return self.execute_general_loop(node, env)
        acc = accumulation_target(node, header)
        if acc is not None and self.run_accumulation(header, acc, env):
            return None
        plan = nested_plan(node, header)
        if plan is not None and self.run_nested_arithmetic(plan, env):
            return None
        return self.execute_counted_loop(node, header, env)

    def execute_general_loop(self, node: ForStmt, env: Environment) -> Signal:
        for_env = Environment(parent=env)
        self.loop_depth += 1
        try:
            if node.initializer is not None:
                self.execute(node.initializer, for_env)
            while True:
                if node.condition is not None:
                    self.line = node.line
                    if not self.evaluate(node.condition, for_env).is_truthy():
                        break
                result = self.execute(node.body, for_env)
                if isinstance(result, BreakSignal):
                    break
                if isinstance(result, ReturnSignal):
                    return result
                if node.increment is not None:
                    self.line = node.line
                    self.evaluate(node.increment, for_env)
        finally:
            self.loop_depth -= 1
        return None

    def execute_counted_loop(self, node: ForStmt, header: LoopHeader, env: Environment) -> Signal:
        """Interpret the body, but drive the counter natively."""
        if self.debug_level >= 2:
            self.debug(f"counted loop {header} at line {node.line}")
        for_env = Environment(parent=env)
        counter = float(header.start)
        for_env.declare(header.var, Value.from_number(counter), node.line)
        self.loop_depth += 1
        try:
            while header.holds(counter):
                result = self.execute(node.body, for_env)
                if isinstance(result, BreakSignal):
                    break
                if isinstance(result, ReturnSignal):
                    return result
                # the body may have assigned the counter itself
                counter = for_env.get(header.var).as_number() + header.step
                for_env.assign(header.var, Value.from_number(counter))
        finally:
            self.loop_depth -= 1
        return None

    def numeric_binding(self, name: str, env: Environment) -> Optional[float]:
        """Current number held by `name`, or None when it is unset or not a number."""
        value = env.lookup(name)
        if value is None or value.kind != ValueKind.NUMBER:
            return None
        return value.as_number()

    def run_accumulation(self, header: LoopHeader, acc: str, env: Environment) -> bool:
        if header.limit <= 0:
            return True
        total = self.numeric_binding(acc, env)
        if total is None:
            return False
        if self.debug_level >= 2:
            self.debug(f"accumulation loop {acc} += {header.var} for {header.var} < {header.limit}")
        for k in range(header.limit):
            total += k
        env.assign(acc, Value.from_number(total))
        return True

    def run_nested_arithmetic(self, plan: NestedPlan, env: Environment) -> bool:
        total = self.numeric_binding(plan.acc, env)
        if total is None:
            return False
        if self.debug_level >= 2:
            self.debug(f"nested arithmetic loop into {plan.acc}")
        outer, inner = plan.outer, plan.inner
        combine = ASSIGN_OPS[plan.assign_op]
        line = plan.line or self.line
        counters = {}
        try:
            i = float(outer.start)
            while outer.holds(i):
                counters[outer.var] = i
                j = float(inner.start)
                while inner.holds(j):
                    counters[inner.var] = j
                    x = apply_arith(plan.arith_op, counters[plan.left], counters[plan.right], line)
                    total = x if combine is None else apply_arith(combine, total, x, line)
                    j += inner.step
                i += outer.step
        finally:
            env.assign(plan.acc, Value.from_number(total), line)
        return True

    # Expressions

    def evaluate(self, node: Expr, env: Environment) -> Value:
        if isinstance(node, Literal):
            return self.evaluate_literal(node, env)
        if isinstance(node, Variable):
            return env.get(node.name, node.line or self.line)
        if isinstance(node, Binary):
            return self.evaluate_binary(node, env)
        if isinstance(node, Grouping):
            return self.evaluate(node.expression, env)
        if isinstance(node, Unary):
            operand = self.evaluate(node.right, env)
            if node.op.type == TokenType.MINUS:
                number = operand.as_number()
                if number is None:
                    return Value('-' + operand.text)
                return Value.from_number(-number)
            return Value.from_bool(operand.text in ('false', '0'))
        if isinstance(node, Prefix):
            old, new = self.step_variable(node.operand, node.op.type, env)
            return new
        if isinstance(node, Postfix):
            old, new = self.step_variable(node.operand, node.op.type, env)
            return old
        if isinstance(node, Call):
            return self.call_function(node, env)
        raise NotImplementedError(f"evaluate: unexpected node type {type(node)}")

    def evaluate_literal(self, node: Literal, env: Environment) -> Value:
        if node.token_type == TokenType.NUMBER:
            return Value.from_number(float(node.value))
        if node.token_type == TokenType.FORMAT_STRING:
            return Value(render_format_string(node.value, env, self.line))
        if node.token_type == TokenType.TRUE:
            return TRUE
        if node.token_type == TokenType.FALSE:
            return FALSE
        if node.token_type == TokenType.NIL:
            return NIL
        return Value(node.value)

    def evaluate_binary(self, node: Binary, env: Environment) -> Value:
        op = node.op.type
        if op in ASSIGN_OPS:
            return self.assign(node, env)
        left = self.evaluate(node.left, env)
        if op == TokenType.AND:
            if not left.is_truthy():
                return FALSE
            return Value.from_bool(self.evaluate(node.right, env).is_truthy())
        if op == TokenType.OR:
            if left.is_truthy():
                return TRUE
            return Value.from_bool(self.evaluate(node.right, env).is_truthy())
        right = self.evaluate(node.right, env)
        if op in ARITHMETIC_OPS:
            return self.arithmetic(op, left, right, node.op.line)
        if op in COMPARISON_OPS:
            return Value.from_bool(self.compare(op, left, right, node.op.line))
        raise runtime_error(f"Unsupported operator '{node.op.lexeme}'", node.op.line)

    def arithmetic(self, op: TokenType, left: Value, right: Value, line: int) -> Value:
        a = left.as_number()
        b = right.as_number()
        if a is None or b is None:
            if op == TokenType.PLUS:
                raise runtime_error(CONCATENATION_MESSAGE, line)
            raise runtime_error('Operands must be numbers', line)
        return Value.from_number(apply_arith(op, a, b, line))

    def compare(self, op: TokenType, left: Value, right: Value, line: int) -> bool:
        a = left.as_number()
        b = right.as_number()
        if a is None or b is None:
            if op == TokenType.EQUAL_EQUAL:
                return left.text == right.text
            if op == TokenType.BANG_EQUAL:
                return left.text != right.text
            raise runtime_error('Cannot compare non-numeric values', line)
        if op == TokenType.LESS:
            return a < b
        if op == TokenType.LESS_EQUAL:
            return a <= b
        if op == TokenType.GREATER:
            return a > b
        if op == TokenType.GREATER_EQUAL:
            return a >= b
        if op == TokenType.EQUAL_EQUAL:
            return a == b
        return a != b

    def assign(self, node: Binary, env: Environment) -> Value:
        target_expr = node.left
        line = node.op.line
        if not isinstance(target_expr, Variable):
            raise runtime_error('Invalid assignment target', line)
        name = target_expr.name
        env.get(name, line)
        right = self.evaluate(node.right, env)
        current = env.get(name, line)
        base_op = ASSIGN_OPS[node.op.type]
        final = right if base_op is None else self.arithmetic(base_op, current, right, line)
        if current.kind != ValueKind.NIL and current.kind != final.kind:
            raise type_error(
                f"Cannot assign {final.kind} value to variable '{name}' of type {current.kind}", line)
        env.assign(name, final, line)
        return final

    def step_variable(self, operand: Expr, op: TokenType, env: Environment):
        """Apply ++/-- to a variable; returns (old value, new value)."""
        symbol = '++' if op == TokenType.PLUS_PLUS else '--'
        if not isinstance(operand, Variable):
            raise runtime_error(f"Operand of '{symbol}' must be a variable", self.line)
        name = operand.name
        line = operand.line or self.line
        old = env.get(name, line)
        number = old.as_number()
        if number is None:
            raise runtime_error(f"Operand of '{symbol}' must be a number", line)
        new = Value.from_number(number + 1 if op == TokenType.PLUS_PLUS else number - 1)
        env.assign(name, new, line)
        return old, new

    def call_function(self, node: Call, env: Environment) -> Value:
        func = self.functions.get(node.callee)
        if func is None:
            raise runtime_error(f"Undefined function '{node.callee}'", node.line)
        if len(node.arguments) != len(func.params):
            raise runtime_error(
                f"Function '{node.callee}' expects {len(func.params)} arguments "
                f"but got {len(node.arguments)}",
                node.line,
            )
        args = [self.evaluate(arg, env) for arg in node.arguments]
        if self.debug_level >= 2:
            self.debug(f"call {node.callee}({', '.join(a.text for a in args)})")
        if func.body is None:
            return NIL
        call_env = Environment(parent=env)
        for param, arg in zip(func.params, args):
            call_env.values[param] = arg
        # loops of the caller do not extend into the callee
        saved_depth = self.loop_depth
        self.loop_depth = 0
        try:
            result = self.execute(func.body, call_env)
        finally:
            self.loop_depth = saved_depth
            self.line = node.line
        if isinstance(result, ReturnSignal):
            return result.value
        return NIL


def run_program(source: str, debug_level: int = 0) -> int:
    """Convenience function to parse and run a Rubber Duck program from source."""
    statements = parse_program(source)
    interpreter = Interpreter(debug_level=debug_level)
    return interpreter.run(statements)


def run_file(file_path: str, debug_level: int = 0) -> Interpreter:
    """Parse and run a .rd file, returning the interpreter instance."""
    with open(file_path, 'r', encoding='utf-8') as f:
        source = f.read()
    statements = parse_program(source)
    interpreter = Interpreter(debug_level=debug_level)
    interpreter.run(statements)
    return interpreter
