import pytest

from rubberduck.ast import (
    ASTContext, Binary, BlockStmt, BenchmarkStmt, Call, DisplayStmt, ExpressionStmt,
    ForStmt, FunStmt, Grouping, IfStmt, Literal, Unary, VarStmt, Variable,
)
from rubberduck.errors import ErrorKind, RubberDuckError
from rubberduck.lexer import TokenType
from rubberduck.parser import parse_program


def parse_error(source):
    with pytest.raises(RubberDuckError) as exc:
        parse_program(source)
    assert exc.value.kind == ErrorKind.PARSING
    return exc.value.info


def test_constant_folding():
    (stmt,) = parse_program('display 1 + 2 * 3;')
    assert isinstance(stmt, DisplayStmt)
    (value,) = stmt.values
    assert isinstance(value, Literal)
    assert value.token_type == TokenType.NUMBER
    assert value.value == '7'


def test_folding_modulus_and_negation():
    (stmt,) = parse_program('auto x = -7 % 3;')
    assert stmt.initializer.value == '-1'


def test_no_folding_across_variables():
    (stmt,) = parse_program('auto y = x * 2;')
    assert isinstance(stmt.initializer, Binary)
    assert isinstance(stmt.initializer.left, Variable)


def test_division_by_zero_in_constant_expression():
    info = parse_error('auto x = 1;\ndisplay 4 / 0;')
    assert info.message == 'Division by zero in constant expression'
    assert info.line == 2


def test_modulus_by_zero_in_constant_expression():
    info = parse_error('display 4 % 0;')
    assert info.message == 'Modulus by zero in constant expression'


def test_precedence_and_grouping():
    (stmt,) = parse_program('a = b || c && d == e < f + g * h;')
    expr = stmt.expression
    assert isinstance(expr, Binary) and expr.op.type == TokenType.EQUAL
    rhs = expr.right
    assert rhs.op.type == TokenType.OR
    assert rhs.right.op.type == TokenType.AND
    assert rhs.right.right.op.type == TokenType.EQUAL_EQUAL
    assert rhs.right.right.right.op.type == TokenType.LESS


def test_grouping_and_unary():
    (stmt,) = parse_program('display !(a), -b;')
    bang, neg = stmt.values
    assert isinstance(bang, Unary) and isinstance(bang.right, Grouping)
    assert isinstance(neg, Unary) and neg.op.type == TokenType.MINUS


def test_function_declaration_and_prototype():
    proto, fun, call = parse_program(
        'fun f(auto a);\nfun g(auto a, auto b) { return a; }\ng(1, 2);')
    assert isinstance(proto, FunStmt) and proto.body is None
    assert proto.params == ['a']
    assert isinstance(fun.body, BlockStmt)
    assert fun.params == ['a', 'b']
    assert fun.line == 2
    assert isinstance(call.expression, Call)
    assert call.expression.callee == 'g'
    assert len(call.expression.arguments) == 2


def test_parameter_requires_auto():
    info = parse_error('fun f(a) { }')
    assert info.message == "Expect 'auto' before parameter name."


def test_if_else_and_benchmark():
    stmt, bench = parse_program('if (x) display 1; else { display 2; }\nbenchmark { x; }')
    assert isinstance(stmt, IfStmt)
    assert isinstance(stmt.else_branch, BlockStmt)
    assert isinstance(bench, BenchmarkStmt)
    assert isinstance(bench.body, BlockStmt)
    assert bench.line == 2


def test_for_without_initializer_is_unchecked():
    (stmt,) = parse_program('for (; x < y; x = x + 1) { }')
    assert isinstance(stmt, ForStmt)
    assert stmt.initializer is None


def test_for_with_valid_header():
    (stmt,) = parse_program('for (auto i = 10; i >= -2; i -= 3) display i;')
    assert isinstance(stmt.initializer, VarStmt)
    assert isinstance(stmt.body, DisplayStmt)


@pytest.mark.parametrize('header, message', [
    ('auto i; i < 3; i++', 'For-loop initializer must declare an int variable with an initializer.'),
    ('auto i = 1.5; i < 3; i++', 'For-loop variable must be initialized with an int literal'),
    ('auto i = 0; ; i++', 'For-loop condition is required.'),
    ('auto i = 0; i; i++', 'For-loop condition must be a comparison.'),
    ('auto i = 0; i == 3; i++', 'For-loop condition must be <, <=, >, or >=.'),
    ('auto i = 0; j < 3; i++', 'For-loop condition must compare loop variable to an int literal.'),
    ('auto i = 0; i < n; i++', 'For-loop condition must compare loop variable to an int literal.'),
    ('auto i = 0; i < 3; ', 'For-loop increment is required.'),
    ('auto i = 0; i < 3; i *= 2', 'For-loop increment must be ++/-- or +=/-= with an int literal.'),
    ('auto i = 0; i < 3; j++', 'For-loop increment must be ++/-- or +=/-= with an int literal.'),
])
def test_for_header_errors_report_header_line(header, message):
    info = parse_error('auto n = 3;\n\nfor (' + header + ')\n{\n}')
    assert info.message == message
    assert info.line == 3


def test_for_initializer_must_use_auto():
    info = parse_error('for (i = 0; i < 3; i++) { }')
    assert info.message == "Expect 'auto' variable declaration or ';' in for-loop initializer."


def test_invalid_assignment_target():
    info = parse_error('1 = 2;')
    assert info.message == 'Invalid assignment target'


def test_missing_semicolon():
    info = parse_error('display 1\ndisplay 2;')
    assert info.message == "Expect ';' after value."
    assert info.line == 2


def test_reserved_words_do_not_parse():
    info = parse_error('const x = 1;')
    assert info.message == 'Expect expression'


def test_unclosed_block():
    info = parse_error('{ display 1;')
    assert info.message == "Expect '}' after block."


def test_context_node_limit():
    with pytest.raises(RubberDuckError) as exc:
        parse_program('display 1, 2, 3, 4;', ASTContext(max_nodes=3))
    assert exc.value.kind == ErrorKind.RUNTIME
    assert exc.value.info.message == 'Out of memory: AST node limit exceeded'


def test_context_owns_nodes():
    with ASTContext() as context:
        parse_program('auto x = 1;', context)
        assert len(context) == 2
    assert len(context) == 0


def test_display_expression_statement():
    (stmt,) = parse_program('x++;')
    assert isinstance(stmt, ExpressionStmt)


def test_deeply_nested_expression_parses():
    (stmt,) = parse_program('display ' + '(' * 2000 + '1' + ')' * 2000 + ';')
    node = stmt.values[0]
    depth = 0
    while isinstance(node, Grouping):
        node = node.expression
        depth += 1
    assert depth == 2000
    assert node.value == '1'


def test_nesting_beyond_limit_is_a_parsing_error():
    info = parse_error('auto x = 1;\ndisplay ' + '(' * 20000 + '1' + ')' * 20000 + ';')
    assert info.message == 'Maximum nesting depth exceeded'
    assert info.line == 2
