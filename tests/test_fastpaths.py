import random

import pytest

from rubberduck.errors import RubberDuckError
from rubberduck.fastpaths import (
    LoopHeader, accumulation_target, loop_header, nested_plan,
)
from rubberduck.interpreter import Interpreter
from rubberduck.lexer import TokenType
from rubberduck.parser import parse_program


def loop_of(source):
    statements = parse_program(source)
    return statements[-1]


def final_env(source, fast_paths):
    interp = Interpreter(fast_paths=fast_paths)
    interp.run(parse_program(source))
    return {name: value.text for name, value in interp.global_env.values.items()}


def assert_equivalent(source):
    assert final_env(source, True) == final_env(source, False)


def test_loop_header_shapes():
    header = loop_header(loop_of('for (auto i = 10; i > -3; i -= 4) { }'))
    assert header == LoopHeader(var='i', start=10, op=TokenType.GREATER, limit=-3, step=-4)
    assert header.holds(-2)
    assert not header.holds(-3)
    assert loop_header(loop_of('for (auto k = 0; k <= 3; --k) { }')).step == -1
    assert loop_header(loop_of('auto n = 0;\nfor (; n < 3; n++) { }')) is None


def test_accumulation_detection():
    stmt = loop_of('for (auto i = 0; i < 5; i++) { acc += i; }')
    assert accumulation_target(stmt, loop_header(stmt)) == 'acc'
    for source in (
        'for (auto i = 1; i < 5; i++) { acc += i; }',
        'for (auto i = 0; i <= 5; i++) { acc += i; }',
        'for (auto i = 0; i < 5; i += 2) { acc += i; }',
        'for (auto i = 0; i < 5; i++) { acc -= i; }',
        'for (auto i = 0; i < 5; i++) acc += i;',
        'for (auto i = 0; i < 5; i++) { acc += i; acc += i; }',
    ):
        stmt = loop_of(source)
        assert accumulation_target(stmt, loop_header(stmt)) is None, source


def test_nested_plan_detection():
    stmt = loop_of('for (auto i = 0; i < 3; i++) { for (auto j = 0; j < 3; j++) { t *= (j - i); } }')
    plan = nested_plan(stmt, loop_header(stmt))
    assert plan.acc == 't'
    assert plan.assign_op == TokenType.STAR_EQUAL
    assert plan.arith_op == TokenType.MINUS
    assert (plan.left, plan.right) == ('j', 'i')
    assert plan.line == 1
    stmt = loop_of('for (auto i = 0; i < 3; i++) { for (auto j = 0; j < 3; j++) { t += i + 1; } }')
    assert nested_plan(stmt, loop_header(stmt)) is None


def test_accumulation_needs_numeric_accumulator(capsys):
    with pytest.raises(RubberDuckError) as exc:
        Interpreter().run(parse_program('for (auto i = 0; i < 3; i++) { acc += i; }'))
    assert exc.value.info.message == "Variable 'acc' must be declared with 'auto' keyword before use"


def test_accumulation_with_text_accumulator():
    source = 'auto acc = "x";\nfor (auto i = 0; i < 3; i++) { acc += i; }'
    for fast in (True, False):
        with pytest.raises(RubberDuckError) as exc:
            Interpreter(fast_paths=fast).run(parse_program(source))
        assert exc.value.info.message.startswith('String concatenation')


def test_nested_division_by_zero_matches_general_path():
    source = ('auto q = 100;\n'
              'for (auto i = 0; i < 3; i++) {\n'
              '  for (auto j = 2; j >= 0; j--) {\n'
              '    q += (i / j);\n'
              '  }\n'
              '}')
    results = []
    for fast in (True, False):
        interp = Interpreter(fast_paths=fast)
        with pytest.raises(RubberDuckError) as exc:
            interp.run(parse_program(source))
        results.append((exc.value.info.message, exc.value.info.line,
                        interp.global_env.get('q').text))
    assert results[0] == results[1]
    assert results[0][:2] == ('Division by zero', 4)


def test_random_counted_loops_match_general_path():
    rng = random.Random(20240611)
    ops = ['<', '<=', '>', '>=']
    for _ in range(40):
        start = rng.randint(-20, 20)
        limit = rng.randint(-20, 20)
        op = rng.choice(ops)
        step = rng.randint(1, 4)
        if op in ('>', '>='):
            incr = f'i -= {step}' if step > 1 else 'i--'
        else:
            incr = f'i += {step}' if step > 1 else '++i'
        source = (f'auto s = 0;\nauto last = 0;\n'
                  f'for (auto i = {start}; i {op} {limit}; {incr}) {{ s += i * 2; last = i; }}')
        assert_equivalent(source)


def test_random_accumulation_loops_match_general_path():
    rng = random.Random(7)
    for _ in range(20):
        limit = rng.randint(-5, 300)
        initial = rng.randint(-50, 50)
        source = (f'auto acc = {initial};\n'
                  f'for (auto i = 0; i < {limit}; i++) {{ acc += i; }}')
        assert_equivalent(source)


def test_random_nested_loops_match_general_path():
    rng = random.Random(99)
    assign_ops = ['=', '+=', '-=', '*=']
    arith_ops = ['+', '-', '*', '%']
    for _ in range(30):
        outer = rng.randint(0, 8)
        inner = rng.randint(0, 8)
        assign = rng.choice(assign_ops)
        arith = rng.choice(arith_ops)
        if arith == '%':
            # keep the divisor positive
            expr = 'i % j'
            j_start = 1
        else:
            expr = f'{rng.choice(["i", "j"])} {arith} {rng.choice(["i", "j"])}'
            j_start = 0
        source = (f'auto t = 1;\n'
                  f'for (auto i = 0; i < {outer}; i++) {{\n'
                  f'  for (auto j = {j_start}; j <= {inner}; j++) {{ t {assign} ({expr}); }}\n'
                  f'}}')
        assert_equivalent(source)


def test_fast_path_display_output_matches(capsys):
    source = 'for (auto i = 3; i > 0; i--) { display i; }'
    Interpreter().run(parse_program(source))
    fast = capsys.readouterr().out
    Interpreter(fast_paths=False).run(parse_program(source))
    assert capsys.readouterr().out == fast == '3\n2\n1\n'
