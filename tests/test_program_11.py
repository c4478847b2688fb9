import re

from rubberduck.interpreter import Interpreter
from rubberduck.parser import parse_program


def test_program_11_benchmark(capsys):
    with open('examples/program_11.rd', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out = capsys.readouterr().out.splitlines()
    assert out[0] == '499500'
    assert out[1] == 'Benchmark Results:'
    assert re.fullmatch(r'  Execution time: \d+ nanoseconds', out[2])
    assert re.fullmatch(r'  Execution time: [\d.]+ microseconds', out[3])
    assert re.fullmatch(r'  Execution time: [\d.]+ milliseconds', out[4])
    assert re.fullmatch(r'  Execution time: [\d.e-]+ seconds', out[5])
    assert len(out) == 6
