from rubberduck.interpreter import Interpreter
from rubberduck.parser import parse_program


def test_program_6_function_return(capsys):
    with open('examples/program_6.rd', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out = capsys.readouterr().out
    assert out == '5\n'
