from rubberduck.interpreter import Interpreter
from rubberduck.parser import parse_program


def test_program_4_continue(capsys):
    with open('examples/program_4.rd', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out = capsys.readouterr().out
    assert out == '8\n'


def test_program_4_general_path(capsys):
    with open('examples/program_4.rd', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    Interpreter(fast_paths=False).run(ast)
    assert capsys.readouterr().out == '8\n'
