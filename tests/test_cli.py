import json

import pytest

from rubberduck.__main__ import main


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding='utf-8')
    return str(path)


def test_runs_program(tmp_path, capsys):
    main([write(tmp_path, 'hello.rd', 'display "Hello World!!";')])
    assert capsys.readouterr().out == 'Hello World!!\n'


def test_runs_example_program(capsys):
    main(['examples/program_1.rd'])
    assert capsys.readouterr().out == '7\n2.5\n1\n'


def test_requires_rd_extension(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([write(tmp_path, 'hello.txt', 'display 1;')])
    assert exc.value.code == 1
    assert capsys.readouterr().err == 'Error: File name must contain .rd extension.\n'


def test_missing_file(tmp_path, capsys):
    path = str(tmp_path / 'absent.rd')
    with pytest.raises(SystemExit) as exc:
        main([path])
    assert exc.value.code == 1
    assert capsys.readouterr().err == f"Error: Could not open file '{path}'\n"


def test_empty_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([write(tmp_path, 'empty.rd', '')])
    assert exc.value.code == 1
    assert capsys.readouterr().err == 'Error: file is empty or could not be read.\n'


def test_parse_error_is_reported(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([write(tmp_path, 'bad.rd', 'display 1')])
    assert exc.value.code == 1
    assert capsys.readouterr().err == "[Parsing Error] Expect ';' after value. at line 1\n"


def test_runtime_error_is_reported(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([write(tmp_path, 'bad.rd', 'display 1;\ndisplay 1 / (2 - 2 + x);\n')])
    captured = capsys.readouterr()
    assert exc.value.code == 1
    assert captured.out == '1\n'
    assert captured.err.startswith('[Runtime Error]')


def test_emit_and_run_ast(tmp_path, capsys):
    source = write(tmp_path, 'prog.rd', 'auto x = 4;\ndisplay x * x;')
    main(['--emit-ast', source])
    out_path = capsys.readouterr().out.strip()
    assert out_path == source + '.ast.json'
    with open(out_path, 'r', encoding='utf-8') as f:
        assert json.load(f)['type'] == 'Program'
    main(['--ast', out_path])
    assert capsys.readouterr().out == '16\n'


def test_verbose_writes_debug_file(tmp_path, capsys, monkeypatch):
    monkeypatch.chdir(tmp_path)
    main(['-vv', write(tmp_path, 'prog.rd', 'fun f() { return 1; }\ndisplay f();')])
    assert capsys.readouterr().out == '1\n'
    assert 'register function f()' in (tmp_path / 'debug.txt').read_text()


def test_program_required(capsys):
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 2


def test_deep_nesting_is_reported(tmp_path, capsys):
    source = 'display ' + '(' * 20000 + '1' + ')' * 20000 + ';'
    with pytest.raises(SystemExit) as exc:
        main([write(tmp_path, 'deep.rd', source)])
    assert exc.value.code == 1
    assert capsys.readouterr().err == '[Parsing Error] Maximum nesting depth exceeded at line 1\n'
