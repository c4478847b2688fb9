import io

from rubberduck.errors import (
    BREAK, CONTINUE, ErrorInfo, ErrorKind, ReturnSignal, lexing_error, report_error,
    runtime_error,
)


def test_error_format_variants():
    assert ErrorInfo(ErrorKind.RUNTIME, 'boom').format() == '[Runtime Error] boom'
    assert ErrorInfo(ErrorKind.PARSING, 'bad', 3).format() == '[Parsing Error] bad at line 3'
    assert lexing_error('odd', 2, 5).info.format() == '[Lexing Error] odd at line 2, column 5'


def test_report_error_writes_one_line():
    stream = io.StringIO()
    report_error(runtime_error('Division by zero', 9).info, stream)
    assert stream.getvalue() == '[Runtime Error] Division by zero at line 9\n'


def test_report_error_defaults_to_stderr(capsys):
    report_error(ErrorInfo(ErrorKind.TYPE, 'mismatch', 1))
    assert capsys.readouterr().err == '[Type Error] mismatch at line 1\n'


def test_signals():
    assert repr(BREAK) == 'BreakSignal()'
    assert repr(CONTINUE) == 'ContinueSignal()'
    assert ReturnSignal(3).value == 3
