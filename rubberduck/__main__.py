"""CLI entry point for the Rubber Duck interpreter.

Usage:
    python -m rubberduck [-v|-vv|-vvv] <program_file.rd>
    python -m rubberduck [-v...] --emit-ast <program_file.rd>
    python -m rubberduck [-v...] --ast <ast_json_file>

Options:
  -v            Increase debug verbosity (can be repeated)
  --emit-ast    Parse the given .rd file and emit an AST JSON file
  --ast         Execute a previously emitted AST JSON file

Debug information is written to `debug.txt` in the current directory when
verbosity is greater than zero.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List

from .ast import Stmt
from .ast_json import program_from_obj, program_to_obj
from .errors import RubberDuckError, report_error
from .interpreter import Interpreter
from .parser import parse_program


def read_source(path: str) -> str:
    if '.rd' not in path:
        print("Error: File name must contain .rd extension.", file=sys.stderr)
        sys.exit(1)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
    except OSError:
        print(f"Error: Could not open file '{path}'", file=sys.stderr)
        sys.exit(1)
    if not source:
        print("Error: file is empty or could not be read.", file=sys.stderr)
        sys.exit(1)
    return source


def execute(statements: List[Stmt], debug_level: int) -> None:
    interpreter = Interpreter(debug_level=debug_level)
    try:
        interpreter.run(statements)
    except RubberDuckError as e:
        report_error(e.info)
        sys.exit(1)


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Rubber Duck language interpreter")
    parser.add_argument('-v', action='count', default=0, help='increase debug verbosity (can be repeated)')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--emit-ast', metavar='RD_FILE', help='emit AST JSON for the given .rd file')
    group.add_argument('--ast', metavar='AST_JSON_FILE', help='execute AST from a JSON file')
    parser.add_argument('program', nargs='?', help='Rubber Duck program file (.rd) to execute')
    args = parser.parse_args(argv)

    # Emit AST mode
    if args.emit_ast:
        source = read_source(args.emit_ast)
        try:
            statements = parse_program(source)
        except RubberDuckError as e:
            report_error(e.info)
            sys.exit(1)
        program_file = Path(args.emit_ast)
        out_path = program_file.with_name(program_file.name + '.ast.json')
        with open(out_path, 'w', encoding='utf-8') as out:
            json.dump(program_to_obj(statements), out, ensure_ascii=False, indent=2)
        print(str(out_path))
        return

    # Execute from AST JSON
    if args.ast:
        try:
            with open(args.ast, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except OSError:
            print(f"Error: Could not open file '{args.ast}'", file=sys.stderr)
            sys.exit(1)
        try:
            statements = program_from_obj(data)
        except (KeyError, TypeError, ValueError) as e:
            print(f"Error: invalid AST file '{args.ast}': {e}", file=sys.stderr)
            sys.exit(1)
        execute(statements, args.v)
        return

    # Default: execute source file
    if not args.program:
        parser.error('missing program file; or use --emit-ast/--ast')
    source = read_source(args.program)
    try:
        statements = parse_program(source)
    except RubberDuckError as e:
        report_error(e.info)
        sys.exit(1)
    execute(statements, args.v)


if __name__ == '__main__':
    main()
