# Rubber Duck language package
# This package provides a tokenizer, parser and tree-walking interpreter for Rubber Duck.
from .errors import RubberDuckError
from .interpreter import Interpreter, run_file, run_program
from .parser import parse_program

__all__ = [
    'run_program',
    'run_file',
    'parse_program',
    'Interpreter',
    'RubberDuckError',
]
