"""
Program compiler — instruction text to a composed operation tree.

    +  IncCell          -  DecCell
    >  IncPointer       <  DecPointer
    .  WriteOutput      [ ... ]  WhileCellNonZero
    ,  rejected (no input device)

Any other character is a comment. Adjacent instructions are joined with
right-folded Sequence nodes; an empty program compiles to Noop.
"""

from __future__ import annotations

from pathlib import Path

from lark import Lark, Token
from lark.visitors import Transformer_NonRecursive
from lark.exceptions import UnexpectedInput

from .machine import (
    IncPointer, DecPointer, IncCell, DecCell, WriteOutput,
    WhileCellNonZero, sequence,
)


class UnsupportedOperator(SyntaxError):
    """The program uses the input operator."""

    def __init__(self, operator: str, line: int, column: int):
        super().__init__(
            f"Input operator {operator!r} not supported (line {line}, column {column})"
        )
        self.operator = operator
        self.line = line
        self.column = column


class UnbalancedLoop(SyntaxError):
    """A '[' without its ']' or the other way round."""


# ============================================================
# Grammar (Lark LALR)
# ============================================================

GRAMMAR = r"""
    start: _instr*

    _instr: INC_CELL
          | DEC_CELL
          | INC_PTR
          | DEC_PTR
          | WRITE
          | READ
          | loop

    loop: "[" _instr* "]"

    INC_CELL: "+"
    DEC_CELL: "-"
    INC_PTR: ">"
    DEC_PTR: "<"
    WRITE: "."
    READ: ","

    COMMENT: /[^+\-<>.,\[\]]+/
    %ignore COMMENT
"""

parser = Lark(GRAMMAR, parser="lalr")


class _ToOperation(Transformer_NonRecursive):
    """Parse tree → Operation. Runs only after READ tokens have been rejected."""

    def INC_CELL(self, _tok):
        return IncCell()

    def DEC_CELL(self, _tok):
        return DecCell()

    def INC_PTR(self, _tok):
        return IncPointer()

    def DEC_PTR(self, _tok):
        return DecPointer()

    def WRITE(self, _tok):
        return WriteOutput()

    def loop(self, children):
        return WhileCellNonZero(sequence(*children))

    def start(self, children):
        return sequence(*children)


def _is_read(value) -> bool:
    return isinstance(value, Token) and value.type == "READ"


def compile_program(source: str):
    """Compile instruction text to a single Operation."""
    try:
        tree = parser.parse(source)
    except UnexpectedInput as e:
        if isinstance(e.line, int) and e.line > 0:
            where = f"line {e.line}, column {e.column}"
        else:
            where = "end of program"
        raise UnbalancedLoop(f"Unbalanced brackets at {where}") from e

    reads = sorted(tree.scan_values(_is_read), key=lambda t: t.start_pos)
    if reads:
        tok = reads[0]
        raise UnsupportedOperator(str(tok), tok.line, tok.column)

    return _ToOperation().transform(tree)


def compile_file(path: str | Path):
    """Read a program file and compile it."""
    return compile_program(Path(path).read_text(encoding="utf-8"))
