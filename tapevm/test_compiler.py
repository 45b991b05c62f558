"""
Compiler tests: instruction mapping, comments, and rejected programs.
"""

from __future__ import annotations

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from tapevm.compiler import (
    UnbalancedLoop, UnsupportedOperator, compile_file, compile_program,
)
from tapevm.machine import (
    IncPointer, DecPointer, IncCell, DecCell, WriteOutput, NOOP,
    Sequence, WhileCellNonZero, run,
)


def test_single_instructions():
    assert compile_program("+") == IncCell()
    assert compile_program("-") == DecCell()
    assert compile_program(">") == IncPointer()
    assert compile_program("<") == DecPointer()
    assert compile_program(".") == WriteOutput()


def test_empty_program_is_noop():
    assert compile_program("") == NOOP
    assert compile_program("just a comment\n") == NOOP


def test_concatenation_is_right_folded_sequence():
    assert compile_program("+>.") == \
        Sequence(IncCell(), Sequence(IncPointer(), WriteOutput()))


def test_loops():
    assert compile_program("[-]") == WhileCellNonZero(DecCell())
    assert compile_program("[]") == WhileCellNonZero(NOOP)
    assert compile_program("+[>[-]<]") == Sequence(
        IncCell(),
        WhileCellNonZero(Sequence(
            IncPointer(),
            Sequence(WhileCellNonZero(DecCell()), DecPointer()),
        )),
    )


def test_comments_are_ignored():
    commented = "add eight: ++++ ++++\n[ > ++++++++ < - ] move > print ."
    assert compile_program(commented) == compile_program("++++++++[>++++++++<-]>.")
    assert run(compile_program(commented)) == bytes([64])


def test_input_operator_rejected():
    with pytest.raises(UnsupportedOperator) as exc:
        compile_program("+,.")
    assert exc.value.operator == ","
    assert exc.value.line == 1
    assert exc.value.column == 2


def test_input_operator_rejected_inside_loop():
    with pytest.raises(UnsupportedOperator) as exc:
        compile_program("+\n[>,<-]")
    assert exc.value.line == 2
    assert isinstance(exc.value, SyntaxError)


@pytest.mark.parametrize("source", ["[", "]", "+[[-]", "+]-[", "[]]"])
def test_unbalanced_brackets_rejected(source):
    with pytest.raises(UnbalancedLoop):
        compile_program(source)


def test_compile_file(tmp_path):
    path = tmp_path / "sixty_four.bf"
    path.write_text("++++++++[>++++++++<-]>.\n", encoding="utf-8")
    assert run(compile_file(path)) == bytes([64])


def test_deep_nesting():
    depth = 2500
    source = "+" + "[" * depth + "-" + "]" * depth + "."
    prog = compile_program(source)
    assert run(prog) == bytes([0])
    assert prog == compile_program(source)
    assert hash(prog) == hash(compile_program(source))
    assert repr(prog).count("[") == depth


def test_long_flat_program():
    source = "+" * 4999 + "."
    prog = compile_program(source)
    again = compile_program(source)
    assert prog == again
    assert hash(prog) == hash(again)
    assert prog != compile_program("+" * 4998 + ".")
    assert repr(prog).startswith("(+ ; (+ ; ")
    assert Sequence(NOOP, prog) == Sequence(NOOP, again)
    assert run(prog) == bytes([4999 % 256])
    assert run(Sequence(NOOP, prog)) == run(Sequence(prog, NOOP)) == run(prog)
