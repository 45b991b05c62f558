"""
TapeHost — high-level interface to the tape machine.

Compiles instruction text, runs it on a fresh machine, and hands the output
to a fixed-capacity sink.
"""

from __future__ import annotations

from pathlib import Path

from .compiler import compile_program
from .counter import WIDTH
from .machine import ExecutionState, TapeMachine
from .sink import DEFAULT_CAPACITY, OutputSink

# Prints "Hello, World!\n".
REFERENCE_PROGRAM = (
    "+++++++++++[>++++++>+++++++++>++++++++>++++>+++>+<<<<<<-]"
    ">++++++.>++.+++++++..+++.>>.>-.<<-.<.+++.------.--------.>>>+.>-."
)


class TapeHost:
    """High-level interface to the tape machine.

    Args:
        width: Tape and cell width in bits (2^width cells).
        max_cycles: Optional cycle budget. None runs until the program ends.
        capacity: Output sink capacity in bytes.
    """

    def __init__(self, width: int = WIDTH, max_cycles: int | None = None,
                 capacity: int = DEFAULT_CAPACITY):
        self.width = width
        self.max_cycles = max_cycles
        self.capacity = capacity
        self.machine: TapeMachine | None = None

    def compile(self, source: str):
        return compile_program(source)

    def run(self, program) -> dict:
        """
        Run a program to completion.

        `program` is instruction text or an already compiled Operation.
        Returns dict with ok flag, output bytes, rendered text, and stats.
        Raises BufferTooSmall if the output exceeds the sink capacity.
        """
        if isinstance(program, str):
            program = self.compile(program)

        self.machine = TapeMachine(
            program, ExecutionState.initial(self.width), max_cycles=self.max_cycles,
        )
        final = self.machine.run()

        sink = OutputSink(self.capacity)
        sink.write(final.output)

        return {
            "ok": self.machine.done,
            "output": sink.getvalue(),
            "text": sink.render(),
            "stats": self.machine.stats(),
        }

    def run_file(self, path: str | Path) -> dict:
        return self.run(Path(path).read_text(encoding="utf-8"))
