"""
Tape machine — clocked state machine for composed tape operations.

Holds one live ExecutionState and walks the operation tree with an explicit
continuation stack, so neither sequencing nor looping grows the Python call
stack. Every step replaces the live state with a new immutable value.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .counter import BinaryCounter, WIDTH
from .tape import AddressedTree


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IncPointer:
    def __repr__(self): return ">"

@dataclass(frozen=True)
class DecPointer:
    def __repr__(self): return "<"

@dataclass(frozen=True)
class IncCell:
    def __repr__(self): return "+"

@dataclass(frozen=True)
class DecCell:
    def __repr__(self): return "-"

@dataclass(frozen=True)
class WriteOutput:
    def __repr__(self): return "."

@dataclass(frozen=True)
class Noop:
    def __repr__(self): return "noop"

class _Composite:
    """Equality, hashing and repr by explicit-stack walks; compiled chains run thousands deep."""

    def __eq__(self, other):
        if not isinstance(other, _Composite):
            return NotImplemented
        return _same_tree(self, other)

    def __hash__(self):
        return hash(tuple(type(node).__name__ for node in walk(self)))

    def __repr__(self):
        return _format_tree(self)


@dataclass(frozen=True, eq=False, repr=False)
class Sequence(_Composite):
    """Apply `first`, then `second` to the result."""
    first: object
    second: object

@dataclass(frozen=True, eq=False, repr=False)
class WhileCellNonZero(_Composite):
    """Run `body` while the cell under the live pointer is non-zero."""
    body: object


PRIMITIVES = (IncPointer, DecPointer, IncCell, DecCell, WriteOutput, Noop)


def walk(op):
    """Preorder walk of an operation tree."""
    stack = [op]
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, Sequence):
            stack.append(node.second)
            stack.append(node.first)
        elif isinstance(node, WhileCellNonZero):
            stack.append(node.body)


def _same_tree(a, b) -> bool:
    # Arities are fixed, so equal preorder node sequences mean equal trees.
    missing = object()
    left, right = walk(a), walk(b)
    while True:
        x = next(left, missing)
        y = next(right, missing)
        if x is missing or y is missing:
            return x is y
        if isinstance(x, _Composite) or isinstance(y, _Composite):
            if type(x) is not type(y):
                return False
        elif x != y:
            return False


def _format_tree(op) -> str:
    out = []
    stack = [op]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            out.append(item)
        elif isinstance(item, Sequence):
            stack.extend((")", item.second, " ; ", item.first, "("))
        elif isinstance(item, WhileCellNonZero):
            stack.extend(("]", item.body, "["))
        else:
            out.append(repr(item))
    return "".join(out)


NOOP = Noop()


def sequence(*ops):
    """Right-fold ops into Sequence nodes. Noops are dropped; no ops gives Noop."""
    ops = [op for op in ops if not isinstance(op, Noop)]
    if not ops:
        return NOOP
    result = ops[-1]
    for op in reversed(ops[:-1]):
        result = Sequence(op, result)
    return result


# ---------------------------------------------------------------------------
# Execution state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExecutionState:
    tape: AddressedTree
    pointer: BinaryCounter
    output: bytes = b""

    def __post_init__(self):
        if self.pointer.width != self.tape.width:
            raise ValueError(
                f"Pointer width {self.pointer.width} does not match "
                f"tape width {self.tape.width}"
            )

    @classmethod
    def initial(cls, width: int = WIDTH) -> ExecutionState:
        return cls(AddressedTree.zeroed(width), BinaryCounter.zero(width), b"")

    def current_cell(self) -> BinaryCounter:
        return self.tape.read(self.pointer)

    def step(self, op) -> ExecutionState:
        """Apply one primitive operation."""
        if isinstance(op, IncPointer):
            return replace(self, pointer=self.pointer.increment())
        if isinstance(op, DecPointer):
            return replace(self, pointer=self.pointer.decrement())
        if isinstance(op, IncCell):
            return replace(self, tape=self.tape.increment_at(self.pointer))
        if isinstance(op, DecCell):
            return replace(self, tape=self.tape.decrement_at(self.pointer))
        if isinstance(op, WriteOutput):
            byte = self.current_cell().value() & 0xFF
            return replace(self, output=self.output + bytes((byte,)))
        if isinstance(op, Noop):
            return self
        raise TypeError(f"Not a primitive operation: {op!r}")


# ---------------------------------------------------------------------------
# Machine
# ---------------------------------------------------------------------------

# Phases
S_FETCH  = 0   # dispatch on the current operation
S_TEST   = 1   # loop: read the cell under the live pointer
S_RETURN = 2   # current operation finished, pop a continuation
S_DONE   = 3
S_HALTED = 4   # cycle budget exhausted

# Continuation kinds
K_THEN = 0     # run the pending second half of a Sequence
K_LOOP = 1     # body finished, re-test the loop


class TapeMachine:
    """Clocked evaluator for one operation tree over one execution state."""

    def __init__(self, program, state: ExecutionState | None = None,
                 max_cycles: int | None = None):
        self.program = program
        self.state = state if state is not None else ExecutionState.initial()
        self.max_cycles = max_cycles

        # --- Registers ---
        self.op = program
        self.phase = S_FETCH
        self.stack: list[tuple[int, object]] = []

        # --- Counters ---
        self.cycles = 0
        self.primitive_ops = 0
        self.loop_tests = 0
        self.loop_iterations = 0
        self.output_bytes = 0
        self.stack_peak = 0

    def _push(self, kind: int, op):
        self.stack.append((kind, op))
        if len(self.stack) > self.stack_peak:
            self.stack_peak = len(self.stack)

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------

    def tick(self) -> bool:
        """One clock cycle. Returns True if still running."""
        if self.phase in (S_DONE, S_HALTED):
            return False

        if self.max_cycles is not None and self.cycles >= self.max_cycles:
            self.phase = S_HALTED
            return False
        self.cycles += 1

        p = self.phase

        if p == S_FETCH:
            op = self.op
            if isinstance(op, Sequence):
                self._push(K_THEN, op.second)
                self.op = op.first
            elif isinstance(op, WhileCellNonZero):
                self.phase = S_TEST
            elif isinstance(op, PRIMITIVES):
                self.state = self.state.step(op)
                self.primitive_ops += 1
                if isinstance(op, WriteOutput):
                    self.output_bytes += 1
                self.phase = S_RETURN
            else:
                raise TypeError(f"Not an operation: {op!r}")

        elif p == S_TEST:
            # Re-read under the pointer of the live state every time round.
            self.loop_tests += 1
            if self.state.current_cell().is_zero():
                self.phase = S_RETURN
            else:
                self.loop_iterations += 1
                self._push(K_LOOP, self.op)
                self.op = self.op.body
                self.phase = S_FETCH

        elif p == S_RETURN:
            if not self.stack:
                self.phase = S_DONE
            else:
                kind, op = self.stack.pop()
                self.op = op
                self.phase = S_FETCH if kind == K_THEN else S_TEST

        return self.phase not in (S_DONE, S_HALTED)

    # -------------------------------------------------------------------
    # Run to completion
    # -------------------------------------------------------------------

    def run(self) -> ExecutionState:
        """Run until S_DONE or S_HALTED. Returns the final state."""
        while self.tick():
            pass
        return self.state

    @property
    def done(self) -> bool:
        return self.phase == S_DONE

    @property
    def halted(self) -> bool:
        return self.phase == S_HALTED

    def stats(self) -> dict:
        return {
            "cycles": self.cycles,
            "primitive_ops": self.primitive_ops,
            "loop_tests": self.loop_tests,
            "loop_iterations": self.loop_iterations,
            "output_bytes": self.output_bytes,
            "stack_peak": self.stack_peak,
            "pointer": self.state.pointer.value(),
        }

    def stats_summary(self) -> str:
        s = self.stats()
        return (
            f"Cycles: {s['cycles']}\n"
            f"Primitive ops: {s['primitive_ops']}\n"
            f"Loops: {s['loop_iterations']} iterations / {s['loop_tests']} tests\n"
            f"Output: {s['output_bytes']} bytes\n"
            f"Stack peak: {s['stack_peak']}\n"
            f"Final pointer: {s['pointer']}"
        )


def apply(op, state: ExecutionState, max_cycles: int | None = None) -> ExecutionState:
    """Apply a (possibly composite) operation to a state."""
    return TapeMachine(op, state, max_cycles=max_cycles).run()


def run(program, width: int = WIDTH, max_cycles: int | None = None) -> bytes:
    """Run a program from the zeroed initial state and return its output."""
    return apply(program, ExecutionState.initial(width), max_cycles=max_cycles).output
