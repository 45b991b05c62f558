"""
Addressed tape for the tape machine.

The tape is a perfect binary tree of depth N with 2^N leaf cells. Walking
the pointer's bits from the most significant down picks left (0) or right (1)
at each level, which lands on leaf number `pointer.value()` in left-to-right
order. The leaves are therefore stored flat in a read-only numpy array and
indexed by the pointer value directly.
"""

from __future__ import annotations

import numpy as np

from .counter import BinaryCounter, WIDTH

MAX_WIDTH = 16   # 64K cells


class AddressedTree:
    """Immutable 2^N-cell tape. Writes return a new tape; the receiver is untouched."""

    def __init__(self, width: int, cells: np.ndarray):
        if not 1 <= width <= MAX_WIDTH:
            raise ValueError(f"Tape width must be in 1..{MAX_WIDTH}, got {width}")
        if np.shape(cells) != (1 << width,):
            raise ValueError(
                f"Tape of width {width} needs {1 << width} cells, got shape {np.shape(cells)}"
            )
        self.width = width
        self._mask = (1 << width) - 1
        # Own copy, reduced modulo 2^N, in the narrowest unsigned dtype.
        masked = np.asarray(cells, dtype=np.int64) & self._mask
        self._cells = masked.astype(np.min_scalar_type(self._mask))
        self._cells.setflags(write=False)

    @classmethod
    def zeroed(cls, width: int = WIDTH) -> AddressedTree:
        if not 1 <= width <= MAX_WIDTH:
            raise ValueError(f"Tape width must be in 1..{MAX_WIDTH}, got {width}")
        dtype = np.min_scalar_type((1 << width) - 1)
        return cls(width, np.zeros(1 << width, dtype=dtype))

    # -------------------------------------------------------------------
    # Addressing
    # -------------------------------------------------------------------

    def _leaf(self, ptr: BinaryCounter) -> int:
        if ptr.width != self.width:
            raise ValueError(
                f"Pointer width {ptr.width} does not match tape width {self.width}"
            )
        return ptr.value()

    def leaf_path(self, ptr: BinaryCounter) -> str:
        """Left/right choices from the root to the addressed leaf, e.g. 'LRRL...'."""
        self._leaf(ptr)
        return "".join("R" if b else "L" for b in ptr.msb_first())

    # -------------------------------------------------------------------
    # Cell access
    # -------------------------------------------------------------------

    def read(self, ptr: BinaryCounter) -> BinaryCounter:
        return BinaryCounter.from_int(int(self._cells[self._leaf(ptr)]), self.width)

    def increment_at(self, ptr: BinaryCounter) -> AddressedTree:
        return self._replace_leaf(ptr, self.read(ptr).increment())

    def decrement_at(self, ptr: BinaryCounter) -> AddressedTree:
        return self._replace_leaf(ptr, self.read(ptr).decrement())

    def _replace_leaf(self, ptr: BinaryCounter, cell: BinaryCounter) -> AddressedTree:
        cells = self._cells.copy()
        cells[self._leaf(ptr)] = cell.value()
        return AddressedTree(self.width, cells)

    # -------------------------------------------------------------------
    # Value semantics
    # -------------------------------------------------------------------

    @property
    def cells(self) -> np.ndarray:
        """Read-only view of all leaves in address order."""
        return self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def __eq__(self, other) -> bool:
        if not isinstance(other, AddressedTree):
            return NotImplemented
        return self.width == other.width and np.array_equal(self._cells, other._cells)

    def __hash__(self) -> int:
        return hash((self.width, self._cells.tobytes()))

    def __repr__(self) -> str:
        nonzero = int(np.count_nonzero(self._cells))
        return f"AddressedTree(width={self.width}, nonzero_cells={nonzero})"
