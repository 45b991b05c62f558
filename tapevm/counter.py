"""
Fixed-width binary counter for tape cells and the tape pointer.

Models an N-bit ripple-carry up/down counter. Bits are stored least
significant first; carries and borrows out of the top bit are dropped,
so every operation is total and wraps modulo 2^N.
"""

from __future__ import annotations

from dataclasses import dataclass

WIDTH = 8


def _ripple_add(bits: tuple[int, ...], carry_in: int) -> tuple[int, ...]:
    """Half-adder chain: add carry_in at bit 0, discard the final carry."""
    out = []
    carry = carry_in
    for b in bits:
        out.append(b ^ carry)
        carry = b & carry
    return tuple(out)


def _ripple_sub(bits: tuple[int, ...], borrow_in: int) -> tuple[int, ...]:
    """Half-subtractor chain: subtract borrow_in at bit 0, discard the final borrow."""
    out = []
    borrow = borrow_in
    for b in bits:
        out.append(b ^ borrow)
        borrow = (1 - b) & borrow
    return tuple(out)


@dataclass(frozen=True)
class BinaryCounter:
    """N-bit unsigned value, LSB first. Immutable; every op returns a new counter."""

    bits: tuple[int, ...]

    def __post_init__(self):
        if len(self.bits) < 1:
            raise ValueError("BinaryCounter needs at least one bit")
        for b in self.bits:
            if b not in (0, 1):
                raise ValueError(f"Bit must be 0 or 1, got {b!r}")

    @classmethod
    def zero(cls, width: int = WIDTH) -> BinaryCounter:
        if width < 1:
            raise ValueError(f"Width must be positive, got {width}")
        return cls((0,) * width)

    @classmethod
    def from_int(cls, value: int, width: int = WIDTH) -> BinaryCounter:
        if width < 1:
            raise ValueError(f"Width must be positive, got {width}")
        value &= (1 << width) - 1
        return cls(tuple((value >> i) & 1 for i in range(width)))

    @property
    def width(self) -> int:
        return len(self.bits)

    def value(self) -> int:
        v = 0
        for i, b in enumerate(self.bits):
            v |= b << i
        return v

    def increment(self) -> BinaryCounter:
        return BinaryCounter(_ripple_add(self.bits, 1))

    def decrement(self) -> BinaryCounter:
        return BinaryCounter(_ripple_sub(self.bits, 1))

    def is_zero(self) -> bool:
        return not any(self.bits)

    def msb_first(self) -> tuple[int, ...]:
        """Bits from most significant down, i.e. the left/right path through the tape."""
        return tuple(reversed(self.bits))

    def __index__(self) -> int:
        return self.value()

    def __int__(self) -> int:
        return self.value()

    def __repr__(self) -> str:
        return f"BinaryCounter({self.value()}, width={self.width})"
