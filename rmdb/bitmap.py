"""Bit operations on byte buffers, most significant bit first."""

from __future__ import annotations

BITMAP_WIDTH = 8
BITMAP_HIGHEST_BIT = 0x80


def _bucket(pos: int) -> int:
    return pos // BITMAP_WIDTH


def _mask(pos: int) -> int:
    return BITMAP_HIGHEST_BIT >> (pos % BITMAP_WIDTH)


def set_bit(bm: bytearray, pos: int) -> None:
    """Set bit pos to 1."""
    bm[_bucket(pos)] |= _mask(pos)


def reset_bit(bm: bytearray, pos: int) -> None:
    """Set bit pos to 0."""
    bm[_bucket(pos)] &= ~_mask(pos) & 0xFF


def is_set(bm: bytes | bytearray, pos: int) -> bool:
    """True if bit pos is 1."""
    return bm[_bucket(pos)] & _mask(pos) != 0


def next_bit(bit: bool, bm: bytes | bytearray, max_n: int, curr: int) -> int:
    """Position of the next bit equal to bit in [curr + 1, max_n), or max_n."""
    return next(
        (pos for pos in range(curr + 1, max_n) if is_set(bm, pos) == bit),
        max_n,
    )


def first_bit(bit: bool, bm: bytes | bytearray, max_n: int) -> int:
    """Position of the first bit equal to bit in [0, max_n), or max_n."""
    return next_bit(bit, bm, max_n, -1)