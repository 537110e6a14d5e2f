"""Byte and bit helpers, and text-mode colour attributes."""

from __future__ import annotations

__all__ = [
    "set_bit",
    "unset_bit",
    "bit_is_set",
    "bit_not_set",
    "grab_byte_s",
    "grab_byte_i",
    "text_attribute",
    "text_value",
]


def _clamp_bit(pos: int) -> int:
    return 7 if pos >= 8 else pos


def _clamp_byte(pos: int, largest: int) -> int:
    return max(1, min(pos, largest))


def set_bit(c: int, pos: int) -> int:
    """Return byte ``c`` with bit ``pos`` set; positions above 7 mean 7."""
    pos = _clamp_bit(pos)
    return (c | (1 << pos)) & 0xFF


def unset_bit(c: int, pos: int) -> int:
    """Return byte ``c`` with bit ``pos`` cleared; positions above 7 mean 7."""
    pos = _clamp_bit(pos)
    return c & ~(1 << pos) & 0xFF


def bit_is_set(c: int, pos: int) -> bool:
    return bool(c & (1 << _clamp_bit(pos)))


def bit_not_set(c: int, pos: int) -> bool:
    return not bit_is_set(c, pos)


def grab_byte_s(value: int, pos: int) -> int:
    """Return byte ``pos`` (1 = lowest) of a 16-bit value, clamped to 1..2."""
    pos = _clamp_byte(pos, 2)
    return ((value & 0xFFFF) >> (8 * (pos - 1))) & 0xFF


def grab_byte_i(value: int, pos: int) -> int:
    """Return byte ``pos`` (1 = lowest) of a 32-bit value, clamped to 1..4."""
    pos = _clamp_byte(pos, 4)
    return ((value & 0xFFFFFFFF) >> (8 * (pos - 1))) & 0xFF


def text_attribute(background: int, foreground: int) -> int:
    """Combine two colours into an attribute byte; 0 when they are equal.

    A colour given in the high nibble is moved down to the low nibble first.
    """
    if (background >> 4) & 0x0F:
        background >>= 4
    if (foreground >> 4) & 0x0F:
        foreground >>= 4
    if foreground == background:
        return 0
    return ((background << 4) | (foreground & 0x0F)) & 0xFFFF


def text_value(character: int, foreground: int, background: int) -> int:
    """Return the video-memory cell for ``character``, or 0 for equal colours.

    The attribute is built with ``foreground`` in the background position.
    """
    attribute = text_attribute(foreground, background)
    if attribute == 0:
        return 0
    return (character | (attribute << 8)) & 0xFFFF