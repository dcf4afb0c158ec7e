"""Numeric and text conversions for raw frame bytes.

Sensor values arrive as big-endian IEEE-754 fields of 2 or 4 bytes. A
2-byte field is the upper half of a float32: it is zero-padded on the
right before decoding, which is not IEEE half precision.
"""

from __future__ import annotations

import random
import struct

from ..errors import InvalidWidthError, OutOfRangeError, resolve_window

FLOAT_WIDTHS = (2, 4)
_FLOAT32 = struct.Struct(">f")


def bytes_to_float(buffer: bytes, offset: int = 0, width: int = 4) -> float:
    """Decode a 2- or 4-byte big-endian float field.

    Args:
        buffer: Source bytes, left untouched.
        offset: Position of the first byte of the field.
        width: 2 or 4.

    Returns:
        The decoded single-precision value as a Python ``float``.

    Raises:
        InvalidWidthError: If ``width`` is not 2 or 4.
        OutOfRangeError: If the field runs outside ``buffer``.
    """
    if width not in FLOAT_WIDTHS:
        raise InvalidWidthError(f"Float width must be 2 or 4 bytes, got {width}")
    if offset < 0 or offset + width > len(buffer):
        raise OutOfRangeError(
            f"Float field at offset={offset} width={width} outside "
            f"buffer of {len(buffer)} bytes"
        )

    staging = bytearray(4)
    staging[:width] = buffer[offset : offset + width]
    return _FLOAT32.unpack(staging)[0]


def to_hex_string(buffer: bytes, offset: int = 0, length: int | None = None) -> str:
    """Render a buffer window as lowercase hex, two digits per byte."""
    start, stop = resolve_window(buffer, offset, length)
    return bytes(buffer[start:stop]).hex()


def format_random_value(factor: int, rng: random.Random) -> str:
    """Return a pseudo-random reading scaled by ``factor``, to 2 decimals.

    Used to fake sensor values on reporting channels. The caller owns the
    generator, so seeding and sequence are per call site rather than
    process-wide.
    """
    return f"{rng.random() * factor * 10:.2f}"
