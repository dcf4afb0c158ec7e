"""Exceptions raised for caller contract violations.

End-of-stream is not an error and never shows up here: the framer returns
``None`` for it. Transport failures propagate as the ``OSError`` raised by
the underlying socket or serial port.
"""

from __future__ import annotations


class CollectorError(Exception):
    """Base class for field-collector errors."""


class InvalidWidthError(CollectorError, ValueError):
    """A numeric field width other than 2 or 4 bytes was requested."""


class OutOfRangeError(CollectorError, IndexError):
    """An (offset, length) window does not fit inside its buffer."""


def resolve_window(buffer, offset: int = 0, length: int | None = None) -> tuple[int, int]:
    """Validate a buffer window and return it as ``(start, stop)``.

    Args:
        buffer: Any object supporting ``len()``.
        offset: First byte of the window.
        length: Number of bytes, or ``None`` for "up to the end".

    Raises:
        OutOfRangeError: If the window leaves the buffer.
    """
    size = len(buffer)
    if length is None:
        length = size - offset
    if offset < 0 or length < 0 or offset + length > size:
        raise OutOfRangeError(
            f"Window offset={offset} length={length} outside buffer of {size} bytes"
        )
    return offset, offset + length
