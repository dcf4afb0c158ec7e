"""Modbus CRC-16.

Polynomial 0xA001 (0x8005 reflected), initial register 0xFFFF, no final
XOR. On the wire the checksum travels low byte first.
"""

from __future__ import annotations

from ..errors import resolve_window

CRC16_INIT = 0xFFFF
CRC16_POLYNOMIAL = 0xA001
CRC16_SIZE = 2


def crc16(data: bytes) -> int:
    """Return the Modbus CRC-16 register for ``data`` as an integer."""
    crc = CRC16_INIT
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x0001:
                crc = (crc >> 1) ^ CRC16_POLYNOMIAL
            else:
                crc >>= 1
    return crc


def calculate_crc16(buffer: bytes, offset: int = 0, length: int | None = None) -> bytes:
    """Compute the 2-byte checksum of a buffer window.

    Args:
        buffer: Source bytes.
        offset: Start of the checksummed window.
        length: Window size; defaults to the rest of the buffer. Zero is
            valid and yields the checksum of the empty message.

    Returns:
        ``bytes`` of length 2, low byte first.

    Raises:
        OutOfRangeError: If the window does not fit in ``buffer``.
    """
    start, stop = resolve_window(buffer, offset, length)
    return crc16(memoryview(buffer)[start:stop]).to_bytes(CRC16_SIZE, "little")


def verify_crc16(
    buffer: bytes,
    offset: int,
    length: int,
    expected: bytes,
) -> bool:
    """Check a buffer window against an expected 2-byte checksum.

    ``expected`` is compared as a bytes-like value. A mismatch is a normal
    ``False`` result, including an ``expected`` of the wrong size or type.
    """
    return calculate_crc16(buffer, offset, length) == expected
