"""Received frame splitting.

Frame layout::

    +------------------+----------+
    |     Payload      | Checksum |
    | variable length  |  2 bytes |
    +------------------+----------+

- Checksum: Modbus CRC-16 over the payload, little-endian

Outgoing frames are assembled by callers; this module only takes incoming
ones apart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..utils.crc import CRC16_SIZE, calculate_crc16

logger = logging.getLogger(__name__)

MIN_FRAME_SIZE = CRC16_SIZE + 1


@dataclass
class Frame:
    """A received frame split into payload and trailing checksum."""

    payload: bytes
    checksum: bytes

    @property
    def valid(self) -> bool:
        return calculate_crc16(self.payload) == self.checksum

    def __repr__(self) -> str:
        return (
            f"Frame(payload={self.payload.hex(' ') if self.payload else '(empty)'}, "
            f"checksum={self.checksum.hex()}, valid={self.valid})"
        )


def split_frame(data: bytes) -> Frame | None:
    """Split a raw frame into payload and checksum.

    Args:
        data: Payload followed by its 2-byte checksum.

    Returns:
        A ``Frame`` (check ``frame.valid``), or ``None`` if ``data`` is too
        short to hold a payload and a checksum.
    """
    if len(data) < MIN_FRAME_SIZE:
        return None

    frame = Frame(payload=bytes(data[:-CRC16_SIZE]), checksum=bytes(data[-CRC16_SIZE:]))
    if not frame.valid:
        logger.debug(
            "Checksum mismatch: received=%s, calculated=%s",
            frame.checksum.hex(),
            calculate_crc16(frame.payload).hex(),
        )
    return frame
