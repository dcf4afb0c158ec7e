"""Field-device data collector protocol support.

Modbus CRC-16, big-endian float decoding and blocking stream framing for
TCP and serial transports.
"""

from .errors import CollectorError, InvalidWidthError, OutOfRangeError
from .protocol.codec import bytes_to_float, to_hex_string
from .transport.stream import StreamFramer
from .utils.crc import calculate_crc16, verify_crc16

__version__ = "0.1.0"
