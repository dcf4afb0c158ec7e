"""Transport layer: stream framing and the TCP / serial handles it runs on."""

from .stream import StreamFramer, TCP_BUFFER_SIZE
from .tcp_connection import TcpConnection
from .serial_connection import SerialConnection
