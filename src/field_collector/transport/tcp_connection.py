"""TCP connection to a field device (e.g. a Modbus-TCP gateway).

:class:`TcpConnection` is itself the stream handed to the framer, so the
:class:`StreamFramer` is the only place bytes are staged. A socket timeout
raises ``TimeoutError`` from the read or write that hit it and leaves the
connection usable.
"""

from __future__ import annotations

import logging
import socket

from .stream import TCP_BUFFER_SIZE, StreamFramer

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 1502


class TcpConnection:
    """Manages one TCP connection and its framer.

    Usage::

        with TcpConnection("10.0.0.5", 1502, timeout=2.0) as conn:
            conn.framer.send_exact(request)
            response = conn.framer.read_exact(12)
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float | None = None,
        capacity: int = TCP_BUFFER_SIZE,
    ) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout
        self._capacity = capacity
        self._socket: socket.socket | None = None
        self._framer: StreamFramer | None = None

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def connected(self) -> bool:
        return self._socket is not None

    @property
    def framer(self) -> StreamFramer:
        """The framer bound to this connection.

        Raises:
            ConnectionError: If the connection is not open.
        """
        if self._framer is None:
            raise ConnectionError(f"Not connected to {self._host}:{self._port}")
        return self._framer

    def open(self) -> StreamFramer:
        """Connect to the peer.

        A ``timeout`` given at construction becomes the socket timeout for
        every later read and write; ``None`` blocks indefinitely.

        Returns:
            The connection's framer.

        Raises:
            ConnectionError: If the peer cannot be reached.
        """
        if self._framer is not None:
            return self._framer

        try:
            sock = socket.create_connection((self._host, self._port), timeout=self._timeout)
        except OSError as e:
            raise ConnectionError(
                f"Could not connect to {self._host}:{self._port}: {e}"
            ) from e

        sock.settimeout(self._timeout)
        self._socket = sock
        self._framer = StreamFramer(self, self._capacity)
        logger.info("Connected to %s:%d", self._host, self._port)
        return self._framer

    def close(self) -> None:
        """Close the connection. Closing twice is a no-op."""
        if self._socket is None:
            return

        try:
            self._socket.close()
        except OSError as e:
            logger.warning("Error closing connection to %s:%d: %s", self._host, self._port, e)
        finally:
            self._socket = None
            self._framer = None
            logger.info("Disconnected from %s:%d", self._host, self._port)

    # ─── STREAM INTERFACE ───────────────────────────────────────────────

    def read(self, size: int) -> bytes:
        """Receive up to ``size`` bytes; ``b""`` once the peer has closed.

        Raises:
            TimeoutError: If the socket timeout expires first.
        """
        return self._socket.recv(size)

    def write(self, data: bytes) -> int:
        self._socket.sendall(data)
        return len(data)

    def flush(self) -> None:
        """Nothing to do: ``sendall`` hands every byte to the kernel."""

    def __enter__(self) -> TcpConnection:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
