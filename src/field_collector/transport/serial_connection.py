"""Serial-port connection to a field device (RS-232/RS-485) via pyserial.

:class:`SerialConnection` is itself the stream handed to the framer: its
``read`` waits for the first byte and then drains what the driver has
already buffered, which gives the "up to N bytes, blocking" contract that
``serial.Serial.read`` alone does not. An expired port timeout raises
``TimeoutError``, the same as a socket timeout on a TCP connection.
"""

from __future__ import annotations

import logging

import serial

from .stream import TCP_BUFFER_SIZE, StreamFramer

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 9600


class SerialConnection:
    """Manages one serial port and its framer.

    Usage::

        with SerialConnection("/dev/ttyUSB0", 19200) as conn:
            conn.framer.send_exact(request)
            response = conn.framer.read_exact(7)
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float | None = None,
        capacity: int = TCP_BUFFER_SIZE,
    ) -> None:
        self._port_name = port
        self._baudrate = baudrate
        self._timeout = timeout
        self._capacity = capacity
        self._serial: serial.Serial | None = None
        self._framer: StreamFramer | None = None

    @property
    def port(self) -> str:
        return self._port_name

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def framer(self) -> StreamFramer:
        if self._framer is None:
            raise ConnectionError(f"Serial port {self._port_name} is not open")
        return self._framer

    def open(self) -> StreamFramer:
        """Open the port (8N1).

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        if self._framer is not None:
            return self._framer

        try:
            port = serial.Serial(self._port_name, self._baudrate, timeout=self._timeout)
        except serial.SerialException as e:
            raise ConnectionError(f"Could not open {self._port_name}: {e}") from e
        return self.attach(port)

    def attach(self, port) -> StreamFramer:
        """Use an already opened ``serial.Serial`` (or compatible) port."""
        self._serial = port
        self._framer = StreamFramer(self, self._capacity)
        logger.info("Opened %s at %d baud", self._port_name, self._baudrate)
        return self._framer

    def close(self) -> None:
        if self._serial is None:
            return

        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing %s: %s", self._port_name, e)
        finally:
            self._serial = None
            self._framer = None
            logger.info("Closed %s", self._port_name)

    # ─── STREAM INTERFACE ───────────────────────────────────────────────

    def read(self, size: int) -> bytes | None:
        """Read up to ``size`` bytes.

        A serial line never reaches end-of-stream. On a non-blocking port
        (``timeout=0``) an empty poll returns ``None``.

        Raises:
            TimeoutError: If the port timeout expires with nothing received.
        """
        first = self._serial.read(1)
        if not first:
            if self._serial.timeout == 0:
                return None
            raise TimeoutError(
                f"No data from {self._port_name} within {self._serial.timeout}s"
            )
        waiting = min(self._serial.in_waiting, size - 1)
        if waiting > 0:
            return first + self._serial.read(waiting)
        return first

    def write(self, data: bytes) -> int:
        return self._serial.write(data)

    def flush(self) -> None:
        self._serial.flush()

    def __enter__(self) -> SerialConnection:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
