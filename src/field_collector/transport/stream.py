"""Blocking byte-stream framing over a single transport handle.

The transport is any binary stream object offering:

- ``read(n)`` (or ``read1(n)``): up to ``n`` bytes, blocking; ``b""`` once
  the peer has closed; ``None`` when it reports zero bytes without closing
- ``write(data)``: returns the number of bytes accepted
- ``flush()``

:class:`~field_collector.transport.tcp_connection.TcpConnection`,
:class:`~field_collector.transport.serial_connection.SerialConnection` and
an ``io.BytesIO`` all qualify.

End-of-stream is reported by returning ``None``. Transport errors are
never caught here. Timeouts belong to the transport: it raises
``TimeoutError`` when one expires, and the exception reaches the caller
with any bytes already read still staged. A ``None`` read is only for
non-blocking transports; ``read_exact`` and ``read_line`` keep polling
through those.

Usage::

    framer = StreamFramer(connection)
    framer.send_exact(request)
    response = framer.read_exact(12)
    if response is None:
        ...  # peer closed
"""

from __future__ import annotations

import logging
import re

from ..errors import OutOfRangeError, resolve_window

logger = logging.getLogger(__name__)

TCP_BUFFER_SIZE = 4096
CR = 0x0D
LF = 0x0A
LINE_TERMINATOR = b"\r\n"

_LINE_END = re.compile(rb"[\r\n]")


class StreamFramer:
    """Reads and writes framed data on one stream.

    Bytes read from the transport beyond what a call returns stay staged
    in the framer and are served first by the next call, so binary and
    line reads can be mixed on the same handle. A framer must not be
    shared between threads.
    """

    def __init__(self, stream, capacity: int = TCP_BUFFER_SIZE) -> None:
        if capacity < 1:
            raise ValueError(f"Capacity must be at least 1 byte, got {capacity}")
        self._stream = stream
        self._capacity = capacity
        self._pending = bytearray()
        # Set after a line ended in CR with nothing staged behind it; a LF
        # at the start of the next read belongs to that terminator.
        self._skip_lf = False

    @property
    def stream(self):
        return self._stream

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def pending(self) -> int:
        """Number of bytes read from the transport but not yet returned."""
        return len(self._pending)

    # ─── READING ────────────────────────────────────────────────────────

    def read_available(self) -> bytes | None:
        """Return whatever the transport delivers next.

        Staged bytes are returned without touching the transport. Otherwise
        a single read of at most ``capacity`` bytes is issued.

        Returns:
            1 to ``capacity`` bytes; ``b""`` if the transport reported zero
            bytes without closing; ``None`` at end-of-stream.
        """
        while not self._pending:
            count = self._fill()
            if count is None:
                return None
            if count == 0:
                return b""
        return self._take(self._capacity)

    def read_exact(self, length: int) -> bytes | None:
        """Block until exactly ``length`` bytes have been read.

        Returns:
            The ``length`` bytes, ``b""`` immediately when ``length`` is 0,
            or ``None`` if the stream closes first. Bytes collected before
            the closure are discarded.

        Raises:
            OutOfRangeError: If ``length`` is negative.
        """
        if length < 0:
            raise OutOfRangeError(f"Read length must not be negative, got {length}")
        if length == 0:
            return b""

        while len(self._pending) < length:
            if self._fill() is None:
                logger.warning(
                    "Stream closed after %d of %d bytes, discarding partial read",
                    len(self._pending),
                    length,
                )
                self._pending.clear()
                return None

        data = self._take(length)
        logger.debug("RX: %s (%d bytes)", data.hex(" "), length)
        return data

    def read_line(self) -> bytes | None:
        """Read one line terminated by LF, CR or CR LF.

        The terminator is stripped. A CR ends the line at once; when the
        LF of a CR LF pair has not arrived yet it is dropped from the start
        of the next read.

        Returns:
            The line contents, the trailing unterminated bytes if the stream
            closes mid-line, or ``None`` at end-of-stream with nothing left.
        """
        scanned = 0
        while True:
            match = _LINE_END.search(self._pending, scanned)
            if match is not None:
                end = match.start()
                line = self._take(end)
                terminator = self._pending.pop(0)
                if terminator == CR:
                    if not self._pending:
                        self._skip_lf = True
                    elif self._pending[0] == LF:
                        del self._pending[0]
                logger.debug("RX line: %r", line)
                return line

            scanned = len(self._pending)
            if self._fill() is None:
                if self._pending:
                    return self._take(len(self._pending))
                return None

    # ─── WRITING ────────────────────────────────────────────────────────

    def write_line(self, payload: bytes) -> None:
        """Send ``payload`` as a text line, appending CR LF if it has no
        terminator of its own."""
        data = bytes(payload)
        if data[-1:] not in (b"\n", b"\r"):
            data += LINE_TERMINATOR
        self.send_exact(data)

    def send_exact(self, buffer: bytes, offset: int = 0, length: int | None = None) -> None:
        """Write a buffer window completely, then flush.

        Raises:
            OutOfRangeError: If the window does not fit in ``buffer``.
            ConnectionError: If the transport stops accepting bytes.
        """
        start, stop = resolve_window(buffer, offset, length)
        view = memoryview(buffer)[start:stop]
        logger.debug("TX: %s (%d bytes)", view.hex(" "), len(view))

        while view:
            written = self._stream.write(view)
            if not written:
                raise ConnectionError(
                    f"Transport accepted no bytes, {len(view)} left unsent"
                )
            view = view[written:]
        self._stream.flush()

    # ─── STAGING ────────────────────────────────────────────────────────

    def _fill(self) -> int | None:
        """Issue one underlying read into the staging buffer.

        Returns:
            Number of bytes read (0 if the transport had none to give), or
            ``None`` at end-of-stream.
        """
        read = getattr(self._stream, "read1", None) or self._stream.read
        data = read(self._capacity)
        if data is None:
            return 0
        if not data:
            return None

        self._pending += data
        if self._skip_lf:
            self._skip_lf = False
            if self._pending[0] == LF:
                del self._pending[0]
        return len(data)

    def _take(self, size: int) -> bytes:
        data = bytes(self._pending[:size])
        del self._pending[:size]
        return data
