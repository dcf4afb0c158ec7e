"""Tests for the TCP and serial transport handles."""

import socket
import threading

import pytest

from field_collector.transport.serial_connection import SerialConnection
from field_collector.transport.stream import StreamFramer
from field_collector.transport.tcp_connection import TcpConnection
from field_collector.utils.crc import calculate_crc16


@pytest.fixture
def server():
    """A one-shot localhost TCP peer; the test scripts what it does."""
    listener = socket.create_server(("127.0.0.1", 0))
    received = bytearray()
    script = {"send": b"", "close_after_send": True}
    ready = threading.Event()

    def serve():
        conn, _ = listener.accept()
        with conn:
            ready.wait(timeout=5)
            conn.sendall(script["send"])
            if script["close_after_send"]:
                conn.shutdown(socket.SHUT_WR)
            conn.settimeout(2)
            try:
                while True:
                    chunk = conn.recv(1024)
                    if not chunk:
                        break
                    received.extend(chunk)
            except socket.timeout:
                pass

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield listener.getsockname()[1], script, ready, received, thread
    listener.close()


def test_socketpair_round_trip():
    """The framer works over an unbuffered socket stream."""
    left, right = socket.socketpair()
    with left, right:
        framer = StreamFramer(left.makefile("rwb", buffering=0))
        right.sendall(b"LINE\r\n\x3f\x80\x00\x00")
        assert framer.read_line() == b"LINE"
        assert framer.read_exact(4) == b"\x3f\x80\x00\x00"

        framer.write_line(b"ACK")
        assert right.recv(16) == b"ACK\r\n"

        right.shutdown(socket.SHUT_WR)
        assert framer.read_available() is None


def test_tcp_read_frame_then_end_of_stream(server):
    port, script, ready, received, thread = server
    payload = bytes(range(10))
    script["send"] = payload + calculate_crc16(payload)
    ready.set()

    with TcpConnection("127.0.0.1", port, timeout=5) as conn:
        assert conn.connected
        frame = conn.framer.read_exact(12)
        assert frame[:10] == payload
        assert frame[10:] == calculate_crc16(payload)
        assert conn.framer.read_exact(1) is None

    assert not conn.connected


def test_tcp_write_line_reaches_peer(server):
    port, script, ready, received, thread = server
    script["close_after_send"] = False
    ready.set()

    conn = TcpConnection("127.0.0.1", port, timeout=5)
    conn.open()
    conn.framer.write_line(b"STATUS")
    conn.framer.send_exact(b"\x00\x01\x02", 1)
    conn.close()
    thread.join(timeout=5)

    assert bytes(received) == b"STATUS\r\n\x01\x02"


def test_tcp_open_is_idempotent(server):
    port, script, ready, received, thread = server
    ready.set()
    with TcpConnection("127.0.0.1", port, timeout=5) as conn:
        assert conn.open() is conn.framer


def test_tcp_framer_requires_connection():
    conn = TcpConnection("127.0.0.1", 1)
    with pytest.raises(ConnectionError):
        conn.framer


def test_tcp_connect_refused():
    unused = socket.create_server(("127.0.0.1", 0))
    port = unused.getsockname()[1]
    unused.close()

    with pytest.raises(ConnectionError):
        TcpConnection("127.0.0.1", port, timeout=1).open()


def test_tcp_timeout_leaves_connection_usable():
    """A read that times out can be retried once the peer sends."""
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]
    timed_out = threading.Event()

    def serve():
        conn, _ = listener.accept()
        with conn:
            timed_out.wait(timeout=5)
            conn.sendall(b"\x01\x02")
            conn.shutdown(socket.SHUT_WR)
            conn.recv(16)

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    try:
        with TcpConnection("127.0.0.1", port, timeout=0.3) as conn:
            with pytest.raises(TimeoutError):
                conn.framer.read_available()
            timed_out.set()

            assert conn.connected
            assert conn.framer.read_exact(2) == b"\x01\x02"
            assert conn.framer.read_available() is None
    finally:
        thread.join(timeout=5)
        listener.close()


def test_tcp_close_twice():
    conn = TcpConnection("127.0.0.1", 1)
    conn.close()
    conn.close()
    assert not conn.connected


class FakeSerial:
    """Minimal stand-in for serial.Serial."""

    def __init__(self, incoming=b"", timeout=None):
        self._incoming = bytearray(incoming)
        self.timeout = timeout
        self.written = bytearray()
        self.flushed = 0
        self.reads = 0
        self.is_open = True

    @property
    def in_waiting(self):
        return len(self._incoming)

    def read(self, size=1):
        self.reads += 1
        data = bytes(self._incoming[:size])
        del self._incoming[:size]
        return data

    def write(self, data):
        self.written += data
        return len(data)

    def flush(self):
        self.flushed += 1

    def close(self):
        self.is_open = False


def test_serial_read_drains_waiting_bytes():
    conn = SerialConnection("/dev/null")
    framer = conn.attach(FakeSerial(b"\x01\x03\x02\x00\x64"))
    assert framer.read_available() == b"\x01\x03\x02\x00\x64"


def test_serial_nonblocking_poll_is_empty_not_end_of_stream():
    conn = SerialConnection("/dev/null", timeout=0)
    framer = conn.attach(FakeSerial(timeout=0))
    assert framer.read_available() == b""


def test_serial_timeout_stops_read_exact():
    """A silent device raises after one timed-out read instead of spinning."""
    port = FakeSerial(timeout=0.1)
    framer = SerialConnection("/dev/null", timeout=0.1).attach(port)
    with pytest.raises(TimeoutError):
        framer.read_exact(1)
    assert port.reads == 1


def test_serial_timeout_stops_read_line():
    port = FakeSerial(b"PART", timeout=0.1)
    framer = SerialConnection("/dev/null", timeout=0.1).attach(port)
    with pytest.raises(TimeoutError):
        framer.read_line()
    # Bytes read before the timeout stay staged for the next call
    assert framer.pending == 4


def test_serial_timeout_on_read_available():
    framer = SerialConnection("/dev/null", timeout=0.1).attach(FakeSerial(timeout=0.1))
    with pytest.raises(TimeoutError):
        framer.read_available()


def test_serial_read_respects_size():
    conn = SerialConnection("/dev/null")
    conn.attach(FakeSerial(b"abcdef"))
    assert conn.read(4) == b"abcd"
    assert conn.read(1) == b"e"


def test_serial_write_line_and_close():
    port = FakeSerial()
    conn = SerialConnection("/dev/null")
    conn.attach(port)
    assert conn.connected
    conn.framer.write_line(b"PING")
    assert bytes(port.written) == b"PING\r\n"
    assert port.flushed == 1

    conn.close()
    assert not port.is_open
    assert not conn.connected
    with pytest.raises(ConnectionError):
        conn.framer


def test_serial_open_failure():
    conn = SerialConnection("/dev/does-not-exist-field-collector")
    with pytest.raises(ConnectionError):
        conn.open()
