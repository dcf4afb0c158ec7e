"""Tests for splitting received frames into payload and checksum."""

from field_collector.protocol.framing import Frame, split_frame
from field_collector.utils.crc import calculate_crc16


def test_split_valid_frame():
    frame = split_frame(bytes.fromhex("010300000001840a"))
    assert frame is not None
    assert frame.payload == bytes.fromhex("010300000001")
    assert frame.checksum == bytes.fromhex("840a")
    assert frame.valid


def test_split_bad_checksum():
    """Frames with corrupt checksum are returned but flagged invalid."""
    frame = split_frame(bytes.fromhex("0103000000010000"))
    assert frame is not None
    assert not frame.valid


def test_split_too_short():
    assert split_frame(b"") is None
    assert split_frame(b"\xff\xff") is None


def test_split_single_byte_payload():
    payload = b"\x42"
    frame = split_frame(payload + calculate_crc16(payload))
    assert frame is not None
    assert frame.payload == payload
    assert frame.valid


def test_split_accepts_bytearray():
    data = bytearray(b"\x10\x20" + calculate_crc16(b"\x10\x20"))
    frame = split_frame(data)
    assert isinstance(frame.payload, bytes)
    assert frame.valid


def test_tampered_payload_detected():
    payload = bytes(range(10))
    data = bytearray(payload + calculate_crc16(payload))
    data[4] ^= 0x01
    assert not split_frame(bytes(data)).valid


def test_frame_repr():
    """Frame repr should be readable."""
    f = Frame(payload=b"\x01\x03", checksum=b"\x00\x00")
    r = repr(f)
    assert "01 03" in r
    assert "valid=False" in r
