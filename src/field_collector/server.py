"""MCP server entry point for the field-collector protocol toolkit.

Exposes checksum, codec and raw stream tools over the Model Context
Protocol using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .errors import CollectorError
from .protocol.codec import bytes_to_float, to_hex_string
from .protocol.framing import split_frame
from .transport.tcp_connection import DEFAULT_PORT, TcpConnection
from .utils.crc import CRC16_INIT, CRC16_POLYNOMIAL, calculate_crc16

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "field-collector",
    instructions="Checksum, numeric decoding and raw TCP framing tools for field devices",
)

# Global connection state
_connection: TcpConnection | None = None


def _get_connection() -> TcpConnection:
    """Get the active connection, raising if not connected."""
    if _connection is None or not _connection.connected:
        raise RuntimeError(
            "Not connected to a device. Use the 'connect' tool first."
        )
    return _connection


def _parse_hex(hex_data: str) -> bytes:
    """Accept hex with or without spaces, e.g. ``"01 03 00 00"``."""
    return bytes.fromhex(hex_data.replace(" ", ""))


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(host: str, port: int = DEFAULT_PORT, timeout: float = 5.0) -> dict[str, Any]:
    """Open a TCP connection to a field device.

    Args:
        host: Device or gateway address.
        port: TCP port (default 1502).
        timeout: Socket timeout in seconds for every read and write.
    """
    global _connection
    if _connection is not None and _connection.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "host": _connection.host,
            "port": _connection.port,
        }

    _connection = TcpConnection(host, port, timeout=timeout)
    _connection.open()
    return {"connected": True, "host": host, "port": port}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the TCP connection."""
    global _connection
    if _connection is None:
        return {"disconnected": True}
    _connection.close()
    _connection = None
    return {"disconnected": True}


# ─── CHECKSUM / CODEC TOOLS ──────────────────────────────────────────

@mcp.tool()
def compute_crc16(hex_data: str) -> dict[str, Any]:
    """Compute the Modbus CRC-16 of some bytes.

    Args:
        hex_data: Payload as hex, spaces allowed.

    Returns the checksum (low byte first) and the payload with it appended.
    """
    try:
        data = _parse_hex(hex_data)
    except ValueError as e:
        return {"error": f"Invalid hex: {e}"}

    crc = calculate_crc16(data)
    return {"crc": crc.hex(), "frame": to_hex_string(data + crc)}


@mcp.tool()
def verify_frame(hex_frame: str) -> dict[str, Any]:
    """Check the trailing CRC-16 of a received frame.

    Args:
        hex_frame: Payload followed by its 2-byte checksum, as hex.
    """
    try:
        data = _parse_hex(hex_frame)
    except ValueError as e:
        return {"error": f"Invalid hex: {e}"}

    frame = split_frame(data)
    if frame is None:
        return {"error": "Frame must hold at least 1 payload byte and 2 checksum bytes"}
    return {
        "valid": frame.valid,
        "payload": frame.payload.hex(),
        "received_crc": frame.checksum.hex(),
        "calculated_crc": calculate_crc16(frame.payload).hex(),
    }


@mcp.tool()
def decode_float(hex_data: str, offset: int = 0, width: int = 4) -> dict[str, Any]:
    """Decode a big-endian float field from raw bytes.

    Args:
        hex_data: Source bytes as hex.
        offset: Position of the field.
        width: 4 for float32, or 2 for the zero-padded upper half.
    """
    try:
        data = _parse_hex(hex_data)
        value = bytes_to_float(data, offset, width)
    except (ValueError, CollectorError) as e:
        return {"error": str(e)}
    return {"value": value, "field": to_hex_string(data, offset, width)}


@mcp.tool()
def to_hex(text: str, encoding: str = "utf-8") -> dict[str, str]:
    """Render text as the lowercase hex of its encoded bytes."""
    return {"hex": to_hex_string(text.encode(encoding))}


# ─── STREAM TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def send_hex(hex_data: str) -> dict[str, Any]:
    """Send raw bytes to the connected device.

    Args:
        hex_data: Bytes to send as hex. No checksum is added.
    """
    try:
        data = _parse_hex(hex_data)
    except ValueError as e:
        return {"error": f"Invalid hex: {e}"}

    _get_connection().framer.send_exact(data)
    return {"sent": len(data)}


@mcp.tool()
def read_frame(length: int) -> dict[str, Any]:
    """Read exactly ``length`` bytes and check their trailing CRC-16.

    Args:
        length: Total frame size including the 2 checksum bytes.
    """
    if length < 0:
        return {"error": "Length must not be negative"}

    data = _get_connection().framer.read_exact(length)
    if data is None:
        return {"end_of_stream": True}

    result: dict[str, Any] = {"data": data.hex()}
    frame = split_frame(data)
    if frame is not None:
        result["crc_valid"] = frame.valid
    return result


@mcp.tool()
def read_available() -> dict[str, Any]:
    """Read whatever the device sends next (up to 4096 bytes)."""
    data = _get_connection().framer.read_available()
    if data is None:
        return {"end_of_stream": True}
    return {"data": data.hex(), "length": len(data)}


@mcp.tool()
def read_line(encoding: str = "utf-8") -> dict[str, Any]:
    """Read one CR/LF terminated text line."""
    line = _get_connection().framer.read_line()
    if line is None:
        return {"end_of_stream": True}
    return {"line": line.decode(encoding, errors="replace")}


@mcp.tool()
def write_line(text: str, encoding: str = "utf-8") -> dict[str, Any]:
    """Send a text line; CR LF is appended unless already terminated."""
    _get_connection().framer.write_line(text.encode(encoding))
    return {"sent": True}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("collector://protocol/crc16")
def resource_crc16() -> str:
    """Checksum parameters used by verify_frame and compute_crc16."""
    return json.dumps({
        "name": "CRC-16/MODBUS",
        "polynomial": f"0x{CRC16_POLYNOMIAL:04X}",
        "init": f"0x{CRC16_INIT:04X}",
        "byte_order": "little-endian",
        "check": calculate_crc16(b"123456789").hex(),
    })


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def diagnose_frame(hex_frame: str) -> str:
    """Guide the AI through checking a captured device frame.

    Args:
        hex_frame: Captured frame as hex.
    """
    return f"""Diagnose this captured frame: {hex_frame}

Steps:
- Use verify_frame to check the trailing CRC-16
- If the checksum fails, look for a missing or duplicated byte
- If it passes, use decode_float on 2- or 4-byte fields of the payload
- Report any values that look out of range for a field sensor"""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
