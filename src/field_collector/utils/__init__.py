"""Checksum helpers."""

from .crc import calculate_crc16, crc16, verify_crc16
