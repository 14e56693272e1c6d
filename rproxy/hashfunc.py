"""Key hashing: hash tags, decimal prefix parsing and CRC16."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

BytesLike = Union[bytes, bytearray, memoryview, str]


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode()
    return bytes(data)


def hash_tag(data: BytesLike, tag: Optional[BytesLike]) -> bytes:
    """Return the part of a key between the two tag characters.

    The whole key is returned when the tag has fewer than two characters,
    when either delimiter is missing or when the enclosed part is empty.
    """
    key = _as_bytes(data)
    if not tag:
        return key
    delims = _as_bytes(tag)
    if len(delims) < 2:
        return key
    start = key.find(delims[0:1])
    if start < 0:
        return key
    start += 1
    end = key.find(delims[1:2], start)
    if end < 0 or end <= start:
        return key
    return key[start:end]


def atol(data: BytesLike) -> int:
    """Parse an optional sign followed by leading decimal digits; 0 if none."""
    text = _as_bytes(data)
    if not text:
        return 0
    negative = text[:1] == b"-"
    body = text[1:] if text[:1] in (b"-", b"+") else text
    value = 0
    for byte in body:
        if not 0x30 <= byte <= 0x39:
            break
        value = value * 10 + (byte - 0x30)
    return -value if negative else value


def _build_crc16_table() -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte << 8
        for _ in range(8):
            crc = ((crc << 1) ^ 0x1021) if crc & 0x8000 else (crc << 1)
            crc &= 0xFFFF
        table.append(crc)
    return tuple(table)


_CRC16_TABLE = _build_crc16_table()


def crc16(data: BytesLike) -> int:
    """CRC16 (CCITT polynomial 0x1021, initial value 0) as used for cluster slots."""
    crc = 0
    for byte in _as_bytes(data):
        crc = ((crc << 8) & 0xFFFF) ^ _CRC16_TABLE[((crc >> 8) ^ byte) & 0xFF]
    return crc


class Hash(Enum):
    """Hash function applied to keys."""

    NONE = "none"
    ATOL = "atol"
    CRC16 = "crc16"

    @classmethod
    def parse(cls, text: str) -> "Hash":
        """Parse a hash name case-insensitively; unknown names give NONE."""
        wanted = text.lower()
        for member in (cls.ATOL, cls.CRC16):
            if member.value == wanted:
                return member
        return cls.NONE

    def hash(self, data: BytesLike, tag: Optional[BytesLike] = None) -> int:
        """Hash a key, restricted to its hash tag when a tag is given."""
        key = hash_tag(data, tag)
        if self is Hash.ATOL:
            return atol(key)
        if self is Hash.CRC16:
            return crc16(key)
        return 0