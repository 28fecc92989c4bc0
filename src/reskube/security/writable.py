#!/usr/bin/env python3
"""
security/writable.py
====================

Readers and writers for the Hadoop `Writable` primitives used by token
storage: zero-compressed variable length integers (`WritableUtils.writeVLong`)
and `Text` (a vint length followed by UTF-8 bytes).
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import io


class DataOutput:
    """Append-only byte sink for Hadoop writables."""

    def __init__(self):
        self._buffer = io.BytesIO()

    def getvalue(self) -> bytes:
        return self._buffer.getvalue()

    def write(self, data: bytes):
        self._buffer.write(data)

    def write_byte(self, value: int):
        self._buffer.write(bytes([value & 0xFF]))

    def write_vlong(self, value: int):
        if -112 <= value <= 127:
            self.write_byte(value)
            return

        length = -112
        if value < 0:
            value ^= -1  # take one's complement
            length = -120

        tmp = value
        while tmp != 0:
            tmp >>= 8
            length -= 1

        self.write_byte(length)

        length = -(length + 120) if length < -120 else -(length + 112)
        for idx in range(length, 0, -1):
            self.write_byte(value >> ((idx - 1) * 8))

    # vints share the vlong encoding
    write_vint = write_vlong

    def write_bytes(self, data: bytes):
        """Write a vint length prefixed byte string."""
        self.write_vint(len(data))
        self.write(data)

    def write_text(self, value: str):
        self.write_bytes(value.encode("utf-8"))


class DataInput:
    """Sequential reader for Hadoop writables."""

    def __init__(self, data: bytes):
        self._buffer = io.BytesIO(data)
        self._size = len(data)

    def read(self, size: int) -> bytes:
        data = self._buffer.read(size)
        if len(data) != size:
            raise EOFError(f"Expected {size} bytes, got {len(data)}")
        return data

    def read_byte(self) -> int:
        """Read a signed byte."""
        value = self.read(1)[0]
        return value - 256 if value > 127 else value

    def read_vlong(self) -> int:
        first = self.read_byte()
        if first >= -112:
            return first

        size = -119 - first if first < -120 else -111 - first
        value = 0
        for _ in range(size - 1):
            value = (value << 8) | (self.read_byte() & 0xFF)

        negative = first < -120
        return value ^ -1 if negative else value

    read_vint = read_vlong

    def read_bytes(self) -> bytes:
        size = self.read_vint()
        if size < 0:
            raise ValueError(f"Negative length {size}")
        return self.read(size)

    def read_text(self) -> str:
        return self.read_bytes().decode("utf-8")

    def at_end(self) -> bool:
        return self._buffer.tell() == self._size
