"""
Bounds-checked reader over a bytes buffer.

All fixed-width reads go through struct at explicit offsets; a read past the
end raises TruncatedInput instead of IndexError / struct.error.
"""

import struct

from tzsp_tap.core.errors import TruncatedInput

_U16_BE = struct.Struct(">H")
_U16_LE = struct.Struct("<H")
_I8 = struct.Struct("b")


class ByteCursor:
    """Sequential reader with a movable position."""

    __slots__ = ("_buf", "_pos")

    def __init__(self, buf, pos: int = 0):
        self._buf = memoryview(bytes(buf))
        self._pos = 0
        self.seek(pos)

    @property
    def pos(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._buf) - self._pos

    def __len__(self):
        return len(self._buf)

    def seek(self, pos: int):
        if pos < 0 or pos > len(self._buf):
            raise TruncatedInput(pos, 0, max(len(self._buf) - pos, 0))
        self._pos = pos

    def require(self, n: int, at: int = None):
        """Raise TruncatedInput unless n bytes are readable at `at` (default: pos)."""
        start = self._pos if at is None else at
        available = max(len(self._buf) - start, 0)
        if n > available:
            raise TruncatedInput(start, n, available)

    def skip(self, n: int):
        self.require(n)
        self._pos += n

    def peek_u8(self, at: int = None) -> int:
        start = self._pos if at is None else at
        self.require(1, start)
        return self._buf[start]

    def u8(self) -> int:
        value = self.peek_u8()
        self._pos += 1
        return value

    def i8(self) -> int:
        self.require(1)
        (value,) = _I8.unpack_from(self._buf, self._pos)
        self._pos += 1
        return value

    def u16be(self) -> int:
        self.require(2)
        (value,) = _U16_BE.unpack_from(self._buf, self._pos)
        self._pos += 2
        return value

    def u16le(self) -> int:
        self.require(2)
        (value,) = _U16_LE.unpack_from(self._buf, self._pos)
        self._pos += 2
        return value

    def take(self, n: int) -> bytes:
        self.require(n)
        data = self._buf[self._pos:self._pos + n].tobytes()
        self._pos += n
        return data

    def slice_from(self, start: int, n: int) -> bytes:
        """Copy n bytes at an absolute offset without moving the cursor."""
        self.require(n, start)
        return self._buf[start:start + n].tobytes()
