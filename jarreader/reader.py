"""
jarreader/reader.py

Forward-only big-endian cursor over an immutable byte buffer.

Length-prefixed blocks (attribute bodies) are read through a bounded
sub-reader instead of rewinding the parent, so an overrun inside a block
is reported against the block's own bounds.
"""

from __future__ import annotations

import struct

from jarreader.errors import TruncatedInput

_U1 = struct.Struct(">B")
_U2 = struct.Struct(">H")
_U4 = struct.Struct(">I")
_U8 = struct.Struct(">Q")
_S1 = struct.Struct(">b")
_S2 = struct.Struct(">h")
_S4 = struct.Struct(">i")
_S8 = struct.Struct(">q")


class ByteReader:
    """
    Sequential reader over ``data``.

    Args:
        data: Buffer to read from
        base: Absolute offset of ``data[0]`` in the enclosing buffer, used
            only for reporting positions
    """

    def __init__(self, data: bytes, base: int = 0):
        self._data = memoryview(bytes(data))
        self._pos = 0
        self._base = base

    def __len__(self) -> int:
        return len(self._data)

    @property
    def position(self) -> int:
        """Absolute offset of the next byte to be read."""
        return self._base + self._pos

    @property
    def offset(self) -> int:
        """Offset of the next byte relative to the start of this reader."""
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def _take(self, n: int) -> memoryview:
        if n < 0:
            raise ValueError(f"negative read length {n}")
        if n > self.remaining:
            raise TruncatedInput(self.position, n, self.remaining)
        chunk = self._data[self._pos:self._pos + n]
        self._pos += n
        return chunk

    def _unpack(self, fmt: struct.Struct) -> int:
        return fmt.unpack(self._take(fmt.size))[0]

    def u1(self) -> int:
        return self._unpack(_U1)

    def u2(self) -> int:
        return self._unpack(_U2)

    def u4(self) -> int:
        return self._unpack(_U4)

    def u8(self) -> int:
        return self._unpack(_U8)

    def s1(self) -> int:
        return self._unpack(_S1)

    def s2(self) -> int:
        return self._unpack(_S2)

    def s4(self) -> int:
        return self._unpack(_S4)

    def s8(self) -> int:
        return self._unpack(_S8)

    def read(self, n: int) -> bytes:
        """Read exactly ``n`` bytes."""
        return bytes(self._take(n))

    def skip(self, n: int) -> None:
        self._take(n)

    def sub_reader(self, n: int) -> ByteReader:
        """
        Bound the next ``n`` bytes into a child reader and advance past them.

        The child reports absolute positions, so errors raised while reading
        it point into the original buffer.
        """
        start = self.position
        return ByteReader(self._take(n), base=start)
