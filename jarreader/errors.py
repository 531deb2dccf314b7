"""
jarreader/errors.py

Error taxonomy for class-file decoding and archive traversal.

Every error raised while decoding a single archive entry derives from
JarReaderError, so the traversal driver can isolate a bad entry without
aborting the rest of the pass. ArchiveOpenError is the one fatal condition.
"""

from __future__ import annotations

from typing import Optional


class JarReaderError(Exception):
    """Base class for all decoding errors.

    Attributes:
        offset: Byte offset at which the problem was detected, if known
    """

    def __init__(self, message: str, offset: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.offset = offset

    def __str__(self) -> str:
        if self.offset is None:
            return self.message
        return f"{self.message} (at byte {self.offset})"


class TruncatedInput(JarReaderError):
    """A read would run past the end of the buffer."""

    def __init__(self, offset: int, wanted: int, available: int):
        super().__init__(
            f"truncated input: wanted {wanted} byte(s), {available} available",
            offset,
        )
        self.wanted = wanted
        self.available = available


class MalformedConstantPool(JarReaderError):
    """Bad tag, dangling index or wrong entry variant in a constant pool."""


class MalformedClassFile(JarReaderError):
    """Structural inconsistency in a class file."""


class NotAClassFile(MalformedClassFile):
    """The magic number is not 0xCAFEBABE."""


class UnresolvedSymbol(JarReaderError):
    """A call target's declaring type or name could not be extracted."""


class ArchiveOpenError(JarReaderError):
    """The archive itself could not be opened."""


class UnreadableEntry(JarReaderError):
    """A single archive entry could not be extracted (bad CRC, unsupported
    compression or encryption)."""
