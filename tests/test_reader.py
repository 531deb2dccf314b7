"""
Tests for the big-endian byte cursor (jarreader.reader).
"""

import pytest

from jarreader.errors import JarReaderError, TruncatedInput
from jarreader.reader import ByteReader


class TestUnsignedReads:
    """Unsigned fixed-width reads advance the cursor."""

    def test_u1_u2_u4(self):
        r = ByteReader(bytes([0x01, 0x02, 0x03, 0xCA, 0xFE, 0xBA, 0xBE]))
        assert r.u1() == 0x01
        assert r.u2() == 0x0203
        assert r.u4() == 0xCAFEBABE
        assert r.remaining == 0

    def test_u8(self):
        r = ByteReader(bytes([0xFF] * 8))
        assert r.u8() == 2 ** 64 - 1

    def test_position_tracks_reads(self):
        r = ByteReader(bytes(10))
        r.u2()
        r.skip(3)
        assert r.position == 5
        assert r.offset == 5
        assert r.remaining == 5


class TestSignedReads:
    """Signed reads use two's complement."""

    def test_s1(self):
        assert ByteReader(b"\xff").s1() == -1

    def test_s2(self):
        assert ByteReader(b"\xff\xfe").s2() == -2

    def test_s4(self):
        assert ByteReader(b"\x80\x00\x00\x00").s4() == -2 ** 31

    def test_s8(self):
        assert ByteReader(b"\xff" * 8).s8() == -1


class TestTruncation:
    """Reading past the end raises TruncatedInput with the failing offset."""

    def test_u2_on_one_byte(self):
        r = ByteReader(b"\x01")
        with pytest.raises(TruncatedInput) as info:
            r.u2()
        assert info.value.offset == 0
        assert info.value.wanted == 2
        assert info.value.available == 1

    def test_truncated_is_a_reader_error(self):
        with pytest.raises(JarReaderError):
            ByteReader(b"").u1()

    def test_failed_read_does_not_advance(self):
        r = ByteReader(b"\x01\x02\x03")
        r.u1()
        with pytest.raises(TruncatedInput):
            r.u4()
        assert r.position == 1
        assert r.u2() == 0x0203

    def test_read_exact_bytes(self):
        r = ByteReader(b"abcdef")
        assert r.read(3) == b"abc"
        with pytest.raises(TruncatedInput):
            r.read(4)


class TestSubReader:
    """Bounded child readers report absolute positions."""

    def test_sub_reader_is_bounded(self):
        r = ByteReader(b"\x00\x00\xAA\xBB\xCC")
        r.skip(2)
        child = r.sub_reader(2)
        assert r.remaining == 1
        assert child.u2() == 0xAABB
        with pytest.raises(TruncatedInput) as info:
            child.u1()
        assert info.value.offset == 4

    def test_sub_reader_positions(self):
        r = ByteReader(bytes(8))
        r.skip(3)
        child = r.sub_reader(4)
        child.u1()
        assert child.offset == 1
        assert child.position == 4

    def test_error_message_mentions_offset(self):
        with pytest.raises(TruncatedInput, match="at byte 0"):
            ByteReader(b"").u4()
