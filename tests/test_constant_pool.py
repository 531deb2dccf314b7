"""
Tests for constant pool decoding (jarreader.constant_pool).

Pools are assembled with classgen.PoolBuilder, which writes the bytes
independently of the decoder.
"""

import struct

import pytest

from classgen import PoolBuilder
from jarreader.constant_pool import (
    ClassConstant,
    ConstantPool,
    DoubleConstant,
    FloatConstant,
    IntegerConstant,
    InvokeDynamicConstant,
    LongConstant,
    MethodHandleConstant,
    MethodRefConstant,
    MethodTypeConstant,
    NameAndTypeConstant,
    StringConstant,
    Utf8Constant,
    decode_mutf8,
    encode_mutf8,
    java_class_name,
    read_constant,
)
from jarreader.errors import MalformedConstantPool, TruncatedInput
from jarreader.reader import ByteReader


def read_pool(data: bytes) -> ConstantPool:
    return ConstantPool.read(ByteReader(data))


class TestModifiedUtf8:
    """JVM modified UTF-8 differs from standard UTF-8 for NUL and supplementary characters."""

    def test_ascii(self):
        assert decode_mutf8(b"hello") == "hello"

    def test_nul_is_two_bytes(self):
        assert encode_mutf8("a\x00b") == b"a\xc0\x80b"
        assert decode_mutf8(b"a\xc0\x80b") == "a\x00b"

    def test_supplementary_character_uses_surrogates(self):
        encoded = encode_mutf8("\U0001F600")
        assert len(encoded) == 6
        assert decode_mutf8(encoded) == "\U0001F600"

    def test_bmp_character(self):
        assert decode_mutf8("é".encode("utf-8")) == "é"


class TestClassNames:

    def test_internal_to_java(self):
        assert java_class_name("java/lang/String") == "java.lang.String"

    def test_array_class(self):
        assert java_class_name("[Ljava/lang/Object;") == "java.lang.Object[]"
        assert java_class_name("[[I") == "int[][]"


class TestPoolDecoding:
    """Reading whole pools."""

    def test_indices_match_file(self):
        pb = PoolBuilder()
        ref = pb.methodref("java/lang/Object", "<init>", "()V")
        pool = read_pool(pb.to_bytes())

        assert len(pool) == len(pb)
        entry = pool[ref]
        assert isinstance(entry, MethodRefConstant)
        assert pool.resolve_class_name(entry.class_index) == "java/lang/Object"
        assert pool.resolve_name_and_type(entry.name_and_type_index) == ("<init>", "()V")

    def test_long_and_double_take_two_slots(self):
        pb = PoolBuilder()
        long_index = pb.long(1 << 40)
        double_index = pb.double(2.5)
        after = pb.utf8("after")
        pool = read_pool(pb.to_bytes())

        assert long_index == 1
        assert double_index == 3
        assert after == 5
        assert pool[long_index] == LongConstant(1 << 40)
        assert pool[double_index].value == 2.5
        assert pool.resolve_utf8(after) == "after"

    def test_second_slot_is_unusable(self):
        pb = PoolBuilder()
        pb.long(7)
        pool = read_pool(pb.to_bytes())
        with pytest.raises(MalformedConstantPool, match="unusable"):
            pool.get(2)

    def test_iteration_skips_unusable_slots(self):
        pb = PoolBuilder()
        pb.double(1.0)
        pb.integer(3)
        pool = read_pool(pb.to_bytes())
        assert [index for index, _ in pool] == [1, 3]

    def test_scalar_values(self):
        pb = PoolBuilder()
        i = pb.integer(-42)
        f = pb.float_(1.5)
        s = pb.string("text")
        pool = read_pool(pb.to_bytes())

        assert pool[i] == IntegerConstant(-42)
        assert isinstance(pool[f], FloatConstant)
        assert pool[f].value == 1.5
        assert isinstance(pool[s], StringConstant)
        assert pool.resolve_utf8(pool[s].string_index) == "text"

    def test_count_zero_is_malformed(self):
        with pytest.raises(MalformedConstantPool):
            read_pool(b"\x00\x00")

    def test_empty_pool(self):
        pool = read_pool(b"\x00\x01")
        assert len(pool) == 1
        assert list(pool) == []

    def test_unknown_tag(self):
        with pytest.raises(MalformedConstantPool, match="unknown constant pool tag 2") as info:
            read_pool(b"\x00\x02\x02\x00\x00")
        assert info.value.offset == 2

    def test_truncated_entry(self):
        with pytest.raises(TruncatedInput):
            read_pool(b"\x00\x02\x07\x00")

    def test_two_slot_entry_overflowing_count(self):
        data = b"\x00\x02" + b"\x05" + struct.pack(">q", 1)
        with pytest.raises(MalformedConstantPool, match="overflows"):
            read_pool(data)


class TestNewerTags:
    """Tags added after Java 6 decode into their own variants."""

    def test_method_handle_type_and_indy(self):
        data = (struct.pack(">H", 4)
                + b"\x0f" + struct.pack(">BH", 6, 9)
                + b"\x10" + struct.pack(">H", 7)
                + b"\x12" + struct.pack(">HH", 0, 5))
        pool = read_pool(data)
        assert pool[1] == MethodHandleConstant(6, 9)
        assert pool[2] == MethodTypeConstant(7)
        assert pool[3] == InvokeDynamicConstant(0, 5)


class TestEncoding:
    """Each variant re-encodes to the bytes it was read from."""

    @pytest.mark.parametrize("raw", [
        b"\x01\x00\x03abc",
        b"\x03\xff\xff\xff\xfe",
        b"\x04\x3f\xc0\x00\x00",
        b"\x05" + struct.pack(">q", -5),
        b"\x06" + struct.pack(">d", 0.1),
        b"\x07\x00\x02",
        b"\x08\x00\x02",
        b"\x09\x00\x02\x00\x03",
        b"\x0a\x00\x02\x00\x03",
        b"\x0b\x00\x02\x00\x03",
        b"\x0c\x00\x02\x00\x03",
        b"\x0f\x05\x00\x02",
        b"\x10\x00\x02",
        b"\x11\x00\x00\x00\x03",
        b"\x12\x00\x01\x00\x03",
        b"\x13\x00\x02",
        b"\x14\x00\x02",
    ])
    def test_entry_round_trip(self, raw):
        assert read_constant(ByteReader(raw)).encode() == raw

    def test_nan_bits_preserved(self):
        raw = b"\x04\x7f\xc0\x00\x01"
        assert read_constant(ByteReader(raw)).encode() == raw

    def test_pool_round_trip(self):
        pb = PoolBuilder()
        pb.methodref("a/B", "m", "(J)V")
        pb.long(9)
        pb.string("s")
        data = pb.to_bytes()
        assert read_pool(data).encode() == data


class TestResolution:
    """Typed accessors reject dangling indices and wrong variants."""

    @pytest.fixture
    def pool(self):
        pb = PoolBuilder()
        pb.methodref("java/io/PrintStream", "println", "(Ljava/lang/String;)V")
        pb.string("hi \"there\"")
        pb.class_("[Ljava/lang/String;")
        return read_pool(pb.to_bytes()), pb

    def test_member_ref(self, pool):
        cp, pb = pool
        index = pb.methodref("java/io/PrintStream", "println", "(Ljava/lang/String;)V")
        ref = cp.resolve_member_ref(index)
        assert ref.class_name == "java/io/PrintStream"
        assert ref.name == "println"
        assert ref.descriptor == "(Ljava/lang/String;)V"

    def test_index_zero(self, pool):
        cp, _ = pool
        with pytest.raises(MalformedConstantPool, match="out of range"):
            cp.get(0)

    def test_index_past_end(self, pool):
        cp, _ = pool
        with pytest.raises(MalformedConstantPool, match="out of range"):
            cp.get(len(cp))

    def test_wrong_variant(self, pool):
        cp, pb = pool
        with pytest.raises(MalformedConstantPool, match="expected ClassConstant"):
            cp.get(pb.utf8("println"), ClassConstant)

    def test_expected_variants_accept_any(self, pool):
        cp, pb = pool
        index = pb.utf8("println")
        assert isinstance(cp.get(index, ClassConstant, Utf8Constant), Utf8Constant)

    def test_name_and_type_via_get(self, pool):
        cp, pb = pool
        index = pb.name_and_type("println", "(Ljava/lang/String;)V")
        assert isinstance(cp.get(index, NameAndTypeConstant), NameAndTypeConstant)


class TestRendering:
    """Symbolic rendering used by the disassembler and the structural report."""

    def test_method_ref(self):
        pb = PoolBuilder()
        index = pb.methodref("java/lang/Object", "<init>", "()V")
        pool = read_pool(pb.to_bytes())
        assert pool.constant_to_string(index) == "java.lang.Object.<init> ()V"

    def test_string_is_quoted_and_escaped(self):
        pb = PoolBuilder()
        index = pb.string('say "hi"\n')
        pool = read_pool(pb.to_bytes())
        assert pool.constant_to_string(index) == '"say \\"hi\\"\\n"'

    def test_class(self):
        pb = PoolBuilder()
        index = pb.class_("java/util/List")
        pool = read_pool(pb.to_bytes())
        assert pool.constant_to_string(index) == "java.util.List"

    def test_numbers(self):
        pb = PoolBuilder()
        i = pb.integer(12)
        j = pb.long(-3)
        pool = read_pool(pb.to_bytes())
        assert pool.constant_to_string(i) == "12"
        assert pool.constant_to_string(j) == "-3"

    def test_method_handle(self):
        pb = PoolBuilder()
        ref = pb.methodref("java/lang/Math", "abs", "(I)I")
        index = pb.method_handle(6, ref)
        pool = read_pool(pb.to_bytes())
        assert pool.constant_to_string(index) == "6:java.lang.Math.abs (I)I"

    def test_self_referencing_method_handle(self):
        pb = PoolBuilder()
        index = pb.method_handle(6, len(pb))
        pool = read_pool(pb.to_bytes())
        with pytest.raises(MalformedConstantPool, match="MethodHandleConstant"):
            pool.constant_to_string(index)
        assert pool.safe_constant_to_string(index) == f"<invalid #{index}>"

    def test_method_handles_pointing_at_each_other(self):
        pb = PoolBuilder()
        first = len(pb)
        pb.method_handle(6, first + 1)
        second = pb.method_handle(6, first)
        pool = read_pool(pb.to_bytes())
        assert pool.safe_constant_to_string(second) == f"<invalid #{second}>"

    def test_safe_rendering_of_bad_index(self):
        pool = read_pool(b"\x00\x01")
        assert pool.safe_constant_to_string(4) == "<invalid #4>"

    def test_pool_listing(self):
        pb = PoolBuilder()
        pb.class_("Foo")
        pool = read_pool(pb.to_bytes())
        lines = str(pool).splitlines()
        assert lines == [
            '1)CONSTANT_Utf8[1]("Foo")',
            "2)CONSTANT_Class[7](name_index = 1)",
        ]

    def test_entry_str(self):
        assert str(DoubleConstant(0)) == "CONSTANT_Double[6](bytes = 0.0)"
