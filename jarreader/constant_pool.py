"""
jarreader/constant_pool.py

Constant pool decoding for JVM class files.

The pool is a 1-indexed table of tagged entries. Long and Double entries
occupy two logical slots; the second slot is unusable and is kept as
``None`` so indices line up with the ones stored in the class file.

Cross-references between entries (a method ref points at a class entry and
a name-and-type entry) are resolved lazily through the ``resolve_*``
helpers, which raise MalformedConstantPool when an index dangles or points
at the wrong kind of entry.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Iterator, NamedTuple, Optional

from jarreader.descriptors import field_type_to_string
from jarreader.errors import JarReaderError, MalformedConstantPool
from jarreader.reader import ByteReader


class ConstantTag(IntEnum):
    UTF8 = 1
    INTEGER = 3
    FLOAT = 4
    LONG = 5
    DOUBLE = 6
    CLASS = 7
    STRING = 8
    FIELDREF = 9
    METHODREF = 10
    INTERFACE_METHODREF = 11
    NAME_AND_TYPE = 12
    METHOD_HANDLE = 15
    METHOD_TYPE = 16
    DYNAMIC = 17
    INVOKE_DYNAMIC = 18
    MODULE = 19
    PACKAGE = 20


# --- Modified UTF-8 ----------------------------------------------------------

def decode_mutf8(data: bytes) -> str:
    """Decode the JVM's modified UTF-8 (NUL as C0 80, surrogate pairs)."""
    text = data.replace(b"\xc0\x80", b"\x00").decode("utf-8", "surrogatepass")
    # Join surrogate pairs into supplementary characters
    return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")


def encode_mutf8(text: str) -> bytes:
    chars = []
    for ch in text:
        code = ord(ch)
        if code > 0xFFFF:
            code -= 0x10000
            chars.append(chr(0xD800 + (code >> 10)))
            chars.append(chr(0xDC00 + (code & 0x3FF)))
        else:
            chars.append(ch)
    return "".join(chars).encode("utf-8", "surrogatepass").replace(b"\x00", b"\xc0\x80")


def java_class_name(internal_name: str) -> str:
    """
    Convert an internal class name to its Java form.

    ``java/lang/String`` becomes ``java.lang.String``; array class names
    such as ``[Ljava/lang/Object;`` become ``java.lang.Object[]``.
    """
    if internal_name.startswith("["):
        return field_type_to_string(internal_name)
    return internal_name.replace("/", ".")


def _escape(text: str) -> str:
    return (text.replace("\\", "\\\\").replace("\n", "\\n").replace("\r", "\\r")
            .replace("\t", "\\t").replace('"', '\\"'))


# --- Entries -------------------------------------------------------------------

@dataclass(frozen=True)
class Constant:
    """Base class for constant pool entries."""

    tag: ClassVar[ConstantTag]
    width: ClassVar[int] = 1

    @classmethod
    def read(cls, reader: ByteReader) -> Constant:
        raise NotImplementedError

    def payload(self) -> bytes:
        raise NotImplementedError

    def encode(self) -> bytes:
        """Tag byte followed by the payload, exactly as stored in a class file."""
        return bytes([self.tag]) + self.payload()

    def describe(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return f"CONSTANT_{_TAG_NAMES[self.tag]}[{int(self.tag)}]({self.describe()})"


@dataclass(frozen=True)
class Utf8Constant(Constant):
    tag: ClassVar[ConstantTag] = ConstantTag.UTF8
    value: str

    @classmethod
    def read(cls, reader: ByteReader) -> Utf8Constant:
        start = reader.position
        raw = reader.read(reader.u2())
        try:
            return cls(decode_mutf8(raw))
        except UnicodeDecodeError as exc:
            raise MalformedConstantPool(f"invalid modified UTF-8: {exc.reason}", start) from exc

    def payload(self) -> bytes:
        data = encode_mutf8(self.value)
        return struct.pack(">H", len(data)) + data

    def describe(self) -> str:
        return f'"{_escape(self.value)}"'


@dataclass(frozen=True)
class IntegerConstant(Constant):
    tag: ClassVar[ConstantTag] = ConstantTag.INTEGER
    value: int

    @classmethod
    def read(cls, reader: ByteReader) -> IntegerConstant:
        return cls(reader.s4())

    def payload(self) -> bytes:
        return struct.pack(">i", self.value)

    def describe(self) -> str:
        return f"bytes = {self.value}"


@dataclass(frozen=True)
class FloatConstant(Constant):
    """Float entry; ``bits`` keeps the raw IEEE 754 pattern."""

    tag: ClassVar[ConstantTag] = ConstantTag.FLOAT
    bits: int

    @property
    def value(self) -> float:
        return struct.unpack(">f", struct.pack(">I", self.bits))[0]

    @classmethod
    def read(cls, reader: ByteReader) -> FloatConstant:
        return cls(reader.u4())

    def payload(self) -> bytes:
        return struct.pack(">I", self.bits)

    def describe(self) -> str:
        return f"bytes = {self.value}"


@dataclass(frozen=True)
class LongConstant(Constant):
    tag: ClassVar[ConstantTag] = ConstantTag.LONG
    width: ClassVar[int] = 2
    value: int

    @classmethod
    def read(cls, reader: ByteReader) -> LongConstant:
        return cls(reader.s8())

    def payload(self) -> bytes:
        return struct.pack(">q", self.value)

    def describe(self) -> str:
        return f"bytes = {self.value}"


@dataclass(frozen=True)
class DoubleConstant(Constant):
    """Double entry; ``bits`` keeps the raw IEEE 754 pattern."""

    tag: ClassVar[ConstantTag] = ConstantTag.DOUBLE
    width: ClassVar[int] = 2
    bits: int

    @property
    def value(self) -> float:
        return struct.unpack(">d", struct.pack(">Q", self.bits))[0]

    @classmethod
    def read(cls, reader: ByteReader) -> DoubleConstant:
        return cls(reader.u8())

    def payload(self) -> bytes:
        return struct.pack(">Q", self.bits)

    def describe(self) -> str:
        return f"bytes = {self.value}"


@dataclass(frozen=True)
class ClassConstant(Constant):
    tag: ClassVar[ConstantTag] = ConstantTag.CLASS
    name_index: int

    @classmethod
    def read(cls, reader: ByteReader) -> ClassConstant:
        return cls(reader.u2())

    def payload(self) -> bytes:
        return struct.pack(">H", self.name_index)

    def describe(self) -> str:
        return f"name_index = {self.name_index}"


@dataclass(frozen=True)
class StringConstant(Constant):
    tag: ClassVar[ConstantTag] = ConstantTag.STRING
    string_index: int

    @classmethod
    def read(cls, reader: ByteReader) -> StringConstant:
        return cls(reader.u2())

    def payload(self) -> bytes:
        return struct.pack(">H", self.string_index)

    def describe(self) -> str:
        return f"string_index = {self.string_index}"


@dataclass(frozen=True)
class MemberRefConstant(Constant):
    """Shared layout of field, method and interface method references."""

    class_index: int
    name_and_type_index: int

    @classmethod
    def read(cls, reader: ByteReader) -> MemberRefConstant:
        class_index = reader.u2()
        return cls(class_index, reader.u2())

    def payload(self) -> bytes:
        return struct.pack(">HH", self.class_index, self.name_and_type_index)

    def describe(self) -> str:
        return f"class_index = {self.class_index}, name_and_type_index = {self.name_and_type_index}"


@dataclass(frozen=True)
class FieldRefConstant(MemberRefConstant):
    tag: ClassVar[ConstantTag] = ConstantTag.FIELDREF


@dataclass(frozen=True)
class MethodRefConstant(MemberRefConstant):
    tag: ClassVar[ConstantTag] = ConstantTag.METHODREF


@dataclass(frozen=True)
class InterfaceMethodRefConstant(MemberRefConstant):
    tag: ClassVar[ConstantTag] = ConstantTag.INTERFACE_METHODREF


@dataclass(frozen=True)
class NameAndTypeConstant(Constant):
    tag: ClassVar[ConstantTag] = ConstantTag.NAME_AND_TYPE
    name_index: int
    descriptor_index: int

    @classmethod
    def read(cls, reader: ByteReader) -> NameAndTypeConstant:
        name_index = reader.u2()
        return cls(name_index, reader.u2())

    def payload(self) -> bytes:
        return struct.pack(">HH", self.name_index, self.descriptor_index)

    def describe(self) -> str:
        return f"name_index = {self.name_index}, signature_index = {self.descriptor_index}"


@dataclass(frozen=True)
class MethodHandleConstant(Constant):
    tag: ClassVar[ConstantTag] = ConstantTag.METHOD_HANDLE
    reference_kind: int
    reference_index: int

    @classmethod
    def read(cls, reader: ByteReader) -> MethodHandleConstant:
        kind = reader.u1()
        return cls(kind, reader.u2())

    def payload(self) -> bytes:
        return struct.pack(">BH", self.reference_kind, self.reference_index)

    def describe(self) -> str:
        return f"reference_kind = {self.reference_kind}, reference_index = {self.reference_index}"


@dataclass(frozen=True)
class MethodTypeConstant(Constant):
    tag: ClassVar[ConstantTag] = ConstantTag.METHOD_TYPE
    descriptor_index: int

    @classmethod
    def read(cls, reader: ByteReader) -> MethodTypeConstant:
        return cls(reader.u2())

    def payload(self) -> bytes:
        return struct.pack(">H", self.descriptor_index)

    def describe(self) -> str:
        return f"descriptor_index = {self.descriptor_index}"


@dataclass(frozen=True)
class DynamicConstant(Constant):
    tag: ClassVar[ConstantTag] = ConstantTag.DYNAMIC
    bootstrap_method_attr_index: int
    name_and_type_index: int

    @classmethod
    def read(cls, reader: ByteReader) -> DynamicConstant:
        bootstrap = reader.u2()
        return cls(bootstrap, reader.u2())

    def payload(self) -> bytes:
        return struct.pack(">HH", self.bootstrap_method_attr_index, self.name_and_type_index)

    def describe(self) -> str:
        return (f"bootstrap_method_attr_index = {self.bootstrap_method_attr_index}, "
                f"name_and_type_index = {self.name_and_type_index}")


@dataclass(frozen=True)
class InvokeDynamicConstant(DynamicConstant):
    tag: ClassVar[ConstantTag] = ConstantTag.INVOKE_DYNAMIC


@dataclass(frozen=True)
class ModuleConstant(Constant):
    tag: ClassVar[ConstantTag] = ConstantTag.MODULE
    name_index: int

    @classmethod
    def read(cls, reader: ByteReader) -> ModuleConstant:
        return cls(reader.u2())

    def payload(self) -> bytes:
        return struct.pack(">H", self.name_index)

    def describe(self) -> str:
        return f"name_index = {self.name_index}"


@dataclass(frozen=True)
class PackageConstant(ModuleConstant):
    tag: ClassVar[ConstantTag] = ConstantTag.PACKAGE


CONSTANT_TYPES: dict[ConstantTag, type[Constant]] = {
    cls.tag: cls
    for cls in (
        Utf8Constant, IntegerConstant, FloatConstant, LongConstant, DoubleConstant,
        ClassConstant, StringConstant, FieldRefConstant, MethodRefConstant,
        InterfaceMethodRefConstant, NameAndTypeConstant, MethodHandleConstant,
        MethodTypeConstant, DynamicConstant, InvokeDynamicConstant,
        ModuleConstant, PackageConstant,
    )
}

_TAG_NAMES = {
    ConstantTag.UTF8: "Utf8",
    ConstantTag.INTEGER: "Integer",
    ConstantTag.FLOAT: "Float",
    ConstantTag.LONG: "Long",
    ConstantTag.DOUBLE: "Double",
    ConstantTag.CLASS: "Class",
    ConstantTag.STRING: "String",
    ConstantTag.FIELDREF: "Fieldref",
    ConstantTag.METHODREF: "Methodref",
    ConstantTag.INTERFACE_METHODREF: "InterfaceMethodref",
    ConstantTag.NAME_AND_TYPE: "NameAndType",
    ConstantTag.METHOD_HANDLE: "MethodHandle",
    ConstantTag.METHOD_TYPE: "MethodType",
    ConstantTag.DYNAMIC: "Dynamic",
    ConstantTag.INVOKE_DYNAMIC: "InvokeDynamic",
    ConstantTag.MODULE: "Module",
    ConstantTag.PACKAGE: "Package",
}


def read_constant(reader: ByteReader) -> Constant:
    """Read a single tagged entry."""
    start = reader.position
    tag = reader.u1()
    try:
        cls = CONSTANT_TYPES[ConstantTag(tag)]
    except ValueError:
        raise MalformedConstantPool(f"unknown constant pool tag {tag}", start) from None
    return cls.read(reader)


class MemberRef(NamedTuple):
    """A resolved field or method reference, class name in internal form."""

    class_name: str
    name: str
    descriptor: str


# --- The pool ------------------------------------------------------------------

class ConstantPool:
    """
    Indexable constant pool owned by one class file.

    Example:
        pool = ConstantPool.read(reader)
        ref = pool.resolve_member_ref(instruction.cp_index)
    """

    def __init__(self, entries: Optional[list[Optional[Constant]]] = None):
        # Slot 0 is never used
        self.entries: list[Optional[Constant]] = entries if entries is not None else [None]

    @classmethod
    def read(cls, reader: ByteReader) -> ConstantPool:
        """
        Read ``constant_pool_count`` and the entries that follow it.

        Args:
            reader: Reader positioned at the count field

        Raises:
            MalformedConstantPool: on an unknown tag, or when a two-slot
                entry overflows the declared count
            TruncatedInput: when the buffer ends inside the pool
        """
        start = reader.position
        count = reader.u2()
        if count == 0:
            raise MalformedConstantPool("constant_pool_count must be at least 1", start)

        entries: list[Optional[Constant]] = [None]
        index = 1
        while index < count:
            entry_start = reader.position
            entry = read_constant(reader)
            entries.append(entry)
            if entry.width == 2:
                if index + 1 >= count:
                    raise MalformedConstantPool(
                        f"8-byte constant at index {index} overflows pool of size {count}",
                        entry_start,
                    )
                entries.append(None)
            index += entry.width
        return cls(entries)

    def __len__(self) -> int:
        """The ``constant_pool_count`` value: number of slots including slot 0."""
        return len(self.entries)

    def __iter__(self) -> Iterator[tuple[int, Constant]]:
        for index, entry in enumerate(self.entries):
            if entry is not None:
                yield index, entry

    def __getitem__(self, index: int) -> Constant:
        return self.get(index)

    def encode(self) -> bytes:
        """Re-encode the pool, count field included."""
        out = bytearray(struct.pack(">H", len(self.entries)))
        for _, entry in self:
            out.extend(entry.encode())
        return bytes(out)

    # -- resolution --

    def get(self, index: int, *expected: type[Constant]) -> Constant:
        """
        Fetch the entry at ``index``, optionally checking its variant.

        Raises:
            MalformedConstantPool: index out of range, unusable slot, or an
                entry that is not one of ``expected``
        """
        if not 0 < index < len(self.entries):
            raise MalformedConstantPool(
                f"constant pool index {index} out of range 1..{len(self.entries) - 1}")
        entry = self.entries[index]
        if entry is None:
            raise MalformedConstantPool(f"constant pool index {index} is an unusable slot")
        if expected and not isinstance(entry, expected):
            wanted = " or ".join(t.__name__ for t in expected)
            raise MalformedConstantPool(
                f"constant pool index {index} is {type(entry).__name__}, expected {wanted}")
        return entry

    def resolve_utf8(self, index: int) -> str:
        return self.get(index, Utf8Constant).value

    def resolve_class_name(self, index: int) -> str:
        """Internal name of the class entry at ``index`` (``java/lang/Object``)."""
        entry = self.get(index, ClassConstant)
        return self.resolve_utf8(entry.name_index)

    def resolve_name_and_type(self, index: int) -> tuple[str, str]:
        entry = self.get(index, NameAndTypeConstant)
        return self.resolve_utf8(entry.name_index), self.resolve_utf8(entry.descriptor_index)

    def resolve_member_ref(self, index: int) -> MemberRef:
        entry = self.get(index, FieldRefConstant, MethodRefConstant, InterfaceMethodRefConstant)
        class_name = self.resolve_class_name(entry.class_index)
        name, descriptor = self.resolve_name_and_type(entry.name_and_type_index)
        return MemberRef(class_name, name, descriptor)

    # -- rendering --

    def constant_to_string(self, index: int) -> str:
        """
        Symbolic rendering of an entry, in the style of javap comments.

        Methodref #5 -> ``java.lang.Object.<init> ()V``
        Class #7     -> ``java.lang.String``
        String #9    -> ``"hello"``
        """
        entry = self.get(index)
        if isinstance(entry, Utf8Constant):
            return entry.value
        if isinstance(entry, StringConstant):
            return f'"{_escape(self.resolve_utf8(entry.string_index))}"'
        if isinstance(entry, ClassConstant):
            return java_class_name(self.resolve_utf8(entry.name_index))
        if isinstance(entry, (IntegerConstant, LongConstant, FloatConstant, DoubleConstant)):
            return str(entry.value)
        if isinstance(entry, NameAndTypeConstant):
            name, descriptor = self.resolve_name_and_type(index)
            return f"{name} {descriptor}"
        if isinstance(entry, MemberRefConstant):
            ref = self.resolve_member_ref(index)
            return f"{java_class_name(ref.class_name)}.{ref.name} {ref.descriptor}"
        if isinstance(entry, MethodTypeConstant):
            return self.resolve_utf8(entry.descriptor_index)
        if isinstance(entry, MethodHandleConstant):
            ref = self.resolve_member_ref(entry.reference_index)
            return f"{entry.reference_kind}:{java_class_name(ref.class_name)}.{ref.name} {ref.descriptor}"
        if isinstance(entry, DynamicConstant):
            name, descriptor = self.resolve_name_and_type(entry.name_and_type_index)
            return f"#{entry.bootstrap_method_attr_index}:{name} {descriptor}"
        if isinstance(entry, ModuleConstant):
            return self.resolve_utf8(entry.name_index).replace("/", ".")
        return entry.describe()

    def safe_constant_to_string(self, index: int) -> str:
        """``constant_to_string`` that renders broken references instead of raising."""
        try:
            return self.constant_to_string(index)
        except JarReaderError:
            return f"<invalid #{index}>"

    def __str__(self) -> str:
        return "\n".join(f"{index}){entry}" for index, entry in self)
