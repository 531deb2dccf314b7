"""
jarreader/classfile.py

Class structure decoding.

Reads a complete class file (magic, version, constant pool, access flags,
this/super/interfaces, fields, methods, attributes) into a ClassFile.
Only the SourceFile and Code attributes are interpreted; everything else is
kept as a RawAttribute.

Parsing is strict: the first structural inconsistency aborts the class with
MalformedClassFile carrying the byte offset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Optional

from jarreader.bytecode import InstructionSequence
from jarreader.constant_pool import ConstantPool, java_class_name
from jarreader.descriptors import (
    field_type_to_string,
    method_signature_to_string,
    parse_method_descriptor,
)
from jarreader.errors import MalformedClassFile, MalformedConstantPool, NotAClassFile
from jarreader.reader import ByteReader

log = logging.getLogger(__name__)

MAGIC = 0xCAFEBABE
OBJECT_CLASS = "java/lang/Object"
CONSTRUCTOR_NAME = "<init>"


class AccessFlags(IntFlag):
    PUBLIC = 0x0001
    PRIVATE = 0x0002
    PROTECTED = 0x0004
    STATIC = 0x0008
    FINAL = 0x0010
    SUPER = 0x0020  # classes
    SYNCHRONIZED = 0x0020  # methods
    VOLATILE = 0x0040  # fields
    BRIDGE = 0x0040  # methods
    TRANSIENT = 0x0080  # fields
    VARARGS = 0x0080  # methods
    NATIVE = 0x0100
    INTERFACE = 0x0200
    ABSTRACT = 0x0400
    STRICT = 0x0800
    SYNTHETIC = 0x1000
    ANNOTATION = 0x2000
    ENUM = 0x4000
    MODULE = 0x8000


# Source-level modifiers per kind, in declaration order
_FIELD_MODIFIERS = [
    (AccessFlags.PUBLIC, "public"),
    (AccessFlags.PRIVATE, "private"),
    (AccessFlags.PROTECTED, "protected"),
    (AccessFlags.STATIC, "static"),
    (AccessFlags.FINAL, "final"),
    (AccessFlags.VOLATILE, "volatile"),
    (AccessFlags.TRANSIENT, "transient"),
]
_METHOD_MODIFIERS = [
    (AccessFlags.PUBLIC, "public"),
    (AccessFlags.PRIVATE, "private"),
    (AccessFlags.PROTECTED, "protected"),
    (AccessFlags.STATIC, "static"),
    (AccessFlags.FINAL, "final"),
    (AccessFlags.SYNCHRONIZED, "synchronized"),
    (AccessFlags.NATIVE, "native"),
    (AccessFlags.ABSTRACT, "abstract"),
    (AccessFlags.STRICT, "strictfp"),
]


def _modifiers(flags: int, table: list[tuple[AccessFlags, str]]) -> str:
    return " ".join(word for flag, word in table if flags & flag)


@dataclass(frozen=True)
class RawAttribute:
    """An attribute that is carried but not interpreted."""
    name: str
    data: bytes


@dataclass(frozen=True)
class ExceptionHandler:
    """
    One exception table row of a Code attribute.

    Attributes:
        start_pc: Start of protected region (inclusive)
        end_pc: End of protected region (exclusive)
        handler_pc: Start of handler code
        catch_type: Caught class name (None for catch-all/finally)
    """
    start_pc: int
    end_pc: int
    handler_pc: int
    catch_type: Optional[str] = None


@dataclass
class CodeAttribute:
    max_stack: int
    max_locals: int
    code: bytes
    exception_table: list[ExceptionHandler] = field(default_factory=list)
    attributes: list[RawAttribute] = field(default_factory=list)

    def instructions(self) -> InstructionSequence:
        return InstructionSequence(self.code)


@dataclass
class FieldInfo:
    access_flags: int
    name: str
    descriptor: str
    attributes: list[RawAttribute] = field(default_factory=list)

    @property
    def is_synthetic(self) -> bool:
        return bool(self.access_flags & AccessFlags.SYNTHETIC)

    @property
    def type_name(self) -> str:
        return field_type_to_string(self.descriptor)

    def __str__(self) -> str:
        access = _modifiers(self.access_flags, _FIELD_MODIFIERS)
        prefix = f"{access} " if access else ""
        return f"{prefix}{self.type_name} {self.name}"


@dataclass
class MethodInfo:
    access_flags: int
    name: str
    descriptor: str
    attributes: list[RawAttribute] = field(default_factory=list)
    code: Optional[CodeAttribute] = None

    @property
    def is_abstract(self) -> bool:
        return bool(self.access_flags & AccessFlags.ABSTRACT)

    @property
    def is_native(self) -> bool:
        return bool(self.access_flags & AccessFlags.NATIVE)

    @property
    def is_constructor(self) -> bool:
        return self.name == CONSTRUCTOR_NAME

    @property
    def access_string(self) -> str:
        return _modifiers(self.access_flags, _METHOD_MODIFIERS)

    def signature(self, name: Optional[str] = None) -> str:
        """Java-like declaration, optionally under a different display name."""
        return method_signature_to_string(self.descriptor, name or self.name, self.access_string)

    def __str__(self) -> str:
        return self.signature()


@dataclass
class ClassFile:
    """
    A decoded class file.

    Class names are exposed in Java form (``java.lang.Object``); the
    constant pool keeps the internal form.
    """
    minor_version: int
    major_version: int
    access_flags: int
    name: str
    super_name: Optional[str]
    interfaces: list[str]
    fields: list[FieldInfo]
    methods: list[MethodInfo]
    constant_pool: ConstantPool
    source_file: Optional[str] = None
    attributes: list[RawAttribute] = field(default_factory=list)

    @property
    def is_interface(self) -> bool:
        return bool(self.access_flags & AccessFlags.INTERFACE)

    @property
    def package_name(self) -> str:
        return self.name.rpartition(".")[0]

    @property
    def simple_name(self) -> str:
        return self.name.rpartition(".")[2]

    def constructors(self) -> list[MethodInfo]:
        return [m for m in self.methods if m.is_constructor]


# --- Parsing -------------------------------------------------------------------

def _resolve_class(pool: ConstantPool, index: int, offset: int, what: str) -> str:
    try:
        return java_class_name(pool.resolve_class_name(index))
    except MalformedConstantPool as exc:
        raise MalformedClassFile(f"{what}: {exc.message}", offset) from exc


def _resolve_utf8(pool: ConstantPool, index: int, offset: int, what: str) -> str:
    try:
        return pool.resolve_utf8(index)
    except MalformedConstantPool as exc:
        raise MalformedClassFile(f"{what}: {exc.message}", offset) from exc


def _check_descriptor(check, descriptor: str, offset: int) -> None:
    try:
        check(descriptor)
    except MalformedClassFile as exc:
        raise MalformedClassFile(exc.message, offset) from exc


def _read_attribute_header(reader: ByteReader, pool: ConstantPool) -> tuple[str, ByteReader]:
    start = reader.position
    name = _resolve_utf8(pool, reader.u2(), start, "attribute name")
    length = reader.u4()
    return name, reader.sub_reader(length)


def _read_raw_attributes(reader: ByteReader, pool: ConstantPool) -> list[RawAttribute]:
    attributes = []
    for _ in range(reader.u2()):
        name, body = _read_attribute_header(reader, pool)
        attributes.append(RawAttribute(name, body.read(body.remaining)))
    return attributes


def _read_code(body: ByteReader, pool: ConstantPool) -> CodeAttribute:
    max_stack = body.u2()
    max_locals = body.u2()
    code_start = body.position
    code_length = body.u4()
    if code_length == 0:
        raise MalformedClassFile("Code attribute with empty code array", code_start)
    code = body.read(code_length)

    handlers = []
    for _ in range(body.u2()):
        row = body.position
        start_pc, end_pc, handler_pc, catch_index = body.u2(), body.u2(), body.u2(), body.u2()
        if not start_pc < end_pc <= code_length or handler_pc >= code_length:
            raise MalformedClassFile(
                f"exception table range {start_pc}..{end_pc} -> {handler_pc} "
                f"outside code of length {code_length}", row)
        catch_type = _resolve_class(pool, catch_index, row, "catch type") if catch_index else None
        handlers.append(ExceptionHandler(start_pc, end_pc, handler_pc, catch_type))

    attributes = _read_raw_attributes(body, pool)
    if body.remaining:
        raise MalformedClassFile(
            f"Code attribute has {body.remaining} unread trailing byte(s)", body.position)
    return CodeAttribute(max_stack, max_locals, code, handlers, attributes)


def _read_field(reader: ByteReader, pool: ConstantPool) -> FieldInfo:
    start = reader.position
    access = reader.u2()
    name = _resolve_utf8(pool, reader.u2(), start, "field name")
    descriptor = _resolve_utf8(pool, reader.u2(), start, "field descriptor")
    _check_descriptor(field_type_to_string, descriptor, start)
    return FieldInfo(access, name, descriptor, _read_raw_attributes(reader, pool))


def _read_method(reader: ByteReader, pool: ConstantPool) -> MethodInfo:
    start = reader.position
    access = reader.u2()
    name = _resolve_utf8(pool, reader.u2(), start, "method name")
    descriptor = _resolve_utf8(pool, reader.u2(), start, "method descriptor")
    _check_descriptor(parse_method_descriptor, descriptor, start)
    method = MethodInfo(access, name, descriptor)

    for _ in range(reader.u2()):
        attr_start = reader.position
        attr_name, body = _read_attribute_header(reader, pool)
        if attr_name == "Code":
            if method.code is not None:
                raise MalformedClassFile(f"method {name} has more than one Code attribute", attr_start)
            method.code = _read_code(body, pool)
        else:
            method.attributes.append(RawAttribute(attr_name, body.read(body.remaining)))

    if method.code is not None and (method.is_abstract or method.is_native):
        raise MalformedClassFile(f"abstract or native method {name} has a Code attribute", start)
    return method


def parse_class(data: bytes) -> ClassFile:
    """
    Decode a complete class file.

    Args:
        data: The raw bytes of a ``.class`` file

    Returns:
        The decoded ClassFile

    Raises:
        NotAClassFile: wrong magic number
        MalformedClassFile: structural inconsistency, with the byte offset
        MalformedConstantPool: bad tag inside the constant pool
        TruncatedInput: the data ends early
    """
    reader = ByteReader(data)
    magic = reader.u4()
    if magic != MAGIC:
        raise NotAClassFile(f"bad magic number 0x{magic:08X}", 0)

    minor = reader.u2()
    major = reader.u2()
    pool = ConstantPool.read(reader)

    access = reader.u2()
    this_offset = reader.position
    name = _resolve_class(pool, reader.u2(), this_offset, "this_class")
    if not name:
        raise MalformedClassFile("this_class resolves to an empty name", this_offset)

    super_offset = reader.position
    super_index = reader.u2()
    if super_index == 0:
        if name != java_class_name(OBJECT_CLASS):
            raise MalformedClassFile(f"class {name} has no superclass", super_offset)
        super_name = None
    else:
        super_name = _resolve_class(pool, super_index, super_offset, "super_class")

    interfaces = []
    for _ in range(reader.u2()):
        offset = reader.position
        interfaces.append(_resolve_class(pool, reader.u2(), offset, "interface"))

    fields = [_read_field(reader, pool) for _ in range(reader.u2())]
    methods = [_read_method(reader, pool) for _ in range(reader.u2())]

    source_file = None
    attributes = []
    for _ in range(reader.u2()):
        attr_start = reader.position
        attr_name, body = _read_attribute_header(reader, pool)
        if attr_name == "SourceFile":
            source_file = _resolve_utf8(pool, body.u2(), attr_start, "SourceFile")
            if body.remaining:
                raise MalformedClassFile("SourceFile attribute has trailing bytes", body.position)
        else:
            attributes.append(RawAttribute(attr_name, body.read(body.remaining)))

    if reader.remaining:
        raise MalformedClassFile(f"{reader.remaining} trailing byte(s) after class file", reader.position)

    log.debug("parsed class %s (version %d.%d, %d methods)", name, major, minor, len(methods))
    return ClassFile(
        minor_version=minor,
        major_version=major,
        access_flags=access,
        name=name,
        super_name=super_name,
        interfaces=interfaces,
        fields=fields,
        methods=methods,
        constant_pool=pool,
        source_file=source_file,
        attributes=attributes,
    )
