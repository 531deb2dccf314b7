"""
jarreader/bytecode.py

Decoding of a method's Code array into Instruction records.

The decoder is a plain linear sweep: read one opcode, read its operands
according to jarreader.opcodes.OPERAND_FORMATS, advance. It does not build
a control flow graph; callers that need invocations filter by opcode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

from jarreader.errors import MalformedClassFile
from jarreader.opcodes import (
    FIXED_OPERAND_LENGTHS,
    INVOKE_OPCODES,
    OPERAND_FORMATS,
    WIDENABLE,
    Opcode,
    OperandFormat,
)
from jarreader.reader import ByteReader


@dataclass(frozen=True)
class Instruction:
    """
    One decoded instruction.

    Attributes:
        opcode: The instruction's opcode; for a ``wide``-prefixed
            instruction this is the modified opcode (e.g. ILOAD)
        offset: Byte offset of the first byte (the prefix, if wide)
        length: Total encoded length including opcode and prefix
        cp_index: Constant pool operand, if any
        local_index: Local variable operand, if any
        immediate: Immediate value (bipush/sipush value, iinc increment,
            newarray type code, invokeinterface count, array dimensions)
        branch_target: Absolute branch target offset
        default_target: Absolute default target of a switch
        targets: ``(match, absolute target)`` pairs of a switch
        wide: Whether the instruction carried the ``wide`` prefix
    """
    opcode: Opcode
    offset: int
    length: int
    cp_index: Optional[int] = None
    local_index: Optional[int] = None
    immediate: Optional[int] = None
    branch_target: Optional[int] = None
    default_target: Optional[int] = None
    targets: tuple[tuple[int, int], ...] = ()
    wide: bool = False

    @property
    def mnemonic(self) -> str:
        return self.opcode.mnemonic

    @property
    def operand_length(self) -> int:
        return self.length - 1

    @property
    def end(self) -> int:
        return self.offset + self.length

    def is_invoke(self) -> bool:
        """True for invokeinterface/special/static/virtual."""
        return self.opcode in INVOKE_OPCODES

    def __str__(self) -> str:
        parts = [f"{self.offset}: {self.mnemonic}"]
        for value in (self.local_index, self.cp_index, self.immediate, self.branch_target):
            if value is not None:
                parts.append(str(value))
        return " ".join(parts)


def _read_opcode(reader: ByteReader) -> Opcode:
    start = reader.offset
    value = reader.u1()
    try:
        return Opcode(value)
    except ValueError:
        raise MalformedClassFile(f"unknown opcode 0x{value:02x} at code offset {start}") from None


def _decode_switch(reader: ByteReader, opcode: Opcode, offset: int) -> dict:
    # Operands start at the next multiple of four from the code start
    reader.skip((4 - (offset + 1) % 4) % 4)
    default_target = offset + reader.s4()

    if opcode == Opcode.TABLESWITCH:
        low = reader.s4()
        high = reader.s4()
        if high < low:
            raise MalformedClassFile(f"tableswitch at code offset {offset} has high {high} < low {low}")
        targets = tuple((low + i, offset + reader.s4()) for i in range(high - low + 1))
    else:
        npairs = reader.s4()
        if npairs < 0:
            raise MalformedClassFile(f"lookupswitch at code offset {offset} has negative npairs {npairs}")
        pairs = []
        for _ in range(npairs):
            match = reader.s4()
            pairs.append((match, offset + reader.s4()))
        targets = tuple(pairs)

    return {"default_target": default_target, "targets": targets}


def _decode_operands(reader: ByteReader, opcode: Opcode, offset: int, wide: bool) -> dict:
    fmt = OPERAND_FORMATS[opcode]

    if fmt is OperandFormat.NONE:
        return {}
    if fmt is OperandFormat.BYTE:
        return {"immediate": reader.s1()}
    if fmt is OperandFormat.SHORT:
        return {"immediate": reader.s2()}
    if fmt is OperandFormat.UBYTE:
        return {"immediate": reader.u1()}
    if fmt is OperandFormat.CP_BYTE:
        return {"cp_index": reader.u1()}
    if fmt is OperandFormat.CP_SHORT:
        return {"cp_index": reader.u2()}
    if fmt is OperandFormat.LOCAL:
        return {"local_index": reader.u2() if wide else reader.u1()}
    if fmt is OperandFormat.IINC:
        if wide:
            index = reader.u2()
            return {"local_index": index, "immediate": reader.s2()}
        index = reader.u1()
        return {"local_index": index, "immediate": reader.s1()}
    if fmt is OperandFormat.BRANCH:
        return {"branch_target": offset + reader.s2()}
    if fmt is OperandFormat.BRANCH_WIDE:
        return {"branch_target": offset + reader.s4()}
    if fmt is OperandFormat.INVOKEINTERFACE:
        index = reader.u2()
        count = reader.u1()
        reader.skip(1)
        return {"cp_index": index, "immediate": count}
    if fmt is OperandFormat.INVOKEDYNAMIC:
        index = reader.u2()
        reader.skip(2)
        return {"cp_index": index}
    if fmt is OperandFormat.MULTIANEWARRAY:
        index = reader.u2()
        return {"cp_index": index, "immediate": reader.u1()}
    if fmt in (OperandFormat.TABLESWITCH, OperandFormat.LOOKUPSWITCH):
        return _decode_switch(reader, opcode, offset)

    raise MalformedClassFile(f"no operand layout for {opcode.mnemonic} at code offset {offset}")


def decode_instructions(code: bytes) -> Iterator[Instruction]:
    """
    Lazily decode ``code`` into instructions in offset order.

    Raises:
        MalformedClassFile: unknown opcode, bad ``wide`` target, or an
            inconsistent switch
        TruncatedInput: operands running past the end of ``code``
    """
    reader = ByteReader(code)
    while reader.remaining:
        offset = reader.offset
        opcode = _read_opcode(reader)
        wide = False

        if opcode == Opcode.WIDE:
            opcode = _read_opcode(reader)
            if opcode not in WIDENABLE:
                raise MalformedClassFile(
                    f"wide prefix before {opcode.mnemonic} at code offset {offset}")
            wide = True

        operands = _decode_operands(reader, opcode, offset, wide)
        yield Instruction(opcode=opcode, offset=offset, length=reader.offset - offset,
                          wide=wide, **operands)


class InstructionSequence:
    """
    Restartable view over a Code array.

    Every iteration decodes afresh, so the sequence can be walked by
    several consumers without sharing state.
    """

    def __init__(self, code: bytes):
        self.code = bytes(code)

    def __iter__(self) -> Iterator[Instruction]:
        return decode_instructions(self.code)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def invocations(self) -> Iterator[Instruction]:
        """Only the invoke-family instructions, in offset order."""
        return (insn for insn in self if insn.is_invoke())


def expected_operand_length(opcode: Opcode) -> Optional[int]:
    """Fixed operand byte count of ``opcode``, or None if it depends on the stream."""
    return FIXED_OPERAND_LENGTHS.get(OPERAND_FORMATS[opcode])
