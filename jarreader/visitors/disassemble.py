"""
jarreader/visitors/disassemble.py

Disassembly: each class rendered as Java-like source whose method bodies
are commented-out JVM instructions, in the spirit of ``javap -c``.
"""

from __future__ import annotations

from jarreader.archive import Diagnostic
from jarreader.bytecode import Instruction, InstructionSequence
from jarreader.classfile import ClassFile, FieldInfo, MethodInfo
from jarreader.errors import JarReaderError
from jarreader.opcodes import ARRAY_TYPES, CLASS_REFERENCE_OPCODES, Opcode
from jarreader.visitors.base import JarVisitor

OBJECT_NAME = "java.lang.Object"


class DisassembleVisitor(JarVisitor):
    """
    Pseudo-source per class. No state is kept between classes apart from
    the output buffer.
    """

    def __init__(self, config=None):
        super().__init__(config)
        self._out: list[str] = []

    def visit_class(self, class_file: ClassFile) -> None:
        out = self._out
        out.append(self.config.separator + "\n")

        if class_file.package_name:
            out.append(f"package {class_file.package_name};\n\n")

        if class_file.is_interface:
            out.append(f"public interface {class_file.simple_name}")
            if class_file.interfaces:
                out.append(" extends " + ", ".join(class_file.interfaces))
        else:
            out.append(f"public class {class_file.simple_name}")
            if class_file.super_name and class_file.super_name != OBJECT_NAME:
                out.append(f" extends {class_file.super_name}")
            if class_file.interfaces:
                out.append(" implements " + ", ".join(class_file.interfaces))
        out.append(" {\n")

        if not class_file.is_interface:
            self.visit_fields(class_file, class_file.fields)
        self.visit_methods(class_file, class_file.methods)
        out.append("}\n")

    def visit_fields(self, class_file: ClassFile, fields: list[FieldInfo]) -> None:
        shown = [f for f in fields if not f.is_synthetic]
        if shown:
            self._out.extend(f"\t{f};\n" for f in shown)
            self._out.append("\n")

    def visit_methods(self, class_file: ClassFile, methods: list[MethodInfo]) -> None:
        for i, method in enumerate(methods):
            self._visit_method(class_file, method)
            if i < len(methods) - 1:
                self._out.append("\n\n")
        if methods:
            self._out.append("\n")

    def _visit_method(self, class_file: ClassFile, method: MethodInfo) -> None:
        if method.is_constructor:
            # Source-level constructor syntax: class name, no return type
            header = method.signature(class_file.simple_name).replace("void ", "", 1)
        else:
            header = method.signature()
        self._out.append(f"\t{header}")

        if method.code is None:
            self._out.append(";\n")
            return

        self._out.append(" {\n")
        self.visit_instructions(class_file, method, method.code.instructions())
        self._out.append("\t}")

    def visit_instructions(self, class_file: ClassFile, method: MethodInfo,
                           instructions: InstructionSequence) -> None:
        pool = class_file.constant_pool
        try:
            for insn in instructions:
                reference = self._operand_reference(pool, insn)
                self._out.append(f"\t\t// {insn.offset:<4d}: {insn.mnemonic:<20s} {reference}".rstrip() + "\n")
        except JarReaderError as exc:
            key = f"{class_file.name}.{method.name}"
            self.diagnostics.append(Diagnostic.from_error(key, exc))
            self._out.append(f"\t\t// <undecodable bytecode: {exc}>\n")

    @staticmethod
    def _operand_reference(pool, insn: Instruction) -> str:
        if insn.opcode == Opcode.NEWARRAY:
            return f"<{ARRAY_TYPES.get(insn.immediate, insn.immediate)}>"
        if insn.cp_index is None:
            return ""
        name = pool.safe_constant_to_string(insn.cp_index)
        if insn.opcode in CLASS_REFERENCE_OPCODES:
            return f"<{name}>"
        return name

    def render_result(self) -> str:
        return "".join(self._out)
