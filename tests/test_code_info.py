"""
Tests for the structural report (jarreader.visitors.code_info).
"""

from classgen import ACC_ABSTRACT, ACC_INTERFACE, ACC_PUBLIC, ClassBuilder
from jarreader.archive import RawEntry, walk_entries
from jarreader.opcodes import Opcode
from jarreader.visitors import CodeInfoVisitor


def report(*classes: bytes) -> str:
    visitor = CodeInfoVisitor()
    return walk_entries([RawEntry(f"C{i}.class", data) for i, data in enumerate(classes)], visitor).text


class TestCodeInfo:

    def test_header_lines(self, class_a):
        lines = report(class_a).splitlines()
        assert lines[:5] == [
            "=" * 32,
            "Major version: 52",
            "Minor version: 0",
            "Original source file: InstanceACalls.java",
            "Constant pool:",
        ]

    def test_pool_listing_included(self, class_a):
        text = report(class_a)
        assert "CONSTANT_Methodref[10](class_index = " in text
        assert "CONSTANT_Class[7](name_index = " in text

    def test_declaration_section(self, class_a):
        lines = report(class_a).splitlines()
        start = lines.index("Package: example")
        assert lines[start:] == [
            "Package: example",
            "Class: example.InstanceACalls",
            "Fields:",
            "\t(0x2) private example.InstanceBCalls instanceB",
            "Methods:",
            "\t(0x1) public void a()",
            "\t(0x1) public void c()",
            "\t(0x1) public void e()",
        ]

    def test_constructors_listed_separately(self):
        cb = ClassBuilder("p/Thing", super_name="p/Base", interfaces=("java/lang/Runnable",))
        cb.method("<init>", "()V", code=bytes([Opcode.RETURN]))
        cb.method("run", "()V", code=bytes([Opcode.RETURN]))
        lines = report(cb.to_bytes()).splitlines()
        start = lines.index("Class: p.Thing")
        assert lines[start:] == [
            "Class: p.Thing",
            "Extended superclass: p.Base",
            "Implemented interfaces:",
            "\tjava.lang.Runnable",
            "Constructors:",
            "\t(0x1) public void <init>()",
            "Methods:",
            "\t(0x1) public void run()",
        ]

    def test_interface_and_unknown_source(self):
        cb = ClassBuilder("Api", access=ACC_PUBLIC | ACC_INTERFACE | ACC_ABSTRACT)
        lines = report(cb.to_bytes()).splitlines()
        assert "Original source file: <unknown>" in lines
        assert "Interface: Api" in lines
        assert not any(line.startswith("Package:") for line in lines)

    def test_empty_archive(self):
        assert report() == ""

    def test_ends_with_newline(self, class_a, class_b):
        text = report(class_a, class_b)
        assert text.endswith("\n")
        assert text.count("=" * 32) == 2
