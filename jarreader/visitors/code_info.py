"""
jarreader/visitors/code_info.py

Structural report: version, source file, constant pool, package, class
declaration, fields, constructors and methods of every class.
"""

from __future__ import annotations

from jarreader.classfile import ClassFile, FieldInfo, MethodInfo
from jarreader.visitors.base import JarVisitor

OBJECT_NAME = "java.lang.Object"


class CodeInfoVisitor(JarVisitor):
    """Render one record block per class, separated by the configured line."""

    def __init__(self, config=None):
        super().__init__(config)
        self._lines: list[str] = []

    def visit_class(self, class_file: ClassFile) -> None:
        out = self._lines
        out.append(self.config.separator)
        out.append(f"Major version: {class_file.major_version}")
        out.append(f"Minor version: {class_file.minor_version}")
        out.append(f"Original source file: {class_file.source_file or '<unknown>'}")

        out.append("Constant pool:")
        out.append(str(class_file.constant_pool))

        if class_file.package_name:
            out.append(f"Package: {class_file.package_name}")
        kind = "Interface" if class_file.is_interface else "Class"
        out.append(f"{kind}: {class_file.name}")

        if class_file.super_name and class_file.super_name != OBJECT_NAME:
            out.append(f"Extended superclass: {class_file.super_name}")

        if class_file.interfaces:
            out.append("Implemented interfaces:")
            out.extend(f"\t{name}" for name in class_file.interfaces)

        self.visit_fields(class_file, class_file.fields)
        self.visit_constructors(class_file, class_file.constructors())
        self.visit_methods(class_file, [m for m in class_file.methods if not m.is_constructor])

    def visit_fields(self, class_file: ClassFile, fields: list[FieldInfo]) -> None:
        if fields:
            self._lines.append("Fields:")
            self._lines.extend(f"\t(0x{f.access_flags:x}) {f}" for f in fields)

    def visit_constructors(self, class_file: ClassFile, constructors: list[MethodInfo]) -> None:
        if constructors:
            self._lines.append("Constructors:")
            self._lines.extend(f"\t(0x{m.access_flags:x}) {m}" for m in constructors)

    def visit_methods(self, class_file: ClassFile, methods: list[MethodInfo]) -> None:
        if methods:
            self._lines.append("Methods:")
            self._lines.extend(f"\t(0x{m.access_flags:x}) {m}" for m in methods)

    def render_result(self) -> str:
        if not self._lines:
            return ""
        return "\n".join(self._lines) + "\n"
