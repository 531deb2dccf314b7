"""
jarreader/visitors/base.py

The visit-hook capability driven by jarreader.archive.walk_entries.

The driver only ever calls ``visit_class`` for each decoded class, then
``finish`` once, then ``render_result``. The finer-grained hooks exist
so concrete visitors can split their work the same way; each visitor calls
them from its own ``visit_class``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from jarreader.archive import Diagnostic
from jarreader.bytecode import InstructionSequence
from jarreader.classfile import ClassFile, FieldInfo, MethodInfo
from jarreader.config import ReaderConfig


class JarVisitor(ABC):
    """
    Base class for one analysis mode.

    Subclasses own their output accumulator; nothing is shared between
    visitor instances, so one instance corresponds to one analysis.
    """

    def __init__(self, config: Optional[ReaderConfig] = None):
        self.config = config or ReaderConfig()
        self.diagnostics: list[Diagnostic] = []

    @abstractmethod
    def visit_class(self, class_file: ClassFile) -> None:
        """Called once per successfully decoded class, in archive order."""

    def visit_fields(self, class_file: ClassFile, fields: list[FieldInfo]) -> None:
        pass

    def visit_constructors(self, class_file: ClassFile, constructors: list[MethodInfo]) -> None:
        pass

    def visit_methods(self, class_file: ClassFile, methods: list[MethodInfo]) -> None:
        pass

    def visit_instructions(self, class_file: ClassFile, method: MethodInfo,
                           instructions: InstructionSequence) -> None:
        pass

    def finish(self) -> None:
        """Called once after the last entry; whole-archive work goes here."""

    @abstractmethod
    def render_result(self) -> str:
        """Textual result of the analysis."""
