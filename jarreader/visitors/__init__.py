"""Registry of analysis modes."""

from __future__ import annotations

from typing import Callable, Optional

from jarreader.config import ReaderConfig

from .base import JarVisitor
from .call_graph import CallGraph, CallGraphVisitor, MethodCallNode
from .code_info import CodeInfoVisitor
from .disassemble import DisassembleVisitor

VisitorFactory = Callable[[Optional[ReaderConfig]], JarVisitor]

VISITORS: dict[str, VisitorFactory] = {
    "info": CodeInfoVisitor,
    "disassemble": DisassembleVisitor,
    "callgraph": CallGraphVisitor,
}

__all__ = [
    "VISITORS",
    "JarVisitor",
    "CallGraph",
    "CallGraphVisitor",
    "MethodCallNode",
    "CodeInfoVisitor",
    "DisassembleVisitor",
]
