"""
jarreader/visitors/call_graph.py

Caller/callee graph between methods of a JAR.

Two phases:
1. Collection (visit_class): every non-abstract, non-native method becomes
   a node keyed ``declaringType.methodName``.
2. Linking (finish): a FIFO work queue, seeded with the collected keys,
   drives a scan of each defined method's invoke instructions. Callees not
   defined in the archive get an external node, which is appended to the
   queue; external nodes have no body, so they are sinks.

Keys ignore the descriptor, so overloads share one node. Edges are kept
per call site: two calls to the same target add two edges.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from jarreader.archive import Diagnostic
from jarreader.classfile import ClassFile, MethodInfo
from jarreader.config import ReaderConfig
from jarreader.constant_pool import (
    InterfaceMethodRefConstant,
    MethodRefConstant,
    java_class_name,
)
from jarreader.errors import JarReaderError, UnresolvedSymbol
from jarreader.visitors.base import JarVisitor

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DefinedMethod:
    """Body of a method defined in the archive under analysis."""
    class_file: ClassFile
    method: MethodInfo


@dataclass(frozen=True)
class ExternalMethod:
    """A call target whose class is not in the archive."""
    name: str


MethodBody = Union[DefinedMethod, ExternalMethod]


def method_key(class_name: str, method_name: str) -> str:
    return f"{class_name}.{method_name}"


@dataclass(eq=False)
class MethodCallNode:
    """
    A method and its ordered caller/callee edges.

    Edges reference other nodes of the same CallGraph.
    """
    name: str
    body: MethodBody
    callers: list[MethodCallNode] = field(default_factory=list)
    callees: list[MethodCallNode] = field(default_factory=list)

    @property
    def is_in_jar(self) -> bool:
        return isinstance(self.body, DefinedMethod)

    def add_caller(self, caller: MethodCallNode) -> None:
        self.callers.append(caller)

    def add_callee(self, callee: MethodCallNode) -> None:
        self.callees.append(callee)

    def __repr__(self) -> str:
        callers = ", ".join(n.name for n in self.callers)
        callees = ", ".join(n.name for n in self.callees)
        return f"{{Method: {self.name}, callers: [{callers}], callees: [{callees}]}}"


class CallGraph:
    """Node table for one archive analysis, in insertion order."""

    def __init__(self):
        self.nodes: dict[str, MethodCallNode] = {}
        self.linked = False

    def __contains__(self, key: str) -> bool:
        return key in self.nodes

    def __getitem__(self, key: str) -> MethodCallNode:
        return self.nodes[key]

    def __len__(self) -> int:
        return len(self.nodes)

    def add_defined(self, class_file: ClassFile, method: MethodInfo) -> MethodCallNode:
        """Register an archive method; the first registration of a key wins."""
        key = method_key(class_file.name, method.name)
        node = self.nodes.get(key)
        if node is None:
            node = MethodCallNode(key, DefinedMethod(class_file, method))
            self.nodes[key] = node
        return node

    def _fetch_or_create(self, key: str) -> tuple[MethodCallNode, bool]:
        node = self.nodes.get(key)
        if node is not None:
            return node, False
        node = MethodCallNode(key, ExternalMethod(key))
        self.nodes[key] = node
        return node, True

    def link(self) -> list[Diagnostic]:
        """
        Connect callers and callees.

        Returns:
            Diagnostics for call targets that could not be resolved and for
            method bodies that could not be decoded
        """
        diagnostics: list[Diagnostic] = []
        if self.linked:
            log.debug("call graph already linked")
            return diagnostics

        queue = deque(self.nodes)
        while queue:
            caller = self.nodes[queue.popleft()]
            if not isinstance(caller.body, DefinedMethod):
                continue
            for callee_key in self._invoked_keys(caller, diagnostics):
                callee, created = self._fetch_or_create(callee_key)
                if created:
                    queue.append(callee_key)
                callee.add_caller(caller)
                caller.add_callee(callee)

        self.linked = True
        log.debug("linked %d method nodes", len(self.nodes))
        return diagnostics

    @staticmethod
    def _invoked_keys(caller: MethodCallNode, diagnostics: list[Diagnostic]) -> Iterator[str]:
        body = caller.body
        code = body.method.code
        if code is None:
            return
        pool = body.class_file.constant_pool

        try:
            for insn in code.instructions().invocations():
                try:
                    pool.get(insn.cp_index, MethodRefConstant, InterfaceMethodRefConstant)
                    ref = pool.resolve_member_ref(insn.cp_index)
                    yield method_key(java_class_name(ref.class_name), ref.name)
                except JarReaderError as exc:
                    error = UnresolvedSymbol(
                        f"{insn.mnemonic} #{insn.cp_index}: {exc.message}", insn.offset)
                    log.warning("%s: %s", caller.name, error)
                    diagnostics.append(Diagnostic.from_error(caller.name, error))
                    yield f"<unresolved #{insn.cp_index}>"
        except JarReaderError as exc:
            log.warning("cannot decode bytecode of %s: %s", caller.name, exc)
            diagnostics.append(Diagnostic.from_error(caller.name, exc))

    def edges(self) -> list[tuple[str, str]]:
        """Every caller -> callee edge, one per call site."""
        return [(node.name, callee.name) for node in self.nodes.values() for callee in node.callees]

    def external_nodes(self) -> list[MethodCallNode]:
        return [node for node in self.nodes.values() if not node.is_in_jar]

    def to_dict(self) -> dict:
        return {
            "methods": [
                {
                    "name": node.name,
                    "external": not node.is_in_jar,
                    "callers": [n.name for n in node.callers],
                    "callees": [n.name for n in node.callees],
                }
                for node in self.nodes.values()
            ]
        }

    def render(self, separator: str) -> str:
        parts = []
        for node in self.nodes.values():
            parts.append(f"{separator}\n")
            parts.append(f"Method name:\t{node.name}\n")
            parts.append("Callers:\n")
            parts.extend(f"\t{caller.name}\n" for caller in node.callers)
            parts.append("Callees:\n")
            parts.extend(f"\t{callee.name}\n" for callee in node.callees)
        parts.append("\n")
        return "".join(parts)


class CallGraphVisitor(JarVisitor):
    """Builds a CallGraph over a whole archive."""

    def __init__(self, config: Optional[ReaderConfig] = None):
        super().__init__(config)
        self.graph = CallGraph()

    def visit_class(self, class_file: ClassFile) -> None:
        self.visit_methods(class_file, class_file.methods)

    def visit_methods(self, class_file: ClassFile, methods: list[MethodInfo]) -> None:
        for method in methods:
            if method.is_abstract or method.is_native:
                continue
            self.graph.add_defined(class_file, method)

    def finish(self) -> None:
        self.diagnostics.extend(self.graph.link())

    def render_result(self) -> str:
        return self.graph.render(self.config.separator)
