"""
jarreader - class-file reader and bytecode call-graph extractor for JARs.

    from jarreader import analyze_jar, CallGraphVisitor

    result = analyze_jar("app.jar", CallGraphVisitor())
    print(result.text)
"""

from jarreader.archive import AnalysisResult, Diagnostic, RawEntry, analyze_jar, walk_entries
from jarreader.classfile import ClassFile, parse_class
from jarreader.config import ReaderConfig
from jarreader.errors import (
    ArchiveOpenError,
    JarReaderError,
    MalformedClassFile,
    MalformedConstantPool,
    NotAClassFile,
    TruncatedInput,
    UnreadableEntry,
    UnresolvedSymbol,
)
from jarreader.visitors import (
    VISITORS,
    CallGraphVisitor,
    CodeInfoVisitor,
    DisassembleVisitor,
    JarVisitor,
)

__version__ = "0.1.0"

__all__ = [
    "AnalysisResult",
    "ArchiveOpenError",
    "CallGraphVisitor",
    "ClassFile",
    "CodeInfoVisitor",
    "Diagnostic",
    "DisassembleVisitor",
    "JarReaderError",
    "JarVisitor",
    "MalformedClassFile",
    "MalformedConstantPool",
    "NotAClassFile",
    "RawEntry",
    "ReaderConfig",
    "TruncatedInput",
    "UnreadableEntry",
    "UnresolvedSymbol",
    "VISITORS",
    "analyze_jar",
    "parse_class",
    "walk_entries",
]
