"""
jarreader/archive.py

Archive traversal: read class entries out of a JAR, decode each one and
hand the result to a visitor.

A bad entry never aborts the pass. Its error is logged and recorded as a
Diagnostic, and traversal moves on to the next entry. Only failing to open
the archive itself is fatal.
"""

from __future__ import annotations

import logging
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator, Optional, Union

from jarreader.classfile import parse_class
from jarreader.config import ReaderConfig
from jarreader.errors import ArchiveOpenError, JarReaderError, UnreadableEntry

if TYPE_CHECKING:
    from jarreader.visitors.base import JarVisitor

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawEntry:
    """
    One archive entry: its path inside the archive and its bytes.

    An entry whose bytes could not be extracted carries the error instead.
    """
    name: str
    data: bytes
    error: Optional[JarReaderError] = None


@dataclass(frozen=True)
class Diagnostic:
    """
    A non-fatal problem recorded during a pass.

    Attributes:
        entry: Archive entry (or method key) the problem belongs to
        kind: Error class name, e.g. "TruncatedInput"
        message: Human-readable description
        offset: Byte offset of the problem, if known
    """
    entry: str
    kind: str
    message: str
    offset: Optional[int] = None

    @classmethod
    def from_error(cls, entry: str, error: JarReaderError) -> Diagnostic:
        return cls(entry, type(error).__name__, error.message, error.offset)

    def to_dict(self) -> dict:
        return {"entry": self.entry, "kind": self.kind, "message": self.message, "offset": self.offset}

    def __str__(self) -> str:
        where = f" @ {self.offset}" if self.offset is not None else ""
        return f"{self.entry}: {self.kind}: {self.message}{where}"


@dataclass
class AnalysisResult:
    """Rendered output of one pass plus everything that went wrong on the way."""
    text: str
    classes_read: int = 0
    entries_skipped: int = 0
    diagnostics: list[Diagnostic] = field(default_factory=list)


def is_class_entry(name: str, suffix: str = ".class") -> bool:
    return not name.endswith("/") and name.endswith(suffix)


def iter_jar_entries(jar_path: Union[str, Path], suffix: str = ".class") -> Iterator[RawEntry]:
    """
    Yield the class entries of a JAR in archive order.

    The archive is open only while the generator runs and is closed when
    it is exhausted or closed. Entries that cannot be extracted are yielded
    with their error set so the caller can skip them.

    Raises:
        ArchiveOpenError: the file is missing, unreadable or not a ZIP
    """
    path = Path(jar_path)
    try:
        archive = zipfile.ZipFile(path)
    except (OSError, zipfile.BadZipFile) as exc:
        raise ArchiveOpenError(f"cannot open archive {path}: {exc}") from exc

    with archive:
        for info in archive.infolist():
            if info.is_dir() or not is_class_entry(info.filename, suffix):
                continue
            try:
                data = archive.read(info)
            except (OSError, EOFError, zipfile.BadZipFile, zlib.error,
                    NotImplementedError, RuntimeError) as exc:
                yield RawEntry(info.filename, b"", UnreadableEntry(f"cannot extract entry: {exc}"))
                continue
            yield RawEntry(info.filename, data)


def walk_entries(entries: Iterable[RawEntry], visitor: JarVisitor) -> AnalysisResult:
    """
    Decode each entry and dispatch it to ``visitor``, then finish the visitor.

    Entries that fail to decode are skipped with a diagnostic. Diagnostics
    raised by the visitor itself (e.g. unresolved call targets) are merged
    into the result.
    """
    diagnostics: list[Diagnostic] = []
    classes_read = 0
    skipped = 0

    for entry in entries:
        try:
            if entry.error is not None:
                raise entry.error
            class_file = parse_class(entry.data)
            log.debug("visiting %s (%s)", class_file.name, entry.name)
            visitor.visit_class(class_file)
        except JarReaderError as exc:
            log.warning("skipping %s: %s", entry.name, exc)
            diagnostics.append(Diagnostic.from_error(entry.name, exc))
            skipped += 1
            continue
        classes_read += 1

    visitor.finish()
    diagnostics.extend(visitor.diagnostics)
    return AnalysisResult(
        text=visitor.render_result(),
        classes_read=classes_read,
        entries_skipped=skipped,
        diagnostics=diagnostics,
    )


def analyze_jar(jar_path: Union[str, Path], visitor: JarVisitor,
                config: Optional[ReaderConfig] = None) -> AnalysisResult:
    """
    Run one complete analysis pass over a JAR.

    Example:
        result = analyze_jar("app.jar", CallGraphVisitor())
        print(result.text)
    """
    config = config or ReaderConfig()
    log.info("analyzing %s with %s", jar_path, type(visitor).__name__)
    entries = iter_jar_entries(jar_path, config.class_suffix)
    try:
        return walk_entries(entries, visitor)
    finally:
        entries.close()
