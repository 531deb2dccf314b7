"""
jarreader/config.py

Options shared by the traversal driver, the visitors and the CLI.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass

DEFAULT_SEPARATOR = "=" * 32


@dataclass(frozen=True)
class ReaderConfig:
    """
    Attributes:
        class_suffix: Archive entries ending in this suffix are decoded
        separator: Line written between per-class / per-method blocks
        strict: Treat any diagnostic as a failed run (CLI exit status)
    """
    class_suffix: str = ".class"
    separator: str = DEFAULT_SEPARATOR
    strict: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> ReaderConfig:
        return cls(
            class_suffix=getattr(args, "suffix", None) or cls.class_suffix,
            separator=getattr(args, "separator", None) or cls.separator,
            strict=bool(getattr(args, "strict", False)),
        )
