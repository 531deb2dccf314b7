"""
jarreader/cli.py

Command line front end: pick an analysis mode, run it over a JAR, print
or write the result.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from jarreader.archive import analyze_jar
from jarreader.config import ReaderConfig
from jarreader.errors import ArchiveOpenError
from jarreader.visitors import VISITORS, CallGraphVisitor

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DIAGNOSTICS = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jarreader",
        description="Read class files from a JAR: structure, disassembly or call graph",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Caller/callee information for every method
  jarreader app.jar --mode callgraph

  # Same, as JSON written to a file
  jarreader app.jar --mode callgraph --json -o graph.json

  # Disassemble all classes
  jarreader app.jar --mode disassemble
        """,
    )
    parser.add_argument("jar", help="Path to the JAR file")
    parser.add_argument("--mode", "-m", choices=sorted(VISITORS), default="info",
                        help="Analysis to run (default: info)")
    parser.add_argument("--json", action="store_true",
                        help="Emit JSON instead of text (callgraph mode only)")
    parser.add_argument("--output", "-o", type=Path, metavar="FILE",
                        help="Write the result to FILE instead of stdout")
    parser.add_argument("--suffix", default=None,
                        help="Entry name suffix of class files (default: .class)")
    parser.add_argument("--separator", default=None,
                        help="Separator line between output blocks")
    parser.add_argument("--strict", action="store_true",
                        help="Exit with status 2 if any entry produced a diagnostic")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Show diagnostics; repeat for debug logging")
    return parser


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(message)s")

    logger.remove()
    logger.add(sys.stderr, format="[{level}] {message}", level="DEBUG" if verbosity else "INFO")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    if not args.jar.strip():
        logger.error("File path is empty! Please select a JAR file.")
        return EXIT_ERROR
    jar_path = Path(args.jar)
    if not jar_path.exists():
        logger.error(f"File does not exist: {jar_path}")
        return EXIT_ERROR
    if args.json and args.mode != "callgraph":
        logger.error("--json is only supported with --mode callgraph")
        return EXIT_ERROR

    config = ReaderConfig.from_args(args)
    visitor = VISITORS[args.mode](config)

    try:
        result = analyze_jar(jar_path, visitor, config)
    except ArchiveOpenError as exc:
        logger.error(str(exc))
        return EXIT_ERROR

    if args.json and isinstance(visitor, CallGraphVisitor):
        payload = visitor.graph.to_dict()
        payload["diagnostics"] = [d.to_dict() for d in result.diagnostics]
        text = json.dumps(payload, indent=2) + "\n"
    else:
        text = result.text

    if args.output:
        args.output.write_text(text, encoding="utf-8")
        log.info("wrote %s", args.output)
    else:
        sys.stdout.write(text)

    if args.verbose:
        for diagnostic in result.diagnostics:
            logger.warning(str(diagnostic))
    logger.info(
        f"{result.classes_read} class(es) read, {result.entries_skipped} skipped, "
        f"{len(result.diagnostics)} diagnostic(s)"
    )

    if config.strict and result.diagnostics:
        return EXIT_DIAGNOSTICS
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
