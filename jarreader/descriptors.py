"""
jarreader/descriptors.py

Rendering of JVM type descriptors as Java source types.

    I                      -> int
    [[Ljava/lang/String;   -> java.lang.String[][]
    (IJ)V                  -> (["int", "long"], "void")
"""

from __future__ import annotations

from jarreader.errors import MalformedClassFile

BASE_TYPES = {
    "B": "byte",
    "C": "char",
    "D": "double",
    "F": "float",
    "I": "int",
    "J": "long",
    "S": "short",
    "Z": "boolean",
    "V": "void",
}


def parse_field_type(descriptor: str, pos: int = 0) -> tuple[str, int]:
    """
    Parse one field type starting at ``pos``.

    Returns:
        The Java type name and the position just after it
    """
    dims = 0
    while pos < len(descriptor) and descriptor[pos] == "[":
        dims += 1
        pos += 1
    if pos >= len(descriptor):
        raise MalformedClassFile(f"truncated type descriptor {descriptor!r}")

    ch = descriptor[pos]
    if ch == "L":
        end = descriptor.find(";", pos)
        if end == -1:
            raise MalformedClassFile(f"unterminated class type in descriptor {descriptor!r}")
        name = descriptor[pos + 1:end].replace("/", ".")
        pos = end + 1
    elif ch in BASE_TYPES:
        name = BASE_TYPES[ch]
        pos += 1
    else:
        raise MalformedClassFile(f"bad type character {ch!r} in descriptor {descriptor!r}")

    return name + "[]" * dims, pos


def field_type_to_string(descriptor: str) -> str:
    name, end = parse_field_type(descriptor)
    if end != len(descriptor):
        raise MalformedClassFile(f"trailing characters in field descriptor {descriptor!r}")
    return name


def parse_method_descriptor(descriptor: str) -> tuple[list[str], str]:
    """Split a method descriptor into parameter type names and the return type."""
    if not descriptor.startswith("("):
        raise MalformedClassFile(f"method descriptor {descriptor!r} does not start with '('")
    params = []
    pos = 1
    while pos < len(descriptor) and descriptor[pos] != ")":
        name, pos = parse_field_type(descriptor, pos)
        params.append(name)
    if pos >= len(descriptor):
        raise MalformedClassFile(f"unterminated parameter list in {descriptor!r}")
    return params, field_type_to_string(descriptor[pos + 1:])


def method_signature_to_string(descriptor: str, name: str, access: str = "") -> str:
    """
    Java-like declaration for a method, with positional argument names.

    ``method_signature_to_string("(II)I", "add", "public")`` gives
    ``public int add(int arg0, int arg1)``.
    """
    params, return_type = parse_method_descriptor(descriptor)
    args = ", ".join(f"{ptype} arg{i}" for i, ptype in enumerate(params))
    prefix = f"{access} " if access else ""
    return f"{prefix}{return_type} {name}({args})"
