"""
Shared fixtures: assembled class files and JARs built in tmp_path.

The two-class scenario mirrors a small program where
InstanceACalls.a -> InstanceBCalls.b -> {InstanceACalls.c, InstanceBCalls.d}
and InstanceBCalls.d -> {InstanceACalls.e, InstanceACalls.c}.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from classgen import ACC_PRIVATE, ClassBuilder, invoke, write_jar  # noqa: E402
from jarreader.opcodes import Opcode  # noqa: E402

A_NAME = "example/InstanceACalls"
B_NAME = "example/InstanceBCalls"


def instance_a_calls() -> bytes:
    cb = ClassBuilder(A_NAME, source_file="InstanceACalls.java")
    cb.field("instanceB", f"L{B_NAME};", access=ACC_PRIVATE)
    field_b = cb.pool.fieldref(A_NAME, "instanceB", f"L{B_NAME};")
    call_b = cb.pool.methodref(B_NAME, "b", "()V")

    code_a = (bytes([Opcode.ALOAD_0]) + invoke(Opcode.GETFIELD, field_b)
              + invoke(Opcode.INVOKEVIRTUAL, call_b) + bytes([Opcode.RETURN]))
    cb.method("a", "()V", code=code_a)
    cb.method("c", "()V", code=bytes([Opcode.RETURN]))
    cb.method("e", "()V", code=bytes([Opcode.RETURN]))
    return cb.to_bytes()


def instance_b_calls() -> bytes:
    cb = ClassBuilder(B_NAME, source_file="InstanceBCalls.java")
    cb.field("instanceA", f"L{A_NAME};", access=ACC_PRIVATE)
    field_a = cb.pool.fieldref(B_NAME, "instanceA", f"L{A_NAME};")
    call_c = cb.pool.methodref(A_NAME, "c", "()V")
    call_d = cb.pool.methodref(B_NAME, "d", "()V")
    call_e = cb.pool.methodref(A_NAME, "e", "()V")

    load_a = bytes([Opcode.ALOAD_0]) + invoke(Opcode.GETFIELD, field_a)
    code_b = (load_a + invoke(Opcode.INVOKEVIRTUAL, call_c)
              + bytes([Opcode.ALOAD_0]) + invoke(Opcode.INVOKEVIRTUAL, call_d)
              + bytes([Opcode.RETURN]))
    code_d = (load_a + invoke(Opcode.INVOKEVIRTUAL, call_e)
              + load_a + invoke(Opcode.INVOKEVIRTUAL, call_c)
              + bytes([Opcode.RETURN]))
    cb.method("b", "()V", code=code_b)
    cb.method("d", "()V", code=code_d)
    return cb.to_bytes()


@pytest.fixture
def class_a() -> bytes:
    return instance_a_calls()


@pytest.fixture
def class_b() -> bytes:
    return instance_b_calls()


@pytest.fixture
def make_jar(tmp_path):
    """Factory: make_jar([(entry_name, bytes), ...]) -> path of a new JAR."""
    counter = {"n": 0}

    def _make(entries, extras=()):
        counter["n"] += 1
        return write_jar(tmp_path / f"test{counter['n']}.jar", list(entries), extras)

    return _make


@pytest.fixture
def scenario_jar(make_jar, class_a, class_b) -> Path:
    return make_jar([
        (f"{A_NAME}.class", class_a),
        (f"{B_NAME}.class", class_b),
    ])
