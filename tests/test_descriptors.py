"""
Tests for descriptor rendering (jarreader.descriptors).
"""

import pytest

from jarreader.descriptors import (
    field_type_to_string,
    method_signature_to_string,
    parse_method_descriptor,
)
from jarreader.errors import MalformedClassFile


class TestFieldTypes:

    @pytest.mark.parametrize("descriptor,expected", [
        ("I", "int"),
        ("Z", "boolean"),
        ("J", "long"),
        ("Ljava/lang/String;", "java.lang.String"),
        ("[I", "int[]"),
        ("[[Ljava/lang/Object;", "java.lang.Object[][]"),
    ])
    def test_render(self, descriptor, expected):
        assert field_type_to_string(descriptor) == expected

    @pytest.mark.parametrize("descriptor", ["", "Q", "Ljava/lang/String", "[", "II"])
    def test_malformed(self, descriptor):
        with pytest.raises(MalformedClassFile):
            field_type_to_string(descriptor)


class TestMethodDescriptors:

    def test_parse(self):
        assert parse_method_descriptor("(IJ[Ljava/lang/String;)V") == (
            ["int", "long", "java.lang.String[]"], "void")

    def test_no_params(self):
        assert parse_method_descriptor("()Ljava/lang/Object;") == ([], "java.lang.Object")

    @pytest.mark.parametrize("descriptor", ["IV", "(I", "(I)", "(I)X"])
    def test_malformed(self, descriptor):
        with pytest.raises(MalformedClassFile):
            parse_method_descriptor(descriptor)

    def test_signature_string(self):
        assert method_signature_to_string("(II)I", "add", "public") == "public int add(int arg0, int arg1)"

    def test_signature_without_access(self):
        assert method_signature_to_string("()V", "run") == "void run()"
