"""Tests for attribute decoding."""

import pytest

from classfile_bytes import (
    attribute, class_ref, code_attribute, line_number_table, u2, u4, utf8,
)

from pyjcf.attributes import (
    ATTRIBUTE_DECODERS, Attribute, CodeAttribute, ConstantValueAttribute, ExceptionsAttribute,
    InnerClassEntry, InnerClassesAttribute, LineNumberTableAttribute, LineNumberTableEntry,
    LocalVariableEntry, LocalVariableTableAttribute, SignatureAttribute, SourceFileAttribute,
    UnknownAttribute,
    attribute_decoder, iter_attributes, parse_attribute, parse_attributes,
)
from pyjcf.constants import ConstantPool, Utf8Info, parse_constant_pool
from pyjcf.cursor import read_u16
from pyjcf.errors import AttributeLengthMismatch, EndOfInput, InvalidConstantPoolIndex

LEFTOVER = b"\x99"

NAMES = [
    "Code",                 # 1
    "LineNumberTable",      # 2
    "SourceFile",           # 3
    "Custom",               # 4
    "ConstantValue",        # 5
    "Exceptions",           # 6
    "Tagged",               # 7
    "Signature",            # 8
    "InnerClasses",         # 9
    "LocalVariableTable",   # 10
]


@pytest.fixture
def pool():
    return ConstantPool([Utf8Info(name.encode()) for name in NAMES])


class TestUnknownAttribute:
    def test_unregistered_name_keeps_body(self, pool):
        data = attribute(4, b"\x01\x02\x03") + LEFTOVER
        result, rest = parse_attribute(data, pool)
        assert isinstance(result, UnknownAttribute)
        assert result.name_index == 4
        assert bytes(result.data) == b"\x01\x02\x03"
        assert bytes(rest) == LEFTOVER

    def test_body_shorter_than_length(self, pool):
        data = u2(4) + u4(10) + b"\x01\x02"
        with pytest.raises(EndOfInput):
            parse_attribute(data, pool)


class TestKnownAttributes:
    def test_source_file(self, pool):
        result, rest = parse_attribute(attribute(3, u2(7)) + LEFTOVER, pool)
        assert result == SourceFileAttribute(name_index=3, sourcefile_index=7)
        assert bytes(rest) == LEFTOVER

    def test_constant_value(self, pool):
        result, _ = parse_attribute(attribute(5, u2(2)), pool)
        assert result == ConstantValueAttribute(name_index=5, constantvalue_index=2)

    def test_exceptions(self, pool):
        result, _ = parse_attribute(attribute(6, u2(2) + u2(10) + u2(11)), pool)
        assert isinstance(result, ExceptionsAttribute)
        assert result.exception_index_table == (10, 11)

    def test_code_with_nested_line_numbers(self, pool):
        data = code_attribute(
            1,
            b"\x2a\xb1",
            max_stack=1,
            max_locals=2,
            exception_table=[(0, 1, 1, 0)],
            attributes=[line_number_table(2, [(0, 7), (1, 8)])],
        )
        result, rest = parse_attribute(data + LEFTOVER, pool)
        assert isinstance(result, CodeAttribute)
        assert (result.max_stack, result.max_locals) == (1, 2)
        assert bytes(result.code) == b"\x2a\xb1"
        assert len(result.exception_table) == 1
        assert result.exception_table[0].catches_all
        line_numbers = result.find(LineNumberTableAttribute)
        assert line_numbers.entries == (LineNumberTableEntry(0, 7), LineNumberTableEntry(1, 8))
        assert bytes(rest) == LEFTOVER

    def test_code_with_unknown_nested_attribute(self, pool):
        data = code_attribute(1, b"\xb1", attributes=[attribute(4, b"xyz")])
        result, _ = parse_attribute(data, pool)
        assert isinstance(result.attributes[0], UnknownAttribute)

    def test_length_mismatch(self, pool):
        data = u2(3) + u4(4) + u2(7) + b"\x00\x00"
        with pytest.raises(AttributeLengthMismatch) as excinfo:
            parse_attribute(data, pool)
        assert excinfo.value.declared == 4
        assert excinfo.value.consumed == 2

    def test_truncated_known_attribute(self, pool):
        with pytest.raises(EndOfInput):
            parse_attribute(u2(3) + u4(2) + b"\x00", pool)

    def test_name_index_out_of_range(self, pool):
        with pytest.raises(InvalidConstantPoolIndex):
            parse_attribute(attribute(50, b""), pool)

    def test_name_index_not_utf8(self):
        pool, _ = parse_constant_pool(u2(3) + utf8("X") + class_ref(1))
        with pytest.raises(InvalidConstantPoolIndex):
            parse_attribute(attribute(2, b""), pool)


class TestSignatureAndTables:
    def test_signature(self, pool):
        result, rest = parse_attribute(attribute(8, u2(12)) + LEFTOVER, pool)
        assert result == SignatureAttribute(name_index=8, signature_index=12)
        assert bytes(rest) == LEFTOVER

    def test_signature_length_mismatch(self, pool):
        with pytest.raises(AttributeLengthMismatch) as excinfo:
            parse_attribute(u2(8) + u4(3) + u2(12) + b"\x00", pool)
        assert (excinfo.value.declared, excinfo.value.consumed) == (3, 2)

    def test_inner_classes(self, pool):
        body = u2(2) + u2(11) + u2(12) + u2(13) + u2(0x0009) + u2(14) + u2(0) + u2(0) + u2(0x0010)
        result, rest = parse_attribute(attribute(9, body) + LEFTOVER, pool)
        assert result == InnerClassesAttribute(
            name_index=9,
            classes=(
                InnerClassEntry(11, 12, 13, 0x0009),
                InnerClassEntry(14, 0, 0, 0x0010),
            ),
        )
        assert bytes(rest) == LEFTOVER

    def test_inner_classes_length_mismatch(self, pool):
        # one entry is eight bytes; two extra are declared
        body = u2(1) + u2(11) + u2(12) + u2(13) + u2(0x0001)
        with pytest.raises(AttributeLengthMismatch) as excinfo:
            parse_attribute(u2(9) + u4(len(body) + 2) + body + b"\x00\x00", pool)
        assert (excinfo.value.declared, excinfo.value.consumed) == (12, 10)

    def test_local_variable_table(self, pool):
        body = u2(2) + u2(0) + u2(5) + u2(15) + u2(16) + u2(0) + u2(2) + u2(3) + u2(17) + u2(18) + u2(1)
        result, rest = parse_attribute(attribute(10, body) + LEFTOVER, pool)
        assert isinstance(result, LocalVariableTableAttribute)
        assert result.entries == (
            LocalVariableEntry(start_pc=0, length=5, name_index=15, descriptor_index=16, index=0),
            LocalVariableEntry(start_pc=2, length=3, name_index=17, descriptor_index=18, index=1),
        )
        assert bytes(rest) == LEFTOVER

    def test_local_variable_table_length_mismatch(self, pool):
        body = u2(1) + u2(0) + u2(5) + u2(15) + u2(16) + u2(0)
        with pytest.raises(AttributeLengthMismatch) as excinfo:
            parse_attribute(u2(10) + u4(len(body) + 2) + body + b"\x00\x00", pool)
        assert (excinfo.value.declared, excinfo.value.consumed) == (14, 12)

    def test_truncated_local_variable_entry(self, pool):
        # four of the five fields
        body = u2(1) + u2(0) + u2(5) + u2(15) + u2(16)
        with pytest.raises(EndOfInput):
            parse_attribute(attribute(10, body), pool)


class TestParseAttributes:
    def test_table(self, pool):
        data = u2(2) + attribute(3, u2(1)) + attribute(4, b"") + LEFTOVER
        attributes, rest = parse_attributes(data, pool)
        assert [type(a) for a in attributes] == [SourceFileAttribute, UnknownAttribute]
        assert bytes(rest) == LEFTOVER

    def test_iter_attributes_descends_into_code(self, pool):
        data = u2(1) + code_attribute(1, b"\xb1", attributes=[line_number_table(2, [])])
        attributes, _ = parse_attributes(data, pool)
        assert [type(a) for a in iter_attributes(attributes)] == [
            CodeAttribute, LineNumberTableAttribute,
        ]


class TestRegistry:
    def test_custom_decoder(self, pool):
        class TaggedAttribute(Attribute):
            def __init__(self, name_index, value):
                self.name_index = name_index
                self.value = value

        @attribute_decoder(b"Tagged")
        def decode_tagged(data, name_index, pool):
            value, data = read_u16(data)
            return TaggedAttribute(name_index, value), data

        try:
            result, _ = parse_attribute(attribute(7, u2(42)), pool)
            assert isinstance(result, TaggedAttribute)
            assert result.value == 42
        finally:
            del ATTRIBUTE_DECODERS[b"Tagged"]
