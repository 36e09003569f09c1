"""
Attribute decoding.

An attribute is ``{name_index: u2, length: u4, body}``. The name selects a
decoder from ATTRIBUTE_DECODERS; names nobody registered are kept as
UnknownAttribute with their raw body, so newer class files still load.
Decoders for new attribute kinds are added with ``@attribute_decoder``.
"""

from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from .constants import ConstantPool
from .cursor import Buffer, read_bytes, read_table, read_u16, read_u32
from .errors import AttributeLengthMismatch


class Attribute:
    """Base class for decoded attributes."""
    name_index: int


@dataclass(frozen=True)
class UnknownAttribute(Attribute):
    name_index: int
    data: Buffer


@dataclass(frozen=True)
class ExceptionTableEntry:
    start_pc: int
    end_pc: int
    handler_pc: int
    catch_type: int  # 0 catches everything

    @property
    def catches_all(self) -> bool:
        return self.catch_type == 0


@dataclass(frozen=True)
class CodeAttribute(Attribute):
    name_index: int
    max_stack: int
    max_locals: int
    code: Buffer
    exception_table: tuple[ExceptionTableEntry, ...]
    attributes: tuple[Attribute, ...]

    def find(self, attribute_type: type) -> Optional[Attribute]:
        return find_attribute(self.attributes, attribute_type)


@dataclass(frozen=True)
class LineNumberTableEntry:
    start_pc: int
    line_number: int


@dataclass(frozen=True)
class LineNumberTableAttribute(Attribute):
    name_index: int
    entries: tuple[LineNumberTableEntry, ...]


@dataclass(frozen=True)
class SourceFileAttribute(Attribute):
    name_index: int
    sourcefile_index: int


@dataclass(frozen=True)
class ConstantValueAttribute(Attribute):
    name_index: int
    constantvalue_index: int


@dataclass(frozen=True)
class ExceptionsAttribute(Attribute):
    name_index: int
    exception_index_table: tuple[int, ...]


@dataclass(frozen=True)
class SignatureAttribute(Attribute):
    name_index: int
    signature_index: int


@dataclass(frozen=True)
class InnerClassEntry:
    inner_class_info_index: int
    outer_class_info_index: int  # 0 if not a member class
    inner_name_index: int  # 0 if anonymous
    inner_class_access_flags: int


@dataclass(frozen=True)
class InnerClassesAttribute(Attribute):
    name_index: int
    classes: tuple[InnerClassEntry, ...]


@dataclass(frozen=True)
class LocalVariableEntry:
    start_pc: int
    length: int
    name_index: int
    descriptor_index: int
    index: int


@dataclass(frozen=True)
class LocalVariableTableAttribute(Attribute):
    name_index: int
    entries: tuple[LocalVariableEntry, ...]


AttributeDecoder = Callable[[Buffer, int, ConstantPool], tuple[Attribute, Buffer]]

ATTRIBUTE_DECODERS: dict[bytes, AttributeDecoder] = {}


def attribute_decoder(name: bytes):
    """Register a decoder for attributes called ``name``.

    The decoder is called as ``decoder(data, name_index, pool)`` where
    ``data`` starts at the attribute body, and returns ``(attribute, rest)``.
    """
    def register(func: AttributeDecoder) -> AttributeDecoder:
        ATTRIBUTE_DECODERS[name] = func
        return func
    return register


def _read_u16_tuple(data: Buffer) -> tuple[tuple[int, ...], Buffer]:
    return read_table(data, read_u16)


def _record_reader(cls, field_count: int):
    """Reader for a record made of ``field_count`` consecutive u2 fields."""
    def read(data: Buffer):
        values = []
        for _ in range(field_count):
            value, data = read_u16(data)
            values.append(value)
        return cls(*values), data
    return read


_read_exception_table_entry = _record_reader(ExceptionTableEntry, 4)
_read_line_number_entry = _record_reader(LineNumberTableEntry, 2)
_read_inner_class_entry = _record_reader(InnerClassEntry, 4)
_read_local_variable_entry = _record_reader(LocalVariableEntry, 5)


@attribute_decoder(b"Code")
def _decode_code(data: Buffer, name_index: int, pool: ConstantPool):
    max_stack, data = read_u16(data)
    max_locals, data = read_u16(data)
    code_length, data = read_u32(data)
    code, data = read_bytes(data, code_length)
    exception_table, data = read_table(data, _read_exception_table_entry)
    attributes, data = parse_attributes(data, pool)
    return CodeAttribute(
        name_index=name_index,
        max_stack=max_stack,
        max_locals=max_locals,
        code=code,
        exception_table=exception_table,
        attributes=attributes,
    ), data


@attribute_decoder(b"LineNumberTable")
def _decode_line_number_table(data: Buffer, name_index: int, pool: ConstantPool):
    entries, data = read_table(data, _read_line_number_entry)
    return LineNumberTableAttribute(name_index, entries), data


@attribute_decoder(b"SourceFile")
def _decode_source_file(data: Buffer, name_index: int, pool: ConstantPool):
    sourcefile_index, data = read_u16(data)
    return SourceFileAttribute(name_index, sourcefile_index), data


@attribute_decoder(b"ConstantValue")
def _decode_constant_value(data: Buffer, name_index: int, pool: ConstantPool):
    constantvalue_index, data = read_u16(data)
    return ConstantValueAttribute(name_index, constantvalue_index), data


@attribute_decoder(b"Exceptions")
def _decode_exceptions(data: Buffer, name_index: int, pool: ConstantPool):
    indices, data = _read_u16_tuple(data)
    return ExceptionsAttribute(name_index, indices), data


@attribute_decoder(b"Signature")
def _decode_signature(data: Buffer, name_index: int, pool: ConstantPool):
    signature_index, data = read_u16(data)
    return SignatureAttribute(name_index, signature_index), data


@attribute_decoder(b"InnerClasses")
def _decode_inner_classes(data: Buffer, name_index: int, pool: ConstantPool):
    classes, data = read_table(data, _read_inner_class_entry)
    return InnerClassesAttribute(name_index, classes), data


@attribute_decoder(b"LocalVariableTable")
def _decode_local_variable_table(data: Buffer, name_index: int, pool: ConstantPool):
    entries, data = read_table(data, _read_local_variable_entry)
    return LocalVariableTableAttribute(name_index, entries), data


def parse_attribute(data: Buffer, pool: ConstantPool) -> tuple[Attribute, Buffer]:
    """Decode one attribute, dispatching on its name."""
    name_index, data = read_u16(data)
    name = bytes(pool.utf8(name_index))
    length, data = read_u32(data)

    decode = ATTRIBUTE_DECODERS.get(name)
    if decode is None:
        body, data = read_bytes(data, length)
        return UnknownAttribute(name_index, body), data

    # Known decoders see the whole stream, not just ``length`` bytes
    attribute, rest = decode(data, name_index, pool)
    consumed = len(data) - len(rest)
    if consumed != length:
        raise AttributeLengthMismatch(name.decode("utf-8", "replace"), length, consumed)
    return attribute, rest


def parse_attributes(data: Buffer, pool: ConstantPool) -> tuple[tuple[Attribute, ...], Buffer]:
    """Decode a u2 count followed by that many attributes."""
    return read_table(data, lambda d: parse_attribute(d, pool))


def find_attribute(attributes, attribute_type: type) -> Optional[Attribute]:
    """First attribute of ``attribute_type`` in ``attributes``, or None."""
    for attribute in attributes:
        if isinstance(attribute, attribute_type):
            return attribute
    return None


def iter_attributes(attributes) -> Iterator[Attribute]:
    """Walk attributes depth-first, descending into Code attributes."""
    for attribute in attributes:
        yield attribute
        if isinstance(attribute, CodeAttribute):
            yield from iter_attributes(attribute.attributes)
