"""
Constant pool decoding.

Entries are frozen dataclasses, one per tag. The pool itself is 1-indexed;
every lookup goes through ConstantPool so bad indices surface as
InvalidConstantPoolIndex at the point of use.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, ClassVar, Iterator, Optional

from .cursor import (
    Buffer, read_bytes, read_f32, read_f64, read_i32, read_i64, read_u8, read_u16,
)
from .errors import InvalidConstantPoolIndex, InvalidConstantTag, Utf8DecodeError


class ConstantPoolTag(IntEnum):
    UTF8 = 1
    INTEGER = 3
    FLOAT = 4
    LONG = 5
    DOUBLE = 6
    CLASS = 7
    STRING = 8
    FIELDREF = 9
    METHODREF = 10
    INTERFACE_METHODREF = 11
    NAME_AND_TYPE = 12
    METHOD_HANDLE = 15
    METHOD_TYPE = 16
    DYNAMIC = 17
    INVOKE_DYNAMIC = 18
    MODULE = 19
    PACKAGE = 20


class ReferenceKind(IntEnum):
    """reference_kind values of a MethodHandle constant."""
    GET_FIELD = 1
    GET_STATIC = 2
    PUT_FIELD = 3
    PUT_STATIC = 4
    INVOKE_VIRTUAL = 5
    INVOKE_STATIC = 6
    INVOKE_SPECIAL = 7
    NEW_INVOKE_SPECIAL = 8
    INVOKE_INTERFACE = 9


class Constant:
    """Base class for constant pool entries."""
    tag: ClassVar[ConstantPoolTag]
    # Long and Double take two pool slots
    slots: ClassVar[int] = 1


@dataclass(frozen=True)
class Utf8Info(Constant):
    tag = ConstantPoolTag.UTF8
    value: Buffer

    def text(self) -> str:
        """Decode the raw bytes. Only this step can fail with Utf8DecodeError."""
        try:
            return bytes(self.value).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise Utf8DecodeError(bytes(self.value)) from exc


@dataclass(frozen=True)
class IntegerInfo(Constant):
    tag = ConstantPoolTag.INTEGER
    value: int


@dataclass(frozen=True)
class FloatInfo(Constant):
    tag = ConstantPoolTag.FLOAT
    value: float


@dataclass(frozen=True)
class LongInfo(Constant):
    tag = ConstantPoolTag.LONG
    slots = 2
    value: int


@dataclass(frozen=True)
class DoubleInfo(Constant):
    tag = ConstantPoolTag.DOUBLE
    slots = 2
    value: float


@dataclass(frozen=True)
class ClassInfo(Constant):
    tag = ConstantPoolTag.CLASS
    name_index: int


@dataclass(frozen=True)
class StringInfo(Constant):
    tag = ConstantPoolTag.STRING
    string_index: int


@dataclass(frozen=True)
class FieldrefInfo(Constant):
    tag = ConstantPoolTag.FIELDREF
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class MethodrefInfo(Constant):
    tag = ConstantPoolTag.METHODREF
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class InterfaceMethodrefInfo(Constant):
    tag = ConstantPoolTag.INTERFACE_METHODREF
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class NameAndTypeInfo(Constant):
    tag = ConstantPoolTag.NAME_AND_TYPE
    name_index: int
    descriptor_index: int


@dataclass(frozen=True)
class MethodHandleInfo(Constant):
    tag = ConstantPoolTag.METHOD_HANDLE
    reference_kind: int
    reference_index: int


@dataclass(frozen=True)
class MethodTypeInfo(Constant):
    tag = ConstantPoolTag.METHOD_TYPE
    descriptor_index: int


@dataclass(frozen=True)
class DynamicInfo(Constant):
    tag = ConstantPoolTag.DYNAMIC
    bootstrap_method_attr_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class InvokeDynamicInfo(Constant):
    tag = ConstantPoolTag.INVOKE_DYNAMIC
    bootstrap_method_attr_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class ModuleInfo(Constant):
    tag = ConstantPoolTag.MODULE
    name_index: int


@dataclass(frozen=True)
class PackageInfo(Constant):
    tag = ConstantPoolTag.PACKAGE
    name_index: int


MemberrefInfo = FieldrefInfo | MethodrefInfo | InterfaceMethodrefInfo


def _parse_utf8(data: Buffer) -> tuple[Utf8Info, Buffer]:
    length, data = read_u16(data)
    value, data = read_bytes(data, length)
    return Utf8Info(value), data


def _single(cls, read) -> Callable[[Buffer], tuple[Constant, Buffer]]:
    def parse(data: Buffer) -> tuple[Constant, Buffer]:
        value, data = read(data)
        return cls(value), data
    return parse


def _pair(cls, read_first=read_u16) -> Callable[[Buffer], tuple[Constant, Buffer]]:
    def parse(data: Buffer) -> tuple[Constant, Buffer]:
        first, data = read_first(data)
        second, data = read_u16(data)
        return cls(first, second), data
    return parse


_CONSTANT_PARSERS: dict[int, Callable[[Buffer], tuple[Constant, Buffer]]] = {
    ConstantPoolTag.UTF8: _parse_utf8,
    ConstantPoolTag.INTEGER: _single(IntegerInfo, read_i32),
    ConstantPoolTag.FLOAT: _single(FloatInfo, read_f32),
    ConstantPoolTag.LONG: _single(LongInfo, read_i64),
    ConstantPoolTag.DOUBLE: _single(DoubleInfo, read_f64),
    ConstantPoolTag.CLASS: _single(ClassInfo, read_u16),
    ConstantPoolTag.STRING: _single(StringInfo, read_u16),
    ConstantPoolTag.FIELDREF: _pair(FieldrefInfo),
    ConstantPoolTag.METHODREF: _pair(MethodrefInfo),
    ConstantPoolTag.INTERFACE_METHODREF: _pair(InterfaceMethodrefInfo),
    ConstantPoolTag.NAME_AND_TYPE: _pair(NameAndTypeInfo),
    ConstantPoolTag.METHOD_HANDLE: _pair(MethodHandleInfo, read_u8),
    ConstantPoolTag.METHOD_TYPE: _single(MethodTypeInfo, read_u16),
    ConstantPoolTag.DYNAMIC: _pair(DynamicInfo),
    ConstantPoolTag.INVOKE_DYNAMIC: _pair(InvokeDynamicInfo),
    ConstantPoolTag.MODULE: _single(ModuleInfo, read_u16),
    ConstantPoolTag.PACKAGE: _single(PackageInfo, read_u16),
}


def parse_constant(data: Buffer) -> tuple[Constant, Buffer]:
    """Decode one tagged constant pool entry."""
    tag, data = read_u8(data)
    parse = _CONSTANT_PARSERS.get(tag)
    if parse is None:
        raise InvalidConstantTag(tag)
    return parse(data)


class ConstantPool:
    """Read-only, 1-indexed view of a decoded constant pool."""

    def __init__(self, entries=()):
        self._entries: list[Optional[Constant]] = [None]  # 1-indexed
        for entry in entries:
            self._entries.append(entry)
            if entry.slots == 2:
                self._entries.append(None)

    def __len__(self) -> int:
        """Number of slots including the unusable slot 0 (the on-disk count)."""
        return len(self._entries)

    def __iter__(self) -> Iterator[Constant]:
        return (entry for entry in self._entries if entry is not None)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ConstantPool):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"ConstantPool({list(self)!r})"

    def items(self) -> Iterator[tuple[int, Constant]]:
        """Yield (index, constant) pairs, skipping unusable slots."""
        for index, entry in enumerate(self._entries):
            if entry is not None:
                yield index, entry

    def __getitem__(self, index: int) -> Constant:
        if not 0 < index < len(self._entries) or self._entries[index] is None:
            raise InvalidConstantPoolIndex(index)
        return self._entries[index]

    def get(self, index: int, expected: type):
        """Look up an entry and require it to be of the ``expected`` type."""
        entry = self[index]
        if not isinstance(entry, expected):
            raise InvalidConstantPoolIndex(
                index, f"expected {getattr(expected, '__name__', expected)}, got {type(entry).__name__}"
            )
        return entry

    def utf8(self, index: int) -> Buffer:
        """Raw bytes of the Utf8 entry at ``index``."""
        return self.get(index, Utf8Info).value

    def text(self, index: int) -> str:
        """Decoded string of the Utf8 entry at ``index``."""
        return self.get(index, Utf8Info).text()

    def class_name(self, index: int) -> str:
        """Internal name (e.g. java/lang/Object) of the Class entry at ``index``."""
        return self.text(self.get(index, ClassInfo).name_index)

    def name_and_type(self, index: int) -> tuple[str, str]:
        entry = self.get(index, NameAndTypeInfo)
        return self.text(entry.name_index), self.text(entry.descriptor_index)


def parse_constant_pool(data: Buffer) -> tuple[ConstantPool, Buffer]:
    """Read the pool count and then the entries filling slots 1..count-1."""
    count, data = read_u16(data)
    entries = []
    slot = 1
    while slot < count:
        entry, data = parse_constant(data)
        entries.append(entry)
        slot += entry.slots
    return ConstantPool(entries), data
