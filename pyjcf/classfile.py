"""
Java class file decoder.

Decodes the complete class file structure (JVMS chapter 4) from an
in-memory buffer. Byte payloads in the result are read-only views into
that buffer.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .access_flags import ClassAccessFlags, FieldAccessFlags, MethodAccessFlags
from .attributes import (
    Attribute, CodeAttribute, SourceFileAttribute, find_attribute, parse_attributes,
)
from .constants import ConstantPool, parse_constant_pool
from .cursor import Buffer, as_view, read_table, read_u16, read_u32
from .descriptors import FieldType, MethodDescriptor, parse_field_type, parse_method_descriptor


JAVA_MAGIC = 0xCAFEBABE


class ClassFileVersion:
    JAVA_6 = (50, 0)
    JAVA_7 = (51, 0)
    JAVA_8 = (52, 0)
    JAVA_11 = (55, 0)
    JAVA_17 = (61, 0)
    JAVA_21 = (65, 0)


@dataclass(frozen=True)
class FieldInfo:
    """A decoded field_info structure."""
    access_flags: FieldAccessFlags
    name_index: int
    descriptor_index: int
    attributes: tuple[Attribute, ...]

    def name(self, pool: ConstantPool) -> str:
        return pool.text(self.name_index)

    def descriptor(self, pool: ConstantPool) -> str:
        return pool.text(self.descriptor_index)

    def field_type(self, pool: ConstantPool) -> FieldType:
        return parse_field_type(pool.utf8(self.descriptor_index))


@dataclass(frozen=True)
class MethodInfo:
    """A decoded method_info structure."""
    access_flags: MethodAccessFlags
    name_index: int
    descriptor_index: int
    attributes: tuple[Attribute, ...]

    def name(self, pool: ConstantPool) -> str:
        return pool.text(self.name_index)

    def descriptor(self, pool: ConstantPool) -> str:
        return pool.text(self.descriptor_index)

    def method_descriptor(self, pool: ConstantPool) -> MethodDescriptor:
        return parse_method_descriptor(pool.utf8(self.descriptor_index))

    @property
    def code(self) -> Optional[CodeAttribute]:
        """The method's Code attribute; None for abstract and native methods."""
        return find_attribute(self.attributes, CodeAttribute)


@dataclass(frozen=True)
class ClassFile:
    """A decoded class file."""
    magic: int
    minor_version: int
    major_version: int
    constant_pool: ConstantPool
    access_flags: ClassAccessFlags
    this_class: int
    super_class: int  # 0 only for java/lang/Object
    interfaces: tuple[int, ...]
    fields: tuple[FieldInfo, ...]
    methods: tuple[MethodInfo, ...]
    attributes: tuple[Attribute, ...]

    @property
    def version(self) -> tuple[int, int]:
        return (self.major_version, self.minor_version)

    @property
    def name(self) -> str:
        return self.constant_pool.class_name(self.this_class)

    @property
    def super_name(self) -> Optional[str]:
        if self.super_class == 0:
            return None
        return self.constant_pool.class_name(self.super_class)

    @property
    def interface_names(self) -> tuple[str, ...]:
        return tuple(self.constant_pool.class_name(i) for i in self.interfaces)

    @property
    def source_file(self) -> Optional[str]:
        attribute = find_attribute(self.attributes, SourceFileAttribute)
        if attribute is None:
            return None
        return self.constant_pool.text(attribute.sourcefile_index)

    def find_method(self, name: str, descriptor: Optional[str] = None) -> Optional[MethodInfo]:
        for method in self.methods:
            if method.name(self.constant_pool) != name:
                continue
            if descriptor is None or method.descriptor(self.constant_pool) == descriptor:
                return method
        return None

    def find_field(self, name: str) -> Optional[FieldInfo]:
        for field_info in self.fields:
            if field_info.name(self.constant_pool) == name:
                return field_info
        return None


def _member_reader(cls, flags_type, pool: ConstantPool):
    def read(data: Buffer):
        access_flags, data = read_u16(data)
        name_index, data = read_u16(data)
        descriptor_index, data = read_u16(data)
        attributes, data = parse_attributes(data, pool)
        return cls(
            access_flags=flags_type(access_flags),
            name_index=name_index,
            descriptor_index=descriptor_index,
            attributes=attributes,
        ), data
    return read


def parse_field(data: Buffer, pool: ConstantPool) -> tuple[FieldInfo, Buffer]:
    return _member_reader(FieldInfo, FieldAccessFlags, pool)(data)


def parse_method(data: Buffer, pool: ConstantPool) -> tuple[MethodInfo, Buffer]:
    return _member_reader(MethodInfo, MethodAccessFlags, pool)(data)


def parse_classfile(data: Buffer) -> tuple[ClassFile, Buffer]:
    """Decode a class file. Returns the ClassFile and any trailing bytes."""
    data = as_view(data)

    # The magic number is read but not checked
    magic, data = read_u32(data)
    minor, data = read_u16(data)
    major, data = read_u16(data)

    # Attribute names resolve through the pool, so it must be complete
    # before any member is decoded.
    pool, data = parse_constant_pool(data)

    access_flags, data = read_u16(data)
    this_class, data = read_u16(data)
    super_class, data = read_u16(data)
    interfaces, data = read_table(data, read_u16)
    fields, data = read_table(data, lambda d: parse_field(d, pool))
    methods, data = read_table(data, lambda d: parse_method(d, pool))
    attributes, data = parse_attributes(data, pool)

    return ClassFile(
        magic=magic,
        minor_version=minor,
        major_version=major,
        constant_pool=pool,
        access_flags=ClassAccessFlags(access_flags),
        this_class=this_class,
        super_class=super_class,
        interfaces=interfaces,
        fields=fields,
        methods=methods,
        attributes=attributes,
    ), data


def read_class_file(path: str | Path) -> ClassFile:
    """Read and decode a single class file."""
    data = Path(path).read_bytes()
    classfile, _ = parse_classfile(data)
    return classfile
