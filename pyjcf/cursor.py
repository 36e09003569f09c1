"""
Byte cursor primitives.

Every reader takes a buffer and returns ``(value, rest)`` where ``rest`` is
the buffer past the consumed bytes. Readers keep no state; callers thread
``rest`` into the next read in the order the class file format lays the
fields out. Pass a ``memoryview`` (see ``as_view``) to keep slicing
zero-copy.
"""

import struct
from typing import Callable, TypeVar

from .errors import EndOfInput

T = TypeVar("T")

Buffer = bytes | bytearray | memoryview

_U1 = struct.Struct(">B")
_U2 = struct.Struct(">H")
_U4 = struct.Struct(">I")
_U8 = struct.Struct(">Q")
_I1 = struct.Struct(">b")
_I2 = struct.Struct(">h")
_I4 = struct.Struct(">i")
_I8 = struct.Struct(">q")
_F4 = struct.Struct(">f")
_F8 = struct.Struct(">d")


def as_view(data: Buffer) -> memoryview:
    """Wrap a buffer in a read-only memoryview so slices share its memory."""
    if isinstance(data, memoryview):
        return data if data.readonly else data.toreadonly()
    return memoryview(data).toreadonly()


def unpack(fmt: struct.Struct, data: Buffer) -> tuple[tuple, Buffer]:
    """Unpack a fixed-size struct from the front of ``data``."""
    if len(data) < fmt.size:
        raise EndOfInput(fmt.size, len(data))
    return fmt.unpack_from(data), data[fmt.size:]


def _reader(fmt: struct.Struct) -> Callable[[Buffer], tuple]:
    def read(data: Buffer) -> tuple:
        values, rest = unpack(fmt, data)
        return values[0], rest
    return read


read_u8 = _reader(_U1)
read_u16 = _reader(_U2)
read_u32 = _reader(_U4)
read_u64 = _reader(_U8)
read_i8 = _reader(_I1)
read_i16 = _reader(_I2)
read_i32 = _reader(_I4)
read_i64 = _reader(_I8)
read_f32 = _reader(_F4)
read_f64 = _reader(_F8)


def read_bytes(data: Buffer, length: int) -> tuple[Buffer, Buffer]:
    """Split ``length`` bytes off the front of ``data`` verbatim."""
    if len(data) < length:
        raise EndOfInput(length, len(data))
    return data[:length], data[length:]


def take_until(data: Buffer, delimiter: bytes) -> tuple[Buffer, Buffer]:
    """Return the bytes before the first ``delimiter`` and the bytes after it."""
    position = bytes(data).find(delimiter)
    if position < 0:
        raise EndOfInput(len(data) + len(delimiter), len(data))
    return data[:position], data[position + len(delimiter):]


def read_sequence(data: Buffer, count: int,
                  read_item: Callable[[Buffer], tuple[T, Buffer]]) -> tuple[tuple[T, ...], Buffer]:
    """Read ``count`` consecutive items with ``read_item``."""
    items = []
    for _ in range(count):
        item, data = read_item(data)
        items.append(item)
    return tuple(items), data


def read_table(data: Buffer,
               read_item: Callable[[Buffer], tuple[T, Buffer]]) -> tuple[tuple[T, ...], Buffer]:
    """Read a u2 count followed by that many items."""
    count, data = read_u16(data)
    return read_sequence(data, count, read_item)
