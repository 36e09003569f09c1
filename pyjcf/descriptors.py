"""
Field and method descriptor parsing using Lark.

Descriptors live in Utf8 constants, e.g. ``[Ljava/lang/String;`` or
``(IJ)V``. They are parsed separately from the class file byte stream.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from lark import Lark, Transformer
from lark.exceptions import UnexpectedInput

from .constants import Utf8Info
from .errors import InvalidFieldDescriptor, Utf8DecodeError


GRAMMAR_FILE = Path(__file__).parent / "descriptor.lark"


class FieldType(ABC):
    """Base class for descriptor types."""

    @abstractmethod
    def descriptor(self) -> str:
        """Return the JVM type descriptor."""
        pass

    @abstractmethod
    def java_name(self) -> str:
        """Return the type as written in Java source (java.lang.String[])."""
        pass


@dataclass(frozen=True)
class PrimitiveType(FieldType):
    name: str
    _descriptor: str

    def descriptor(self) -> str:
        return self._descriptor

    def java_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class ObjectType(FieldType):
    class_name: str  # Internal form: java/lang/String

    def descriptor(self) -> str:
        return f"L{self.class_name};"

    def java_name(self) -> str:
        return self.class_name.replace("/", ".")


@dataclass(frozen=True)
class ArrayType(FieldType):
    component: FieldType

    def descriptor(self) -> str:
        return f"[{self.component.descriptor()}"

    def java_name(self) -> str:
        return f"{self.component.java_name()}[]"

    @property
    def dimensions(self) -> int:
        if isinstance(self.component, ArrayType):
            return self.component.dimensions + 1
        return 1


BYTE = PrimitiveType("byte", "B")
CHAR = PrimitiveType("char", "C")
DOUBLE = PrimitiveType("double", "D")
FLOAT = PrimitiveType("float", "F")
INT = PrimitiveType("int", "I")
LONG = PrimitiveType("long", "J")
SHORT = PrimitiveType("short", "S")
BOOLEAN = PrimitiveType("boolean", "Z")
# Only valid as a method return type
VOID = PrimitiveType("void", "V")

BASE_TYPES = {t.descriptor(): t for t in (BYTE, CHAR, DOUBLE, FLOAT, INT, LONG, SHORT, BOOLEAN)}


@dataclass(frozen=True)
class MethodDescriptor:
    parameters: tuple[FieldType, ...]
    return_type: FieldType

    def descriptor(self) -> str:
        params = "".join(p.descriptor() for p in self.parameters)
        return f"({params}){self.return_type.descriptor()}"


class DescriptorTransformer(Transformer):
    """Transforms the descriptor parse tree into FieldType values."""

    def base_type(self, items):
        return BASE_TYPES[str(items[0])]

    def object_type(self, items):
        # Token is L<name>;
        return ObjectType(str(items[0])[1:-1])

    def array_type(self, items):
        return ArrayType(items[0])

    def void_type(self, items):
        return VOID

    def field_descriptor(self, items):
        return items[0]

    def method_descriptor(self, items):
        *parameters, return_type = items
        return MethodDescriptor(parameters=tuple(parameters), return_type=return_type)


class DescriptorParser:
    """Parses field and method descriptors."""

    def __init__(self):
        with open(GRAMMAR_FILE, "r") as f:
            grammar = f.read()

        self._parser = Lark(
            grammar,
            parser="lalr",
            start=["field_descriptor", "method_descriptor"],
        )
        self._transformer = DescriptorTransformer()

    def _parse(self, descriptor, start: str):
        text = _descriptor_text(descriptor)
        try:
            tree = self._parser.parse(text, start=start)
        except UnexpectedInput as exc:
            raise InvalidFieldDescriptor(text) from exc
        return self._transformer.transform(tree)

    def parse_field_type(self, descriptor) -> FieldType:
        return self._parse(descriptor, "field_descriptor")

    def parse_method_descriptor(self, descriptor) -> MethodDescriptor:
        return self._parse(descriptor, "method_descriptor")


def _descriptor_text(descriptor) -> str:
    if isinstance(descriptor, Utf8Info):
        return descriptor.text()
    if isinstance(descriptor, str):
        return descriptor
    try:
        return bytes(descriptor).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise Utf8DecodeError(bytes(descriptor)) from exc


_default_parser = None


def _get_parser() -> DescriptorParser:
    global _default_parser
    if _default_parser is None:
        _default_parser = DescriptorParser()
    return _default_parser


def parse_field_type(descriptor) -> FieldType:
    """Parse a field descriptor such as ``[[I`` or ``Ljava/lang/String;``.

    Unlike the binary readers this returns the value alone, not ``(value, rest)``.
    The whole descriptor must be consumed; trailing text raises InvalidFieldDescriptor.
    """
    return _get_parser().parse_field_type(descriptor)


def parse_method_descriptor(descriptor) -> MethodDescriptor:
    """Parse a method descriptor such as ``(ILjava/lang/String;)V``.

    Returns the MethodDescriptor alone and rejects trailing text like
    parse_field_type does.
    """
    return _get_parser().parse_method_descriptor(descriptor)
