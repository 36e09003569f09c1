"""pyjcf - a decoder for compiled Java class files."""

from .classfile import ClassFile, FieldInfo, MethodInfo, parse_classfile, read_class_file
from .constants import ConstantPool
from .descriptors import parse_field_type, parse_method_descriptor
from .errors import *
from .instructions import Instruction, Opcode, iter_instructions, parse_instruction

__version__ = "0.1.0"
__all__ = [
    "ClassFile",
    "FieldInfo",
    "MethodInfo",
    "ConstantPool",
    "Instruction",
    "Opcode",
    "parse_classfile",
    "read_class_file",
    "parse_field_type",
    "parse_method_descriptor",
    "parse_instruction",
    "iter_instructions",
]
