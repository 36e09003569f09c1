"""
javap-style text rendering of decoded class files.

``print_classfile`` produces the summary view (header, constant pool,
member signatures); ``print_code`` renders one Code attribute as an
instruction listing. Anything that fails to resolve while printing is
reported as PrintError, chained to the decoding error behind it.
"""

import math
import struct
from typing import Optional

from .access_flags import (
    CLASS_FLAG_KEYWORDS, FIELD_FLAG_KEYWORDS, METHOD_FLAG_KEYWORDS,
    ClassAccessFlags, FieldAccessFlags, MethodAccessFlags,
)
from .attributes import CodeAttribute
from .classfile import ClassFile, FieldInfo, MethodInfo
from .constants import (
    ClassInfo, Constant, ConstantPool, DoubleInfo, DynamicInfo, FieldrefInfo, FloatInfo,
    IntegerInfo, InterfaceMethodrefInfo, InvokeDynamicInfo, LongInfo, MethodHandleInfo,
    MemberrefInfo, MethodrefInfo, MethodTypeInfo, ModuleInfo, NameAndTypeInfo, PackageInfo,
    ReferenceKind, StringInfo, Utf8Info,
)
from .errors import DecodeError
from .instructions import (
    BRANCH_OPCODES, CONSTANT_POOL_OPCODES, NEWARRAY_TYPES, Instruction, Opcode,
    iter_instructions,
)


class PrintError(Exception):
    """A class file could not be rendered."""
    pass


_FLAG_TABLES = {
    ClassAccessFlags: CLASS_FLAG_KEYWORDS,
    FieldAccessFlags: FIELD_FLAG_KEYWORDS,
    MethodAccessFlags: METHOD_FLAG_KEYWORDS,
}

_CONSTANT_KINDS = {
    Utf8Info: "Utf8",
    IntegerInfo: "Integer",
    FloatInfo: "Float",
    LongInfo: "Long",
    DoubleInfo: "Double",
    ClassInfo: "Class",
    StringInfo: "String",
    FieldrefInfo: "Fieldref",
    MethodrefInfo: "Methodref",
    InterfaceMethodrefInfo: "InterfaceMethodref",
    NameAndTypeInfo: "NameAndType",
    MethodHandleInfo: "MethodHandle",
    MethodTypeInfo: "MethodType",
    DynamicInfo: "Dynamic",
    InvokeDynamicInfo: "InvokeDynamic",
    ModuleInfo: "Module",
    PackageInfo: "Package",
}

# Prefix javap puts in front of constants referenced from bytecode
_REFERENCE_WORDS = {
    ClassInfo: "class",
    StringInfo: "String",
    IntegerInfo: "int",
    FloatInfo: "float",
    LongInfo: "long",
    DoubleInfo: "double",
    FieldrefInfo: "Field",
    MethodrefInfo: "Method",
    InterfaceMethodrefInfo: "InterfaceMethod",
    MethodHandleInfo: "MethodHandle",
    MethodTypeInfo: "MethodType",
    DynamicInfo: "Dynamic",
    InvokeDynamicInfo: "InvokeDynamic",
}

_F32 = struct.Struct(">f")


def _flag_table(flags):
    for flags_type, table in _FLAG_TABLES.items():
        if isinstance(flags, flags_type):
            return table
    raise TypeError(f"Not an access flag set: {flags!r}")


def format_access_flags(flags) -> str:
    """Render flags the way javap's ``flags:`` line does."""
    names = [f"ACC_{flag.name}" for flag, _keyword in _flag_table(flags) if flag in flags]
    return f"flags: (0x{int(flags):04X}) {', '.join(names)}".rstrip()


def access_keywords(flags) -> str:
    """Source modifiers for ``flags``, e.g. ``public static final``."""
    return " ".join(
        keyword for flag, keyword in _flag_table(flags)
        if keyword is not None and flag in flags
    )


def _class_kind(flags: ClassAccessFlags) -> str:
    if ClassAccessFlags.INTERFACE in flags:
        return "interface"
    if ClassAccessFlags.ENUM in flags:
        return "enum"
    if ClassAccessFlags.MODULE in flags:
        return "module"
    return "class"


def _class_header(classfile: ClassFile) -> str:
    flags = classfile.access_flags
    keywords = access_keywords(flags)
    if ClassAccessFlags.INTERFACE in flags:
        # interfaces are implicitly abstract
        keywords = " ".join(word for word in keywords.split() if word != "abstract")
    parts = [keywords, _class_kind(flags), classfile.name]
    return " ".join(part for part in parts if part)


def _java_number_text(text: str) -> str:
    """Rewrite a Python float literal in the form Java's toString prints it.

    Magnitudes in [1e-3, 1e7) are written as plain decimals, everything else
    as ``d.dddE<exponent>``. Both forms keep at least one fractional digit.
    """
    sign = ""
    if text.startswith("-"):
        sign, text = "-", text[1:]
    mantissa, _, exponent = text.partition("e")
    whole, _, fraction = mantissa.partition(".")
    all_digits = whole + fraction
    significant = all_digits.lstrip("0")
    exponent = int(exponent or 0) + len(whole) - 1 - (len(all_digits) - len(significant))
    digits = significant.rstrip("0") or "0"
    if -3 <= exponent < 7:
        if exponent >= 0:
            whole = digits[:exponent + 1].ljust(exponent + 1, "0")
            fraction = digits[exponent + 1:] or "0"
        else:
            whole = "0"
            fraction = "0" * (-exponent - 1) + digits
        return f"{sign}{whole}.{fraction}"
    return f"{sign}{digits[0]}.{digits[1:] or '0'}E{exponent}"


def _special_text(value: float) -> Optional[str]:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "-0.0" if math.copysign(1.0, value) < 0 else "0.0"
    return None


def _float_text(value: float) -> str:
    """Shortest text, at least two digits, that reads back as the same 32-bit float."""
    special = _special_text(value)
    if special is not None:
        return special
    packed = _F32.pack(value)
    for precision in range(1, 9):
        text = f"{value:.{precision}e}"
        try:
            if _F32.pack(float(text)) == packed:
                break
        except OverflowError:
            # rounded past the largest finite float
            continue
    return _java_number_text(text)


def _double_text(value: float) -> str:
    special = _special_text(value)
    if special is not None:
        return special
    text = f"{value:.1e}"
    if float(text) != value:
        text = repr(value)
    return _java_number_text(text)


def _reference_kind_name(kind: int) -> str:
    """javap's name for a method handle kind, e.g. REF_invokeStatic."""
    try:
        words = ReferenceKind(kind).name.lower().split("_")
    except ValueError:
        return str(kind)
    return "REF_" + words[0] + "".join(word.capitalize() for word in words[1:])


def _member_text(pool: ConstantPool, entry) -> str:
    name, descriptor = pool.name_and_type(entry.name_and_type_index)
    return f"{pool.class_name(entry.class_index)}.{name}:{descriptor}"


def _constant_value(entry: Constant) -> str:
    if isinstance(entry, Utf8Info):
        return entry.text()
    if isinstance(entry, IntegerInfo):
        return str(entry.value)
    if isinstance(entry, FloatInfo):
        return _float_text(entry.value) + "f"
    if isinstance(entry, LongInfo):
        return f"{entry.value}l"
    if isinstance(entry, DoubleInfo):
        return _double_text(entry.value) + "d"
    if isinstance(entry, ClassInfo):
        return f"#{entry.name_index}"
    if isinstance(entry, StringInfo):
        return f"#{entry.string_index}"
    if isinstance(entry, MemberrefInfo):
        return f"#{entry.class_index}.#{entry.name_and_type_index}"
    if isinstance(entry, NameAndTypeInfo):
        return f"#{entry.name_index}:#{entry.descriptor_index}"
    if isinstance(entry, MethodHandleInfo):
        return f"{entry.reference_kind}:#{entry.reference_index}"
    if isinstance(entry, MethodTypeInfo):
        return f"#{entry.descriptor_index}"
    if isinstance(entry, (DynamicInfo, InvokeDynamicInfo)):
        return f"#{entry.bootstrap_method_attr_index}:#{entry.name_and_type_index}"
    if isinstance(entry, (ModuleInfo, PackageInfo)):
        return f"#{entry.name_index}"
    raise PrintError(f"Cannot print constant {entry!r}")


def _constant_comment(entry: Constant, pool: ConstantPool) -> str:
    """Resolved text of what ``entry`` refers to; empty for literal constants."""
    if isinstance(entry, ClassInfo):
        return pool.text(entry.name_index)
    if isinstance(entry, StringInfo):
        return pool.text(entry.string_index)
    if isinstance(entry, MemberrefInfo):
        return _member_text(pool, entry)
    if isinstance(entry, NameAndTypeInfo):
        return f"{pool.text(entry.name_index)}:{pool.text(entry.descriptor_index)}"
    if isinstance(entry, MethodHandleInfo):
        target = pool.get(entry.reference_index, MemberrefInfo)
        return f"{_reference_kind_name(entry.reference_kind)} {_member_text(pool, target)}"
    if isinstance(entry, MethodTypeInfo):
        return pool.text(entry.descriptor_index)
    if isinstance(entry, (DynamicInfo, InvokeDynamicInfo)):
        name, descriptor = pool.name_and_type(entry.name_and_type_index)
        return f"#{entry.bootstrap_method_attr_index}:{name}:{descriptor}"
    if isinstance(entry, (ModuleInfo, PackageInfo)):
        return pool.text(entry.name_index)
    return ""


def format_constant(entry: Constant, pool: ConstantPool) -> str:
    """One constant pool line without the ``#n = `` prefix."""
    kind = _CONSTANT_KINDS[type(entry)]
    value = _constant_value(entry)
    comment = _constant_comment(entry, pool)
    if comment:
        comment = f"// {comment}"
    return f"{kind:<19}{value:<15}{comment}".rstrip()


def _field_line(field_info: FieldInfo, pool: ConstantPool) -> str:
    parts = [
        access_keywords(field_info.access_flags),
        field_info.field_type(pool).java_name(),
        field_info.name(pool),
    ]
    return "  " + " ".join(part for part in parts if part) + ";"


def _method_line(method: MethodInfo, pool: ConstantPool) -> str:
    descriptor = method.method_descriptor(pool)
    params = ", ".join(p.java_name() for p in descriptor.parameters)
    parts = [
        access_keywords(method.access_flags),
        descriptor.return_type.java_name(),
        f"{method.name(pool)}({params})",
    ]
    return "  " + " ".join(part for part in parts if part) + ";"


def _reference_comment(pool: ConstantPool, index: int) -> str:
    entry = pool[index]
    word = _REFERENCE_WORDS.get(type(entry))
    if isinstance(entry, (IntegerInfo, FloatInfo, LongInfo, DoubleInfo)):
        text = _constant_value(entry)
    else:
        text = _constant_comment(entry, pool)
    return f"{word} {text}" if word else text


def _instruction_text(instruction: Instruction, pc: int,
                      pool: Optional[ConstantPool]) -> tuple[str, str]:
    """Operand text and trailing comment for one instruction."""
    opcode = instruction.opcode
    operands = instruction.operands

    if opcode in CONSTANT_POOL_OPCODES:
        index = operands[0]
        text = f"#{index}"
        if opcode in (Opcode.INVOKEINTERFACE, Opcode.MULTIANEWARRAY):
            text += f",  {operands[1]}"
        comment = _reference_comment(pool, index) if pool is not None else ""
        return text, comment
    if opcode in BRANCH_OPCODES:
        return str(instruction.branch_target(pc)), ""
    if opcode == Opcode.NEWARRAY:
        return NEWARRAY_TYPES.get(operands[0], str(operands[0])), ""
    if opcode == Opcode.TABLESWITCH:
        default, low, _high, offsets = operands
        cases = [f"{low + i}: {pc + offset}" for i, offset in enumerate(offsets)]
        cases.append(f"default: {pc + default}")
        return "{ " + ", ".join(cases) + " }", ""
    if opcode == Opcode.LOOKUPSWITCH:
        default, pairs = operands
        cases = [f"{match}: {pc + offset}" for match, offset in pairs]
        cases.append(f"default: {pc + default}")
        return "{ " + ", ".join(cases) + " }", ""
    if opcode == Opcode.IINC:
        return f"{operands[0]}, {operands[1]}", ""
    return " ".join(str(operand) for operand in operands), ""


def format_instruction(instruction: Instruction, pc: int,
                       pool: Optional[ConstantPool] = None) -> str:
    """Render one instruction as ``pc: mnemonic operands // comment``."""
    operands, comment = _instruction_text(instruction, pc, pool)
    text = f"{instruction.mnemonic:<13} {operands}".rstrip() if operands else instruction.mnemonic
    if comment:
        text = f"{text:<32} // {comment}"
    return f"{pc:>5}: {text}"


def print_code(code_attribute: CodeAttribute, pool: Optional[ConstantPool] = None) -> str:
    """Instruction listing of a Code attribute, one line per instruction."""
    try:
        lines = [
            format_instruction(instruction, pc, pool)
            for pc, instruction in iter_instructions(code_attribute.code)
        ]
    except DecodeError as exc:
        raise PrintError(f"Cannot print code: {exc}") from exc
    return "".join(line + "\n" for line in lines)


def _indent(text: str, prefix: str) -> str:
    return "".join(prefix + line + "\n" for line in text.splitlines())


def print_classfile(classfile: ClassFile, code: bool = False) -> str:
    """Render a javap-like summary of ``classfile``.

    With ``code=True`` each method with a Code attribute is followed by its
    instruction listing.
    """
    try:
        return _print_classfile(classfile, code)
    except DecodeError as exc:
        raise PrintError(f"Cannot print class file: {exc}") from exc


def _print_classfile(classfile: ClassFile, code: bool) -> str:
    pool = classfile.constant_pool
    lines = [
        _class_header(classfile),
        f"  minor version: {classfile.minor_version}",
        f"  major version: {classfile.major_version}",
        f"  interfaces: {len(classfile.interfaces)}, fields: {len(classfile.fields)}, "
        f"methods: {len(classfile.methods)}, attributes: {len(classfile.attributes)}",
        "Constant pool:",
    ]
    for index, entry in pool.items():
        lines.append(f"  #{index} = {format_constant(entry, pool)}")

    lines.append("{")
    for field_info in classfile.fields:
        lines.append(_field_line(field_info, pool))
    lines.append("")

    output = "".join(line + "\n" for line in lines)
    for method in classfile.methods:
        output += _method_line(method, pool) + "\n"
        if code and method.code is not None:
            output += "    Code:\n"
            output += _indent(print_code(method.code, pool), "  ")
    output += "}\n"
    return output
