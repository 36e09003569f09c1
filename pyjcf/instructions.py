"""
Bytecode instruction decoding (JVMS chapter 6).

``parse_instruction`` decodes one instruction from the front of a code
buffer. Operand layouts come from a table keyed by opcode; ``wide`` and the
two switch instructions are handled separately because their layout depends
on what follows them or on where they sit in the code array.
"""

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, Optional

from .cursor import Buffer, as_view, read_bytes, read_i32, read_u8, unpack
from .errors import InstructionParseError, MissingCodeOffset, UnknownInstruction


class Opcode(IntEnum):
    NOP = 0x00
    ACONST_NULL = 0x01
    ICONST_M1 = 0x02
    ICONST_0 = 0x03
    ICONST_1 = 0x04
    ICONST_2 = 0x05
    ICONST_3 = 0x06
    ICONST_4 = 0x07
    ICONST_5 = 0x08
    LCONST_0 = 0x09
    LCONST_1 = 0x0A
    FCONST_0 = 0x0B
    FCONST_1 = 0x0C
    FCONST_2 = 0x0D
    DCONST_0 = 0x0E
    DCONST_1 = 0x0F
    BIPUSH = 0x10
    SIPUSH = 0x11
    LDC = 0x12
    LDC_W = 0x13
    LDC2_W = 0x14
    ILOAD = 0x15
    LLOAD = 0x16
    FLOAD = 0x17
    DLOAD = 0x18
    ALOAD = 0x19
    ILOAD_0 = 0x1A
    ILOAD_1 = 0x1B
    ILOAD_2 = 0x1C
    ILOAD_3 = 0x1D
    LLOAD_0 = 0x1E
    LLOAD_1 = 0x1F
    LLOAD_2 = 0x20
    LLOAD_3 = 0x21
    FLOAD_0 = 0x22
    FLOAD_1 = 0x23
    FLOAD_2 = 0x24
    FLOAD_3 = 0x25
    DLOAD_0 = 0x26
    DLOAD_1 = 0x27
    DLOAD_2 = 0x28
    DLOAD_3 = 0x29
    ALOAD_0 = 0x2A
    ALOAD_1 = 0x2B
    ALOAD_2 = 0x2C
    ALOAD_3 = 0x2D
    IALOAD = 0x2E
    LALOAD = 0x2F
    FALOAD = 0x30
    DALOAD = 0x31
    AALOAD = 0x32
    BALOAD = 0x33
    CALOAD = 0x34
    SALOAD = 0x35
    ISTORE = 0x36
    LSTORE = 0x37
    FSTORE = 0x38
    DSTORE = 0x39
    ASTORE = 0x3A
    ISTORE_0 = 0x3B
    ISTORE_1 = 0x3C
    ISTORE_2 = 0x3D
    ISTORE_3 = 0x3E
    LSTORE_0 = 0x3F
    LSTORE_1 = 0x40
    LSTORE_2 = 0x41
    LSTORE_3 = 0x42
    FSTORE_0 = 0x43
    FSTORE_1 = 0x44
    FSTORE_2 = 0x45
    FSTORE_3 = 0x46
    DSTORE_0 = 0x47
    DSTORE_1 = 0x48
    DSTORE_2 = 0x49
    DSTORE_3 = 0x4A
    ASTORE_0 = 0x4B
    ASTORE_1 = 0x4C
    ASTORE_2 = 0x4D
    ASTORE_3 = 0x4E
    IASTORE = 0x4F
    LASTORE = 0x50
    FASTORE = 0x51
    DASTORE = 0x52
    AASTORE = 0x53
    BASTORE = 0x54
    CASTORE = 0x55
    SASTORE = 0x56
    POP = 0x57
    POP2 = 0x58
    DUP = 0x59
    DUP_X1 = 0x5A
    DUP_X2 = 0x5B
    DUP2 = 0x5C
    DUP2_X1 = 0x5D
    DUP2_X2 = 0x5E
    SWAP = 0x5F
    IADD = 0x60
    LADD = 0x61
    FADD = 0x62
    DADD = 0x63
    ISUB = 0x64
    LSUB = 0x65
    FSUB = 0x66
    DSUB = 0x67
    IMUL = 0x68
    LMUL = 0x69
    FMUL = 0x6A
    DMUL = 0x6B
    IDIV = 0x6C
    LDIV = 0x6D
    FDIV = 0x6E
    DDIV = 0x6F
    IREM = 0x70
    LREM = 0x71
    FREM = 0x72
    DREM = 0x73
    INEG = 0x74
    LNEG = 0x75
    FNEG = 0x76
    DNEG = 0x77
    ISHL = 0x78
    LSHL = 0x79
    ISHR = 0x7A
    LSHR = 0x7B
    IUSHR = 0x7C
    LUSHR = 0x7D
    IAND = 0x7E
    LAND = 0x7F
    IOR = 0x80
    LOR = 0x81
    IXOR = 0x82
    LXOR = 0x83
    IINC = 0x84
    I2L = 0x85
    I2F = 0x86
    I2D = 0x87
    L2I = 0x88
    L2F = 0x89
    L2D = 0x8A
    F2I = 0x8B
    F2L = 0x8C
    F2D = 0x8D
    D2I = 0x8E
    D2L = 0x8F
    D2F = 0x90
    I2B = 0x91
    I2C = 0x92
    I2S = 0x93
    LCMP = 0x94
    FCMPL = 0x95
    FCMPG = 0x96
    DCMPL = 0x97
    DCMPG = 0x98
    IFEQ = 0x99
    IFNE = 0x9A
    IFLT = 0x9B
    IFGE = 0x9C
    IFGT = 0x9D
    IFLE = 0x9E
    IF_ICMPEQ = 0x9F
    IF_ICMPNE = 0xA0
    IF_ICMPLT = 0xA1
    IF_ICMPGE = 0xA2
    IF_ICMPGT = 0xA3
    IF_ICMPLE = 0xA4
    IF_ACMPEQ = 0xA5
    IF_ACMPNE = 0xA6
    GOTO = 0xA7
    JSR = 0xA8
    RET = 0xA9
    TABLESWITCH = 0xAA
    LOOKUPSWITCH = 0xAB
    IRETURN = 0xAC
    LRETURN = 0xAD
    FRETURN = 0xAE
    DRETURN = 0xAF
    ARETURN = 0xB0
    RETURN = 0xB1
    GETSTATIC = 0xB2
    PUTSTATIC = 0xB3
    GETFIELD = 0xB4
    PUTFIELD = 0xB5
    INVOKEVIRTUAL = 0xB6
    INVOKESPECIAL = 0xB7
    INVOKESTATIC = 0xB8
    INVOKEINTERFACE = 0xB9
    INVOKEDYNAMIC = 0xBA
    NEW = 0xBB
    NEWARRAY = 0xBC
    ANEWARRAY = 0xBD
    ARRAYLENGTH = 0xBE
    ATHROW = 0xBF
    CHECKCAST = 0xC0
    INSTANCEOF = 0xC1
    MONITORENTER = 0xC2
    MONITOREXIT = 0xC3
    WIDE = 0xC4
    MULTIANEWARRAY = 0xC5
    IFNULL = 0xC6
    IFNONNULL = 0xC7
    GOTO_W = 0xC8
    JSR_W = 0xC9


# struct layouts of the operands that follow each opcode. Opcodes missing
# from this table take no operands.
_POOL_INDEX = struct.Struct(">H")
_LOCAL_INDEX = struct.Struct(">B")
_BRANCH = struct.Struct(">h")
_BRANCH_WIDE = struct.Struct(">i")
_WIDE_LOCAL_INDEX = struct.Struct(">H")

OPERAND_LAYOUTS: dict[Opcode, struct.Struct] = {
    Opcode.BIPUSH: struct.Struct(">b"),
    Opcode.SIPUSH: struct.Struct(">h"),
    Opcode.LDC: struct.Struct(">B"),
    Opcode.LDC_W: _POOL_INDEX,
    Opcode.LDC2_W: _POOL_INDEX,
    Opcode.ILOAD: _LOCAL_INDEX,
    Opcode.LLOAD: _LOCAL_INDEX,
    Opcode.FLOAD: _LOCAL_INDEX,
    Opcode.DLOAD: _LOCAL_INDEX,
    Opcode.ALOAD: _LOCAL_INDEX,
    Opcode.ISTORE: _LOCAL_INDEX,
    Opcode.LSTORE: _LOCAL_INDEX,
    Opcode.FSTORE: _LOCAL_INDEX,
    Opcode.DSTORE: _LOCAL_INDEX,
    Opcode.ASTORE: _LOCAL_INDEX,
    Opcode.RET: _LOCAL_INDEX,
    Opcode.IINC: struct.Struct(">Bb"),
    Opcode.IFEQ: _BRANCH,
    Opcode.IFNE: _BRANCH,
    Opcode.IFLT: _BRANCH,
    Opcode.IFGE: _BRANCH,
    Opcode.IFGT: _BRANCH,
    Opcode.IFLE: _BRANCH,
    Opcode.IF_ICMPEQ: _BRANCH,
    Opcode.IF_ICMPNE: _BRANCH,
    Opcode.IF_ICMPLT: _BRANCH,
    Opcode.IF_ICMPGE: _BRANCH,
    Opcode.IF_ICMPGT: _BRANCH,
    Opcode.IF_ICMPLE: _BRANCH,
    Opcode.IF_ACMPEQ: _BRANCH,
    Opcode.IF_ACMPNE: _BRANCH,
    Opcode.GOTO: _BRANCH,
    Opcode.JSR: _BRANCH,
    Opcode.IFNULL: _BRANCH,
    Opcode.IFNONNULL: _BRANCH,
    Opcode.GOTO_W: _BRANCH_WIDE,
    Opcode.JSR_W: _BRANCH_WIDE,
    Opcode.GETSTATIC: _POOL_INDEX,
    Opcode.PUTSTATIC: _POOL_INDEX,
    Opcode.GETFIELD: _POOL_INDEX,
    Opcode.PUTFIELD: _POOL_INDEX,
    Opcode.INVOKEVIRTUAL: _POOL_INDEX,
    Opcode.INVOKESPECIAL: _POOL_INDEX,
    Opcode.INVOKESTATIC: _POOL_INDEX,
    # index, count, and a byte that must be zero (not checked)
    Opcode.INVOKEINTERFACE: struct.Struct(">HBB"),
    # index and two bytes that must be zero (not checked)
    Opcode.INVOKEDYNAMIC: struct.Struct(">HBB"),
    Opcode.NEW: _POOL_INDEX,
    Opcode.NEWARRAY: struct.Struct(">B"),
    Opcode.ANEWARRAY: _POOL_INDEX,
    Opcode.CHECKCAST: _POOL_INDEX,
    Opcode.INSTANCEOF: _POOL_INDEX,
    Opcode.MULTIANEWARRAY: struct.Struct(">HB"),
}

# Operand layouts after a wide prefix
WIDE_OPERAND_LAYOUTS: dict[Opcode, struct.Struct] = {
    Opcode.ILOAD: _WIDE_LOCAL_INDEX,
    Opcode.FLOAD: _WIDE_LOCAL_INDEX,
    Opcode.ALOAD: _WIDE_LOCAL_INDEX,
    Opcode.LLOAD: _WIDE_LOCAL_INDEX,
    Opcode.DLOAD: _WIDE_LOCAL_INDEX,
    Opcode.ISTORE: _WIDE_LOCAL_INDEX,
    Opcode.FSTORE: _WIDE_LOCAL_INDEX,
    Opcode.ASTORE: _WIDE_LOCAL_INDEX,
    Opcode.LSTORE: _WIDE_LOCAL_INDEX,
    Opcode.DSTORE: _WIDE_LOCAL_INDEX,
    Opcode.RET: _WIDE_LOCAL_INDEX,
    Opcode.IINC: struct.Struct(">Hh"),
}

BRANCH_OPCODES = frozenset(
    op for op, layout in OPERAND_LAYOUTS.items() if layout in (_BRANCH, _BRANCH_WIDE)
)

SWITCH_OPCODES = frozenset((Opcode.TABLESWITCH, Opcode.LOOKUPSWITCH))

# Opcodes whose first operand is a constant pool index
CONSTANT_POOL_OPCODES = frozenset((
    Opcode.LDC, Opcode.LDC_W, Opcode.LDC2_W,
    Opcode.GETSTATIC, Opcode.PUTSTATIC, Opcode.GETFIELD, Opcode.PUTFIELD,
    Opcode.INVOKEVIRTUAL, Opcode.INVOKESPECIAL, Opcode.INVOKESTATIC,
    Opcode.INVOKEINTERFACE, Opcode.INVOKEDYNAMIC,
    Opcode.NEW, Opcode.ANEWARRAY, Opcode.CHECKCAST, Opcode.INSTANCEOF,
    Opcode.MULTIANEWARRAY,
))

# atype operand of newarray
NEWARRAY_TYPES = {
    4: "boolean",
    5: "char",
    6: "float",
    7: "double",
    8: "byte",
    9: "short",
    10: "int",
    11: "long",
}


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction.

    ``operands`` holds the operand values in encoding order. Branch offsets
    are relative to the instruction's own offset. For tableswitch the
    operands are ``(default, low, high, offsets)`` and for lookupswitch
    ``(default, pairs)`` with ``pairs`` a tuple of ``(match, offset)``.
    ``wide`` marks a load/store/ret/iinc that came with a wide prefix.
    """
    opcode: Opcode
    operands: tuple = ()
    wide: bool = False

    @property
    def mnemonic(self) -> str:
        return self.opcode.name.lower()

    @property
    def is_branch(self) -> bool:
        return self.opcode in BRANCH_OPCODES or self.opcode in SWITCH_OPCODES

    def branch_target(self, pc: int) -> int:
        """Absolute target of a goto, jsr or conditional branch at offset ``pc``."""
        if self.opcode not in BRANCH_OPCODES:
            raise ValueError(f"{self.mnemonic} is not a branch")
        return pc + self.operands[0]

    def branch_targets(self, pc: int) -> tuple[int, ...]:
        """Absolute code offsets this instruction may jump to, given its own offset."""
        if self.opcode in BRANCH_OPCODES:
            return (pc + self.operands[0],)
        if self.opcode == Opcode.TABLESWITCH:
            default, _low, _high, offsets = self.operands
            return (pc + default,) + tuple(pc + offset for offset in offsets)
        if self.opcode == Opcode.LOOKUPSWITCH:
            default, pairs = self.operands
            return (pc + default,) + tuple(pc + offset for _match, offset in pairs)
        return ()

    def __str__(self) -> str:
        parts = [f"wide {self.mnemonic}" if self.wide else self.mnemonic]
        parts.extend(str(operand) for operand in self.operands)
        return " ".join(parts)


def _switch_padding(pc: int) -> int:
    """Bytes of padding after a switch opcode at ``pc`` (operands are 4-byte aligned)."""
    return (4 - (pc + 1) % 4) % 4


def _skip_padding(data: Buffer, pc: int) -> Buffer:
    _padding, data = read_bytes(data, _switch_padding(pc))
    return data


def _parse_tableswitch(data: Buffer, pc: int) -> tuple[Instruction, Buffer]:
    data = _skip_padding(data, pc)
    default, data = read_i32(data)
    low, data = read_i32(data)
    high, data = read_i32(data)
    if high < low:
        raise InstructionParseError(f"tableswitch at {pc}: high {high} is below low {low}")
    offsets = []
    for _ in range(high - low + 1):
        offset, data = read_i32(data)
        offsets.append(offset)
    return Instruction(Opcode.TABLESWITCH, (default, low, high, tuple(offsets))), data


def _parse_lookupswitch(data: Buffer, pc: int) -> tuple[Instruction, Buffer]:
    data = _skip_padding(data, pc)
    default, data = read_i32(data)
    npairs, data = read_i32(data)
    if npairs < 0:
        raise InstructionParseError(f"lookupswitch at {pc}: negative pair count {npairs}")
    pairs = []
    for _ in range(npairs):
        match, data = read_i32(data)
        offset, data = read_i32(data)
        pairs.append((match, offset))
    return Instruction(Opcode.LOOKUPSWITCH, (default, tuple(pairs))), data


def _parse_wide(data: Buffer) -> tuple[Instruction, Buffer]:
    # Look at the widened opcode first, then read its wide operand layout
    inner, rest = read_u8(data)
    layout = WIDE_OPERAND_LAYOUTS.get(inner)
    if layout is None:
        raise UnknownInstruction(inner)
    operands, rest = unpack(layout, rest)
    return Instruction(Opcode(inner), operands, wide=True), rest


def parse_instruction(data: Buffer, pc: Optional[int] = None) -> tuple[Instruction, Buffer]:
    """Decode the instruction at the front of ``data``.

    ``pc`` is the instruction's offset from the start of the method's code
    array. Only tableswitch and lookupswitch need it; decoding them without
    it raises MissingCodeOffset.
    """
    byte, data = read_u8(data)
    try:
        opcode = Opcode(byte)
    except ValueError:
        raise UnknownInstruction(byte) from None

    if opcode == Opcode.WIDE:
        return _parse_wide(data)
    if opcode in SWITCH_OPCODES:
        if pc is None:
            raise MissingCodeOffset(opcode)
        if opcode == Opcode.TABLESWITCH:
            return _parse_tableswitch(data, pc)
        return _parse_lookupswitch(data, pc)

    layout = OPERAND_LAYOUTS.get(opcode)
    if layout is None:
        return Instruction(opcode), data
    operands, data = unpack(layout, data)
    return Instruction(opcode, operands), data


def iter_instructions(code: Buffer) -> Iterator[tuple[int, Instruction]]:
    """Decode a whole code array, yielding ``(pc, instruction)`` pairs.

    Decoding stops with the first error.
    """
    data = as_view(code)
    total = len(data)
    while data:
        pc = total - len(data)
        instruction, data = parse_instruction(data, pc)
        yield pc, instruction


def parse_code(code: Buffer) -> tuple[tuple[int, Instruction], ...]:
    return tuple(iter_instructions(code))
