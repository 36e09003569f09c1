"""Tests for bytecode instruction decoding."""

import struct

import pytest

from pyjcf.errors import EndOfInput, InstructionParseError, MissingCodeOffset, UnknownInstruction
from pyjcf.instructions import (
    Instruction, Opcode, parse_code, iter_instructions, parse_instruction,
)


def i4(*values):
    return struct.pack(f">{len(values)}i", *values)


class TestSimpleInstructions:
    def test_nop(self):
        instruction, rest = parse_instruction(b"\x00")
        assert instruction == Instruction(Opcode.NOP)
        assert len(rest) == 0

    def test_leaves_following_bytes(self):
        instruction, rest = parse_instruction(b"\xb1\x00\x01")
        assert instruction.opcode == Opcode.RETURN
        assert bytes(rest) == b"\x00\x01"

    def test_anewarray(self):
        instruction, rest = parse_instruction(b"\xbd\x01\x02")
        assert instruction == Instruction(Opcode.ANEWARRAY, (258,))
        assert len(rest) == 0

    def test_signed_operands(self):
        assert parse_instruction(b"\x10\xff")[0].operands == (-1,)
        assert parse_instruction(b"\x11\x80\x00")[0].operands == (-32768,)

    def test_iinc(self):
        instruction, _ = parse_instruction(b"\x84\x01\xff")
        assert instruction.operands == (1, -1)

    def test_invokeinterface_keeps_trailing_bytes(self):
        instruction, _ = parse_instruction(b"\xb9\x00\x05\x02\x00")
        assert instruction.operands == (5, 2, 0)

    def test_invokedynamic(self):
        instruction, rest = parse_instruction(b"\xba\x00\x07\x00\x00")
        assert instruction.operands == (7, 0, 0)
        assert len(rest) == 0

    def test_multianewarray(self):
        instruction, _ = parse_instruction(b"\xc5\x00\x03\x02")
        assert instruction.operands == (3, 2)

    def test_mnemonic(self):
        assert parse_instruction(b"\x2a")[0].mnemonic == "aload_0"

    @pytest.mark.parametrize("opcode", [0xCA, 0xCB, 0xFE, 0xFF])
    def test_undefined_opcode(self, opcode):
        with pytest.raises(UnknownInstruction) as excinfo:
            parse_instruction(bytes([opcode, 0, 0, 0]))
        assert excinfo.value.opcode == opcode

    def test_empty(self):
        with pytest.raises(EndOfInput):
            parse_instruction(b"")

    @pytest.mark.parametrize("data", [b"\xbd\x01", b"\x11\x00", b"\xc8\x00\x00\x00", b"\xb9\x00\x01\x01"])
    def test_truncated_operands(self, data):
        with pytest.raises(EndOfInput):
            parse_instruction(data)


class TestWide:
    def test_wide_iload(self):
        instruction, rest = parse_instruction(b"\xc4\x15\x01\x02")
        assert instruction == Instruction(Opcode.ILOAD, (258,), wide=True)
        assert len(rest) == 0

    def test_wide_iinc(self):
        instruction, _ = parse_instruction(b"\xc4\x84\x01\x00\xff\xfe")
        assert instruction == Instruction(Opcode.IINC, (256, -2), wide=True)

    def test_wide_ret(self):
        instruction, _ = parse_instruction(b"\xc4\xa9\x00\x10")
        assert instruction == Instruction(Opcode.RET, (16,), wide=True)

    @pytest.mark.parametrize("inner", [0x00, 0x60, 0xb1, 0xc4, 0xff])
    def test_not_wideable(self, inner):
        with pytest.raises(UnknownInstruction) as excinfo:
            parse_instruction(bytes([0xC4, inner, 0, 0]))
        assert excinfo.value.opcode == inner

    def test_truncated(self):
        with pytest.raises(EndOfInput):
            parse_instruction(b"\xc4\x15\x01")


class TestBranches:
    def test_goto_target(self):
        instruction, _ = parse_instruction(b"\xa7\xff\xfd")
        assert instruction.operands == (-3,)
        assert instruction.branch_target(10) == 7

    def test_goto_w(self):
        instruction, _ = parse_instruction(b"\xc8\x00\x01\x00\x00")
        assert instruction.branch_targets(0) == (65536,)

    def test_not_a_branch(self):
        instruction, _ = parse_instruction(b"\x00")
        assert not instruction.is_branch
        assert instruction.branch_targets(0) == ()
        with pytest.raises(ValueError):
            instruction.branch_target(0)


class TestSwitches:
    def test_tableswitch_needs_offset(self):
        with pytest.raises(MissingCodeOffset):
            parse_instruction(b"\xaa\x00\x00\x00" + i4(20, 0, 0, 10))

    def test_lookupswitch_needs_offset(self):
        with pytest.raises(MissingCodeOffset):
            parse_instruction(b"\xab\x00\x00\x00" + i4(20, 0))

    def test_tableswitch(self):
        # pc 0: three bytes of padding bring the operands to offset 4
        data = b"\xaa\x00\x00\x00" + i4(30, 1, 3, 10, 20, 25) + b"\xb1"
        instruction, rest = parse_instruction(data, pc=0)
        assert instruction.opcode == Opcode.TABLESWITCH
        assert instruction.operands == (30, 1, 3, (10, 20, 25))
        assert instruction.branch_targets(0) == (30, 10, 20, 25)
        assert bytes(rest) == b"\xb1"

    def test_lookupswitch_padding_depends_on_pc(self):
        # pc 2: one byte of padding
        data = b"\xab\x00" + i4(16, 2, -1, 8, 7, 12)
        instruction, rest = parse_instruction(data, pc=2)
        assert instruction.operands == (16, ((-1, 8), (7, 12)))
        assert instruction.branch_targets(2) == (18, 10, 14)
        assert len(rest) == 0

    def test_no_padding_at_aligned_offset(self):
        data = b"\xab" + i4(4, 0)
        instruction, _ = parse_instruction(data, pc=3)
        assert instruction.operands == (4, ())

    def test_tableswitch_bad_range(self):
        with pytest.raises(InstructionParseError):
            parse_instruction(b"\xaa\x00\x00\x00" + i4(0, 5, 1), pc=0)

    def test_lookupswitch_negative_count(self):
        with pytest.raises(InstructionParseError):
            parse_instruction(b"\xab\x00\x00\x00" + i4(0, -1), pc=0)

    def test_truncated_table(self):
        with pytest.raises(EndOfInput):
            parse_instruction(b"\xaa\x00\x00\x00" + i4(0, 0, 2, 1), pc=0)


class TestCodeArrays:
    def test_iter_instructions(self):
        code = bytes.fromhex("2a b7 00 01 2a 12 07 b5 00 09 b1")
        listing = [(pc, i.mnemonic) for pc, i in iter_instructions(code)]
        assert listing == [
            (0, "aload_0"),
            (1, "invokespecial"),
            (4, "aload_0"),
            (5, "ldc"),
            (7, "putfield"),
            (10, "return"),
        ]

    def test_switch_inside_code(self):
        code = b"\x1a\xab\x00\x00" + i4(12, 0) + b"\xb1"
        decoded = parse_code(code)
        assert [pc for pc, _ in decoded] == [0, 1, 12]
        assert decoded[1][1].branch_targets(1) == (13,)

    def test_error_stops_decoding(self):
        with pytest.raises(UnknownInstruction):
            parse_code(b"\x00\xcb")
