"""
Errors raised while decoding class files and bytecode.

Every failure is a subclass of DecodeError. Lower layers raise and upper
layers let the exception travel unchanged, so the caller always sees the
original cause (e.g. an EndOfInput deep inside a nested Code attribute).
"""


class DecodeError(Exception):
    """Base class for all decoding errors."""
    pass


class EndOfInput(DecodeError):
    """The input ran out in the middle of a field."""

    def __init__(self, needed: int, available: int):
        super().__init__(f"Unexpected end of input: needed {needed} byte(s), {available} available")
        self.needed = needed
        self.available = available


class ClassParseError(DecodeError):
    """Malformed class file structure."""
    pass


class Utf8DecodeError(ClassParseError):
    """A Utf8 constant does not hold valid UTF-8."""

    def __init__(self, data: bytes):
        super().__init__(f"Invalid UTF-8 data: {data!r}")
        self.data = data


class InvalidConstantTag(ClassParseError):
    def __init__(self, tag: int):
        super().__init__(f"Unknown constant pool tag: {tag}")
        self.tag = tag


class InvalidConstantPoolIndex(ClassParseError):
    """An index points at a missing slot or at the wrong kind of constant."""

    def __init__(self, index: int, reason: str = ""):
        message = f"Invalid constant pool index: {index}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.index = index


class InvalidFieldDescriptor(ClassParseError):
    def __init__(self, descriptor):
        super().__init__(f"Invalid descriptor: {descriptor!r}")
        self.descriptor = descriptor


class AttributeLengthMismatch(ClassParseError):
    """A known attribute consumed a different number of bytes than it declared."""

    def __init__(self, name: str, declared: int, consumed: int):
        super().__init__(
            f"Attribute {name} declares {declared} byte(s) but its body is {consumed} byte(s)"
        )
        self.name = name
        self.declared = declared
        self.consumed = consumed


class InstructionParseError(DecodeError):
    """Malformed bytecode."""
    pass


class UnknownInstruction(InstructionParseError):
    def __init__(self, opcode: int):
        super().__init__(f"Unknown instruction: 0x{opcode:02x}")
        self.opcode = opcode


class MissingCodeOffset(InstructionParseError):
    """tableswitch/lookupswitch need the opcode's offset in the code array."""

    def __init__(self, opcode: int):
        super().__init__(
            f"Instruction 0x{opcode:02x} needs its offset within the code array to skip alignment padding"
        )
        self.opcode = opcode
