"""
Access flag bitmasks for classes, fields and methods.

The three flag sets share bit values but not meanings (0x0020 is SUPER on a
class and SYNCHRONIZED on a method), so each gets its own IntFlag type.
Bits without a name are kept as they are.
"""

from enum import IntFlag


class ClassAccessFlags(IntFlag):
    PUBLIC = 0x0001
    FINAL = 0x0010
    SUPER = 0x0020
    INTERFACE = 0x0200
    ABSTRACT = 0x0400
    SYNTHETIC = 0x1000
    ANNOTATION = 0x2000
    ENUM = 0x4000
    MODULE = 0x8000


class FieldAccessFlags(IntFlag):
    PUBLIC = 0x0001
    PRIVATE = 0x0002
    PROTECTED = 0x0004
    STATIC = 0x0008
    FINAL = 0x0010
    VOLATILE = 0x0040
    TRANSIENT = 0x0080
    SYNTHETIC = 0x1000
    ENUM = 0x4000


class MethodAccessFlags(IntFlag):
    PUBLIC = 0x0001
    PRIVATE = 0x0002
    PROTECTED = 0x0004
    STATIC = 0x0008
    FINAL = 0x0010
    SYNCHRONIZED = 0x0020
    BRIDGE = 0x0040
    VARARGS = 0x0080
    NATIVE = 0x0100
    ABSTRACT = 0x0400
    STRICT = 0x0800
    SYNTHETIC = 0x1000


# Order in which javap lists flags, with the source keyword for each
# (None when the flag has no keyword).
CLASS_FLAG_KEYWORDS = (
    (ClassAccessFlags.PUBLIC, "public"),
    (ClassAccessFlags.FINAL, "final"),
    (ClassAccessFlags.SUPER, None),
    (ClassAccessFlags.INTERFACE, None),
    (ClassAccessFlags.ABSTRACT, "abstract"),
    (ClassAccessFlags.SYNTHETIC, None),
    (ClassAccessFlags.ANNOTATION, None),
    (ClassAccessFlags.ENUM, None),
    (ClassAccessFlags.MODULE, None),
)

FIELD_FLAG_KEYWORDS = (
    (FieldAccessFlags.PUBLIC, "public"),
    (FieldAccessFlags.PRIVATE, "private"),
    (FieldAccessFlags.PROTECTED, "protected"),
    (FieldAccessFlags.STATIC, "static"),
    (FieldAccessFlags.FINAL, "final"),
    (FieldAccessFlags.VOLATILE, "volatile"),
    (FieldAccessFlags.TRANSIENT, "transient"),
    (FieldAccessFlags.SYNTHETIC, None),
    (FieldAccessFlags.ENUM, "enum"),
)

METHOD_FLAG_KEYWORDS = (
    (MethodAccessFlags.PUBLIC, "public"),
    (MethodAccessFlags.PRIVATE, "private"),
    (MethodAccessFlags.PROTECTED, "protected"),
    (MethodAccessFlags.STATIC, "static"),
    (MethodAccessFlags.FINAL, "final"),
    (MethodAccessFlags.SYNCHRONIZED, "synchronized"),
    (MethodAccessFlags.BRIDGE, None),
    (MethodAccessFlags.VARARGS, None),
    (MethodAccessFlags.NATIVE, "native"),
    (MethodAccessFlags.ABSTRACT, "abstract"),
    (MethodAccessFlags.STRICT, "strictfp"),
    (MethodAccessFlags.SYNTHETIC, None),
)
