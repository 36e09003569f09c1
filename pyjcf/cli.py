#!/usr/bin/env python3
"""
Command-line interface for pyjcf - Python Java class file decoder.
"""

import argparse
import sys
import zipfile
from pathlib import Path

JAR_SEPARATOR = "!/"


def read_class_bytes(location: str) -> bytes:
    """Read a class file from a path or from ``archive.jar!/pkg/Name.class``."""
    if JAR_SEPARATOR in location:
        archive, entry = location.split(JAR_SEPARATOR, 1)
        with zipfile.ZipFile(archive, "r") as zf:
            return zf.read(entry)
    return Path(location).read_bytes()


def _load(location: str):
    from .classfile import parse_classfile

    archive = location.split(JAR_SEPARATOR, 1)[0]
    if not Path(archive).exists():
        print(f"Error: File not found: {archive}", file=sys.stderr)
        sys.exit(1)

    try:
        data = read_class_bytes(location)
    except (OSError, KeyError, zipfile.BadZipFile) as e:
        print(f"Error reading {location}: {e}", file=sys.stderr)
        sys.exit(1)

    classfile, _ = parse_classfile(data)
    return classfile


def javap_command(args):
    """Print a javap-style summary of each class file."""
    from .errors import DecodeError
    from .printer import PrintError, print_classfile

    for location in args.files:
        try:
            classfile = _load(location)
            sys.stdout.write(print_classfile(classfile, code=args.code))
        except (DecodeError, PrintError) as e:
            print(f"Error decoding {location}: {e}", file=sys.stderr)
            sys.exit(1)


def disasm_command(args):
    """Print the instruction listing of every method in each class file."""
    from .errors import DecodeError
    from .printer import PrintError, print_code

    for location in args.files:
        try:
            classfile = _load(location)
            pool = classfile.constant_pool
            for method in classfile.methods:
                code = method.code
                if code is None:
                    continue
                print(f"{method.name(pool)}{method.descriptor(pool)}:")
                sys.stdout.write(print_code(code, pool))
        except (DecodeError, PrintError) as e:
            print(f"Error decoding {location}: {e}", file=sys.stderr)
            sys.exit(1)


def main(argv=None):
    """Main entry point for pyjcf CLI."""
    parser = argparse.ArgumentParser(
        prog="pyjcf",
        description="Python Java class file decoder - inspect compiled .class files",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # javap command
    javap_parser = subparsers.add_parser(
        "javap",
        help="Print class header, constant pool and member signatures",
    )
    javap_parser.add_argument(
        "files",
        nargs="+",
        help="Class files (path/to/Name.class or archive.jar!/pkg/Name.class)",
    )
    javap_parser.add_argument(
        "-c", "--code",
        action="store_true",
        help="Also print the bytecode of each method",
    )
    javap_parser.set_defaults(func=javap_command)

    # disasm command
    disasm_parser = subparsers.add_parser(
        "disasm",
        help="Print the bytecode of each method",
    )
    disasm_parser.add_argument(
        "files",
        nargs="+",
        help="Class files (path/to/Name.class or archive.jar!/pkg/Name.class)",
    )
    disasm_parser.set_defaults(func=disasm_command)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
