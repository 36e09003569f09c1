import pytest

from classfile_bytes import hello_world_class

from pyjcf.classfile import parse_classfile


@pytest.fixture
def hello_world_bytes():
    return hello_world_class()


@pytest.fixture
def hello_world(hello_world_bytes):
    classfile, rest = parse_classfile(hello_world_bytes)
    assert len(rest) == 0
    return classfile
