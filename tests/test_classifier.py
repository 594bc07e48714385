"""Tests for input/output detection on compiler command lines."""
import pytest

from pear.classifier import InputOutput, classify


def test_compile_only_derives_object_name():
    assert classify(["-c", "foo.cpp"]) == InputOutput(input="foo.cpp", output="foo.cpp.o")


def test_explicit_output():
    assert classify(["-c", "foo.cpp", "-o", "bar.o"]) == InputOutput(input="foo.cpp", output="bar.o")


def test_compound_output():
    assert classify(["-c", "-obar.o", "src/foo.c"]) == InputOutput(input="src/foo.c", output="bar.o")


def test_two_sources_are_ambiguous():
    assert classify(["foo.cpp", "bar.cpp"]) == InputOutput()


def test_two_sources_with_output():
    assert classify(["-c", "a.c", "b.c", "-o", "lib.o"]) == InputOutput(output="lib.o")


def test_link_without_compile_flag():
    assert classify(["main.c", "-lm"]) == InputOutput(input="main.c")


def test_output_value_is_not_a_source():
    assert classify(["-o", "gen.c", "x.s"]) == InputOutput(input="x.s", output="gen.c")


@pytest.mark.parametrize("name", ["a.c", "a.i", "a.ii", "a.cc", "a.cp", "a.cxx", "a.cpp",
                                  "a.c++", "a.C", "a.f", "a.F", "a.r", "a.s", "a.S"])
def test_source_extensions(name):
    assert classify([name]).input == name


@pytest.mark.parametrize("arg", ["a.h", "a.o", "-DX=a.c", "liba.a", "a.cpp.o"])
def test_not_sources(arg):
    assert classify([arg]).input == ""
