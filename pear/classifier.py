from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Iterable

# File extensions a compiler driver treats as source input.
SOURCE_EXTENSIONS = r"(?:c|i|ii|cc|cp|cxx|cpp|c\+\+|C|f|F|r|s|S)"

ARG_RE = re.compile(
    rf"""
    -o(?P<output>.+)                          # -ofile
    |
    (?P<source>[^-].*\.{SOURCE_EXTENSIONS})   # foo.c, dir/bar.cpp
    """,
    re.VERBOSE,
)


@dataclass
class InputOutput:
    input: str = ""
    output: str = ""


def classify(args: Iterable[str]) -> InputOutput:
    """Find the source file and output file of a compiler command line.

    Only single-source invocations get an input. With -c and no explicit
    output the object file is named after the source ("foo.c" -> "foo.c.o").
    """
    sources: list[str] = []
    output = ""
    compile_only = False
    want_output = False

    for arg in args:
        if want_output:
            output = arg
            want_output = False
            continue
        if arg == "-o":
            want_output = True
            continue
        if arg == "-c":
            compile_only = True
            continue
        m = ARG_RE.fullmatch(arg)
        if not m:
            continue
        if m.group("output"):
            output = m.group("output")
        if m.group("source"):
            sources.append(m.group("source"))

    res = InputOutput(output=output)
    if len(sources) == 1:
        res.input = sources[0]
    if not res.output and compile_only and res.input:
        res.output = res.input + ".o"
    return res
