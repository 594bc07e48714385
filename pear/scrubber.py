"""Rewrite compiler command lines for the rtags indexer.

Relative paths are made absolute and arguments that rtags cannot handle are
removed. Some scrubbing also avoids duplicate logs when the compiler is
driven by ccache.

CMake issues:

* CMake may pass compiler directives using rsp files. The rsp files are
  removed after compilation, so their content is spliced into the log.

rtags issues:

* Fails on relative file paths.
* Fails on "--sysroot", replaced with "-isysroot".
* Sometimes fails on dependency generation flags (-M...).
* Complains about unknown compile options, some of them are filtered out.
* Does not like escaped double quotes, the escape character is removed.

ccache issues:

* Invokes the compiler twice, once with "-E" to get the preprocessor output.
  Nothing is logged when "-E" is present.
* Replaces the output object file with a temporary file, which gives
  duplicate logs for the same input. "-o" and its file name are removed.
"""
from __future__ import annotations
import enum
import re
from dataclasses import dataclass
from typing import Callable, List, Tuple, Union

from .classifier import SOURCE_EXTENSIONS
from .utils import make_absolute_path, setup_logger

log = setup_logger(__name__)

# Arguments that are dropped without further inspection (prefix match).
FILTER_RE = re.compile(r"-(?:fvar-tracking-assignments|fdebug-prefix-map|falign-functions)")

SCRUB_RE = re.compile(
    rf"""
    (?P<flag>--sysroot|-isystem|-o|-I|-M|-MD|-MG|-MM|-MMD|-MP|-MF|-MQ|-MT)
    |
    (?P<cflag>--sysroot=|-o|-I|-MF|-MQ|-MT)(?P<value>.+)
    |
    (?P<source>[^-].*\.{SOURCE_EXTENSIONS})
    |
    @(?P<rsp>.+)
    """,
    re.VERBOSE,
)

INCLUDE_FLAGS = ("-I", "-isystem")
OUTPUT_FLAGS = ("-o", "-MF", "-MQ", "-MT")


class ScrubState(enum.Enum):
    INITIAL = "initial"
    DROP_NEXT = "drop-next"
    MAKE_NEXT_ABSOLUTE = "make-next-absolute"


@dataclass(frozen=True)
class Scrubbed:
    args: List[str]


@dataclass(frozen=True)
class Suppressed:
    pass


SUPPRESSED = Suppressed()

ScrubResult = Union[Scrubbed, Suppressed]

# step() returns None instead of a token list to suppress the whole scrub.
Step = Tuple[ScrubState, Union[List[str], None]]


def _flag(flag: str) -> Step:
    if flag in INCLUDE_FLAGS:
        return ScrubState.MAKE_NEXT_ABSOLUTE, [flag]
    if flag in OUTPUT_FLAGS:
        return ScrubState.DROP_NEXT, []
    if flag == "--sysroot":
        # The following value is left as is, unlike --sysroot=value.
        return ScrubState.INITIAL, ["-isysroot"]
    # Remaining dependency generation flags: -M -MD -MG -MM -MMD -MP
    return ScrubState.INITIAL, []


def _compound_flag(flag: str, value: str, wdir: str) -> Step:
    if flag == "-I":
        return ScrubState.INITIAL, [flag + make_absolute_path(wdir, value)]
    if flag == "--sysroot=":
        return ScrubState.INITIAL, ["-isysroot", make_absolute_path(wdir, value)]
    return ScrubState.INITIAL, []


def step(state: ScrubState, arg: str, wdir: str,
         expand_rsp: Callable[[str], List[str]]) -> Step:
    """Consume one argument in the given state."""
    if state is ScrubState.MAKE_NEXT_ABSOLUTE:
        return ScrubState.INITIAL, [make_absolute_path(wdir, arg)]
    if state is ScrubState.DROP_NEXT:
        return ScrubState.INITIAL, []

    if arg == "-E":
        # Assume ccache preprocessing stage.
        return ScrubState.INITIAL, None

    m = SCRUB_RE.fullmatch(arg)
    if not m:
        if FILTER_RE.match(arg):
            return ScrubState.INITIAL, []
        return ScrubState.INITIAL, [arg]

    if m.group("source"):
        return ScrubState.INITIAL, [make_absolute_path(wdir, m.group("source"))]
    if m.group("rsp") is not None:
        return ScrubState.INITIAL, expand_rsp(m.group("rsp"))
    if m.group("flag"):
        return _flag(m.group("flag"))
    return _compound_flag(m.group("cflag"), m.group("value"), wdir)


def read_rsp_file(filename: str) -> List[str]:
    # Whitespace split only, quoted arguments containing spaces are split apart.
    with open(filename, "rb") as f:
        return f.read().decode("utf-8", "surrogateescape").split()


def scrub(wdir: str, args: List[str]) -> ScrubResult:
    """Scrub args as seen from working directory wdir.

    Response files are scrubbed recursively without a cycle check; a file
    that includes itself recurses until the interpreter gives up.
    """

    def expand_rsp(path: str) -> List[str]:
        try:
            rsp_args = read_rsp_file(make_absolute_path(wdir, path))
        except OSError as e:
            log.warning("cannot read response file %s: %s", path, e)
            return [f'-rtags-scrub-error "{e}"']
        nested = scrub(wdir, rsp_args)
        if isinstance(nested, Suppressed):
            return []
        return nested.args

    out: List[str] = []
    state = ScrubState.INITIAL
    for arg in args:
        state, emitted = step(state, arg, wdir, expand_rsp)
        if emitted is None:
            return SUPPRESSED
        out.extend(emitted)
    return Scrubbed(out)


def unescape_quotes(text: str) -> str:
    """Undo shells that over-escape quoted arguments."""
    return text.replace('\\"', '"')
