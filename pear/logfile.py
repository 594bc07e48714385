from __future__ import annotations
import hashlib
from pathlib import Path
from typing import List, Optional

from .classifier import classify
from .environment import Environment
from .errors import LogWriteError
from .scrubber import Suppressed, scrub, unescape_quotes
from .utils import make_absolute_path

# argv may hold bytes that are not valid UTF-8; keep them as they came.
ENCODING = "utf-8"
ERRORS = "surrogateescape"


def build_logentry(exec_name: str, args: List[str]) -> str:
    return exec_name + " " + " ".join(args) + "\n"


def build_rtags_logentry(wdir: str, exec_name: str, args: List[str]) -> Optional[str]:
    """Scrubbed log entry, or None when there is nothing to log."""
    res = scrub(wdir, args)
    if isinstance(res, Suppressed) or not res.args:
        return None
    return unescape_quotes(build_logentry(exec_name, res.args))


def sha1_hex(logentry: str) -> str:
    return hashlib.sha1(logentry.encode(ENCODING, ERRORS)).hexdigest()


def update_logfile_env(env: Environment, args: List[str], logentry: str) -> str:
    """Set .sha1, .input and .output for expanding log file names.

    .input/.output fall back to the hash when the command line has no
    single source or no output file. Returns the hash.
    """
    digest = sha1_hex(logentry)
    env.set(".sha1", digest)
    io = classify(args)
    wdir = env.get(".wdir")
    env.set(".input", make_absolute_path(wdir, io.input) if io.input else digest)
    env.set(".output", make_absolute_path(wdir, io.output) if io.output else digest)
    return digest


def write_logfile(filename: str, logentry: str) -> None:
    # Plain create+write; parallel writers to one path race and the last wins.
    path = Path(filename)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(logentry.encode(ENCODING, ERRORS))
    except OSError as e:
        raise LogWriteError(f"cannot write log file {filename}: {e.strerror or e}") from e
