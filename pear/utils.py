from __future__ import annotations
import logging
import os
import re
import sys

# Lines starting with "//" in the first column. They are not valid YAML.
COMMENT_RE = re.compile(r"^//")

LOG_LEVEL_VAR = "PEAR_LOG_LEVEL"


def setup_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Set up a stderr logger.

    The level defaults to PEAR_LOG_LEVEL (or WARNING) so that a wrapped
    compiler's stderr stays untouched unless diagnostics are asked for.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        if level is None:
            level = logging.getLevelName(os.environ.get(LOG_LEVEL_VAR, "WARNING").upper())
            if not isinstance(level, int):
                level = logging.WARNING
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)

        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)

        logger.addHandler(handler)
        logger.setLevel(level)

    return logger


def is_comment(line: str) -> bool:
    return bool(COMMENT_RE.match(line))


def strip_comments(text: str) -> tuple[str, list[int]]:
    """Drop '//' comment lines.

    Returns the remaining text and, for every kept line, its 0-based line
    number in the original text.
    """
    kept: list[str] = []
    line_map: list[int] = []
    for i, line in enumerate(text.splitlines()):
        if is_comment(line):
            continue
        kept.append(line)
        line_map.append(i)
    return "\n".join(kept) + "\n", line_map


def make_absolute_path(basedir: str, path: str) -> str:
    if not os.path.isabs(path):
        path = os.path.abspath(os.path.join(basedir, path))
    return path


def prepend_env_path(env: dict[str, str], path: str) -> dict[str, str]:
    """Return a copy of env with path first in PATH."""
    out = dict(env)
    current = out.get("PATH", "")
    out["PATH"] = path + os.pathsep + current if current else path
    return out


def filter_out(args: list[str], patterns) -> list[str]:
    """Remove every argument equal to one of patterns."""
    drop = set(patterns)
    if not drop:
        return list(args)
    return [a for a in args if a not in drop]
