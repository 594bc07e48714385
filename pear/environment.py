from __future__ import annotations
import os
import re
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from .utils import make_absolute_path

# $(name) expands literally, @(name) expands to a path anchored at .cdir.
EXPAND_RE = re.compile(r"[$@]\((?P<name>.+?)\)")

# Keys the log file writer sets for one invocation only.
DERIVED_LOG_KEYS = (".sha1", ".input", ".output")


class Environment:
    """Variables available to configuration templates.

    Keys starting with '.' are derived by pear itself (.arg0, .cdir, .wdir,
    ...). Reading an unknown key yields the empty string.
    """

    def __init__(self, values: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(values or {})

    def get(self, name: str) -> str:
        return self._values.get(name, "")

    def set(self, name: str, value: str) -> None:
        self._values[name] = value

    def set_expanded(self, name: str, value: str) -> None:
        self._values[name] = self.expand(value)

    def expand(self, s: str) -> str:
        def repl(m: re.Match) -> str:
            value = self.get(m.group("name"))
            if value == "":
                return m.group(0)
            if m.group(0)[0] == "@" and not os.path.isabs(value):
                value = make_absolute_path(self.get(".cdir"), value)
            return value

        return EXPAND_RE.sub(repl, s)

    def expand_all(self, items) -> list[str]:
        return [self.expand(s) for s in items]

    @contextmanager
    def derived_scope(self) -> Iterator["Environment"]:
        """Restore .sha1/.input/.output on exit."""
        saved = {k: self._values[k] for k in DERIVED_LOG_KEYS if k in self._values}
        try:
            yield self
        finally:
            for k in DERIVED_LOG_KEYS:
                if k in saved:
                    self._values[k] = saved[k]
                else:
                    self._values.pop(k, None)

    def __contains__(self, name: str) -> bool:
        return name in self._values
