from __future__ import annotations
import json
import sqlite3
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List

JOURNAL_VAR = "PEAR_JOURNAL"

SCHEMA = """
CREATE TABLE IF NOT EXISTS invocations(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  started_at TEXT NOT NULL,
  finished_at TEXT,
  command TEXT NOT NULL,
  exec TEXT NOT NULL,
  wdir TEXT NOT NULL,
  args TEXT NOT NULL,
  sha1 TEXT,
  input TEXT,
  output TEXT,
  status INTEGER
);
CREATE TABLE IF NOT EXISTS events(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  invocation_id INTEGER NOT NULL,
  ts TEXT NOT NULL,
  level TEXT NOT NULL,
  msg TEXT NOT NULL,
  FOREIGN KEY(invocation_id) REFERENCES invocations(id)
);
"""

# Parallel builds write to one journal; wait for the lock instead of failing.
BUSY_TIMEOUT_SEC = 30.0


def _text(s: str) -> str:
    # argv and paths may carry undecodable bytes as surrogates; sqlite
    # only stores valid UTF-8.
    return s.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")


@dataclass
class Invocation:
    id: int


class InvocationJournal:
    def __init__(self, path: str, echo: bool = False):
        self.path = path
        self.echo = echo
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(path, timeout=BUSY_TIMEOUT_SEC)
        self.conn.executescript(SCHEMA)
        self.conn.commit()
        self._invocation_id: int | None = None

    @property
    def invocation_id(self) -> int | None:
        return self._invocation_id

    def start(self, command: str, exec_name: str, wdir: str, args: List[str]) -> Invocation:
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO invocations(started_at, command, exec, wdir, args) VALUES (?, ?, ?, ?, ?)",
            (datetime.now().isoformat(), _text(command), _text(exec_name), _text(wdir),
             json.dumps(args)),
        )
        self.conn.commit()
        self._invocation_id = cur.lastrowid
        return Invocation(id=self._invocation_id)

    def log(self, level: str, msg: str):
        assert self._invocation_id is not None
        ts = datetime.now().isoformat()
        self.conn.execute(
            "INSERT INTO events(invocation_id, ts, level, msg) VALUES (?, ?, ?, ?)",
            (self._invocation_id, ts, level.upper(), _text(msg)),
        )
        self.conn.commit()
        if self.echo:
            print(f"[{ts}] {level.upper():5s} {msg}", file=sys.stderr)

    def record_identity(self, sha1: str, input: str, output: str):
        """Store the derived log identity of the current invocation."""
        assert self._invocation_id is not None
        self.conn.execute(
            "UPDATE invocations SET sha1=?, input=?, output=? WHERE id=?",
            (sha1, _text(input), _text(output), self._invocation_id),
        )
        self.conn.commit()

    def finish(self, status: int | None):
        if self._invocation_id is not None:
            ts = datetime.now().isoformat()
            self.conn.execute(
                "UPDATE invocations SET finished_at=?, status=? WHERE id=?",
                (ts, status, self._invocation_id),
            )
            self.conn.commit()
            if self.echo:
                print(f"[{ts}] FINISH invocation_id={self._invocation_id} status={status}", file=sys.stderr)
        self.conn.close()
