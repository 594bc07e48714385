from __future__ import annotations
import os
import shutil
import sqlite3
import subprocess
from typing import List, Mapping, Optional, Tuple

from .config import Command, Config
from .errors import DEFAULT_ERROR_EXIT_CODE, ExecError, ResolutionError
from .journal import InvocationJournal
from .logfile import (
    build_logentry,
    build_rtags_logentry,
    update_logfile_env,
    write_logfile,
)
from .utils import filter_out, prepend_env_path, setup_logger

log = setup_logger(__name__)


def resolve_executable(name: str, search_path: Optional[str]) -> str:
    """Locate a bare executable name on search_path (the wrapper's own PATH)."""
    if os.sep in name or (os.altsep and os.altsep in name):
        return name
    found = shutil.which(name, path=search_path)
    if found is None:
        raise ExecError(f"exec: '{name}': executable file not found in PATH")
    return found


def exit_status(returncode: int) -> int:
    # A negative code means the child died from a signal. That cannot be
    # handed on as an exit status.
    if returncode < 0:
        return DEFAULT_ERROR_EXIT_CODE
    return returncode


class Dispatcher:
    def __init__(self, config: Config, journal: Optional[InvocationJournal] = None,
                 environ: Optional[Mapping[str, str]] = None):
        self.config = config
        self.env = config.env
        self.journal = journal
        self.environ = dict(os.environ if environ is None else environ)

    def prepare(self, cmd: Command, args: List[str]) -> Tuple[str, List[str]]:
        """Resolve the executable and build the final argument vector."""
        exec_name = self.env.expand(cmd.exec)
        if exec_name == "":
            raise ResolutionError(f"executable name missing for command '{cmd.name}'")
        argv = self.env.expand_all(cmd.prepend) + list(args) + self.env.expand_all(cmd.append)
        return exec_name, filter_out(argv, cmd.filter_out)

    def write_logs(self, cmd: Command, exec_name: str, argv: List[str]) -> None:
        with self.env.derived_scope():
            if cmd.logfile:
                entry = build_logentry(exec_name, argv)
                digest = update_logfile_env(self.env, argv, entry)
                filename = self.env.expand(cmd.logfile)
                write_logfile(filename, entry)
                self._journal("record_identity", digest, self.env.get(".input"), self.env.get(".output"))
                self._journal("log", "INFO", f"logged to {filename}")

            if cmd.rtags_logfile:
                entry = build_rtags_logentry(self.env.get(".wdir"), exec_name, argv)
                if entry is None:
                    log.debug("rtags log suppressed for %s", cmd.name)
                    self._journal("log", "INFO", "rtags log suppressed")
                else:
                    update_logfile_env(self.env, argv, entry)
                    filename = self.env.expand(cmd.rtags_logfile)
                    write_logfile(filename, entry)
                    self._journal("log", "INFO", f"rtags logged to {filename}")

    def _journal(self, method: str, *args) -> None:
        """Call a journal method. A failing journal is switched off, the
        compile goes on without it."""
        if self.journal is None:
            return
        try:
            getattr(self.journal, method)(*args)
        except (OSError, sqlite3.Error, ValueError) as e:
            log.warning("journal %s failed, journaling disabled: %s", self.journal.path, e)
            self.journal = None

    def child_environ(self) -> dict:
        # The wrapper directory goes first so that tools the child runs by
        # bare name (a compiler calling the linker) are wrapped as well.
        return prepend_env_path(self.environ, self.env.get(".cdir"))

    def run(self, cmd: Command, args: List[str]) -> int:
        exec_name, argv = self.prepare(cmd, args)
        self._journal("start", cmd.name, exec_name, self.env.get(".wdir"), argv)
        status: Optional[int] = None
        try:
            self.write_logs(cmd, exec_name, argv)
            program = resolve_executable(exec_name, self.environ.get("PATH"))
            log.debug("running %s %s", program, " ".join(argv))
            try:
                proc = subprocess.run([exec_name] + argv, executable=program, env=self.child_environ())
            except OSError as e:
                raise ExecError(f"cannot run {exec_name}: {e.strerror or e}") from e
            status = exit_status(proc.returncode)
            if proc.returncode != 0:
                self._journal("log", "WARN", f"{exec_name} exited with {proc.returncode}")
            return status
        finally:
            self._journal("finish", status)
