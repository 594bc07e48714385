from __future__ import annotations
import argparse
import os
import shlex
import shutil
import sqlite3
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Mapping, Optional

from .config import Config
from .dispatcher import Dispatcher
from .environment import Environment
from .errors import DEFAULT_ERROR_EXIT_CODE, PearError, ResolutionError
from .journal import JOURNAL_VAR, InvocationJournal
from .logfile import build_rtags_logentry
from .stats_cmd import print_journal_stats, summarize_journal
from .utils import setup_logger

PROG = "pear"
CONFIG_NAME = "pear.conf"
CONFIG_VAR = "PEAR_CONFIG"
CONFIG_HELP = ("Config file (default: $PEAR_CONFIG, else <pear dir>/../pear.conf, "
               "or ./pear.conf under python -m pear)")

log = setup_logger(__name__)


def locate(argv0: str, environ: Mapping[str, str]) -> str:
    """Absolute path of the invoked command, looked up on PATH if bare."""
    path = argv0
    if os.sep not in argv0:
        path = shutil.which(argv0, path=environ.get("PATH", ""))
        if path is None:
            raise ResolutionError(f"exec: '{argv0}': executable file not found in PATH")
    return os.path.abspath(path)


def bootstrap_env(cmd_path: str, environ: Mapping[str, str],
                  wdir: Optional[str] = None, now: Optional[datetime] = None) -> Environment:
    """Derived variables available to the configuration.

    .sha1/.input/.output are missing here; they only exist while log file
    names are expanded.
    """
    now = now or datetime.now()
    env = Environment()
    env.set(".arg0", os.path.basename(cmd_path))
    env.set(".cdir", os.path.dirname(cmd_path))
    env.set(".home", environ.get("HOME", ""))
    env.set(".user", environ.get("USER", ""))
    env.set(".date", now.strftime("%Y%m%d"))
    env.set(".time", now.strftime("%H%M%S"))
    env.set(".wdir", wdir if wdir is not None else os.getcwd())
    return env


def config_path(cmd_dir: str, environ: Mapping[str, str]) -> str:
    return environ.get(CONFIG_VAR) or os.path.join(cmd_dir, "..", CONFIG_NAME)


def wrap(argv: List[str], environ: Optional[Mapping[str, str]] = None) -> int:
    """Run as the command named by argv[0] and return its exit status."""
    environ = dict(os.environ if environ is None else environ)
    cmd_path = locate(argv[0], environ)
    env = bootstrap_env(cmd_path, environ)
    path = config_path(os.path.dirname(cmd_path), environ)
    config = Config.load(path, env)
    log.debug("loaded %d commands from %s", len(config.commands), path)
    cmd = config.command(env.get(".arg0"))

    journal = None
    if environ.get(JOURNAL_VAR):
        journal_path = env.expand(environ[JOURNAL_VAR])
        try:
            journal = InvocationJournal(journal_path)
        except (OSError, sqlite3.Error, ValueError) as e:
            log.warning("cannot open journal %s, journaling disabled: %s", journal_path, e)
    return Dispatcher(config, journal=journal, environ=environ).run(cmd, argv[1:])


def default_config(cmd_dir: str, environ: Mapping[str, str]) -> str:
    """Config file for the management commands.

    Run as "python -m pear" there is no install prefix next to the entry
    point, so pear.conf is looked up in the current directory instead.
    """
    if Path(sys.argv[0]).name == "__main__.py" and not environ.get(CONFIG_VAR):
        return os.path.join(os.getcwd(), CONFIG_NAME)
    return config_path(cmd_dir, environ)


def _load_for(name: str, args) -> Config:
    environ = os.environ
    cmd_dir = os.path.dirname(os.path.abspath(sys.argv[0]))
    env = bootstrap_env(os.path.join(cmd_dir, name), environ)
    path = args.config or default_config(cmd_dir, environ)
    return Config.load(path, env)


def cmd_check(args) -> int:
    cfg = _load_for(PROG, args)
    for name in sorted(cfg.commands):
        cmd = cfg.commands[name]
        print(f"{name}: exec={cmd.exec or '(missing)'}")
    return 0


def cmd_show(args) -> int:
    cfg = _load_for(args.name, args)
    cmd = cfg.command(args.name)
    exec_name, argv = Dispatcher(cfg).prepare(cmd, args.args)
    print(shlex.join([exec_name] + argv))
    return 0


def cmd_scrub(args) -> int:
    entry = build_rtags_logentry(os.path.abspath(args.wdir), args.exec, args.args)
    print("(suppressed)" if entry is None else entry, end="" if entry else "\n")
    return 0


def cmd_stats(args) -> int:
    path = args.journal or os.environ.get(JOURNAL_VAR)
    if not path:
        print(f"No journal given (use --journal or set {JOURNAL_VAR}).", file=sys.stderr)
        return DEFAULT_ERROR_EXIT_CODE
    agg = summarize_journal(path)
    if args.json:
        print(agg.to_json())
    else:
        print_journal_stats(agg)
    return 0


def manage(argv: List[str]) -> int:
    p = argparse.ArgumentParser(prog=PROG, description="Compiler wrapper management")
    sub = p.add_subparsers(dest="cmd", required=True)

    pc = sub.add_parser("check", help="Validate the configuration and list commands")
    pc.add_argument("--config", help=CONFIG_HELP)
    pc.set_defaults(func=cmd_check)

    psh = sub.add_parser("show", help="Print the command line a wrapped command would run")
    psh.add_argument("name", help="Configured command name, e.g. gcc")
    psh.add_argument("args", nargs="*", help="Arguments as a build would pass them (after --)")
    psh.add_argument("--config", help=CONFIG_HELP)
    psh.set_defaults(func=cmd_show)

    psc = sub.add_parser("scrub", help="Print the rtags log entry for a command line")
    psc.add_argument("--wdir", default=".", help="Working directory of the compile")
    psc.add_argument("--exec", default="cc", help="Executable name written to the entry")
    psc.add_argument("args", nargs="*", help="Compiler arguments (after --)")
    psc.set_defaults(func=cmd_scrub)

    pst = sub.add_parser("stats", help="Summarize the invocation journal")
    pst.add_argument("--journal", help=f"Journal database (default: ${JOURNAL_VAR})")
    pst.add_argument("--json", action="store_true", help="Output JSON")
    pst.set_defaults(func=cmd_stats)

    args = p.parse_args(argv)
    return args.func(args)


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv if argv is None else argv)
    try:
        if Path(argv[0]).name == PROG:
            return manage(argv[1:])
        return wrap(argv)
    except PearError as e:
        print(f"{PROG}: {e}", file=sys.stderr)
        return DEFAULT_ERROR_EXIT_CODE


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
