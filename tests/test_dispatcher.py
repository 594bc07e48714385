"""Tests for running a configured command."""
import pytest

from pear.config import Command, Config
from pear.dispatcher import Dispatcher, exit_status, resolve_executable
from pear.errors import ExecError, LogWriteError, ResolutionError
from pear.journal import InvocationJournal
from pear.stats_cmd import summarize_journal
from pear.utils import filter_out, prepend_env_path


@pytest.fixture
def config(env):
    env.set("CC", "sh")
    return Config(env=env)


def test_filter_out_removes_every_occurrence():
    assert filter_out(["-a", "-b", "-a"], ["-a"]) == ["-b"]
    assert filter_out(["-a"], []) == ["-a"]


def test_prepend_env_path():
    assert prepend_env_path({"PATH": "/usr/bin"}, "/opt/pear")["PATH"] == "/opt/pear:/usr/bin"
    assert prepend_env_path({}, "/opt/pear")["PATH"] == "/opt/pear"
    assert prepend_env_path({"PATH": ""}, "/opt/pear")["PATH"] == "/opt/pear"


def test_child_environment_has_wrapper_dir_first(config):
    d = Dispatcher(config, environ={"PATH": "/usr/bin", "LANG": "C"})
    child = d.child_environ()
    assert child["PATH"] == "/opt/pear:/usr/bin"
    assert child["LANG"] == "C"
    assert d.environ["PATH"] == "/usr/bin"


def test_prepare_builds_argument_vector(config):
    config.env.set("OPT", "-O2")
    cmd = Command(name="gcc", exec="/usr/bin/$(.arg0)", prepend=["-pipe", "$(OPT)"],
                  append=["-g", "-Werror"], filter_out=["-Werror", "-m32"])
    exec_name, argv = Dispatcher(config, environ={}).prepare(cmd, ["-m32", "-c", "a.c", "-m32"])
    assert exec_name == "/usr/bin/gcc"
    assert argv == ["-pipe", "-O2", "-c", "a.c", "-g"]


def test_prepare_requires_exec(config):
    with pytest.raises(ResolutionError, match="executable name missing for command 'gcc'"):
        Dispatcher(config, environ={}).prepare(Command(name="gcc"), [])


def test_unset_exec_variable_stays_literal(config):
    exec_name, _ = Dispatcher(config, environ={}).prepare(Command(name="gcc", exec="$(NOPE)"), [])
    assert exec_name == "$(NOPE)"


def test_resolve_executable(tmp_path):
    tool = tmp_path / "mytool"
    tool.write_text("#!/bin/sh\n")
    tool.chmod(0o755)
    assert resolve_executable("mytool", str(tmp_path)) == str(tool)
    assert resolve_executable("./rel/tool", "") == "./rel/tool"
    with pytest.raises(ExecError, match="not found"):
        resolve_executable("mytool", "/nonexistent")


def test_exit_status():
    assert exit_status(0) == 0
    assert exit_status(3) == 3
    assert exit_status(-9) == 1


def test_run_propagates_exit_status(config, environ):
    cmd = Command(name="gcc", exec="$(CC)", prepend=["-c"])
    d = Dispatcher(config, environ=environ)
    assert d.run(cmd, ["exit 0"]) == 0
    assert d.run(cmd, ["exit 3"]) == 3


def test_run_signal_death_is_fixed_code(config, environ):
    cmd = Command(name="gcc", exec="$(CC)", prepend=["-c"])
    assert Dispatcher(config, environ=environ).run(cmd, ["kill -9 $$"]) == 1


def test_run_passes_augmented_path(config, environ, tmp_path):
    out = tmp_path / "path.txt"
    cmd = Command(name="gcc", exec="$(CC)", prepend=["-c"])
    Dispatcher(config, environ=environ).run(cmd, [f'printf %s "$PATH" > {out}'])
    assert out.read_text() == "/opt/pear:" + environ["PATH"]


def test_run_unknown_executable(config, environ):
    cmd = Command(name="gcc", exec="no-such-compiler-pear")
    with pytest.raises(ExecError):
        Dispatcher(config, environ=environ).run(cmd, [])


def test_run_writes_logs(config, environ, tmp_path):
    cmd = Command(
        name="gcc",
        exec="$(CC)",
        logfile="$(.wdir)/logs/$(.arg0)-$(.input).log",
        rtags_logfile="$(.wdir)/rtags/$(.sha1).log",
        prepend=["-c", "true"],
    )
    d = Dispatcher(config, environ=environ)
    assert d.run(cmd, ["-c", "a.c", "-o", "a.o"]) == 0

    plain = tmp_path / "logs" / f"gcc-{tmp_path}" / "a.c.log"
    assert plain.read_text() == "sh -c true -c a.c -o a.o\n"
    rtags = list((tmp_path / "rtags").iterdir())
    assert len(rtags) == 1
    assert rtags[0].read_text() == f"sh -c true -c {tmp_path}/a.c\n"
    for key in (".sha1", ".input", ".output"):
        assert key not in config.env


def test_run_skips_suppressed_rtags_log(config, environ, tmp_path):
    cmd = Command(name="gcc", exec="$(CC)", rtags_logfile="$(.wdir)/rtags/$(.sha1).log",
                  prepend=["-c", "true"])
    assert Dispatcher(config, environ=environ).run(cmd, ["-E", "a.c"]) == 0
    assert not (tmp_path / "rtags").exists()


def test_run_log_write_failure_is_fatal(config, environ, tmp_path):
    (tmp_path / "blocked").write_text("")
    marker = tmp_path / "ran"
    cmd = Command(name="gcc", exec="$(CC)", logfile="$(.wdir)/blocked/x.log",
                  prepend=["-c", f"touch {marker}"])
    with pytest.raises(LogWriteError, match="cannot write log file"):
        Dispatcher(config, environ=environ).run(cmd, [])
    assert not marker.exists()


def test_run_records_journal(config, environ, tmp_path):
    db = tmp_path / "journal.sqlite"
    cmd = Command(name="gcc", exec="$(CC)", logfile="$(.wdir)/$(.sha1).log", prepend=["-c"])
    for script in ("exit 0", "exit 2"):
        journal = InvocationJournal(str(db))
        Dispatcher(config, journal=journal, environ=environ).run(cmd, [script])

    agg = summarize_journal(str(db))
    assert agg.by_cmd["gcc"]["count"] == 2
    assert agg.by_cmd["gcc"]["failed"] == 1


def test_failing_journal_is_switched_off(config, environ, tmp_path):
    journal = InvocationJournal(str(tmp_path / "journal.sqlite"))
    journal.conn.close()
    marker = tmp_path / "ran"
    cmd = Command(name="gcc", exec="$(CC)", prepend=["-c"])
    d = Dispatcher(config, journal=journal, environ=environ)
    assert d.run(cmd, [f"touch {marker}"]) == 0
    assert marker.exists()
    assert d.journal is None
