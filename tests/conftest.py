"""Pytest configuration and fixtures."""
import os
import textwrap
from pathlib import Path

import pytest

from pear.environment import Environment


@pytest.fixture
def env(tmp_path):
    """Environment as the wrapper sets it up, rooted in a temp directory."""
    e = Environment()
    e.set(".arg0", "gcc")
    e.set(".cdir", "/opt/pear")
    e.set(".home", "/home/builder")
    e.set(".user", "builder")
    e.set(".date", "20240102")
    e.set(".time", "030405")
    e.set(".wdir", str(tmp_path))
    return e


@pytest.fixture
def write_config(tmp_path):
    """Write a pear.conf (dedented) and return its path."""
    def _write(text: str, name: str = "pear.conf") -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def environ():
    """Minimal inherited process environment for child processes."""
    return {"PATH": os.environ.get("PATH", "/usr/bin:/bin"), "HOME": "/home/builder", "USER": "builder"}
