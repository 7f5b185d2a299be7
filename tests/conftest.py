"""Shared test fixtures."""

from __future__ import annotations

import json
import os
import stat
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

import pytest

_FAKE_SNFSDEFRAG = """\
#!{python}
import json
import sys
from pathlib import Path

with Path({log_path!r}).open("a", encoding="utf-8") as handle:
    handle.write(json.dumps(sys.argv[1:]) + "\\n")
if sys.argv[-1] in {fail_paths!r}:
    sys.stderr.write("Error: file is open or recently modified\\n")
    sys.exit(1)
sys.stdout.write({stdout!r})
sys.exit({exit_code!r})
"""


@dataclass(slots=True)
class FakeSnfsDefrag:
    """Executable standing in for /usr/cvfs/bin/snfsdefrag."""

    path: Path
    log_path: Path

    def calls(self) -> list[list[str]]:
        if not self.log_path.exists():
            return []
        return [json.loads(line) for line in self.log_path.read_text("utf-8").splitlines()]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep SNFS_DEFRAG_* variables from the developer shell out of tests."""
    for name in list(os.environ):
        if name.startswith("SNFS_DEFRAG_"):
            monkeypatch.delenv(name)


@pytest.fixture()
def fake_snfsdefrag(tmp_path) -> Callable[..., FakeSnfsDefrag]:
    """Factory writing a fake snfsdefrag script that records argv and prints canned output."""

    def _make(
        *,
        stdout: str = "",
        exit_code: int = 0,
        fail_paths: Iterable[str] = (),
        name: str = "snfsdefrag",
    ) -> FakeSnfsDefrag:
        script = tmp_path / "bin" / name
        script.parent.mkdir(parents=True, exist_ok=True)
        log_path = tmp_path / f"{name}.calls.jsonl"
        script.write_text(
            _FAKE_SNFSDEFRAG.format(
                python=sys.executable,
                log_path=str(log_path),
                fail_paths=list(fail_paths),
                stdout=stdout,
                exit_code=exit_code,
            ),
            "utf-8",
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return FakeSnfsDefrag(path=script, log_path=log_path)

    return _make
