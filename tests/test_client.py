from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import allure
import pytest

from snfs_defrag.config import ToolSettings
from snfs_defrag.errors import CandidateListingError, FailureKind, InvocationError
from snfs_defrag.tool.client import SnfsDefrag
from snfs_defrag.tool.invoker import CommandInvoker, ExecutionResult
from snfs_defrag.tool.parsers import CandidateRecord

pytestmark = [
    allure.epic("Defrag Automation"),
    allure.feature("Flag Assembly"),
]


class RecordingInvoker(CommandInvoker):
    def __init__(self, stdout: str = "", exit_code: int = 0, stderr: str = "") -> None:
        super().__init__(Path("/usr/cvfs/bin/snfsdefrag"))
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code
        self.calls: list[list[str]] = []

    def run(self, tokens: Sequence[str]) -> ExecutionResult:
        self.calls.append(list(tokens))
        return ExecutionResult(
            command=(str(self.executable_path), *tokens),
            exit_code=self.exit_code,
            stdout=self.stdout,
            stderr=self.stderr,
        )


def _client(stdout: str = "", **settings) -> tuple[SnfsDefrag, RecordingInvoker]:
    invoker = RecordingInvoker(stdout=stdout)
    return SnfsDefrag(ToolSettings(**settings), invoker=invoker), invoker


def test_extent_counts_flags() -> None:
    client, invoker = _client(stdout="/a: 3 extents\n")

    raw = client.extent_counts(
        "/a",
        blocks=True,
        stripe_group="2",
        affinity_key="fast",
        recursive=True,
        totals=True,
    )

    assert raw == "/a: 3 extents\n"
    assert invoker.calls == [["-c", "-b", "-G", "2", "-K", "fast", "-r", "-t", "/a"]]


def test_extent_counts_summary_only_uses_capital_t() -> None:
    client, invoker = _client()

    client.extent_counts("/a", totals=True, summary_only=True)

    assert invoker.calls == [["-c", "-T", "/a"]]


def test_list_extents_parses_by_default() -> None:
    client, invoker = _client(stdout="/a/f:\n# group\n0 5\n")

    assert client.list_extents("/a/f") == {"/a/f": [{"#": "0", "group": "5"}]}
    assert invoker.calls == [["-e", "/a/f"]]


def test_list_extents_raw_mode_and_highlighting() -> None:
    client, invoker = _client(stdout="raw text", return_raw_response=True)

    assert client.list_extents("/a/f", highlight_alignment=True, totals=True) == "raw text"
    assert invoker.calls == [["-E", "-t", "/a/f"]]


def test_list_candidates_flags_and_bare_paths() -> None:
    client, invoker = _client(stdout="/a/one.mov\n/a/two.mov\n")

    candidates = client.list_candidates(
        "/a",
        recursive=True,
        debug=True,
        stripe_group="1",
        affinity_key="!slow",
        minimum_extents=0,
    )

    assert candidates == ["/a/one.mov", "/a/two.mov"]
    assert invoker.calls == [["-l", "-r", "-D", "-G", "1", "-K", "!slow", "-m", "0", "/a"]]


def test_list_candidates_verbose_records() -> None:
    client, invoker = _client(stdout="/a/file.mov: 3 extents: fragmented\nnoise\n")

    candidates = client.list_candidates("/a", verbose=True)

    assert candidates == [
        CandidateRecord(path="/a/file.mov", extent_count="3", message="fragmented"),
    ]
    assert invoker.calls == [["-l", "-v", "/a"]]


def test_list_candidates_verbose_without_parsing_keeps_lines() -> None:
    client, _ = _client(stdout="/a/file.mov: 3 extents: fragmented\n", parse_verbose_data=False)

    assert client.list_candidates("/a", verbose=True) == ["/a/file.mov: 3 extents: fragmented"]


def test_list_candidates_maps_over_path_list() -> None:
    client, invoker = _client(stdout="/x\n")

    assert client.list_candidates(["/a", "/b"]) == [["/x"], ["/x"]]
    assert invoker.calls == [["-l", "/a"], ["-l", "/b"]]


def test_list_candidates_raises_on_error_response() -> None:
    client, _ = _client(stdout="Error: permission denied\n")

    with pytest.raises(CandidateListingError, match="permission denied"):
        client.list_candidates("/a")


def test_list_candidates_raw_mode_returns_error_text_untouched() -> None:
    client, _ = _client(stdout="Error: permission denied\n")

    assert client.list_candidates("/a", return_raw_response=True) == "Error: permission denied\n"


def test_defragment_migration_flags() -> None:
    client, invoker = _client()

    result = client.defragment(
        "/a/foo",
        minimum_extents=0,
        affinity_key="fast",
        target_affinity_key="slow",
    )

    assert result.success
    assert invoker.calls == [["-K", "fast", "-k", "slow", "-m", "0", "/a/foo"]]


def test_defragment_plain_path() -> None:
    client, invoker = _client()

    client.defragment("/a/foo bar.mov")

    assert invoker.calls == [["/a/foo bar.mov"]]


def test_prune_flags() -> None:
    client, invoker = _client()

    client.prune("/abc", recursive=True, verbose=True)

    assert invoker.calls == [["-p", "-v", "-r", "/abc"]]


def test_default_invoker_uses_settings(tmp_path: Path) -> None:
    client = SnfsDefrag(ToolSettings(executable_path=tmp_path / "snfsdefrag", timeout_seconds=5))

    assert client.executable_path == tmp_path / "snfsdefrag"
    assert client.invoker.timeout_seconds == 5


def test_listings_raise_on_reported_failure() -> None:
    invoker = RecordingInvoker(exit_code=2, stderr="snfsdefrag: not a StorNext file system\n")
    client = SnfsDefrag(ToolSettings(), invoker=invoker)

    with pytest.raises(InvocationError, match="not a StorNext file system") as excinfo:
        client.list_candidates("/media")
    with pytest.raises(InvocationError):
        client.list_extents("/media/a.mov")
    with pytest.raises(InvocationError):
        client.extent_counts("/media")

    assert excinfo.value.exit_code == 2
    assert excinfo.value.failure_kind is FailureKind.REPORTED_FAILURE
    assert excinfo.value.command_line == "/usr/cvfs/bin/snfsdefrag -l /media"


def test_listings_raise_on_missing_executable(tmp_path: Path) -> None:
    client = SnfsDefrag(ToolSettings(executable_path=tmp_path / "nope"))

    with pytest.raises(InvocationError) as excinfo:
        client.list_candidates("/media", recursive=True)

    assert excinfo.value.exit_code == 127
    assert excinfo.value.failure_kind is FailureKind.LAUNCH_FAILURE
    assert str(tmp_path / "nope") in excinfo.value.command_line


def test_raw_listing_keeps_failed_output() -> None:
    invoker = RecordingInvoker(stdout="partial\n", exit_code=1)
    client = SnfsDefrag(ToolSettings(), invoker=invoker)

    assert client.list_candidates("/media", return_raw_response=True) == "partial\n"
    assert client.list_extents("/media", return_raw_response=True) == "partial\n"
