"""Flag assembly for the snfsdefrag operations.

Synopsis of the wrapped utility, for reference::

    snfsdefrag [-DdPqsv] [-G group] [-K key] [-k key] [-m count] [-r] Target...
    snfsdefrag -e [-b] [-G group] [-K key] [-r] [-t] Target...
    snfsdefrag -E [-b] [-G group] [-K key] [-r] [-t] Target...
    snfsdefrag -c [-G group] [-K key] [-r] [-t] [-T] Target...
    snfsdefrag -p [-Dv] [-G group] [-K key] [-m count] [-r] Target...
    snfsdefrag -l [-Dv] [-G group] [-K key] [-m count] [-r] Target...

The utility refuses to touch open files and files modified in the last ten
seconds, so a failed defragmentation is usually worth retrying later.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from snfs_defrag.config import ToolSettings
from snfs_defrag.errors import InvocationError
from snfs_defrag.tool.invoker import CommandInvoker, ExecutionResult
from snfs_defrag.tool.parsers import (
    CandidateRecord,
    ExtentRecord,
    parse_candidate_listing,
    parse_extent_listing,
    parse_verbose_candidates,
)

logger = logging.getLogger(__name__)

CandidateListing = str | list[str] | list[CandidateRecord]


class SnfsDefrag:
    """Client for one snfsdefrag executable."""

    def __init__(
        self,
        settings: ToolSettings | None = None,
        *,
        invoker: CommandInvoker | None = None,
    ) -> None:
        self.settings = settings or ToolSettings()
        self.invoker = invoker or CommandInvoker(
            self.settings.executable_path,
            timeout_seconds=self.settings.timeout_seconds,
        )

    @property
    def executable_path(self) -> Path:
        return self.invoker.executable_path

    def execute(self, tokens: Sequence[str]) -> ExecutionResult:
        return self.invoker.run(tokens)

    def extent_counts(  # noqa: PLR0913
        self,
        path: str,
        *,
        blocks: bool = False,
        stripe_group: str | None = None,
        affinity_key: str | None = None,
        recursive: bool = False,
        totals: bool = False,
        summary_only: bool = False,
    ) -> str:
        """Report extent counts (``-c``); the text is returned unparsed."""

        tokens = ["-c"]
        if blocks:
            tokens.append("-b")
        tokens += _selection_flags(stripe_group=stripe_group, affinity_key=affinity_key)
        if recursive:
            tokens.append("-r")
        if summary_only:
            tokens.append("-T")
        elif totals:
            tokens.append("-t")
        tokens.append(path)
        return self._checked_output(tokens)

    def list_extents(  # noqa: PLR0913
        self,
        path: str,
        *,
        blocks: bool = False,
        stripe_group: str | None = None,
        affinity_key: str | None = None,
        recursive: bool = False,
        totals: bool = False,
        highlight_alignment: bool = False,
        return_raw_response: bool | None = None,
    ) -> str | dict[str, list[ExtentRecord]]:
        """List extents per file (``-e``, or ``-E`` to mark stripe-aligned addresses)."""

        tokens = ["-E" if highlight_alignment else "-e"]
        if blocks:
            tokens.append("-b")
        tokens += _selection_flags(stripe_group=stripe_group, affinity_key=affinity_key)
        if recursive:
            tokens.append("-r")
        if totals:
            tokens.append("-t")
        tokens.append(path)

        if self._raw(return_raw_response):
            return self.execute(tokens).stdout
        return parse_extent_listing(self._checked_output(tokens))

    def list_candidates(  # noqa: PLR0913
        self,
        path: str | Sequence[str],
        *,
        recursive: bool = False,
        verbose: bool = False,
        debug: bool = False,
        stripe_group: str | None = None,
        affinity_key: str | None = None,
        minimum_extents: int | None = None,
        return_raw_response: bool | None = None,
        parse_verbose_data: bool | None = None,
    ) -> CandidateListing | list[CandidateListing]:
        """List files fragmented enough to defragment (``-l``).

        A sequence of paths runs one listing per path and returns a list of
        listings. Without verbose output each candidate is a bare path;
        verbose output is parsed into :class:`CandidateRecord` unless
        ``parse_verbose_data`` is off.

        Raises:
            CandidateListingError: the utility answered with ``Error: ...``.
            InvocationError: the utility could not run or exited non-zero.
        """

        if not isinstance(path, str):
            return [
                self.list_candidates(
                    single,
                    recursive=recursive,
                    verbose=verbose,
                    debug=debug,
                    stripe_group=stripe_group,
                    affinity_key=affinity_key,
                    minimum_extents=minimum_extents,
                    return_raw_response=return_raw_response,
                    parse_verbose_data=parse_verbose_data,
                )
                for single in path
            ]

        tokens = ["-l"]
        if recursive:
            tokens.append("-r")
        if verbose:
            tokens.append("-v")
        if debug:
            tokens.append("-D")
        tokens += _selection_flags(stripe_group=stripe_group, affinity_key=affinity_key)
        if minimum_extents is not None:
            tokens += ["-m", str(minimum_extents)]
        tokens.append(path)

        if self._raw(return_raw_response):
            return self.execute(tokens).stdout

        candidates = parse_candidate_listing(self._checked_output(tokens))
        if parse_verbose_data is None:
            parse_verbose_data = self.settings.parse_verbose_data
        if not (verbose and parse_verbose_data):
            return candidates
        return parse_verbose_candidates(candidates)

    def defragment(  # noqa: PLR0913
        self,
        path: str,
        *,
        minimum_extents: int | None = None,
        stripe_group: str | None = None,
        affinity_key: str | None = None,
        target_affinity_key: str | None = None,
        recursive: bool = False,
        verbose: bool = False,
        debug: bool = False,
    ) -> ExecutionResult:
        """Defragment ``path``; with ``minimum_extents=0`` this migrates files between stripe groups."""

        tokens: list[str] = []
        if verbose:
            tokens.append("-v")
        if debug:
            tokens.append("-D")
        tokens += _selection_flags(stripe_group=stripe_group, affinity_key=affinity_key)
        if target_affinity_key is not None:
            tokens += ["-k", target_affinity_key]
        if minimum_extents is not None:
            tokens += ["-m", str(minimum_extents)]
        if recursive:
            tokens.append("-r")
        tokens.append(path)

        result = self.execute(tokens)
        if result.success:
            logger.debug("Defragmented %s", path)
        return result

    def prune(  # noqa: PLR0913
        self,
        path: str,
        *,
        recursive: bool = False,
        verbose: bool = False,
        debug: bool = False,
        stripe_group: str | None = None,
        affinity_key: str | None = None,
        minimum_extents: int | None = None,
    ) -> ExecutionResult:
        """Free preallocated blocks beyond EOF (``-p``)."""

        tokens = ["-p"]
        if debug:
            tokens.append("-D")
        if verbose:
            tokens.append("-v")
        tokens += _selection_flags(stripe_group=stripe_group, affinity_key=affinity_key)
        if minimum_extents is not None:
            tokens += ["-m", str(minimum_extents)]
        if recursive:
            tokens.append("-r")
        tokens.append(path)
        return self.execute(tokens)

    def _checked_output(self, tokens: Sequence[str]) -> str:
        result = self.execute(tokens)
        if not result.success:
            raise InvocationError(
                command_line=result.command_line,
                exit_code=result.exit_code,
                failure_kind=result.failure_kind,
                detail=result.launch_error or result.stderr or result.stdout,
            )
        return result.stdout

    def _raw(self, override: bool | None) -> bool:
        if override is None:
            return self.settings.return_raw_response
        return override


def _selection_flags(*, stripe_group: str | None, affinity_key: str | None) -> list[str]:
    tokens: list[str] = []
    if stripe_group is not None:
        tokens += ["-G", str(stripe_group)]
    if affinity_key is not None:
        tokens += ["-K", affinity_key]
    return tokens
