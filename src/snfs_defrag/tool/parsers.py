"""Parsers for the text shapes printed by snfsdefrag."""

from __future__ import annotations

import re
from dataclasses import dataclass

from snfs_defrag.errors import CandidateListingError

ERROR_PREFIX = "Error: "

ExtentRecord = dict[str, str]

_VERBOSE_CANDIDATE = re.compile(r"(.*):\s?(\d+)\sextents?:\s?(.*)")


@dataclass(slots=True, frozen=True)
class CandidateRecord:
    """One fragmented file reported by ``snfsdefrag -l -v``."""

    path: str
    extent_count: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {
            "path": self.path,
            "extent_count": self.extent_count,
            "message": self.message,
        }


def parse_extent_listing(raw_response: str) -> dict[str, list[ExtentRecord]]:
    """Parse ``snfsdefrag -e`` output into ``{path: [extent, ...]}``.

    Each blank-line separated block is a path line (ending with a colon), a
    column header row and one row per extent::

        /a/file.mov:
        #   group  frbase  fsbase  fsend  kbytes  depth
        0   5      0x0     0x371   0x372  28      2

    Blocks without a header or without any extent rows are skipped.
    """

    file_extents: dict[str, list[ExtentRecord]] = {}
    file_path: str | None = None
    headers: list[str] | None = None
    rows: list[list[str]] = []

    def _flush() -> None:
        if file_path and headers and rows:
            file_extents[file_path] = [dict(zip(headers, row, strict=False)) for row in rows]

    for line in raw_response.strip().splitlines():
        stripped = line.strip()
        if not stripped:
            _flush()
            file_path, headers, rows = None, None, []
            continue
        if file_path is None:
            file_path = stripped.removesuffix(":")
        elif headers is None:
            headers = stripped.split()
        else:
            rows.append(stripped.split())
    _flush()

    return file_extents


def parse_candidate_listing(raw_response: str) -> list[str]:
    """Return candidate lines from ``snfsdefrag -l`` output, one per file.

    Raises:
        CandidateListingError: the utility answered with ``Error: ...``.
    """

    if raw_response.startswith(ERROR_PREFIX):
        raise CandidateListingError(raw_response)
    return [line.strip() for line in raw_response.splitlines() if line.strip()]


def parse_verbose_candidates(candidates: list[str]) -> list[CandidateRecord]:
    """Match ``<path>: <N> extent(s): <message>`` lines; others are dropped."""

    records: list[CandidateRecord] = []
    for candidate in candidates:
        match = _VERBOSE_CANDIDATE.match(candidate)
        if match is None:
            continue
        path, extent_count, message = match.groups()
        records.append(CandidateRecord(path=path, extent_count=extent_count, message=message))
    return records
