"""Controllers for one-shot snfsdefrag CLI commands."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from snfs_defrag.config import Settings
from snfs_defrag.tool.client import SnfsDefrag
from snfs_defrag.tool.parsers import CandidateRecord, ExtentRecord


@dataclass(slots=True)
class CandidatesCommand:
    """CLI input for candidate listing."""

    executable_path: Path | None
    paths: tuple[str, ...]
    recursive: bool = False
    verbose: bool = False
    debug: bool = False
    stripe_group: str | None = None
    affinity_key: str | None = None
    minimum_extents: int | None = None
    raw: bool = False
    output_format: str = "table"


@dataclass(slots=True)
class ExtentsCommand:
    """CLI input for extent listing."""

    executable_path: Path | None
    paths: tuple[str, ...]
    recursive: bool = False
    blocks: bool = False
    totals: bool = False
    highlight_alignment: bool = False
    stripe_group: str | None = None
    affinity_key: str | None = None
    raw: bool = False
    output_format: str = "table"


@dataclass(slots=True)
class CountCommand:
    """CLI input for extent counts."""

    executable_path: Path | None
    paths: tuple[str, ...]
    recursive: bool = False
    blocks: bool = False
    totals: bool = False
    summary_only: bool = False
    stripe_group: str | None = None
    affinity_key: str | None = None


@dataclass(slots=True)
class DefragCommand:
    """CLI input for direct defragmentation, migration, or prune."""

    executable_path: Path | None
    paths: tuple[str, ...]
    minimum_extents: int | None = None
    stripe_group: str | None = None
    affinity_key: str | None = None
    target_affinity_key: str | None = None
    recursive: bool = False
    verbose: bool = False
    prune: bool = False


@dataclass(slots=True)
class DefragResult:
    """Per-target report to render in CLI."""

    lines: list[str]
    success: bool


class ToolCliController:
    """Coordinates direct snfsdefrag invocations for the CLI."""

    def list_candidates(self, command: CandidatesCommand) -> list[str]:
        client = _client(command.executable_path)
        lines: list[str] = []
        for path in command.paths:
            listing = client.list_candidates(
                path,
                recursive=command.recursive,
                verbose=command.verbose,
                debug=command.debug,
                stripe_group=command.stripe_group,
                affinity_key=command.affinity_key,
                minimum_extents=command.minimum_extents,
                return_raw_response=command.raw,
            )
            if isinstance(listing, str):
                lines.append(listing.rstrip("\n"))
                continue
            lines.extend(_render_candidates(path, listing, output_format=command.output_format))
        return lines

    def list_extents(self, command: ExtentsCommand) -> list[str]:
        client = _client(command.executable_path)
        lines: list[str] = []
        for path in command.paths:
            listing = client.list_extents(
                path,
                blocks=command.blocks,
                stripe_group=command.stripe_group,
                affinity_key=command.affinity_key,
                recursive=command.recursive,
                totals=command.totals,
                highlight_alignment=command.highlight_alignment,
                return_raw_response=command.raw,
            )
            if isinstance(listing, str):
                lines.append(listing.rstrip("\n"))
                continue
            lines.extend(_render_extents(listing, output_format=command.output_format))
        return lines

    def extent_counts(self, command: CountCommand) -> list[str]:
        client = _client(command.executable_path)
        return [
            client.extent_counts(
                path,
                blocks=command.blocks,
                stripe_group=command.stripe_group,
                affinity_key=command.affinity_key,
                recursive=command.recursive,
                totals=command.totals,
                summary_only=command.summary_only,
            ).rstrip("\n")
            for path in command.paths
        ]

    def defragment(self, command: DefragCommand) -> DefragResult:
        client = _client(command.executable_path)
        lines: list[str] = []
        success = True
        for path in command.paths:
            if command.prune:
                result = client.prune(
                    path,
                    recursive=command.recursive,
                    verbose=command.verbose,
                    stripe_group=command.stripe_group,
                    affinity_key=command.affinity_key,
                    minimum_extents=command.minimum_extents,
                )
            else:
                result = client.defragment(
                    path,
                    minimum_extents=command.minimum_extents,
                    stripe_group=command.stripe_group,
                    affinity_key=command.affinity_key,
                    target_affinity_key=command.target_affinity_key,
                    recursive=command.recursive,
                    verbose=command.verbose,
                )
            status = "ok" if result.success else f"failed ({result.failure_kind.value})"
            lines.append(f"{path}: {status} exit_code={result.exit_code}")
            if result.stdout.strip():
                lines.extend(f"  {line}" for line in result.stdout.strip().splitlines())
            if not result.success:
                success = False
                detail = (result.launch_error or result.stderr).strip()
                if detail:
                    lines.append(f"  error: {detail}")
        return DefragResult(lines=lines, success=success)


def _client(executable_path: Path | None) -> SnfsDefrag:
    settings = Settings.from_env(executable_path=executable_path)
    return SnfsDefrag(settings.tool)


def _render_candidates(
    path: str,
    listing: list[str] | list[CandidateRecord],
    *,
    output_format: str,
) -> list[str]:
    if output_format == "json":
        payload = [
            item.as_dict() if isinstance(item, CandidateRecord) else {"path": item}
            for item in listing
        ]
        return [json.dumps({"target": path, "candidates": payload}, indent=2)]

    lines = [f"Candidates under {path}: {len(listing)}"]
    for item in listing:
        if isinstance(item, CandidateRecord):
            lines.append(f"  {item.path} extents={item.extent_count} message={item.message}")
        else:
            lines.append(f"  {item}")
    return lines


def _render_extents(listing: dict[str, list[ExtentRecord]], *, output_format: str) -> list[str]:
    if output_format == "json":
        return [json.dumps(listing, indent=2)]

    lines: list[str] = []
    for file_path, extents in listing.items():
        lines.append(f"{file_path}: {len(extents)} extent(s)")
        for extent in extents:
            lines.append("  " + " ".join(f"{key}={value}" for key, value in extent.items()))
    return lines
