"""CLI entrypoint for snfs-defrag."""

import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import rich_click as click

from snfs_defrag import __version__
from snfs_defrag.batch.controllers import (
    BatchCliController,
    BatchRunCommand,
    WorklistSeedCommand,
    WorklistShowCommand,
)
from snfs_defrag.config import Settings
from snfs_defrag.errors import SnfsDefragError
from snfs_defrag.tool.controllers import (
    CandidatesCommand,
    CountCommand,
    DefragCommand,
    ExtentsCommand,
    ToolCliController,
)

click.rich_click.USE_MARKDOWN = True
TOOL_CONTROLLER = ToolCliController()
BATCH_CONTROLLER = BatchCliController()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

T = TypeVar("T")

executable_option = click.option(
    "--executable",
    "executable_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to snfsdefrag (default: SNFS_DEFRAG_EXECUTABLE or /usr/cvfs/bin/snfsdefrag).",
)
worklist_option = click.option(
    "--worklist",
    "worklist_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Worklist file (default: SNFS_DEFRAG_WORKLIST_PATH).",
)
stripe_group_option = click.option(
    "--stripe-group",
    default=None,
    help="Only operate on files with an extent in this stripe group (-G).",
)
affinity_key_option = click.option(
    "--affinity-key",
    default=None,
    help="Only operate on files with this affinity key, '!key' to negate (-K).",
)
paths_argument = click.argument("paths", nargs=-1, required=True)


@click.group()
@click.version_option(version=__version__, prog_name="snfs-defrag")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level (default: SNFS_DEFRAG_LOG_LEVEL or INFO).",
)
def snfs_defrag(log_level: str | None) -> None:
    """StorNext snfsdefrag automation CLI."""

    level = log_level.upper() if log_level else _guarded(Settings.from_env).log_level
    logging.basicConfig(
        stream=sys.stdout,
        level=level,
        format=LOG_FORMAT,
    )


@snfs_defrag.command("candidates")
@executable_option
@paths_argument
@click.option("-r", "--recursive", is_flag=True, default=False, help="Recurse into directories.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Include extent counts.")
@click.option("--debug/--no-debug", default=False, help="Turn on snfsdefrag debug messages.")
@stripe_group_option
@affinity_key_option
@click.option(
    "--minimum-extents",
    type=click.IntRange(min=0),
    default=None,
    help="Only list files with more than this many extents (-m).",
)
@click.option("--raw/--parsed", default=False, show_default=True, help="Print raw utility output.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    show_default=True,
)
def candidates(  # noqa: PLR0913
    executable_path: Path | None,
    paths: tuple[str, ...],
    recursive: bool,
    verbose: bool,
    debug: bool,
    stripe_group: str | None,
    affinity_key: str | None,
    minimum_extents: int | None,
    raw: bool,
    output_format: str,
) -> None:
    """List files fragmented enough to be defragmented."""

    _emit_lines(
        _guarded(
            lambda: TOOL_CONTROLLER.list_candidates(
                CandidatesCommand(
                    executable_path=executable_path,
                    paths=paths,
                    recursive=recursive,
                    verbose=verbose,
                    debug=debug,
                    stripe_group=stripe_group,
                    affinity_key=affinity_key,
                    minimum_extents=minimum_extents,
                    raw=raw,
                    output_format=output_format.lower(),
                ),
            ),
        ),
    )


@snfs_defrag.command("extents")
@executable_option
@paths_argument
@click.option("-r", "--recursive", is_flag=True, default=False, help="Recurse into directories.")
@click.option("--blocks/--kbytes", default=False, show_default=True, help="Extent size unit.")
@click.option("--totals/--no-totals", default=False, help="Append totals (-t).")
@click.option(
    "--highlight-alignment/--no-highlight-alignment",
    default=False,
    help="Mark stripe-aligned addresses (-E).",
)
@stripe_group_option
@affinity_key_option
@click.option("--raw/--parsed", default=False, show_default=True, help="Print raw utility output.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    show_default=True,
)
def extents(  # noqa: PLR0913
    executable_path: Path | None,
    paths: tuple[str, ...],
    recursive: bool,
    blocks: bool,
    totals: bool,
    highlight_alignment: bool,
    stripe_group: str | None,
    affinity_key: str | None,
    raw: bool,
    output_format: str,
) -> None:
    """List the extents of each file."""

    _emit_lines(
        _guarded(
            lambda: TOOL_CONTROLLER.list_extents(
                ExtentsCommand(
                    executable_path=executable_path,
                    paths=paths,
                    recursive=recursive,
                    blocks=blocks,
                    totals=totals,
                    highlight_alignment=highlight_alignment,
                    stripe_group=stripe_group,
                    affinity_key=affinity_key,
                    raw=raw,
                    output_format=output_format.lower(),
                ),
            ),
        ),
    )


@snfs_defrag.command("count")
@executable_option
@paths_argument
@click.option("-r", "--recursive", is_flag=True, default=False, help="Recurse into directories.")
@click.option("--blocks/--kbytes", default=False, show_default=True, help="Extent size unit.")
@click.option("--totals/--no-totals", default=False, help="Append totals (-t).")
@click.option("--summary-only", is_flag=True, default=False, help="Only print the totals (-T).")
@stripe_group_option
@affinity_key_option
def count(  # noqa: PLR0913
    executable_path: Path | None,
    paths: tuple[str, ...],
    recursive: bool,
    blocks: bool,
    totals: bool,
    summary_only: bool,
    stripe_group: str | None,
    affinity_key: str | None,
) -> None:
    """Print extent counts as reported by snfsdefrag."""

    _emit_lines(
        _guarded(
            lambda: TOOL_CONTROLLER.extent_counts(
                CountCommand(
                    executable_path=executable_path,
                    paths=paths,
                    recursive=recursive,
                    blocks=blocks,
                    totals=totals,
                    summary_only=summary_only,
                    stripe_group=stripe_group,
                    affinity_key=affinity_key,
                ),
            ),
        ),
    )


@snfs_defrag.command("defrag")
@executable_option
@paths_argument
@click.option(
    "--minimum-extents",
    type=click.IntRange(min=0),
    default=None,
    help="Only defragment files with more than this many extents; 0 migrates every file (-m).",
)
@stripe_group_option
@affinity_key_option
@click.option(
    "--target-affinity-key",
    default=None,
    help="Place new extents on stripe groups with this affinity key (-k).",
)
@click.option("-r", "--recursive", is_flag=True, default=False, help="Recurse into directories.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose snfsdefrag output.")
def defrag(  # noqa: PLR0913
    executable_path: Path | None,
    paths: tuple[str, ...],
    minimum_extents: int | None,
    stripe_group: str | None,
    affinity_key: str | None,
    target_affinity_key: str | None,
    recursive: bool,
    verbose: bool,
) -> None:
    """Defragment or migrate files right now, ignoring business hours."""

    _emit_defrag(
        DefragCommand(
            executable_path=executable_path,
            paths=paths,
            minimum_extents=minimum_extents,
            stripe_group=stripe_group,
            affinity_key=affinity_key,
            target_affinity_key=target_affinity_key,
            recursive=recursive,
            verbose=verbose,
        ),
    )


@snfs_defrag.command("prune")
@executable_option
@paths_argument
@click.option("-r", "--recursive", is_flag=True, default=False, help="Recurse into directories.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose snfsdefrag output.")
def prune(
    executable_path: Path | None,
    paths: tuple[str, ...],
    recursive: bool,
    verbose: bool,
) -> None:
    """Free preallocated space beyond EOF."""

    _emit_defrag(
        DefragCommand(
            executable_path=executable_path,
            paths=paths,
            recursive=recursive,
            verbose=verbose,
            prune=True,
        ),
    )


@snfs_defrag.group()
def worklist() -> None:
    """Worklist maintenance commands."""


@worklist.command("seed")
@executable_option
@worklist_option
@paths_argument
@click.option("--recursive/--no-recursive", default=True, show_default=True)
@click.option(
    "--minimum-extents",
    type=click.IntRange(min=0),
    default=None,
    help="Only queue files with more than this many extents (-m).",
)
@stripe_group_option
@affinity_key_option
def worklist_seed(  # noqa: PLR0913
    executable_path: Path | None,
    worklist_path: Path | None,
    paths: tuple[str, ...],
    recursive: bool,
    minimum_extents: int | None,
    stripe_group: str | None,
    affinity_key: str | None,
) -> None:
    """Append candidate files under PATHS to the worklist."""

    _emit_lines(
        _guarded(
            lambda: BATCH_CONTROLLER.seed_worklist(
                WorklistSeedCommand(
                    executable_path=executable_path,
                    worklist_path=worklist_path,
                    paths=paths,
                    recursive=recursive,
                    minimum_extents=minimum_extents,
                    stripe_group=stripe_group,
                    affinity_key=affinity_key,
                ),
            ),
        ),
    )


@worklist.command("show")
@worklist_option
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Max items to print.")
def worklist_show(worklist_path: Path | None, limit: int | None) -> None:
    """Print pending worklist items."""

    _emit_lines(
        _guarded(
            lambda: BATCH_CONTROLLER.show_worklist(
                WorklistShowCommand(worklist_path=worklist_path, limit=limit),
            ),
        ),
    )


@snfs_defrag.command("batch")
@executable_option
@worklist_option
@click.option(
    "--max-dispatches",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many defragmentation attempts.",
)
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    default=None,
    help="Drop an item after this many failures (default: retry forever).",
)
@click.option(
    "--ignore-business-hours",
    is_flag=True,
    default=False,
    help="Do not sleep through business hours.",
)
def batch(
    executable_path: Path | None,
    worklist_path: Path | None,
    max_dispatches: int | None,
    max_attempts: int | None,
    ignore_business_hours: bool,
) -> None:
    """Defragment every file in the worklist, retrying failures at the tail."""

    _emit_lines(
        _guarded(
            lambda: BATCH_CONTROLLER.run_batch(
                BatchRunCommand(
                    executable_path=executable_path,
                    worklist_path=worklist_path,
                    max_dispatches=max_dispatches,
                    max_attempts=max_attempts,
                    ignore_business_hours=ignore_business_hours,
                ),
            ),
        ),
    )


def _emit_defrag(command: DefragCommand) -> None:
    result = _guarded(lambda: TOOL_CONTROLLER.defragment(command))
    _emit_lines(result.lines)
    if not result.success:
        raise SystemExit(1)


def _guarded(action: Callable[[], T]) -> T:
    try:
        return action()
    except (SnfsDefragError, ValueError) as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    snfs_defrag()
