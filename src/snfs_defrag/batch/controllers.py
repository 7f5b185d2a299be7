"""Controllers for worklist and batch CLI commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from snfs_defrag.batch.schedule import BusinessHours
from snfs_defrag.batch.scheduler import BatchScheduler
from snfs_defrag.batch.worklist import WorklistStore
from snfs_defrag.config import Settings
from snfs_defrag.tool.client import SnfsDefrag


@dataclass(slots=True)
class BatchRunCommand:
    """CLI input for a scheduler run."""

    executable_path: Path | None
    worklist_path: Path | None
    max_dispatches: int | None = None
    ignore_business_hours: bool = False
    max_attempts: int | None = None


@dataclass(slots=True)
class WorklistSeedCommand:
    """CLI input for filling the worklist from candidate listings."""

    executable_path: Path | None
    worklist_path: Path | None
    paths: tuple[str, ...]
    recursive: bool = False
    minimum_extents: int | None = None
    stripe_group: str | None = None
    affinity_key: str | None = None


@dataclass(slots=True)
class WorklistShowCommand:
    """CLI input for printing the pending worklist."""

    worklist_path: Path | None
    limit: int | None = None


class BatchCliController:
    """Coordinates worklist maintenance and scheduler runs."""

    def run_batch(self, command: BatchRunCommand) -> list[str]:
        settings = Settings.from_env(
            executable_path=command.executable_path,
            worklist_path=command.worklist_path,
        )
        business_hours = (
            None
            if command.ignore_business_hours
            else BusinessHours.from_settings(settings.schedule)
        )
        scheduler = BatchScheduler(
            runner=SnfsDefrag(settings.tool),
            store=WorklistStore(settings.batch.worklist_path),
            business_hours=business_hours,
            max_attempts=command.max_attempts or settings.batch.max_attempts,
        )
        summary = scheduler.run(max_dispatches=command.max_dispatches)
        return [
            "Batch summary: "
            f"state={summary.final_state.value} passes={summary.passes} "
            f"dispatched={summary.dispatched} succeeded={summary.succeeded} "
            f"failed={summary.failed} requeued={summary.requeued} "
            f"dropped={summary.dropped} remaining={summary.remaining} "
            f"slept_seconds={summary.slept_seconds:.0f}",
        ]

    def seed_worklist(self, command: WorklistSeedCommand) -> list[str]:
        settings = Settings.from_env(
            executable_path=command.executable_path,
            worklist_path=command.worklist_path,
        )
        client = SnfsDefrag(settings.tool)
        found: list[str] = []
        for path in command.paths:
            candidates = client.list_candidates(
                path,
                recursive=command.recursive,
                stripe_group=command.stripe_group,
                affinity_key=command.affinity_key,
                minimum_extents=command.minimum_extents,
                return_raw_response=False,
            )
            found.extend(str(candidate) for candidate in candidates)

        store = WorklistStore(settings.batch.worklist_path)
        items = store.append(found)
        return [
            f"Worklist seeded: added={len(found)} total={len(items)}",
            f"Worklist: {store.path}",
        ]

    def show_worklist(self, command: WorklistShowCommand) -> list[str]:
        settings = Settings.from_env(worklist_path=command.worklist_path)
        store = WorklistStore(settings.batch.worklist_path)
        items = store.load()
        shown = items if command.limit is None else items[: command.limit]
        return [f"Worklist {store.path}: {len(items)} item(s)", *(f"  {item}" for item in shown)]
