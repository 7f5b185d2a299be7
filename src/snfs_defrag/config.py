"""Runtime configuration for the snfsdefrag wrapper and batch scheduler."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import time
from pathlib import Path

DEFAULT_EXECUTABLE_FILE_PATH = Path("/usr/cvfs/bin/snfsdefrag")
DEFAULT_WORKLIST_PATH = Path("snfsdefrag_worklist.txt")
DEFAULT_BUSINESS_WEEKDAYS: frozenset[int] = frozenset({0, 1, 2, 3, 4})


@dataclass(slots=True)
class ToolSettings:
    """How the external utility is invoked and how its output is returned."""

    executable_path: Path = DEFAULT_EXECUTABLE_FILE_PATH
    timeout_seconds: float | None = None
    return_raw_response: bool = False
    parse_verbose_data: bool = True


@dataclass(slots=True)
class ScheduleSettings:
    """Business-hours window during which batch processing sleeps."""

    business_day_start: time | None = time(8, 0)
    business_day_end: time = time(17, 0)
    business_weekdays: frozenset[int] = DEFAULT_BUSINESS_WEEKDAYS


@dataclass(slots=True)
class BatchSettings:
    """Durable worklist and retry policy."""

    worklist_path: Path = DEFAULT_WORKLIST_PATH
    max_attempts: int | None = None


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    tool: ToolSettings = field(default_factory=ToolSettings)
    schedule: ScheduleSettings = field(default_factory=ScheduleSettings)
    batch: BatchSettings = field(default_factory=BatchSettings)
    log_level: str = "INFO"

    @classmethod
    def from_env(
        cls,
        *,
        executable_path: Path | None = None,
        worklist_path: Path | None = None,
    ) -> Settings:
        """Load settings from environment with defaults matching a stock StorNext install."""

        timeout = _env_float("SNFS_DEFRAG_TIMEOUT_SECONDS", 0.0)
        max_attempts = _env_int("SNFS_DEFRAG_MAX_ATTEMPTS", 0)
        settings = cls(
            tool=ToolSettings(
                executable_path=executable_path
                or Path(os.getenv("SNFS_DEFRAG_EXECUTABLE", str(DEFAULT_EXECUTABLE_FILE_PATH))),
                timeout_seconds=timeout if timeout > 0 else None,
                return_raw_response=_env_bool("SNFS_DEFRAG_RETURN_RAW_RESPONSE", default=False),
                parse_verbose_data=_env_bool("SNFS_DEFRAG_PARSE_VERBOSE_DATA", default=True),
            ),
            schedule=ScheduleSettings(
                business_day_start=_env_time("SNFS_DEFRAG_BUSINESS_DAY_START", "08:00"),
                business_day_end=_env_time("SNFS_DEFRAG_BUSINESS_DAY_END", "17:00")
                or time(17, 0),
                business_weekdays=_env_weekdays("SNFS_DEFRAG_BUSINESS_WEEKDAYS"),
            ),
            batch=BatchSettings(
                worklist_path=worklist_path
                or Path(os.getenv("SNFS_DEFRAG_WORKLIST_PATH", str(DEFAULT_WORKLIST_PATH))),
                max_attempts=max_attempts if max_attempts > 0 else None,
            ),
            log_level=os.getenv("SNFS_DEFRAG_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Raise configuration error if settings are inconsistent."""

        if self.tool.timeout_seconds is not None and self.tool.timeout_seconds <= 0:
            raise ValueError("SNFS_DEFRAG_TIMEOUT_SECONDS must be > 0 when set.")
        if self.batch.max_attempts is not None and self.batch.max_attempts < 1:
            raise ValueError("SNFS_DEFRAG_MAX_ATTEMPTS must be >= 1 when set.")
        start = self.schedule.business_day_start
        if start is not None and start >= self.schedule.business_day_end:
            raise ValueError(
                "SNFS_DEFRAG_BUSINESS_DAY_START must be earlier than SNFS_DEFRAG_BUSINESS_DAY_END.",
            )
        if not self.schedule.business_weekdays:
            raise ValueError("SNFS_DEFRAG_BUSINESS_WEEKDAYS must name at least one weekday.")
        if logging.getLevelName(self.log_level) == f"Level {self.log_level}":
            raise ValueError(f"Invalid SNFS_DEFRAG_LOG_LEVEL: {self.log_level!r}")


def parse_time_of_day(name: str, value: str) -> time | None:
    """Parse ``HH:MM`` into a time; an empty value disables the boundary."""

    normalized = value.strip()
    if not normalized:
        return None
    hours_raw, sep, minutes_raw = normalized.partition(":")
    try:
        hours = int(hours_raw)
        minutes = int(minutes_raw) if sep else 0
        return time(hours, minutes)
    except ValueError as error:
        raise ValueError(
            f"Invalid time of day for {name}: {value!r}. Expected format 'HH:MM'.",
        ) from error


def _env_time(name: str, default: str) -> time | None:
    return parse_time_of_day(name, os.getenv(name, default))


def _env_weekdays(name: str) -> frozenset[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return DEFAULT_BUSINESS_WEEKDAYS

    weekdays: set[int] = set()
    for part in raw.split(","):
        token = part.strip()
        if not token:
            continue
        try:
            weekday = int(token)
        except ValueError as error:
            raise ValueError(f"Invalid weekday in {name}: {token!r}") from error
        if weekday < 0 or weekday > 6:
            raise ValueError(f"Invalid weekday in {name}: {weekday!r} (expected 0..6)")
        weekdays.add(weekday)
    return frozenset(weekdays)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"Invalid numeric value for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
