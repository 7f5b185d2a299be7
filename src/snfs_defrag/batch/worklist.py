"""Plain-text worklist file used as a durable FIFO-with-retry queue."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from collections.abc import Iterable
from pathlib import Path

from snfs_defrag.errors import WorklistIOError, WorklistNotFoundError

logger = logging.getLogger(__name__)


class WorklistStore:
    """Reads and writes one file path per line; no header, no checksum."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> list[str]:
        """Return non-empty, trimmed lines in file order (duplicates kept)."""

        try:
            content = self.path.read_text("utf-8")
        except FileNotFoundError as error:
            raise WorklistNotFoundError(f"Worklist file not found: {self.path}") from error
        except OSError as error:
            raise WorklistIOError(f"Failed to read worklist {self.path}: {error}") from error

        items = [line.strip() for line in content.splitlines() if line.strip()]
        logger.debug("Loaded %d worklist item(s) from %s", len(items), self.path)
        return items

    def persist(self, items: Iterable[str]) -> None:
        """Replace the file contents atomically via a temp file in the same directory."""

        lines = list(items)
        content = "\n".join(lines)
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=directory,
            )
            tmp_path = Path(tmp_name)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    if self.path.exists():
                        os.chmod(handle.fileno(), stat.S_IMODE(self.path.stat().st_mode))
                    handle.write(content)
                    if content:
                        handle.write("\n")
                    handle.flush()
                    os.fsync(handle.fileno())
                tmp_path.replace(self.path)
            except BaseException:
                tmp_path.unlink(missing_ok=True)
                raise
        except OSError as error:
            raise WorklistIOError(f"Failed to write worklist {self.path}: {error}") from error
        logger.debug("Persisted %d worklist item(s) to %s", len(lines), self.path)

    def append(self, paths: Iterable[str]) -> list[str]:
        """Append ``paths`` to the stored worklist, creating it if missing."""

        items = self.load() if self.exists() else []
        added = [path.strip() for path in paths if path.strip()]
        items.extend(added)
        self.persist(items)
        return items
