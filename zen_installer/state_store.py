from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Protocol, Set

from .errors import PersistenceError

logger = logging.getLogger(__name__)

DONE_SUFFIX = "=true"
VERSION_PREFIX = "# pipeline: "


class CompletionStore(Protocol):
    """Log-structured record of completed step names."""

    def append(self, name: str) -> None:
        ...

    def contains_any(self, names: Iterable[str]) -> Set[str]:
        ...

    def completed(self) -> Set[str]:
        ...


def mark_done(store: CompletionStore, name: str) -> None:
    store.append(name)


def is_done(store: CompletionStore, name: str) -> bool:
    return name in store.contains_any([name])


class MemoryCompletionStore:
    """Non-durable store for dry runs and tests."""

    def __init__(self, done: Iterable[str] = ()):
        self._done: Set[str] = set(done)
        self.records: list[str] = []

    def append(self, name: str) -> None:
        if name in self._done:
            return
        self._done.add(name)
        self.records.append(name)

    def contains_any(self, names: Iterable[str]) -> Set[str]:
        return {n for n in names if n in self._done}

    def completed(self) -> Set[str]:
        return set(self._done)


class CompletionLog:
    """Append-only ``name=true`` log, fsync'd on every append.

    A missing file means nothing has completed yet. The first line of a new
    log records the pipeline version so a later run with a different step
    list can refuse to resume from it.
    """

    def __init__(self, path: str | Path, *, pipeline_version: Optional[str] = None):
        self.path = Path(path)
        self.pipeline_version = pipeline_version

    def _read_lines(self) -> list[str]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise PersistenceError(f"Unable to read completion log {self.path}: {e}") from e
        return text.splitlines()

    def recorded_version(self) -> Optional[str]:
        for line in self._read_lines():
            if line.startswith(VERSION_PREFIX):
                return line[len(VERSION_PREFIX):].strip()
        return None

    def check_version(self) -> None:
        """Refuse to resume from a log written by a different pipeline version."""

        if self.pipeline_version is None:
            return
        recorded = self.recorded_version()
        if recorded is not None and recorded != self.pipeline_version:
            raise PersistenceError(
                f"Completion log {self.path} was written by pipeline {recorded!r}, "
                f"this installer runs {self.pipeline_version!r}. "
                "Remove the log (--reset) to start over."
            )

    def completed(self) -> Set[str]:
        done: Set[str] = set()
        for line in self._read_lines():
            if line.endswith(DONE_SUFFIX) and not line.startswith("#"):
                done.add(line[: -len(DONE_SUFFIX)])
        return done

    def contains_any(self, names: Iterable[str]) -> Set[str]:
        done = self.completed()
        return {n for n in names if n in done}

    def append(self, name: str) -> None:
        if not name or "\n" in name or "=" in name:
            raise ValueError(f"Invalid step name: {name!r}")
        if name in self.completed():
            logger.debug("Completion of %s already recorded", name)
            return

        created = not self.path.exists()
        lines = []
        if created and self.pipeline_version is not None:
            lines.append(f"{VERSION_PREFIX}{self.pipeline_version}\n")
        lines.append(f"{name}{DONE_SUFFIX}\n")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write("".join(lines))
                f.flush()
                os.fsync(f.fileno())
            if created:
                _fsync_dir(self.path.parent)
        except OSError as e:
            raise PersistenceError(f"Unable to record completion of {name} in {self.path}: {e}") from e

        logger.info("State updated: %s", name)

    def reset(self) -> bool:
        """Delete the log so the next run starts from the first step."""

        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PersistenceError(f"Unable to remove completion log {self.path}: {e}") from e
        logger.info("Removed completion log %s", self.path)
        return True


def _fsync_dir(path: Path) -> None:
    fd = os.open(str(path), os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)
