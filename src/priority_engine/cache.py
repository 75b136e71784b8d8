"""
Priority cache.

Maps task id to the last computed PriorityScore and the time it was
written. Entries older than the freshness window are never returned,
whether or not clear_expired() has physically removed them yet.

Two implementations share the PriorityCache protocol:
- InMemoryPriorityCache: process-local dict
- JsonFilePriorityCache: same semantics, persisted to a JSON file
"""

from collections.abc import Callable
from datetime import datetime
from datetime import timedelta
from pathlib import Path
from typing import Protocol
from typing import runtime_checkable

import logfire
from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError

from priority_engine.models import PriorityScore

FRESHNESS_WINDOW = timedelta(hours=1)


class CacheEntry(BaseModel):
    """A cached score and its write time."""

    score: PriorityScore
    stored_at: datetime


class CacheSnapshot(BaseModel):
    """On-disk layout of JsonFilePriorityCache."""

    entries: dict[str, CacheEntry] = Field(default_factory=dict)


@runtime_checkable
class PriorityCache(Protocol):
    """Protocol for score caches used by the engine."""

    def get(self, task_id: str) -> PriorityScore | None:
        """Fresh score for task_id, or None if absent or expired."""
        ...

    def set(self, task_id: str, score: PriorityScore) -> None:
        """Store score for task_id, overwriting any previous entry."""
        ...

    def clear_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        ...


class InMemoryPriorityCache:
    """Dict-backed cache with a freshness window."""

    def __init__(
        self,
        freshness_window: timedelta = FRESHNESS_WINDOW,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.freshness_window = freshness_window
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.stored_at <= self.freshness_window

    def get(self, task_id: str) -> PriorityScore | None:
        entry = self._entries.get(task_id)
        if entry is None or not self._is_fresh(entry):
            return None
        return entry.score

    def set(self, task_id: str, score: PriorityScore) -> None:
        self._entries[task_id] = CacheEntry(
            score=score, stored_at=self._clock()
        )

    def delete(self, task_id: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        return self._entries.pop(task_id, None) is not None

    def clear(self) -> None:
        """Remove every entry."""
        self._entries.clear()

    def clear_expired(self) -> int:
        expired = [
            task_id
            for task_id, entry in self._entries.items()
            if not self._is_fresh(entry)
        ]
        for task_id in expired:
            del self._entries[task_id]
        if expired:
            logfire.info("Cleared expired cache entries", count=len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class JsonFilePriorityCache(InMemoryPriorityCache):
    """
    Cache persisted to a JSON file.

    The whole snapshot is rewritten through a temp file and an atomic
    replace. The write is synchronous file I/O on the caller's thread, so
    with autosave (the default) every mutation blocks the event loop for
    one small write. Pass autosave=False to batch writes and call flush()
    at a convenient point, e.g. after a batch. An unreadable file starts
    the cache empty.
    """

    def __init__(
        self,
        path: str | Path,
        freshness_window: timedelta = FRESHNESS_WINDOW,
        clock: Callable[[], datetime] = datetime.now,
        autosave: bool = True,
    ) -> None:
        super().__init__(freshness_window=freshness_window, clock=clock)
        self.path = Path(path)
        self.autosave = autosave
        self._dirty = False
        self._entries = self._load()

    def _load(self) -> dict[str, CacheEntry]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
            return CacheSnapshot.model_validate_json(raw).entries
        except (OSError, ValidationError) as exc:
            logfire.warn(
                "Discarding unreadable priority cache",
                path=str(self.path),
                error=str(exc),
            )
            return {}

    def _save(self) -> None:
        self._dirty = True
        if self.autosave:
            self.flush()

    def flush(self) -> None:
        """Write pending changes to disk. No-op when nothing changed."""
        if not self._dirty:
            return
        snapshot = CacheSnapshot(entries=self._entries)
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        temp_path.write_text(
            snapshot.model_dump_json(indent=2), encoding="utf-8"
        )
        temp_path.replace(self.path)
        self._dirty = False

    def set(self, task_id: str, score: PriorityScore) -> None:
        super().set(task_id, score)
        self._save()

    def delete(self, task_id: str) -> bool:
        removed = super().delete(task_id)
        if removed:
            self._save()
        return removed

    def clear(self) -> None:
        super().clear()
        self._save()

    def clear_expired(self) -> int:
        removed = super().clear_expired()
        if removed:
            self._save()
        return removed
