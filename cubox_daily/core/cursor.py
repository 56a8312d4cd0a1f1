"""
Persisted sync cursor.

The cursor records how far the sync has progressed: the watermark instant,
the pagination resume point and the recent-id window. It is stored as a small
JSON file next to the configuration and written atomically.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any

from .lock import PassLock
from .timeparse import now_instant

logger = logging.getLogger("cubox_daily.cursor")


@dataclass
class SyncCursor:
    """Checkpoint of the incremental sync.

    Attributes:
        last_sync_instant: Watermark in epoch ms; articles at or below it are synced
        last_card_id: Id of the last card consumed by pagination
        last_card_update_time: Update time string of that card
        recent_ids: Ids appended in recent passes, oldest first
        syncing: Mirror of the pass guard, kept for inspection only
    """

    last_sync_instant: int = 0
    last_card_id: str | None = None
    last_card_update_time: str | None = None
    recent_ids: list[str] = field(default_factory=list)
    syncing: bool = False

    @property
    def page_cursor(self) -> tuple[str, str] | None:
        if self.last_card_id and self.last_card_update_time:
            return (self.last_card_id, self.last_card_update_time)
        return None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SyncCursor":
        """Merge raw persisted data over defaults, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        data = {key: value for key, value in raw.items() if key in known}
        cursor = cls(**data)
        cursor.recent_ids = [str(item) for item in (cursor.recent_ids or [])]
        cursor.last_sync_instant = int(cursor.last_sync_instant or 0)
        cursor.syncing = bool(cursor.syncing)
        return cursor

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class CursorStore:
    """JSON file persistence for a single SyncCursor.

    ``lock`` guards sync passes across every process sharing the file.
    """

    def __init__(self, path: Path):
        self.path = path
        self.lock = PassLock(path.with_name(f"{path.name}.lock"))

    def load(self) -> SyncCursor:
        """Load the cursor, falling back to defaults if missing or unreadable."""
        if not self.path.exists():
            return SyncCursor()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Could not parse sync state %s: %s", self.path, exc)
            return SyncCursor()
        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed sync state %s", self.path)
            return SyncCursor()
        return SyncCursor.from_dict(raw)

    def save(self, cursor: SyncCursor) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".cubox_sync.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(cursor.to_dict(), handle, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def open_for_startup(self, now: int | None = None) -> SyncCursor:
        """Load the cursor for a fresh process.

        A guard left set by a crashed process is cleared (one set by a
        process still holding the pass lock is kept), and an empty
        watermark is seeded with the current time so the first pass only
        picks up cards saved from now on.
        """
        cursor = self.load()
        changed = False
        if cursor.syncing and self.lock.is_free():
            logger.info("Clearing stale sync guard in %s", self.path)
            cursor.syncing = False
            changed = True
        if not cursor.last_sync_instant:
            cursor.last_sync_instant = now if now is not None else now_instant()
            changed = True
        if changed:
            self.save(cursor)
        return cursor

    def reset(self) -> SyncCursor:
        cursor = SyncCursor()
        self.save(cursor)
        return cursor
