"""
Inter-process pass lock.

Every process syncing the same state file (a ``watch`` loop and a manual
``sync``) takes an exclusive ``flock`` on ``<state file>.lock`` for the length
of a pass. The kernel drops the lock when its holder exits, so a crashed
process never leaves it behind.
"""

from __future__ import annotations

import fcntl
import logging
from pathlib import Path
from typing import IO

logger = logging.getLogger("cubox_daily.lock")


class PassLock:
    """Non-blocking advisory lock around a lock file."""

    def __init__(self, path: Path):
        self.path = path
        self._handle: IO[str] | None = None

    @property
    def held(self) -> bool:
        return self._handle is not None

    def acquire(self) -> bool:
        """Take the lock; return False if another holder has it."""
        if self._handle is not None:
            return False
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle = open(self.path, "w", encoding="utf-8")
        try:
            fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            handle.close()
            logger.debug("Lock %s is held elsewhere", self.path)
            return False
        self._handle = handle
        return True

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle, fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None

    def is_free(self) -> bool:
        """Whether no one, this instance included, holds the lock right now."""
        if not self.acquire():
            return False
        self.release()
        return True
