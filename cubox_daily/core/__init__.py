"""
Core domain models and sync state.

This package contains data types, the error taxonomy and the cursor model,
independent of the Cubox transport and the vault layout.
"""

from .types import Article, ArticlePage, EntryVariant, SyncResult, SyncStatus, classify
from .recent import RecentIds
from .cursor import CursorStore, SyncCursor
from .lock import PassLock
from .timeparse import now_instant, parse_instant

__all__ = [
    "Article",
    "ArticlePage",
    "EntryVariant",
    "SyncResult",
    "SyncStatus",
    "classify",
    "RecentIds",
    "CursorStore",
    "SyncCursor",
    "PassLock",
    "parse_instant",
    "now_instant",
]
