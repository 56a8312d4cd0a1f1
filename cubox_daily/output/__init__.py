"""
Vault output.

This package provides vault storage primitives and the daily note sink.
"""

from .daily_note import DailyNotes, merge_note_text
from .vault import EntryType, Vault, normalize_path

__all__ = ["DailyNotes", "merge_note_text", "EntryType", "Vault", "normalize_path"]
