"""
Daily note sink.

Resolves today's note from the configured folder and date pattern and
appends rendered entries to it with a read-modify-write.
"""

from __future__ import annotations

from datetime import datetime
import re

from .vault import EntryType, Vault, join_path

_EDGE_NEWLINES_RE = re.compile(r"^\n+|\n+$")


def merge_note_text(existing: str, payload: str) -> str:
    """Return the note text after appending payload.

    Leading and trailing newlines of the payload are dropped; a blank line
    separates the two parts only when both are non-empty.
    """
    trimmed = _EDGE_NEWLINES_RE.sub("", payload)
    separator = "\n\n" if existing and trimmed else ""
    return f"{existing}{separator}{trimmed}"


class DailyNotes:
    """Locate and extend the daily note for a given day."""

    def __init__(self, vault: Vault, folder: str = "", date_format: str = "%Y-%m-%d"):
        self.vault = vault
        self.folder = folder
        self.date_format = date_format

    def path_for(self, when: datetime) -> str:
        return join_path(self.folder, f"{when.strftime(self.date_format)}.md")

    def resolve_today(self, now: datetime | None = None) -> str:
        """Return today's note path, creating an empty note if it is missing.

        Raises:
            IsADirectoryError: If a folder already occupies the note path
        """
        path = self.path_for(now or datetime.now())
        entry = self.vault.get_entry(path)
        if entry is EntryType.FILE:
            return path
        if entry is EntryType.FOLDER:
            raise IsADirectoryError(f"Daily note path is a folder: {path}")
        self.vault.create(path, "")
        return path

    def read(self, path: str) -> str:
        return self.vault.read(path)

    def append(self, path: str, payload: str) -> None:
        existing = self.vault.read(path)
        self.vault.modify(path, merge_note_text(existing, payload))
