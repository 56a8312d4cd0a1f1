"""
File storage rooted at a vault directory.

All paths handled here are vault-relative POSIX strings, so the same path
can be written into Markdown embeds and used on disk.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
import re

_MULTI_SLASH_RE = re.compile(r"/{2,}")


def normalize_path(path: str) -> str:
    """Normalize a vault-relative path.

    Backslashes become slashes, repeated slashes collapse and leading or
    trailing slashes are stripped. An empty result means the vault root.
    """
    cleaned = (path or "").replace("\\", "/").replace("\u00a0", " ").strip()
    cleaned = _MULTI_SLASH_RE.sub("/", cleaned)
    return cleaned.strip("/")


def join_path(folder: str, name: str) -> str:
    folder = normalize_path(folder)
    return normalize_path(f"{folder}/{name}" if folder else name)


class EntryType(str, Enum):
    FILE = "file"
    FOLDER = "folder"


class Vault:
    """Read and write files inside a vault directory."""

    def __init__(self, root: Path):
        self.root = root

    def resolve(self, path: str) -> Path:
        relative = normalize_path(path)
        if any(part == ".." for part in relative.split("/")):
            raise ValueError(f"Path escapes the vault: {path}")
        return self.root / relative if relative else self.root

    def get_entry(self, path: str) -> EntryType | None:
        target = self.resolve(path)
        if target.is_dir():
            return EntryType.FOLDER
        if target.exists():
            return EntryType.FILE
        return None

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def create_folder(self, path: str) -> None:
        self.resolve(path).mkdir(parents=True, exist_ok=True)

    def create_binary(self, path: str, data: bytes) -> None:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def create(self, path: str, text: str = "") -> None:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")

    def read(self, path: str) -> str:
        return self.resolve(path).read_text(encoding="utf-8")

    def modify(self, path: str, text: str) -> None:
        self.resolve(path).write_text(text, encoding="utf-8")
