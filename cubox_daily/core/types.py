"""
Core data types for the Cubox daily sync.

This module defines the fundamental data structures used throughout the pipeline:
- Article: Card metadata returned by the Cubox list endpoint
- ArticlePage: One page of the descending-update-time listing
- EntryVariant: How an article is rendered into the daily note
- SyncResult: Outcome of one sync pass
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


IMAGE_KIND = "Image"


@dataclass(frozen=True)
class Article:
    """Represents one Cubox card.

    Attributes:
        id: Opaque Cubox card identifier
        title: Card title (may be empty)
        url: Source URL; non-empty marks the card as a link
        created_at: Creation timestamp string as sent by Cubox
        updated_at: Last update timestamp string as sent by Cubox
        kind: Cubox card type ("Article", "Snippet", "Memo", "Image", ...)
    """

    id: str
    title: str = ""
    url: str = ""
    created_at: str = ""
    updated_at: str = ""
    kind: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Article":
        """Build an Article from a raw card object of the list endpoint."""
        return cls(
            id=str(data.get("id") or ""),
            title=data.get("title") or "",
            url=data.get("url") or "",
            created_at=data.get("create_time") or "",
            updated_at=data.get("update_time") or "",
            kind=data.get("type") or "",
        )

    @property
    def timestamp_source(self) -> str:
        """Update time, falling back to creation time."""
        return self.updated_at or self.created_at


@dataclass
class ArticlePage:
    """One page of articles plus the continuation hint.

    has_more is derived from the page being full, not from the server.
    """

    articles: list[Article] = field(default_factory=list)
    has_more: bool = False


class EntryVariant(str, Enum):
    IMAGE = "image"
    LINK = "link"
    TEXT = "text"


def classify(article: Article) -> EntryVariant:
    """Pick the rendering variant; image wins over link, link over text."""
    if article.kind == IMAGE_KIND:
        return EntryVariant.IMAGE
    if article.url and article.url.strip():
        return EntryVariant.LINK
    return EntryVariant.TEXT


class SyncStatus(str, Enum):
    COMPLETED = "completed"
    ALREADY_RUNNING = "already_running"


@dataclass
class SyncResult:
    """Outcome of one sync pass.

    Attributes:
        status: COMPLETED, or ALREADY_RUNNING when another pass held the guard
        appended: Number of entries written to the daily note
        failed: Articles that raised a per-article error
        skipped: Articles filtered by the watermark or the recent-id window
        pages: Number of pages requested
        destination: Vault path of the note written to, if any
    """

    status: SyncStatus = SyncStatus.COMPLETED
    appended: int = 0
    failed: int = 0
    skipped: int = 0
    pages: int = 0
    destination: str | None = None

    @classmethod
    def already_running(cls) -> "SyncResult":
        return cls(status=SyncStatus.ALREADY_RUNNING)
