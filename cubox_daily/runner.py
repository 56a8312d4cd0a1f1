"""
Incremental sync pass orchestration.

One pass of the sync engine:
1. Refuse to start while another pass holds the guard or the pass lock
2. Page through Cubox cards, newest update first, from the saved resume point
3. Skip cards at or below the watermark or inside the recent-id window
4. Render the remaining cards into note entries (per-card failures are skipped)
5. Append all entries to today's daily note in a single write
6. Commit the cursor as a whole

Transport or storage failures abort the pass before the commit, so the next
pass resumes from the last committed checkpoint. The guard is always released.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from .config import AppConfig, get_api_key, get_domain
from .core.cursor import CursorStore, SyncCursor
from .core.errors import ConfigurationMissing, EntryError, InvalidTimestamp
from .core.recent import RecentIds
from .core.timeparse import now_instant, parse_instant
from .core.types import Article, ArticlePage, SyncResult
from .formatter import EntryFormatter
from .output.daily_note import DailyNotes
from .utils.logging import log_event

ENTRY_SEPARATOR = "\n\n"


class ArticleSource(Protocol):
    async def list_articles_page(
        self, last_card_id: str | None, last_card_update_time: str | None, limit: int = ...
    ) -> ArticlePage: ...

    async def get_article_content(self, article_id: str) -> str | None: ...


def article_instant(article: Article) -> int:
    """Comparable instant of a card: update time, falling back to creation time."""
    source_time = article.timestamp_source
    if not source_time:
        raise InvalidTimestamp(f"Cubox article {article.id} is missing update_time.")
    return parse_instant(source_time)


class SyncEngine:
    """Runs sync passes against one cursor.

    A pass starts only if the in-memory guard is clear and the store's
    pass lock can be taken, so passes never overlap within a process or
    across processes sharing the state file. The persisted ``syncing`` field
    only mirrors the guard so a stuck pass is visible on disk.
    """

    def __init__(
        self,
        cfg: AppConfig,
        source: ArticleSource,
        store: CursorStore,
        cursor: SyncCursor,
        formatter: EntryFormatter,
        notes: DailyNotes,
        logger: logging.Logger | None = None,
        notifier: Callable[[str], None] | None = None,
    ):
        self.cfg = cfg
        self.source = source
        self.store = store
        self.cursor = cursor
        self.formatter = formatter
        self.notes = notes
        self.logger = logger or logging.getLogger("cubox_daily")
        self.notifier = notifier
        self._syncing = False

    @property
    def syncing(self) -> bool:
        return self._syncing

    async def run_sync(self, verbose: bool = False) -> SyncResult:
        """Run one pass.

        Args:
            verbose: Log progress at INFO instead of DEBUG (manual passes)

        Returns:
            SyncResult with the number of appended entries, or an
            ALREADY_RUNNING result when another pass is active here or in
            another process

        Raises:
            ConfigurationMissing: If domain or API key is not configured
            CuboxApiError: If the Cubox API fails; nothing is committed
        """
        level = logging.INFO if verbose else logging.DEBUG
        log_event(self.logger, "Sync started", level=level, event="sync_start")

        if self._syncing:
            log_event(self.logger, "Sync already running", level=level, event="sync_already_running")
            return SyncResult.already_running()

        if not get_domain(self.cfg.cubox) or not get_api_key(self.cfg.cubox):
            log_event(self.logger, "Missing domain or API key", level=level, event="sync_config_missing")
            raise ConfigurationMissing("Cubox sync needs a domain and API key.")

        if not self.store.lock.acquire():
            log_event(self.logger, "Sync running in another process", level=level, event="sync_locked")
            return SyncResult.already_running()

        self._syncing = True
        try:
            # another process may have committed since this one last saved
            if self.store.path.exists():
                self.cursor = self.store.load()
            if not self.cursor.last_sync_instant:
                self.cursor.last_sync_instant = now_instant()
            self.cursor.syncing = True
            self.store.save(self.cursor)
            result = await self._run_pass(level)
        except Exception as exc:
            log_event(
                self.logger,
                "Sync failed",
                level=logging.ERROR,
                event="sync_failed",
                error=f"{type(exc).__name__}: {exc}",
            )
            raise
        finally:
            self._syncing = False
            self.cursor.syncing = False
            try:
                self.store.save(self.cursor)
            finally:
                self.store.lock.release()

        if result.appended and self.notifier is not None:
            self.notifier(f"Cubox: added {result.appended} new item(s) to today.")
        return result

    async def _run_pass(self, level: int) -> SyncResult:
        cursor = self.cursor
        card_id, card_time = cursor.page_cursor or (None, None)
        watermark = cursor.last_sync_instant
        recent = RecentIds(cursor.recent_ids, capacity=self.cfg.sync.recent_ids_capacity)
        emitted: set[str] = set()
        newest = watermark
        entries: list[str] = []
        result = SyncResult()
        limit = self.cfg.cubox.page_limit

        log_event(self.logger, "Watermark loaded", level=level, event="sync_watermark", watermark=watermark)

        while True:
            log_event(
                self.logger,
                "Requesting page",
                level=level,
                event="page_request",
                last_card_id=card_id,
                last_card_update_time=card_time,
            )
            page = await self.source.list_articles_page(card_id, card_time, limit)
            result.pages += 1
            log_event(
                self.logger,
                "Page received",
                level=level,
                event="page_received",
                count=len(page.articles),
                has_more=page.has_more,
            )
            if not page.articles:
                break

            for article in page.articles:
                try:
                    article_time = article_instant(article)
                except InvalidTimestamp as exc:
                    result.failed += 1
                    self._log_skipped_entry(article, exc)
                    continue

                if article_time <= watermark:
                    result.skipped += 1
                    continue
                # Cubox can bump update_time of a card after its content is extracted.
                if article.id in recent or article.id in emitted:
                    result.skipped += 1
                    continue

                try:
                    entry = await self.formatter.format(article)
                except EntryError as exc:
                    result.failed += 1
                    self._log_skipped_entry(article, exc)
                    continue

                entries.append(entry)
                recent.add(article.id)
                emitted.add(article.id)
                newest = max(newest, article_time)

            last = page.articles[-1]
            next_cursor = (last.id, last.timestamp_source)
            if next_cursor == (card_id, card_time):
                log_event(
                    self.logger,
                    "Pagination did not advance",
                    level=logging.WARNING,
                    event="page_stalled",
                    last_card_id=card_id,
                )
                break
            card_id, card_time = next_cursor
            if not page.has_more:
                break

        if entries:
            destination = self.notes.resolve_today()
            self.notes.append(destination, ENTRY_SEPARATOR.join(entries))
            result.destination = destination
        result.appended = len(entries)
        log_event(
            self.logger,
            "Entries appended",
            level=level,
            event="entries_appended",
            count=len(entries),
            destination=result.destination,
        )

        self._commit(card_id, card_time, watermark, newest, recent, bool(entries))
        log_event(
            self.logger,
            "Sync complete",
            level=level,
            event="sync_complete",
            appended=result.appended,
            failed=result.failed,
            skipped=result.skipped,
            pages=result.pages,
            watermark=self.cursor.last_sync_instant,
        )
        return result

    def _commit(
        self,
        card_id: str | None,
        card_time: str | None,
        watermark: int,
        newest: int,
        recent: RecentIds,
        produced: bool,
    ) -> None:
        cursor = self.cursor
        if card_id and card_time:
            cursor.last_card_id = card_id
            cursor.last_card_update_time = card_time

        candidate = watermark
        if card_time:
            try:
                candidate = parse_instant(card_time)
            except InvalidTimestamp:
                candidate = newest if produced else watermark
        elif produced:
            candidate = newest
        cursor.last_sync_instant = max(watermark, candidate)
        cursor.recent_ids = recent.to_list()
        self.store.save(cursor)

    def _log_skipped_entry(self, article: Article, exc: Exception) -> None:
        log_event(
            self.logger,
            "Entry skipped",
            level=logging.WARNING,
            event="entry_skipped",
            article_id=article.id,
            error_type=type(exc).__name__,
            error=str(exc),
        )
