"""
Command-line interface for the Cubox daily sync.

Uses Typer to expose manual sync, a recurring watch loop and cursor
inspection. Supports loading .env files for API key configuration.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv
import typer
from rich.console import Console
from rich.table import Table

from .config import AppConfig, get_api_key, load_config
from .core.cursor import CursorStore, SyncCursor
from .core.errors import CuboxSyncError
from .core.types import SyncResult, SyncStatus
from .fetch.client import CuboxClient
from .formatter import EntryFormatter
from .output.daily_note import DailyNotes
from .output.vault import Vault
from .runner import SyncEngine
from .scheduler import SyncScheduler
from .utils.logging import setup_logging

app = typer.Typer(add_completion=False, help="Sync Cubox cards into today's daily note.")
console = Console()

DEFAULT_CONFIG_PATH = Path("config.yaml")


def _load(config: Path | None, log_level: str | None) -> tuple[AppConfig, logging.Logger]:
    # Load environment variables from .env if available
    load_dotenv()
    if config is None and DEFAULT_CONFIG_PATH.exists():
        config = DEFAULT_CONFIG_PATH
    try:
        cfg = load_config(str(config) if config else None)
    except ValueError as exc:
        console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    if log_level:
        cfg.logging.level = log_level
    logger = setup_logging(cfg.logging, Path(cfg.logging.directory).expanduser())
    return cfg, logger


def _build_client(cfg: AppConfig) -> CuboxClient:
    return CuboxClient(
        cfg.cubox.domain,
        get_api_key(cfg.cubox) or "",
        timeout_seconds=cfg.cubox.timeout_seconds,
        retries=cfg.cubox.retries,
        trust_env=cfg.cubox.trust_env,
    )


def _build_engine(cfg: AppConfig, client: CuboxClient, logger: logging.Logger) -> SyncEngine:
    store = CursorStore(Path(cfg.sync.state_path).expanduser())
    cursor = store.open_for_startup()
    vault = Vault(Path(cfg.vault.root).expanduser())
    formatter = EntryFormatter(
        client,
        vault,
        link_template=cfg.vault.link_template,
        image_folder=cfg.vault.image_folder,
        image_width=cfg.vault.image_width,
    )
    notes = DailyNotes(vault, cfg.vault.daily_folder, cfg.vault.daily_format)
    return SyncEngine(
        cfg,
        client,
        store,
        cursor,
        formatter,
        notes,
        logger=logger,
        notifier=lambda message: console.print(f"[green]{message}[/green]"),
    )


def _print_result(result: SyncResult) -> None:
    if result.status is SyncStatus.ALREADY_RUNNING:
        console.print("[yellow]A sync pass is already running.[/yellow]")
        return
    console.print(
        "[bold]Sync summary[/bold]: "
        f"appended={result.appended}, failed={result.failed}, "
        f"skipped={result.skipped}, pages={result.pages}"
    )


@app.command()
def sync(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Run one sync pass now and append new cards to today's note."""
    cfg, logger = _load(config, log_level)

    async def _main() -> SyncResult:
        async with _build_client(cfg) as client:
            engine = _build_engine(cfg, client, logger)
            return await engine.run_sync(verbose=True)

    try:
        result = asyncio.run(_main())
    except (CuboxSyncError, OSError) as exc:
        console.print(f"[red]Sync failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    _print_result(result)


@app.command()
def watch(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    sync_now: bool = typer.Option(False, "--sync-now/--no-sync-now", help="Run one pass before waiting."),
):
    """Keep syncing at the configured interval until interrupted."""
    cfg, logger = _load(config, log_level)
    if cfg.sync.interval_minutes <= 0:
        console.print("Auto sync is disabled (sync.interval_minutes is 0).")
        return

    async def _main() -> None:
        async with _build_client(cfg) as client:
            engine = _build_engine(cfg, client, logger)
            scheduler = SyncScheduler(engine, cfg.sync.interval_minutes, logger)
            if sync_now:
                result = await scheduler.trigger()
                if result is not None:
                    _print_result(result)
            await scheduler.run_forever()

    console.print(f"Syncing every {cfg.sync.interval_minutes} minute(s). Press Ctrl+C to stop.")
    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        console.print("Stopped.")


@app.command()
def status(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
):
    """Show the persisted sync cursor."""
    cfg, _logger = _load(config, None)
    cursor = CursorStore(Path(cfg.sync.state_path).expanduser()).load()
    _print_cursor(cursor, cfg.sync.state_path)


@app.command("reset-cursor")
def reset_cursor(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
):
    """Forget sync progress; the next pass starts from the current time."""
    cfg, _logger = _load(config, None)
    if not yes:
        typer.confirm("Reset the sync cursor?", abort=True)
    store = CursorStore(Path(cfg.sync.state_path).expanduser())
    if not store.lock.acquire():
        console.print("[red]A sync pass is running; try again when it finishes.[/red]")
        raise typer.Exit(code=1)
    try:
        cursor = store.reset()
    finally:
        store.lock.release()
    _print_cursor(cursor, cfg.sync.state_path)


def _print_cursor(cursor: SyncCursor, state_path: str) -> None:
    table = Table(title=f"Sync state ({state_path})")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("last_sync_instant", str(cursor.last_sync_instant))
    table.add_row("last_card_id", cursor.last_card_id or "-")
    table.add_row("last_card_update_time", cursor.last_card_update_time or "-")
    table.add_row("recent_ids", str(len(cursor.recent_ids)))
    table.add_row("syncing", str(cursor.syncing))
    console.print(table)


if __name__ == "__main__":
    app()
