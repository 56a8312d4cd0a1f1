"""
Cubox Daily Sync - incremental Cubox to daily note sync.

This package polls the Cubox third-party API and appends cards saved or
updated since the last pass to today's note in a Markdown vault, keeping a
persisted cursor so repeated or interrupted passes never append twice.

Main entry point is the CLI via `cubox-daily sync` or `cubox-daily watch`.

Example:
    $ cubox-daily sync -c config.yaml
"""

__all__ = ["__version__", "SyncEngine", "SyncResult", "SyncStatus", "load_config"]
__version__ = "0.1.0"

from .config import load_config
from .core.types import SyncResult, SyncStatus
from .runner import SyncEngine
