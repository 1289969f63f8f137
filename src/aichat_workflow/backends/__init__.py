"""History store backends and a name-based registry."""

from pathlib import Path
from typing import Optional

from ..provider import HistoryStore
from .memory import MemoryHistoryStore
from .sqlite_store import SQLiteHistoryStore

STORES = {
    SQLiteHistoryStore.name: SQLiteHistoryStore,
    MemoryHistoryStore.name: MemoryHistoryStore,
}


def get_history_store(name: str = "sqlite", db_path: Optional[Path] = None) -> HistoryStore:
    """Build the configured history store."""
    try:
        store_class = STORES[name]
    except KeyError:
        raise ValueError(f"Unknown history store: {name}") from None
    if store_class is SQLiteHistoryStore:
        return SQLiteHistoryStore(db_path)
    return store_class()
