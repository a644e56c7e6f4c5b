"""
Key-value persistence, two interchangeable stores with the same API:

- get_item(key) -> str | None
- set_item(key, value) -> None
- remove_item(key) -> None   (missing keys are fine)

MemoryKVStore keeps values in a dict (tests, throwaway sessions).
DBKVStore keeps them in the kv_items table through a SQLAlchemy session.

Stores raise on failure; the callers (records, settings) decide what a failure means.
"""

from __future__ import annotations

from datetime import datetime
from threading import RLock
from typing import Dict, Optional

from sqlalchemy.orm import Session

from .models import KVItem


class MemoryKVStore:
    def __init__(self) -> None:
        self._items: Dict[str, str] = {}
        self._lock = RLock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


class DBKVStore:
    """Same API as MemoryKVStore, backed by the database."""

    def __init__(self, db: Session):
        self.db = db

    def get_item(self, key: str) -> Optional[str]:
        item = self.db.get(KVItem, key)
        if not item:
            return None
        return item.value

    def set_item(self, key: str, value: str) -> None:
        try:
            item = self.db.get(KVItem, key)
            if item is None:
                self.db.add(KVItem(key=key, value=value, updated_at=datetime.utcnow()))
            else:
                item.value = value
                item.updated_at = datetime.utcnow()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def remove_item(self, key: str) -> None:
        try:
            item = self.db.get(KVItem, key)
            if item is not None:
                self.db.delete(item)
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
