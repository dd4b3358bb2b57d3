"""
Store for properties submitted from the browser extension.
Properties wait here until the web app picks them up and marks them processed.
"""
import json
import os
import random
import sqlite3
import string
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
    return out or "0"


def new_property_id() -> str:
    """Time-based base36 id with a random suffix."""
    suffix = "".join(random.choice(_BASE36) for _ in range(9))
    return _base36(int(time.time() * 1000)) + suffix


def build_property(data: Dict[str, Any]) -> Dict[str, Any]:
    """Fill defaults for a submitted property."""
    return {
        "id": new_property_id(),
        "url": data["url"],
        "title": data.get("title") or "Property",
        "address": data.get("address") or "",
        "thumbnail": data.get("thumbnail") or "",
        "price": data.get("price") or "",
        "coordinates": data.get("coordinates") or None,
        "isBTR": bool(data.get("isBTR") or False),
        "tags": list(data.get("tags") or []),
        "addedAt": datetime.now(timezone.utc).isoformat(),
        "processed": False,
    }


class PendingPropertyStore(ABC):
    @abstractmethod
    def insert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Add a property; returns the stored record."""

    @abstractmethod
    def list_pending(self) -> List[Dict[str, Any]]:
        """Properties not yet marked processed, oldest first."""

    @abstractmethod
    def mark_processed(self, property_id: str) -> bool:
        """Returns False if the id is unknown."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every property."""


class InMemoryPendingPropertyStore(PendingPropertyStore):
    def __init__(self) -> None:
        self._items: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def insert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        record = build_property(data)
        with self._lock:
            self._items.append(record)
        return dict(record)

    def list_pending(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(p) for p in self._items if not p["processed"]]

    def mark_processed(self, property_id: str) -> bool:
        with self._lock:
            for p in self._items:
                if p["id"] == property_id:
                    p["processed"] = True
                    return True
        return False

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


class SqlitePendingPropertyStore(PendingPropertyStore):
    """SQLite-backed store so pending properties survive a restart."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self.ensure_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def ensure_db(self) -> None:
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS pending_properties (
                    id TEXT PRIMARY KEY,
                    url TEXT NOT NULL,
                    title TEXT NOT NULL,
                    address TEXT,
                    thumbnail TEXT,
                    price TEXT,
                    coordinates TEXT,
                    is_btr INTEGER DEFAULT 0,
                    tags TEXT,
                    added_at TEXT NOT NULL,
                    processed INTEGER DEFAULT 0
                )
            """)
            conn.commit()
            logger.info(f"Pending properties table ensured at {self.db_path}")
        finally:
            conn.close()

    @staticmethod
    def _row_to_property(row: sqlite3.Row) -> Dict[str, Any]:
        return {
            "id": row["id"],
            "url": row["url"],
            "title": row["title"],
            "address": row["address"] or "",
            "thumbnail": row["thumbnail"] or "",
            "price": row["price"] or "",
            "coordinates": json.loads(row["coordinates"]) if row["coordinates"] else None,
            "isBTR": bool(row["is_btr"]),
            "tags": json.loads(row["tags"]) if row["tags"] else [],
            "addedAt": row["added_at"],
            "processed": bool(row["processed"]),
        }

    def insert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        record = build_property(data)
        conn = self._connect()
        try:
            conn.execute("""
                INSERT INTO pending_properties (
                    id, url, title, address, thumbnail, price, coordinates,
                    is_btr, tags, added_at, processed
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                record["id"],
                record["url"],
                record["title"],
                record["address"],
                record["thumbnail"],
                str(record["price"]),
                json.dumps(record["coordinates"]) if record["coordinates"] is not None else None,
                int(record["isBTR"]),
                json.dumps(record["tags"]),
                record["addedAt"],
                0,
            ))
            conn.commit()
        finally:
            conn.close()
        return record

    def list_pending(self) -> List[Dict[str, Any]]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT * FROM pending_properties WHERE processed = 0 ORDER BY added_at, rowid"
            ).fetchall()
        except sqlite3.DatabaseError as e:
            logger.warning(f"DB error listing pending properties: {e}")
            return []
        finally:
            conn.close()
        return [self._row_to_property(r) for r in rows]

    def mark_processed(self, property_id: str) -> bool:
        conn = self._connect()
        try:
            cursor = conn.execute(
                "UPDATE pending_properties SET processed = 1 WHERE id = ?", (property_id,)
            )
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.DatabaseError as e:
            logger.warning(f"DB error marking {property_id} processed: {e}")
            return False
        finally:
            conn.close()

    def clear(self) -> None:
        conn = self._connect()
        try:
            deleted = conn.execute("DELETE FROM pending_properties").rowcount
            conn.commit()
        finally:
            conn.close()
        logger.info(f"Cleared {deleted} pending properties")


def create_store(db_path: Optional[str] = None) -> PendingPropertyStore:
    """SQLite store when a path is configured, in-memory otherwise."""
    if db_path:
        return SqlitePendingPropertyStore(db_path)
    return InMemoryPendingPropertyStore()
