"""Key-value stores for search history and analytics (small ordered JSON lists)."""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import aiosqlite


# Default database location
DEFAULT_DB_PATH = Path.home() / ".catalog-picker" / "history.db"


class HistoryStore(Protocol):
    """Storage for small ordered lists of JSON values, keyed by name.

    The query controller owns ordering, bounding and deduplication; stores
    only persist what they are given.
    """

    async def get(self, key: str) -> List[Any]:
        ...

    async def set(self, key: str, values: List[Any]) -> None:
        ...


class MemoryHistoryStore:
    """Process-local store for sessions that do not persist history."""

    def __init__(self, initial: Optional[Dict[str, List[Any]]] = None):
        self._data: Dict[str, List[Any]] = {k: list(v) for k, v in (initial or {}).items()}

    async def get(self, key: str) -> List[Any]:
        return list(self._data.get(key, []))

    async def set(self, key: str, values: List[Any]) -> None:
        self._data[key] = list(values)


class SqliteHistoryStore:
    """Async SQLite store for search history and analytics lists."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize the history store.

        Args:
            db_path: Path to SQLite database. Defaults to ~/.catalog-picker/history.db
        """
        self.db_path = db_path or DEFAULT_DB_PATH
        self._connection: Optional[aiosqlite.Connection] = None

    async def initialize(self) -> None:
        """Initialize the database, creating tables if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row

        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS search_history (
                key TEXT PRIMARY KEY,
                items TEXT NOT NULL,
                last_updated TIMESTAMP
            )
        """)

        await self._connection.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def get(self, key: str) -> List[Any]:
        """Get the list stored under a key.

        Args:
            key: List name (e.g. "catalog_search_history")

        Returns:
            Stored list, or an empty list if nothing is stored
        """
        if not self._connection:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        cursor = await self._connection.execute(
            "SELECT items FROM search_history WHERE key = ?",
            (key,)
        )
        row = await cursor.fetchone()

        if row is None:
            return []

        try:
            items = json.loads(row["items"])
        except json.JSONDecodeError:
            return []

        return items if isinstance(items, list) else []

    async def set(self, key: str, values: List[Any]) -> None:
        """Replace the list stored under a key.

        Args:
            key: List name
            values: Ordered values to store
        """
        if not self._connection:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        now = datetime.utcnow().isoformat()

        await self._connection.execute("""
            INSERT INTO search_history (key, items, last_updated)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                items = excluded.items,
                last_updated = excluded.last_updated
        """, (key, json.dumps(list(values)), now))

        await self._connection.commit()
