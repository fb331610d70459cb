from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Iterable, Optional

from warung_pos.config import DB_PATH
from warung_pos.db.schema import ALL_SCHEMAS, INDEX_STATEMENTS

MEMORY = ":memory:"


class Database:
    """
    Local SQLite file holding client-side state (the session credential).
    Orders, billings and reports are server-owned and never stored here.
    """

    def __init__(self, db_path: Optional[Path | str] = None):
        if db_path == MEMORY:
            self.db_path: Path | str = MEMORY
        else:
            self.db_path = Path(db_path) if db_path else Path(DB_PATH)
        self.conn: Optional[sqlite3.Connection] = None

    def connect(self) -> None:
        """
        Establish database connection.
        - Creates the parent directory if missing
        """
        if self.db_path != MEMORY:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row

    def disconnect(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
        self.conn = None

    def close(self) -> None:
        """Alias for disconnect()."""
        self.disconnect()

    def execute(self, sql: str, params: Iterable[Any] = ()) -> None:
        """Execute SQL statement with parameters (with commit)."""
        assert self.conn is not None, "Database not connected"
        self.conn.execute(sql, tuple(params))
        self.conn.commit()

    def fetchone(self, sql: str, params: Iterable[Any] = ()) -> Optional[sqlite3.Row]:
        """Fetch single row."""
        assert self.conn is not None, "Database not connected"
        cur = self.conn.execute(sql, tuple(params))
        return cur.fetchone()

    def initialize_schema(self) -> None:
        """Create all tables and indexes if missing."""
        assert self.conn is not None, "Database not connected"

        for stmt in ALL_SCHEMAS:
            self.conn.execute(stmt)

        for stmt in INDEX_STATEMENTS:
            self.conn.execute(stmt)

        self.conn.commit()
