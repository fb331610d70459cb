from __future__ import annotations

ALL_SCHEMAS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS credentials (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        token TEXT NOT NULL,
        user_json TEXT NOT NULL DEFAULT '{}',
        saved_at TEXT NOT NULL DEFAULT (datetime('now','localtime'))
    );
    """,
]

INDEX_STATEMENTS: list[str] = []
