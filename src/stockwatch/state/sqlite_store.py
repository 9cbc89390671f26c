"""SQLite watchlist store."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from stockwatch.domain.models import WatchlistEntry
from stockwatch.state.store import DEFAULT_WATCHLIST

ONBOARDED_KEY = "has_onboarded"


class SqliteWatchlistStore:
    """SQLite-backed implementation of watchlist persistence."""

    def __init__(self, db_path: str, defaults: dict[str, str] | None = None) -> None:
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.connection = sqlite3.connect(db_path)
        self.connection.row_factory = sqlite3.Row
        self.defaults = dict(DEFAULT_WATCHLIST if defaults is None else defaults)
        self._initialize_schema()

    def get_watchlist(self) -> list[str]:
        return [entry.symbol for entry in self.entries()]

    def entries(self) -> list[WatchlistEntry]:
        self._onboard()
        rows = self.connection.execute(
            """
            SELECT symbol, display_name
            FROM watchlist
            ORDER BY position ASC
            """
        ).fetchall()
        return [
            WatchlistEntry(symbol=str(row["symbol"]), display_name=str(row["display_name"]))
            for row in rows
        ]

    def add_to_watchlist(self, symbol: str, display_name: str) -> None:
        self._onboard()
        now = self._utc_now()
        self.connection.execute(
            """
            INSERT INTO watchlist(symbol, display_name, position, added_ts)
            VALUES(?, ?, (SELECT COALESCE(MAX(position), 0) + 1 FROM watchlist), ?)
            ON CONFLICT(symbol) DO UPDATE SET display_name = excluded.display_name
            """,
            (symbol, display_name, now),
        )
        self.connection.commit()

    def remove_from_watchlist(self, symbol: str) -> None:
        self._onboard()
        self.connection.execute("DELETE FROM watchlist WHERE symbol = ?", (symbol,))
        self.connection.commit()

    def contains(self, symbol: str) -> bool:
        self._onboard()
        row = self.connection.execute(
            "SELECT 1 FROM watchlist WHERE symbol = ? LIMIT 1",
            (symbol,),
        ).fetchone()
        return row is not None

    def display_name(self, symbol: str) -> str | None:
        row = self.connection.execute(
            "SELECT display_name FROM watchlist WHERE symbol = ?",
            (symbol,),
        ).fetchone()
        if row is None:
            return None
        return str(row["display_name"])

    def close(self) -> None:
        self.connection.close()

    def _onboard(self) -> None:
        row = self.connection.execute(
            "SELECT value FROM settings WHERE key = ?",
            (ONBOARDED_KEY,),
        ).fetchone()
        if row is not None:
            return
        now = self._utc_now()
        self.connection.executemany(
            """
            INSERT OR IGNORE INTO watchlist(symbol, display_name, position, added_ts)
            VALUES(?, ?, ?, ?)
            """,
            [
                (symbol, name, position, now)
                for position, (symbol, name) in enumerate(self.defaults.items(), start=1)
            ],
        )
        self.connection.execute(
            "INSERT INTO settings(key, value) VALUES(?, ?)",
            (ONBOARDED_KEY, "1"),
        )
        self.connection.commit()

    def _initialize_schema(self) -> None:
        self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS settings(
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS watchlist(
                symbol TEXT PRIMARY KEY,
                display_name TEXT NOT NULL,
                position INTEGER NOT NULL,
                added_ts TEXT NOT NULL
            )
            """
        )
        self.connection.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_watchlist_position
            ON watchlist(position)
            """
        )
        self.connection.commit()

    @staticmethod
    def _utc_now() -> str:
        return datetime.now(tz=UTC).isoformat()
