"""
Credit ledger — every new user starts with a few free generations and
each successful generate call costs one.

SQLiteCredits is the persistent ledger; MemoryCredits has the same
interface for tests and throwaway servers.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Protocol

log = logging.getLogger("enclosureAI.credits")

FREE_CREDITS = 5

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id         TEXT    PRIMARY KEY,
    credits    INTEGER NOT NULL,
    created_at TEXT    NOT NULL DEFAULT (datetime('now'))
)
"""


class CreditLedger(Protocol):
    def get_credits(self, user_id: str) -> int: ...

    def deduct_credit(self, user_id: str) -> bool: ...


class SQLiteCredits:
    """Credits in a SQLite file.  Deduction is a single conditional UPDATE."""

    def __init__(self, db_path: Path | str, free_credits: int = FREE_CREDITS) -> None:
        self.db_path = str(db_path)
        self.free_credits = free_credits
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False,
                                     isolation_level=None)
        self._lock = threading.Lock()
        with self._lock:
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute(_SCHEMA)

    def _ensure_user(self, user_id: str) -> None:
        self._conn.execute(
            "INSERT OR IGNORE INTO users (id, credits) VALUES (?, ?)",
            (user_id, self.free_credits),
        )

    def get_credits(self, user_id: str) -> int:
        """Current credits; unknown users are created with the free allowance."""
        with self._lock:
            self._ensure_user(user_id)
            row = self._conn.execute(
                "SELECT credits FROM users WHERE id = ?", (user_id,)).fetchone()
        return int(row[0])

    def deduct_credit(self, user_id: str) -> bool:
        """Take one credit.  Returns False if the user had none left."""
        with self._lock:
            self._ensure_user(user_id)
            cur = self._conn.execute(
                "UPDATE users SET credits = credits - 1 WHERE id = ? AND credits > 0",
                (user_id,),
            )
        ok = cur.rowcount > 0
        if not ok:
            log.info("User %s has no credits left", user_id)
        return ok

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class MemoryCredits:
    def __init__(self, free_credits: int = FREE_CREDITS) -> None:
        self.free_credits = free_credits
        self._credits: dict[str, int] = {}
        self._lock = threading.Lock()

    def get_credits(self, user_id: str) -> int:
        with self._lock:
            return self._credits.setdefault(user_id, self.free_credits)

    def deduct_credit(self, user_id: str) -> bool:
        with self._lock:
            left = self._credits.setdefault(user_id, self.free_credits)
            if left <= 0:
                return False
            self._credits[user_id] = left - 1
            return True
