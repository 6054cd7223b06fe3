"""SessionStore — SQLite persistence for focus sessions, held items and the audit log."""

import logging
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path

from slack_focus_mode.models import FocusSession, HeldItem, NotificationLog, UrgencyLevel

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS focus_sessions (
    id          TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL,
    started_at  TEXT NOT NULL,
    ends_at     TEXT NOT NULL,
    is_active   INTEGER NOT NULL DEFAULT 1,
    created_at  TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sessions_user_active
    ON focus_sessions(user_id, is_active, ends_at);

CREATE TABLE IF NOT EXISTS held_items (
    id                    TEXT PRIMARY KEY,
    session_id            TEXT NOT NULL REFERENCES focus_sessions(id),
    channel_id            TEXT NOT NULL,
    channel_name          TEXT,
    sender_id             TEXT NOT NULL,
    sender_name           TEXT,
    message_text          TEXT NOT NULL,
    message_ts            TEXT,
    urgency               TEXT NOT NULL
                          CHECK(urgency IN ('low','medium','high','urgent')),
    classification_reason TEXT,
    received_at           TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_held_items_session ON held_items(session_id, received_at);

CREATE TABLE IF NOT EXISTS notification_log (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    channel_id      TEXT NOT NULL,
    sender_id       TEXT NOT NULL,
    message_preview TEXT
                    CHECK(length(message_preview) <= 100),
    urgency         TEXT NOT NULL,
    was_held        INTEGER NOT NULL,
    created_at      TEXT NOT NULL
);
"""


class StoreError(Exception):
    """A row operation against the session store failed."""


def to_iso(value: datetime) -> str:
    # Fixed width so that string comparison in SQL matches time order.
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(value: str) -> datetime:
    return datetime.fromisoformat(value)


class SessionStore:
    """SQLite-backed store; every public method is one atomic row operation."""

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path).expanduser()
        self._conn: sqlite3.Connection | None = None
        # Bolt runs handlers on worker threads; serialize access to the connection.
        self._lock = threading.RLock()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def close(self):
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def initialize(self) -> None:
        """Create tables and indexes."""
        with self._lock:
            self.conn.executescript(SCHEMA_SQL)

    @staticmethod
    def _generate_id(prefix: str) -> str:
        return f"{prefix}-{uuid.uuid4().hex[:12]}"

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _write(self, sql: str, params: tuple) -> int:
        try:
            with self._lock, self.conn:
                return self.conn.execute(sql, params).rowcount
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    def _read(self, sql: str, params: tuple) -> list[sqlite3.Row]:
        try:
            with self._lock:
                return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    # -- focus sessions ------------------------------------------------------

    @staticmethod
    def _row_to_session(row: sqlite3.Row) -> FocusSession:
        return FocusSession(
            id=row["id"],
            user_id=row["user_id"],
            started_at=from_iso(row["started_at"]),
            ends_at=from_iso(row["ends_at"]),
            is_active=bool(row["is_active"]),
            created_at=from_iso(row["created_at"]),
        )

    def insert_session(self, session: FocusSession) -> FocusSession:
        """Insert a session row. Generates id/created_at if not set."""
        if not session.id:
            session.id = self._generate_id("ses")
        if session.created_at is None:
            session.created_at = self._now()
        self._write(
            "INSERT INTO focus_sessions (id, user_id, started_at, ends_at, is_active, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (session.id, session.user_id, to_iso(session.started_at),
             to_iso(session.ends_at), int(session.is_active), to_iso(session.created_at)),
        )
        return session

    def deactivate_session(self, session_id: str) -> bool:
        """Clear a session's active flag. Returns False if no row matched."""
        count = self._write(
            "UPDATE focus_sessions SET is_active = 0 WHERE id = ?", (session_id,)
        )
        return count > 0

    def get_active_session(self, user_id: str, now: datetime) -> FocusSession | None:
        """Most recently started session that is active and not yet expired."""
        rows = self._read(
            "SELECT * FROM focus_sessions "
            "WHERE user_id = ? AND is_active = 1 AND ends_at > ? "
            "ORDER BY started_at DESC, rowid DESC LIMIT 1",
            (user_id, to_iso(now)),
        )
        return self._row_to_session(rows[0]) if rows else None

    # -- held items ----------------------------------------------------------

    @staticmethod
    def _row_to_held_item(row: sqlite3.Row) -> HeldItem:
        return HeldItem(
            id=row["id"],
            session_id=row["session_id"],
            channel_id=row["channel_id"],
            channel_name=row["channel_name"] or "",
            sender_id=row["sender_id"],
            sender_name=row["sender_name"] or "",
            message_text=row["message_text"],
            message_ts=row["message_ts"] or "",
            urgency=UrgencyLevel(row["urgency"]),
            classification_reason=row["classification_reason"] or "",
            received_at=from_iso(row["received_at"]),
        )

    def insert_held_item(self, item: HeldItem) -> HeldItem:
        """Insert a held item. Generates id/received_at if not set."""
        if not item.id:
            item.id = self._generate_id("held")
        if item.received_at is None:
            item.received_at = self._now()
        self._write(
            "INSERT INTO held_items (id, session_id, channel_id, channel_name, sender_id, "
            "sender_name, message_text, message_ts, urgency, classification_reason, received_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (item.id, item.session_id, item.channel_id, item.channel_name, item.sender_id,
             item.sender_name, item.message_text, item.message_ts, item.urgency.value,
             item.classification_reason, to_iso(item.received_at)),
        )
        return item

    def list_held_items(self, session_id: str) -> list[HeldItem]:
        """Held items of a session, oldest first."""
        rows = self._read(
            "SELECT * FROM held_items WHERE session_id = ? "
            "ORDER BY received_at ASC, rowid ASC",
            (session_id,),
        )
        return [self._row_to_held_item(r) for r in rows]

    # -- audit log -----------------------------------------------------------

    def insert_notification_log(self, entry: NotificationLog) -> NotificationLog:
        if not entry.id:
            entry.id = self._generate_id("log")
        if entry.created_at is None:
            entry.created_at = self._now()
        self._write(
            "INSERT INTO notification_log (id, user_id, channel_id, sender_id, "
            "message_preview, urgency, was_held, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (entry.id, entry.user_id, entry.channel_id, entry.sender_id,
             entry.message_preview, entry.urgency.value, int(entry.was_held),
             to_iso(entry.created_at)),
        )
        return entry
