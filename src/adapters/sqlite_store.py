"""SQLite storage adapter.

Implements the core RecordStorePort and CheckpointPort using a simple SQLite
database.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from core.models import Mention, StoredRecord

CHECKPOINT_KEY = "progress_timestamp"


def _dump_mentions(mentions: Sequence[Mention]) -> str:
    return json.dumps([mention.to_dict() for mention in mentions], ensure_ascii=False)


def _load_mentions(raw: Optional[str]) -> tuple[Mention, ...]:
    if not raw:
        return ()
    data = json.loads(raw)
    if not isinstance(data, list):
        return ()
    return tuple(Mention.from_dict(item) for item in data if isinstance(item, dict))


def _row_to_record(row: sqlite3.Row) -> StoredRecord:
    return StoredRecord(
        id=row["id"],
        title=row["title"],
        type=row["type"] or "",
        mentioned_by=_load_mentions(row["mentioned_by"]),
        link=row["link"],
        image_url=row["image_url"],
    )


class SQLiteStore:
    """Thin SQLite wrapper that satisfies the record store and checkpoint ports."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - recommendations: canonical titles with their mentions
        - meta: small key/value settings such as the progress checkpoint
        """

        with self._connect() as conn:
            # Fields:
            # - id: opaque record id assigned at creation
            # - title: canonical title, the merge key (not unique: a failed
            #   lookup may create a second record rather than drop a mention)
            # - mentioned_by: JSON list of {sender, timestamp}
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS recommendations (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    type TEXT,
                    mentioned_by TEXT NOT NULL,
                    link TEXT,
                    image_url TEXT,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_recommendations_title ON recommendations(title)")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def find_by_titles(self, titles: Iterable[str]) -> list[StoredRecord]:
        """Return stored records whose title equals any of the given titles."""

        wanted = list(dict.fromkeys(titles))
        if not wanted:
            return []
        clause = " OR ".join("title = ?" for _ in wanted)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM recommendations WHERE {clause} ORDER BY created_at",
                wanted,
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def create_record(
        self,
        title: str,
        kind: str,
        mentioned_by: Sequence[Mention],
        link: Optional[str],
        image_url: Optional[str],
    ) -> str:
        """Insert a new recommendation and return its id."""

        record_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO recommendations (
                    id, title, type, mentioned_by, link, image_url, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (record_id, title, kind, _dump_mentions(mentioned_by), link, image_url, now, now),
            )
        return record_id

    def update_mentions(self, record_id: str, mentioned_by: Sequence[Mention]) -> None:
        """Replace the mention list of an existing record."""

        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE recommendations SET mentioned_by = ?, updated_at = ? WHERE id = ?",
                (_dump_mentions(mentioned_by), now, record_id),
            )
            if cur.rowcount == 0:
                raise KeyError(f"No recommendation with id {record_id}")

    def list_records(self) -> list[StoredRecord]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM recommendations ORDER BY title").fetchall()
        return [_row_to_record(row) for row in rows]

    def get_checkpoint(self) -> str:
        """Return the last processed message timestamp, or an empty string."""

        with self._connect() as conn:
            row = conn.execute("SELECT value FROM meta WHERE key = ?", (CHECKPOINT_KEY,)).fetchone()
        return str(row["value"]) if row else ""

    def set_checkpoint(self, timestamp: str) -> None:
        """Upsert the progress checkpoint."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO meta (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (CHECKPOINT_KEY, timestamp),
            )
