"""Persistence contracts for profiles, watched conversations, messages and styles."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Iterable, Sequence

import orjson

from slack_assistant.db.sqlite import SQLiteDatabase
from slack_assistant.models.entities import (
    PRIORITIES,
    NewMessage,
    PendingMessage,
    Profile,
    StoredMessage,
    StyleFingerprint,
    StyleProfile,
    WatchedConversation,
)
from slack_assistant.utils.time import now_ms

_MESSAGE_COLUMNS = (
    "m.id, m.ts, m.profile_id, m.conversation_id, m.conversation_name, m.user_id, m.username, "
    "m.text, m.thread_ts, m.is_own_message, m.needs_reply, m.replied, m.created_at"
)

# Slack timestamps are "<seconds>.<micros>"; numeric ordering tolerates
# values of differing widths, the text column breaks exact ties.
_TS_DESC = "CAST(m.ts AS REAL) DESC, m.ts DESC"


class EventStore:
    """Narrow read/write operations over the shared SQLite handle."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    @classmethod
    def open(cls, db_path: Path) -> "EventStore":
        """Open (creating if needed) the database and apply the schema."""
        db = SQLiteDatabase(db_path)
        db.connect()
        db.ensure_schema()
        return cls(db)

    def close(self) -> None:
        self.db.close()

    # Profiles ---------------------------------------------------------

    def sync_profiles(self, profiles: Iterable[Any]) -> None:
        """Insert or update every configured profile by id."""
        with self.db.transaction() as cursor:
            for profile in profiles:
                cursor.execute(
                    """
                    INSERT INTO profiles (id, display_name, user_id, is_primary)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                      display_name = excluded.display_name,
                      user_id = excluded.user_id,
                      is_primary = excluded.is_primary
                    """,
                    [profile.id, profile.display_name, profile.user_id, 1 if profile.is_primary else 0],
                )

    def list_profiles(self) -> list[Profile]:
        rows = self.db.query("SELECT id, display_name, user_id, is_primary FROM profiles ORDER BY is_primary DESC, id")
        return [
            Profile(
                id=row["id"],
                display_name=row["display_name"],
                user_id=row["user_id"],
                is_primary=bool(row["is_primary"]),
            )
            for row in rows
        ]

    # Messages ---------------------------------------------------------

    def insert_if_absent(self, message: NewMessage) -> bool:
        """Store ``message`` unless (ts, profile, conversation) already exists.

        Returns True when a new row was written.
        """
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT OR IGNORE INTO messages (
                  ts, profile_id, conversation_id, conversation_name, user_id, username,
                  text, thread_ts, is_own_message, needs_reply, replied, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?)
                """,
                [
                    message.ts,
                    message.profile_id,
                    message.conversation_id,
                    message.conversation_name,
                    message.user_id,
                    message.username,
                    message.text,
                    message.thread_ts,
                    1 if message.is_own_message else 0,
                    1 if message.needs_reply and not message.is_own_message else 0,
                    now_ms(),
                ],
            )
            return cursor.rowcount == 1

    def get_conversation_messages(self, profile_id: str, conversation_id: str, limit: int = 50) -> list[StoredMessage]:
        """Most recent ``limit`` messages of a conversation, oldest first."""
        rows = self.db.query(
            f"""
            SELECT {_MESSAGE_COLUMNS} FROM messages m
            WHERE m.profile_id = ? AND m.conversation_id = ?
            ORDER BY {_TS_DESC}
            LIMIT ?
            """,
            [profile_id, conversation_id, limit],
        )
        return [_row_to_message(row) for row in reversed(rows)]

    def get_pending(
        self,
        profile_id: str | None = None,
        conversation_id: str | None = None,
        limit: int = 20,
    ) -> list[PendingMessage]:
        """Unreplied needs-reply messages, highest priority first, newest first within a priority."""
        clauses = ["m.needs_reply = 1", "m.replied = 0"]
        params: list[Any] = []
        if profile_id:
            clauses.append("m.profile_id = ?")
            params.append(profile_id)
        if conversation_id:
            clauses.append("m.conversation_id = ?")
            params.append(conversation_id)
        params.append(limit)
        rows = self.db.query(
            f"""
            SELECT {_MESSAGE_COLUMNS}, COALESCE(w.priority, 'normal') AS priority
            FROM messages m
            LEFT JOIN watched_conversations w
              ON w.conversation_id = m.conversation_id AND w.profile_id = m.profile_id
            WHERE {' AND '.join(clauses)}
            ORDER BY
              CASE COALESCE(w.priority, 'normal')
                WHEN 'high' THEN 1
                WHEN 'normal' THEN 2
                WHEN 'low' THEN 3
              END,
              {_TS_DESC}
            LIMIT ?
            """,
            params,
        )
        return [PendingMessage(message=_row_to_message(row), priority=row["priority"]) for row in rows]

    def mark_replied(self, profile_id: str, conversation_id: str, ts: str) -> bool:
        with self.db.transaction() as cursor:
            cursor.execute(
                "UPDATE messages SET replied = 1 WHERE profile_id = ? AND conversation_id = ? AND ts = ? AND replied = 0",
                [profile_id, conversation_id, ts],
            )
            return cursor.rowcount > 0

    def get_own_messages(self, profile_id: str, limit: int = 200) -> list[StoredMessage]:
        rows = self.db.query(
            f"""
            SELECT {_MESSAGE_COLUMNS} FROM messages m
            WHERE m.profile_id = ? AND m.is_own_message = 1
            ORDER BY {_TS_DESC}
            LIMIT ?
            """,
            [profile_id, limit],
        )
        return [_row_to_message(row) for row in rows]

    def has_participated(self, profile_id: str, conversation_id: str, thread_ts: str, user_id: str) -> bool:
        """Whether ``user_id`` posted the thread root or a reply inside it."""
        row = self.db.query_one(
            """
            SELECT 1 FROM messages
            WHERE profile_id = ? AND conversation_id = ? AND user_id = ?
              AND (thread_ts = ? OR ts = ?)
            LIMIT 1
            """,
            [profile_id, conversation_id, user_id, thread_ts, thread_ts],
        )
        return row is not None

    # Watched conversations --------------------------------------------

    def upsert_watch(
        self,
        profile_id: str,
        conversation_id: str,
        name: str,
        priority: str = "normal",
        description: str | None = None,
    ) -> None:
        if priority not in PRIORITIES:
            raise ValueError(f'Invalid priority "{priority}". Must be one of: {", ".join(PRIORITIES)}')
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO watched_conversations (conversation_id, profile_id, name, priority, description, added_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(conversation_id, profile_id) DO UPDATE SET
                  name = excluded.name,
                  priority = excluded.priority,
                  description = COALESCE(excluded.description, watched_conversations.description)
                """,
                [conversation_id, profile_id, name, priority, description, now_ms()],
            )

    def remove_watch(self, profile_id: str, conversation_id: str) -> bool:
        with self.db.transaction() as cursor:
            cursor.execute(
                "DELETE FROM watched_conversations WHERE conversation_id = ? AND profile_id = ?",
                [conversation_id, profile_id],
            )
            return cursor.rowcount > 0

    def list_watch(self, profile_id: str) -> list[WatchedConversation]:
        rows = self.db.query(
            """
            SELECT conversation_id, profile_id, name, priority, description, added_at
            FROM watched_conversations
            WHERE profile_id = ?
            ORDER BY CASE priority WHEN 'high' THEN 1 WHEN 'normal' THEN 2 ELSE 3 END, name
            """,
            [profile_id],
        )
        return [
            WatchedConversation(
                conversation_id=row["conversation_id"],
                profile_id=row["profile_id"],
                name=row["name"],
                priority=row["priority"],
                description=row["description"],
                added_at=row["added_at"],
            )
            for row in rows
        ]

    def get_watched_ids(self, profile_id: str) -> set[str]:
        rows = self.db.query(
            "SELECT conversation_id FROM watched_conversations WHERE profile_id = ?",
            [profile_id],
        )
        return {row["conversation_id"] for row in rows}

    # Style fingerprints -----------------------------------------------

    def get_style(self, profile_id: str) -> StyleProfile | None:
        row = self.db.query_one(
            "SELECT profile_json, sample_messages, updated_at FROM style_profiles WHERE profile_id = ?",
            [profile_id],
        )
        if row is None:
            return None
        fields = orjson.loads(row["profile_json"])
        known = {key: value for key, value in fields.items() if key in StyleFingerprint.__dataclass_fields__}
        return StyleProfile(
            profile_id=profile_id,
            fingerprint=StyleFingerprint(**known),
            sample_messages=list(orjson.loads(row["sample_messages"])),
            updated_at=row["updated_at"],
        )

    def save_style(self, profile_id: str, fingerprint: StyleFingerprint, samples: Sequence[str]) -> None:
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO style_profiles (profile_id, profile_json, sample_messages, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(profile_id) DO UPDATE SET
                  profile_json = excluded.profile_json,
                  sample_messages = excluded.sample_messages,
                  updated_at = excluded.updated_at
                """,
                [
                    profile_id,
                    orjson.dumps(fingerprint.to_dict()).decode("utf-8"),
                    orjson.dumps(list(samples)).decode("utf-8"),
                    now_ms(),
                ],
            )


def _row_to_message(row: sqlite3.Row) -> StoredMessage:
    return StoredMessage(
        id=row["id"],
        ts=row["ts"],
        profile_id=row["profile_id"],
        conversation_id=row["conversation_id"],
        conversation_name=row["conversation_name"],
        user_id=row["user_id"],
        username=row["username"],
        text=row["text"],
        thread_ts=row["thread_ts"],
        is_own_message=bool(row["is_own_message"]),
        needs_reply=bool(row["needs_reply"]),
        replied=bool(row["replied"]),
        created_at=row["created_at"],
    )


__all__ = ["EventStore"]
