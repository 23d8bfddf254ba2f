"""Долговременное хранилище сообщений по комнатам."""

import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Protocol

from loguru import logger

from chathub.models.message import Message, MessageType


class MessageStore(Protocol):
    def save(self, message: Message) -> None: ...

    def most_recent_by_room(self, room: str) -> List[Message]: ...

    def recent(self, room: str, limit: int) -> List[Message]: ...


class InMemoryMessageStore:
    """Хранилище в памяти процесса, для тестов и запуска без базы."""

    def __init__(self):
        self._messages: List[Message] = []
        self._lock = threading.Lock()

    def save(self, message: Message) -> None:
        stored = message.model_copy()
        with self._lock:
            self._messages = [m for m in self._messages if m.id != stored.id]
            self._messages.append(stored)

    def most_recent_by_room(self, room: str) -> List[Message]:
        with self._lock:
            found = [m.model_copy() for m in self._messages if m.room == room]
        return sorted(found, key=lambda m: m.timestamp, reverse=True)

    def recent(self, room: str, limit: int) -> List[Message]:
        return self.most_recent_by_room(room)[:limit]

    def by_sender(self, sender: str) -> List[Message]:
        with self._lock:
            return [m.model_copy() for m in self._messages if m.sender == sender]


class SqliteMessageStore:
    def __init__(self, db_path: str):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA busy_timeout=3000;")
        self._conn.execute(
            """
CREATE TABLE IF NOT EXISTS messages (
  id TEXT PRIMARY KEY,
  type TEXT NOT NULL,
  content TEXT,
  sender TEXT,
  recipient TEXT,
  room TEXT,
  timestamp TEXT NOT NULL
);
"""
        )
        self._conn.execute("CREATE INDEX IF NOT EXISTS idx_messages_room_ts ON messages(room, timestamp);")
        self._conn.commit()
        logger.info(f"Хранилище сообщений открыто: {db_path}")

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Message:
        return Message(
            id=row["id"],
            type=MessageType(row["type"]),
            content=row["content"],
            sender=row["sender"],
            recipient=row["recipient"],
            room=row["room"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )

    def save(self, message: Message) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO messages (id, type, content, sender, recipient, room, timestamp) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    message.id,
                    message.type.value,
                    message.content,
                    message.sender,
                    message.recipient,
                    message.room,
                    # Один формат для всех строк, чтобы ORDER BY по тексту совпадал с порядком времени
                    message.timestamp.isoformat(timespec="microseconds"),
                ),
            )
            self._conn.commit()

    def most_recent_by_room(self, room: str) -> List[Message]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM messages WHERE room = ? ORDER BY timestamp DESC", (room,)
            ).fetchall()
        return [self._from_row(r) for r in rows]

    def recent(self, room: str, limit: int) -> List[Message]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM messages WHERE room = ? ORDER BY timestamp DESC LIMIT ?", (room, limit)
            ).fetchall()
        return [self._from_row(r) for r in rows]

    def by_sender(self, sender: str) -> List[Message]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM messages WHERE sender = ? ORDER BY timestamp", (sender,)
            ).fetchall()
        return [self._from_row(r) for r in rows]
