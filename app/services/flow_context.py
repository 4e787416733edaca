"""
Durable flow context: holds the captured authorization request while the
user is away at Google.

Entries are keyed by the browser-session flow id and hold a single slot; a
second flow started in the same browser session overwrites the first.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from app.schemas import AuthorizationRequest
from app.services.context_cipher import ContextCipher

logger = logging.getLogger(__name__)


class FlowContextStore(ABC):
    """Persistence boundary surviving the full-page identity redirect."""

    @abstractmethod
    def write(self, flow_id: str, request: AuthorizationRequest) -> None:
        """Store ``request`` for ``flow_id``, replacing any prior value."""

    @abstractmethod
    def read(self, flow_id: str) -> Optional[AuthorizationRequest]:
        """Return the stored request, or ``None`` when absent or expired."""

    @abstractmethod
    def clear(self, flow_id: str) -> None:
        """Drop the stored request for ``flow_id`` if any."""


@dataclass
class _Entry:
    request: AuthorizationRequest
    created_at: float


class InMemoryFlowContextStore(FlowContextStore):
    """Process-local store with TTL expiry."""

    def __init__(self, ttl_seconds: int = 900) -> None:
        self._ttl = ttl_seconds
        self._entries: Dict[str, _Entry] = {}

    def write(self, flow_id: str, request: AuthorizationRequest) -> None:
        self._prune()
        self._entries[flow_id] = _Entry(request=request, created_at=time.monotonic())

    def read(self, flow_id: str) -> Optional[AuthorizationRequest]:
        entry = self._entries.get(flow_id)
        if entry is None:
            return None
        if time.monotonic() - entry.created_at > self._ttl:
            self._entries.pop(flow_id, None)
            return None
        return entry.request

    def clear(self, flow_id: str) -> None:
        self._entries.pop(flow_id, None)

    def _prune(self) -> None:
        now = time.monotonic()
        expired = [
            key for key, entry in self._entries.items() if now - entry.created_at > self._ttl
        ]
        for key in expired:
            del self._entries[key]


class SQLiteFlowContextStore(FlowContextStore):
    """SQLite-backed store; request fields are encrypted at rest."""

    def __init__(
        self, db_path: str, *, cipher: ContextCipher, ttl_seconds: int = 900
    ) -> None:
        self._db_path = Path(db_path)
        self._cipher = cipher
        self._ttl = ttl_seconds
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS flow_context (
                    flow_id TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )

    def write(self, flow_id: str, request: AuthorizationRequest) -> None:
        payload = self._cipher.encrypt(request.model_dump())
        now = time.time()
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM flow_context WHERE created_at < ?",
                (now - self._ttl,),
            )
            conn.execute(
                """
                INSERT INTO flow_context (flow_id, payload, created_at)
                VALUES (?, ?, ?)
                ON CONFLICT(flow_id) DO UPDATE SET
                    payload = excluded.payload,
                    created_at = excluded.created_at
                """,
                (flow_id, payload, now),
            )

    def read(self, flow_id: str) -> Optional[AuthorizationRequest]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT payload, created_at FROM flow_context WHERE flow_id = ?",
                (flow_id,),
            ).fetchone()
        if not row:
            return None
        if time.time() - row["created_at"] > self._ttl:
            self.clear(flow_id)
            return None
        try:
            document = self._cipher.decrypt(row["payload"])
        except ValueError:
            logger.warning("Discarding unreadable flow context for %s", flow_id)
            self.clear(flow_id)
            return None
        return AuthorizationRequest.model_validate(document)

    def clear(self, flow_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM flow_context WHERE flow_id = ?", (flow_id,))


__all__ = [
    "FlowContextStore",
    "InMemoryFlowContextStore",
    "SQLiteFlowContextStore",
]
