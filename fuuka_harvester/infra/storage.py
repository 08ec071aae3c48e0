"""Durable key-value storage for partial scrape progress."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict

import structlog
from pydantic import ValidationError

from ..config import Query


class SQLiteManager:
    """Manage SQLite connections with basic schema guarantees."""

    def __init__(self) -> None:
        self._connections: Dict[Path, sqlite3.Connection] = {}
        self._lock = Lock()

    def connect(self, path: Path) -> sqlite3.Connection:
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            if path not in self._connections:
                conn = sqlite3.connect(path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                self._connections[path] = conn
                self._ensure_schema(conn)
            return self._connections[path]

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS scrape_progress (
                namespace TEXT NOT NULL,
                signature TEXT NOT NULL,
                payload TEXT NOT NULL,
                saved_at TEXT NOT NULL,
                PRIMARY KEY (namespace, signature)
            )
            """
        )
        conn.commit()

    def reset(self, path: Path) -> None:
        with self._lock:
            if path in self._connections:
                self._connections[path].close()
                del self._connections[path]
        if path.exists():
            path.unlink()

    def close_all(self) -> None:
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()


@dataclass(slots=True)
class ProgressRecord:
    """Snapshot of an interrupted scrape."""

    query: Query
    posts: list[dict[str, Any]] = field(default_factory=list)
    next_page: int = 1
    saved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> dict[str, Any]:
        return {
            "query": self.query.model_dump(mode="json"),
            "posts": self.posts,
            "next_page": self.next_page,
            "saved_at": self.saved_at.isoformat(),
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ProgressRecord":
        next_page = int(payload["next_page"])
        if next_page < 1:
            raise ValueError("next_page must be >= 1")
        posts = payload.get("posts") or []
        if not isinstance(posts, list):
            raise ValueError("posts must be a list")
        return cls(
            query=Query.model_validate(payload["query"]),
            posts=posts,
            next_page=next_page,
            saved_at=datetime.fromisoformat(payload["saved_at"]),
        )


class ProgressStore:
    """One progress record per query signature under a fixed namespace.

    Write failures are reported through the logger and a ``False`` return;
    they never interrupt the caller. Unreadable records are treated as absent.
    """

    def __init__(
        self,
        manager: SQLiteManager,
        db_path: Path,
        namespace: str,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.manager = manager
        self.db_path = db_path
        self.namespace = namespace
        self.logger = logger or structlog.get_logger("fuuka_harvester.progress")
        self._lock = Lock()
        self._conn = self.manager.connect(db_path)

    def load(self, query: Query) -> ProgressRecord | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT payload FROM scrape_progress WHERE namespace = ? AND signature = ?",
                (self.namespace, query.signature()),
            ).fetchone()
        if row is None:
            return None
        try:
            record = ProgressRecord.from_payload(json.loads(row["payload"]))
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            self.logger.warning("progress_corrupted", error=str(exc))
            return None
        if record.query != query:
            self.logger.info("progress_query_mismatch", signature=query.signature())
            return None
        return record

    def save(self, record: ProgressRecord) -> bool:
        try:
            payload = json.dumps(record.to_payload(), ensure_ascii=False)
            with self._lock:
                self._conn.execute(
                    "INSERT OR REPLACE INTO scrape_progress(namespace, signature, payload, saved_at)"
                    " VALUES (?, ?, ?, ?)",
                    (
                        self.namespace,
                        record.query.signature(),
                        payload,
                        record.saved_at.isoformat(),
                    ),
                )
                self._conn.commit()
        except (sqlite3.Error, OSError, TypeError, ValueError) as exc:
            self.logger.warning(
                "progress_save_failed",
                next_page=record.next_page,
                posts=len(record.posts),
                error=str(exc),
            )
            return False
        return True

    def clear(self, query: Query) -> bool:
        try:
            with self._lock:
                self._conn.execute(
                    "DELETE FROM scrape_progress WHERE namespace = ? AND signature = ?",
                    (self.namespace, query.signature()),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            self.logger.warning("progress_clear_failed", error=str(exc))
            return False
        return True

    def clear_all(self) -> int:
        with self._lock:
            cur = self._conn.execute(
                "DELETE FROM scrape_progress WHERE namespace = ?", (self.namespace,)
            )
            self._conn.commit()
        return cur.rowcount

    def list_records(self) -> list[ProgressRecord]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT payload FROM scrape_progress WHERE namespace = ? ORDER BY saved_at DESC",
                (self.namespace,),
            ).fetchall()
        records: list[ProgressRecord] = []
        for row in rows:
            try:
                records.append(ProgressRecord.from_payload(json.loads(row["payload"])))
            except (ValueError, KeyError, TypeError, ValidationError):
                continue
        return records


__all__ = ["ProgressRecord", "ProgressStore", "SQLiteManager"]
