from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from drink_tally.errors import StoreWriteError

logger = logging.getLogger(__name__)


def user_collection_path(app_id: str) -> str:
    return f"artifacts/{app_id}/public/data/drinkingGameUsers"


@dataclass(frozen=True)
class DocumentSnapshot:
    doc_id: str
    data: dict[str, Any] | None

    @property
    def exists(self) -> bool:
        return self.data is not None


@dataclass(frozen=True)
class CollectionSnapshot:
    collection: str
    documents: tuple[DocumentSnapshot, ...]


SnapshotCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


class Subscription:
    """A live listener on one document or on a whole collection.

    ``on_next`` receives a DocumentSnapshot (document listeners) or a
    CollectionSnapshot (collection listeners). Failures while reading or inside
    ``on_next`` go to ``on_error`` and never reach other subscribers.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        doc_id: str | None,
        on_next: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._store = store
        self.collection = collection
        self.doc_id = doc_id
        self._on_next = on_next
        self._on_error = on_error
        self.active = True

    def matches(self, collection: str, doc_id: str) -> bool:
        if not self.active or collection != self.collection:
            return False
        return self.doc_id is None or self.doc_id == doc_id

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._store._remove(self)

    def _deliver(self, snapshot: Any) -> None:
        try:
            self._on_next(snapshot)
        except Exception as exc:
            logger.exception("Subscriber on %s failed", self.collection)
            self._fail(exc)

    def _fail(self, exc: Exception) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(exc)
        except Exception:
            logger.exception("Error callback on %s failed", self.collection)


class DocumentStore:
    """Key-document store over sqlite with in-process change subscriptions.

    Documents are JSON mappings addressed by collection path + document id.
    Each write replaces or merges one document atomically; there are no
    cross-document transactions. Change notifications are queued and delivered
    in write order after the write commits, so a listener that writes from
    inside its callback sees its own write on the next delivery.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()
        self._lock = threading.Lock()
        self._delivery_lock = threading.RLock()
        self._subscriptions: list[Subscription] = []
        self._pending: deque[Subscription] = deque()
        self._draining = False

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
                """
            )
            current = {row["version"] for row in conn.execute("SELECT version FROM schema_migrations")}

            migrations: dict[int, str] = {
                1: """
                    CREATE TABLE documents (
                        collection TEXT NOT NULL,
                        doc_id TEXT NOT NULL,
                        data TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        PRIMARY KEY(collection, doc_id)
                    );
                """,
            }

            now = datetime.now().isoformat(timespec="seconds")
            for version in sorted(migrations):
                if version in current:
                    continue
                conn.executescript(migrations[version])
                conn.execute(
                    "INSERT INTO schema_migrations(version, applied_at) VALUES (?, ?)",
                    (version, now),
                )

    def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            ).fetchone()
        if row is None:
            return DocumentSnapshot(doc_id=doc_id, data=None)
        return DocumentSnapshot(doc_id=doc_id, data=json.loads(row["data"]))

    def list_documents(self, collection: str) -> CollectionSnapshot:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT doc_id, data FROM documents WHERE collection = ? ORDER BY rowid",
                (collection,),
            ).fetchall()
        docs = tuple(DocumentSnapshot(doc_id=row["doc_id"], data=json.loads(row["data"])) for row in rows)
        return CollectionSnapshot(collection=collection, documents=docs)

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        payload = json.dumps(data)
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO documents(collection, doc_id, data, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(collection, doc_id) DO UPDATE SET
                        data=excluded.data,
                        updated_at=excluded.updated_at
                    """,
                    (collection, doc_id, payload, datetime.now().isoformat()),
                )
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Failed to write {collection}/{doc_id}: {exc}") from exc
        self._notify(collection, doc_id)

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge ``fields`` into an existing document. Missing documents are an error."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                    (collection, doc_id),
                ).fetchone()
                if row is None:
                    raise StoreWriteError(f"No document to update: {collection}/{doc_id}")
                data = json.loads(row["data"])
                data.update(fields)
                conn.execute(
                    "UPDATE documents SET data = ?, updated_at = ? WHERE collection = ? AND doc_id = ?",
                    (json.dumps(data), datetime.now().isoformat(), collection, doc_id),
                )
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Failed to update {collection}/{doc_id}: {exc}") from exc
        self._notify(collection, doc_id)

    def subscribe_document(
        self,
        collection: str,
        doc_id: str,
        on_next: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        return self._subscribe(Subscription(self, collection, doc_id, on_next, on_error))

    def subscribe_collection(
        self,
        collection: str,
        on_next: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        return self._subscribe(Subscription(self, collection, None, on_next, on_error))

    def _subscribe(self, sub: Subscription) -> Subscription:
        with self._lock:
            self._subscriptions.append(sub)
            self._pending.append(sub)
        self._drain()
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def _notify(self, collection: str, doc_id: str) -> None:
        with self._lock:
            for sub in self._subscriptions:
                if sub.matches(collection, doc_id) and sub not in self._pending:
                    self._pending.append(sub)
        self._drain()

    def _snapshot_for(self, sub: Subscription) -> Any:
        if sub.doc_id is None:
            return self.list_documents(sub.collection)
        return self.get(sub.collection, sub.doc_id)

    def _drain(self) -> None:
        with self._delivery_lock:
            if self._draining:
                return
            self._draining = True
            try:
                while True:
                    with self._lock:
                        if not self._pending:
                            break
                        sub = self._pending.popleft()
                    if not sub.active:
                        continue
                    try:
                        snapshot = self._snapshot_for(sub)
                    except sqlite3.Error as exc:
                        logger.error("Failed to read %s for subscriber: %s", sub.collection, exc)
                        sub._fail(exc)
                        continue
                    sub._deliver(snapshot)
            finally:
                self._draining = False
