"""Document store abstraction over Firestore and a local SQLite emulation.

The admin console reads and writes schemaless documents addressed by
``(collection path, document id)``. Collection paths may name
sub-collections (``banter_rooms/1035037/activeUsers``). Two backends
implement the same small surface:

* ``FirestoreDocumentStore`` -- production, wraps a
  ``google.cloud.firestore.Client`` obtained through ``firebase_admin``.
* ``SqliteDocumentStore`` -- local development and tests; one JSON row
  per document in the ``documents`` table. Timestamps written as
  ``datetime`` come back as ISO-8601 strings.

Merge writes follow Firestore's ``set(..., merge=True)``: nested maps are
merged key by key, everything else (scalars, lists) is replaced.
"""

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from diskiadmin.exceptions import ConfigError, DocumentNotFound, StoreError

logger = logging.getLogger(__name__)


def deep_merge(base: dict, patch: dict) -> dict:
    """Return ``base`` updated with ``patch``, merging nested dicts."""
    merged = dict(base)
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _json_default(value):
    """Timestamps are kept as ISO-8601 strings in the SQLite emulation."""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _sort_documents(
    docs: list[dict], order_by: str | None, descending: bool
) -> list[dict]:
    """Sort by a field; documents without the field always go last."""
    if order_by is None:
        return docs
    present = [d for d in docs if d.get(order_by) is not None]
    missing = [d for d in docs if d.get(order_by) is None]
    present.sort(key=lambda d: d[order_by], reverse=descending)
    return present + missing


class DocumentStore:
    """Interface shared by the store backends.

    Documents are returned as plain dicts with the document id under
    ``"id"`` (unless the document itself carries an ``id`` field, which
    is left as stored).
    """

    def get(self, collection: str, doc_id: str) -> dict | None:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        raise NotImplementedError

    def add(self, collection: str, data: dict) -> str:
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    def list(
        self,
        collection: str,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        raise NotImplementedError

    def count(self, collection: str) -> int:
        raise NotImplementedError

    def exists(self, collection: str, doc_id: str) -> bool:
        return self.get(collection, doc_id) is not None

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# SQLite backend
# ---------------------------------------------------------------------------

UPSERT_DOCUMENT = """
    INSERT INTO documents (collection, doc_id, data, created_at, updated_at)
    VALUES (:collection, :doc_id, :data, :now, :now)
    ON CONFLICT(collection, doc_id) DO UPDATE SET
        data       = excluded.data,
        updated_at = excluded.updated_at
"""

SELECT_DOCUMENT = "SELECT data FROM documents WHERE collection = ? AND doc_id = ?"

SELECT_COLLECTION = (
    "SELECT doc_id, data FROM documents WHERE collection = ? ORDER BY doc_id"
)


class SqliteDocumentStore(DocumentStore):
    """Document store on a raw ``sqlite3.Connection``.

    Receives a connection (not a Database instance) so tests can pass any
    connection with the migrations applied. Write methods use
    ``with self.conn:`` for automatic commit on success / rollback on
    exception; merge and update run read-modify-write inside that same
    transaction. ``sqlite3.Error`` is re-raised as ``StoreError``.
    """

    def __init__(self, conn: sqlite3.Connection, database=None) -> None:
        self.conn = conn
        self._database = database

    @contextmanager
    def _translate_errors(self, collection: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            raise StoreError(f"SQLite error on {collection}: {exc}") from exc

    def _load(self, collection: str, doc_id: str) -> dict | None:
        row = self.conn.execute(SELECT_DOCUMENT, (collection, doc_id)).fetchone()
        return json.loads(row["data"]) if row is not None else None

    def _write(self, collection: str, doc_id: str, data: dict) -> None:
        self.conn.execute(
            UPSERT_DOCUMENT,
            {
                "collection": collection,
                "doc_id": doc_id,
                "data": json.dumps(data, default=_json_default),
                "now": datetime.now(timezone.utc).isoformat(),
            },
        )

    def get(self, collection: str, doc_id: str) -> dict | None:
        with self._translate_errors(collection):
            data = self._load(collection, str(doc_id))
        if data is None:
            return None
        return {"id": str(doc_id), **data}

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        doc_id = str(doc_id)
        with self._translate_errors(collection), self.conn:
            if merge:
                existing = self._load(collection, doc_id)
                if existing is not None:
                    data = deep_merge(existing, data)
            self._write(collection, doc_id, data)

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        doc_id = str(doc_id)
        with self._translate_errors(collection), self.conn:
            existing = self._load(collection, doc_id)
            if existing is None:
                raise DocumentNotFound(collection, doc_id)
            existing.update(fields)
            self._write(collection, doc_id, existing)

    def add(self, collection: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.set(collection, doc_id, data)
        return doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        with self._translate_errors(collection), self.conn:
            self.conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, str(doc_id)),
            )

    def list(
        self,
        collection: str,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        with self._translate_errors(collection):
            rows = self.conn.execute(SELECT_COLLECTION, (collection,)).fetchall()
        docs = [{"id": r["doc_id"], **json.loads(r["data"])} for r in rows]
        docs = _sort_documents(docs, order_by, descending)
        return docs[:limit] if limit is not None else docs

    def count(self, collection: str) -> int:
        with self._translate_errors(collection):
            return self.conn.execute(
                "SELECT COUNT(*) FROM documents WHERE collection = ?",
                (collection,),
            ).fetchone()[0]

    def close(self) -> None:
        if self._database is not None:
            self._database.close()


# ---------------------------------------------------------------------------
# Firestore backend
# ---------------------------------------------------------------------------

class FirestoreDocumentStore(DocumentStore):
    """Document store backed by Cloud Firestore.

    Firestore's ``order_by`` drops documents that lack the ordering field,
    unlike the SQLite backend which lists them last.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    @contextmanager
    def _translate_errors(self, collection: str) -> Iterator[None]:
        from google.api_core import exceptions as gexc

        try:
            yield
        except gexc.GoogleAPICallError as exc:
            raise StoreError(f"Firestore error on {collection}: {exc}") from exc

    def _doc(self, collection: str, doc_id: str):
        return self.client.collection(collection).document(str(doc_id))

    @staticmethod
    def _to_dict(snapshot) -> dict:
        return {"id": snapshot.id, **(snapshot.to_dict() or {})}

    def get(self, collection: str, doc_id: str) -> dict | None:
        with self._translate_errors(collection):
            snapshot = self._doc(collection, doc_id).get()
        return self._to_dict(snapshot) if snapshot.exists else None

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        with self._translate_errors(collection):
            self._doc(collection, doc_id).set(data, merge=merge)

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        from google.api_core import exceptions as gexc

        try:
            with self._translate_errors(collection):
                self._doc(collection, doc_id).update(fields)
        except StoreError as exc:
            if isinstance(exc.__cause__, gexc.NotFound):
                raise DocumentNotFound(collection, str(doc_id)) from exc.__cause__
            raise

    def add(self, collection: str, data: dict) -> str:
        with self._translate_errors(collection):
            _, ref = self.client.collection(collection).add(data)
        return ref.id

    def delete(self, collection: str, doc_id: str) -> None:
        with self._translate_errors(collection):
            self._doc(collection, doc_id).delete()

    def list(
        self,
        collection: str,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        from google.cloud import firestore

        query = self.client.collection(collection)
        if order_by is not None:
            direction = (
                firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            )
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)
        with self._translate_errors(collection):
            return [self._to_dict(s) for s in query.stream()]

    def count(self, collection: str) -> int:
        with self._translate_errors(collection):
            result = self.client.collection(collection).count().get()
        # count().get() returns [[AggregationResult]]
        return int(result[0][0].value)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def open_store(config) -> DocumentStore:
    """Open the store backend selected by ``config.store_backend``."""
    backend = config.store_backend
    if backend == "sqlite":
        from diskiadmin.db import Database

        database = Database(config.db_path)
        database.initialize()
        logger.info("Using SQLite document store at %s", config.db_path)
        return SqliteDocumentStore(database.conn, database=database)

    if backend == "firestore":
        import firebase_admin
        from firebase_admin import credentials, firestore

        if not firebase_admin._apps:
            cred = (
                credentials.Certificate(config.firestore_credentials)
                if config.firestore_credentials
                else credentials.ApplicationDefault()
            )
            options = (
                {"projectId": config.firestore_project}
                if config.firestore_project
                else None
            )
            firebase_admin.initialize_app(cred, options)
        logger.info("Using Firestore document store (project=%s)", config.firestore_project)
        return FirestoreDocumentStore(firestore.client())

    raise ConfigError(f"Unknown store backend {backend!r} (expected sqlite or firestore)")
