"""Hierarchical JSON document store backed by SQLite.

Documents are addressed by a collection path and a document id, e.g.
``users/u1/biomarkers`` + ``LDL Cholesterol``. Ids are stored as opaque
strings, so names containing slashes stay addressable.
"""
import json
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generator, Optional

from .errors import (
    DocumentNotFoundError,
    PermissionDeniedError,
    StoreError,
    StoreUnavailableError,
)

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    doc_id TEXT NOT NULL,
    data TEXT NOT NULL,
    PRIMARY KEY (collection, doc_id)
)
"""

_TRANSIENT_MARKERS = ("locked", "busy", "unable to open", "disk i/o")
_PERMISSION_MARKERS = ("readonly", "not authorized", "permission")


@dataclass(frozen=True)
class DocumentRef:
    """Address of a single document."""

    collection: str
    id: str

    @property
    def path(self) -> str:
        return f"{self.collection}/{self.id}"

    def child(self, name: str) -> str:
        """Collection path nested under this document."""
        return f"{self.path}/{name}"


@dataclass
class Document:
    id: str
    data: dict


def _deep_merge(base: dict, incoming: dict) -> dict:
    merged = dict(base)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _classify(exc: sqlite3.Error) -> StoreError:
    message = str(exc).lower()
    if any(marker in message for marker in _PERMISSION_MARKERS):
        return PermissionDeniedError(str(exc))
    if isinstance(exc, sqlite3.OperationalError) and any(
        marker in message for marker in _TRANSIENT_MARKERS
    ):
        return StoreUnavailableError(str(exc))
    return StoreError(str(exc))


class WriteBatch:
    """Collects writes and applies them in one transaction on ``commit``."""

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._ops: list[tuple] = []

    def set(self, ref: DocumentRef, data: dict, merge: bool = False) -> "WriteBatch":
        self._ops.append(("set", ref, data, merge))
        return self

    def update(self, ref: DocumentRef, data: dict) -> "WriteBatch":
        self._ops.append(("update", ref, data, True))
        return self

    def delete(self, ref: DocumentRef) -> "WriteBatch":
        self._ops.append(("delete", ref, None, False))
        return self

    def delete_collection(self, collection: str) -> "WriteBatch":
        self._ops.append(("delete_collection", collection, None, False))
        return self

    def __len__(self) -> int:
        return len(self._ops)

    def commit(self) -> None:
        self._store._apply(self._ops)
        self._ops = []


class DocumentStore:
    """
    SQLite document store.

    Every public call opens its own connection so the store can be shared
    across request handlers. Batches run inside a single IMMEDIATE
    transaction: either every write lands or none does.
    """

    def __init__(self, db_path: str, timeout: float = 5.0):
        self.db_path = db_path
        self.timeout = timeout
        with self._connect() as conn:
            conn.execute(_SCHEMA)

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        """Open a connection in autocommit mode and translate sqlite errors."""
        try:
            conn = sqlite3.connect(
                self.db_path,
                timeout=self.timeout,
                isolation_level=None,
                check_same_thread=False,
            )
        except sqlite3.Error as e:
            raise _classify(e) from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            raise _classify(e) from e
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, ref: DocumentRef) -> Optional[dict]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                (ref.collection, ref.id),
            ).fetchone()
        return json.loads(row["data"]) if row else None

    def query(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Document]:
        """List documents of a collection, optionally ordered by a top-level field."""
        sql = "SELECT doc_id, data FROM documents WHERE collection = ?"
        params: list[Any] = [collection]
        direction = "DESC" if descending else "ASC"
        if order_by:
            sql += f" ORDER BY json_extract(data, ?) {direction}, doc_id {direction}"
            params.append(f"$.{order_by}")
        else:
            sql += f" ORDER BY doc_id {direction}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [Document(id=row["doc_id"], data=json.loads(row["data"])) for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(self, ref: DocumentRef, data: dict, merge: bool = False) -> None:
        self.batch().set(ref, data, merge=merge).commit()

    def update(self, ref: DocumentRef, data: dict) -> None:
        """Merge fields into an existing document; raises if it does not exist."""
        self.batch().update(ref, data).commit()

    def delete(self, ref: DocumentRef) -> None:
        self.batch().delete(ref).commit()

    def delete_collection(self, collection: str) -> None:
        self.batch().delete_collection(collection).commit()

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def _apply(self, ops: list[tuple]) -> None:
        if not ops:
            return
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                for op, target, data, merge in ops:
                    self._apply_one(conn, op, target, data, merge)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        log.debug(f"[STORE] Committed batch of {len(ops)} write(s)")

    def _apply_one(self, conn: sqlite3.Connection, op: str, target, data, merge: bool) -> None:
        if op == "delete_collection":
            conn.execute(
                "DELETE FROM documents WHERE collection = ? OR substr(collection, 1, ?) = ?",
                (target, len(target) + 1, f"{target}/"),
            )
            return

        ref: DocumentRef = target
        if op == "delete":
            conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (ref.collection, ref.id),
            )
            return

        if merge:
            row = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                (ref.collection, ref.id),
            ).fetchone()
            if row is None and op == "update":
                raise DocumentNotFoundError(f"No document at {ref.path}")
            if row is not None:
                data = _deep_merge(json.loads(row["data"]), data)

        conn.execute(
            "INSERT OR REPLACE INTO documents (collection, doc_id, data) VALUES (?, ?, ?)",
            (ref.collection, ref.id, json.dumps(data, ensure_ascii=False)),
        )
