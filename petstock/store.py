"""
Document store boundary.

The stock core only needs four primitives from persistence:

- per-document get / set / update
- collection snapshots with change subscription (read-only push)
- atomic multi-document write batches

`MemoryDocumentStore` backs the tests; `SqliteDocumentStore` backs the app.
Neither does compare-and-swap: a batch carries absolute values computed by the
caller from an earlier read. Callers that read, validate and then commit hold
`exclusive()` for the whole sequence, so writers sharing one store object are
serialised. Separate processes on the same SQLite file are still
last-write-wins.
"""
from __future__ import annotations

import copy
import logging
import sqlite3
import threading
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional

import streamlit as st

from petstock.db import connect, drop_doc, ensure_schema, fetch_collection, fetch_doc, put_doc
from petstock.errors import NotFoundError, StoreError, TransactionError

logger = logging.getLogger(__name__)

PRODUCTS = "products"
SALES = "sales"
CUSTOMERS = "customers"

Snapshot = dict[str, dict]
Listener = Callable[[str, Snapshot], None]


@dataclass(frozen=True)
class WriteOp:
    kind: str  # SET / UPDATE / DELETE
    collection: str
    doc_id: str
    data: Optional[dict] = None


@dataclass
class WriteBatch:
    """Staged writes; nothing happens until `DocumentStore.commit(batch)`."""

    ops: list[WriteOp] = field(default_factory=list)

    def set(self, collection: str, doc_id: str, data: dict) -> "WriteBatch":
        self.ops.append(WriteOp("SET", collection, str(doc_id), copy.deepcopy(data)))
        return self

    def update(self, collection: str, doc_id: str, fields: dict) -> "WriteBatch":
        self.ops.append(WriteOp("UPDATE", collection, str(doc_id), copy.deepcopy(fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self.ops.append(WriteOp("DELETE", collection, str(doc_id)))
        return self

    @property
    def collections(self) -> set[str]:
        return {op.collection for op in self.ops}

    def __len__(self) -> int:
        return len(self.ops)


class DocumentStore:
    """Base class: subscription plumbing plus single-document writes as one-op batches."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    # ---- primitives implemented by subclasses ----

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        raise NotImplementedError

    def snapshot(self, collection: str) -> Snapshot:
        raise NotImplementedError

    def _apply(self, batch: WriteBatch) -> None:
        raise NotImplementedError

    # ---- shared behaviour ----

    @contextmanager
    def exclusive(self) -> Iterator["DocumentStore"]:
        """Holds the store lock across a read-validate-commit sequence (re-entrant)."""
        with self._lock:
            yield self

    def batch(self) -> WriteBatch:
        return WriteBatch()

    def commit(self, batch: WriteBatch) -> None:
        """All-or-nothing. Raises StoreError and applies nothing on failure."""
        if not batch.ops:
            return
        with self._lock:
            self._apply(batch)
        self._notify(batch.collections)

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        self.commit(self.batch().set(collection, doc_id, data))

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        with self._lock:
            if self.get(collection, doc_id) is None:
                raise NotFoundError(f"{collection}/{doc_id} not found.")
            self.commit(self.batch().update(collection, doc_id, fields))

    def subscribe(self, collection: str, callback: Listener) -> Callable[[], None]:
        """
        Registers `callback(collection, snapshot)`. It fires once right away with
        the current snapshot, then after every committed write to the collection.
        Returns an unsubscribe function.
        """
        with self._lock:
            self._listeners[collection].append(callback)
        callback(collection, self.snapshot(collection))

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners[collection]:
                    self._listeners[collection].remove(callback)

        return _unsubscribe

    def _notify(self, collections: set[str]) -> None:
        for name in sorted(collections):
            with self._lock:
                listeners = list(self._listeners.get(name, []))
            if not listeners:
                continue
            snap = self.snapshot(name)
            for cb in listeners:
                try:
                    cb(name, copy.deepcopy(snap))
                except Exception:
                    # A broken listener must not undo or block a committed write.
                    logger.exception("Snapshot listener failed for collection %s", name)


class MemoryDocumentStore(DocumentStore):
    """In-process store. Commits stage a copy of the data and swap it in."""

    def __init__(self) -> None:
        super().__init__()
        self._data: dict[str, dict[str, dict]] = {}

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._data.get(collection, {}).get(str(doc_id))
            return copy.deepcopy(doc) if doc is not None else None

    def snapshot(self, collection: str) -> Snapshot:
        with self._lock:
            return copy.deepcopy(self._data.get(collection, {}))

    def _apply(self, batch: WriteBatch) -> None:
        staged = {name: dict(docs) for name, docs in self._data.items()}
        for op in batch.ops:
            docs = staged.setdefault(op.collection, {})
            if op.kind == "SET":
                docs[op.doc_id] = copy.deepcopy(op.data)
            elif op.kind == "UPDATE":
                if op.doc_id not in docs:
                    raise StoreError(f"Cannot update missing document {op.collection}/{op.doc_id}.")
                merged = copy.deepcopy(docs[op.doc_id])
                merged.update(copy.deepcopy(op.data))
                docs[op.doc_id] = merged
            elif op.kind == "DELETE":
                docs.pop(op.doc_id, None)
            else:
                raise StoreError(f"Unknown write op: {op.kind}")
        self._data = staged


class SqliteDocumentStore(DocumentStore):
    """Documents as JSON rows in one SQLite table; every commit is one transaction."""

    def __init__(self, db_path: Path | str):
        super().__init__()
        self.db_path = db_path
        self.conn = connect(db_path)
        ensure_schema(self.conn)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            return fetch_doc(self.conn, collection, str(doc_id))

    def snapshot(self, collection: str) -> Snapshot:
        with self._lock:
            return fetch_collection(self.conn, collection)

    def _apply(self, batch: WriteBatch) -> None:
        try:
            # sqlite3 connection as context manager: commit on success, rollback on any error
            with self.conn:
                for op in batch.ops:
                    if op.kind == "SET":
                        put_doc(self.conn, op.collection, op.doc_id, op.data or {})
                    elif op.kind == "UPDATE":
                        current = fetch_doc(self.conn, op.collection, op.doc_id)
                        if current is None:
                            raise StoreError(
                                f"Cannot update missing document {op.collection}/{op.doc_id}."
                            )
                        current.update(op.data or {})
                        put_doc(self.conn, op.collection, op.doc_id, current)
                    elif op.kind == "DELETE":
                        drop_doc(self.conn, op.collection, op.doc_id)
                    else:
                        raise StoreError(f"Unknown write op: {op.kind}")
        except sqlite3.Error as e:
            raise StoreError(f"SQLite rejected the write batch: {e}") from e

    def close(self) -> None:
        self.conn.close()


def commit_atomic(store: DocumentStore, batch: WriteBatch, what: str) -> None:
    """Commits `batch`; storage failures are logged and re-raised as TransactionError."""
    try:
        store.commit(batch)
    except StoreError as e:
        logger.exception("Commit failed while %s", what)
        raise TransactionError(f"Could not save ({what}). No changes were applied.") from e


@st.cache_resource
def get_store(db_path: Path) -> SqliteDocumentStore:
    return SqliteDocumentStore(db_path)
