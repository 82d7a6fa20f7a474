from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Iterable, Optional

from petstock.schema import SCHEMA_SQL
from petstock.utils import iso_now


def connect(db_path: Path | str) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def ensure_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
    conn.commit()


def q(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
    cur = conn.execute(sql, tuple(params))
    rows = cur.fetchall()
    cur.close()
    return rows


# -------------------------
# Document rows
# -------------------------
# The writers below never commit: callers wrap them in `with conn:` so a
# whole write batch lands in one SQLite transaction.

def fetch_doc(conn: sqlite3.Connection, collection: str, doc_id: str) -> Optional[dict]:
    rows = q(
        conn,
        "SELECT body FROM documents WHERE collection=? AND doc_id=?",
        (collection, doc_id),
    )
    if not rows:
        return None
    return json.loads(rows[0]["body"])


def fetch_collection(conn: sqlite3.Connection, collection: str) -> dict[str, dict]:
    rows = q(
        conn,
        "SELECT doc_id, body FROM documents WHERE collection=? ORDER BY rowid",
        (collection,),
    )
    return {str(r["doc_id"]): json.loads(r["body"]) for r in rows}


def put_doc(conn: sqlite3.Connection, collection: str, doc_id: str, body: dict) -> None:
    conn.execute(
        """
        INSERT INTO documents (collection, doc_id, body, updated_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT (collection, doc_id) DO UPDATE SET
          body = excluded.body,
          updated_at = excluded.updated_at
        """,
        (collection, doc_id, json.dumps(body, sort_keys=True), iso_now()),
    )


def drop_doc(conn: sqlite3.Connection, collection: str, doc_id: str) -> None:
    conn.execute("DELETE FROM documents WHERE collection=? AND doc_id=?", (collection, doc_id))
