"""JSON document collections persisted in SQLite."""
from __future__ import annotations

import datetime as dt
import json
import logging
import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol

from config.settings import settings
from errors import UpstreamError

from .migrate import migrate
from .sqlite import get_conn


logger = logging.getLogger(__name__)

_FIELD_PART = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class DocumentStore(Protocol):  # Schema-less per-collection document storage
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]: ...

    def set(self, collection: str, doc_id: str, doc: Mapping[str, Any]) -> None: ...

    def update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> bool: ...

    def delete(self, collection: str, doc_id: str) -> None: ...

    def query(
        self,
        collection: str,
        filters: Mapping[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]: ...


def json_path(field: str) -> str:
    """Translate a dotted field name (``answers.q1``) into a quoted SQLite JSON path."""

    parts = field.split(".")
    for part in parts:
        if not _FIELD_PART.match(part):
            raise ValueError(f"Invalid document field path: {field!r}")
    return "$" + "".join(f'."{part}"' for part in parts)


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        logger.error("Document store %s failed: %s", action, exc)
        raise UpstreamError("Document store is unavailable.") from exc


class SqliteDocumentStore:
    """Document store keeping one JSON body per ``(collection, doc_id)`` row.

    ``update`` accepts dotted field paths and applies them with ``json_set`` in a
    single statement, so concurrent writers touching different keys of the same
    document do not overwrite each other. Unguarded writers racing on the same
    key resolve last-write-wins; guarded writers lose with ``False``.
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        self._db_path = str(db_path) if db_path else None
        with _store_errors("migration"):
            migrate(self._path())

    def _path(self) -> str:
        return self._db_path or settings.DB_PATH

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with _store_errors("read"), get_conn(self._path()) as conn:
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            ).fetchone()
        if row is None:
            return None
        return json.loads(row["body"])

    def set(self, collection: str, doc_id: str, doc: Mapping[str, Any]) -> None:
        body = json.dumps(dict(doc), ensure_ascii=False)
        with _store_errors("write"), get_conn(self._path()) as conn:
            conn.execute(
                """INSERT OR REPLACE INTO documents (collection, doc_id, body, updated_at)
                   VALUES (?, ?, ?, ?)""",
                (collection, doc_id, body, _now()),
            )

    def update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """Apply partial field writes; raises ``KeyError`` when the document is missing.

        ``expected`` maps dotted field paths to the JSON values they must still
        hold. The check and the write run as one statement; when any expected
        value differs nothing is written and ``False`` is returned.
        """

        assignments: List[str] = []
        params: List[Any] = []
        for name, value in fields.items():
            assignments.append("?, json(?)")
            params.extend([json_path(name), json.dumps(value, ensure_ascii=False)])
        body = f"json_set(body, {', '.join(assignments)})" if assignments else "body"

        clauses = ["collection = ?", "doc_id = ?"]
        where: List[Any] = [collection, doc_id]
        for name, value in (expected or {}).items():
            clauses.append("json_extract(body, ?) IS json_extract(json(?), '$')")
            where.extend([json_path(name), json.dumps(value, ensure_ascii=False)])

        with _store_errors("update"), get_conn(self._path()) as conn:
            cur = conn.execute(
                f"UPDATE documents SET body = {body}, updated_at = ? WHERE {' AND '.join(clauses)}",
                (*params, _now(), *where),
            )
            if cur.rowcount:
                return True
            exists = conn.execute(
                "SELECT 1 FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            ).fetchone()
        if exists is None:
            raise KeyError(f"Document '{collection}/{doc_id}' not found")
        return False

    def delete(self, collection: str, doc_id: str) -> None:
        with _store_errors("delete"), get_conn(self._path()) as conn:
            cur = conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
            if cur.rowcount == 0:
                raise KeyError(f"Document '{collection}/{doc_id}' not found")

    def query(
        self,
        collection: str,
        filters: Mapping[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        """Return a fresh snapshot of matching documents, optionally ordered by one field."""

        clauses = ["collection = ?"]
        params: List[Any] = [collection]
        for name, value in filters.items():
            clauses.append("json_extract(body, ?) = ?")
            params.extend([json_path(name), value])
        sql = f"SELECT body FROM documents WHERE {' AND '.join(clauses)}"
        if order_by:
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY json_extract(body, ?) {direction}, doc_id {direction}"
            params.append(json_path(order_by))
        with _store_errors("query"), get_conn(self._path()) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [json.loads(row["body"]) for row in rows]


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


__all__ = ["DocumentStore", "SqliteDocumentStore", "json_path"]
