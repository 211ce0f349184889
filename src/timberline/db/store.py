# src/timberline/db/store.py
# generic collection/document access on top of the documents table
from __future__ import annotations

import json
import re
import sqlite3
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

import aiosqlite

from timberline.db.database import connect
from timberline.utils.errors import ExternalServiceError, NotFoundError
from timberline.utils.logger import get_logger

_logger = get_logger(__name__)

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
_META_FIELDS = ("id", "created_at", "updated_at")

Document = Dict[str, Any]


def new_id() -> str:
    return uuid.uuid4().hex


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(data: Document) -> str:
    body = {k: v for k, v in data.items() if k not in _META_FIELDS}
    return json.dumps(body, default=_json_default, ensure_ascii=False)


def _json_path(field: str) -> str:
    if not _FIELD_RE.match(field):
        raise ValueError(f"Invalid document field: {field!r}")
    return "$." + field


def _row_to_doc(row: Sequence) -> Document:
    doc = json.loads(row[1])
    doc["id"] = row[0]
    doc["created_at"] = row[2]
    doc["updated_at"] = row[3]
    return doc


def _where_sql(collection: str, where: Optional[Dict[str, Any]]) -> Tuple[str, List[Any]]:
    """
    Build the WHERE clause for an equality filter.
    list/tuple/set values become IN, None becomes IS NULL.
    """
    parts = ["collection = ?"]
    params: List[Any] = [collection]
    for field, value in (where or {}).items():
        if field == "id":
            expr, expr_params = "id", []
        else:
            expr, expr_params = "json_extract(data, ?)", [_json_path(field)]

        if value is None:
            parts.append(f"{expr} IS NULL")
            params.extend(expr_params)
        elif isinstance(value, (list, tuple, set, frozenset)):
            values = [v.value if isinstance(v, Enum) else v for v in value]
            if not values:
                parts.append("0 = 1")
                continue
            placeholders = ", ".join("?" for _ in values)
            parts.append(f"{expr} IN ({placeholders})")
            params.extend(expr_params)
            params.extend(values)
        else:
            if isinstance(value, Enum):
                value = value.value
            parts.append(f"{expr} = ?")
            params.extend(expr_params)
            params.append(value)
    return " AND ".join(parts), params


@asynccontextmanager
async def _store_errors(action: str, collection: str) -> AsyncIterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        _logger.error(f"Document store failure while trying to {action} in '{collection}': {exc}")
        raise ExternalServiceError("document-store") from exc


# ---------------------------
# Single connection helpers
# ---------------------------


async def _fetch(conn: aiosqlite.Connection, collection: str, doc_id: str) -> Optional[Document]:
    cur = await conn.execute(
        "SELECT id, data, created_at, updated_at FROM documents WHERE collection = ? AND id = ?;",
        (collection, doc_id),
    )
    row = await cur.fetchone()
    await cur.close()
    return _row_to_doc(row) if row else None


async def _write_set(
    conn: aiosqlite.Connection,
    collection: str,
    doc_id: str,
    data: Document,
    merge: bool,
    ts: str,
) -> None:
    existing = await _fetch(conn, collection, doc_id)
    if existing is None:
        await conn.execute(
            "INSERT INTO documents(collection, id, data, created_at, updated_at) VALUES (?, ?, ?, ?, ?);",
            (collection, doc_id, _dumps(data), ts, ts),
        )
        return
    body = {**existing, **data} if merge else dict(data)
    await conn.execute(
        "UPDATE documents SET data = ?, updated_at = ? WHERE collection = ? AND id = ?;",
        (_dumps(body), ts, collection, doc_id),
    )


async def _write_update(
    conn: aiosqlite.Connection,
    collection: str,
    doc_id: str,
    fields: Document,
    ts: str,
) -> None:
    existing = await _fetch(conn, collection, doc_id)
    if existing is None:
        raise NotFoundError(collection, doc_id)
    existing.update(fields)
    await conn.execute(
        "UPDATE documents SET data = ?, updated_at = ? WHERE collection = ? AND id = ?;",
        (_dumps(existing), ts, collection, doc_id),
    )


async def _write_delete(conn: aiosqlite.Connection, collection: str, doc_id: str) -> bool:
    cur = await conn.execute(
        "DELETE FROM documents WHERE collection = ? AND id = ?;",
        (collection, doc_id),
    )
    deleted = cur.rowcount > 0
    await cur.close()
    return deleted


# ---------------------------
# Reads
# ---------------------------


async def get_document(collection: str, doc_id: str) -> Optional[Document]:
    """Return the document (with its id) or None."""
    async with _store_errors("read", collection):
        async with connect() as conn:
            return await _fetch(conn, collection, doc_id)


async def query_documents(
    collection: str,
    where: Optional[Dict[str, Any]] = None,
    order_by: Optional[str] = None,
    descending: bool = False,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[Document]:
    """
    Equality query over one collection.

    ``order_by`` may be a document field or one of created_at/updated_at.
    Ties keep insertion order.
    """
    clause, params = _where_sql(collection, where)
    direction = "DESC" if descending else "ASC"
    sql = f"SELECT id, data, created_at, updated_at FROM documents WHERE {clause}"
    if order_by in ("created_at", "updated_at", "id"):
        sql += f" ORDER BY {order_by} {direction}, rowid {direction}"
    elif order_by:
        sql += f" ORDER BY json_extract(data, ?) {direction}, rowid {direction}"
        params.append(_json_path(order_by))
    else:
        sql += " ORDER BY rowid"
    if limit is not None:
        sql += " LIMIT ? OFFSET ?"
        params.extend([int(limit), max(int(offset), 0)])

    async with _store_errors("query", collection):
        async with connect() as conn:
            cur = await conn.execute(sql + ";", tuple(params))
            rows = await cur.fetchall()
            await cur.close()
    return [_row_to_doc(row) for row in rows]


async def count_documents(collection: str, where: Optional[Dict[str, Any]] = None) -> int:
    clause, params = _where_sql(collection, where)
    async with _store_errors("count", collection):
        async with connect() as conn:
            cur = await conn.execute(
                f"SELECT COUNT(*) FROM documents WHERE {clause};", tuple(params)
            )
            row = await cur.fetchone()
            await cur.close()
    return int(row[0]) if row else 0


# ---------------------------
# Single document writes
# ---------------------------


async def add_document(collection: str, data: Document) -> str:
    """Insert a new document under a generated id and return the id."""
    doc_id = new_id()
    await set_document(collection, doc_id, data)
    return doc_id


async def set_document(
    collection: str, doc_id: str, data: Document, merge: bool = False
) -> None:
    """Create or overwrite a document; ``merge`` keeps fields not present in data."""
    async with _store_errors("write", collection):
        async with connect() as conn:
            await _write_set(conn, collection, doc_id, data, merge, now_iso())
            await conn.commit()
    _logger.debug(f"set {collection}/{doc_id}")


async def update_document(collection: str, doc_id: str, fields: Document) -> None:
    """Update fields of an existing document. NotFoundError if it is absent."""
    async with _store_errors("update", collection):
        async with connect() as conn:
            await _write_update(conn, collection, doc_id, fields, now_iso())
            await conn.commit()
    _logger.debug(f"updated {collection}/{doc_id}: {sorted(fields)}")


async def delete_document(collection: str, doc_id: str) -> bool:
    """Delete a document. Deleting an absent document is not an error."""
    async with _store_errors("delete", collection):
        async with connect() as conn:
            deleted = await _write_delete(conn, collection, doc_id)
            await conn.commit()
    _logger.debug(f"delete {collection}/{doc_id} (existed={deleted})")
    return deleted


# ---------------------------
# Batched writes
# ---------------------------


@dataclass(frozen=True)
class _Op:
    kind: str  # "set" | "update" | "delete"
    collection: str
    doc_id: str
    data: Optional[Document] = None
    merge: bool = False


class WriteBatch:
    """
    Collects writes and applies them in one transaction: either all of them
    land or none do.
    """

    def __init__(self) -> None:
        self._ops: List[_Op] = []
        self.committed = False

    def __len__(self) -> int:
        return len(self._ops)

    def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        self._ops.append(_Op("set", collection, doc_id, dict(data), merge))

    def add(self, collection: str, data: Document) -> str:
        doc_id = new_id()
        self.set(collection, doc_id, data)
        return doc_id

    def update(self, collection: str, doc_id: str, fields: Document) -> None:
        self._ops.append(_Op("update", collection, doc_id, dict(fields)))

    def delete(self, collection: str, doc_id: str) -> None:
        self._ops.append(_Op("delete", collection, doc_id))

    async def commit(self) -> None:
        if self.committed:
            raise RuntimeError("Batch already committed.")
        self.committed = True
        if not self._ops:
            return

        collections = ",".join(sorted({op.collection for op in self._ops}))
        ts = now_iso()
        async with _store_errors("commit batch", collections):
            async with connect() as conn:
                try:
                    for op in self._ops:
                        if op.kind == "set":
                            await _write_set(conn, op.collection, op.doc_id, op.data, op.merge, ts)
                        elif op.kind == "update":
                            await _write_update(conn, op.collection, op.doc_id, op.data, ts)
                        else:
                            await _write_delete(conn, op.collection, op.doc_id)
                    await conn.commit()
                except BaseException:
                    await conn.rollback()
                    _logger.warning(f"Rolled back batch of {len(self._ops)} writes on {collections}")
                    raise
        _logger.debug(f"Committed batch of {len(self._ops)} writes on {collections}")


@asynccontextmanager
async def batch() -> AsyncIterator[WriteBatch]:
    """
    async with batch() as b:
        b.update(...)
        b.delete(...)
    # committed atomically here; nothing is written if the block raises
    """
    wb = WriteBatch()
    yield wb
    await wb.commit()
