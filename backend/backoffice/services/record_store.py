# Overview: Document store adapter; collections of JSON documents keyed by id, scoped per tenant store.

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Document
from ..time_utils import coerce_datetime, to_utc_z, utcnow
from .concurrency import lock_for_update
"""
Record Store Invariants (authoritative)

- A document is addressed by (collection, id); ids are unique per collection.
- Collections are tenant-scoped paths built with collection_path().
- Writes flush but never commit. The caller owns the transaction boundary
  (services wrap their unit of work in concurrency.run_with_retry).
- SERVER_TIMESTAMP anywhere in a written field set is replaced by the write
  time as an ISO-8601 'Z' string with microseconds.
- list() returns documents in insertion order unless order_by is given;
  ordering ties keep insertion order (newest first for "desc").
- Read-modify-write goes get_for_update() -> update(expected_version=...).
  A document rewritten by another transaction in between raises
  StaleDataError, which run_with_retry turns into a re-run from the read.
"""


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

FILTER_OPS = ("==", "!=", "<", "<=", ">", ">=", "in", "array-contains")


def collection_path(store_id: str, *parts: str) -> str:
    """
    Build a tenant-scoped collection path.

    collection_path("s1", "inventory") -> "stores/s1/inventory"
    collection_path("s1", "inventory", item_id, "history")
    """
    if not store_id or "/" in str(store_id):
        raise ValueError("invalid store id")
    return "/".join(["stores", str(store_id), *[str(p) for p in parts]])


def new_id() -> str:
    return uuid.uuid4().hex


def _resolve_sentinels(fields: dict) -> dict:
    now = to_utc_z(utcnow(), precise=True)
    return {k: (now if v is SERVER_TIMESTAMP else v) for k, v in fields.items()}


def _comparable(stored: Any, wanted: Any) -> tuple[Any, Any]:
    # Stored datetimes are ISO strings of varying precision; compare as datetimes
    if isinstance(wanted, datetime):
        return coerce_datetime(stored), coerce_datetime(wanted)
    return stored, wanted


def _matches(fields: dict, flt: tuple) -> bool:
    key, op, wanted = flt
    stored = fields.get(key)

    if op == "==":
        return stored == (to_utc_z(wanted) if isinstance(wanted, datetime) else wanted)
    if op == "!=":
        return stored != (to_utc_z(wanted) if isinstance(wanted, datetime) else wanted)
    if op == "in":
        return stored in wanted
    if op == "array-contains":
        return isinstance(stored, list) and wanted in stored

    # Range comparisons never match a missing field
    if stored is None:
        return False
    left, right = _comparable(stored, wanted)
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    if op == ">=":
        return left >= right
    raise ValueError(f"unsupported filter op: {op}")


class DocumentStore:
    """Collection/document CRUD over the documents table."""

    def _row(self, collection: str, doc_id: str, *, lock: bool = False) -> Optional[Document]:
        query = db.session.query(Document).filter_by(collection=collection, doc_id=doc_id)
        if lock:
            query = lock_for_update(query)
        return query.first()

    def create(self, collection: str, fields: dict, doc_id: str | None = None) -> str:
        doc = Document(
            collection=collection,
            doc_id=doc_id or new_id(),
            fields=_resolve_sentinels(fields),
        )
        db.session.add(doc)
        db.session.flush()
        return doc.doc_id

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        """Return a copy of the document's fields, or None when it does not exist."""
        doc = self._row(collection, doc_id)
        if doc is None:
            return None
        return dict(doc.fields or {})

    def get_for_update(self, collection: str, doc_id: str) -> Optional[tuple[dict, int]]:
        """
        Locked read for a read-modify-write.

        Returns (fields, version_id), or None when the document does not
        exist. Pass the version back to update(expected_version=...) so a
        write that landed in between is detected instead of overwritten.
        """
        doc = self._row(collection, doc_id, lock=True)
        if doc is None:
            return None
        return dict(doc.fields or {}), doc.version_id

    def update(
        self,
        collection: str,
        doc_id: str,
        fields: dict,
        *,
        expected_version: int | None = None,
    ) -> None:
        """
        Merge fields into an existing document.

        Raises LookupError if the document does not exist; callers translate
        it into their own NotFoundError. With expected_version, raises
        StaleDataError when the stored document is no longer that version.
        """
        doc = self._row(collection, doc_id)
        if doc is None:
            raise LookupError(f"{collection}/{doc_id} does not exist")
        if expected_version is not None and doc.version_id != expected_version:
            raise StaleDataError(
                f"{collection}/{doc_id} is at version {doc.version_id}, expected {expected_version}"
            )
        doc.fields = {**(doc.fields or {}), **_resolve_sentinels(fields)}
        # The version predicate of this flush is the version that was read
        db.session.flush()

    def delete(self, collection: str, doc_id: str) -> None:
        doc = self._row(collection, doc_id)
        if doc is not None:
            db.session.delete(doc)
            db.session.flush()

    def list(
        self,
        collection: str,
        filters: Iterable[tuple] | None = None,
        order_by: str | tuple | None = None,
    ) -> list[tuple[str, dict]]:
        """
        List (id, fields) pairs in a collection.

        filters: (field, op, value) tuples, all of which must match.
        order_by: field name (ascending) or (field, "asc"|"desc").
        """
        filters = list(filters or [])
        for _, op, _ in filters:
            if op not in FILTER_OPS:
                raise ValueError(f"unsupported filter op: {op}")

        rows = (
            db.session.query(Document)
            .filter_by(collection=collection)
            .order_by(Document.id)
            .all()
        )
        docs = [(r.doc_id, dict(r.fields or {})) for r in rows]
        docs = [d for d in docs if all(_matches(d[1], f) for f in filters)]

        if order_by is not None:
            if isinstance(order_by, str):
                key, direction = order_by, "asc"
            else:
                key, direction = order_by
            descending = direction == "desc"

            def sort_key(doc):
                value = doc[1].get(key)
                return (value is not None, value if value is not None else 0)

            if descending:
                docs.reverse()
            docs.sort(key=sort_key, reverse=descending)

        return docs


store = DocumentStore()
