# Overview: Supplier directory for a store; referenced by name from inventory items and purchases.

"""
Supplier Service

Suppliers are a plain per-store directory. Inventory items and purchases
store the supplier *name*, not an id, so renaming or deleting a supplier
does not rewrite existing records.
"""

from __future__ import annotations

from ..errors import NotFoundError
from ..models.records import Supplier
from ..validation import ValidationError
from .concurrency import run_with_retry
from .record_store import collection_path, store


SUPPLIER_FIELDS = ("name", "contact", "email", "phone")


def suppliers_collection(store_id: str) -> str:
    return collection_path(store_id, "suppliers")


def _clean(fields: dict, *, partial: bool) -> dict:
    unknown = sorted(set(fields) - set(SUPPLIER_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown supplier fields: {', '.join(unknown)}")
    cleaned = {k: (fields[k] or "").strip() for k in SUPPLIER_FIELDS if k in fields}
    if (not partial or "name" in cleaned) and not cleaned.get("name"):
        raise ValidationError("Supplier name is required")
    return cleaned


def list_suppliers(*, store_id: str) -> list[Supplier]:
    """Suppliers sorted by name."""
    docs = store.list(suppliers_collection(store_id), order_by="name")
    return [Supplier.from_document(doc_id, fields) for doc_id, fields in docs]


def get_supplier(*, store_id: str, supplier_id: str) -> Supplier:
    fields = store.get(suppliers_collection(store_id), supplier_id)
    if fields is None:
        raise NotFoundError("Supplier", supplier_id)
    return Supplier.from_document(supplier_id, fields)


def create_supplier(*, store_id: str, fields: dict) -> Supplier:
    doc = {"contact": "", "email": "", "phone": "", **_clean(fields, partial=False)}
    supplier_id = run_with_retry(lambda: store.create(suppliers_collection(store_id), doc))
    return Supplier.from_document(supplier_id, doc)


def update_supplier(*, store_id: str, supplier_id: str, changes: dict) -> Supplier:
    cleaned = _clean(changes, partial=True)

    def _op():
        found = store.get_for_update(suppliers_collection(store_id), supplier_id)
        if found is None:
            raise NotFoundError("Supplier", supplier_id)
        store.update(suppliers_collection(store_id), supplier_id, cleaned, expected_version=found[1])

    run_with_retry(_op)
    return get_supplier(store_id=store_id, supplier_id=supplier_id)


def delete_supplier(*, store_id: str, supplier_id: str) -> None:
    def _op():
        if store.get(suppliers_collection(store_id), supplier_id) is None:
            raise NotFoundError("Supplier", supplier_id)
        store.delete(suppliers_collection(store_id), supplier_id)

    run_with_retry(_op)
