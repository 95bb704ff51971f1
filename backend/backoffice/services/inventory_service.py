# Overview: Stock ledger; inventory item CRUD, guarded stock adjustments, and per-item history.

# backend/backoffice/services/inventory_service.py

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..errors import InsufficientStockError, NotFoundError, StorageFailure
from ..models.records import (
    HISTORY_ADJUSTMENT,
    HISTORY_CREATE,
    HISTORY_UPDATE,
    INVENTORY_FIELDS,
    InventoryHistoryRecord,
    InventoryItem,
    to_document_value,
)
from ..time_utils import utcnow
from ..validation import INVENTORY_ITEM_POLICY, ValidationError, validate_payload
from .concurrency import run_with_retry
from .history_service import append_history, list_history
from .record_store import SERVER_TIMESTAMP, collection_path, store
"""
Stock Ledger Invariants (authoritative)

Quantity model:
- Each item document holds its current quantity. It is mutated only here.
- adjust_stock() is the guarded path: quantity + delta must stay >= 0, or the
  call fails with InsufficientStockError before anything is written
  (read-then-reject, never clamped).
- create_item()/update_item() accept the quantity they are given. Negative
  input is rejected by the HTTP validation layer, not re-checked here.

Audit:
- create, adjust and every update with an effective change append exactly
  one history record, in the same DB transaction as the item write.
- An update whose values all equal the stored ones appends nothing.
- Deleting an item does not delete its history.

Concurrency:
- Every mutation is one read-modify-write unit run through run_with_retry().
  The item row is read FOR UPDATE and the write is checked against the
  version that read returned; a concurrent write in between raises
  StaleDataError and the unit is re-run from the read.
"""


def inventory_collection(store_id: str) -> str:
    return collection_path(store_id, "inventory")


def _to_document(fields: dict) -> dict:
    unknown = sorted(set(fields) - set(INVENTORY_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown inventory fields: {', '.join(unknown)}")
    return {k: to_document_value(k, v) for k, v in fields.items()}


def _load(store_id: str, item_id: str) -> dict:
    fields = store.get(inventory_collection(store_id), item_id)
    if fields is None:
        raise NotFoundError("Inventory item", item_id)
    return fields


def _load_for_update(store_id: str, item_id: str) -> tuple[dict, int]:
    found = store.get_for_update(inventory_collection(store_id), item_id)
    if found is None:
        raise NotFoundError("Inventory item", item_id)
    return found


def diff_fields(current: dict, changes: dict) -> dict[str, dict]:
    """
    Field-by-field diff of a change set against a stored snapshot.

    Only keys present in changes are compared. Values are compared in their
    stored JSON form, so 40 and 40.0 (or a datetime and its ISO string) are
    the same value.
    """
    diff = {}
    for key, new in changes.items():
        old = current.get(key)
        if old != new:
            diff[key] = {"old": old, "new": new}
    return diff


# =============================================================================
# READS
# =============================================================================

def get_item(*, store_id: str, item_id: str) -> InventoryItem:
    return InventoryItem.from_document(item_id, _load(store_id, item_id))


def list_items(
    *,
    store_id: str,
    category: str | None = None,
    supplier: str | None = None,
    tag: str | None = None,
    low_stock: bool = False,
    expiring_soon: bool = False,
    search: str | None = None,
) -> list[InventoryItem]:
    """
    All items of a store ordered by name, narrowed by the console's filters.

    search matches name, sku, category and notes case-insensitively.
    """
    filters = []
    if category:
        filters.append(("category", "==", category))
    if supplier:
        filters.append(("supplier", "==", supplier))
    if tag:
        filters.append(("tags", "array-contains", tag))
    if expiring_soon:
        days = current_app.config.get("EXPIRY_WARNING_DAYS", 30)
        filters.append(("expiry_date", "<=", utcnow() + timedelta(days=days)))

    docs = store.list(inventory_collection(store_id), filters=filters, order_by="name")
    items = [InventoryItem.from_document(doc_id, fields) for doc_id, fields in docs]

    if low_stock:
        items = [i for i in items if i.is_low_stock]
    if search:
        needle = search.strip().lower()
        items = [
            i for i in items
            if any(needle in (v or "").lower() for v in (i.name, i.sku, i.category, i.notes))
        ]
    return items


def get_item_history(*, store_id: str, item_id: str, limit: int | None = None) -> list[InventoryHistoryRecord]:
    """
    History for an item, newest first.

    Works for deleted items too: history outlives the item it describes.
    """
    return list_history(store_id=store_id, item_id=item_id, limit=limit)


# =============================================================================
# MUTATIONS
# =============================================================================

def create_item(*, store_id: str, fields: dict, user: str | None = None) -> InventoryItem:
    """
    Create an inventory item and its "create" history record.

    quantity defaults to 0 when not supplied.
    """
    doc = _to_document(fields)
    doc.setdefault("quantity", 0)
    doc["last_updated"] = SERVER_TIMESTAMP

    def _op():
        item_id = store.create(inventory_collection(store_id), doc)
        append_history(
            store_id=store_id,
            item_id=item_id,
            type=HISTORY_CREATE,
            user=user,
            notes="Item created",
        )
        return item_id

    item_id = run_with_retry(_op)
    return get_item(store_id=store_id, item_id=item_id)


def update_item(*, store_id: str, item_id: str, changes: dict, user: str | None = None) -> InventoryItem:
    """
    Apply a change set (field -> new value) to an item.

    The diff against the stored snapshot is recorded as one "update" history
    record, only when at least one value actually changed.
    """
    doc_changes = _to_document(changes)

    def _op():
        current, version = _load_for_update(store_id, item_id)
        diff = diff_fields(current, doc_changes)

        store.update(
            inventory_collection(store_id),
            item_id,
            {**doc_changes, "last_updated": SERVER_TIMESTAMP},
            expected_version=version,
        )

        if diff:
            append_history(
                store_id=store_id,
                item_id=item_id,
                type=HISTORY_UPDATE,
                user=user,
                changes=diff,
            )

    run_with_retry(_op)
    return get_item(store_id=store_id, item_id=item_id)


def adjust_stock(
    *,
    store_id: str,
    item_id: str,
    quantity_delta: float,
    reason: str,
    notes: str | None = None,
    user: str | None = None,
) -> InventoryItem:
    """
    Apply a signed quantity delta to an item.

    Raises InsufficientStockError (nothing written) when the result would be
    negative. Otherwise sets the new quantity and appends one "adjustment"
    history record carrying the delta, reason, notes and old/new quantity.
    """
    def _op():
        current, version = _load_for_update(store_id, item_id)
        old_quantity = current.get("quantity") or 0
        new_quantity = old_quantity + quantity_delta

        if new_quantity < 0:
            current_app.logger.warning(
                "Rejected stock adjustment store=%s item=%s quantity=%s delta=%s",
                store_id, item_id, old_quantity, quantity_delta,
            )
            raise InsufficientStockError(item_id, old_quantity, quantity_delta)

        store.update(
            inventory_collection(store_id),
            item_id,
            {"quantity": new_quantity, "last_updated": SERVER_TIMESTAMP},
            expected_version=version,
        )
        append_history(
            store_id=store_id,
            item_id=item_id,
            type=HISTORY_ADJUSTMENT,
            user=user,
            quantity_change=quantity_delta,
            reason=reason,
            notes=notes,
            changes={"quantity": {"old": old_quantity, "new": new_quantity}},
        )

    run_with_retry(_op)
    return get_item(store_id=store_id, item_id=item_id)


def delete_item(*, store_id: str, item_id: str) -> None:
    """Delete an item. Its history is left in place."""
    def _op():
        _load(store_id, item_id)
        store.delete(inventory_collection(store_id), item_id)

    run_with_retry(_op)


def bulk_import(*, store_id: str, rows: list[dict], user: str | None = None) -> int:
    """
    Create one item per row; returns how many were created.

    Rows are validated like the create form (strings from a spreadsheet are
    coerced). A row that fails is logged and skipped; earlier rows stay
    committed.
    """
    created = 0
    for index, row in enumerate(rows):
        try:
            fields = validate_payload(payload=row, policy=INVENTORY_ITEM_POLICY, partial=False)
            create_item(store_id=store_id, fields=fields, user=user)
            created += 1
        except (ValueError, StorageFailure) as e:
            name = row.get("name") if isinstance(row, dict) else None
            current_app.logger.warning("Failed to import inventory row %d (%s): %s", index, name, e)
    return created
