# Overview: Append-only inventory history; one log per inventory item.

from __future__ import annotations

from typing import Any, Optional

from ..models.records import HISTORY_TYPES, InventoryHistoryRecord
from .record_store import SERVER_TIMESTAMP, collection_path, store
"""
Inventory History Invariants (authoritative)

- Append-only: records are created once and never updated or deleted here.
- One history collection per item: stores/<store>/inventory/<item>/history.
- History is written inside the same transaction as the item mutation it
  records; the caller commits both together.
- timestamp is system time (SERVER_TIMESTAMP at write).
- Deleting an item leaves its history in place (orphaned, still readable).
"""


def history_collection(store_id: str, item_id: str) -> str:
    return collection_path(store_id, "inventory", item_id, "history")


def append_history(
    *,
    store_id: str,
    item_id: str,
    type: str,
    user: Optional[str] = None,
    quantity_change: Optional[float] = None,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    changes: Optional[dict[str, dict[str, Any]]] = None,
) -> str:
    """
    Append one history record for an item and return its id.

    Optional fields left as None are not stored.
    """
    if type not in HISTORY_TYPES:
        raise ValueError(f"invalid history type: {type}")

    fields = {
        "item_id": item_id,
        "type": type,
        "timestamp": SERVER_TIMESTAMP,
    }
    optional = {
        "user": user,
        "quantity_change": quantity_change,
        "reason": reason,
        "notes": notes,
        "changes": changes,
    }
    fields.update({k: v for k, v in optional.items() if v is not None})

    return store.create(history_collection(store_id, item_id), fields)


def list_history(*, store_id: str, item_id: str, limit: int | None = None) -> list[InventoryHistoryRecord]:
    """History for an item, newest first."""
    docs = store.list(
        history_collection(store_id, item_id),
        order_by=("timestamp", "desc"),
    )
    if limit is not None:
        docs = docs[:limit]
    return [InventoryHistoryRecord.from_document(doc_id, fields) for doc_id, fields in docs]
