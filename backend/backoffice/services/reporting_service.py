# Overview: Derived views over current inventory and purchase records; recomputed on every read.

"""
Reporting Service

Read-only aggregations for the dashboard cards. Nothing here is cached or
persisted: every call scans the current documents, so results always match
the underlying records.

Item-level functions take an item list so they can be composed and tested
without a database; the *_for_store wrappers load the current records.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional

from flask import current_app

from ..models.records import STATUS_PARTIAL, STATUS_PENDING, InventoryItem, Purchase
from ..time_utils import utcnow
from . import inventory_service, purchase_service


def _expiry_cutoff(now: Optional[datetime] = None, days: Optional[int] = None) -> datetime:
    if days is None:
        days = current_app.config.get("EXPIRY_WARNING_DAYS", 30)
    return (now or utcnow()) + timedelta(days=days)


# =============================================================================
# INVENTORY VIEWS
# =============================================================================

def low_stock(items: Iterable[InventoryItem]) -> list[InventoryItem]:
    """Items at or below their minimum quantity."""
    return [i for i in items if i.quantity <= i.min_quantity]


def expiring_soon(
    items: Iterable[InventoryItem],
    *,
    now: Optional[datetime] = None,
    days: Optional[int] = None,
) -> list[InventoryItem]:
    """Items with an expiry date on or before now + days (already expired included)."""
    cutoff = _expiry_cutoff(now, days)
    return [i for i in items if i.expiry_date is not None and i.expiry_date <= cutoff]


def total_value_cents(items: Iterable[InventoryItem]) -> int:
    """Sum of quantity x unit cost."""
    return sum(i.value_cents for i in items)


def categories(items: Iterable[InventoryItem]) -> list[str]:
    return sorted({i.category for i in items if i.category})


def category_rollup(items: Iterable[InventoryItem]) -> list[dict]:
    """Per-category item count, quantity and value, sorted by category."""
    rollup: dict[str, dict] = {}
    for item in items:
        row = rollup.setdefault(
            item.category,
            {"category": item.category, "item_count": 0, "quantity": 0, "value_cents": 0},
        )
        row["item_count"] += 1
        row["quantity"] += item.quantity
        row["value_cents"] += item.value_cents
    return [rollup[k] for k in sorted(rollup)]


def inventory_stats(items: Iterable[InventoryItem], *, now: Optional[datetime] = None) -> dict:
    items = list(items)
    return {
        "total_items": len(items),
        "low_stock": len(low_stock(items)),
        "expiring_soon": len(expiring_soon(items, now=now)),
        "total_value_cents": total_value_cents(items),
    }


# =============================================================================
# PURCHASE VIEWS
# =============================================================================

def purchase_stats(purchases: Iterable[Purchase]) -> dict:
    """
    Dashboard totals for purchases.

    pending_payments counts purchases that are pending or partially paid.
    """
    purchases = list(purchases)
    total_amount = sum(p.total_amount_cents for p in purchases)
    paid_amount = sum(p.paid_amount_cents for p in purchases)
    return {
        "total_purchases": len(purchases),
        "pending_payments": sum(1 for p in purchases if p.status in (STATUS_PENDING, STATUS_PARTIAL)),
        "total_amount_cents": total_amount,
        "paid_amount_cents": paid_amount,
        "outstanding_cents": total_amount - paid_amount,
    }


# =============================================================================
# STORE-LEVEL WRAPPERS
# =============================================================================

def inventory_stats_for_store(store_id: str) -> dict:
    return inventory_stats(inventory_service.list_items(store_id=store_id))


def low_stock_for_store(store_id: str) -> list[InventoryItem]:
    return low_stock(inventory_service.list_items(store_id=store_id))


def expiring_soon_for_store(store_id: str) -> list[InventoryItem]:
    return expiring_soon(inventory_service.list_items(store_id=store_id))


def category_rollup_for_store(store_id: str) -> list[dict]:
    return category_rollup(inventory_service.list_items(store_id=store_id))


def categories_for_store(store_id: str) -> list[str]:
    return categories(inventory_service.list_items(store_id=store_id))


def purchase_stats_for_store(store_id: str) -> dict:
    return purchase_stats(purchase_service.list_purchases(store_id=store_id))
