# Overview: Purchase documents and payment reconciliation; totals, paid amounts and status derivation.

"""
Purchase Reconciliation Service

WHY: Purchase orders, credit notes and debit notes are paid off over time.
The amount owed comes from the line items; the amount paid comes from the
embedded payment log. Status is derived from the two, never typed in.

DESIGN PRINCIPLES:
- total_amount_cents is always the sum of item totals (recomputed on every
  item change)
- paid_amount_cents is always the sum of payment amounts (recomputed on
  every payment change)
- Status is a pure function of (paid, total), re-derived after every item or
  payment mutation; removing a payment can move it backward
- Overpayment is allowed and simply reads as "paid"
- CANCELLED is a manual, frozen override: later item/payment changes still
  recompute the amounts but keep the status until reactivate_purchase()
- Payments are owned by their purchase (embedded, no separate lifecycle)
"""

from __future__ import annotations

from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from flask import current_app

from ..errors import NotFoundError, PaymentAmountInvalidError
from ..models.records import (
    PURCHASE_ORDER,
    STATUS_CANCELLED,
    STATUS_PAID,
    STATUS_PARTIAL,
    STATUS_PENDING,
    Purchase,
)
from ..time_utils import coerce_datetime, to_utc_z, utcnow
from .concurrency import run_with_retry
from .record_store import SERVER_TIMESTAMP, collection_path, new_id, store


# Header fields a caller may edit after creation
PURCHASE_HEADER_FIELDS = ("type", "number", "supplier", "date", "due_date", "notes")


def purchases_collection(store_id: str) -> str:
    return collection_path(store_id, "purchases")


# =============================================================================
# PURE CALCULATIONS
# =============================================================================

def _round_cents(value: Decimal) -> int:
    # nearest-cent rounding (half-up)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def derive_payment_status(paid_amount_cents: int, total_amount_cents: int) -> str:
    """
    PAYMENT STATUS:
    - pending: paid <= 0
    - partial: 0 < paid < total
    - paid:    paid >= total (overpayment included)

    Never returns "cancelled"; that state is only set manually.
    """
    if paid_amount_cents <= 0:
        return STATUS_PENDING
    if paid_amount_cents < total_amount_cents:
        return STATUS_PARTIAL
    return STATUS_PAID


def price_item(item: dict) -> dict:
    """
    Compute a line's subtotal and total.

    subtotal = quantity x price; tax and discount are percentages of the
    subtotal; total = subtotal + tax - discount. Each amount is rounded to
    the cent.
    """
    quantity = Decimal(str(item.get("quantity") or 0))
    price_cents = int(item.get("price_cents") or 0)
    tax_percent = item.get("tax_percent")
    discount_percent = item.get("discount_percent")

    subtotal = _round_cents(quantity * price_cents)
    tax = _round_cents(Decimal(subtotal) * Decimal(str(tax_percent or 0)) / 100)
    discount = _round_cents(Decimal(subtotal) * Decimal(str(discount_percent or 0)) / 100)

    return {
        "id": item.get("id") or new_id(),
        "name": item.get("name") or "",
        "quantity": item.get("quantity") or 0,
        "unit": item.get("unit") or "pcs",
        "price_cents": price_cents,
        "subtotal_cents": subtotal,
        "tax_percent": tax_percent,
        "discount_percent": discount_percent,
        "total_cents": subtotal + tax - discount,
    }


def _payment_document(payment: dict) -> dict:
    amount = payment.get("amount_cents")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise PaymentAmountInvalidError("Payment amount must be positive")

    return {
        "id": payment.get("id") or new_id(),
        "date": to_utc_z(coerce_datetime(payment.get("date")) or utcnow()),
        "amount_cents": amount,
        "method": payment.get("method") or "cash",
        "reference": payment.get("reference") or "",
        "notes": payment.get("notes"),
    }


def _reconcile(doc: dict) -> dict:
    """Recompute derived amounts and status of a purchase document in place."""
    items = doc.get("items") or []
    payments = doc.get("payments") or []

    doc["total_amount_cents"] = sum(i.get("total_cents") or 0 for i in items)
    doc["paid_amount_cents"] = sum(p.get("amount_cents") or 0 for p in payments)

    if doc.get("status") != STATUS_CANCELLED:
        doc["status"] = derive_payment_status(doc["paid_amount_cents"], doc["total_amount_cents"])
    return doc


def _header_document(fields: dict) -> dict:
    header = {}
    for key in PURCHASE_HEADER_FIELDS:
        if key in fields:
            value = fields[key]
            if key in ("date", "due_date"):
                value = to_utc_z(coerce_datetime(value))
            header[key] = value
    return header


# =============================================================================
# READS
# =============================================================================

def _load(store_id: str, purchase_id: str) -> dict:
    fields = store.get(purchases_collection(store_id), purchase_id)
    if fields is None:
        raise NotFoundError("Purchase", purchase_id)
    return fields


def _load_for_update(store_id: str, purchase_id: str) -> tuple[dict, int]:
    found = store.get_for_update(purchases_collection(store_id), purchase_id)
    if found is None:
        raise NotFoundError("Purchase", purchase_id)
    return found


def get_purchase(*, store_id: str, purchase_id: str) -> Purchase:
    return Purchase.from_document(purchase_id, _load(store_id, purchase_id))


def list_purchases(
    *,
    store_id: str,
    supplier: str | None = None,
    status: str | None = None,
    type: str | None = None,
    date_from=None,
    date_to=None,
    search: str | None = None,
) -> list[Purchase]:
    """
    Purchases of a store, newest date first.

    date_from is inclusive; date_to covers the whole of its day.
    search matches number, supplier and notes case-insensitively.
    """
    filters = []
    if supplier:
        filters.append(("supplier", "==", supplier))
    if status:
        filters.append(("status", "==", status))
    if type:
        filters.append(("type", "==", type))
    if date_from is not None:
        filters.append(("date", ">=", coerce_datetime(date_from)))
    if date_to is not None:
        end = coerce_datetime(date_to).replace(hour=0, minute=0, second=0, microsecond=0)
        filters.append(("date", "<", end + timedelta(days=1)))

    docs = store.list(purchases_collection(store_id), filters=filters, order_by=("date", "desc"))
    purchases = [Purchase.from_document(doc_id, fields) for doc_id, fields in docs]

    if search:
        needle = search.strip().lower()
        purchases = [
            p for p in purchases
            if any(needle in (v or "").lower() for v in (p.number, p.supplier, p.notes))
        ]
    return purchases


def get_payment_summary(*, store_id: str, purchase_id: str) -> dict:
    """
    Get payment summary for a purchase.

    Returns:
        - total_amount_cents: Amount owed per the items
        - paid_amount_cents: Amount paid so far
        - balance_cents: Amount still owed (negative if overpaid)
        - status: pending, partial, paid or cancelled
        - payments: List of payment records
    """
    purchase = get_purchase(store_id=store_id, purchase_id=purchase_id)
    return {
        "total_amount_cents": purchase.total_amount_cents,
        "paid_amount_cents": purchase.paid_amount_cents,
        "balance_cents": purchase.balance_cents,
        "status": purchase.status,
        "payments": [p.to_dict() for p in purchase.payments],
    }


# =============================================================================
# MUTATIONS
# =============================================================================

def create_purchase(*, store_id: str, fields: dict) -> Purchase:
    """
    Create a purchase from header fields plus optional items and payments.

    Totals, paid amount and status are derived; any supplied values for them
    are ignored.
    """
    doc = {
        "type": PURCHASE_ORDER,
        "notes": "",
        **_header_document(fields),
        "items": [price_item(i) for i in fields.get("items") or []],
        "payments": [_payment_document(p) for p in fields.get("payments") or []],
        "status": STATUS_PENDING,
        "created_at": SERVER_TIMESTAMP,
        "updated_at": SERVER_TIMESTAMP,
    }
    if not doc.get("date"):
        doc["date"] = to_utc_z(utcnow())
    _reconcile(doc)

    def _op():
        return store.create(purchases_collection(store_id), doc)

    purchase_id = run_with_retry(_op)
    return get_purchase(store_id=store_id, purchase_id=purchase_id)


def _mutate(store_id: str, purchase_id: str, mutator) -> Purchase:
    """
    Read-modify-write a purchase document under lock.

    mutator receives the current document and returns the fields to write.
    """
    def _op():
        current, version = _load_for_update(store_id, purchase_id)
        changes = mutator(current)
        store.update(
            purchases_collection(store_id),
            purchase_id,
            {**changes, "updated_at": SERVER_TIMESTAMP},
            expected_version=version,
        )

    run_with_retry(_op)
    return get_purchase(store_id=store_id, purchase_id=purchase_id)


def update_purchase(*, store_id: str, purchase_id: str, changes: dict) -> Purchase:
    """Edit header fields. Derived fields and status cannot be set here."""
    illegal = sorted(set(changes) - set(PURCHASE_HEADER_FIELDS))
    if illegal:
        raise ValueError(f"Cannot update purchase fields: {', '.join(illegal)}")
    header = _header_document(changes)
    return _mutate(store_id, purchase_id, lambda current: header)


def set_items(*, store_id: str, purchase_id: str, items: list[dict]) -> Purchase:
    """Replace the item list; total and status follow."""
    priced = [price_item(i) for i in items]

    def _apply(current):
        doc = _reconcile({**current, "items": priced})
        return {k: doc[k] for k in ("items", "total_amount_cents", "paid_amount_cents", "status")}

    return _mutate(store_id, purchase_id, _apply)


def add_payment(*, store_id: str, purchase_id: str, payment: dict) -> Purchase:
    """
    Append a payment.

    Raises PaymentAmountInvalidError if amount_cents <= 0 (nothing written).
    """
    entry = _payment_document(payment)

    def _apply(current):
        doc = _reconcile({**current, "payments": [*(current.get("payments") or []), entry]})
        return {k: doc[k] for k in ("payments", "total_amount_cents", "paid_amount_cents", "status")}

    purchase = _mutate(store_id, purchase_id, _apply)
    current_app.logger.info(
        "Payment %s of %d cents added to purchase %s (status=%s)",
        entry["id"], entry["amount_cents"], purchase_id, purchase.status,
    )
    return purchase


def remove_payment(*, store_id: str, purchase_id: str, index: int) -> Purchase:
    """Remove the payment at index; paid amount and status are recomputed."""
    def _apply(current):
        payments = list(current.get("payments") or [])
        if index < 0 or index >= len(payments):
            raise NotFoundError("Payment", f"#{index} on purchase {purchase_id}")
        payments.pop(index)
        doc = _reconcile({**current, "payments": payments})
        return {k: doc[k] for k in ("payments", "total_amount_cents", "paid_amount_cents", "status")}

    return _mutate(store_id, purchase_id, _apply)


def cancel_purchase(*, store_id: str, purchase_id: str) -> Purchase:
    """Freeze the purchase as cancelled."""
    return _mutate(store_id, purchase_id, lambda current: {"status": STATUS_CANCELLED})


def reactivate_purchase(*, store_id: str, purchase_id: str) -> Purchase:
    """Lift a cancellation; status is derived from the balance again."""
    def _apply(current):
        doc = _reconcile({**current, "status": None})
        return {k: doc[k] for k in ("total_amount_cents", "paid_amount_cents", "status")}

    return _mutate(store_id, purchase_id, _apply)


def delete_purchase(*, store_id: str, purchase_id: str) -> None:
    def _op():
        _load(store_id, purchase_id)
        store.delete(purchases_collection(store_id), purchase_id)

    run_with_retry(_op)
