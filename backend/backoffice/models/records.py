from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..time_utils import coerce_datetime, to_utc_z

"""
Typed views over stored documents.

Documents hold JSON-native values (datetimes as ISO-8601 'Z' strings, money
as integer cents). These dataclasses are what services hand back to callers;
from_document() applies the same defaults the console has always assumed for
missing fields.
"""


# =============================================================================
# CONSTANTS
# =============================================================================

HISTORY_CREATE = "create"
HISTORY_UPDATE = "update"
HISTORY_ADJUSTMENT = "adjustment"

HISTORY_TYPES = (HISTORY_CREATE, HISTORY_UPDATE, HISTORY_ADJUSTMENT)

PURCHASE_ORDER = "purchase_order"
CREDIT_NOTE = "credit_note"
DEBIT_NOTE = "debit_note"

PURCHASE_TYPES = (PURCHASE_ORDER, CREDIT_NOTE, DEBIT_NOTE)

STATUS_PENDING = "pending"
STATUS_PARTIAL = "partial"
STATUS_PAID = "paid"
STATUS_CANCELLED = "cancelled"

PURCHASE_STATUSES = (STATUS_PENDING, STATUS_PARTIAL, STATUS_PAID, STATUS_CANCELLED)

# Fields a caller may set on an inventory item (create or update)
INVENTORY_FIELDS = (
    "name",
    "quantity",
    "min_quantity",
    "unit",
    "category",
    "cost_cents",
    "supplier",
    "expiry_date",
    "location",
    "sku",
    "notes",
    "tags",
)

INVENTORY_DATETIME_FIELDS = ("expiry_date",)


def to_document_value(key: str, value: Any) -> Any:
    """Convert a Python value into its stored JSON form."""
    if isinstance(value, datetime):
        return to_utc_z(value)
    if key == "tags" and value is not None:
        if isinstance(value, str):
            value = value.split(",")
        return sorted({str(t).strip() for t in value if str(t).strip()})
    return value


def _dt(value) -> Optional[datetime]:
    return coerce_datetime(value) if value else None


# =============================================================================
# INVENTORY
# =============================================================================

@dataclass
class InventoryItem:
    id: str
    name: str
    quantity: float = 0
    min_quantity: float = 0
    unit: str = "units"
    category: str = "Uncategorized"
    cost_cents: int = 0
    supplier: str = ""
    expiry_date: Optional[datetime] = None
    location: str = ""
    sku: str = ""
    notes: str = ""
    tags: list[str] = field(default_factory=list)
    last_updated: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc_id: str, fields: dict) -> "InventoryItem":
        return cls(
            id=doc_id,
            name=fields.get("name") or "",
            quantity=fields.get("quantity") or 0,
            min_quantity=fields.get("min_quantity") or 0,
            unit=fields.get("unit") or "units",
            category=fields.get("category") or "Uncategorized",
            cost_cents=fields.get("cost_cents") or 0,
            supplier=fields.get("supplier") or "",
            expiry_date=_dt(fields.get("expiry_date")),
            location=fields.get("location") or "",
            sku=fields.get("sku") or "",
            notes=fields.get("notes") or "",
            tags=list(fields.get("tags") or []),
            last_updated=_dt(fields.get("last_updated")),
        )

    @property
    def value_cents(self) -> int:
        return int(round(self.quantity * self.cost_cents))

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "min_quantity": self.min_quantity,
            "unit": self.unit,
            "category": self.category,
            "cost_cents": self.cost_cents,
            "supplier": self.supplier,
            "expiry_date": to_utc_z(self.expiry_date),
            "location": self.location,
            "sku": self.sku,
            "notes": self.notes,
            "tags": list(self.tags),
            "last_updated": to_utc_z(self.last_updated),
        }


@dataclass
class InventoryHistoryRecord:
    id: str
    item_id: str
    type: str
    timestamp: Optional[datetime] = None
    user: Optional[str] = None
    quantity_change: Optional[float] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    changes: Optional[dict] = None

    @classmethod
    def from_document(cls, doc_id: str, fields: dict) -> "InventoryHistoryRecord":
        return cls(
            id=doc_id,
            item_id=fields.get("item_id"),
            type=fields.get("type"),
            timestamp=_dt(fields.get("timestamp")),
            user=fields.get("user"),
            quantity_change=fields.get("quantity_change"),
            reason=fields.get("reason"),
            notes=fields.get("notes"),
            changes=fields.get("changes"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "type": self.type,
            "timestamp": to_utc_z(self.timestamp),
            "user": self.user,
            "quantity_change": self.quantity_change,
            "reason": self.reason,
            "notes": self.notes,
            "changes": self.changes,
        }


# =============================================================================
# PURCHASES
# =============================================================================

@dataclass
class PurchaseItem:
    id: str
    name: str
    quantity: float = 1
    unit: str = "pcs"
    price_cents: int = 0
    subtotal_cents: int = 0
    tax_percent: Optional[float] = None
    discount_percent: Optional[float] = None
    total_cents: int = 0

    @classmethod
    def from_document(cls, fields: dict) -> "PurchaseItem":
        return cls(
            id=fields.get("id") or "",
            name=fields.get("name") or "",
            quantity=fields.get("quantity") or 0,
            unit=fields.get("unit") or "pcs",
            price_cents=fields.get("price_cents") or 0,
            subtotal_cents=fields.get("subtotal_cents") or 0,
            tax_percent=fields.get("tax_percent"),
            discount_percent=fields.get("discount_percent"),
            total_cents=fields.get("total_cents") or 0,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "price_cents": self.price_cents,
            "subtotal_cents": self.subtotal_cents,
            "tax_percent": self.tax_percent,
            "discount_percent": self.discount_percent,
            "total_cents": self.total_cents,
        }


@dataclass
class Payment:
    id: str
    amount_cents: int
    date: Optional[datetime] = None
    method: str = "cash"
    reference: str = ""
    notes: Optional[str] = None

    @classmethod
    def from_document(cls, fields: dict) -> "Payment":
        return cls(
            id=fields.get("id") or "",
            amount_cents=fields.get("amount_cents") or 0,
            date=_dt(fields.get("date")),
            method=fields.get("method") or "cash",
            reference=fields.get("reference") or "",
            notes=fields.get("notes"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "amount_cents": self.amount_cents,
            "method": self.method,
            "reference": self.reference,
            "notes": self.notes,
        }


@dataclass
class Purchase:
    id: str
    number: str
    supplier: str
    type: str = PURCHASE_ORDER
    date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    items: list[PurchaseItem] = field(default_factory=list)
    total_amount_cents: int = 0
    paid_amount_cents: int = 0
    status: str = STATUS_PENDING
    notes: str = ""
    payments: list[Payment] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc_id: str, fields: dict) -> "Purchase":
        return cls(
            id=doc_id,
            number=fields.get("number") or "",
            supplier=fields.get("supplier") or "",
            type=fields.get("type") or PURCHASE_ORDER,
            date=_dt(fields.get("date")),
            due_date=_dt(fields.get("due_date")),
            items=[PurchaseItem.from_document(i) for i in fields.get("items") or []],
            total_amount_cents=fields.get("total_amount_cents") or 0,
            paid_amount_cents=fields.get("paid_amount_cents") or 0,
            status=fields.get("status") or STATUS_PENDING,
            notes=fields.get("notes") or "",
            payments=[Payment.from_document(p) for p in fields.get("payments") or []],
            created_at=_dt(fields.get("created_at")),
            updated_at=_dt(fields.get("updated_at")),
        )

    @property
    def balance_cents(self) -> int:
        return self.total_amount_cents - self.paid_amount_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "number": self.number,
            "supplier": self.supplier,
            "date": to_utc_z(self.date),
            "due_date": to_utc_z(self.due_date),
            "items": [i.to_dict() for i in self.items],
            "total_amount_cents": self.total_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "balance_cents": self.balance_cents,
            "status": self.status,
            "notes": self.notes,
            "payments": [p.to_dict() for p in self.payments],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


# =============================================================================
# SUPPLIERS
# =============================================================================

@dataclass
class Supplier:
    id: str
    name: str
    contact: str = ""
    email: str = ""
    phone: str = ""

    @classmethod
    def from_document(cls, doc_id: str, fields: dict) -> "Supplier":
        return cls(
            id=doc_id,
            name=fields.get("name") or "",
            contact=fields.get("contact") or "",
            email=fields.get("email") or "",
            phone=fields.get("phone") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact": self.contact,
            "email": self.email,
            "phone": self.phone,
        }
