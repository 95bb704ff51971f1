from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .models.records import PURCHASE_TYPES
from .time_utils import parse_iso_datetime


# Maximum money amount: 9,999,999.99 (999,999,999 cents)
# This prevents overflow issues and nonsensical amounts
MAX_AMOUNT_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class FieldSpec:
    """
    How one payload field is coerced and checked.

    kind: "string", "number", "cents", "datetime", "tags", "choice" or "list"
    """
    kind: str
    nullable: bool = True
    nonblank: bool = False
    max_length: int | None = None
    minimum: float | None = None
    maximum: float | None = None
    choices: tuple = ()


@dataclass(frozen=True)
class ValidationPolicy:
    """
    Central policy layer:
    - fields: what clients are allowed to set (security boundary) and how
    - required_on_create: fields required for POST
    """
    fields: dict[str, FieldSpec]
    required_on_create: frozenset[str] = field(default_factory=frozenset)


def _coerce_cents(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer number of cents, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_number(key: str, value: Any) -> int | float:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, str):
        stripped = value.strip()
        try:
            value = float(stripped) if any(c in stripped for c in ".eE") else int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValidationError(f"{key} must be a finite number")
        # Keep whole quantities as ints so stored history compares cleanly
        return int(value) if value.is_integer() else value
    raise ValidationError(f"{key} must be a number")


def _coerce_tags(key: str, value: Any) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple, set)):
        raise ValidationError(f"{key} must be a list of strings")
    return sorted({str(t).strip() for t in value if str(t).strip()})


def _coerce_value(key: str, spec: FieldSpec, value: Any):
    if spec.kind == "cents":
        val = _coerce_cents(key, value)
    elif spec.kind == "number":
        val = _coerce_number(key, value)
    elif spec.kind == "datetime":
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str):
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        if dt is None:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        return dt
    elif spec.kind == "tags":
        return _coerce_tags(key, value)
    elif spec.kind == "choice":
        if value not in spec.choices:
            raise ValidationError(f"{key} must be one of {', '.join(spec.choices)}")
        return value
    elif spec.kind == "list":
        if not isinstance(value, list):
            raise ValidationError(f"{key} must be a list")
        return value
    else:
        val = str(value).strip()
        if spec.nonblank and val == "":
            raise ValidationError(f"{key} cannot be blank")
        if spec.max_length and len(val) > spec.max_length:
            raise ValidationError(f"{key} exceeds max length {spec.max_length}")
        return val

    # Range checks for numeric kinds
    if spec.minimum is not None and val < spec.minimum:
        raise ValidationError(f"{key} must be >= {spec.minimum}")
    if spec.maximum is not None and val > spec.maximum:
        raise ValidationError(f"{key} cannot exceed {spec.maximum}")
    return val


def validate_payload(
    *,
    payload: dict,
    policy: ValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against a policy.
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.fields:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}
    for k, raw in payload.items():
        spec = policy.fields[k]
        if raw is None:
            if not spec.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue
        patch[k] = _coerce_value(k, spec, raw)

    return patch


# =============================================================================
# POLICIES
# =============================================================================

_TEXT = FieldSpec("string", max_length=255)
_NOTES = FieldSpec("string", max_length=4000)
_QTY = FieldSpec("number", nullable=False, minimum=0)
_CENTS = FieldSpec("cents", nullable=False, minimum=0, maximum=MAX_AMOUNT_CENTS)
_PERCENT = FieldSpec("number", minimum=0, maximum=100)

INVENTORY_ITEM_POLICY = ValidationPolicy(
    fields={
        "name": FieldSpec("string", nullable=False, nonblank=True, max_length=255),
        "quantity": _QTY,
        "min_quantity": _QTY,
        "unit": FieldSpec("string", max_length=32),
        "category": _TEXT,
        "cost_cents": _CENTS,
        "supplier": _TEXT,
        "expiry_date": FieldSpec("datetime"),
        "location": _TEXT,
        "sku": FieldSpec("string", max_length=64),
        "notes": _NOTES,
        "tags": FieldSpec("tags"),
    },
    required_on_create=frozenset({"name"}),
)

INVENTORY_ADJUST_POLICY = ValidationPolicy(
    fields={
        "quantity_delta": FieldSpec("number", nullable=False),
        "reason": FieldSpec("string", nullable=False, nonblank=True, max_length=255),
        "notes": _NOTES,
        "user": _TEXT,
    },
    required_on_create=frozenset({"quantity_delta", "reason"}),
)

PURCHASE_HEADER_POLICY = ValidationPolicy(
    fields={
        "type": FieldSpec("choice", nullable=False, choices=PURCHASE_TYPES),
        "number": FieldSpec("string", nullable=False, nonblank=True, max_length=64),
        "supplier": FieldSpec("string", nullable=False, nonblank=True, max_length=255),
        "date": FieldSpec("datetime", nullable=False),
        "due_date": FieldSpec("datetime"),
        "notes": _NOTES,
    },
    required_on_create=frozenset({"number", "supplier"}),
)

PURCHASE_CREATE_POLICY = ValidationPolicy(
    fields={
        **PURCHASE_HEADER_POLICY.fields,
        "items": FieldSpec("list"),
        "payments": FieldSpec("list"),
    },
    required_on_create=PURCHASE_HEADER_POLICY.required_on_create,
)

PURCHASE_ITEM_POLICY = ValidationPolicy(
    fields={
        "id": FieldSpec("string", max_length=64),
        "name": FieldSpec("string", nullable=False, nonblank=True, max_length=255),
        "quantity": _QTY,
        "unit": FieldSpec("string", max_length=32),
        "price_cents": _CENTS,
        "tax_percent": _PERCENT,
        "discount_percent": _PERCENT,
    },
    required_on_create=frozenset({"name", "quantity", "price_cents"}),
)

# amount_cents > 0 is a domain invariant checked by purchase_service
PAYMENT_POLICY = ValidationPolicy(
    fields={
        "id": FieldSpec("string", max_length=64),
        "date": FieldSpec("datetime"),
        "amount_cents": FieldSpec("cents", nullable=False, maximum=MAX_AMOUNT_CENTS),
        "method": FieldSpec("string", max_length=32),
        "reference": _TEXT,
        "notes": _NOTES,
    },
    required_on_create=frozenset({"amount_cents"}),
)

SUPPLIER_POLICY = ValidationPolicy(
    fields={
        "name": FieldSpec("string", nullable=False, nonblank=True, max_length=255),
        "contact": _TEXT,
        "email": _TEXT,
        "phone": FieldSpec("string", max_length=32),
    },
    required_on_create=frozenset({"name"}),
)


def validate_list(*, payload: Any, policy: ValidationPolicy, key: str) -> list[dict]:
    """Validate a list of nested objects (purchase items, payments)."""
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValidationError(f"{key} must be a list")
    cleaned = []
    for index, entry in enumerate(payload):
        try:
            cleaned.append(validate_payload(payload=entry, policy=policy, partial=False))
        except ValidationError as e:
            raise ValidationError(f"{key}[{index}]: {e}")
    return cleaned


def enforce_rules_inventory_adjust(patch: dict) -> None:
    # ADJUST requires a non-zero delta
    if patch.get("quantity_delta") in (None, 0):
        raise ValidationError("quantity_delta must be non-zero for ADJUST")
