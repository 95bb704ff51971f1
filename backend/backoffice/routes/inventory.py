# backend/backoffice/routes/inventory.py
"""
Inventory routes (stock ledger).

Domain failures map to 4xx:
- ValidationError / InvariantViolation (e.g. stock would go negative) -> 400
- NotFoundError -> 404
Anything else is logged and returned as 500.
"""
from flask import Blueprint, current_app, request

from ..errors import InvariantViolation, NotFoundError
from ..services import inventory_service
from ..validation import (
    INVENTORY_ADJUST_POLICY,
    INVENTORY_ITEM_POLICY,
    ValidationError,
    enforce_rules_inventory_adjust,
    validate_payload,
)


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/stores/<store_id>/inventory")


def _flag(name: str) -> bool:
    return request.args.get(name, "").lower() in ("1", "true", "yes")


@inventory_bp.get("")
def list_items_route(store_id: str):
    """
    List inventory items.

    Query params: category, supplier, tag, low_stock, expiring_soon, q
    """
    try:
        items = inventory_service.list_items(
            store_id=store_id,
            category=request.args.get("category"),
            supplier=request.args.get("supplier"),
            tag=request.args.get("tag"),
            low_stock=_flag("low_stock"),
            expiring_soon=_flag("expiring_soon"),
            search=request.args.get("q"),
        )
    except ValueError as e:
        return {"error": str(e)}, 400
    return {"items": [i.to_dict() for i in items]}, 200


@inventory_bp.post("")
def create_item_route(store_id: str):
    payload = request.get_json(silent=True) or {}
    user = payload.pop("user", None) if isinstance(payload, dict) else None

    try:
        patch = validate_payload(payload=payload, policy=INVENTORY_ITEM_POLICY, partial=False)
        item = inventory_service.create_item(store_id=store_id, fields=patch, user=user)
    except ValueError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create inventory item")
        return {"error": "Internal server error"}, 500

    return {"item": item.to_dict()}, 201


@inventory_bp.get("/<item_id>")
def get_item_route(store_id: str, item_id: str):
    try:
        item = inventory_service.get_item(store_id=store_id, item_id=item_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"item": item.to_dict()}, 200


@inventory_bp.patch("/<item_id>")
def update_item_route(store_id: str, item_id: str):
    """Partial update; only fields that actually change are recorded in history."""
    payload = request.get_json(silent=True) or {}
    user = payload.pop("user", None) if isinstance(payload, dict) else None

    try:
        patch = validate_payload(payload=payload, policy=INVENTORY_ITEM_POLICY, partial=True)
        item = inventory_service.update_item(store_id=store_id, item_id=item_id, changes=patch, user=user)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValueError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to update inventory item")
        return {"error": "Internal server error"}, 500

    return {"item": item.to_dict()}, 200


@inventory_bp.delete("/<item_id>")
def delete_item_route(store_id: str, item_id: str):
    try:
        inventory_service.delete_item(store_id=store_id, item_id=item_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to delete inventory item")
        return {"error": "Internal server error"}, 500
    return {"deleted": item_id}, 200


@inventory_bp.post("/<item_id>/adjust")
def adjust_item_route(store_id: str, item_id: str):
    """
    Adjust stock by a signed delta.

    Request body:
    {
        "quantity_delta": -3,
        "reason": "Spoilage",
        "notes": "optional",
        "user": "optional"
    }

    Returns 400 when the adjustment would take stock below zero.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=INVENTORY_ADJUST_POLICY, partial=False)
        enforce_rules_inventory_adjust(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        item = inventory_service.adjust_stock(
            store_id=store_id,
            item_id=item_id,
            quantity_delta=patch["quantity_delta"],
            reason=patch["reason"],
            notes=patch.get("notes"),
            user=patch.get("user"),
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvariantViolation as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to adjust inventory")
        return {"error": "Internal server error"}, 500

    return {"item": item.to_dict()}, 200


@inventory_bp.get("/<item_id>/history")
def item_history_route(store_id: str, item_id: str):
    limit = request.args.get("limit", type=int)
    records = inventory_service.get_item_history(store_id=store_id, item_id=item_id, limit=limit)
    return {"history": [r.to_dict() for r in records]}, 200


@inventory_bp.post("/import")
def import_items_route(store_id: str):
    """
    Bulk-create items from already-parsed rows.

    Request body: {"rows": [{...}, ...]}
    Rows failing validation are skipped; the response reports the counts.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400
    rows = payload.get("rows")
    if not isinstance(rows, list):
        return {"error": "rows must be a list"}, 400

    created = inventory_service.bulk_import(store_id=store_id, rows=rows, user=payload.get("user"))
    return {"created": created, "skipped": len(rows) - created}, 201
