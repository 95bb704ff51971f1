# backend/backoffice/routes/purchases.py
"""
Purchase API Routes

Purchase orders, credit notes and debit notes with their line items and
payments. Totals, paid amounts and status are always derived server-side.

DESIGN:
- Items are replaced as a whole (PUT /items)
- Payments are appended (POST /payments) or removed by index
- Cancellation is a manual override; reactivate re-derives the status
"""

from flask import Blueprint, current_app, jsonify, request

from ..errors import InvariantViolation, NotFoundError
from ..models.records import PURCHASE_STATUSES, PURCHASE_TYPES
from ..services import purchase_service
from ..time_utils import parse_iso_datetime
from ..validation import (
    PAYMENT_POLICY,
    PURCHASE_CREATE_POLICY,
    PURCHASE_HEADER_POLICY,
    PURCHASE_ITEM_POLICY,
    ValidationError,
    validate_list,
    validate_payload,
)


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/stores/<store_id>/purchases")


def _purchase_response(purchase, status_code=200):
    return jsonify({"purchase": purchase.to_dict()}), status_code


# =============================================================================
# PURCHASE QUERIES
# =============================================================================

@purchases_bp.get("")
def list_purchases_route(store_id: str):
    """
    List purchases, newest first.

    Query params: supplier, status, type, from, to (ISO dates), q
    """
    status = request.args.get("status")
    type_ = request.args.get("type")
    if status and status not in PURCHASE_STATUSES:
        return jsonify({"error": f"status must be one of {', '.join(PURCHASE_STATUSES)}"}), 400
    if type_ and type_ not in PURCHASE_TYPES:
        return jsonify({"error": f"type must be one of {', '.join(PURCHASE_TYPES)}"}), 400

    try:
        date_from = parse_iso_datetime(request.args.get("from"))
        date_to = parse_iso_datetime(request.args.get("to"))
    except ValueError:
        return jsonify({"error": "from/to must be ISO-8601 dates"}), 400

    purchases = purchase_service.list_purchases(
        store_id=store_id,
        supplier=request.args.get("supplier"),
        status=status,
        type=type_,
        date_from=date_from,
        date_to=date_to,
        search=request.args.get("q"),
    )
    return jsonify({"purchases": [p.to_dict() for p in purchases]}), 200


@purchases_bp.get("/<purchase_id>")
def get_purchase_route(store_id: str, purchase_id: str):
    try:
        purchase = purchase_service.get_purchase(store_id=store_id, purchase_id=purchase_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return _purchase_response(purchase)


@purchases_bp.get("/<purchase_id>/summary")
def payment_summary_route(store_id: str, purchase_id: str):
    try:
        summary = purchase_service.get_payment_summary(store_id=store_id, purchase_id=purchase_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(summary), 200


# =============================================================================
# PURCHASE MUTATIONS
# =============================================================================

@purchases_bp.post("")
def create_purchase_route(store_id: str):
    """
    Create a purchase.

    Request body:
    {
        "type": "purchase_order",
        "number": "PO-0001",
        "supplier": "Fresh Farms",
        "date": "2026-01-14",
        "items": [{"name": "Tomatoes", "quantity": 10, "price_cents": 250, "tax_percent": 5}],
        "payments": [{"amount_cents": 1000, "method": "cash"}]
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=PURCHASE_CREATE_POLICY, partial=False)
        patch["items"] = validate_list(payload=patch.get("items"), policy=PURCHASE_ITEM_POLICY, key="items")
        patch["payments"] = validate_list(payload=patch.get("payments"), policy=PAYMENT_POLICY, key="payments")
        purchase = purchase_service.create_purchase(store_id=store_id, fields=patch)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500

    return _purchase_response(purchase, 201)


@purchases_bp.patch("/<purchase_id>")
def update_purchase_route(store_id: str, purchase_id: str):
    """Edit header fields (type, number, supplier, date, due_date, notes)."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=PURCHASE_HEADER_POLICY, partial=True)
        purchase = purchase_service.update_purchase(store_id=store_id, purchase_id=purchase_id, changes=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update purchase")
        return jsonify({"error": "Internal server error"}), 500

    return _purchase_response(purchase)


@purchases_bp.put("/<purchase_id>/items")
def set_items_route(store_id: str, purchase_id: str):
    """Replace the item list. Request body: {"items": [...]}"""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
        return jsonify({"error": "items must be a list"}), 400

    try:
        items = validate_list(payload=payload["items"], policy=PURCHASE_ITEM_POLICY, key="items")
        purchase = purchase_service.set_items(store_id=store_id, purchase_id=purchase_id, items=items)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to set purchase items")
        return jsonify({"error": "Internal server error"}), 500

    return _purchase_response(purchase)


@purchases_bp.delete("/<purchase_id>")
def delete_purchase_route(store_id: str, purchase_id: str):
    try:
        purchase_service.delete_purchase(store_id=store_id, purchase_id=purchase_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete purchase")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"deleted": purchase_id}), 200


# =============================================================================
# PAYMENTS
# =============================================================================

@purchases_bp.post("/<purchase_id>/payments")
def add_payment_route(store_id: str, purchase_id: str):
    """
    Add a payment.

    Request body:
    {
        "amount_cents": 4000,
        "method": "bank_transfer",
        "reference": "TRX-123",
        "date": "2026-01-20",
        "notes": "optional"
    }

    Returns:
        201: Purchase with recomputed paid amount and status
        400: Invalid input or non-positive amount
        404: Purchase not found
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=PAYMENT_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        purchase = purchase_service.add_payment(store_id=store_id, purchase_id=purchase_id, payment=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InvariantViolation as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add payment")
        return jsonify({"error": "Internal server error"}), 500

    return _purchase_response(purchase, 201)


@purchases_bp.delete("/<purchase_id>/payments/<int:index>")
def remove_payment_route(store_id: str, purchase_id: str, index: int):
    try:
        purchase = purchase_service.remove_payment(store_id=store_id, purchase_id=purchase_id, index=index)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to remove payment")
        return jsonify({"error": "Internal server error"}), 500

    return _purchase_response(purchase)


# =============================================================================
# STATUS OVERRIDE
# =============================================================================

@purchases_bp.post("/<purchase_id>/cancel")
def cancel_purchase_route(store_id: str, purchase_id: str):
    try:
        purchase = purchase_service.cancel_purchase(store_id=store_id, purchase_id=purchase_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to cancel purchase")
        return jsonify({"error": "Internal server error"}), 500
    return _purchase_response(purchase)


@purchases_bp.post("/<purchase_id>/reactivate")
def reactivate_purchase_route(store_id: str, purchase_id: str):
    try:
        purchase = purchase_service.reactivate_purchase(store_id=store_id, purchase_id=purchase_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to reactivate purchase")
        return jsonify({"error": "Internal server error"}), 500
    return _purchase_response(purchase)
