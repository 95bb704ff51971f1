# backend/backoffice/routes/suppliers.py
"""Supplier directory routes."""

from flask import Blueprint, current_app, request

from ..errors import NotFoundError
from ..services import supplier_service
from ..validation import SUPPLIER_POLICY, validate_payload


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/stores/<store_id>/suppliers")


@suppliers_bp.get("")
def list_suppliers_route(store_id: str):
    suppliers = supplier_service.list_suppliers(store_id=store_id)
    return {"suppliers": [s.to_dict() for s in suppliers]}, 200


@suppliers_bp.post("")
def create_supplier_route(store_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(payload=payload, policy=SUPPLIER_POLICY, partial=False)
        supplier = supplier_service.create_supplier(store_id=store_id, fields=patch)
    except ValueError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return {"error": "Internal server error"}, 500
    return {"supplier": supplier.to_dict()}, 201


@suppliers_bp.patch("/<supplier_id>")
def update_supplier_route(store_id: str, supplier_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(payload=payload, policy=SUPPLIER_POLICY, partial=True)
        supplier = supplier_service.update_supplier(store_id=store_id, supplier_id=supplier_id, changes=patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValueError as e:
        return {"error": str(e)}, 400
    return {"supplier": supplier.to_dict()}, 200


@suppliers_bp.delete("/<supplier_id>")
def delete_supplier_route(store_id: str, supplier_id: str):
    try:
        supplier_service.delete_supplier(store_id=store_id, supplier_id=supplier_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"deleted": supplier_id}, 200
