# backend/backoffice/routes/reports.py
"""
Dashboard report routes.

Every response is computed from the current records at request time.
"""

from flask import Blueprint

from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/stores/<store_id>/reports")


@reports_bp.get("/inventory")
def inventory_stats_route(store_id: str):
    return reporting_service.inventory_stats_for_store(store_id), 200


@reports_bp.get("/low-stock")
def low_stock_route(store_id: str):
    items = reporting_service.low_stock_for_store(store_id)
    return {"items": [i.to_dict() for i in items]}, 200


@reports_bp.get("/expiring")
def expiring_route(store_id: str):
    items = reporting_service.expiring_soon_for_store(store_id)
    return {"items": [i.to_dict() for i in items]}, 200


@reports_bp.get("/categories")
def categories_route(store_id: str):
    return {
        "categories": reporting_service.categories_for_store(store_id),
        "rollup": reporting_service.category_rollup_for_store(store_id),
    }, 200


@reports_bp.get("/purchases")
def purchase_stats_route(store_id: str):
    return reporting_service.purchase_stats_for_store(store_id), 200
