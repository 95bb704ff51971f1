"""
HTTP API tests: status codes and payload shapes for the console endpoints.
"""

import pytest

from backoffice.errors import StorageFailure
from backoffice.services import purchase_service


BASE = "/api/stores/store-a"


@pytest.fixture
def item_id(client, db_session):
    resp = client.post(
        f"{BASE}/inventory",
        json={"name": "Tomatoes", "quantity": 10, "min_quantity": 5, "unit": "kg", "cost_cents": 4000},
    )
    assert resp.status_code == 201
    return resp.get_json()["item"]["id"]


@pytest.fixture
def purchase_id(client, db_session):
    resp = client.post(
        f"{BASE}/purchases",
        json={
            "number": "PO-0001",
            "supplier": "Fresh Farms",
            "date": "2026-04-01",
            "items": [{"name": "Tomatoes", "quantity": 4, "price_cents": 2500}],
        },
    )
    assert resp.status_code == 201
    return resp.get_json()["purchase"]["id"]


class TestHealth:
    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "healthy"


class TestInventoryRoutes:
    def test_create_and_get(self, client, item_id):
        resp = client.get(f"{BASE}/inventory/{item_id}")
        assert resp.status_code == 200
        item = resp.get_json()["item"]
        assert item["name"] == "Tomatoes"
        assert item["quantity"] == 10
        assert item["last_updated"].endswith("Z")

    def test_create_validation_error(self, client, db_session):
        resp = client.post(f"{BASE}/inventory", json={"quantity": 3})
        assert resp.status_code == 400
        assert "name" in resp.get_json()["error"]

    def test_create_rejects_negative_quantity(self, client, db_session):
        resp = client.post(f"{BASE}/inventory", json={"name": "X", "quantity": -1})
        assert resp.status_code == 400

    def test_get_missing_is_404(self, client, db_session):
        assert client.get(f"{BASE}/inventory/nope").status_code == 404

    def test_adjust_and_history(self, client, item_id):
        resp = client.post(
            f"{BASE}/inventory/{item_id}/adjust",
            json={"quantity_delta": -3, "reason": "Spoilage", "user": "chef"},
        )
        assert resp.status_code == 200
        assert resp.get_json()["item"]["quantity"] == 7

        history = client.get(f"{BASE}/inventory/{item_id}/history").get_json()["history"]
        assert [h["type"] for h in history] == ["adjustment", "create"]
        assert history[0]["quantity_change"] == -3
        assert history[0]["user"] == "chef"

        limited = client.get(f"{BASE}/inventory/{item_id}/history?limit=1").get_json()["history"]
        assert len(limited) == 1

    def test_adjust_below_zero_is_400(self, client, item_id):
        resp = client.post(f"{BASE}/inventory/{item_id}/adjust", json={"quantity_delta": -11, "reason": "Oops"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Cannot reduce stock below zero"

        item = client.get(f"{BASE}/inventory/{item_id}").get_json()["item"]
        assert item["quantity"] == 10

    def test_adjust_zero_delta_is_400(self, client, item_id):
        resp = client.post(f"{BASE}/inventory/{item_id}/adjust", json={"quantity_delta": 0, "reason": "Count"})
        assert resp.status_code == 400

    def test_adjust_missing_item_is_404(self, client, db_session):
        resp = client.post(f"{BASE}/inventory/nope/adjust", json={"quantity_delta": 1, "reason": "Restock"})
        assert resp.status_code == 404

    def test_patch_and_delete(self, client, item_id):
        resp = client.patch(f"{BASE}/inventory/{item_id}", json={"location": "Cold room"})
        assert resp.status_code == 200
        assert resp.get_json()["item"]["location"] == "Cold room"

        assert client.delete(f"{BASE}/inventory/{item_id}").status_code == 200
        assert client.get(f"{BASE}/inventory/{item_id}").status_code == 404
        assert client.delete(f"{BASE}/inventory/{item_id}").status_code == 404

        # History outlives the item
        history = client.get(f"{BASE}/inventory/{item_id}/history").get_json()["history"]
        assert [h["type"] for h in history] == ["update", "create"]

    def test_list_filters(self, client, item_id):
        client.post(f"{BASE}/inventory", json={"name": "Basil", "quantity": 20, "category": "Herbs"})

        names = [i["name"] for i in client.get(f"{BASE}/inventory").get_json()["items"]]
        assert names == ["Basil", "Tomatoes"]

        names = [i["name"] for i in client.get(f"{BASE}/inventory?category=Herbs").get_json()["items"]]
        assert names == ["Basil"]

        assert client.get("/api/stores/store-b/inventory").get_json()["items"] == []

    def test_import(self, client, db_session):
        resp = client.post(
            f"{BASE}/inventory/import",
            json={"rows": [{"name": "Rice", "quantity": "5"}, {"quantity": "1"}]},
        )
        assert resp.status_code == 201
        assert resp.get_json() == {"created": 1, "skipped": 1}

        resp = client.post(f"{BASE}/inventory/import", json={"rows": "nope"})
        assert resp.status_code == 400


class TestPurchaseRoutes:
    def test_payment_flow(self, client, purchase_id):
        resp = client.post(f"{BASE}/purchases/{purchase_id}/payments", json={"amount_cents": 4000})
        assert resp.status_code == 201
        purchase = resp.get_json()["purchase"]
        assert purchase["paid_amount_cents"] == 4000
        assert purchase["status"] == "partial"
        assert purchase["balance_cents"] == 6000

        resp = client.post(
            f"{BASE}/purchases/{purchase_id}/payments",
            json={"amount_cents": 6000, "method": "bank_transfer", "reference": "TRX-9"},
        )
        assert resp.get_json()["purchase"]["status"] == "paid"

        resp = client.delete(f"{BASE}/purchases/{purchase_id}/payments/1")
        assert resp.status_code == 200
        assert resp.get_json()["purchase"]["status"] == "partial"

        assert client.delete(f"{BASE}/purchases/{purchase_id}/payments/5").status_code == 404

    def test_non_positive_payment_is_400(self, client, purchase_id):
        resp = client.post(f"{BASE}/purchases/{purchase_id}/payments", json={"amount_cents": 0})
        assert resp.status_code == 400
        resp = client.post(f"{BASE}/purchases/{purchase_id}/payments", json={"amount_cents": 12.5})
        assert resp.status_code == 400

    def test_payment_on_missing_purchase_is_404(self, client, db_session):
        resp = client.post(f"{BASE}/purchases/nope/payments", json={"amount_cents": 100})
        assert resp.status_code == 404

    def test_summary(self, client, purchase_id):
        client.post(f"{BASE}/purchases/{purchase_id}/payments", json={"amount_cents": 2500})
        summary = client.get(f"{BASE}/purchases/{purchase_id}/summary").get_json()
        assert summary["total_amount_cents"] == 10000
        assert summary["balance_cents"] == 7500
        assert len(summary["payments"]) == 1

    def test_replace_items(self, client, purchase_id):
        resp = client.put(
            f"{BASE}/purchases/{purchase_id}/items",
            json={"items": [{"name": "Cheese", "quantity": 3, "price_cents": 1000, "tax_percent": 18}]},
        )
        assert resp.status_code == 200
        assert resp.get_json()["purchase"]["total_amount_cents"] == 3540

        resp = client.put(f"{BASE}/purchases/{purchase_id}/items", json={"items": [{"name": "X"}]})
        assert resp.status_code == 400

    def test_header_update(self, client, purchase_id):
        resp = client.patch(f"{BASE}/purchases/{purchase_id}", json={"notes": "Call before delivery"})
        assert resp.status_code == 200
        assert resp.get_json()["purchase"]["notes"] == "Call before delivery"

        resp = client.patch(f"{BASE}/purchases/{purchase_id}", json={"status": "paid"})
        assert resp.status_code == 400

    def test_cancel_and_reactivate(self, client, purchase_id):
        resp = client.post(f"{BASE}/purchases/{purchase_id}/cancel")
        assert resp.get_json()["purchase"]["status"] == "cancelled"

        resp = client.post(f"{BASE}/purchases/{purchase_id}/reactivate")
        assert resp.get_json()["purchase"]["status"] == "pending"

    @pytest.mark.parametrize("action", ["cancel", "reactivate"])
    def test_status_override_storage_failure_is_json_500(self, client, purchase_id, monkeypatch, action):
        def _fail(**kwargs):
            raise StorageFailure("database is locked")

        monkeypatch.setattr(purchase_service, f"{action}_purchase", _fail)
        resp = client.post(f"{BASE}/purchases/{purchase_id}/{action}")

        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Internal server error"}

    def test_list_and_filters(self, client, purchase_id):
        client.post(
            f"{BASE}/purchases",
            json={"number": "CN-0001", "type": "credit_note", "supplier": "Dairy Co", "date": "2026-04-10"},
        )

        numbers = [p["number"] for p in client.get(f"{BASE}/purchases").get_json()["purchases"]]
        assert numbers == ["CN-0001", "PO-0001"]

        resp = client.get(f"{BASE}/purchases?type=credit_note")
        assert [p["number"] for p in resp.get_json()["purchases"]] == ["CN-0001"]

        resp = client.get(f"{BASE}/purchases?from=2026-04-01&to=2026-04-01")
        assert [p["number"] for p in resp.get_json()["purchases"]] == ["PO-0001"]

        assert client.get(f"{BASE}/purchases?status=overdue").status_code == 400
        assert client.get(f"{BASE}/purchases?from=yesterday").status_code == 400

    def test_create_validation(self, client, db_session):
        resp = client.post(f"{BASE}/purchases", json={"number": "PO-1"})
        assert resp.status_code == 400

        resp = client.post(
            f"{BASE}/purchases",
            json={"number": "PO-1", "supplier": "S", "payments": [{"amount_cents": -5}]},
        )
        assert resp.status_code == 400

    def test_delete(self, client, purchase_id):
        assert client.delete(f"{BASE}/purchases/{purchase_id}").status_code == 200
        assert client.get(f"{BASE}/purchases/{purchase_id}").status_code == 404


class TestSupplierRoutes:
    def test_crud(self, client, db_session):
        resp = client.post(f"{BASE}/suppliers", json={"name": "Fresh Farms", "phone": "555-0100"})
        assert resp.status_code == 201
        supplier_id = resp.get_json()["supplier"]["id"]
        client.post(f"{BASE}/suppliers", json={"name": "Dairy Co"})

        names = [s["name"] for s in client.get(f"{BASE}/suppliers").get_json()["suppliers"]]
        assert names == ["Dairy Co", "Fresh Farms"]

        resp = client.patch(f"{BASE}/suppliers/{supplier_id}", json={"contact": "Ana"})
        assert resp.get_json()["supplier"]["contact"] == "Ana"

        assert client.post(f"{BASE}/suppliers", json={"name": " "}).status_code == 400
        assert client.delete(f"{BASE}/suppliers/{supplier_id}").status_code == 200
        assert client.delete(f"{BASE}/suppliers/{supplier_id}").status_code == 404


class TestReportRoutes:
    def test_reports(self, client, item_id, purchase_id):
        client.post(f"{BASE}/inventory/{item_id}/adjust", json={"quantity_delta": -6, "reason": "Used"})

        stats = client.get(f"{BASE}/reports/inventory").get_json()
        assert stats["total_items"] == 1
        assert stats["low_stock"] == 1
        assert stats["total_value_cents"] == 16000

        low = client.get(f"{BASE}/reports/low-stock").get_json()["items"]
        assert [i["id"] for i in low] == [item_id]

        categories = client.get(f"{BASE}/reports/categories").get_json()
        assert categories["categories"] == ["Uncategorized"]
        assert categories["rollup"][0]["item_count"] == 1

        assert client.get(f"{BASE}/reports/expiring").get_json()["items"] == []

        purchases = client.get(f"{BASE}/reports/purchases").get_json()
        assert purchases["total_purchases"] == 1
        assert purchases["outstanding_cents"] == 10000
