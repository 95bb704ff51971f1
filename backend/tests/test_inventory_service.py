"""
Stock ledger tests: quantity floor, history discipline, update diffs.
"""

from datetime import datetime

import pytest

from backoffice.errors import InsufficientStockError, NotFoundError
from backoffice.services import inventory_service


def _history(store_id, item_id):
    return inventory_service.get_item_history(store_id=store_id, item_id=item_id)


class TestCreate:
    def test_create_sets_defaults_and_last_updated(self, db_session, store_id):
        item = inventory_service.create_item(store_id=store_id, fields={"name": "Flour"})

        assert item.id
        assert item.quantity == 0
        assert item.unit == "units"
        assert item.category == "Uncategorized"
        assert item.tags == []
        assert item.last_updated is not None

    def test_create_appends_single_create_record(self, tomatoes, store_id):
        history = _history(store_id, tomatoes.id)

        assert len(history) == 1
        assert history[0].type == "create"
        assert history[0].item_id == tomatoes.id
        assert history[0].notes == "Item created"

    def test_create_normalizes_tags_and_dates(self, db_session, store_id):
        item = inventory_service.create_item(
            store_id=store_id,
            fields={
                "name": "Milk",
                "tags": ["dairy", " dairy ", "cold"],
                "expiry_date": datetime(2026, 11, 1, 8, 30),
            },
        )

        assert item.tags == ["cold", "dairy"]
        assert item.expiry_date == datetime(2026, 11, 1, 8, 30)

    def test_create_splits_comma_separated_tags(self, db_session, store_id):
        item = inventory_service.create_item(store_id=store_id, fields={"name": "Basil", "tags": "fresh, herb"})
        assert item.tags == ["fresh", "herb"]

    def test_create_rejects_unknown_fields(self, db_session, store_id):
        with pytest.raises(ValueError):
            inventory_service.create_item(store_id=store_id, fields={"name": "X", "colour": "red"})


class TestAdjust:
    def test_restock_adds_quantity_and_one_adjustment_record(self, tomatoes, store_id):
        item = inventory_service.adjust_stock(
            store_id=store_id,
            item_id=tomatoes.id,
            quantity_delta=5,
            reason="Restock",
        )

        assert item.quantity == 15
        history = _history(store_id, tomatoes.id)
        assert len(history) == 2
        latest = history[0]
        assert latest.type == "adjustment"
        assert latest.quantity_change == 5
        assert latest.reason == "Restock"
        assert latest.changes == {"quantity": {"old": 10, "new": 15}}

    def test_adjust_to_exactly_zero_is_allowed(self, tomatoes, store_id):
        item = inventory_service.adjust_stock(
            store_id=store_id, item_id=tomatoes.id, quantity_delta=-10, reason="Used"
        )
        assert item.quantity == 0

    def test_adjust_below_zero_is_rejected_without_writes(self, tomatoes, store_id):
        with pytest.raises(InsufficientStockError) as exc_info:
            inventory_service.adjust_stock(
                store_id=store_id, item_id=tomatoes.id, quantity_delta=-11, reason="Spoilage"
            )

        assert exc_info.value.quantity == 10
        assert exc_info.value.delta == -11
        item = inventory_service.get_item(store_id=store_id, item_id=tomatoes.id)
        assert item.quantity == 10
        assert len(_history(store_id, tomatoes.id)) == 1

    def test_quantity_never_negative_over_a_sequence(self, tomatoes, store_id):
        deltas = [-3, -4, 2, -6, -1, 7, -20, -6]
        for delta in deltas:
            try:
                inventory_service.adjust_stock(
                    store_id=store_id, item_id=tomatoes.id, quantity_delta=delta, reason="seq"
                )
            except InsufficientStockError:
                pass
            item = inventory_service.get_item(store_id=store_id, item_id=tomatoes.id)
            assert item.quantity >= 0

        # 10 -3 -4 +2 (-6 rejected) -1 +7 (-20 rejected) -6 = 5
        assert item.quantity == 5

    def test_fractional_quantities(self, db_session, store_id):
        item = inventory_service.create_item(store_id=store_id, fields={"name": "Oil", "quantity": 2.5})
        item = inventory_service.adjust_stock(
            store_id=store_id, item_id=item.id, quantity_delta=-1.25, reason="Used"
        )
        assert item.quantity == pytest.approx(1.25)

    def test_adjust_missing_item(self, db_session, store_id):
        with pytest.raises(NotFoundError):
            inventory_service.adjust_stock(
                store_id=store_id, item_id="missing", quantity_delta=1, reason="Restock"
            )

    def test_adjust_records_user_and_notes(self, tomatoes, store_id):
        inventory_service.adjust_stock(
            store_id=store_id,
            item_id=tomatoes.id,
            quantity_delta=-2,
            reason="Spoilage",
            notes="Crate dropped",
            user="chef@example.com",
        )
        latest = _history(store_id, tomatoes.id)[0]
        assert latest.notes == "Crate dropped"
        assert latest.user == "chef@example.com"
        assert latest.quantity_change == -2


class TestUpdate:
    def test_update_without_effective_change_appends_nothing(self, tomatoes, store_id):
        inventory_service.update_item(
            store_id=store_id, item_id=tomatoes.id, changes={"name": "Tomatoes"}
        )
        assert len(_history(store_id, tomatoes.id)) == 1

    def test_update_records_old_and_new_values(self, tomatoes, store_id):
        item = inventory_service.update_item(
            store_id=store_id, item_id=tomatoes.id, changes={"cost_cents": 5000}
        )

        assert item.cost_cents == 5000
        history = _history(store_id, tomatoes.id)
        assert len(history) == 2
        assert history[0].type == "update"
        assert history[0].changes == {"cost_cents": {"old": 4000, "new": 5000}}

    def test_update_diff_only_contains_changed_fields(self, tomatoes, store_id):
        inventory_service.update_item(
            store_id=store_id,
            item_id=tomatoes.id,
            changes={"name": "Tomatoes", "location": "Cold room", "tags": ["veg", "fresh"]},
        )
        latest = _history(store_id, tomatoes.id)[0]
        assert latest.changes == {"location": {"old": None, "new": "Cold room"}}

    def test_update_refreshes_last_updated(self, tomatoes, store_id):
        item = inventory_service.update_item(
            store_id=store_id, item_id=tomatoes.id, changes={"notes": "Roma"}
        )
        assert item.last_updated >= tomatoes.last_updated

    def test_update_missing_item(self, db_session, store_id):
        with pytest.raises(NotFoundError):
            inventory_service.update_item(store_id=store_id, item_id="nope", changes={"name": "X"})


class TestDeleteAndHistory:
    def test_delete_keeps_history(self, tomatoes, store_id):
        inventory_service.adjust_stock(
            store_id=store_id, item_id=tomatoes.id, quantity_delta=1, reason="Restock"
        )
        inventory_service.delete_item(store_id=store_id, item_id=tomatoes.id)

        with pytest.raises(NotFoundError):
            inventory_service.get_item(store_id=store_id, item_id=tomatoes.id)
        assert [h.type for h in _history(store_id, tomatoes.id)] == ["adjustment", "create"]

    def test_delete_missing_item(self, db_session, store_id):
        with pytest.raises(NotFoundError):
            inventory_service.delete_item(store_id=store_id, item_id="ghost")

    def test_history_is_newest_first(self, tomatoes, store_id):
        inventory_service.adjust_stock(store_id=store_id, item_id=tomatoes.id, quantity_delta=1, reason="a")
        inventory_service.update_item(store_id=store_id, item_id=tomatoes.id, changes={"unit": "box"})
        inventory_service.adjust_stock(store_id=store_id, item_id=tomatoes.id, quantity_delta=-1, reason="b")

        history = _history(store_id, tomatoes.id)
        assert [h.type for h in history] == ["adjustment", "update", "adjustment", "create"]
        assert history[0].reason == "b"
        assert history[2].reason == "a"

    def test_history_is_scoped_per_store(self, tomatoes, store_id):
        assert inventory_service.get_item_history(store_id="store-b", item_id=tomatoes.id) == []


class TestListAndImport:
    def test_list_filters(self, tomatoes, store_id):
        inventory_service.create_item(
            store_id=store_id,
            fields={"name": "Basil", "quantity": 20, "min_quantity": 2, "category": "Herbs", "tags": ["fresh"]},
        )

        assert [i.name for i in inventory_service.list_items(store_id=store_id)] == ["Basil", "Tomatoes"]
        assert [i.name for i in inventory_service.list_items(store_id=store_id, category="Herbs")] == ["Basil"]
        assert [i.name for i in inventory_service.list_items(store_id=store_id, tag="veg")] == ["Tomatoes"]
        assert [i.name for i in inventory_service.list_items(store_id=store_id, search="prd-tom")] == ["Tomatoes"]
        assert inventory_service.list_items(store_id=store_id, low_stock=True) == []

    def test_list_is_scoped_per_store(self, tomatoes):
        assert inventory_service.list_items(store_id="store-b") == []

    def test_bulk_import_skips_invalid_rows(self, db_session, store_id):
        rows = [
            {"name": "Rice", "quantity": "25", "cost_cents": "120"},
            {"name": "", "quantity": "1"},
            {"name": "Beans", "quantity": "-4"},
            {"name": "Salt", "unit": "kg"},
        ]
        created = inventory_service.bulk_import(store_id=store_id, rows=rows)

        assert created == 2
        items = inventory_service.list_items(store_id=store_id)
        assert [(i.name, i.quantity) for i in items] == [("Rice", 25), ("Salt", 0)]
        assert items[0].cost_cents == 120
