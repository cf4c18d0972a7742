"""
At-most-once decrements keyed by request_id.
"""

from decimal import Decimal

import pytest

from inventory_kernel.exceptions import InsufficientStockError, ValidationError


class TestSaleReplay:
    def test_same_request_applies_once(self, inventory, make_item):
        item = make_item(quantity=10)
        first = inventory.record_sale(item.id, 4, Decimal("1.00"), request_id="pos-1")
        second = inventory.record_sale(item.id, 4, Decimal("1.00"), request_id="pos-1")

        assert not first.replayed
        assert second.replayed
        assert second.event == first.event
        assert second.item.quantity == 6
        assert inventory.get_item(item.id).quantity == 6
        assert len(inventory.list_sales(item.id)) == 1

    def test_distinct_requests_both_apply(self, inventory, make_item):
        item = make_item(quantity=10)
        inventory.record_sale(item.id, 1, Decimal("1"), request_id="pos-1")
        inventory.record_sale(item.id, 1, Decimal("1"), request_id="pos-2")
        assert inventory.get_item(item.id).quantity == 8

    def test_replay_after_stock_ran_out_still_replays(self, inventory, make_item):
        item = make_item(quantity=3)
        inventory.record_sale(item.id, 3, Decimal("1"), request_id="pos-1")
        replay = inventory.record_sale(item.id, 3, Decimal("1"), request_id="pos-1")
        assert replay.replayed
        assert replay.item.quantity == 0

    def test_reusing_request_id_for_other_sale_rejected(self, inventory, make_item):
        item = make_item(quantity=10)
        inventory.record_sale(item.id, 2, Decimal("1"), request_id="pos-1")
        with pytest.raises(ValidationError):
            inventory.record_sale(item.id, 5, Decimal("1"), request_id="pos-1")
        assert inventory.get_item(item.id).quantity == 8

    def test_reusing_request_id_with_other_revenue_rejected(self, inventory, make_item):
        item = make_item(quantity=10)
        first = inventory.record_sale(item.id, 2, Decimal("2.50"), request_id="pos-4")
        with pytest.raises(ValidationError) as exc_info:
            inventory.record_sale(item.id, 2, Decimal("3.00"), request_id="pos-4")

        fields = {e["field"] for e in exc_info.value.field_errors}
        assert fields == {"request_id", "unit_revenue"}
        assert inventory.get_item(item.id).quantity == 8
        assert inventory.list_sales(item.id) == [first.event]

    def test_equal_revenue_in_other_notation_replays(self, inventory, make_item):
        item = make_item(quantity=10)
        inventory.record_sale(item.id, 2, Decimal("2.50"), request_id="pos-5")
        replay = inventory.record_sale(item.id, 2, "2.5", request_id="pos-5")
        assert replay.replayed
        assert inventory.get_item(item.id).quantity == 8

    def test_failed_request_can_be_retried(self, inventory, make_item, warehouse_b):
        item = make_item(name="Brie", quantity=1)
        with pytest.raises(InsufficientStockError):
            inventory.record_sale(item.id, 2, Decimal("1"), request_id="pos-9")
        assert inventory.list_sales() == []

        restock = make_item(name="Brie", quantity=5, location=warehouse_b)
        inventory.transfer(restock.id, item.location_id, 1)
        result = inventory.record_sale(item.id, 2, Decimal("1"), request_id="pos-9")
        assert not result.replayed
        assert result.item.quantity == 0

    def test_replay_is_logged(self, inventory, make_item, captured_logs):
        item = make_item(quantity=10)
        inventory.record_sale(item.id, 1, Decimal("1"), request_id="pos-7")
        inventory.record_sale(item.id, 1, Decimal("1"), request_id="pos-7")
        replayed = [r for r in captured_logs() if r["message"] == "record_sale_replayed"]
        assert len(replayed) == 1
        assert replayed[0]["request_id"] == "pos-7"


def test_wastage_replay(inventory, make_item):
    item = make_item(quantity=10)
    first = inventory.record_wastage(item.id, 3, "damaged", request_id="w-1")
    second = inventory.record_wastage(item.id, 3, "damaged", request_id="w-1")
    assert second.replayed
    assert second.event.id == first.event.id
    assert inventory.get_item(item.id).quantity == 7


def test_wastage_replay_with_other_reason_rejected(inventory, make_item, captured_logs):
    item = make_item(quantity=10)
    inventory.record_wastage(item.id, 3, "damaged", request_id="w-2")
    with pytest.raises(ValidationError, match="reason_code"):
        inventory.record_wastage(item.id, 3, "expired", request_id="w-2")

    assert inventory.get_item(item.id).quantity == 7
    assert [e.reason_code for e in inventory.list_wastage(item.id)] == ["damaged"]
    rejected = [
        r for r in captured_logs()
        if r["message"] == "record_wastage_rejected_request_id_reuse"
    ]
    assert rejected[0]["mismatched_fields"] == ["reason_code"]
