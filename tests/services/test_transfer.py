"""
Transfers between locations.

Every test checks conservation: the product's total across locations is
the same before and after, whether the transfer succeeds or not.
"""

from uuid import uuid4

import pytest

from inventory_kernel.domain.dtos import LocationDraft
from inventory_kernel.exceptions import (
    InsufficientStockError,
    ItemNotFoundError,
    LocationNotFoundError,
    SameLocationTransferError,
    ValidationError,
)


class TestTransfer:
    def test_partial_transfer_creates_target_pool(
        self, inventory, make_item, warehouse_b
    ):
        item = make_item(name="Flour", quantity=10, threshold=3)
        result = inventory.transfer(item.id, warehouse_b.id, 4)

        assert result.quantity == 4
        assert result.target_created
        assert result.source.quantity == 6
        assert result.target.quantity == 4
        assert result.target.location_id == warehouse_b.id
        assert result.target.name == "Flour"
        assert result.target.threshold == 3
        assert result.target.unit_price == item.unit_price
        assert inventory.aggregate_quantity("Flour") == 10

    def test_transfer_merges_into_existing_pool(self, inventory, make_item, warehouse_b):
        source = make_item(name="Sugar", quantity=10)
        existing = make_item(name="Sugar", quantity=5, location=warehouse_b)

        result = inventory.transfer(source.id, warehouse_b.id, 10)

        assert not result.target_created
        assert result.target.id == existing.id
        assert result.target.quantity == 15
        assert result.source.quantity == 0
        assert inventory.aggregate_quantity("Sugar") == 15

    def test_full_transfer_leaves_zero_quantity_source(
        self, inventory, make_item, warehouse_b
    ):
        item = make_item(quantity=7)
        inventory.transfer(item.id, warehouse_b.id, 7)
        assert inventory.get_item(item.id).quantity == 0

    def test_insufficient_stock_changes_nothing(self, inventory, make_item, warehouse_b):
        item = make_item(name="Oats", quantity=3)
        with pytest.raises(InsufficientStockError) as exc_info:
            inventory.transfer(item.id, warehouse_b.id, 4)
        assert exc_info.value.available == 3
        assert exc_info.value.requested == 4
        assert inventory.get_item(item.id).quantity == 3
        assert inventory.list_items(warehouse_b.id) == []

    def test_same_location_rejected(self, inventory, make_item, warehouse_a):
        item = make_item(quantity=5)
        with pytest.raises(SameLocationTransferError):
            inventory.transfer(item.id, warehouse_a.id, 1)
        assert inventory.get_item(item.id).quantity == 5

    def test_unknown_target_rolls_back_decrement(self, inventory, make_item):
        item = make_item(quantity=5)
        with pytest.raises(LocationNotFoundError):
            inventory.transfer(item.id, uuid4(), 2)
        assert inventory.get_item(item.id).quantity == 5

    def test_unknown_item(self, inventory, warehouse_b):
        with pytest.raises(ItemNotFoundError):
            inventory.transfer(uuid4(), warehouse_b.id, 1)

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity_rejected(self, inventory, make_item, warehouse_b, quantity):
        item = make_item(quantity=5)
        with pytest.raises(ValidationError):
            inventory.transfer(item.id, warehouse_b.id, quantity)

    def test_chain_of_transfers_conserves_total(self, inventory, make_item, warehouse_b):
        warehouse_c = inventory.create_location(LocationDraft(name="Warehouse C"))
        item = make_item(name="Rice", quantity=20)
        first = inventory.transfer(item.id, warehouse_b.id, 8)
        inventory.transfer(first.target.id, warehouse_c.id, 5)
        inventory.transfer(first.target.id, item.location_id, 1)

        per_location = {i.location_id: i.quantity for i in inventory.list_items()}
        assert per_location == {
            item.location_id: 13,
            warehouse_b.id: 2,
            warehouse_c.id: 5,
        }
        assert inventory.aggregate_quantity("Rice") == 20

    def test_transfer_is_logged(self, inventory, make_item, warehouse_b, captured_logs):
        item = make_item(quantity=5)
        inventory.transfer(item.id, warehouse_b.id, 2)
        completed = [r for r in captured_logs() if r["message"] == "transfer_completed"]
        assert len(completed) == 1
        assert completed[0]["item_id"] == str(item.id)
        assert completed[0]["operation"] == "transfer"
        assert completed[0]["quantity"] == 2
