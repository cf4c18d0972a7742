"""
Item create/update/delete through InventoryEngine.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.domain.dtos import ItemDraft
from inventory_kernel.exceptions import (
    ConflictError,
    DuplicateItemError,
    ItemNotFoundError,
    ProtectedFieldError,
    ValidationError,
)


class TestCreateItem:
    def test_create_and_read_back(self, inventory, warehouse_a, deterministic_clock):
        created = inventory.create_item(
            ItemDraft(
                name="Apples",
                location_id=warehouse_a.id,
                quantity=40,
                unit_price=Decimal("0.35"),
                threshold=10,
                category="produce",
            )
        )
        fetched = inventory.get_item(created.id)
        assert fetched == created
        assert fetched.quantity == 40
        assert fetched.unit_price == Decimal("0.35")
        assert fetched.version == 1
        assert fetched.created_at == deterministic_clock.now()

    def test_unknown_location_is_validation_error(self, inventory, clean_db):
        with pytest.raises(ValidationError) as exc_info:
            inventory.create_item(ItemDraft(name="Pears", location_id=uuid4()))
        assert exc_info.value.field_errors[0]["field"] == "location_id"

    def test_negative_quantity_rejected_before_any_write(self, inventory, warehouse_a):
        with pytest.raises(ValidationError):
            inventory.create_item(
                ItemDraft(name="Pears", location_id=warehouse_a.id, quantity=-1)
            )
        assert inventory.list_items() == []

    def test_same_name_same_location_is_duplicate(self, inventory, make_item, warehouse_a):
        make_item(name="Bread")
        with pytest.raises(DuplicateItemError):
            make_item(name="Bread")
        assert len(inventory.list_items(warehouse_a.id)) == 1

    def test_same_name_other_location_is_separate_pool(
        self, inventory, make_item, warehouse_b
    ):
        make_item(name="Bread", quantity=3)
        make_item(name="Bread", quantity=4, location=warehouse_b)
        assert inventory.aggregate_quantity("Bread") == 7

    def test_get_unknown_item(self, inventory, clean_db):
        with pytest.raises(ItemNotFoundError):
            inventory.get_item(uuid4())

    def test_get_rejects_malformed_id(self, inventory, clean_db):
        with pytest.raises(ValidationError):
            inventory.get_item("nope")


class TestUpdateItem:
    def test_update_descriptive_fields(self, inventory, make_item, deterministic_clock):
        item = make_item(threshold=2)
        deterministic_clock.advance(30)
        updated = inventory.update_item(
            item.id, {"threshold": 8, "unit_price": "2.10", "category": "bakery"}
        )
        assert updated.threshold == 8
        assert updated.unit_price == Decimal("2.10")
        assert updated.category == "bakery"
        assert updated.quantity == item.quantity
        assert updated.version == item.version + 1
        assert updated.updated_at == deterministic_clock.now()
        assert updated.created_at == item.created_at

    @pytest.mark.parametrize("field, value", [("quantity", 99), ("location_id", uuid4())])
    def test_protected_fields_rejected(self, inventory, make_item, field, value):
        item = make_item(quantity=10)
        with pytest.raises(ProtectedFieldError):
            inventory.update_item(item.id, {field: value})
        assert inventory.get_item(item.id).quantity == 10

    def test_stale_expected_version_is_conflict(self, inventory, make_item):
        item = make_item()
        inventory.update_item(item.id, {"threshold": 5}, expected_version=item.version)
        with pytest.raises(ConflictError):
            inventory.update_item(item.id, {"threshold": 6}, expected_version=item.version)
        assert inventory.get_item(item.id).threshold == 5

    def test_stock_movement_bumps_version(self, inventory, make_item):
        item = make_item(quantity=10)
        inventory.record_sale(item.id, 1, Decimal("1"))
        with pytest.raises(ConflictError):
            inventory.update_item(item.id, {"threshold": 1}, expected_version=item.version)

    def test_rename_onto_existing_pool_is_duplicate(self, inventory, make_item):
        make_item(name="Rye")
        other = make_item(name="Spelt")
        with pytest.raises(DuplicateItemError):
            inventory.update_item(other.id, {"name": "Rye"})
        assert inventory.get_item(other.id).name == "Spelt"

    def test_update_unknown_item(self, inventory, clean_db):
        with pytest.raises(ItemNotFoundError):
            inventory.update_item(uuid4(), {"threshold": 1})


class TestDeleteItem:
    def test_delete_returns_removed_record(self, inventory, make_item):
        item = make_item(quantity=6)
        removed = inventory.delete_item(item.id)
        assert removed.id == item.id
        assert removed.quantity == 6
        with pytest.raises(ItemNotFoundError):
            inventory.get_item(item.id)

    def test_delete_keeps_ledger_history(self, inventory, make_item):
        item = make_item(quantity=6)
        inventory.record_sale(item.id, 2, Decimal("3.00"))
        inventory.delete_item(item.id)
        sales = inventory.list_sales(item.id)
        assert len(sales) == 1
        assert sales[0].item_name == item.name

    def test_delete_unknown_item(self, inventory, clean_db):
        with pytest.raises(ItemNotFoundError):
            inventory.delete_item(uuid4())
