"""
Ledger immutability: sale and wastage events cannot be edited or removed
through the ORM once written.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.models.ledger_event import SaleEvent, WastageEvent


@pytest.fixture
def recorded(inventory, make_item):
    item = make_item(quantity=10)
    sale = inventory.record_sale(item.id, 2, Decimal("5.00")).event
    wastage = inventory.record_wastage(item.id, 1, "damaged").event
    return sale, wastage


class TestSaleEventImmutability:
    def test_update_blocked(self, session, recorded):
        sale, _ = recorded
        model = session.scalar(select(SaleEvent).where(SaleEvent.id == sale.id))
        model.quantity = 1
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_blocked(self, session, recorded):
        sale, _ = recorded
        model = session.scalar(select(SaleEvent).where(SaleEvent.id == sale.id))
        session.delete(model)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_revenue_tamper_is_logged(self, session, recorded, captured_logs):
        sale, _ = recorded
        model = session.scalar(select(SaleEvent).where(SaleEvent.id == sale.id))
        model.unit_revenue = Decimal("0")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        blocked = [
            r for r in captured_logs() if r["message"] == "immutability_violation_blocked"
        ]
        assert blocked[0]["entity_id"] == str(sale.id)
        assert blocked[0]["operation"] == "UPDATE"


class TestWastageEventImmutability:
    def test_update_blocked(self, session, recorded):
        _, wastage = recorded
        model = session.scalar(select(WastageEvent).where(WastageEvent.id == wastage.id))
        model.reason_code = "theft"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_blocked(self, session, recorded):
        _, wastage = recorded
        model = session.scalar(select(WastageEvent).where(WastageEvent.id == wastage.id))
        session.delete(model)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


def test_ledger_unchanged_after_blocked_attempts(inventory, session, recorded):
    sale, wastage = recorded
    model = session.scalar(select(SaleEvent).where(SaleEvent.id == sale.id))
    model.quantity = 99
    with pytest.raises(ImmutabilityViolationError):
        session.flush()
    session.rollback()

    assert inventory.list_sales() == [sale]
    assert inventory.list_wastage() == [wastage]
