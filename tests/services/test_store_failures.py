"""
Behavior when the store is unreachable.

A session factory that fails on demand stands in for a dropped database.
Reads are retried with backoff; writes surface StoreUnavailableError at once.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from inventory_kernel.domain.dtos import LocationDraft
from inventory_kernel.exceptions import StoreUnavailableError
from inventory_kernel.services.inventory_engine import InventoryEngine


class _FlakySessionFactory:
    """Raises OperationalError for the first ``failures`` session checkouts."""

    def __init__(self, real_factory, failures: int):
        self._real = real_factory
        self.failures = failures
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise OperationalError(
                "connect", {}, Exception("could not connect to server")
            )
        return self._real()


def _engine(factory, deterministic_clock, sleeps):
    return InventoryEngine(
        factory,
        clock=deterministic_clock,
        read_attempts=3,
        read_backoff_seconds=0.01,
        sleep=sleeps.append,
    )


def test_reads_retry_until_store_returns(session_factory, deterministic_clock):
    sleeps: list[float] = []
    flaky = _FlakySessionFactory(session_factory, failures=2)
    engine = _engine(flaky, deterministic_clock, sleeps)

    assert engine.list_locations() == []
    assert flaky.calls == 3
    assert sleeps == [0.01, 0.02]


def test_reads_give_up_after_attempts(session_factory, deterministic_clock):
    sleeps: list[float] = []
    flaky = _FlakySessionFactory(session_factory, failures=10)
    engine = _engine(flaky, deterministic_clock, sleeps)

    with pytest.raises(StoreUnavailableError) as exc_info:
        engine.low_stock_items()
    assert exc_info.value.operation == "low_stock_items"
    assert flaky.calls == 3


def test_writes_are_not_retried(session_factory, deterministic_clock, inventory):
    location = inventory.create_location(LocationDraft(name="Depot"))
    sleeps: list[float] = []
    flaky = _FlakySessionFactory(session_factory, failures=1)
    engine = _engine(flaky, deterministic_clock, sleeps)

    with pytest.raises(StoreUnavailableError):
        engine.create_location(LocationDraft(name="Annex"))
    assert flaky.calls == 1
    assert sleeps == []
    assert [loc.id for loc in inventory.list_locations()] == [location.id]


def test_write_failure_leaves_stock_unchanged(
    session_factory, deterministic_clock, inventory, make_item
):
    item = make_item(quantity=5)
    engine = _engine(
        _FlakySessionFactory(session_factory, failures=1), deterministic_clock, []
    )
    with pytest.raises(StoreUnavailableError):
        engine.record_sale(item.id, 2, Decimal("1"))
    assert inventory.get_item(item.id).quantity == 5
