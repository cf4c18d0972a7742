"""
Kernel Invariants Contract.

These invariants are structural law. They are enforced by the conditional
writes in the item store, by database constraints, and by the ORM
immutability listeners. No setting may switch them off.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across ItemStore, LedgerEventStore,
InventoryEngine, and db.immutability.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    NON_NEGATIVE_QUANTITY = "non_negative_quantity"
    """Item quantity never drops below zero. Enforced by the
    ``quantity >= :n`` clause of every decrement and by a CHECK constraint."""

    TRANSFER_CONSERVATION = "transfer_conservation"
    """A transfer leaves the per-product total unchanged. Enforced by
    running the decrement and the increment in one store transaction."""

    AUDITED_DECREMENT = "audited_decrement"
    """Every sale or wastage decrement has exactly one ledger event.
    Enforced by InventoryEngine committing both writes together."""

    AT_MOST_ONCE_DECREMENT = "at_most_once_decrement"
    """A request id applies its decrement at most once. Enforced by the
    unique ``request_id`` column on the ledger tables."""

    LEDGER_IMMUTABILITY = "ledger_immutability"
    """Sale and wastage events are append-only. Enforced by ORM listeners
    (inventory_kernel.db.immutability)."""

    LOCATION_REFERENCES = "location_references"
    """A location referenced by items cannot be deleted. Enforced by
    LocationStore and an ON DELETE RESTRICT foreign key."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = ("inventory_config",)
