"""
BaseService -- abstract base for the store services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every store in the kernel layer.  Stores receive a SQLAlchemy
    ``Session`` and use ``session.flush()`` -- never ``session.commit()``.

Invariants enforced:
    Transaction boundaries: stores flush within the caller's transaction
    and never commit or rollback themselves.  InventoryEngine owns
    commit/rollback, which is what lets a decrement and its ledger event
    (or both sides of a transfer) land together or not at all.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from inventory_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel stores.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT own aggregate read queries -- those belong
          in ``inventory_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
