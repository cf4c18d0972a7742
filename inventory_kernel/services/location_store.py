"""
LocationStore -- persistence of warehouses.

Invariants enforced:
    Location references -- ``delete`` refuses while any item points at the
    location.  The count check gives a friendly error; the FK with
    ON DELETE RESTRICT catches an item inserted concurrently after it.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from inventory_kernel.domain.dtos import LocationDraft, LocationRecord
from inventory_kernel.exceptions import LocationInUseError, ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.item import Item
from inventory_kernel.models.location import Location
from inventory_kernel.services.base import BaseService

logger = get_logger("services.location_store")

_locations = Location.__table__


def _duplicate_name(name: str) -> ValidationError:
    return ValidationError(
        f"Location '{name}' already exists",
        [{"field": "name", "message": "already exists"}],
    )


class LocationStore(BaseService[Location]):
    """Location persistence.  Flush-only; returns LocationRecord snapshots."""

    def get(self, location_id: UUID) -> LocationRecord | None:
        model = self.session.execute(
            select(Location)
            .where(Location.id == location_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return LocationRecord.from_model(model) if model is not None else None

    def exists(self, location_id: UUID) -> bool:
        return (
            self.session.scalar(select(Location.id).where(Location.id == location_id))
            is not None
        )

    def _item_count(self, location_id: UUID) -> int:
        return int(
            self.session.scalar(
                select(func.count()).select_from(Item).where(
                    Item.location_id == location_id
                )
            )
            or 0
        )

    def list(self) -> list[LocationRecord]:
        stmt = select(Location).order_by(Location.name, Location.id)
        return [LocationRecord.from_model(m) for m in self.session.scalars(stmt)]

    def create(self, draft: LocationDraft, now: datetime) -> LocationRecord:
        model = Location(
            name=draft.name, address=draft.address, created_at=now, updated_at=now
        )
        savepoint = self.session.begin_nested()
        try:
            self.session.add(model)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            raise _duplicate_name(draft.name) from None
        return LocationRecord.from_model(model)

    def update(
        self, location_id: UUID, patch: dict[str, Any], now: datetime
    ) -> LocationRecord | None:
        savepoint = self.session.begin_nested()
        try:
            row = (
                self.session.execute(
                    update(_locations)
                    .where(_locations.c.id == location_id)
                    .values(**patch, updated_at=now)
                    .returning(*_locations.c)
                )
                .mappings()
                .one_or_none()
            )
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            raise _duplicate_name(patch.get("name", "")) from None
        return LocationRecord.from_row(row) if row is not None else None

    def delete(self, location_id: UUID) -> LocationRecord | None:
        """
        Remove a location that no item references.

        Raises:
            LocationInUseError: Items still sit at the location.
        """
        in_use = self._item_count(location_id)
        if in_use:
            raise LocationInUseError(str(location_id), in_use)

        savepoint = self.session.begin_nested()
        try:
            row = (
                self.session.execute(
                    delete(_locations)
                    .where(_locations.c.id == location_id)
                    .returning(*_locations.c)
                )
                .mappings()
                .one_or_none()
            )
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            logger.warning(
                "location_delete_blocked_by_reference",
                extra={"location_id": str(location_id)},
            )
            raise LocationInUseError(
                str(location_id), self._item_count(location_id)
            ) from None
        return LocationRecord.from_row(row) if row is not None else None
