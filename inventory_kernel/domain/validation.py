"""
Domain validation helpers.

Pure checks with no I/O.  Each helper either returns a normalized value or
raises ``ValidationError`` carrying ``field_errors`` of the form
``{"field": ..., "message": ...}``.  Drafts are checked as a whole so the
caller sees every problem at once.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping
from uuid import UUID

from inventory_kernel.domain.dtos import ItemDraft, LocationDraft
from inventory_kernel.exceptions import ProtectedFieldError, ValidationError

MAX_NAME_LENGTH = 200
MAX_CATEGORY_LENGTH = 100
MAX_REASON_CODE_LENGTH = 50
MAX_REQUEST_ID_LENGTH = 100

# items.quantity and threshold are BIGINT columns.
MAX_QUANTITY = 2**63 - 1
# Numeric(38, 9) leaves 29 digits before the point.
MAX_AMOUNT = Decimal(10) ** 29

# Only stock operations may move these.
PROTECTED_ITEM_FIELDS: frozenset[str] = frozenset({"quantity", "location_id"})
EDITABLE_ITEM_FIELDS: frozenset[str] = frozenset(
    {"name", "category", "unit_price", "threshold"}
)
EDITABLE_LOCATION_FIELDS: frozenset[str] = frozenset({"name", "address"})


class _Issues:
    """Collects field errors and raises them together."""

    def __init__(self) -> None:
        self.errors: list[dict] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append({"field": field, "message": message})

    def check(self, field: str, fn, value):
        try:
            return fn(value, field)
        except ValidationError as exc:
            self.errors.extend(exc.field_errors)
            return None

    def raise_if_any(self, subject: str) -> None:
        if self.errors:
            fields_ = ", ".join(e["field"] for e in self.errors)
            raise ValidationError(f"Invalid {subject}: {fields_}", self.errors)


def _fail(field: str, message: str) -> ValidationError:
    return ValidationError(f"{field}: {message}", [{"field": field, "message": message}])


def require_name(value: Any, field: str = "name") -> str:
    if not isinstance(value, str) or not value.strip():
        raise _fail(field, "must be a non-empty string")
    name = value.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise _fail(field, f"must be at most {MAX_NAME_LENGTH} characters")
    return name


def require_category(value: Any, field: str = "category") -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _fail(field, "must be a string")
    if len(value) > MAX_CATEGORY_LENGTH:
        raise _fail(field, f"must be at most {MAX_CATEGORY_LENGTH} characters")
    return value.strip()


def require_non_negative_int(value: Any, field: str) -> int:
    # bool is an int subclass; True is not a quantity.
    if isinstance(value, bool) or not isinstance(value, int):
        raise _fail(field, "must be an integer")
    if value < 0:
        raise _fail(field, "must be >= 0")
    if value > MAX_QUANTITY:
        raise _fail(field, f"must be <= {MAX_QUANTITY}")
    return value


def require_positive_quantity(value: Any, field: str = "quantity") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise _fail(field, "must be an integer")
    if value <= 0:
        raise _fail(field, "must be > 0")
    if value > MAX_QUANTITY:
        raise _fail(field, f"must be <= {MAX_QUANTITY}")
    return value


def coerce_money(value: Any, field: str) -> Decimal:
    """Parse a non-negative amount.  Floats go through ``str`` to avoid binary noise."""
    if isinstance(value, bool) or value is None:
        raise _fail(field, "must be a decimal amount")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise _fail(field, "must be a decimal amount") from None
    if not amount.is_finite():
        raise _fail(field, "must be finite")
    if amount < 0:
        raise _fail(field, "must be >= 0")
    if amount >= MAX_AMOUNT:
        raise _fail(field, f"must be below {MAX_AMOUNT}")
    return amount


def coerce_uuid(value: Any, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise _fail(field, "must be a UUID") from None


def require_reason_code(value: Any, field: str = "reason_code") -> str:
    if not isinstance(value, str) or not value.strip():
        raise _fail(field, "must be a non-empty string")
    code = value.strip()
    if len(code) > MAX_REASON_CODE_LENGTH:
        raise _fail(field, f"must be at most {MAX_REASON_CODE_LENGTH} characters")
    return code


def optional_request_id(value: Any, field: str = "request_id") -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise _fail(field, "must be a non-empty string")
    if len(value) > MAX_REQUEST_ID_LENGTH:
        raise _fail(field, f"must be at most {MAX_REQUEST_ID_LENGTH} characters")
    return value


def _optional_address(value: Any, field: str = "address") -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise _fail(field, "must be a string")
    return value.strip() or None


# =============================================================================
# Drafts and patches
# =============================================================================


def validate_item_draft(draft: ItemDraft) -> ItemDraft:
    """Check every field of an item draft and return the normalized draft."""
    issues = _Issues()
    name = issues.check("name", require_name, draft.name)
    category = issues.check("category", require_category, draft.category)
    quantity = issues.check("quantity", require_non_negative_int, draft.quantity)
    threshold = issues.check("threshold", require_non_negative_int, draft.threshold)
    unit_price = issues.check("unit_price", coerce_money, draft.unit_price)
    location_id = issues.check("location_id", coerce_uuid, draft.location_id)
    issues.raise_if_any("item")
    return replace(
        draft,
        name=name,
        category=category,
        quantity=quantity,
        threshold=threshold,
        unit_price=unit_price,
        location_id=location_id,
    )


_ITEM_FIELD_CHECKS = {
    "name": require_name,
    "category": require_category,
    "unit_price": coerce_money,
    "threshold": require_non_negative_int,
}


def validate_item_patch(fields: Mapping[str, Any]) -> dict[str, Any]:
    """
    Check a partial item update and return the normalized patch.

    Every editable field constraint is per-field, so validating the patch
    alone is equivalent to validating the resulting row.

    Raises:
        ProtectedFieldError: quantity or location_id present.
        ValidationError: unknown field, empty patch, or bad value.
    """
    for protected in sorted(PROTECTED_ITEM_FIELDS):
        if protected in fields:
            raise ProtectedFieldError(protected)

    unknown = sorted(set(fields) - EDITABLE_ITEM_FIELDS)
    if unknown:
        raise ValidationError(
            f"Unknown item field(s): {', '.join(unknown)}",
            [{"field": f, "message": "unknown field"} for f in unknown],
        )
    if not fields:
        raise ValidationError("No fields to update")

    issues = _Issues()
    patch = {
        key: issues.check(key, _ITEM_FIELD_CHECKS[key], value)
        for key, value in fields.items()
    }
    issues.raise_if_any("item update")
    return patch


def validate_location_draft(draft: LocationDraft) -> LocationDraft:
    issues = _Issues()
    name = issues.check("name", require_name, draft.name)
    address = issues.check("address", _optional_address, draft.address)
    issues.raise_if_any("location")
    return replace(draft, name=name, address=address)


def validate_location_patch(fields: Mapping[str, Any]) -> dict[str, Any]:
    unknown = sorted(set(fields) - EDITABLE_LOCATION_FIELDS)
    if unknown:
        raise ValidationError(
            f"Unknown location field(s): {', '.join(unknown)}",
            [{"field": f, "message": "unknown field"} for f in unknown],
        )
    if not fields:
        raise ValidationError("No fields to update")

    issues = _Issues()
    patch: dict[str, Any] = {}
    if "name" in fields:
        patch["name"] = issues.check("name", require_name, fields["name"])
    if "address" in fields:
        patch["address"] = issues.check("address", _optional_address, fields["address"])
    issues.raise_if_any("location update")
    return patch
