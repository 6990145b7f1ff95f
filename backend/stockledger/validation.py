# Overview: Input validation for product payloads and stock movement submissions.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError, ConflictError  # noqa: F401  (re-exported)
from .services.movement_workflow import (
    MOVEMENT_TYPE_ADJUSTMENT,
    MOVEMENT_TYPE_TRANSFER,
    ensure_movement_type,
)


REASON_MAX_LENGTH = 255
REFERENCE_MAX_LENGTH = 64
LOCATION_MAX_LENGTH = 128

# Largest single movement accepted; keeps stock_quantity well inside a 32-bit column
MAX_MOVEMENT_MAGNITUDE = 1_000_000_000

# Primary keys are 32-bit INTEGER columns; larger values cannot be bound by the driver
MAX_ROW_ID = 2**31 - 1


def is_row_id(value: Any) -> bool:
    """True when value can name a row: a positive int that fits an INTEGER key."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 < value <= MAX_ROW_ID


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON input.

    Accepts ints (not bools) and plain digit strings with an optional sign.
    Rejects floats, decimals and scientific notation.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer", field=field)
        if 'e' in stripped.lower():
            raise ValidationError(
                f"{field} must be a plain integer (scientific notation not allowed)", field=field
            )
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)", field=field)
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer", field=field)
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal", field=field)
    raise ValidationError(f"{field} must be an integer", field=field)


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean", field=col.key)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}", field=k)
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}", field=k)

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", field=k)
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", field=k)

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", field=k)

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict, *, current: dict | None = None) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.

    current: existing values for a PATCH, so min/max can be checked together.
    """
    for field in ("stock_quantity", "min_stock_level", "max_stock_level"):
        value = patch.get(field)
        if value is not None and value < 0:
            raise ValidationError(f"{field} must be >= 0", field=field)

    merged = dict(current or {})
    merged.update(patch)
    min_level = merged.get("min_stock_level")
    max_level = merged.get("max_stock_level")
    if min_level is not None and max_level is not None and max_level < min_level:
        raise ValidationError("max_stock_level must be >= min_stock_level", field="max_stock_level")


def _clean_text(value: Any, field: str, max_length: int, *, required: bool) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required", field=field)
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)
    cleaned = value.strip()
    if not cleaned:
        if required:
            raise ValidationError(f"{field} cannot be blank", field=field)
        return None
    if len(cleaned) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}", field=field)
    return cleaned


@dataclass(frozen=True)
class MovementRequest:
    """
    A fully validated stock movement submission.

    Only build() or from_payload() should construct one; once it exists every
    field is known to be consistent with movement_type:

    - in / out / transfer: magnitude > 0
    - adjustment: magnitude is signed and != 0
    - transfer: location_from and location_to present and different
    - other types: no locations
    """
    movement_type: str
    magnitude: int
    reason: str
    reference_number: str | None = None
    location_from: str | None = None
    location_to: str | None = None

    @classmethod
    def build(
        cls,
        *,
        movement_type: Any,
        magnitude: Any,
        reason: Any,
        reference_number: Any = None,
        location_from: Any = None,
        location_to: Any = None,
    ) -> "MovementRequest":
        movement_type = ensure_movement_type(movement_type)

        if magnitude is None:
            raise ValidationError("quantity is required", field="quantity")
        magnitude = coerce_int(magnitude, "quantity")
        if movement_type == MOVEMENT_TYPE_ADJUSTMENT:
            if magnitude == 0:
                raise ValidationError("quantity must be non-zero for adjustment", field="quantity")
        elif magnitude <= 0:
            raise ValidationError(f"quantity must be > 0 for {movement_type}", field="quantity")
        if abs(magnitude) > MAX_MOVEMENT_MAGNITUDE:
            raise ValidationError(
                f"quantity cannot exceed {MAX_MOVEMENT_MAGNITUDE} in a single movement",
                field="quantity",
            )

        reason = _clean_text(reason, "reason", REASON_MAX_LENGTH, required=True)
        reference_number = _clean_text(
            reference_number, "reference_number", REFERENCE_MAX_LENGTH, required=False
        )
        location_from = _clean_text(location_from, "location_from", LOCATION_MAX_LENGTH, required=False)
        location_to = _clean_text(location_to, "location_to", LOCATION_MAX_LENGTH, required=False)

        if movement_type == MOVEMENT_TYPE_TRANSFER:
            if not location_from or not location_to:
                raise ValidationError(
                    "transfer requires both location_from and location_to",
                    field="location_from" if not location_from else "location_to",
                )
            if location_from == location_to:
                raise ValidationError(
                    "location_from and location_to must differ", field="location_to"
                )
        elif location_from or location_to:
            raise ValidationError(
                f"locations are only accepted for transfer, not {movement_type}",
                field="location_from" if location_from else "location_to",
            )

        return cls(
            movement_type=movement_type,
            magnitude=magnitude,
            reason=reason,
            reference_number=reference_number,
            location_from=location_from,
            location_to=location_to,
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "MovementRequest":
        """Parse a JSON request body. Unknown keys are rejected."""
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        allowed = {
            "product_id",
            "movement_type",
            "quantity",
            "reason",
            "reference_number",
            "location_from",
            "location_to",
        }
        for key in payload:
            if key not in allowed:
                raise ValidationError(f"Field not allowed: {key}", field=key)
        return cls.build(
            movement_type=payload.get("movement_type"),
            magnitude=payload.get("quantity"),
            reason=payload.get("reason"),
            reference_number=payload.get("reference_number"),
            location_from=payload.get("location_from"),
            location_to=payload.get("location_to"),
        )
