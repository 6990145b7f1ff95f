# Overview: Movement lifecycle state machine and movement-type semantics.
"""
Movement lifecycle (authoritative)

    pending --approve--> approved   (terminal; conditional on non-negative stock)
    pending --reject---> rejected   (terminal; unconditional once authorized)

No transition leaves a terminal state. Corrections are new compensating
movements, never edits of history.

This module is pure: it knows nothing about the database, so models,
services and routes can all share it.
"""
from __future__ import annotations

from types import MappingProxyType

from ..errors import InvalidStateError, ValidationError


MOVEMENT_STATUS_PENDING = "pending"
MOVEMENT_STATUS_APPROVED = "approved"
MOVEMENT_STATUS_REJECTED = "rejected"

MOVEMENT_STATUSES = (
    MOVEMENT_STATUS_PENDING,
    MOVEMENT_STATUS_APPROVED,
    MOVEMENT_STATUS_REJECTED,
)
TERMINAL_STATUSES = frozenset({MOVEMENT_STATUS_APPROVED, MOVEMENT_STATUS_REJECTED})

MOVEMENT_TYPE_IN = "in"
MOVEMENT_TYPE_OUT = "out"
MOVEMENT_TYPE_ADJUSTMENT = "adjustment"
MOVEMENT_TYPE_TRANSFER = "transfer"

MOVEMENT_TYPES = (
    MOVEMENT_TYPE_IN,
    MOVEMENT_TYPE_OUT,
    MOVEMENT_TYPE_ADJUSTMENT,
    MOVEMENT_TYPE_TRANSFER,
)

_TRANSITIONS = MappingProxyType({
    MOVEMENT_STATUS_PENDING: frozenset({MOVEMENT_STATUS_APPROVED, MOVEMENT_STATUS_REJECTED}),
    MOVEMENT_STATUS_APPROVED: frozenset(),
    MOVEMENT_STATUS_REJECTED: frozenset(),
})


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def allowed_transitions(status: str) -> frozenset:
    return _TRANSITIONS.get(status, frozenset())


def ensure_transition(movement_id: int, current: str, target: str) -> None:
    """Raise InvalidStateError unless current -> target is a legal transition."""
    if target not in allowed_transitions(current):
        raise InvalidStateError(
            f"Movement {movement_id} is {current}; cannot move to {target}",
            movement_id=movement_id,
            status=current,
        )


def ensure_movement_type(movement_type) -> str:
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(
            f"movement_type must be one of: {', '.join(MOVEMENT_TYPES)}",
            field="movement_type",
        )
    return movement_type


def ensure_status(status) -> str:
    if status not in MOVEMENT_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(MOVEMENT_STATUSES)}",
            field="status",
        )
    return status


def signed_delta(movement_type: str, requested_delta: int) -> int:
    """
    Effect of a movement on the product's total quantity.

    - in: +magnitude
    - out: -magnitude
    - adjustment: the signed value as submitted
    - transfer: 0 (stock changes location, not total)
    """
    if movement_type == MOVEMENT_TYPE_IN:
        return abs(requested_delta)
    if movement_type == MOVEMENT_TYPE_OUT:
        return -abs(requested_delta)
    if movement_type == MOVEMENT_TYPE_ADJUSTMENT:
        return requested_delta
    if movement_type == MOVEMENT_TYPE_TRANSFER:
        return 0
    raise ValidationError(f"Unknown movement_type: {movement_type}", field="movement_type")
