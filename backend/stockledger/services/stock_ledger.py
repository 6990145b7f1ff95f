# backend/stockledger/services/stock_ledger.py
"""
Stock ledger: the only writer of Product.stock_quantity.

LIFECYCLE:
1. submit_movement: validates and stores a PENDING movement. No stock changes.
2. approve_movement: inside the product's critical section, re-reads the
   current quantity, applies the signed delta and marks the movement
   APPROVED in the same transaction. Insufficient stock leaves it PENDING.
3. reject_movement: marks a PENDING movement REJECTED. No stock changes.

Affordability is checked at approval time against the quantity at that
moment, never against the quantity seen at submission.

CONCURRENCY:
- Approvals (and rejections) of one product are serialized by the
  per-product lock plus SELECT ... FOR UPDATE on the product and movement rows.
- Approvals on different products never wait on each other.
- Version counters on both rows turn cross-process races into StaleDataError,
  which run_with_retry retries and finally reports as ConcurrencyConflict.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Any

from flask import current_app

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import StockMovement
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import REASON_MAX_LENGTH, MovementRequest, coerce_int, is_row_id
from .concurrency import lock_for_update, product_critical_section, run_with_retry, unit_of_work
from .movement_workflow import (
    MOVEMENT_STATUS_APPROVED,
    MOVEMENT_STATUS_PENDING,
    MOVEMENT_STATUS_REJECTED,
    MOVEMENT_TYPE_ADJUSTMENT,
    MOVEMENT_TYPE_IN,
    MOVEMENT_TYPE_OUT,
    MOVEMENT_TYPE_TRANSFER,
    ensure_movement_type,
    ensure_status,
    ensure_transition,
)
from .permission_service import Actor, require_permission
from .products_service import get_product, set_stock_quantity


SUBMIT_CAPABILITIES = MappingProxyType({
    MOVEMENT_TYPE_IN: "stock.record_in",
    MOVEMENT_TYPE_OUT: "stock.record_out",
    MOVEMENT_TYPE_ADJUSTMENT: "stock.adjust",
    MOVEMENT_TYPE_TRANSFER: "stock.transfer",
})

# Approving or rejecting any movement kind is a manager/admin decision
DECISION_CAPABILITY = "stock.adjust"
VIEW_CAPABILITY = "stock.view_movements"


@dataclass(frozen=True)
class MovementFilter:
    """Filters for query_movements. Every field is optional."""
    product_id: int | None = None
    status: str | None = None
    movement_type: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    created_by_user_id: int | None = None
    limit: int | None = None

    def __post_init__(self):
        if self.status is not None:
            ensure_status(self.status)
        if self.movement_type is not None:
            ensure_movement_type(self.movement_type)
        if self.created_from and self.created_to and self.created_from > self.created_to:
            raise ValidationError("date_from must be before date_to", field="date_from")
        if self.limit is not None and self.limit <= 0:
            raise ValidationError("limit must be > 0", field="limit")

    @classmethod
    def from_args(cls, args: Any) -> "MovementFilter":
        """Build from query-string arguments (a Mapping such as request.args)."""

        def _int(key):
            raw = args.get(key)
            if raw in (None, ""):
                return None
            return coerce_int(raw, key)

        def _id(key):
            value = _int(key)
            if value is not None and not is_row_id(value):
                raise ValidationError(f"{key} is not a valid id", field=key)
            return value

        def _dt(key):
            raw = args.get(key)
            if raw in (None, ""):
                return None
            try:
                return parse_iso_datetime(raw)
            except ValueError:
                raise ValidationError(f"{key} must be an ISO-8601 datetime", field=key)

        return cls(
            product_id=_id("product_id"),
            status=args.get("status") or None,
            movement_type=args.get("movement_type") or None,
            created_from=_dt("date_from"),
            created_to=_dt("date_to"),
            created_by_user_id=_id("created_by"),
            limit=_int("limit"),
        )


def authorize_submission(actor: Actor, movement_type: Any) -> str:
    """Check the movement type is known and the actor may submit it."""
    movement_type = ensure_movement_type(movement_type)
    require_permission(actor, SUBMIT_CAPABILITIES[movement_type])
    return movement_type


def submit_movement(
    *,
    product_id: int,
    movement_type: str,
    quantity: Any,
    reason: Any,
    actor: Actor,
    reference_number: Any = None,
    location_from: Any = None,
    location_to: Any = None,
) -> StockMovement:
    """
    Record a PENDING movement against a product.

    Raises:
        ValidationError: unknown type, bad quantity, missing reason or transfer locations,
            inactive product
        PermissionDenied: actor lacks the capability for this movement type
        NotFoundError: product does not exist
    """
    movement_type = authorize_submission(actor, movement_type)

    request = MovementRequest.build(
        movement_type=movement_type,
        magnitude=quantity,
        reason=reason,
        reference_number=reference_number,
        location_from=location_from,
        location_to=location_to,
    )
    return submit_movement_request(product_id=product_id, request=request, actor=actor)


def submit_movement_request(*, product_id: int, request: MovementRequest, actor: Actor) -> StockMovement:
    """Same as submit_movement for an already validated MovementRequest."""
    authorize_submission(actor, request.movement_type)

    with unit_of_work() as session:
        get_product(product_id, require_active=True)

        movement = StockMovement(
            product_id=product_id,
            movement_type=request.movement_type,
            requested_delta=request.magnitude,
            reason=request.reason,
            reference_number=request.reference_number,
            location_from=request.location_from,
            location_to=request.location_to,
            status=MOVEMENT_STATUS_PENDING,
            created_by_user_id=actor.id,
        )
        session.add(movement)
        session.flush()
        movement_id = movement.id

    current_app.logger.info(
        "Movement %s submitted: product=%s type=%s quantity=%s by user %s",
        movement_id,
        product_id,
        request.movement_type,
        request.magnitude,
        actor.id,
    )
    return movement


def approve_movement(movement_id: int, approver: Actor) -> StockMovement:
    """
    Apply a PENDING movement to its product's stock.

    Raises:
        PermissionDenied: approver lacks the decision capability
        NotFoundError: movement does not exist
        InvalidStateError: movement is not pending
        InsufficientStockError: resulting stock would be negative (movement stays pending)
        ConcurrencyConflict: lock contention outlasted the retry budget (retryable)
    """
    require_permission(approver, DECISION_CAPABILITY)

    movement = get_movement(movement_id)
    ensure_transition(movement.id, movement.status, MOVEMENT_STATUS_APPROVED)
    product_id = movement.product_id

    def _op():
        with product_critical_section(product_id):
            with unit_of_work():
                locked = _get_movement_for_update(movement_id)
                ensure_transition(locked.id, locked.status, MOVEMENT_STATUS_APPROVED)

                product = get_product(product_id, lock=True)
                previous_quantity = product.stock_quantity
                new_quantity = previous_quantity + locked.signed_delta

                if new_quantity < 0:
                    raise InsufficientStockError(
                        f"Insufficient stock for product {product_id}. "
                        f"On-hand: {previous_quantity}, requested: {abs(locked.signed_delta)}",
                        product_id=product_id,
                        on_hand=previous_quantity,
                        requested=abs(locked.signed_delta),
                    )
                if locked.movement_type == MOVEMENT_TYPE_TRANSFER and locked.requested_delta > previous_quantity:
                    raise InsufficientStockError(
                        f"Cannot transfer {locked.requested_delta} units of product {product_id}. "
                        f"On-hand: {previous_quantity}",
                        product_id=product_id,
                        on_hand=previous_quantity,
                        requested=locked.requested_delta,
                    )

                set_stock_quantity(product, new_quantity)
                product.ledger_sequence = product.ledger_sequence + 1

                locked.status = MOVEMENT_STATUS_APPROVED
                locked.previous_quantity = previous_quantity
                locked.new_quantity = new_quantity
                locked.ledger_sequence = product.ledger_sequence
                locked.approved_by_user_id = approver.id
                locked.decided_at = utcnow()
        return locked

    approved = run_with_retry(_op)

    current_app.logger.info(
        "Movement %s approved by user %s: product=%s %s -> %s",
        approved.id,
        approver.id,
        product_id,
        approved.previous_quantity,
        approved.new_quantity,
    )
    return approved


def reject_movement(movement_id: int, approver: Actor, reason: Any) -> StockMovement:
    """
    Close a PENDING movement without touching stock.

    Raises:
        PermissionDenied, ValidationError (blank reason), NotFoundError,
        InvalidStateError (already approved or rejected), ConcurrencyConflict
    """
    require_permission(approver, DECISION_CAPABILITY)

    if not isinstance(reason, str) or not reason.strip():
        raise ValidationError("Rejection reason is required", field="reason")
    reason = reason.strip()
    if len(reason) > REASON_MAX_LENGTH:
        raise ValidationError(f"reason exceeds max length {REASON_MAX_LENGTH}", field="reason")

    movement = get_movement(movement_id)
    ensure_transition(movement.id, movement.status, MOVEMENT_STATUS_REJECTED)
    product_id = movement.product_id

    def _op():
        with product_critical_section(product_id):
            with unit_of_work():
                locked = _get_movement_for_update(movement_id)
                ensure_transition(locked.id, locked.status, MOVEMENT_STATUS_REJECTED)

                locked.status = MOVEMENT_STATUS_REJECTED
                locked.approved_by_user_id = approver.id
                locked.rejection_reason = reason
                locked.decided_at = utcnow()
        return locked

    rejected = run_with_retry(_op)

    current_app.logger.info(
        "Movement %s rejected by user %s: %s", rejected.id, approver.id, reason
    )
    return rejected


def get_movement(movement_id: int) -> StockMovement:
    movement = db.session.get(StockMovement, movement_id) if is_row_id(movement_id) else None
    if movement is None:
        raise NotFoundError(f"Movement {movement_id} not found", movement_id=movement_id)
    return movement


def _get_movement_for_update(movement_id: int) -> StockMovement:
    if not is_row_id(movement_id):
        raise NotFoundError(f"Movement {movement_id} not found", movement_id=movement_id)
    movement = lock_for_update(db.session.query(StockMovement).filter_by(id=movement_id)).first()
    if movement is None:
        raise NotFoundError(f"Movement {movement_id} not found", movement_id=movement_id)
    return movement


def query_movements(movement_filter: MovementFilter | None = None) -> list[StockMovement]:
    """Most recent first. Returns a fresh list on every call."""
    movement_filter = movement_filter or MovementFilter()
    query = db.session.query(StockMovement)

    if movement_filter.product_id is not None:
        query = query.filter(StockMovement.product_id == movement_filter.product_id)
    if movement_filter.status is not None:
        query = query.filter(StockMovement.status == movement_filter.status)
    if movement_filter.movement_type is not None:
        query = query.filter(StockMovement.movement_type == movement_filter.movement_type)
    if movement_filter.created_from is not None:
        query = query.filter(StockMovement.created_at >= movement_filter.created_from)
    if movement_filter.created_to is not None:
        query = query.filter(StockMovement.created_at <= movement_filter.created_to)
    if movement_filter.created_by_user_id is not None:
        query = query.filter(StockMovement.created_by_user_id == movement_filter.created_by_user_id)

    query = query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
    return query.limit(_effective_limit(movement_filter.limit)).all()


def list_pending_movements(limit: int | None = None) -> list[StockMovement]:
    """Approval queue, oldest first."""
    return (
        db.session.query(StockMovement)
        .filter(StockMovement.status == MOVEMENT_STATUS_PENDING)
        .order_by(StockMovement.created_at.asc(), StockMovement.id.asc())
        .limit(_effective_limit(limit))
        .all()
    )


def _effective_limit(limit: int | None) -> int:
    default = current_app.config.get("MOVEMENT_QUERY_DEFAULT_LIMIT", 100)
    maximum = current_app.config.get("MOVEMENT_QUERY_MAX_LIMIT", 500)
    if limit is None:
        return default
    if limit <= 0:
        raise ValidationError("limit must be > 0", field="limit")
    return min(limit, maximum)
