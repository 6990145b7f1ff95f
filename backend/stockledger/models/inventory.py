from __future__ import annotations

from sqlalchemy import event, inspect, select
from sqlalchemy.orm import object_session

from ..extensions import db
from ..errors import InvalidStateError
from ..services.movement_workflow import (
    MOVEMENT_STATUS_PENDING,
    TERMINAL_STATUSES,
    signed_delta,
)
from ..time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Product master data plus its on-hand quantity.

    STOCK QUANTITY OWNERSHIP:
    stock_quantity is written by exactly two code paths:
    - create_product() sets the opening balance (also copied to opening_quantity)
    - the stock ledger's approve step, inside its per-product critical section

    Reconciliation invariant:
        stock_quantity == opening_quantity + sum(signed delta of approved movements)

    version_id turns concurrent writers on other processes into StaleDataError
    instead of lost updates.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("opening_quantity >= 0", name="ck_products_opening_non_negative"),
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Unique and immutable once set
    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    opening_quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=0)
    max_stock_level = db.Column(db.Integer, nullable=True)
    unit_of_measure = db.Column(db.String(32), nullable=False, default="unit")

    # Number of approved movements applied so far; each approval takes the next value
    ledger_sequence = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} stock_quantity={self.stock_quantity}>"

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.min_stock_level

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "stock_quantity": self.stock_quantity,
            "opening_quantity": self.opening_quantity,
            "min_stock_level": self.min_stock_level,
            "max_stock_level": self.max_stock_level,
            "unit_of_measure": self.unit_of_measure,
            "is_active": self.is_active,
            "is_low_stock": self.is_low_stock,
            "ledger_sequence": self.ledger_sequence,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    A request to change a product's stock, and after its decision, the audit
    record of that change.

    - requested_delta: magnitude for in/out/transfer (always > 0),
      signed value for adjustment (never 0)
    - previous_quantity / new_quantity / ledger_sequence: NULL until approved
    - approved_by_user_id / decided_at: NULL until approved or rejected

    Once status leaves pending the row is frozen (see the mapper events below).
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_status", "product_id", "status"),
        db.Index("ix_stock_movements_product_sequence", "product_id", "ledger_sequence"),
        db.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_stock_movements_status",
        ),
        db.CheckConstraint(
            "movement_type IN ('in', 'out', 'adjustment', 'transfer')",
            name="ck_stock_movements_type",
        ),
        db.CheckConstraint("requested_delta != 0", name="ck_stock_movements_delta_non_zero"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False, index=True)
    requested_delta = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=False)
    reference_number = db.Column(db.String(64), nullable=True)

    location_from = db.Column(db.String(128), nullable=True)
    location_to = db.Column(db.String(128), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=MOVEMENT_STATUS_PENDING, index=True)

    previous_quantity = db.Column(db.Integer, nullable=True)
    new_quantity = db.Column(db.Integer, nullable=True)
    ledger_sequence = db.Column(db.Integer, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    rejection_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        index=True,
    )
    decided_at = db.Column(db.DateTime, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product")
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    approved_by = db.relationship("User", foreign_keys=[approved_by_user_id])

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<StockMovement id={self.id} product_id={self.product_id} "
            f"type={self.movement_type} delta={self.requested_delta} status={self.status}>"
        )

    @property
    def signed_delta(self) -> int:
        return signed_delta(self.movement_type, self.requested_delta)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "requested_delta": self.requested_delta,
            "signed_delta": self.signed_delta,
            "reason": self.reason,
            "reference_number": self.reference_number,
            "location_from": self.location_from,
            "location_to": self.location_to,
            "status": self.status,
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
            "ledger_sequence": self.ledger_sequence,
            "created_by_user_id": self.created_by_user_id,
            "approved_by_user_id": self.approved_by_user_id,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "decided_at": to_utc_z(self.decided_at),
        }


@event.listens_for(StockMovement, "before_update")
def _freeze_terminal_movements(mapper, connection, target):
    """The only legal update of a movement is its single pending -> terminal step."""
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return

    # Read the stored status; the in-memory one may already hold the new value
    table = StockMovement.__table__
    movement_id = inspect(target).identity[0]
    previous = connection.execute(
        select(table.c.status).where(table.c.id == movement_id)
    ).scalar()
    if previous in TERMINAL_STATUSES:
        raise InvalidStateError(
            f"Movement {movement_id} is {previous} and can no longer be modified",
            movement_id=movement_id,
            status=previous,
        )


@event.listens_for(StockMovement, "before_delete")
def _forbid_movement_deletes(mapper, connection, target):
    movement_id = inspect(target).identity[0]
    raise InvalidStateError(
        f"Movement {movement_id} is part of the audit trail and cannot be deleted",
        movement_id=movement_id,
    )
