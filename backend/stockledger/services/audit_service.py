# Overview: Read-only audit trail over the stock_movements table.

"""
Stock Ledger Audit Invariants (authoritative)

- The audit trail IS the stock_movements table; there is no second copy.
- Movements are append-only: terminal rows are frozen, no row is ever deleted.
- Approved movements of a product, ordered by ledger_sequence, form a chain:
    movement[n].previous_quantity == movement[n-1].new_quantity
    movement[n].new_quantity == movement[n].previous_quantity + signed_delta
    movement[0].previous_quantity == product.opening_quantity
- Reconciliation: product.stock_quantity == opening_quantity + sum(approved signed deltas)
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, StockMovement
from .movement_workflow import MOVEMENT_STATUS_APPROVED
from .products_service import get_product


def get_product_history(product_id: int) -> list[StockMovement]:
    """Approved movements of a product in commit order."""
    get_product(product_id)
    return (
        db.session.query(StockMovement)
        .filter(
            StockMovement.product_id == product_id,
            StockMovement.status == MOVEMENT_STATUS_APPROVED,
        )
        .order_by(StockMovement.ledger_sequence.asc(), StockMovement.id.asc())
        .all()
    )


def reconcile_product(product_id: int) -> dict:
    """
    Check one product against its audit trail.

    Returns a report dict; is_consistent is False when either the
    reconciliation sum or the previous/new chain is broken.
    """
    product = get_product(product_id)
    history = get_product_history(product_id)
    return _reconcile(product, history)


def reconcile_all_products() -> list[dict]:
    products = db.session.query(Product).order_by(Product.id.asc()).all()
    return [_reconcile(p, get_product_history(p.id)) for p in products]


def _reconcile(product: Product, history: list[StockMovement]) -> dict:
    chain_breaks: list[dict] = []
    running = product.opening_quantity
    approved_delta_total = 0

    for expected_sequence, movement in enumerate(history, start=1):
        delta = movement.signed_delta
        approved_delta_total += delta

        problems = []
        if movement.ledger_sequence != expected_sequence:
            problems.append("sequence_gap")
        if movement.previous_quantity != running:
            problems.append("previous_mismatch")
        if movement.new_quantity != (movement.previous_quantity or 0) + delta:
            problems.append("delta_mismatch")
        if movement.new_quantity is None or movement.new_quantity < 0:
            problems.append("negative_balance")
        if problems:
            chain_breaks.append({
                "movement_id": movement.id,
                "ledger_sequence": movement.ledger_sequence,
                "problems": problems,
            })

        running = movement.new_quantity if movement.new_quantity is not None else running + delta

    expected_quantity = product.opening_quantity + approved_delta_total

    return {
        "product_id": product.id,
        "sku": product.sku,
        "opening_quantity": product.opening_quantity,
        "approved_movements": len(history),
        "approved_delta_total": approved_delta_total,
        "expected_quantity": expected_quantity,
        "stock_quantity": product.stock_quantity,
        "chain_breaks": chain_breaks,
        "is_consistent": expected_quantity == product.stock_quantity and not chain_breaks,
    }
