# Overview: Service-layer operations for products; the ledger's Product read/write collaborator.

"""
Product reads and writes.

stock_quantity is only ever set in two places:
- create_product(): the opening balance
- set_stock_quantity(): called by the stock ledger inside approve_movement's
  unit of work, while it holds the product's critical section

update_product() refuses both sku and stock_quantity.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, StockMovement
from ..time_utils import window_start
from ..validation import is_row_id
from .concurrency import lock_for_update, unit_of_work
from .movement_workflow import MOVEMENT_STATUS_PENDING


IMMUTABLE_PRODUCT_FIELDS = {"sku", "stock_quantity", "opening_quantity"}


def get_product(product_id: int, *, lock: bool = False, require_active: bool = False) -> Product:
    if not is_row_id(product_id):
        raise NotFoundError(f"Product {product_id} not found", product_id=product_id)
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found", product_id=product_id)
    if require_active and not product.is_active:
        raise ValidationError(f"Product {product_id} is inactive", product_id=product_id)
    return product


def set_stock_quantity(product: Product, new_quantity: int) -> None:
    """Write the on-hand quantity. Caller owns the transaction and the product lock."""
    if not isinstance(new_quantity, int) or isinstance(new_quantity, bool):
        raise ValidationError("stock_quantity must be an integer")
    if new_quantity < 0:
        raise ValidationError("stock_quantity cannot be negative", product_id=product.id)
    product.stock_quantity = new_quantity


def create_product(*, patch: dict) -> Product:
    """
    Create a product from a validated patch.

    stock_quantity in the patch is the opening balance and is recorded as
    opening_quantity as well.
    """
    try:
        product = _insert_product(patch)
    except IntegrityError as exc:
        raise ConflictError(f"SKU {patch['sku']} already exists", sku=patch["sku"]) from exc

    current_app.logger.info(
        "Created product %s (sku=%s, opening=%s)", product.id, product.sku, product.opening_quantity
    )
    return product


def _insert_product(patch: dict) -> Product:
    with unit_of_work() as session:
        existing = session.query(Product).filter_by(sku=patch["sku"]).first()
        if existing:
            raise ConflictError(f"SKU {patch['sku']} already exists", sku=patch["sku"])

        opening = patch.get("stock_quantity") or 0
        product = Product(
            sku=patch["sku"],
            name=patch["name"],
            description=patch.get("description"),
            stock_quantity=opening,
            opening_quantity=opening,
            min_stock_level=patch.get("min_stock_level") or 0,
            max_stock_level=patch.get("max_stock_level"),
            unit_of_measure=patch.get("unit_of_measure") or "unit",
            is_active=patch.get("is_active", True),
        )
        session.add(product)
        session.flush()

    return product


def update_product(product_id: int, *, patch: dict) -> Product:
    blocked = IMMUTABLE_PRODUCT_FIELDS.intersection(patch)
    if blocked:
        raise ValidationError(
            f"Field not writable: {', '.join(sorted(blocked))}",
            fields=sorted(blocked),
        )

    with unit_of_work():
        product = get_product(product_id, lock=True)
        for key, value in patch.items():
            setattr(product, key, value)

    return product


def list_products(*, active_only: bool = True, search: str | None = None) -> list[Product]:
    query = db.session.query(Product)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def list_low_stock_products() -> list[Product]:
    """
    Active products at or below their minimum level, most critical first
    (lowest stock relative to the minimum).
    """
    products = (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            Product.stock_quantity <= Product.min_stock_level,
        )
        .all()
    )

    def _ratio(p: Product) -> float:
        if p.min_stock_level <= 0:
            return 0.0 if p.stock_quantity <= 0 else 1.0
        return p.stock_quantity / p.min_stock_level

    return sorted(products, key=lambda p: (_ratio(p), p.name, p.id))


def get_stock_summary() -> dict:
    """Dashboard counters."""
    active = db.session.query(Product).filter(Product.is_active.is_(True))

    total_products = active.count()
    low_stock_items = active.filter(Product.stock_quantity <= Product.min_stock_level).count()
    out_of_stock_items = active.filter(Product.stock_quantity == 0).count()
    total_units = (
        db.session.query(func.coalesce(func.sum(Product.stock_quantity), 0))
        .filter(Product.is_active.is_(True))
        .scalar()
    )

    pending_movements = (
        db.session.query(StockMovement)
        .filter_by(status=MOVEMENT_STATUS_PENDING)
        .count()
    )

    window_days = current_app.config.get("RECENT_MOVEMENT_DAYS", 7)
    since = window_start(window_days)
    recent_movements = (
        db.session.query(StockMovement)
        .filter(StockMovement.created_at >= since)
        .count()
    )

    return {
        "total_products": total_products,
        "low_stock_items": low_stock_items,
        "out_of_stock_items": out_of_stock_items,
        "total_units": int(total_units or 0),
        "pending_movements": pending_movements,
        "recent_movements": recent_movements,
        "recent_window_days": window_days,
    }
