# backend/stockledger/routes/products.py
"""
Product routes.

stock_quantity is accepted on create only (opening balance). Afterwards it
changes exclusively through approved stock movements, so PATCH rejects it,
and rejects sku, which is immutable once set.

SECURITY: All routes require an authenticated actor.
- Read operations require products.read
- Create requires products.create, update requires products.update
- Summary requires reports.stock
"""
from flask import Blueprint, request, current_app

from ..models import Product
from ..errors import LedgerError, ValidationError
from ..services import products_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
)
from ..decorators import require_auth, require_permission

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku",
        "name",
        "description",
        "stock_quantity",
        "min_stock_level",
        "max_stock_level",
        "unit_of_measure",
        "is_active",
    },
    required_on_create={"sku", "name"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "min_stock_level",
        "max_stock_level",
        "unit_of_measure",
        "is_active",
    },
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("products.read")
def list_products():
    """
    List products.

    Query params:
    - include_inactive: "true" to include deactivated products
    - search: substring match on name or SKU
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    search = request.args.get("search")

    try:
        products = products_service.list_products(active_only=not include_inactive, search=search)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return {"error": "internal_error", "message": "Internal server error"}, 500

    return {"products": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/low-stock")
@require_auth
@require_permission("products.read")
def list_low_stock_products():
    """Active products at or below min_stock_level, most critical first."""
    try:
        products = products_service.list_low_stock_products()
    except Exception:
        current_app.logger.exception("Failed to list low-stock products")
        return {"error": "internal_error", "message": "Internal server error"}, 500

    return {"products": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/summary")
@require_auth
@require_permission("reports.stock")
def stock_summary():
    try:
        return products_service.get_stock_summary()
    except Exception:
        current_app.logger.exception("Failed to build stock summary")
        return {"error": "internal_error", "message": "Internal server error"}, 500


@products_bp.post("")
@require_auth
@require_permission("products.create")
def create_product_route():
    """
    Create a new product. stock_quantity (optional) is the opening balance.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
        enforce_rules_product(patch)
        created = products_service.create_product(patch=patch)
    except LedgerError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "internal_error", "message": "Internal server error"}, 500

    return {"product": created.to_dict()}, 201


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("products.read")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except LedgerError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load product %s", product_id)
        return {"error": "internal_error", "message": "Internal server error"}, 500

    return {"product": product.to_dict()}


@products_bp.patch("/<int:product_id>")
@require_auth
@require_permission("products.update")
def update_product_route(product_id: int):
    """
    Update product details. sku and stock_quantity are not writable here.
    """
    payload = request.get_json(silent=True) or {}

    try:
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        blocked = sorted(products_service.IMMUTABLE_PRODUCT_FIELDS.intersection(payload))
        if blocked:
            raise ValidationError(f"Field not writable: {', '.join(blocked)}", fields=blocked)

        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        current = products_service.get_product(product_id)
        enforce_rules_product(
            patch,
            current={
                "min_stock_level": current.min_stock_level,
                "max_stock_level": current.max_stock_level,
            },
        )
        updated = products_service.update_product(product_id, patch=patch)
    except LedgerError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "internal_error", "message": "Internal server error"}, 500

    return {"product": updated.to_dict()}
