# backend/stockledger/routes/audit.py
"""
Audit trail routes: approved-movement history and reconciliation reports.

Reads only. The trail itself is the stock_movements table.
"""
from flask import Blueprint, jsonify, current_app

from ..decorators import require_auth, require_permission, require_any_permission
from ..errors import LedgerError
from ..services import audit_service


audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("/products/<int:product_id>/history")
@require_auth
@require_permission("stock.view_movements")
def product_history(product_id: int):
    """Approved movements for a product in commit (ledger_sequence) order."""
    try:
        history = audit_service.get_product_history(product_id)
        return jsonify({
            "product_id": product_id,
            "movements": [m.to_dict() for m in history],
        }), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load history for product %s", product_id)
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500


@audit_bp.get("/products/<int:product_id>/reconcile")
@require_auth
@require_any_permission("audit.read", "reports.audit")
def reconcile_product(product_id: int):
    try:
        return jsonify(audit_service.reconcile_product(product_id)), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reconcile product %s", product_id)
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500


@audit_bp.get("/reconcile")
@require_auth
@require_any_permission("audit.read", "reports.audit")
def reconcile_all():
    """Reconcile every product; inconsistent ones are listed separately."""
    try:
        reports = audit_service.reconcile_all_products()
    except Exception:
        current_app.logger.exception("Failed to reconcile products")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500

    inconsistent = [r for r in reports if not r["is_consistent"]]
    if inconsistent:
        current_app.logger.error(
            "Ledger reconciliation found %s inconsistent product(s): %s",
            len(inconsistent),
            [r["product_id"] for r in inconsistent],
        )

    return jsonify({
        "products": reports,
        "inconsistent_product_ids": [r["product_id"] for r in inconsistent],
        "is_consistent": not inconsistent,
    }), 200
