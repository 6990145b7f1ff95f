# backend/stockledger/routes/movements.py
"""
Stock movement API routes.

SECURITY: All routes require an authenticated actor.
- Submitting requires the capability matching movement_type
  (stock.record_in / stock.record_out / stock.adjust / stock.transfer)
- Approving and rejecting require stock.adjust (admin, manager)
- Reading requires stock.view_movements

Every ledger failure is answered with its own error kind:
    {"error": kind, "message": ..., "retryable": bool}
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..errors import LedgerError, ValidationError
from ..services import stock_ledger
from ..services.stock_ledger import DECISION_CAPABILITY, VIEW_CAPABILITY, MovementFilter
from ..validation import MovementRequest, coerce_int


movements_bp = Blueprint("movements", __name__, url_prefix="/api/movements")


@movements_bp.post("")
@require_auth
def submit_movement_route():
    """
    Submit a stock movement (status: pending).

    Request body:
    {
        "product_id": int,
        "movement_type": "in" | "out" | "adjustment" | "transfer",
        "quantity": int (signed for adjustment, > 0 otherwise),
        "reason": str,
        "reference_number": str (optional),
        "location_from": str (transfer only),
        "location_to": str (transfer only)
    }

    Returns:
        201: Movement recorded as pending
        400: Invalid request
        403: Missing capability for this movement type
        404: Product not found
    """
    payload = request.get_json(silent=True)

    try:
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        stock_ledger.authorize_submission(g.actor, payload.get("movement_type"))
        movement_request = MovementRequest.from_payload(payload)

        if payload.get("product_id") is None:
            raise ValidationError("product_id is required", field="product_id")
        product_id = coerce_int(payload["product_id"], "product_id")

        movement = stock_ledger.submit_movement_request(
            product_id=product_id,
            request=movement_request,
            actor=g.actor,
        )

        return jsonify({"movement": movement.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to submit stock movement")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500


@movements_bp.post("/<int:movement_id>/approve")
@require_auth
@require_permission(DECISION_CAPABILITY)
def approve_movement_route(movement_id: int):
    """
    Approve a pending movement and apply it to stock.

    Returns:
        200: Movement approved; product quantity updated
        403: Forbidden
        404: Movement not found
        409: Movement not pending, insufficient stock, or concurrency conflict
             (retryable is true only for the latter)
    """
    try:
        movement = stock_ledger.approve_movement(movement_id, g.actor)

        return jsonify({
            "movement": movement.to_dict(),
            "product": movement.product.to_dict(),
        }), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to approve stock movement")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500


@movements_bp.post("/<int:movement_id>/reject")
@require_auth
@require_permission(DECISION_CAPABILITY)
def reject_movement_route(movement_id: int):
    """
    Reject a pending movement. Stock is not touched.

    Request body:
    {
        "reason": "duplicate entry"
    }

    Returns:
        200: Movement rejected
        400: Missing reason
        403: Forbidden
        404: Movement not found
        409: Movement not pending
    """
    payload = request.get_json(silent=True)

    try:
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        movement = stock_ledger.reject_movement(movement_id, g.actor, payload.get("reason"))

        return jsonify({"movement": movement.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reject stock movement")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500


@movements_bp.get("")
@require_auth
@require_permission(VIEW_CAPABILITY)
def list_movements_route():
    """
    List movements, most recent first.

    Query parameters:
        product_id: Filter by product
        status: pending | approved | rejected
        movement_type: in | out | adjustment | transfer
        date_from / date_to: ISO-8601, inclusive, on created_at
        created_by: Filter by submitting user
        limit: Max results (default 100, capped at 500)
    """
    try:
        movement_filter = MovementFilter.from_args(request.args)
        movements = stock_ledger.query_movements(movement_filter)

        return jsonify({
            "movements": [m.to_dict() for m in movements],
            "count": len(movements),
        }), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list stock movements")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500


@movements_bp.get("/pending")
@require_auth
@require_permission(DECISION_CAPABILITY)
def list_pending_movements_route():
    """Approval queue (manager view), oldest first."""
    try:
        limit = request.args.get("limit")
        limit = coerce_int(limit, "limit") if limit else None
        movements = stock_ledger.list_pending_movements(limit=limit)

        return jsonify({
            "movements": [m.to_dict() for m in movements],
            "count": len(movements),
        }), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list pending movements")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500


@movements_bp.get("/<int:movement_id>")
@require_auth
@require_permission(VIEW_CAPABILITY)
def get_movement_route(movement_id: int):
    try:
        movement = stock_ledger.get_movement(movement_id)
        return jsonify({"movement": movement.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load stock movement %s", movement_id)
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500
