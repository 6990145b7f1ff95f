# Overview: Read-only access to the role -> capability table for UI gating.

from flask import Blueprint, g

from ..decorators import require_auth
from ..permissions import (
    get_permission_definition,
    get_role_permissions,
    is_known_role,
)


permissions_bp = Blueprint("permissions", __name__, url_prefix="/api/permissions")


def _describe(role: str) -> dict:
    codes = sorted(get_role_permissions(role))
    return {
        "role": role,
        "permissions": codes,
        "definitions": [get_permission_definition(code) for code in codes],
    }


@permissions_bp.get("/me")
@require_auth
def my_permissions():
    return _describe(g.actor.role)


@permissions_bp.get("/roles/<role>")
@require_auth
def role_permissions(role: str):
    if not is_known_role(role):
        return {"error": "not_found", "message": f"Unknown role: {role}", "retryable": False}, 404
    return _describe(role)
