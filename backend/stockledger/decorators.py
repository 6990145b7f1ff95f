# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .permissions import has_permission, has_any_permission
from .services import user_service
from .services.permission_service import Actor
from .validation import is_row_id


ACTOR_HEADER = "X-User-Id"


def _is_authenticated() -> bool:
    return hasattr(g, 'actor') and hasattr(g, 'current_user')


def require_auth(f):
    """
    Resolve the calling actor.

    The upstream session layer authenticates the user and forwards the user id
    in the X-User-Id header. Sets:
    - g.current_user: the User row
    - g.actor: Actor(id, role) handed to ledger services

    Returns 401 if the header is missing or malformed, or the user is unknown
    or deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(ACTOR_HEADER, "").strip()

        if not raw:
            return jsonify({"error": "authentication_required", "message": "Authentication required"}), 401

        try:
            user_id = int(raw)
        except ValueError:
            return jsonify({"error": "authentication_required", "message": "Invalid user id"}), 401
        if not is_row_id(user_id):
            return jsonify({"error": "authentication_required", "message": "Invalid user id"}), 401

        user = user_service.get_active_user(user_id)
        if user is None:
            return jsonify({"error": "authentication_required", "message": "Unknown or inactive user"}), 401

        g.current_user = user
        g.actor = Actor.from_user(user)

        return f(*args, **kwargs)

    return decorated_function


def require_permission(capability: str):
    """Require a specific capability for the actor's role."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "authentication_required", "message": "Authentication required"}), 401

            if not has_permission(g.actor.role, capability):
                current_app.logger.warning(
                    "Permission denied: user=%s role=%s capability=%s path=%s",
                    g.actor.id, g.actor.role, capability, request.path,
                )
                return jsonify({
                    "error": "permission_denied",
                    "required_permission": capability,
                    "message": f"Missing capability: {capability}",
                    "retryable": False,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_permission(*capabilities):
    """Require any of the specified capabilities."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "authentication_required", "message": "Authentication required"}), 401

            if not has_any_permission(g.actor.role, capabilities):
                current_app.logger.warning(
                    "Permission denied: user=%s role=%s capability=ANY_OF:%s path=%s",
                    g.actor.id, g.actor.role, ",".join(capabilities), request.path,
                )
                return jsonify({
                    "error": "permission_denied",
                    "required_permissions": list(capabilities),
                    "message": f"Requires any of: {', '.join(capabilities)}",
                    "retryable": False,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
