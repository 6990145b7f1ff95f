# Overview: Service-layer capability checks for ledger entry points.

"""
Capability checks for the stock ledger.

DESIGN PRINCIPLES:
- Fail closed: unknown roles and unknown capabilities are denied
- Check first: every mutating ledger call authorizes before touching state
- Log denials only: grants are not logged
"""
from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..errors import PermissionDenied
from ..permissions import has_permission, has_any_permission


@dataclass(frozen=True)
class Actor:
    """Who is calling: an identity and a role, supplied by the calling layer."""
    id: int
    role: str

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(id=user.id, role=user.role)


def require_permission(actor: Actor | None, capability: str) -> None:
    """Raise PermissionDenied unless the actor's role grants the capability."""
    if actor is None or not has_permission(actor.role, capability):
        _log_denial(actor, capability)
        raise PermissionDenied(
            f"Missing capability: {capability}",
            required_permission=capability,
        )


def require_any_permission(actor: Actor | None, *capabilities: str) -> None:
    if actor is None or not has_any_permission(actor.role, capabilities):
        _log_denial(actor, ",".join(capabilities))
        raise PermissionDenied(
            f"Requires any of: {', '.join(capabilities)}",
            required_permissions=list(capabilities),
        )


def _log_denial(actor: Actor | None, capability: str) -> None:
    current_app.logger.warning(
        "Permission denied: user=%s role=%s capability=%s",
        actor.id if actor else None,
        actor.role if actor else None,
        capability,
    )
