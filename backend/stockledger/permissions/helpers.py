# Overview: Pure lookups over the capability catalogue and the role table.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_category(category):
    """Get all permissions in a category."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_permission_definition(code):
    """Get full definition for a permission code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def is_known_role(role) -> bool:
    return role in DEFAULT_ROLE_PERMISSIONS


def get_role_permissions(role) -> frozenset:
    """Capabilities granted to a role. Unknown roles get nothing."""
    return DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role, capability) -> bool:
    """
    Fail closed: an unknown role or an unknown capability is never granted.
    """
    return capability in get_role_permissions(role)


def has_any_permission(role, capabilities) -> bool:
    return any(has_permission(role, cap) for cap in capabilities)


def has_all_permissions(role, capabilities) -> bool:
    """
    NOTE: an empty capability list is not a grant; a caller asking for nothing
    has made a mistake and is denied.
    """
    capabilities = list(capabilities)
    if not capabilities:
        return False
    return all(has_permission(role, cap) for cap in capabilities)
