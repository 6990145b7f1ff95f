# Overview: Permission system package.
# Re-exports all public APIs so callers import from stockledger.permissions.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    USER_PERMISSIONS,
    PRODUCT_PERMISSIONS,
    CATEGORY_PERMISSIONS,
    SUPPLIER_PERMISSIONS,
    PURCHASE_ORDER_PERMISSIONS,
    SALES_PERMISSIONS,
    STOCK_PERMISSIONS,
    REPORT_PERMISSIONS,
    SETTINGS_PERMISSIONS,
    AUDIT_PERMISSIONS,
    DASHBOARD_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
    is_known_role,
    get_role_permissions,
    has_permission,
    has_any_permission,
    has_all_permissions,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "USER_PERMISSIONS",
    "PRODUCT_PERMISSIONS",
    "CATEGORY_PERMISSIONS",
    "SUPPLIER_PERMISSIONS",
    "PURCHASE_ORDER_PERMISSIONS",
    "SALES_PERMISSIONS",
    "STOCK_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "SETTINGS_PERMISSIONS",
    "AUDIT_PERMISSIONS",
    "DASHBOARD_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "ROLES",
    "ROLE_ADMIN",
    "ROLE_MANAGER",
    "ROLE_STAFF",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
    "is_known_role",
    "get_role_permissions",
    "has_permission",
    "has_any_permission",
    "has_all_permissions",
]
