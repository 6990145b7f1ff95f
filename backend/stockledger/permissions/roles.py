# Overview: Static role -> capability table.
# Built once at import time and exposed read-only; nothing mutates it at runtime.

from types import MappingProxyType

from .definitions import PERMISSION_DEFINITIONS


ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_STAFF = "staff"

ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF)


_MANAGER_PERMISSIONS = frozenset({
    # User management (limited)
    "users.read",

    # Product management
    "products.create", "products.read", "products.update", "products.adjust_stock",
    "categories.read", "categories.create", "categories.update",
    "suppliers.read", "suppliers.create", "suppliers.update",

    # Purchase orders (full access except delete)
    "purchase_orders.create", "purchase_orders.read", "purchase_orders.update",
    "purchase_orders.approve", "purchase_orders.receive",

    # Sales
    "sales.create", "sales.read", "sales.update", "sales.refund",

    # Stock management (approves movements through stock.adjust)
    "stock.record_in", "stock.record_out", "stock.adjust", "stock.transfer", "stock.view_movements",

    # Reports (limited)
    "reports.sales", "reports.stock", "reports.export",

    "settings.read",

    "dashboard.manager",
})

_STAFF_PERMISSIONS = frozenset({
    "users.read",

    "products.read",
    "categories.read",
    "suppliers.read",

    "purchase_orders.read",

    "sales.create", "sales.read",

    # Staff record movements; a manager approves them
    "stock.record_in", "stock.record_out", "stock.view_movements",

    "reports.stock",

    "dashboard.staff",
})

_ADMIN_PERMISSIONS = frozenset(
    perm[0] for perm in PERMISSION_DEFINITIONS
    if perm[0] not in ("dashboard.manager", "dashboard.staff")
)


DEFAULT_ROLE_PERMISSIONS = MappingProxyType({
    ROLE_ADMIN: _ADMIN_PERMISSIONS,
    ROLE_MANAGER: _MANAGER_PERMISSIONS,
    ROLE_STAFF: _STAFF_PERMISSIONS,
})
