# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- USERS --

USER_PERMISSIONS = [
    ("users.create", "Create Users", "Create new users", PermissionCategory.USERS),
    ("users.read", "View Users", "View user information", PermissionCategory.USERS),
    ("users.update", "Update Users", "Update user details", PermissionCategory.USERS),
    ("users.delete", "Delete Users", "Delete users", PermissionCategory.USERS),
    ("users.assign_roles", "Assign Roles", "Assign roles to users", PermissionCategory.USERS),
]


# -- PRODUCTS --

PRODUCT_PERMISSIONS = [
    ("products.create", "Create Products", "Add new products", PermissionCategory.PRODUCTS),
    ("products.read", "View Products", "View product information", PermissionCategory.PRODUCTS),
    ("products.update", "Update Products", "Update product details", PermissionCategory.PRODUCTS),
    ("products.delete", "Delete Products", "Delete products", PermissionCategory.PRODUCTS),
    (
        "products.adjust_stock",
        "Adjust Product Stock",
        "Adjust product stock levels",
        PermissionCategory.PRODUCTS,
    ),
]


# -- CATEGORIES --

CATEGORY_PERMISSIONS = [
    ("categories.create", "Create Categories", "Create product categories", PermissionCategory.CATEGORIES),
    ("categories.read", "View Categories", "View categories", PermissionCategory.CATEGORIES),
    ("categories.update", "Update Categories", "Update categories", PermissionCategory.CATEGORIES),
    ("categories.delete", "Delete Categories", "Delete categories", PermissionCategory.CATEGORIES),
]


# -- SUPPLIERS --

SUPPLIER_PERMISSIONS = [
    ("suppliers.create", "Create Suppliers", "Add new suppliers", PermissionCategory.SUPPLIERS),
    ("suppliers.read", "View Suppliers", "View supplier information", PermissionCategory.SUPPLIERS),
    ("suppliers.update", "Update Suppliers", "Update supplier details", PermissionCategory.SUPPLIERS),
    ("suppliers.delete", "Delete Suppliers", "Delete suppliers", PermissionCategory.SUPPLIERS),
]


# -- PURCHASE ORDERS --

PURCHASE_ORDER_PERMISSIONS = [
    ("purchase_orders.create", "Create Purchase Orders", "Create purchase orders", PermissionCategory.PURCHASE_ORDERS),
    ("purchase_orders.read", "View Purchase Orders", "View purchase orders", PermissionCategory.PURCHASE_ORDERS),
    ("purchase_orders.update", "Update Purchase Orders", "Update purchase orders", PermissionCategory.PURCHASE_ORDERS),
    ("purchase_orders.delete", "Delete Purchase Orders", "Delete purchase orders", PermissionCategory.PURCHASE_ORDERS),
    ("purchase_orders.approve", "Approve Purchase Orders", "Approve purchase orders", PermissionCategory.PURCHASE_ORDERS),
    ("purchase_orders.receive", "Receive Purchase Orders", "Receive purchase orders", PermissionCategory.PURCHASE_ORDERS),
]


# -- SALES --

SALES_PERMISSIONS = [
    ("sales.create", "Create Sales", "Process sales transactions", PermissionCategory.SALES),
    ("sales.read", "View Sales", "View sales records", PermissionCategory.SALES),
    ("sales.update", "Update Sales", "Update sales information", PermissionCategory.SALES),
    ("sales.delete", "Delete Sales", "Delete sales records", PermissionCategory.SALES),
    ("sales.refund", "Refund Sales", "Process refunds", PermissionCategory.SALES),
]


# -- STOCK --

STOCK_PERMISSIONS = [
    (
        "stock.record_in",
        "Record Stock In",
        "Submit stock-in movements (incoming stock)",
        PermissionCategory.STOCK,
    ),
    (
        "stock.record_out",
        "Record Stock Out",
        "Submit stock-out movements (outgoing stock)",
        PermissionCategory.STOCK,
    ),
    (
        "stock.adjust",
        "Adjust Stock",
        "Submit adjustment movements and approve or reject pending movements",
        PermissionCategory.STOCK,
    ),
    (
        "stock.transfer",
        "Transfer Stock",
        "Submit transfers between locations",
        PermissionCategory.STOCK,
    ),
    (
        "stock.view_movements",
        "View Stock Movements",
        "View stock movement history",
        PermissionCategory.STOCK,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    ("reports.sales", "Sales Reports", "View sales reports", PermissionCategory.REPORTS),
    ("reports.stock", "Stock Reports", "View stock reports", PermissionCategory.REPORTS),
    ("reports.audit", "Audit Reports", "View audit reports", PermissionCategory.REPORTS),
    ("reports.financial", "Financial Reports", "View financial reports", PermissionCategory.REPORTS),
    ("reports.export", "Export Reports", "Export reports", PermissionCategory.REPORTS),
]


# -- SETTINGS --

SETTINGS_PERMISSIONS = [
    ("settings.read", "View Settings", "View system settings", PermissionCategory.SETTINGS),
    ("settings.update", "Update Settings", "Update system settings", PermissionCategory.SETTINGS),
    ("settings.tax", "Tax Settings", "Manage tax settings", PermissionCategory.SETTINGS),
    ("settings.company", "Company Settings", "Manage company information", PermissionCategory.SETTINGS),
    ("settings.backup", "Backups", "Manage system backups", PermissionCategory.SETTINGS),
]


# -- AUDIT --

AUDIT_PERMISSIONS = [
    ("audit.read", "View Audit Trail", "View audit logs and ledger reconciliation", PermissionCategory.AUDIT),
    ("audit.export", "Export Audit Trail", "Export audit logs", PermissionCategory.AUDIT),
]


# -- DASHBOARD --

DASHBOARD_PERMISSIONS = [
    ("dashboard.admin", "Admin Dashboard", "Access admin dashboard", PermissionCategory.DASHBOARD),
    ("dashboard.manager", "Manager Dashboard", "Access manager dashboard", PermissionCategory.DASHBOARD),
    ("dashboard.staff", "Staff Dashboard", "Access staff dashboard", PermissionCategory.DASHBOARD),
]


PERMISSION_DEFINITIONS = (
    USER_PERMISSIONS
    + PRODUCT_PERMISSIONS
    + CATEGORY_PERMISSIONS
    + SUPPLIER_PERMISSIONS
    + PURCHASE_ORDER_PERMISSIONS
    + SALES_PERMISSIONS
    + STOCK_PERMISSIONS
    + REPORT_PERMISSIONS
    + SETTINGS_PERMISSIONS
    + AUDIT_PERMISSIONS
    + DASHBOARD_PERMISSIONS
)
