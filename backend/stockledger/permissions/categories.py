# Overview: Permission category constants for grouping related capabilities.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    USERS = "USERS"
    PRODUCTS = "PRODUCTS"
    CATEGORIES = "CATEGORIES"
    SUPPLIERS = "SUPPLIERS"
    PURCHASE_ORDERS = "PURCHASE_ORDERS"
    SALES = "SALES"
    STOCK = "STOCK"
    REPORTS = "REPORTS"
    SETTINGS = "SETTINGS"
    AUDIT = "AUDIT"
    DASHBOARD = "DASHBOARD"
