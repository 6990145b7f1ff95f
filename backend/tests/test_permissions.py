"""
Permission engine tests.

Verifies:
- The role table grants exactly what each role needs for stock work
- Unknown roles and unknown capabilities fail closed
- The table cannot be mutated at runtime
"""

import pytest

from stockledger.errors import PermissionDenied
from stockledger.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_DEFINITIONS,
    PermissionCategory,
    ROLES,
    get_all_permission_codes,
    get_permission_definition,
    get_permissions_by_category,
    get_role_permissions,
    has_all_permissions,
    has_any_permission,
    has_permission,
    is_known_role,
    validate_permission_code,
)
from stockledger.services.permission_service import Actor, require_any_permission, require_permission


class TestRoleTable:

    @pytest.mark.parametrize(
        "role,capability,expected",
        [
            ("admin", "stock.adjust", True),
            ("admin", "stock.transfer", True),
            ("admin", "audit.read", True),
            ("manager", "stock.adjust", True),
            ("manager", "stock.transfer", True),
            ("manager", "stock.record_in", True),
            ("manager", "audit.read", False),
            ("staff", "stock.record_in", True),
            ("staff", "stock.record_out", True),
            ("staff", "stock.view_movements", True),
            ("staff", "stock.adjust", False),
            ("staff", "stock.transfer", False),
            ("staff", "products.create", False),
        ],
    )
    def test_grants(self, role, capability, expected):
        assert has_permission(role, capability) is expected

    def test_admin_has_every_capability_except_other_dashboards(self):
        admin = get_role_permissions("admin")
        for code in get_all_permission_codes():
            if code in ("dashboard.manager", "dashboard.staff"):
                assert code not in admin
            else:
                assert code in admin

    def test_every_granted_capability_is_defined(self):
        known = set(get_all_permission_codes())
        for role in ROLES:
            assert get_role_permissions(role) <= known, role

    def test_unknown_role_is_denied(self):
        assert is_known_role("cashier") is False
        assert get_role_permissions("cashier") == frozenset()
        assert has_permission("cashier", "stock.record_in") is False
        assert has_permission(None, "stock.record_in") is False

    def test_unknown_capability_is_denied(self):
        assert has_permission("admin", "stock.teleport") is False
        assert validate_permission_code("stock.teleport") is False

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_ROLE_PERMISSIONS["staff"] = frozenset({"stock.adjust"})
        with pytest.raises(AttributeError):
            DEFAULT_ROLE_PERMISSIONS["staff"].add("stock.adjust")


class TestCombinators:

    def test_any(self):
        assert has_any_permission("staff", ["stock.adjust", "stock.record_in"]) is True
        assert has_any_permission("staff", ["stock.adjust", "stock.transfer"]) is False
        assert has_any_permission("staff", []) is False

    def test_all(self):
        assert has_all_permissions("manager", ["stock.adjust", "stock.transfer"]) is True
        assert has_all_permissions("staff", ["stock.record_in", "stock.adjust"]) is False

    def test_all_of_nothing_is_denied(self):
        assert has_all_permissions("admin", []) is False


class TestCatalogue:

    def test_codes_are_unique(self):
        codes = [perm[0] for perm in PERMISSION_DEFINITIONS]
        assert len(codes) == len(set(codes))

    def test_stock_category(self):
        codes = {perm[0] for perm in get_permissions_by_category(PermissionCategory.STOCK)}
        assert codes == {
            "stock.record_in",
            "stock.record_out",
            "stock.adjust",
            "stock.transfer",
            "stock.view_movements",
        }

    def test_definition_lookup(self):
        definition = get_permission_definition("stock.adjust")
        assert definition["code"] == "stock.adjust"
        assert definition["category"] == PermissionCategory.STOCK
        assert get_permission_definition("nope") is None


class TestServiceChecks:

    def test_require_permission_passes(self, app):
        require_permission(Actor(id=1, role="manager"), "stock.adjust")

    def test_require_permission_denies(self, app):
        with pytest.raises(PermissionDenied) as exc_info:
            require_permission(Actor(id=1, role="staff"), "stock.adjust")
        assert exc_info.value.to_dict()["error"] == "permission_denied"
        assert exc_info.value.retryable is False

    def test_missing_actor_is_denied(self, app):
        with pytest.raises(PermissionDenied):
            require_permission(None, "stock.view_movements")

    def test_require_any(self, app):
        require_any_permission(Actor(id=1, role="admin"), "audit.read", "reports.audit")
        with pytest.raises(PermissionDenied):
            require_any_permission(Actor(id=1, role="manager"), "audit.read", "reports.audit")
