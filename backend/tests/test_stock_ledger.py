"""
Stock ledger service tests.

Verifies:
- Submissions are stored pending and never touch stock
- Approval applies the signed delta atomically and records the audit fields
- Insufficient stock leaves the movement pending and the product unchanged
- Terminal movements cannot be approved, rejected, edited or deleted
- Every entry point checks the actor's capability first
"""

import pytest

from stockledger.errors import (
    ConflictError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from stockledger.models import StockMovement
from stockledger.services import products_service, stock_ledger
from stockledger.services.stock_ledger import MovementFilter


def _submit(actor, product, movement_type="out", quantity=3, reason="sold", **extra):
    return stock_ledger.submit_movement(
        product_id=product.id,
        movement_type=movement_type,
        quantity=quantity,
        reason=reason,
        actor=actor,
        **extra,
    )


def _stock(product_id):
    return products_service.get_product(product_id).stock_quantity


# =============================================================================
# SUBMIT
# =============================================================================


class TestSubmit:

    def test_staff_records_out_as_pending(self, staff, product):
        movement = _submit(staff, product)

        assert movement.status == "pending"
        assert movement.requested_delta == 3
        assert movement.signed_delta == -3
        assert movement.created_by_user_id == staff.id
        assert movement.previous_quantity is None
        assert movement.new_quantity is None
        assert movement.ledger_sequence is None
        assert _stock(product.id) == 10

    def test_submission_does_not_check_stock(self, staff, product):
        movement = _submit(staff, product, quantity=500)
        assert movement.status == "pending"
        assert _stock(product.id) == 10

    def test_staff_cannot_submit_adjustment(self, staff, product):
        with pytest.raises(PermissionDenied):
            _submit(staff, product, movement_type="adjustment", quantity=-2)
        assert stock_ledger.query_movements() == []

    def test_staff_cannot_submit_transfer(self, staff, product):
        with pytest.raises(PermissionDenied):
            _submit(staff, product, movement_type="transfer", quantity=2,
                    location_from="Aisle 1", location_to="Backroom")

    def test_permission_checked_before_validation(self, staff, product):
        with pytest.raises(PermissionDenied):
            _submit(staff, product, movement_type="adjustment", quantity=0, reason="")

    def test_manager_submits_adjustment(self, manager, product):
        movement = _submit(manager, product, movement_type="adjustment", quantity=-4, reason="cycle count")
        assert movement.signed_delta == -4

    def test_unknown_product(self, staff, db_session):
        with pytest.raises(NotFoundError):
            stock_ledger.submit_movement(
                product_id=9999, movement_type="in", quantity=1, reason="x", actor=staff,
            )
        with pytest.raises(NotFoundError):
            stock_ledger.submit_movement(
                product_id=10**30, movement_type="in", quantity=1, reason="x", actor=staff,
            )

    def test_inactive_product(self, manager, staff, product):
        products_service.update_product(product.id, patch={"is_active": False})
        with pytest.raises(ValidationError):
            _submit(staff, product)

    def test_invalid_quantity(self, staff, product):
        with pytest.raises(ValidationError):
            _submit(staff, product, quantity=0)
        with pytest.raises(ValidationError):
            _submit(staff, product, quantity="2.5")

    def test_unknown_type(self, admin, product):
        with pytest.raises(ValidationError):
            _submit(admin, product, movement_type="teleport")


# =============================================================================
# APPROVE
# =============================================================================


class TestApprove:

    def test_approve_out(self, staff, manager, product):
        movement = _submit(staff, product, quantity=3)

        approved = stock_ledger.approve_movement(movement.id, manager)

        assert approved.status == "approved"
        assert approved.previous_quantity == 10
        assert approved.new_quantity == 7
        assert approved.ledger_sequence == 1
        assert approved.approved_by_user_id == manager.id
        assert approved.decided_at is not None
        assert _stock(product.id) == 7

    def test_approve_in(self, staff, manager, product):
        movement = _submit(staff, product, movement_type="in", quantity=15, reason="delivery")
        stock_ledger.approve_movement(movement.id, manager)
        assert _stock(product.id) == 25

    def test_approve_negative_adjustment(self, manager, product):
        movement = _submit(manager, product, movement_type="adjustment", quantity=-4, reason="shrinkage")
        approved = stock_ledger.approve_movement(movement.id, manager)
        assert approved.new_quantity == 6
        assert _stock(product.id) == 6

    def test_approve_to_exactly_zero(self, staff, manager, product):
        movement = _submit(staff, product, quantity=10)
        stock_ledger.approve_movement(movement.id, manager)
        assert _stock(product.id) == 0

    def test_insufficient_stock_stays_pending(self, staff, manager, product):
        movement = _submit(staff, product, quantity=15)

        with pytest.raises(InsufficientStockError) as exc_info:
            stock_ledger.approve_movement(movement.id, manager)

        assert exc_info.value.retryable is False
        assert exc_info.value.details["on_hand"] == 10
        assert stock_ledger.get_movement(movement.id).status == "pending"
        assert _stock(product.id) == 10

    def test_pending_movement_can_be_approved_once_stock_arrives(self, staff, manager, product):
        big_out = _submit(staff, product, quantity=15)
        with pytest.raises(InsufficientStockError):
            stock_ledger.approve_movement(big_out.id, manager)

        delivery = _submit(staff, product, movement_type="in", quantity=10, reason="delivery")
        stock_ledger.approve_movement(delivery.id, manager)
        approved = stock_ledger.approve_movement(big_out.id, manager)

        assert approved.previous_quantity == 20
        assert approved.new_quantity == 5

    def test_transfer_keeps_total(self, manager, product):
        movement = _submit(manager, product, movement_type="transfer", quantity=4,
                           reason="restock shelf", location_from="Backroom", location_to="Aisle 3")
        approved = stock_ledger.approve_movement(movement.id, manager)

        assert approved.signed_delta == 0
        assert approved.previous_quantity == approved.new_quantity == 10
        assert approved.ledger_sequence == 1
        assert _stock(product.id) == 10

    def test_transfer_larger_than_stock(self, manager, product):
        movement = _submit(manager, product, movement_type="transfer", quantity=11,
                           reason="move", location_from="A", location_to="B")
        with pytest.raises(InsufficientStockError):
            stock_ledger.approve_movement(movement.id, manager)
        assert stock_ledger.get_movement(movement.id).status == "pending"

    def test_staff_cannot_approve(self, staff, product):
        movement = _submit(staff, product)
        with pytest.raises(PermissionDenied):
            stock_ledger.approve_movement(movement.id, staff)
        assert stock_ledger.get_movement(movement.id).status == "pending"

    def test_permission_checked_before_lookup(self, staff, db_session):
        with pytest.raises(PermissionDenied):
            stock_ledger.approve_movement(9999, staff)

    def test_unknown_movement(self, manager, db_session):
        with pytest.raises(NotFoundError):
            stock_ledger.approve_movement(9999, manager)

    @pytest.mark.parametrize("movement_id", [0, -1, 2**31, 10**30])
    def test_ids_outside_the_key_range_are_not_found(self, manager, db_session, movement_id):
        with pytest.raises(NotFoundError):
            stock_ledger.get_movement(movement_id)
        with pytest.raises(NotFoundError):
            stock_ledger.approve_movement(movement_id, manager)

    def test_approve_twice(self, staff, manager, product):
        movement = _submit(staff, product)
        stock_ledger.approve_movement(movement.id, manager)

        with pytest.raises(InvalidStateError):
            stock_ledger.approve_movement(movement.id, manager)
        assert _stock(product.id) == 7

    def test_sequence_follows_commit_order(self, staff, manager, product):
        first = _submit(staff, product, quantity=1)
        second = _submit(staff, product, quantity=2)

        stock_ledger.approve_movement(second.id, manager)
        stock_ledger.approve_movement(first.id, manager)

        assert stock_ledger.get_movement(second.id).ledger_sequence == 1
        assert stock_ledger.get_movement(first.id).ledger_sequence == 2
        assert stock_ledger.get_movement(first.id).previous_quantity == 8
        assert products_service.get_product(product.id).ledger_sequence == 2


# =============================================================================
# REJECT
# =============================================================================


class TestReject:

    def test_reject(self, staff, manager, product):
        movement = _submit(staff, product)

        rejected = stock_ledger.reject_movement(movement.id, manager, "  duplicate entry ")

        assert rejected.status == "rejected"
        assert rejected.rejection_reason == "duplicate entry"
        assert rejected.approved_by_user_id == manager.id
        assert rejected.previous_quantity is None
        assert _stock(product.id) == 10

    def test_reject_ignores_stock(self, staff, manager, product):
        movement = _submit(staff, product, quantity=500)
        assert stock_ledger.reject_movement(movement.id, manager, "typo").status == "rejected"

    def test_approve_after_reject(self, staff, manager, product):
        movement = _submit(staff, product)
        stock_ledger.reject_movement(movement.id, manager, "typo")

        with pytest.raises(InvalidStateError):
            stock_ledger.approve_movement(movement.id, manager)
        assert _stock(product.id) == 10

    def test_reject_after_approve(self, staff, manager, product):
        movement = _submit(staff, product)
        stock_ledger.approve_movement(movement.id, manager)

        with pytest.raises(InvalidStateError):
            stock_ledger.reject_movement(movement.id, manager, "too late")

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reason_required(self, staff, manager, product, reason):
        movement = _submit(staff, product)
        with pytest.raises(ValidationError):
            stock_ledger.reject_movement(movement.id, manager, reason)
        assert stock_ledger.get_movement(movement.id).status == "pending"

    def test_staff_cannot_reject(self, staff, product):
        movement = _submit(staff, product)
        with pytest.raises(PermissionDenied):
            stock_ledger.reject_movement(movement.id, staff, "nope")


# =============================================================================
# IMMUTABILITY
# =============================================================================


class TestAppendOnly:

    def test_approved_movement_cannot_be_edited(self, db_session, staff, manager, product):
        movement = _submit(staff, product)
        approved = stock_ledger.approve_movement(movement.id, manager)

        approved.reason = "rewritten"
        with pytest.raises(InvalidStateError):
            db_session.commit()
        db_session.rollback()

        assert stock_ledger.get_movement(movement.id).reason == "sold"

    def test_rejected_movement_cannot_be_reopened(self, db_session, staff, manager, product):
        movement = _submit(staff, product)
        rejected = stock_ledger.reject_movement(movement.id, manager, "typo")

        rejected.status = "pending"
        with pytest.raises(InvalidStateError):
            db_session.commit()
        db_session.rollback()

        assert stock_ledger.get_movement(movement.id).status == "rejected"

    def test_movements_cannot_be_deleted(self, db_session, staff, product):
        movement = _submit(staff, product)

        db_session.delete(movement)
        with pytest.raises(InvalidStateError):
            db_session.commit()
        db_session.rollback()

        assert db_session.query(StockMovement).count() == 1


# =============================================================================
# QUERIES
# =============================================================================


class TestQueries:

    @pytest.fixture
    def ledger(self, staff, manager, product):
        second = products_service.create_product(patch={"sku": "GAD-002", "name": "Gadget", "stock_quantity": 1})
        out = _submit(staff, product, quantity=2)
        inbound = _submit(staff, product, movement_type="in", quantity=5, reason="delivery")
        adjust = _submit(manager, second, movement_type="adjustment", quantity=3, reason="found")
        stock_ledger.approve_movement(out.id, manager)
        stock_ledger.reject_movement(adjust.id, manager, "miscount")
        return {"product": product, "second": second, "out": out, "in": inbound, "adjust": adjust}

    def test_newest_first(self, ledger):
        ids = [m.id for m in stock_ledger.query_movements()]
        assert ids == [ledger["adjust"].id, ledger["in"].id, ledger["out"].id]

    def test_filters(self, ledger, staff, manager):
        def ids(**kwargs):
            return {m.id for m in stock_ledger.query_movements(MovementFilter(**kwargs))}

        assert ids(product_id=ledger["product"].id) == {ledger["out"].id, ledger["in"].id}
        assert ids(status="approved") == {ledger["out"].id}
        assert ids(status="rejected") == {ledger["adjust"].id}
        assert ids(movement_type="in") == {ledger["in"].id}
        assert ids(created_by_user_id=manager.id) == {ledger["adjust"].id}
        assert len(stock_ledger.query_movements(MovementFilter(limit=1))) == 1

    def test_results_are_fresh_lists(self, ledger):
        first = stock_ledger.query_movements()
        first.clear()
        assert len(stock_ledger.query_movements()) == 3

    def test_pending_queue(self, ledger):
        assert [m.id for m in stock_ledger.list_pending_movements()] == [ledger["in"].id]

    def test_filter_validation(self):
        with pytest.raises(ValidationError):
            MovementFilter(status="done")
        with pytest.raises(ValidationError):
            MovementFilter(movement_type="teleport")
        with pytest.raises(ValidationError):
            MovementFilter(limit=0)

    def test_filter_from_query_args(self):
        movement_filter = MovementFilter.from_args({
            "product_id": "4",
            "status": "pending",
            "date_from": "2026-01-01T00:00:00Z",
            "limit": "20",
        })
        assert movement_filter.product_id == 4
        assert movement_filter.status == "pending"
        assert movement_filter.created_from.year == 2026
        assert movement_filter.limit == 20

    def test_filter_rejects_bad_dates(self):
        with pytest.raises(ValidationError):
            MovementFilter.from_args({"date_from": "yesterday"})
        with pytest.raises(ValidationError):
            MovementFilter.from_args({"date_from": "2026-02-01", "date_to": "2026-01-01"})

    def test_filter_rejects_ids_outside_the_key_range(self):
        with pytest.raises(ValidationError):
            MovementFilter.from_args({"product_id": str(10**30)})
        with pytest.raises(ValidationError):
            MovementFilter.from_args({"created_by": "0"})


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProducts:

    def test_opening_balance(self, product):
        assert product.stock_quantity == 10
        assert product.opening_quantity == 10
        assert product.ledger_sequence == 0

    def test_duplicate_sku(self, product):
        with pytest.raises(ConflictError):
            products_service.create_product(patch={"sku": "WID-001", "name": "Other"})

    @pytest.mark.parametrize("field", ["stock_quantity", "sku", "opening_quantity"])
    def test_stock_and_sku_not_updatable(self, product, field):
        with pytest.raises(ValidationError):
            products_service.update_product(product.id, patch={field: 1})

    def test_update(self, product):
        updated = products_service.update_product(product.id, patch={"name": "Widget XL", "min_stock_level": 4})
        assert updated.name == "Widget XL"
        assert updated.min_stock_level == 4

    def test_low_stock(self, staff, manager, product):
        calm = products_service.create_product(patch={"sku": "OK-1", "name": "Plenty", "stock_quantity": 100,
                                                      "min_stock_level": 5})
        empty = products_service.create_product(patch={"sku": "EMP-1", "name": "Empty", "stock_quantity": 0,
                                                       "min_stock_level": 5})
        stock_ledger.approve_movement(_submit(staff, product, quantity=8).id, manager)

        low = products_service.list_low_stock_products()

        assert [p.id for p in low] == [empty.id, product.id]
        assert calm.id not in {p.id for p in low}

    def test_summary(self, staff, manager, product):
        products_service.create_product(patch={"sku": "EMP-1", "name": "Empty", "min_stock_level": 1})
        _submit(staff, product, quantity=1)

        summary = products_service.get_stock_summary()

        assert summary["total_products"] == 2
        assert summary["out_of_stock_items"] == 1
        assert summary["low_stock_items"] == 1
        assert summary["total_units"] == 10
        assert summary["pending_movements"] == 1
        assert summary["recent_movements"] == 1


# =============================================================================
# WALKTHROUGHS
# =============================================================================


class TestWalkthroughs:

    def test_sale_from_ten(self, staff, manager, product):
        movement = _submit(staff, product, quantity=4, reason="sale")
        approved = stock_ledger.approve_movement(movement.id, manager)

        assert (approved.previous_quantity, approved.new_quantity) == (10, 6)
        assert _stock(product.id) == 6

    def test_overdraw_below_minimum(self, staff, manager, db_session):
        low = products_service.create_product(patch={
            "sku": "LOW-3", "name": "Scarce", "stock_quantity": 3, "min_stock_level": 5,
        })
        movement = _submit(staff, low, quantity=5)

        with pytest.raises(InsufficientStockError):
            stock_ledger.approve_movement(movement.id, manager)

        assert _stock(low.id) == 3
        assert stock_ledger.get_movement(movement.id).status == "pending"

    def test_staff_damage_correction(self, staff, product):
        with pytest.raises(PermissionDenied):
            _submit(staff, product, movement_type="adjustment", quantity=-2, reason="damaged")
        assert _stock(product.id) == 10

    def test_duplicate_rejected(self, staff, manager, product):
        movement = _submit(staff, product)
        rejected = stock_ledger.reject_movement(movement.id, manager, "duplicate entry")

        assert rejected.status == "rejected"
        assert rejected.approved_by_user_id == manager.id
        assert _stock(product.id) == 10
