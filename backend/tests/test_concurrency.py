"""
Concurrency tests for the stock ledger.

Verifies:
- Two approvals racing for the same stock never overdraw it
- The per-product lock times out into a retryable ConcurrencyConflict,
  and an approval blocked by it leaves the movement pending
- run_with_retry retries conflicts and gives up with ConcurrencyConflict
"""

import threading

import pytest
from sqlalchemy.orm.exc import StaleDataError

from stockledger import create_app
from stockledger.errors import ConcurrencyConflict, InsufficientStockError, LedgerError
from stockledger.extensions import db, product_locks
from stockledger.locks import ProductLockRegistry
from stockledger.services import audit_service, products_service, stock_ledger, user_service
from stockledger.services.concurrency import run_with_retry
from stockledger.services.permission_service import Actor


@pytest.fixture
def file_app(tmp_path):
    """
    App on a file-backed SQLite database so each thread gets its own connection.
    """
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///' + str(tmp_path / 'ledger.sqlite3'),
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'check_same_thread': False, 'timeout': 30}},
        'STOCK_RETRY_BACKOFF_SECONDS': 0.0,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


class TestRacingApprovals:

    def test_only_one_of_two_overlapping_outs_is_approved(self, file_app):
        with file_app.app_context():
            staff = Actor.from_user(user_service.create_user(username="staff", role="staff"))
            manager = Actor.from_user(user_service.create_user(username="manager", role="manager"))
            product = products_service.create_product(patch={"sku": "RACE-1", "name": "Contended", "stock_quantity": 5})
            product_id = product.id
            movement_ids = [
                stock_ledger.submit_movement(
                    product_id=product_id, movement_type="out", quantity=4, reason=f"order {n}", actor=staff,
                ).id
                for n in range(2)
            ]

        barrier = threading.Barrier(len(movement_ids))
        outcomes = []
        outcomes_lock = threading.Lock()

        def approve(movement_id):
            with file_app.app_context():
                barrier.wait()
                try:
                    stock_ledger.approve_movement(movement_id, manager)
                    outcome = "approved"
                except LedgerError as e:
                    outcome = e.kind
            with outcomes_lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=approve, args=(mid,)) for mid in movement_ids]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert sorted(outcomes) == ["approved", InsufficientStockError.kind]

        with file_app.app_context():
            assert products_service.get_product(product_id).stock_quantity == 1
            statuses = sorted(stock_ledger.get_movement(mid).status for mid in movement_ids)
            assert statuses == ["approved", "pending"]
            assert audit_service.reconcile_product(product_id)["is_consistent"] is True

    def test_many_concurrent_inbound_approvals_all_apply(self, file_app):
        with file_app.app_context():
            staff = Actor.from_user(user_service.create_user(username="staff", role="staff"))
            manager = Actor.from_user(user_service.create_user(username="manager", role="manager"))
            product_id = products_service.create_product(patch={"sku": "RACE-2", "name": "Busy"}).id
            movement_ids = [
                stock_ledger.submit_movement(
                    product_id=product_id, movement_type="in", quantity=n + 1, reason="delivery", actor=staff,
                ).id
                for n in range(6)
            ]

        errors = []

        def approve(movement_id):
            with file_app.app_context():
                try:
                    stock_ledger.approve_movement(movement_id, manager)
                except LedgerError as e:
                    errors.append(e)

        threads = [threading.Thread(target=approve, args=(mid,)) for mid in movement_ids]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert errors == []
        with file_app.app_context():
            assert products_service.get_product(product_id).stock_quantity == sum(range(1, 7))
            history = audit_service.get_product_history(product_id)
            assert [m.ledger_sequence for m in history] == [1, 2, 3, 4, 5, 6]
            assert audit_service.reconcile_product(product_id)["chain_breaks"] == []


class TestApprovalUnderLockContention:

    def test_held_product_lock_surfaces_as_conflict(self, app, monkeypatch, staff, manager, product):
        monkeypatch.setitem(app.config, "STOCK_LOCK_TIMEOUT_SECONDS", 0.05)
        monkeypatch.setitem(app.config, "STOCK_RETRY_ATTEMPTS", 2)
        movement = stock_ledger.submit_movement(
            product_id=product.id, movement_type="out", quantity=4, reason="order", actor=staff,
        )

        product_id = product.id
        held = threading.Event()
        release = threading.Event()

        def holder():
            with product_locks.hold(product_id, timeout=1):
                held.set()
                release.wait(5)

        t = threading.Thread(target=holder)
        t.start()
        held.wait(5)
        try:
            with pytest.raises(ConcurrencyConflict) as exc_info:
                stock_ledger.approve_movement(movement.id, manager)
            assert exc_info.value.retryable is True
        finally:
            release.set()
            t.join(5)

        assert stock_ledger.get_movement(movement.id).status == "pending"
        assert products_service.get_product(product.id).stock_quantity == 10

        approved = stock_ledger.approve_movement(movement.id, manager)
        assert approved.new_quantity == 6


class TestProductLockRegistry:

    def test_timeout_is_retryable_conflict(self):
        registry = ProductLockRegistry()
        held = threading.Event()
        release = threading.Event()

        def holder():
            with registry.hold(1, timeout=1):
                held.set()
                release.wait(5)

        t = threading.Thread(target=holder)
        t.start()
        held.wait(5)
        try:
            with pytest.raises(ConcurrencyConflict) as exc_info:
                with registry.hold(1, timeout=0.05):
                    pass
            assert exc_info.value.retryable is True
        finally:
            release.set()
            t.join(5)

    def test_other_products_do_not_wait(self):
        registry = ProductLockRegistry()
        with registry.hold(1, timeout=1):
            with registry.hold(2, timeout=0.05):
                assert registry.active_product_ids() == {1, 2}

    def test_entries_are_dropped_after_release(self):
        registry = ProductLockRegistry()
        with registry.hold(7, timeout=1):
            pass
        with pytest.raises(RuntimeError):
            with registry.hold(8, timeout=1):
                raise RuntimeError("boom")
        assert registry.active_product_ids() == set()


class TestRunWithRetry:

    def test_retries_then_succeeds(self, app):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise StaleDataError("row changed")
            return "done"

        assert run_with_retry(flaky, attempts=3, backoff_base=0) == "done"
        assert len(calls) == 3

    def test_gives_up_with_conflict(self, app):
        calls = []

        def always_stale():
            calls.append(1)
            raise StaleDataError("row changed")

        with pytest.raises(ConcurrencyConflict) as exc_info:
            run_with_retry(always_stale, attempts=2, backoff_base=0)

        assert len(calls) == 2
        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value.__cause__, StaleDataError)

    def test_business_errors_are_not_retried(self, app):
        calls = []

        def short():
            calls.append(1)
            raise InsufficientStockError("no stock")

        with pytest.raises(InsufficientStockError):
            run_with_retry(short, attempts=5, backoff_base=0)
        assert len(calls) == 1
