# Overview: In-process per-product mutexes for the stock ledger's critical section.

from __future__ import annotations

import threading
from contextlib import contextmanager

from .errors import ConcurrencyConflict


class _LockEntry:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class ProductLockRegistry:
    """
    One mutex per product id, created on demand and dropped once nobody holds
    or waits for it. Approvals on different products never share a lock.

    NOTE: this only serializes threads of one process. Across processes the
    row lock (SELECT ... FOR UPDATE) and the version counters on Product and
    StockMovement take over.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: dict[int, _LockEntry] = {}

    @contextmanager
    def hold(self, product_id: int, *, timeout: float):
        with self._guard:
            entry = self._entries.get(product_id)
            if entry is None:
                entry = self._entries[product_id] = _LockEntry()
            entry.holders += 1

        acquired = entry.lock.acquire(timeout=timeout)
        try:
            if not acquired:
                raise ConcurrencyConflict(
                    f"Timed out waiting for stock lock on product {product_id}",
                    product_id=product_id,
                )
            yield
        finally:
            if acquired:
                entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    self._entries.pop(product_id, None)

    def active_product_ids(self) -> set[int]:
        with self._guard:
            return set(self._entries)
