# Overview: Error taxonomy for the stock ledger.
"""
Every failure a ledger operation can report has its own class so callers
(routes, CLI, other services) can tell them apart without parsing messages.

Only ConcurrencyConflict is retryable: it is raised before the atomic commit,
so the failed call left no trace. Every other kind is terminal for the request.
"""


class LedgerError(Exception):
    """Base class for typed ledger failures."""

    kind = "ledger_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {
            "error": self.kind,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(LedgerError, ValueError):
    """400-level input problem."""

    kind = "validation_error"
    status_code = 400


class NotFoundError(LedgerError, LookupError):
    kind = "not_found"
    status_code = 404


class PermissionDenied(LedgerError):
    kind = "permission_denied"
    status_code = 403


class InvalidStateError(LedgerError):
    """Operation attempted on a movement that is no longer pending."""

    kind = "invalid_state"
    status_code = 409


class InsufficientStockError(LedgerError):
    kind = "insufficient_stock"
    status_code = 409


class ConcurrencyConflict(LedgerError):
    """Lock contention outlasted the retry budget; safe to retry."""

    kind = "concurrency_conflict"
    status_code = 409
    retryable = True


class ConflictError(LedgerError, ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""

    kind = "conflict"
    status_code = 409
