# Overview: Error taxonomy shared by the order/payment core and the HTTP layer.

"""
Order Core Errors

Every failure the core can report has a stable machine-readable ``code`` so
callers (including offline clients replaying a queue) can branch on it:

- validation: malformed input, raised before any store access
- precondition: the persisted state does not permit the transition
- concurrency: a conditional write lost the race and the re-read found no
  permanent reason; safe to resubmit with the same idempotency key
- collaborator: the subscription gate could not answer (fail closed), or
  the store failed mid-commit and the outcome is unknown
"""

from __future__ import annotations


class OrderCoreError(Exception):
    """Base class for every error raised by the order/payment core."""

    code = "ORDER_CORE_ERROR"
    status_code = 400
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {
            "error": self.message,
            "code": self.code,
            "retryable": self.retryable,
        }
        if self.details:
            body["details"] = self.details
        return body


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationError(OrderCoreError):
    """400-level input problem."""
    code = "VALIDATION_ERROR"
    status_code = 400


# =============================================================================
# PRECONDITIONS
# =============================================================================

class CustomerNotFound(OrderCoreError):
    code = "CUSTOMER_NOT_FOUND"
    status_code = 404


class OrderNotFound(OrderCoreError):
    code = "ORDER_NOT_FOUND"
    status_code = 404


class OrderCollected(OrderCoreError):
    code = "ORDER_COLLECTED"
    status_code = 409


AlreadyCollected = OrderCollected


class ExceedsBalance(OrderCoreError):
    code = "EXCEEDS_BALANCE"
    status_code = 409


class InvalidTransition(OrderCoreError):
    code = "INVALID_TRANSITION"
    status_code = 409


class NotReady(OrderCoreError):
    code = "NOT_READY"
    status_code = 409


class OutstandingBalance(OrderCoreError):
    code = "OUTSTANDING_BALANCE"
    status_code = 409


class InvalidSecret(OrderCoreError):
    code = "INVALID_SECRET"
    status_code = 401


class TenantSuspended(OrderCoreError):
    code = "TENANT_SUSPENDED"
    status_code = 403


class TenantInGrace(OrderCoreError):
    code = "TENANT_IN_GRACE"
    status_code = 403


class IdempotencyKeyConflict(OrderCoreError):
    """The key was already used for a different request in this shop."""
    code = "IDEMPOTENCY_KEY_CONFLICT"
    status_code = 409


# =============================================================================
# CONCURRENCY / COLLABORATORS
# =============================================================================

class ConcurrencyConflict(OrderCoreError):
    code = "CONCURRENCY_CONFLICT"
    status_code = 409
    retryable = True


class SubscriptionUnavailable(OrderCoreError):
    code = "SUBSCRIPTION_UNAVAILABLE"
    status_code = 503
    retryable = True


class StoreUnavailable(OrderCoreError):
    """
    The store failed while committing; the write may or may not have landed.

    Clients resubmit with the same idempotency key, never as a fresh request.
    """
    code = "STORE_UNAVAILABLE"
    status_code = 503
    retryable = True
