"""
Domain exceptions - Semantic error types for the registry.

Every error carries a stable ``code`` and a ``retryable`` flag so callers
can tell "retry later" (upstream and storage failures) apart from
"do not retry as-is" (everything else). An unpaid or missing payment is
not an error and has no exception here.
"""


class RegistryError(Exception):
    """Base class for registry domain errors."""

    code = "registry_error"
    retryable = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(RegistryError):
    """Missing or invalid caller input."""

    code = "validation_error"


class EmptyOrder(ValidationError):
    """Order has no line items."""

    code = "empty_order"


class InvalidTotal(ValidationError):
    """Order total is zero or negative."""

    code = "invalid_total"


class ConflictError(RegistryError):
    """Request conflicts with an existing binding."""

    code = "conflict"


class HandleTaken(ConflictError):
    """Handle is owned by an identity with a different email."""

    code = "handle_taken"


class HandleFrozen(ConflictError):
    """Email is already bound to a different handle."""

    code = "handle_frozen"


class OwnershipError(RegistryError):
    """Caller cannot prove ownership of the presented mark."""

    code = "ownership_error"


class MarkNotOwned(OwnershipError):
    """No donation binds this mark to this email."""

    code = "mark_not_owned"


class PolicyError(RegistryError):
    """Request is refused by a configured policy."""

    code = "policy_error"


class DisposableEmail(PolicyError):
    """Email domain is on the disposable deny-list."""

    code = "disposable_email"


class NotFoundError(RegistryError):
    code = "not_found"


class OrderNotFound(NotFoundError):
    code = "order_not_found"


class StateError(RegistryError):
    """Operation is not allowed in the entity's current state."""

    code = "state_error"


class AlreadyPaid(StateError):
    code = "already_paid"


class UpstreamError(RegistryError):
    """Payment processor call failed."""

    code = "upstream_error"
    retryable = True


class StorageError(RegistryError):
    """Registry document unreadable or unwritable after recovery."""

    code = "storage_error"
    retryable = True
