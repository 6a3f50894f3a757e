"""Domain error hierarchy.

Every error a core operation raises on purpose is a ``MarketplaceError``.
The HTTP layer maps each subclass to its ``status_code``; anything else is
an infrastructure failure and propagates.
"""

from enum import Enum
from typing import Optional


class MarketplaceError(Exception):
    """Base class for recoverable domain errors."""

    status_code = 400
    kind = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(MarketplaceError):
    """An entity id could not be resolved."""

    status_code = 404
    kind = "not_found"

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found")


class UnauthorizedError(MarketplaceError):
    """The actor lacks permission for the operation."""

    status_code = 403
    kind = "unauthorized"


class AuthenticationError(MarketplaceError):
    """The caller could not be authenticated (bad token, bad signature)."""

    status_code = 401
    kind = "authentication_failed"


class ConflictError(MarketplaceError):
    """The operation collides with existing state (duplicate dispute, etc.)."""

    status_code = 409
    kind = "conflict"


class ValidationError(MarketplaceError):
    """Input violates a domain invariant."""

    status_code = 422
    kind = "validation_error"


class ExternalServiceError(MarketplaceError):
    """A collaborator (payment gateway) failed. Not retried by the core."""

    status_code = 502
    kind = "external_service_error"


class InvalidStateTransitionError(MarketplaceError):
    """Raised when a transition's state precondition does not hold."""

    kind = "invalid_state_transition"

    def __init__(
        self,
        current_status: Enum,
        required_statuses: set[Enum] | frozenset[Enum],
        transition: str,
        subject: str = "transaction",
    ):
        self.current_status = current_status
        self.required_statuses = frozenset(required_statuses)
        self.transition = transition
        required = ", ".join(sorted(s.value for s in self.required_statuses)) or "none"
        super().__init__(
            f"Cannot {transition}: {subject} is {current_status.value}, requires {required}"
        )
