"""Error kinds raised by the ordering core.

Every error carries a ``messages`` dict, ``{"field": ["message", ...]}``,
in the same shape as Protean's ValidationError. Policy violations are
deterministic: retrying without changing intent fails the same way.
"""

from protean.exceptions import (
    InvalidOperationError,
    ObjectNotFoundError,
    ProteanExceptionWithMessage,
    ValidationError,
)


class OrderingError(ProteanExceptionWithMessage):
    """Base of every ordering error that is not a ValidationError."""


# ---------------------------------------------------------------------------
# Missing orders and collaborators
# ---------------------------------------------------------------------------
class OrderNotFound(OrderingError, ObjectNotFoundError):
    pass


class StoreNotFound(OrderingError, ObjectNotFoundError):
    pass


class AddressNotFound(OrderingError, ObjectNotFoundError):
    pass


class ProductNotFound(OrderingError, ObjectNotFoundError):
    pass


class UserNotFound(OrderingError, ObjectNotFoundError):
    pass


# ---------------------------------------------------------------------------
# Policy violations
# ---------------------------------------------------------------------------
class OrderPolicyViolation(OrderingError, InvalidOperationError):
    """Base for state machine, delivery and rating policy violations."""


class InvalidTransition(OrderPolicyViolation):
    pass


class WindowExpired(OrderPolicyViolation):
    pass


class NotPermitted(OrderPolicyViolation):
    """The acting role may not request this change."""


class NotReady(OrderPolicyViolation):
    pass


class CodeMismatch(OrderPolicyViolation):
    pass


class NotDelivered(OrderPolicyViolation):
    pass


class AlreadyRated(OrderPolicyViolation):
    pass


class InvalidRating(ValidationError):
    pass


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------
class ConflictError(OrderingError):
    """An order or tracking number is already taken. Intake regenerates and retries."""


class InternalError(OrderingError):
    """A collaborator or the storage layer failed. Not retried by the core."""


__all__ = [
    "AddressNotFound",
    "AlreadyRated",
    "CodeMismatch",
    "ConflictError",
    "InternalError",
    "InvalidRating",
    "InvalidTransition",
    "NotDelivered",
    "NotPermitted",
    "NotReady",
    "ObjectNotFoundError",
    "OrderNotFound",
    "OrderPolicyViolation",
    "OrderingError",
    "ProductNotFound",
    "StoreNotFound",
    "UserNotFound",
    "ValidationError",
    "WindowExpired",
]
