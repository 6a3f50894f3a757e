"""Domain enumerations for the Decluttit marketplace.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class VerificationLevel(str, Enum):
    """How far a user's identity has been verified."""

    BASIC = "BASIC"
    ID_VERIFIED = "ID_VERIFIED"
    PREMIUM = "PREMIUM"


class UserRole(str, Enum):
    """Platform capability of a user account."""

    MEMBER = "member"
    ARBITRATOR = "arbitrator"


class ItemCondition(str, Enum):
    """Physical condition of a listed item."""

    NEW = "NEW"
    LIKE_NEW = "LIKE_NEW"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"


class ListingStatus(str, Enum):
    """Visibility / sale status of a listing."""

    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    SOLD = "SOLD"
    HIDDEN = "HIDDEN"


class BuyerRequestStatus(str, Enum):
    """Status of a buyer's wanted-item request."""

    ACTIVE = "ACTIVE"
    MATCHED = "MATCHED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class TransactionStatus(str, Enum):
    """Escrow lifecycle of a trade."""

    PENDING = "PENDING"
    ESCROWED = "ESCROWED"
    SHIPPED = "SHIPPED"
    RECEIVED = "RECEIVED"
    DISPUTED = "DISPUTED"
    RELEASED = "RELEASED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class TransactionTransition(str, Enum):
    """Named transitions a caller may request on a transaction."""

    ESCROW = "escrow"
    SHIP = "ship"
    CONFIRM_RECEIPT = "confirm_receipt"
    RELEASE = "release"
    CANCEL = "cancel"
    DISPUTE = "dispute"
    RESOLVE_RELEASE = "resolve_release"
    RESOLVE_REFUND = "resolve_refund"


class TransactionActor(str, Enum):
    """Who is driving a transaction transition."""

    BUYER = "buyer"
    SELLER = "seller"
    PAYMENT_PROVIDER = "payment_provider"
    ARBITRATOR = "arbitrator"


class DisputeStatus(str, Enum):
    """Status of a dispute."""

    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class PaymentEventStatus(str, Enum):
    """Outcome reported by the payment collaborator."""

    SUCCESS = "success"
    FAILURE = "failure"


class MatchCriterion(str, Enum):
    """Criteria a listing can satisfy for a buyer request."""

    CATEGORY = "category"
    CONDITION = "condition"
    PRICE = "price"
    LOCATION = "location"
