"""SQLAlchemy ORM models for the Decluttit marketplace.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- JSON for structured data (no JSONB)
- DateTime for timestamps (no TIMESTAMPTZ)
- Numeric(12, 2) for money

Entities reference each other by id only. Cross-entity reads go through
explicit queries in the service layer, so there are no ORM relationships.
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from decluttit.domain.enums import (
    BuyerRequestStatus,
    DisputeStatus,
    ListingStatus,
    TransactionStatus,
    UserRole,
    VerificationLevel,
)
from decluttit.infra.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Marketplace member. Never deleted, only deactivated."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.MEMBER.value)
    verification_level = Column(
        String(20), nullable=False, default=VerificationLevel.BASIC.value
    )
    # Written only by TrustScoreService
    trust_score = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


# ---------------------------------------------------------------------------
# Supply / demand
# ---------------------------------------------------------------------------


class Listing(Base):
    """An item a seller is offering."""

    __tablename__ = "listings"

    id = Column(String(36), primary_key=True, default=_uuid)
    seller_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(String(36), nullable=False, index=True)
    condition = Column(String(20), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    location_id = Column(String(36), nullable=False)
    is_negotiable = Column(Boolean, default=True)
    status = Column(String(20), nullable=False, default=ListingStatus.ACTIVE.value, index=True)
    view_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class BuyerRequest(Base):
    """An item a buyer is looking for."""

    __tablename__ = "buyer_requests"

    id = Column(String(36), primary_key=True, default=_uuid)
    buyer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(String(36), nullable=True, index=True)
    min_price = Column(Numeric(12, 2), nullable=True)
    max_price = Column(Numeric(12, 2), nullable=True)
    preferred_condition = Column(String(20), nullable=True)
    location_id = Column(String(36), nullable=True)
    radius_km = Column(Integer, nullable=False, default=50)
    status = Column(
        String(20), nullable=False, default=BuyerRequestStatus.ACTIVE.value, index=True
    )
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class Transaction(Base):
    """Escrowed trade between one buyer and one seller for one listing.

    ``amount`` and ``platform_fee`` are snapshots taken at creation and are
    never recomputed. ``status`` only changes through TransactionService.
    """

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=_uuid)
    listing_id = Column(String(36), ForeignKey("listings.id"), nullable=False, index=True)
    buyer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    seller_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    buyer_request_id = Column(String(36), ForeignKey("buyer_requests.id"), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    fee_percent = Column(Integer, nullable=False)
    platform_fee = Column(Numeric(12, 2), nullable=False)
    status = Column(
        String(20), nullable=False, default=TransactionStatus.PENDING.value, index=True
    )
    payment_reference = Column(String(100), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    shipped_at = Column(DateTime, nullable=True)
    received_at = Column(DateTime, nullable=True)
    released_at = Column(DateTime, nullable=True)
    refunded_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class TransactionEvent(Base):
    """Append-only audit trail of transaction state changes."""

    __tablename__ = "transaction_events"

    id = Column(String(36), primary_key=True, default=_uuid)
    transaction_id = Column(
        String(36), ForeignKey("transactions.id"), nullable=False, index=True
    )
    transition = Column(String(30), nullable=False)
    actor = Column(String(30), nullable=False)
    actor_id = Column(String(36), nullable=True)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    data = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=func.now())


# ---------------------------------------------------------------------------
# Disputes
# ---------------------------------------------------------------------------


class Dispute(Base):
    """Contested transaction. At most one per transaction."""

    __tablename__ = "disputes"

    id = Column(String(36), primary_key=True, default=_uuid)
    transaction_id = Column(
        String(36), ForeignKey("transactions.id"), unique=True, nullable=False
    )
    complainant_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    respondent_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    reason = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    evidence = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default=DisputeStatus.OPEN.value)
    resolution = Column(Text, nullable=True)
    refund_buyer = Column(Boolean, nullable=True)
    resolved_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now())


# ---------------------------------------------------------------------------
# Messaging
# ---------------------------------------------------------------------------


class Conversation(Base):
    """Message thread between the two parties of a transaction."""

    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=_uuid)
    transaction_id = Column(
        String(36), ForeignKey("transactions.id"), unique=True, nullable=False
    )
    buyer_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    seller_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=func.now())
    last_message_at = Column(DateTime, nullable=True)


class Message(Base):
    """Single chat message. Append-only; only ``is_read`` changes."""

    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    conversation_id = Column(
        String(36), ForeignKey("conversations.id"), nullable=False, index=True
    )
    sender_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    body = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=func.now())


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


class Review(Base):
    """Rating left by one party of a released transaction about the other."""

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("transaction_id", "reviewer_id", name="uq_review_per_reviewer"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    transaction_id = Column(String(36), ForeignKey("transactions.id"), nullable=False)
    reviewer_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    reviewee_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now())
