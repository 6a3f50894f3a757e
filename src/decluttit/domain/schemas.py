"""Pydantic v2 schemas for API request/response validation."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from decluttit.domain.enums import (
    ItemCondition,
    ListingStatus,
    TransactionStatus,
    TransactionTransition,
    VerificationLevel,
)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Schema for creating a new user."""

    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = None


class UserLogin(BaseModel):
    """Schema for user login."""

    email: str
    password: str


class UserResponse(BaseModel):
    """Schema for user API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: str
    phone: str | None = None
    role: str
    verification_level: str
    trust_score: int
    is_active: bool


class TokenResponse(BaseModel):
    """Schema for JWT token responses."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class TrustScoreResponse(BaseModel):
    user_id: str
    trust_score: int


class VerificationUpdate(BaseModel):
    level: VerificationLevel = VerificationLevel.ID_VERIFIED


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


class ListingBase(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str | None = None
    category_id: str
    condition: ItemCondition
    price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    location_id: str
    is_negotiable: bool = True


class ListingCreate(ListingBase):
    """Schema for creating a listing."""


class ListingUpdate(BaseModel):
    """Partial listing update; only supplied fields change."""

    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = None
    category_id: str | None = None
    condition: ItemCondition | None = None
    price: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    location_id: str | None = None
    is_negotiable: bool | None = None
    status: ListingStatus | None = None


class ListingResponse(ListingBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    seller_id: str
    status: str
    view_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ListingPage(BaseModel):
    listings: list[ListingResponse]
    total: int
    page: int
    per_page: int


# ---------------------------------------------------------------------------
# Buyer requests
# ---------------------------------------------------------------------------


class BuyerRequestCreate(BaseModel):
    """Schema for creating a buyer request."""

    title: str = Field(..., min_length=3, max_length=200)
    description: str | None = None
    category_id: str | None = None
    min_price: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    max_price: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    preferred_condition: ItemCondition | None = None
    location_id: str | None = None
    radius_km: int = Field(50, ge=1, le=500)
    expires_at: datetime | None = None


class BuyerRequestUpdate(BaseModel):
    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = None
    category_id: str | None = None
    min_price: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    max_price: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    preferred_condition: ItemCondition | None = None
    location_id: str | None = None
    radius_km: int | None = Field(None, ge=1, le=500)
    expires_at: datetime | None = None


class BuyerRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    buyer_id: str
    title: str
    description: str | None = None
    category_id: str | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    preferred_condition: str | None = None
    location_id: str | None = None
    radius_km: int
    status: str
    expires_at: datetime | None = None
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


class ListingMatchResponse(BaseModel):
    """A listing scored against a buyer request."""

    listing_id: str
    request_id: str
    score: int
    matched_criteria: list[str]
    listing: ListingResponse


class RequestMatchResponse(BaseModel):
    """A buyer request scored against a listing."""

    request_id: str
    listing_id: str
    score: int
    matched_criteria: list[str]
    request: BuyerRequestResponse


class InitiateTransaction(BaseModel):
    listing_id: str
    request_id: str | None = None


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    buyer_request_id: str | None = None
    amount: Decimal
    fee_percent: int
    platform_fee: Decimal
    status: TransactionStatus
    payment_reference: str | None = None
    paid_at: datetime | None = None
    shipped_at: datetime | None = None
    received_at: datetime | None = None
    released_at: datetime | None = None
    refunded_at: datetime | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None


class TransactionPage(BaseModel):
    transactions: list[TransactionResponse]
    total: int
    page: int
    per_page: int


class TransactionEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    transition: str
    actor: str
    actor_id: str | None = None
    from_status: str | None = None
    to_status: str
    data: dict | None = None
    created_at: datetime | None = None


class TransitionRequest(BaseModel):
    transition: TransactionTransition


# ---------------------------------------------------------------------------
# Disputes
# ---------------------------------------------------------------------------


class DisputeCreate(BaseModel):
    reason: str = Field(..., min_length=3, max_length=255)
    description: str = Field(..., min_length=10)
    evidence: list[str] = Field(default_factory=list)


class DisputeEvidence(BaseModel):
    evidence: list[str] = Field(..., min_length=1)


class DisputeResolve(BaseModel):
    resolution: str = Field(..., min_length=3)
    refund_buyer: bool


class DisputeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    transaction_id: str
    complainant_id: str
    respondent_id: str
    reason: str
    description: str
    evidence: list[str]
    status: str
    resolution: str | None = None
    refund_buyer: bool | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


class PaymentInitialize(BaseModel):
    transaction_id: str


class PaymentInitializeResponse(BaseModel):
    authorization_url: str | None = None
    reference: str


class PaymentVerifyResponse(BaseModel):
    verified: bool
    status: str | None = None
    transaction_id: str | None = None


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=2000)


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    transaction_id: str
    reviewer_id: str
    reviewee_id: str
    rating: int
    comment: str | None = None
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------


class ConversationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    transaction_id: str
    buyer_id: str
    seller_id: str
    created_at: datetime | None = None
    last_message_at: datetime | None = None


class MessageCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=2000)


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    sender_id: str
    body: str
    is_read: bool
    created_at: datetime | None = None
