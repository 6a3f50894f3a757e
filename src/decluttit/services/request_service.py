"""Buyer request service: validated, owner-guarded wanted-item requests."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.domain.actor import ActorContext
from decluttit.domain.enums import BuyerRequestStatus, ItemCondition
from decluttit.domain.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from decluttit.domain.models import BuyerRequest

logger = logging.getLogger(__name__)

MIN_RADIUS_KM = 1
MAX_RADIUS_KM = 500
DEFAULT_RADIUS_KM = 50

EDITABLE_FIELDS = (
    "title",
    "description",
    "category_id",
    "min_price",
    "max_price",
    "preferred_condition",
    "location_id",
    "radius_km",
    "expires_at",
)


def _optional_price(value, name: str) -> Optional[Decimal]:
    if value is None:
        return None
    price = value if isinstance(value, Decimal) else Decimal(str(value))
    if price <= 0:
        raise ValidationError(f"{name} must be positive")
    return price


def validate_price_range(min_price, max_price) -> tuple[Optional[Decimal], Optional[Decimal]]:
    """Return the bounds as Decimals; both must be positive and ordered."""
    low = _optional_price(min_price, "min_price")
    high = _optional_price(max_price, "max_price")
    if low is not None and high is not None and low > high:
        raise ValidationError(f"min_price ({low}) must not exceed max_price ({high})")
    return low, high


def validate_radius(radius_km: int) -> int:
    if not MIN_RADIUS_KM <= radius_km <= MAX_RADIUS_KM:
        raise ValidationError(
            f"radius_km must be between {MIN_RADIUS_KM} and {MAX_RADIUS_KM}"
        )
    return radius_km


class BuyerRequestService:
    """Creates and mutates buyer requests on behalf of their owners."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_404(self, request_id: str) -> BuyerRequest:
        request = await self.db.get(BuyerRequest, request_id)
        if request is None:
            raise NotFoundError("Request", request_id)
        return request

    async def create_request(
        self,
        actor: ActorContext,
        title: str,
        description: Optional[str] = None,
        category_id: Optional[str] = None,
        min_price=None,
        max_price=None,
        preferred_condition: Optional[ItemCondition | str] = None,
        location_id: Optional[str] = None,
        radius_km: int = DEFAULT_RADIUS_KM,
        expires_at: Optional[datetime] = None,
    ) -> BuyerRequest:
        if not title or len(title.strip()) < 3:
            raise ValidationError("Title must be at least 3 characters")
        low, high = validate_price_range(min_price, max_price)

        request = BuyerRequest(
            buyer_id=actor.user_id,
            title=title.strip(),
            description=description,
            category_id=category_id,
            min_price=low,
            max_price=high,
            preferred_condition=(
                ItemCondition(preferred_condition).value if preferred_condition else None
            ),
            location_id=location_id,
            radius_km=validate_radius(radius_km),
            status=BuyerRequestStatus.ACTIVE.value,
            expires_at=expires_at,
        )
        self.db.add(request)
        await self.db.flush()
        logger.info("Buyer request %s created by %s", request.id, actor.user_id)
        return request

    async def update_request(self, request_id: str, actor: ActorContext, **changes) -> BuyerRequest:
        request = await self.get_or_404(request_id)
        if request.buyer_id != actor.user_id:
            raise UnauthorizedError("Not authorized")
        if request.status != BuyerRequestStatus.ACTIVE.value:
            raise ConflictError(f"Request {request_id} is {request.status}")

        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown request fields: {', '.join(sorted(unknown))}")

        # Validate the range as it will be after the update
        low, high = validate_price_range(
            changes.get("min_price", request.min_price),
            changes.get("max_price", request.max_price),
        )
        for field, value in changes.items():
            if value is None and field in ("title", "radius_km"):
                continue
            if field == "min_price":
                value = low
            elif field == "max_price":
                value = high
            elif field == "radius_km":
                value = validate_radius(value)
            elif field == "preferred_condition" and value is not None:
                value = ItemCondition(value).value
            setattr(request, field, value)

        await self.db.flush()
        return request

    async def cancel_request(self, request_id: str, actor: ActorContext) -> BuyerRequest:
        request = await self.get_or_404(request_id)
        if request.buyer_id != actor.user_id:
            raise UnauthorizedError("Not authorized")
        if request.status != BuyerRequestStatus.ACTIVE.value:
            raise ConflictError(f"Request {request_id} is {request.status}")
        request.status = BuyerRequestStatus.CANCELLED.value
        await self.db.flush()
        return request

    async def list_requests(
        self,
        buyer_id: Optional[str] = None,
        status: Optional[BuyerRequestStatus] = BuyerRequestStatus.ACTIVE,
        category_id: Optional[str] = None,
    ) -> list[BuyerRequest]:
        stmt = select(BuyerRequest)
        if buyer_id:
            stmt = stmt.where(BuyerRequest.buyer_id == buyer_id)
        if status:
            stmt = stmt.where(BuyerRequest.status == BuyerRequestStatus(status).value)
        if category_id:
            stmt = stmt.where(BuyerRequest.category_id == category_id)
        result = await self.db.execute(stmt.order_by(BuyerRequest.created_at.desc()))
        return list(result.scalars().all())

    async def expire_stale_requests(self, now: Optional[datetime] = None) -> int:
        """Mark ACTIVE requests past ``expires_at`` as EXPIRED. Returns the count."""
        now = (now or datetime.now(timezone.utc)).replace(tzinfo=None)
        result = await self.db.execute(
            update(BuyerRequest)
            .where(
                BuyerRequest.status == BuyerRequestStatus.ACTIVE.value,
                BuyerRequest.expires_at.is_not(None),
                BuyerRequest.expires_at <= now,
            )
            .values(status=BuyerRequestStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("Expired %d buyer requests", result.rowcount)
        return result.rowcount or 0
