"""Shared test infrastructure for the Decluttit test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- make_user: factory for User rows
- make_listing: factory for ACTIVE Listing rows
- make_request: factory for ACTIVE BuyerRequest rows
- make_transaction: factory for Transaction rows in any status
- build_client: HTTPX AsyncClient over a fresh FastAPI app for route tests
"""

import uuid
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from decluttit.infra.database import Base, get_db

import decluttit.domain.models  # noqa: F401

from decluttit.app.errors import register_error_handlers
from decluttit.domain.enums import (
    BuyerRequestStatus,
    ItemCondition,
    ListingStatus,
    TransactionStatus,
    UserRole,
    VerificationLevel,
)
from decluttit.domain.models import BuyerRequest, Listing, Transaction, User
from decluttit.services.fee_calculator import fee_percent, platform_fee

# Factories date rows relative to this fixed clock
BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)


# ---------------------------------------------------------------------------
# Database session fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db_session):
    """Factory that creates a User row.

    Usage:
        seller = await make_user()
        judge = await make_user(role=UserRole.ARBITRATOR)
    """
    async def _factory(
        email: str | None = None,
        full_name: str = "Test User",
        role: UserRole = UserRole.MEMBER,
        verification_level: VerificationLevel = VerificationLevel.BASIC,
        trust_score: int = 0,
        is_active: bool = True,
    ) -> User:
        user_id = str(uuid.uuid4())
        user = User(
            id=user_id,
            email=email or f"user-{user_id[:8]}@test.com",
            password_hash="not-a-real-hash",
            full_name=full_name,
            role=role.value,
            verification_level=verification_level.value,
            trust_score=trust_score,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _factory


@pytest.fixture
def make_listing(db_session):
    """Factory that creates an ACTIVE Listing row.

    ``age_minutes`` places the row in the past relative to BASE_TIME, so a
    larger value means an older listing.
    """
    async def _factory(
        seller: User,
        category_id: str = "electronics",
        condition: ItemCondition = ItemCondition.GOOD,
        price: str | int = "45000",
        location_id: str = "lagos",
        title: str = "Used phone",
        status: ListingStatus = ListingStatus.ACTIVE,
        age_minutes: int = 0,
    ) -> Listing:
        listing = Listing(
            id=str(uuid.uuid4()),
            seller_id=seller.id,
            title=title,
            category_id=category_id,
            condition=condition.value,
            price=Decimal(str(price)),
            location_id=location_id,
            status=status.value,
            created_at=BASE_TIME - timedelta(minutes=age_minutes),
        )
        db_session.add(listing)
        await db_session.flush()
        return listing

    return _factory


@pytest.fixture
def make_request(db_session):
    """Factory that creates an ACTIVE BuyerRequest row."""
    async def _factory(
        buyer: User,
        category_id: str | None = "electronics",
        min_price: str | int | None = None,
        max_price: str | int | None = "50000",
        preferred_condition: ItemCondition | None = None,
        location_id: str | None = "lagos",
        title: str = "Looking for a phone",
        status: BuyerRequestStatus = BuyerRequestStatus.ACTIVE,
        expires_at: datetime | None = None,
        age_minutes: int = 0,
    ) -> BuyerRequest:
        request = BuyerRequest(
            id=str(uuid.uuid4()),
            buyer_id=buyer.id,
            title=title,
            category_id=category_id,
            min_price=Decimal(str(min_price)) if min_price is not None else None,
            max_price=Decimal(str(max_price)) if max_price is not None else None,
            preferred_condition=preferred_condition.value if preferred_condition else None,
            location_id=location_id,
            status=status.value,
            expires_at=expires_at,
            created_at=BASE_TIME - timedelta(minutes=age_minutes),
        )
        db_session.add(request)
        await db_session.flush()
        return request

    return _factory


@pytest.fixture
def make_transaction(db_session):
    """Factory that inserts a Transaction directly in *status*.

    Bypasses the state machine; use it to set up a starting state.
    """
    async def _factory(
        buyer: User,
        listing: Listing,
        status: TransactionStatus = TransactionStatus.PENDING,
    ) -> Transaction:
        txn = Transaction(
            id=str(uuid.uuid4()),
            listing_id=listing.id,
            buyer_id=buyer.id,
            seller_id=listing.seller_id,
            amount=listing.price,
            fee_percent=fee_percent(listing.price),
            platform_fee=platform_fee(listing.price),
            status=status.value,
        )
        db_session.add(txn)
        await db_session.flush()
        return txn

    return _factory


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest.fixture
def build_client(db_session):
    """Factory for an HTTPX AsyncClient wired to a fresh FastAPI app.

    Usage:
        async with build_client(payments_router) as client:
            resp = await client.post("/api/payments/webhook", content=body)
    """
    def _factory(*routers, actor=None) -> AsyncClient:
        from decluttit.app.routes.auth import get_actor_dep

        test_app = FastAPI()
        register_error_handlers(test_app)
        for router in routers:
            test_app.include_router(router)

        async def _override_get_db():
            yield db_session

        test_app.dependency_overrides[get_db] = _override_get_db
        if actor is not None:
            test_app.dependency_overrides[get_actor_dep] = lambda: actor

        return AsyncClient(
            transport=ASGITransport(app=test_app),
            base_url="http://testserver",
        )

    return _factory
