"""SQLite connection setup."""

import pytest
from sqlalchemy import insert, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine

from decluttit.infra.database import Base, configure_sqlite

import decluttit.domain.models  # noqa: F401

from decluttit.domain.models import Listing


@pytest.fixture
async def fk_engine():
    engine = create_async_engine("sqlite+aiosqlite://")
    configure_sqlite(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


async def test_foreign_keys_are_on(fk_engine):
    async with fk_engine.connect() as conn:
        assert (await conn.execute(text("PRAGMA foreign_keys"))).scalar() == 1


async def test_listing_for_unknown_seller_is_rejected(fk_engine):
    with pytest.raises(IntegrityError):
        async with fk_engine.begin() as conn:
            await conn.execute(
                insert(Listing).values(
                    id="listing-1",
                    seller_id="no-such-user",
                    title="Orphan",
                    category_id="electronics",
                    condition="GOOD",
                    price=100,
                    location_id="lagos",
                    status="ACTIVE",
                    view_count=0,
                )
            )
