"""Sample data loader tests."""

import pytest
from sqlalchemy import func, select

from wanderlust.models.listing import Listing
from wanderlust.models.user import User
from wanderlust.seed import DEMO_OWNER, SAMPLE_LISTINGS, seed


async def _count(database, column) -> int:
    async with database.session() as db:
        return (await db.execute(select(func.count(column)))).scalar_one()


@pytest.mark.asyncio
async def test_seed_inserts_samples_owned_by_demo_user(database):
    inserted = await seed(database, "demo-password")

    assert inserted == len(SAMPLE_LISTINGS)
    async with database.session() as db:
        owner = (await db.execute(select(User).where(User.username == DEMO_OWNER))).scalar_one()
        owners = (await db.execute(select(Listing.owner_id).distinct())).scalars().all()
    assert owners == [owner.id]


@pytest.mark.asyncio
async def test_seed_is_repeatable(database):
    await seed(database, "demo-password")
    await seed(database, "demo-password")

    assert await _count(database, Listing.id) == len(SAMPLE_LISTINGS)
    assert await _count(database, User.id) == 1
