"""Request builders and lookups shared by the end-to-end tests."""

from typing import Dict

from httpx import AsyncClient
from sqlalchemy import desc, select

from wanderlust.database import Database
from wanderlust.models.listing import Listing

TEST_PASSWORD = "correct-horse-battery"


def listing_form(**overrides) -> Dict[str, str]:
    fields = {
        "title": "Lakeside Cabin",
        "description": "Quiet cabin with a private dock.",
        "price": "1200",
        "location": "Lake Tahoe",
        "country": "United States",
    }
    fields.update(overrides)
    return {f"listing[{key}]": value for key, value in fields.items()}


def review_form(rating: str = "4", comment: str = "Lovely stay") -> Dict[str, str]:
    return {"review[rating]": rating, "review[comment]": comment}


async def signup(client: AsyncClient, username: str, password: str = TEST_PASSWORD):
    return await client.post(
        "/signup",
        data={"username": username, "email": f"{username}@example.com", "password": password},
    )


async def latest_listing_id(database: Database) -> str:
    async with database.session() as db:
        result = await db.execute(
            select(Listing.id).order_by(desc(Listing.created_at)).limit(1)
        )
        return str(result.scalar_one())


async def count_listings(database: Database) -> int:
    async with database.session() as db:
        result = await db.execute(select(Listing.id))
        return len(result.scalars().all())


async def create_listing(client: AsyncClient, database: Database, **overrides) -> str:
    """POST a listing as the client's user and return the new id."""
    response = await client.post("/listings", data=listing_form(**overrides))
    assert response.status_code == 302
    return await latest_listing_id(database)
