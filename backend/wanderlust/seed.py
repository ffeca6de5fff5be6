"""
Wanderlust: Sample Data Loader
==============================

What:  Resets the listings table to a small set of sample listings.
How:   `wanderlust-seed` (console script). Connects with the same settings as
       the server, creates missing tables, deletes every listing (and so every
       review), makes sure the demo owner account exists, then inserts the
       samples owned by that account.

The demo owner's password comes from SEED_OWNER_PASSWORD (default
"wanderlust-demo"); it is only used when the account is first created.
"""

import asyncio
import logging
import os
from typing import Any, Dict, List

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from wanderlust.config import load_settings
from wanderlust.database import Database
from wanderlust.exceptions import ConfigurationError, DatabaseConnectionError
from wanderlust.main import setup_logging
from wanderlust.models.listing import DEFAULT_IMAGE_URL, Listing
from wanderlust.models.review import Review
from wanderlust.models.user import User
from wanderlust.services.user_service import UserService

logger = logging.getLogger(__name__)

DEMO_OWNER = "wanderlust"
DEMO_EMAIL = "demo@wanderlust.example"

SAMPLE_LISTINGS: List[Dict[str, Any]] = [
    {
        "title": "Cozy Beachfront Cottage",
        "description": "Escape to this charming beachfront cottage for a relaxing getaway. Enjoy stunning ocean views and easy access to the beach.",
        "image_url": "https://images.unsplash.com/photo-1552733407-5d5c46c3bb3b?auto=format&fit=crop&w=800&q=60",
        "price": 1500,
        "location": "Malibu",
        "country": "United States",
    },
    {
        "title": "Modern Loft in Downtown",
        "description": "Stay in the heart of the city in this stylish loft apartment. Perfect for urban explorers!",
        "image_url": "https://images.unsplash.com/photo-1501785888041-af3ef285b470?auto=format&fit=crop&w=800&q=60",
        "price": 1200,
        "location": "New York City",
        "country": "United States",
    },
    {
        "title": "Mountain Retreat",
        "description": "Unplug and unwind in this peaceful mountain cabin. Surrounded by nature, it's a perfect place to recharge.",
        "image_url": "https://images.unsplash.com/photo-1571896349842-33c89424de2d?auto=format&fit=crop&w=800&q=60",
        "price": 1000,
        "location": "Aspen",
        "country": "United States",
    },
    {
        "title": "Historic Villa in Tuscany",
        "description": "Experience the charm of Tuscany in this beautifully restored villa. Explore the rolling hills and vineyards.",
        "image_url": "https://images.unsplash.com/photo-1566073771259-6a8506099945?auto=format&fit=crop&w=800&q=60",
        "price": 2500,
        "location": "Florence",
        "country": "Italy",
    },
    {
        "title": "Secluded Treehouse Getaway",
        "description": "Live among the treetops in this unique treehouse retreat. A true nature lover's paradise.",
        "image_url": DEFAULT_IMAGE_URL,
        "price": 800,
        "location": "Portland",
        "country": "United States",
    },
    {
        "title": "Desert Oasis in Dubai",
        "description": "Experience luxury in the middle of the desert in this opulent oasis with a private pool.",
        "image_url": "https://images.unsplash.com/photo-1518684079-3c830dcef090?auto=format&fit=crop&w=800&q=60",
        "price": 5000,
        "location": "Dubai",
        "country": "United Arab Emirates",
    },
]


async def ensure_owner(db: AsyncSession, password: str) -> User:
    users = UserService()
    owner = await users.get_by_username(db, DEMO_OWNER)
    if owner is None:
        owner = await users.register(db, DEMO_OWNER, DEMO_EMAIL, password)
        logger.info("Created demo owner %r", DEMO_OWNER)
    return owner


async def seed(database: Database, owner_password: str) -> int:
    """Replace all listings with the samples. Returns how many were inserted."""
    await database.create_schema()
    async with database.session() as db:
        await db.execute(delete(Review))
        await db.execute(delete(Listing))
        owner = await ensure_owner(db, owner_password)
        db.add_all(Listing(**sample, owner_id=owner.id) for sample in SAMPLE_LISTINGS)
    logger.info("Data was initialized: %d listings", len(SAMPLE_LISTINGS))
    return len(SAMPLE_LISTINGS)


async def _run() -> None:
    settings = load_settings()
    database = Database.from_settings(settings)
    await database.connect()
    try:
        await seed(database, os.environ.get("SEED_OWNER_PASSWORD", "wanderlust-demo"))
    finally:
        await database.dispose()


def main() -> int:
    """Console entry point (`wanderlust-seed`)."""
    setup_logging()
    try:
        asyncio.run(_run())
    except (ConfigurationError, DatabaseConnectionError) as exc:
        logger.critical("%s", exc.message)
        return 1
    return 0
