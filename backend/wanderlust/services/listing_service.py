"""
Wanderlust: Listing Service
===========================

What:  Listing CRUD plus the image lifecycle that goes with it.
How:   Stateless: every call receives the request's AsyncSession. Every write
       is committed here, before the handler builds its redirect, so the
       row is durable before the client is told it succeeded. Image files are written before the row and removed again
       when the row is deleted or its image replaced.

Loading:
    Async sessions cannot lazy-load, so every single-listing read eagerly
    loads owner, reviews and each review's author. Deleting a listing relies
    on those loaded reviews for the ORM cascade.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wanderlust.database import parse_identifier
from wanderlust.exceptions import DatabaseError
from wanderlust.models.listing import Listing
from wanderlust.models.review import Review
from wanderlust.models.user import User
from wanderlust.schemas.listing import ListingForm
from wanderlust.services.file_service import FileService, StoredImage

logger = logging.getLogger(__name__)

# (original filename, raw bytes) of an uploaded image
ImageUpload = Tuple[str, bytes]


class ListingService:

    def __init__(self, files: FileService):
        self.files = files

    @staticmethod
    def _detail_query():
        return select(Listing).options(
            selectinload(Listing.owner),
            selectinload(Listing.reviews).selectinload(Review.author),
        )

    async def list_listings(self, db: AsyncSession) -> List[Listing]:
        """Every listing, newest first."""
        try:
            result = await db.execute(select(Listing).order_by(desc(Listing.created_at)))
        except SQLAlchemyError as e:
            logger.error("Database error listing listings: %s", e)
            raise DatabaseError(
                message="Could not load listings. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e
        return list(result.scalars().all())

    async def get_listing(self, db: AsyncSession, listing_id) -> Optional[Listing]:
        """
        One listing with owner and reviews loaded, or None if no row matches.

        Raises:
            MalformedIdentifierError: `listing_id` is not a UUID.
        """
        key: uuid.UUID = parse_identifier(listing_id, model="Listing")
        result = await db.execute(self._detail_query().where(Listing.id == key))
        return result.scalar_one_or_none()

    async def _store_image(self, image: Optional[ImageUpload]) -> Optional[StoredImage]:
        if image is None:
            return None
        filename, content = image
        return await self.files.validate_and_store(filename, content)

    async def create_listing(
        self,
        db: AsyncSession,
        form: ListingForm,
        owner: User,
        image: Optional[ImageUpload] = None,
    ) -> Listing:
        stored = await self._store_image(image)

        listing = Listing(**form.model_dump(), owner_id=owner.id)
        if stored is not None:
            listing.image_url = stored.url
            listing.image_filename = stored.filename

        try:
            db.add(listing)
            await db.commit()
        except SQLAlchemyError as e:
            if stored is not None:
                await self.files.cleanup(stored.filename)
            logger.error("Database error creating listing: %s", e, exc_info=True)
            raise DatabaseError(
                message="Could not save the listing. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Listing %s created by %s", listing.id, owner.username)
        return listing

    async def update_listing(
        self,
        db: AsyncSession,
        listing: Listing,
        form: ListingForm,
        image: Optional[ImageUpload] = None,
    ) -> Listing:
        """Overwrite the listing's fields; an uploaded image replaces the old one."""
        stored = await self._store_image(image)
        replaced = listing.image_filename if stored is not None else None

        for field, value in form.model_dump().items():
            setattr(listing, field, value)
        if stored is not None:
            listing.image_url = stored.url
            listing.image_filename = stored.filename

        try:
            await db.commit()
        except SQLAlchemyError as e:
            if stored is not None:
                await self.files.cleanup(stored.filename)
            logger.error("Database error updating listing %s: %s", listing.id, e)
            raise DatabaseError(
                message="Could not update the listing. Please try again.",
                context={"listing_id": str(listing.id)},
            ) from e

        await self.files.cleanup(replaced)
        logger.info("Listing %s updated", listing.id)
        return listing

    async def delete_listing(self, db: AsyncSession, listing: Listing) -> None:
        """Delete the listing, its reviews and its stored image."""
        filename = listing.image_filename
        try:
            await db.delete(listing)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Database error deleting listing %s: %s", listing.id, e)
            raise DatabaseError(
                message="Could not delete the listing. Please try again.",
                context={"listing_id": str(listing.id)},
            ) from e

        await self.files.cleanup(filename)
        logger.info("Listing %s deleted", listing.id)

    @staticmethod
    def is_owner(listing: Listing, user: Optional[User]) -> bool:
        return user is not None and listing.owner_id == user.id

