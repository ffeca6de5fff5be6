"""
Wanderlust: Review Service
==========================

What:  Adds and removes reviews on a listing.
How:   Same shape as ListingService: stateless, session passed per call,
       each write commits before returning.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wanderlust.database import parse_identifier
from wanderlust.exceptions import DatabaseError
from wanderlust.models.listing import Listing
from wanderlust.models.review import Review
from wanderlust.models.user import User
from wanderlust.schemas.review import ReviewForm

logger = logging.getLogger(__name__)


class ReviewService:

    async def get_review(self, db: AsyncSession, listing_id, review_id) -> Optional[Review]:
        """
        The review `review_id` on listing `listing_id`, or None.

        Raises:
            MalformedIdentifierError: either id is not a UUID.
        """
        listing_key = parse_identifier(listing_id, model="Listing")
        review_key = parse_identifier(review_id, model="Review")
        result = await db.execute(
            select(Review)
            .options(selectinload(Review.author))
            .where(Review.id == review_key, Review.listing_id == listing_key)
        )
        return result.scalar_one_or_none()

    async def create_review(
        self, db: AsyncSession, listing: Listing, form: ReviewForm, author: User
    ) -> Review:
        review = Review(
            comment=form.comment,
            rating=form.rating,
            listing_id=listing.id,
            author_id=author.id,
        )
        try:
            db.add(review)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Database error creating review on %s: %s", listing.id, e)
            raise DatabaseError(
                message="Could not save the review. Please try again.",
                context={"listing_id": str(listing.id)},
            ) from e

        logger.info("Review %s added to listing %s by %s", review.id, listing.id, author.username)
        return review

    async def delete_review(self, db: AsyncSession, review: Review) -> None:
        try:
            await db.delete(review)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Database error deleting review %s: %s", review.id, e)
            raise DatabaseError(
                message="Could not delete the review. Please try again.",
                context={"review_id": str(review.id)},
            ) from e
        logger.info("Review %s deleted", review.id)

    @staticmethod
    def is_author(review: Review, user: Optional[User]) -> bool:
        return user is not None and review.author_id == user.id
