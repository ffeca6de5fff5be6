"""
Wanderlust: Review Routes
=========================

Nested under one listing:

    POST   /listings/{listing_id}/reviews               create  (user, review form)
    DELETE /listings/{listing_id}/reviews/{review_id}   delete  (user, author)

The parent id is declared in the router prefix under the same name the
handlers and guards take, `listing_id`, so nothing has to rename it.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from wanderlust.context import get_context
from wanderlust.database import get_db_session
from wanderlust.flash import flash
from wanderlust.guards import require_review_author, require_user, validate_review
from wanderlust.models.review import Review
from wanderlust.models.user import User
from wanderlust.routes.listings import MISSING_LISTING_MESSAGE
from wanderlust.schemas.review import ReviewForm

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/listings/{listing_id}/reviews", tags=["Reviews"])


@router.post("", summary="Add a review")
async def create_review(
    request: Request,
    listing_id: str,
    user: User = Depends(require_user),
    form: ReviewForm = Depends(validate_review),
    db: AsyncSession = Depends(get_db_session),
):
    ctx = get_context(request)
    listing = await ctx.listings.get_listing(db, listing_id)
    if listing is None:
        flash(request, "error", MISSING_LISTING_MESSAGE)
        return RedirectResponse("/listings", status_code=302)

    await ctx.reviews.create_review(db, listing, form, user)
    flash(request, "success", "New Review Created!")
    return RedirectResponse(f"/listings/{listing.id}", status_code=302)


@router.delete("/{review_id}", summary="Delete a review")
async def delete_review(
    request: Request,
    listing_id: str,
    review: Review = Depends(require_review_author),
    db: AsyncSession = Depends(get_db_session),
):
    await get_context(request).reviews.delete_review(db, review)
    flash(request, "success", "Review Deleted!")
    return RedirectResponse(f"/listings/{review.listing_id}", status_code=302)
