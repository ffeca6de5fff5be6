"""
Wanderlust: Listing Routes
==========================

What:  The /listings resource: index, show, create, edit, update, delete.
How:   HTML forms post here; PUT and DELETE arrive as POST with
       `?_method=...` and are rewritten by MethodOverrideMiddleware.
       Every mutation flashes a message and redirects (302).

Route table:
    GET    /listings              index
    POST   /listings              create        (user, listing form, image)
    GET    /listings/new          new form      (user)
    GET    /listings/{id}         show
    PUT    /listings/{id}         update        (user, owner, listing form)
    DELETE /listings/{id}         delete        (user, owner)
    GET    /listings/{id}/edit    edit form     (user, owner)

A well-formed id with no listing behind it flashes
"Listing you requested for does not exist!" and redirects to /listings;
a malformed id is a 400 from the error funnel.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from wanderlust.context import get_context
from wanderlust.database import get_db_session
from wanderlust.flash import flash
from wanderlust.guards import (
    listing_image,
    require_listing_owner,
    require_user,
    validate_listing,
)
from wanderlust.models.listing import Listing
from wanderlust.models.user import User
from wanderlust.schemas.listing import ListingForm
from wanderlust.services.listing_service import ImageUpload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/listings", tags=["Listings"])

MISSING_LISTING_MESSAGE = "Listing you requested for does not exist!"


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=302)


def _missing(request: Request) -> RedirectResponse:
    flash(request, "error", MISSING_LISTING_MESSAGE)
    return _redirect("/listings")


@router.get("", summary="All listings")
async def index(request: Request, db: AsyncSession = Depends(get_db_session)):
    ctx = get_context(request)
    listings = await ctx.listings.list_listings(db)
    return ctx.templates.render(request, "listings/index.html", {"listings": listings})


@router.post("", summary="Create a listing")
async def create_listing(
    request: Request,
    user: User = Depends(require_user),
    form: ListingForm = Depends(validate_listing),
    image: Optional[ImageUpload] = Depends(listing_image),
    db: AsyncSession = Depends(get_db_session),
):
    listing = await get_context(request).listings.create_listing(db, form, user, image)
    flash(request, "success", "New Listing Created!")
    logger.debug("Redirecting after creating %s", listing.id)
    return _redirect("/listings")


@router.get("/new", summary="New listing form")
async def new_listing_form(request: Request, user: User = Depends(require_user)):
    return get_context(request).templates.render(request, "listings/new.html")


@router.get("/{listing_id}", summary="Show one listing")
async def show_listing(
    request: Request,
    listing_id: str,
    db: AsyncSession = Depends(get_db_session),
):
    ctx = get_context(request)
    listing = await ctx.listings.get_listing(db, listing_id)
    if listing is None:
        return _missing(request)
    return ctx.templates.render(request, "listings/show.html", {"listing": listing})


@router.get("/{listing_id}/edit", summary="Edit listing form")
async def edit_listing_form(
    request: Request,
    listing: Optional[Listing] = Depends(require_listing_owner),
):
    if listing is None:
        return _missing(request)
    return get_context(request).templates.render(
        request,
        "listings/edit.html",
        {"listing": listing, "original_image_url": listing.image_url},
    )


@router.put("/{listing_id}", summary="Update a listing")
async def update_listing(
    request: Request,
    listing: Optional[Listing] = Depends(require_listing_owner),
    db: AsyncSession = Depends(get_db_session),
):
    if listing is None:
        return _missing(request)
    # The form is only judged once the listing is known to exist
    form = await validate_listing(request)
    image = await listing_image(request)
    await get_context(request).listings.update_listing(db, listing, form, image)
    flash(request, "success", "Listing Updated!")
    return _redirect(f"/listings/{listing.id}")


@router.delete("/{listing_id}", summary="Delete a listing")
async def delete_listing(
    request: Request,
    listing: Optional[Listing] = Depends(require_listing_owner),
    db: AsyncSession = Depends(get_db_session),
):
    if listing is None:
        return _missing(request)
    await get_context(request).listings.delete_listing(db, listing)
    flash(request, "success", "Listing Deleted!")
    return _redirect("/listings")
