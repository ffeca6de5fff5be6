"""
Wanderlust: Route Guards
========================

What:  The gates that sit between a route and its handler. Each one either
       returns a value the handler needs or raises, which ends the request
       in the error funnel before any write happens.

Gate inventory:
    require_user            401 when the request carries no identity
    require_listing_owner   403 unless the current user owns the listing
    require_review_author   403 unless the current user wrote the review
    validate_listing        400 when `listing[...]` fails ListingForm
    validate_review         400 when `review[...]` fails ReviewForm

Dependency order inside a route signature is the order FastAPI resolves
them in, so authentication always comes before schema validation.
"""

import logging
from typing import Any, Dict, Optional, Type, TypeVar

from fastapi import Depends
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import FormData, UploadFile
from starlette.requests import Request

from wanderlust.context import get_context
from wanderlust.database import get_db_session
from wanderlust.exceptions import (
    AuthenticationRequiredError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from wanderlust.models.listing import Listing
from wanderlust.models.review import Review
from wanderlust.models.user import User
from wanderlust.schemas.listing import ListingForm
from wanderlust.schemas.review import ReviewForm
from wanderlust.services.listing_service import ImageUpload

logger = logging.getLogger(__name__)

REDIRECT_KEY = "redirect_url"

FormModel = TypeVar("FormModel", bound=BaseModel)


# ══════════════════════════════════════════════════════════════════════════
# Identity
# ══════════════════════════════════════════════════════════════════════════


def current_user(request: Request) -> Optional[User]:
    return getattr(request.state, "user", None)


def require_user(request: Request) -> User:
    """
    The logged-in user, or AuthenticationRequiredError.

    For GET requests the URL is remembered in the session so a successful
    login can return the user to it.
    """
    user = current_user(request)
    if user is None:
        if request.method == "GET":
            url = request.url.path
            if request.url.query:
                url = f"{url}?{request.url.query}"
            request.state.session[REDIRECT_KEY] = url
        logger.info("Blocked anonymous %s %s", request.method, request.url.path)
        raise AuthenticationRequiredError()
    return user


def pop_redirect_url(request: Request, default: str = "/listings") -> str:
    return request.state.session.pop(REDIRECT_KEY, None) or default


# ══════════════════════════════════════════════════════════════════════════
# Ownership
# ══════════════════════════════════════════════════════════════════════════


async def require_listing_owner(
    request: Request,
    listing_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[Listing]:
    """
    The listing, when `user` owns it.

    Returns None for a well-formed id with no listing behind it; the handler
    decides how to report that. A malformed id propagates as
    MalformedIdentifierError.
    """
    listings = get_context(request).listings
    listing = await listings.get_listing(db, listing_id)
    if listing is None:
        return None
    if not listings.is_owner(listing, user):
        logger.warning("User %s is not the owner of listing %s", user.username, listing.id)
        raise ForbiddenError("You are not the owner of this listing")
    return listing


async def require_review_author(
    request: Request,
    listing_id: str,
    review_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> Review:
    reviews = get_context(request).reviews
    review = await reviews.get_review(db, listing_id, review_id)
    if review is None:
        raise NotFoundError("Review not found")
    if not reviews.is_author(review, user):
        logger.warning("User %s is not the author of review %s", user.username, review.id)
        raise ForbiddenError("You are not the author of this review")
    return review


# ══════════════════════════════════════════════════════════════════════════
# Schema validation
# ══════════════════════════════════════════════════════════════════════════


def nested_fields(form: FormData, prefix: str) -> Dict[str, Any]:
    """
    Collect `prefix[key]` form fields into `{key: value}`.

    `listing[title]=Cabin` → {"title": "Cabin"}. Uploads are left out.
    """
    opening = f"{prefix}["
    fields: Dict[str, Any] = {}
    for name, value in form.multi_items():
        if not (name.startswith(opening) and name.endswith("]")):
            continue
        if isinstance(value, UploadFile):
            continue
        fields[name[len(opening):-1]] = value
    return fields


def _validate(form: FormData, prefix: str, model: Type[FormModel]) -> FormModel:
    data = nested_fields(form, prefix)
    if not data:
        raise ValidationError(message=f'"{prefix}" is required', field=prefix)
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        problems = []
        for err in exc.errors():
            loc = ".".join(str(part) for part in err.get("loc", ()))
            problems.append(f'"{prefix}.{loc}" {err.get("msg", "is invalid")}')
        message = "; ".join(problems)
        logger.info("Rejected %s form: %s", prefix, message)
        raise ValidationError(message=message, field=prefix) from exc


async def validate_listing(request: Request) -> ListingForm:
    return _validate(await request.form(), "listing", ListingForm)


async def validate_review(request: Request) -> ReviewForm:
    return _validate(await request.form(), "review", ReviewForm)


async def listing_image(request: Request) -> Optional[ImageUpload]:
    """The optional `listing[image]` upload as (filename, bytes), or None."""
    upload = (await request.form()).get("listing[image]")
    if not isinstance(upload, UploadFile) or not upload.filename:
        return None
    content = await upload.read()
    return upload.filename, content
