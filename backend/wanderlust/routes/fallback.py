"""Catch-all for any path no other router matched. Mounted last."""

from fastapi import APIRouter

from wanderlust.exceptions import NotFoundError

router = APIRouter(tags=["Fallback"])

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


@router.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
async def not_found(path: str):
    raise NotFoundError()
