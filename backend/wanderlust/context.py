"""
Wanderlust: Application Context
===============================

What:  Every long-lived object the request path needs, built once at startup.
How:   `build_context()` (bootstrap.py) constructs it after the database is
       connected; `create_app()` stores it on `app.state.context`. Route
       dependencies read it back with `get_context(request)` instead of
       importing module-level singletons.
"""

from dataclasses import dataclass

from starlette.requests import Request

from wanderlust.auth import Authenticator
from wanderlust.config import Settings
from wanderlust.database import Database
from wanderlust.services.file_service import FileService
from wanderlust.services.listing_service import ListingService
from wanderlust.services.review_service import ReviewService
from wanderlust.services.user_service import UserService
from wanderlust.sessions import SessionStore
from wanderlust.templating import Templates


@dataclass
class AppContext:
    settings: Settings
    database: Database
    session_store: SessionStore
    authenticator: Authenticator
    templates: Templates
    files: FileService
    listings: ListingService
    reviews: ReviewService
    users: UserService


def get_context(request: Request) -> AppContext:
    return request.app.state.context
