"""
Wanderlust: ORM Models
======================

One table per entity: users, listings, reviews, sessions.
Importing this package registers every model with `Base.metadata`.
"""

from wanderlust.models.listing import Listing
from wanderlust.models.review import Review
from wanderlust.models.session import SessionRecord
from wanderlust.models.user import User

__all__ = ["Listing", "Review", "SessionRecord", "User"]
