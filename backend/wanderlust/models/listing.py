"""
Wanderlust: Listing Model
=========================

What:  A property offered for rent, owned by one user.
How:   Reviews hang off a listing through `Listing.reviews`; deleting a
       listing deletes its reviews (ORM cascade, so the reviews must be
       loaded first; the listing service always eager-loads them).

Query Patterns:
    - Index page: every listing, newest first (idx_listings_created_at)
    - Show page: one listing by id with owner and reviews + authors
      eagerly loaded (async sessions cannot lazy-load)
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wanderlust.database import Base
from wanderlust.models.review import Review
from wanderlust.models.user import User

# Shown when a listing was created without an image
DEFAULT_IMAGE_URL = (
    "https://images.unsplash.com/photo-1625505826533-5c80aca7d157"
    "?ixlib=rb-4.0.3&auto=format&fit=crop&w=800&q=60"
)


class Listing(Base):
    __tablename__ = "listings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Public URL of the image and the storage-relative filename used to
    # delete it again. Both empty when the default image is used.
    image_url: Mapped[str] = mapped_column(String(500), nullable=False, default=DEFAULT_IMAGE_URL)
    image_filename: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)

    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    owner: Mapped[Optional[User]] = relationship(User)
    reviews: Mapped[List[Review]] = relationship(
        Review,
        cascade="all, delete-orphan",
        order_by=Review.created_at,
    )

    __table_args__ = (
        Index("idx_listings_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, title='{self.title}')>"
