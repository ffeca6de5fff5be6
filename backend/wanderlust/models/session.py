"""
Wanderlust: Session Record Model
================================

What:  Server-side session storage. The browser only holds a signed session
       id; the payload (authenticated user token, flash queues, post-login
       redirect) lives here.
Who:   Read and written exclusively by `SessionStore` (sessions.py). Its
       layout is an implementation detail of the store.
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from wanderlust.database import Base


class SessionRecord(Base):
    __tablename__ = "sessions"

    sid: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Naive UTC on SQLite, aware on PostgreSQL; the store normalizes on read
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<SessionRecord(sid='{self.sid[:8]}...', expires_at='{self.expires_at}')>"
