"""
Wanderlust: Session Store
=========================

What:  Persists session payloads in the `sessions` table through the already
       connected database engine.
How:   `SessionStore` is built from a `Database` that has completed
       `connect()`; it never opens a connection of its own, so there is no
       window where the store holds an engine that is not live yet.
Who:   Used by SessionMiddleware (middleware/session.py) once per request.

Failure policy:
    A storage hiccup while the server is running must degrade, not crash.
    Every operation catches SQLAlchemy errors, reports them to the registered
    error observers, and returns a neutral result:
        get()     → None   (request proceeds with a fresh, empty session)
        set()     → False  (changes of this request are lost)
        destroy() → False
"""

import json
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from wanderlust.database import Database
from wanderlust.exceptions import StartupOrderError
from wanderlust.models.session import SessionRecord

logger = logging.getLogger(__name__)

ErrorObserver = Callable[[Exception], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SessionStore:
    """
    Database-backed key/value store keyed by session id.

    The key space is partitioned by session id, which is unique per client,
    so interleaved requests from different clients never touch the same row.
    """

    def __init__(self, database: Database):
        if not database.is_connected:
            raise StartupOrderError(
                "SessionStore requires a connected database; call Database.connect() first"
            )
        self._session_factory = database.session_factory
        self._observers: List[ErrorObserver] = []

    # ── Error observers ───────────────────────────────────────────────────

    def on_error(self, observer: ErrorObserver) -> None:
        """Register a callback invoked with every storage failure."""
        self._observers.append(observer)

    def _emit_error(self, exc: Exception) -> None:
        if not self._observers:
            logger.error("Unobserved session store error: %s", exc)
        for observer in self._observers:
            try:
                observer(exc)
            except Exception:
                logger.exception("Session store error observer failed")

    # ── Operations ────────────────────────────────────────────────────────

    async def get(self, sid: str) -> Optional[Dict[str, Any]]:
        """Payload for `sid`, or None when missing, expired or unreadable."""
        try:
            async with self._session_factory() as db:
                record = await db.get(SessionRecord, sid)
                if record is None:
                    return None
                if _as_aware(record.expires_at) <= _utcnow():
                    await db.delete(record)
                    await db.commit()
                    return None
                return dict(record.payload or {})
        except SQLAlchemyError as exc:
            self._emit_error(exc)
            return None

    async def set(self, sid: str, payload: Dict[str, Any], expires_at: datetime) -> bool:
        """Insert or replace the record for `sid`."""
        try:
            async with self._session_factory() as db:
                record = await db.get(SessionRecord, sid)
                if record is None:
                    db.add(SessionRecord(sid=sid, payload=payload, expires_at=expires_at))
                else:
                    record.payload = payload
                    record.expires_at = expires_at
                await db.commit()
            return True
        except SQLAlchemyError as exc:
            self._emit_error(exc)
            return False

    async def destroy(self, sid: str) -> bool:
        try:
            async with self._session_factory() as db:
                await db.execute(delete(SessionRecord).where(SessionRecord.sid == sid))
                await db.commit()
            return True
        except SQLAlchemyError as exc:
            self._emit_error(exc)
            return False

    async def purge_expired(self) -> int:
        """Delete every expired record. Returns the number removed."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    delete(SessionRecord).where(SessionRecord.expires_at <= _utcnow())
                )
                await db.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            self._emit_error(exc)
            return 0


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class Session(dict):
    """
    The payload of one client's session, as seen by a single request.

    Plain dict semantics plus:
        sid          current session id
        is_new       no stored record existed when the request started
        changed      payload differs from what was loaded
        regenerate() switch to a fresh id (login), old record destroyed at commit
        invalidate() drop everything (record destroyed, cookie cleared)
    """

    def __init__(self, sid: str, payload: Optional[Dict[str, Any]] = None, is_new: bool = True):
        super().__init__(payload or {})
        self.sid = sid
        self.is_new = is_new
        self.previous_sid: Optional[str] = None
        self.invalidated = False
        self._snapshot = self._serialize()

    def _serialize(self) -> str:
        return json.dumps(self, sort_keys=True, default=str)

    @property
    def changed(self) -> bool:
        return self._serialize() != self._snapshot

    def regenerate(self) -> None:
        if self.previous_sid is None and not self.is_new:
            self.previous_sid = self.sid
        self.sid = new_session_id()
        self.is_new = True
        # Force a save under the new id even if the payload is unchanged
        self._snapshot = ""

    def invalidate(self) -> None:
        self.clear()
        self.invalidated = True

    def expiry(self, max_age: int) -> datetime:
        return _utcnow() + timedelta(seconds=max_age)
