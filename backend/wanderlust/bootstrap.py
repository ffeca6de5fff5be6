"""
Wanderlust: Startup Sequencer
=============================

What:  Orders the side-effecting steps of process startup so each one can
       assume the ones before it are live.
How:   Every step runs inside `sequencer.stage(StartupStage.X)`. Entering a
       stage before all earlier stages have completed, or entering one
       twice, raises StartupOrderError.

Stages (in order):
    CONFIG          settings loaded, DATABASE_URL present
    CONNECT         one connection pool opened and probed
    SESSION_STORE   session store built on the live Database
    SESSION         session + flash middleware registered
    AUTHENTICATION  authentication middleware registered
    LOCALS          per-request template locals registered
    ROUTERS         listings, reviews, users, health, catch-all 404
    ERROR_FUNNEL    terminal error handling installed
    LISTEN          socket bound; "server is running on port N" logged

Who runs what:
    main()           CONFIG, then the rest through the helpers below
    build_context()  CONNECT, SESSION_STORE
    create_app()     SESSION .. ERROR_FUNNEL   (main.py)
    serve()          LISTEN                    (main.py)
"""

import enum
import logging
from contextlib import contextmanager
from typing import Iterator, List, Set

from wanderlust.auth import Authenticator, LocalStrategy
from wanderlust.config import Settings, mask_database_url
from wanderlust.context import AppContext
from wanderlust.database import Database
from wanderlust.exceptions import StartupOrderError
from wanderlust.services.file_service import FileService
from wanderlust.services.listing_service import ListingService
from wanderlust.services.review_service import ReviewService
from wanderlust.services.user_service import UserService
from wanderlust.sessions import SessionStore
from wanderlust.templating import Templates

logger = logging.getLogger(__name__)


class StartupStage(enum.IntEnum):
    CONFIG = 1
    CONNECT = 2
    SESSION_STORE = 3
    SESSION = 4
    AUTHENTICATION = 5
    LOCALS = 6
    ROUTERS = 7
    ERROR_FUNNEL = 8
    LISTEN = 9


class StartupSequencer:
    """Records completed stages and enforces their order."""

    def __init__(self) -> None:
        self._completed: Set[StartupStage] = set()

    @property
    def completed(self) -> List[StartupStage]:
        return sorted(self._completed)

    def is_complete(self, stage: StartupStage) -> bool:
        return stage in self._completed

    def mark_complete(self, *stages: StartupStage) -> None:
        """Record stages that need no work of their own, e.g. CONFIG for settings built in code."""
        for stage in stages:
            with self.stage(stage):
                pass

    @contextmanager
    def stage(self, stage: StartupStage) -> Iterator[None]:
        if stage in self._completed:
            raise StartupOrderError(
                f"Startup stage {stage.name} already ran",
                context={"stage": stage.name},
            )
        missing = [s.name for s in StartupStage if s < stage and s not in self._completed]
        if missing:
            raise StartupOrderError(
                f"Startup stage {stage.name} requires {', '.join(missing)} first",
                context={"stage": stage.name, "missing": missing},
            )

        yield

        self._completed.add(stage)
        logger.debug("Startup stage %s complete", stage.name)


def _log_session_store_error(exc: Exception) -> None:
    logger.error("ERROR in session store: %s", exc)


async def build_context(settings: Settings, sequencer: StartupSequencer) -> AppContext:
    """
    Connect the database and build everything that depends on it.

    Raises:
        DatabaseConnectionError: the database could not be reached. Nothing
            has been bound at this point; the caller exits.
    """
    with sequencer.stage(StartupStage.CONNECT):
        logger.info("Connecting to %s", mask_database_url(settings.database_url))
        database = Database.from_settings(settings)
        await database.connect()
        if settings.auto_create_schema:
            await database.create_schema()

    with sequencer.stage(StartupStage.SESSION_STORE):
        # Built on the live Database, never on a second connection string
        session_store = SessionStore(database)
        session_store.on_error(_log_session_store_error)
        purged = await session_store.purge_expired()
        if purged:
            logger.info("Purged %d expired sessions", purged)

    if settings.uses_default_secret:
        logger.warning("SECRET is not set; using the insecure default session secret")

    files = FileService(settings.storage_root, max_file_size=settings.max_file_size)
    return AppContext(
        settings=settings,
        database=database,
        session_store=session_store,
        authenticator=Authenticator(strategy=LocalStrategy()),
        templates=Templates(),
        files=files,
        listings=ListingService(files),
        reviews=ReviewService(),
        users=UserService(),
    )
