"""
Wanderlust — Application Factory and Process Entry Point
========================================================

What:  Assembles the FastAPI application from an AppContext and runs it
       under uvicorn.
How:   `main()` walks the startup stages (see bootstrap.py) in order and
       turns startup failures into exit codes.

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                    FastAPI App                          │
    │                                                         │
    │  Middleware chain (outermost first):                    │
    │   Request ID → Access log → Method override → Session   │
    │   → Flash → Authentication → Locals → Error funnel      │
    │                                                         │
    │  Routes:                                                │
    │   /listings  /listings/{listing_id}/reviews             │
    │   /signup /login /logout  /health  /uploads/*           │
    │   /{anything else} → 404                                │
    └─────────────────────────────────────────────────────────┘

Exit codes:
    0  clean shutdown
    1  missing/invalid configuration, or the database is unreachable
"""

import asyncio
import logging
import sys
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware import Middleware

from wanderlust import __version__
from wanderlust.bootstrap import StartupSequencer, StartupStage, build_context
from wanderlust.config import Settings, load_settings
from wanderlust.context import AppContext
from wanderlust.exceptions import ConfigurationError, DatabaseConnectionError
from wanderlust.middleware.authentication import AuthenticationMiddleware
from wanderlust.middleware.error_funnel import ErrorFunnel, ErrorFunnelMiddleware
from wanderlust.middleware.flash import FlashMiddleware
from wanderlust.middleware.locals import LocalsMiddleware
from wanderlust.middleware.logging import RequestLoggingMiddleware
from wanderlust.middleware.method_override import MethodOverrideMiddleware
from wanderlust.middleware.request_id import RequestIDLogFilter, RequestIDMiddleware
from wanderlust.middleware.session import SessionMiddleware
from wanderlust.routes import fallback, health, listings, reviews, users
from wanderlust.services.file_service import UPLOAD_URL_PREFIX

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the whole process. Called once, before anything
    else logs.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI, funnel: ErrorFunnel) -> None:
    """
    Point FastAPI's own HTTPException and RequestValidationError handlers at
    the error funnel, so framework-raised 404/405/422 render the same error
    page as everything the funnel middleware catches.
    """

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return funnel.render(request, exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return funnel.render(request, exc)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def _use(app: FastAPI, middleware_class: Any, **options: Any) -> None:
    """
    Register middleware in execution order: the first registered is the
    outermost. (`app.add_middleware` prepends, i.e. the reverse.)
    """
    app.user_middleware.append(Middleware(middleware_class, **options))


def create_app(context: AppContext, sequencer: StartupSequencer) -> FastAPI:
    """
    Build the application for an already-connected context.

    Runs stages SESSION through ERROR_FUNNEL; CONNECT and SESSION_STORE must
    already be complete.
    """
    settings = context.settings
    app = FastAPI(
        title="Wanderlust",
        description="Vacation-rental listings with reviews and user accounts.",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )
    app.state.context = context

    _use(app, RequestIDMiddleware)
    _use(app, RequestLoggingMiddleware)
    _use(app, MethodOverrideMiddleware)

    with sequencer.stage(StartupStage.SESSION):
        _use(
            app,
            SessionMiddleware,
            store=context.session_store,
            secret=settings.secret,
            cookie_name=settings.session_cookie,
            max_age=settings.session_max_age,
        )
        _use(app, FlashMiddleware)

    with sequencer.stage(StartupStage.AUTHENTICATION):
        _use(
            app,
            AuthenticationMiddleware,
            authenticator=context.authenticator,
            database=context.database,
        )

    with sequencer.stage(StartupStage.LOCALS):
        _use(app, LocalsMiddleware)

    with sequencer.stage(StartupStage.ROUTERS):
        app.include_router(listings.router)
        app.include_router(reviews.router)
        app.include_router(users.router)
        app.include_router(health.router)
        app.mount(
            UPLOAD_URL_PREFIX,
            StaticFiles(directory=str(context.files.storage_root), check_dir=False),
            name="uploads",
        )
        # Must stay last: matches every path
        app.include_router(fallback.router)

    with sequencer.stage(StartupStage.ERROR_FUNNEL):
        funnel = ErrorFunnel(context.templates)
        _use(app, ErrorFunnelMiddleware, funnel=funnel)
        register_exception_handlers(app, funnel)

    return app


# ══════════════════════════════════════════════════════════════════════════
# Server
# ══════════════════════════════════════════════════════════════════════════

class WanderlustServer(uvicorn.Server):
    """uvicorn server that completes the LISTEN stage once the socket is bound."""

    def __init__(self, config: uvicorn.Config, sequencer: StartupSequencer):
        super().__init__(config)
        self.sequencer = sequencer

    async def startup(self, sockets: Optional[list] = None) -> None:
        await super().startup(sockets=sockets)
        if self.should_exit:
            return
        with self.sequencer.stage(StartupStage.LISTEN):
            logger.info("server is running on port %d", self.config.port)


async def serve(settings: Settings, sequencer: StartupSequencer) -> int:
    """
    Connect, build the app, and serve until stopped.

    Raises:
        DatabaseConnectionError: before any socket is bound.
    """
    context = await build_context(settings, sequencer)
    try:
        app = create_app(context, sequencer)
        config = uvicorn.Config(
            app,
            host=settings.host,
            port=settings.port,
            log_config=None,
            proxy_headers=True,
        )
        await WanderlustServer(config, sequencer).serve()
    finally:
        logger.info("Wanderlust shutting down...")
        await context.database.dispose()
    logger.info("Shutdown complete.")
    return 0


def main() -> int:
    """Console entry point (`wanderlust`, `python -m wanderlust`)."""
    sequencer = StartupSequencer()
    try:
        with sequencer.stage(StartupStage.CONFIG):
            settings = load_settings()
    except ConfigurationError as exc:
        setup_logging()
        logger.critical("%s", exc.message)
        return 1

    setup_logging(settings.log_level)
    try:
        return asyncio.run(serve(settings, sequencer))
    except DatabaseConnectionError as exc:
        logger.critical("%s", exc.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())
