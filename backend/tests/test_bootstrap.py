"""
Wanderlust — Startup Sequencer and Entry Point Tests
====================================================

What:  Stage ordering, and the process-level failure policy of main():
       no DATABASE_URL → exit 1 before any connection attempt;
       unreachable database → exit 1 before any socket is bound.
"""

import logging
from unittest.mock import AsyncMock, patch

import pytest

from wanderlust import main as main_module
from wanderlust.bootstrap import StartupSequencer, StartupStage, build_context
from wanderlust.database import Database
from wanderlust.exceptions import DatabaseConnectionError, StartupOrderError
from wanderlust.main import create_app
from wanderlust.sessions import SessionStore


class TestStartupSequencer:

    def test_stages_run_in_declared_order(self):
        sequencer = StartupSequencer()
        for stage in StartupStage:
            with sequencer.stage(stage):
                pass
        assert sequencer.completed == list(StartupStage)

    def test_stage_before_its_predecessors_is_rejected(self):
        sequencer = StartupSequencer()
        sequencer.mark_complete(StartupStage.CONFIG)

        with pytest.raises(StartupOrderError, match="CONNECT"):
            with sequencer.stage(StartupStage.AUTHENTICATION):
                pass
        assert not sequencer.is_complete(StartupStage.AUTHENTICATION)

    def test_stage_cannot_run_twice(self):
        sequencer = StartupSequencer()
        sequencer.mark_complete(StartupStage.CONFIG)
        with pytest.raises(StartupOrderError, match="already ran"):
            sequencer.mark_complete(StartupStage.CONFIG)

    def test_failed_stage_is_not_marked_complete(self):
        sequencer = StartupSequencer()
        with pytest.raises(RuntimeError):
            with sequencer.stage(StartupStage.CONFIG):
                raise RuntimeError("boom")
        assert sequencer.completed == []

    @pytest.mark.asyncio
    async def test_build_context_requires_config(self, settings):
        with pytest.raises(StartupOrderError, match="CONFIG"):
            await build_context(settings, StartupSequencer())

    @pytest.mark.asyncio
    async def test_create_app_completes_middle_stages(self, context, sequencer):
        create_app(context, sequencer)
        assert sequencer.completed == [
            StartupStage.CONFIG,
            StartupStage.CONNECT,
            StartupStage.SESSION_STORE,
            StartupStage.SESSION,
            StartupStage.AUTHENTICATION,
            StartupStage.LOCALS,
            StartupStage.ROUTERS,
            StartupStage.ERROR_FUNNEL,
        ]

    @pytest.mark.asyncio
    async def test_create_app_before_connect_is_rejected(self, context):
        fresh = StartupSequencer()
        fresh.mark_complete(StartupStage.CONFIG)
        with pytest.raises(StartupOrderError, match="CONNECT"):
            create_app(context, fresh)

    @pytest.mark.asyncio
    async def test_middleware_runs_in_registration_order(self, app):
        names = [m.cls.__name__ for m in app.user_middleware]
        assert names == [
            "RequestIDMiddleware",
            "RequestLoggingMiddleware",
            "MethodOverrideMiddleware",
            "SessionMiddleware",
            "FlashMiddleware",
            "AuthenticationMiddleware",
            "LocalsMiddleware",
            "ErrorFunnelMiddleware",
        ]


class TestSessionStoreConstruction:

    def test_rejects_unconnected_database(self):
        with pytest.raises(StartupOrderError):
            SessionStore(Database("sqlite+aiosqlite://"))

    def test_engine_before_connect_is_rejected(self):
        with pytest.raises(StartupOrderError):
            Database("sqlite+aiosqlite://").engine


class TestMain:

    @pytest.fixture(autouse=True)
    def isolated(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "storage"))
        # main() reconfigures the root logger; keep pytest's handlers intact
        with patch.object(main_module, "setup_logging"):
            yield

    def test_missing_database_url_exits_before_connecting(self, caplog):
        with patch.object(Database, "connect", new_callable=AsyncMock) as connect, \
             caplog.at_level(logging.INFO):
            assert main_module.main() == 1

        connect.assert_not_called()
        assert "DATABASE_URL is not set" in caplog.text
        assert "connection successful" not in caplog.text

    def test_unreachable_database_exits_without_listening(self, monkeypatch, caplog):
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:pw@unreachable:5432/db")
        failure = DatabaseConnectionError("Database is unreachable: connection refused")

        with patch.object(Database, "connect", new=AsyncMock(side_effect=failure)), \
             patch.object(main_module.WanderlustServer, "serve", new_callable=AsyncMock) as serve, \
             caplog.at_level(logging.INFO):
            assert main_module.main() == 1

        serve.assert_not_called()
        assert "Database is unreachable" in caplog.text
        assert "server is running" not in caplog.text
        # The password never reaches the log
        assert "pw@" not in caplog.text

    def test_clean_shutdown_exits_zero_and_disposes(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'main.db'}")

        original_dispose = Database.dispose
        with patch.object(main_module.WanderlustServer, "serve", new_callable=AsyncMock) as serve, \
             patch.object(Database, "dispose", autospec=True, side_effect=original_dispose) as dispose:
            assert main_module.main() == 0

        serve.assert_awaited_once()
        assert dispose.call_count >= 1
