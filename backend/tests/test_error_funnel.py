"""
Wanderlust — Error Funnel Tests
===============================

What:  The terminal error handler, exercised directly as ASGI middleware
       around tiny inner apps, plus end-to-end checks through the real app.

Properties covered:
    - errors before headers are sent become one rendered error page
    - a second response start is suppressed with exactly one warning
    - errors after headers are sent are logged, never re-rendered or raised
    - a failing error template falls back to a text/plain 500
    - malformed ids are 400s that never show the driver-style message
"""

import logging
from unittest.mock import MagicMock

import pytest
from starlette.responses import PlainTextResponse

from wanderlust.exceptions import MalformedIdentifierError, NotFoundError, WanderlustError
from wanderlust.middleware.error_funnel import ErrorFunnel, ErrorFunnelMiddleware
from wanderlust.templating import Templates

FUNNEL_LOGGER = "wanderlust.middleware.error_funnel"


def _scope(path: str = "/boom") -> dict:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"test")],
        "client": ("127.0.0.1", 50000),
        "server": ("test", 80),
    }


async def _call(app, path: str = "/boom") -> list:
    sent = []

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message):
        sent.append(message)

    await app(_scope(path), receive, send)
    return sent


def _starts(sent: list) -> list:
    return [m for m in sent if m["type"] == "http.response.start"]


def _body(sent: list) -> bytes:
    return b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body")


@pytest.fixture
def funnel() -> ErrorFunnel:
    return ErrorFunnel(Templates())


class TestClassification:

    def test_malformed_identifier_becomes_400(self):
        error = ErrorFunnel.classify(MalformedIdentifierError("abc", model="Listing"))
        assert error.status_code == 400
        assert error.message == "Invalid ID format!"

    def test_wanderlust_errors_keep_status_and_message(self):
        error = ErrorFunnel.classify(NotFoundError("Review not found"))
        assert (error.status_code, error.message) == (404, "Review not found")

    def test_unknown_errors_are_generic_500(self):
        error = ErrorFunnel.classify(KeyError("secret internals"))
        assert error.status_code == 500
        assert error.message == "Something went wrong"


class TestErrorFunnelMiddleware:

    @pytest.mark.asyncio
    async def test_error_before_commit_renders_error_page(self, funnel):
        async def inner(scope, receive, send):
            raise NotFoundError()

        sent = await _call(ErrorFunnelMiddleware(inner, funnel))

        starts = _starts(sent)
        assert len(starts) == 1
        assert starts[0]["status"] == 404
        assert b"Page Not Found!" in _body(sent)

    @pytest.mark.asyncio
    async def test_unexpected_error_hides_its_text(self, funnel, caplog):
        async def inner(scope, receive, send):
            raise RuntimeError("connection string postgres://secret")

        with caplog.at_level(logging.ERROR, logger=FUNNEL_LOGGER):
            sent = await _call(ErrorFunnelMiddleware(inner, funnel))

        assert _starts(sent)[0]["status"] == 500
        body = _body(sent)
        assert b"Something went wrong" in body
        assert b"postgres://secret" not in body
        assert "postgres://secret" in caplog.text

    @pytest.mark.asyncio
    async def test_double_send_is_suppressed_with_one_warning(self, funnel, caplog):
        async def inner(scope, receive, send):
            for _ in range(3):
                await PlainTextResponse("hello")(scope, receive, send)

        with caplog.at_level(logging.WARNING, logger=FUNNEL_LOGGER):
            sent = await _call(ErrorFunnelMiddleware(inner, funnel))

        assert len(_starts(sent)) == 1
        assert _body(sent) == b"hello"
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "Suppressed a second response" in warnings[0].getMessage()

    @pytest.mark.asyncio
    async def test_error_after_commit_is_logged_not_rendered(self, funnel, caplog):
        async def inner(scope, receive, send):
            await send({"type": "http.response.start", "status": 200, "headers": []})
            await send({"type": "http.response.body", "body": b"partial", "more_body": True})
            raise WanderlustError("late failure")

        with caplog.at_level(logging.ERROR, logger=FUNNEL_LOGGER):
            sent = await _call(ErrorFunnelMiddleware(inner, funnel))

        starts = _starts(sent)
        assert len(starts) == 1
        assert starts[0]["status"] == 200
        assert "Headers already sent" in caplog.text

    @pytest.mark.asyncio
    async def test_render_failure_falls_back_to_plain_500(self, caplog):
        broken = MagicMock(spec=Templates)
        broken.render.side_effect = RuntimeError("template exploded")

        async def inner(scope, receive, send):
            raise NotFoundError()

        with caplog.at_level(logging.ERROR, logger=FUNNEL_LOGGER):
            sent = await _call(ErrorFunnelMiddleware(inner, ErrorFunnel(broken)))

        start = _starts(sent)[0]
        assert start["status"] == 500
        assert (b"content-type", b"text/plain; charset=utf-8") in start["headers"]
        assert _body(sent) == b"Something went wrong"
        assert "Error while rendering error page" in caplog.text

    @pytest.mark.asyncio
    async def test_lifespan_scope_passes_through(self, funnel):
        seen = []

        async def inner(scope, receive, send):
            seen.append(scope["type"])

        async def noop():
            return {}

        await ErrorFunnelMiddleware(inner, funnel)({"type": "lifespan"}, noop, noop)
        assert seen == ["lifespan"]


class TestThroughTheApp:

    @pytest.mark.asyncio
    async def test_malformed_listing_id_is_400_without_driver_text(self, client):
        response = await client.get("/listings/not-a-valid-id")

        assert response.status_code == 400
        assert "Invalid ID format!" in response.text
        assert "Cast to UUID" not in response.text
        assert "not-a-valid-id" not in response.text

    @pytest.mark.asyncio
    async def test_unknown_path_is_404_page(self, client):
        response = await client.get("/definitely/not/here")
        assert response.status_code == 404
        assert "Page Not Found!" in response.text

    @pytest.mark.asyncio
    async def test_unknown_path_with_other_methods_is_404(self, client):
        response = await client.delete("/nowhere")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_form_fields_render_400(self, client):
        response = await client.post("/login", data={"username": "someone"})
        assert response.status_code == 400
        assert "text/html" in response.headers["content-type"]
