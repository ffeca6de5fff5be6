"""
Wanderlust — Flash Message Tests
================================

Flash messages live in the session and are consumed by the first render
that reads them.
"""

import pytest

from helpers import signup
from wanderlust.flash import FLASH_KEY, FlashMessages
from wanderlust.sessions import Session


class TestFlashMessages:

    def test_push_then_consume_once(self):
        session = Session("sid")
        flash = FlashMessages(session)

        flash.push("success", "New Listing Created!")

        assert flash.consume("success") == ["New Listing Created!"]
        assert flash.consume("success") == []

    def test_consume_clears_only_its_category(self):
        session = Session("sid")
        flash = FlashMessages(session)
        flash.push("success", "saved")
        flash.push("error", "but also this")

        flash.consume("success")

        assert flash.peek("error") == ["but also this"]

    def test_empty_queues_leave_no_trace_in_session(self):
        session = Session("sid")
        flash = FlashMessages(session)
        flash.push("error", "oops")

        flash.consume("error")

        assert FLASH_KEY not in session
        assert not session

    def test_messages_queue_in_order(self):
        flash = FlashMessages(Session("sid"))
        flash.push("success", "one")
        flash.push("success", "two")
        assert flash.peek("success") == ["one", "two"]
        assert flash.consume("success") == ["one", "two"]


class TestFlashRoundTrip:

    @pytest.mark.asyncio
    async def test_flash_is_shown_on_next_page_only(self, client):
        response = await signup(client, "flashy")
        assert response.status_code == 302

        first = await client.get("/listings")
        assert "Welcome to Wanderlust!" in first.text

        second = await client.get("/listings")
        assert "Welcome to Wanderlust!" not in second.text

    @pytest.mark.asyncio
    async def test_anonymous_visitor_gets_no_session_cookie(self, client):
        response = await client.get("/listings")
        assert response.status_code == 200
        assert "set-cookie" not in response.headers
