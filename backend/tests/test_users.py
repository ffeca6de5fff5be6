"""
Wanderlust — Account Tests
==========================

Signup, login, logout and the post-login redirect.
"""

import logging
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from helpers import TEST_PASSWORD, signup
from wanderlust.models.user import User
from wanderlust.services.user_service import DUPLICATE_USERNAME_MESSAGE


class TestSignup:

    @pytest.mark.asyncio
    async def test_signup_logs_in(self, client, context):
        response = await signup(client, "alice")

        assert response.status_code == 302
        assert response.headers["location"] == "/listings"
        page = await client.get("/listings")
        assert "Welcome to Wanderlust!" in page.text
        assert "Log out" in page.text

        async with context.database.session() as db:
            user = (await db.execute(select(User).where(User.username == "alice"))).scalar_one()
        assert user.email == "alice@example.com"
        assert user.password_hash != TEST_PASSWORD

    @pytest.mark.asyncio
    async def test_duplicate_username_flashes_error(self, make_client):
        first, second = make_client(), make_client()
        await signup(first, "alice")

        response = await signup(second, "alice")

        assert response.status_code == 302
        assert response.headers["location"] == "/signup"
        page = await second.get("/signup")
        assert DUPLICATE_USERNAME_MESSAGE in page.text

    @pytest.mark.asyncio
    async def test_signup_form_renders(self, client):
        response = await client.get("/signup")
        assert response.status_code == 200
        assert 'name="username"' in response.text


class TestLogin:

    @pytest.mark.asyncio
    async def test_wrong_password(self, make_client):
        await signup(make_client(), "bob")
        browser = make_client()

        response = await browser.post("/login", data={"username": "bob", "password": "nope"})

        assert response.status_code == 302
        assert response.headers["location"] == "/login"
        assert "Invalid username or password" in (await browser.get("/login")).text

    @pytest.mark.asyncio
    async def test_unknown_user(self, client):
        response = await client.post("/login", data={"username": "ghost", "password": "x"})
        assert response.headers["location"] == "/login"

    @pytest.mark.asyncio
    async def test_login_returns_to_remembered_page(self, make_client):
        await signup(make_client(), "carol")
        browser = make_client()

        blocked = await browser.get("/listings/new")
        assert blocked.status_code == 401

        response = await browser.post(
            "/login", data={"username": "carol", "password": TEST_PASSWORD}
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/listings/new"
        assert (await browser.get("/listings/new")).status_code == 200

    @pytest.mark.asyncio
    async def test_login_defaults_to_listings(self, make_client):
        await signup(make_client(), "dave")
        browser = make_client()

        response = await browser.post("/login", data={"username": "dave", "password": TEST_PASSWORD})

        assert response.headers["location"] == "/listings"
        assert "Welcome back to Wanderlust!" in (await browser.get("/listings")).text


class TestLogout:

    @pytest.mark.asyncio
    async def test_logout_ends_authentication(self, client):
        await signup(client, "erin")

        response = await client.get("/logout")

        assert response.status_code == 302
        assert response.headers["location"] == "/listings"
        assert "You are logged out!" in (await client.get("/listings")).text
        assert (await client.get("/listings/new")).status_code == 401


class TestAuthenticationMiddleware:

    @pytest.mark.asyncio
    async def test_database_failure_while_loading_user_degrades_to_anonymous(
        self, client, context, caplog
    ):
        await signup(client, "frank")
        failure = OperationalError("SELECT", {}, Exception("database went away"))

        with patch.object(
            context.authenticator, "deserialize_user", AsyncMock(side_effect=failure)
        ), caplog.at_level(logging.ERROR, logger="wanderlust.middleware.authentication"):
            page = await client.get("/listings")
            guarded = await client.get("/listings/new")

        assert page.status_code == 200
        assert "Log out" not in page.text
        assert guarded.status_code == 401
        assert "Could not load session user" in caplog.text

        # The login survives the outage
        assert (await client.get("/listings/new")).status_code == 200
