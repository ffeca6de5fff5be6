"""
Wanderlust: User Routes
=======================

    GET  /signup   signup form
    POST /signup   register, log in, redirect to /listings
    GET  /login    login form
    POST /login    authenticate, redirect to the remembered URL or /listings
    GET  /logout   log out, redirect to /listings
"""

import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from wanderlust.context import get_context
from wanderlust.database import get_db_session
from wanderlust.exceptions import ValidationError
from wanderlust.flash import flash
from wanderlust.guards import pop_redirect_url

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


@router.get("/signup", summary="Signup form")
async def signup_form(request: Request):
    return get_context(request).templates.render(request, "users/signup.html")


@router.post("/signup", summary="Register a new account")
async def signup(
    request: Request,
    username: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    db: AsyncSession = Depends(get_db_session),
):
    ctx = get_context(request)
    try:
        user = await ctx.users.register(db, username, email, password)
    except ValidationError as exc:
        flash(request, "error", exc.message)
        return RedirectResponse("/signup", status_code=302)

    ctx.authenticator.login(request, user)
    flash(request, "success", "Welcome to Wanderlust!")
    return RedirectResponse("/listings", status_code=302)


@router.get("/login", summary="Login form")
async def login_form(request: Request):
    return get_context(request).templates.render(request, "users/login.html")


@router.post("/login", summary="Log in")
async def login(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    db: AsyncSession = Depends(get_db_session),
):
    ctx = get_context(request)
    user = await ctx.authenticator.authenticate(db, username, password)
    if user is None:
        flash(request, "error", "Invalid username or password")
        return RedirectResponse("/login", status_code=302)

    redirect_url = pop_redirect_url(request)
    ctx.authenticator.login(request, user)
    flash(request, "success", "Welcome back to Wanderlust!")
    return RedirectResponse(redirect_url, status_code=302)


@router.get("/logout", summary="Log out")
async def logout(request: Request):
    get_context(request).authenticator.logout(request)
    flash(request, "success", "You are logged out!")
    return RedirectResponse("/listings", status_code=302)
