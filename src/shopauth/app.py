# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import BackgroundTasks, Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from shopauth.auth.passwords import make_hasher
from shopauth.auth.session import SessionGateway, clear_flash, read_flash, set_flash
from shopauth.auth.users import UserStore
from shopauth.config import Settings
from shopauth.errors import AuthError, PasswordMismatch, StoreUnavailable
from shopauth.permissions import current_user_optional, require_user
from shopauth.services.auth_service import AuthService
from shopauth.services.notifier import Notifier

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def create_app(
    settings: Optional[Settings] = None,
    *,
    service: Optional[AuthService] = None,
) -> FastAPI:
    """Build the web app. ``settings`` defaults to ``Settings.from_env()``."""
    settings = settings or Settings.from_env()
    if service is None:
        service = AuthService(
            settings=settings,
            store=UserStore(settings.users_path),
            notifier=Notifier(settings),
            hasher=make_hasher(settings),
        )

    app = FastAPI()
    app.state.settings = settings
    app.state.store = service.store
    app.state.auth = service
    _register_routes(app)
    return app


def _safe_next(next_url: str) -> str:
    n = (next_url or "").strip()
    if not n.startswith("/") or n.startswith("//"):
        return "/"
    return n


def _render(request: Request, template_name: str, ctx: dict):
    """TemplateResponse wrapper: injects the current user and pops the flash message."""
    settings: Settings = request.app.state.settings
    base_ctx = {
        "request": request,
        "current_user": current_user_optional(request),
        "error": read_flash(settings, request),
    }
    merged = {**base_ctx, **(ctx or {})}
    resp = templates.TemplateResponse(request, template_name, merged)
    clear_flash(settings, request, resp)
    return resp


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _fail(request: Request, url: str, exc: AuthError) -> RedirectResponse:
    resp = _redirect(url)
    if isinstance(exc, StoreUnavailable):
        logger.error("Store unavailable while handling %s %s", request.method, request.url.path)
        return resp
    set_flash(request.app.state.settings, resp, exc.message)
    return resp


def _register_routes(app: FastAPI) -> None:
    # ------------------ Pages ------------------

    @app.get("/", response_class=HTMLResponse)
    def home(request: Request):
        return _render(request, "index.html", {})

    @app.get("/account", response_class=HTMLResponse)
    def account(request: Request, user=Depends(require_user)):
        return _render(request, "account.html", {"user": user})

    # ------------------ Login / logout ------------------

    @app.get("/login", response_class=HTMLResponse)
    def login_get(request: Request, next: str = "/"):
        if current_user_optional(request):
            return _redirect(_safe_next(next))
        return _render(request, "auth/login.html", {"next": _safe_next(next)})

    @app.post("/login")
    def login_post(
        request: Request,
        email: str = Form(...),
        password: str = Form(...),
        next: str = Form("/"),
    ):
        target = _safe_next(next)
        resp = _redirect(target)
        session = SessionGateway(request.app.state.settings, request, resp)
        try:
            request.app.state.auth.login(email, password, session)
        except AuthError as exc:
            back = "/login" if target == "/" else f"/login?next={quote(target)}"
            return _fail(request, back, exc)
        return resp

    @app.post("/logout")
    def logout_post(request: Request):
        resp = _redirect("/")
        request.app.state.auth.logout(SessionGateway(request.app.state.settings, request, resp))
        return resp

    # ------------------ Signup ------------------

    @app.get("/signup", response_class=HTMLResponse)
    def signup_get(request: Request):
        return _render(request, "auth/signup.html", {})

    @app.post("/signup")
    def signup_post(
        request: Request,
        background: BackgroundTasks,
        email: str = Form(..., min_length=1),
        password: str = Form(..., min_length=1),
        confirmPassword: str = Form(""),
    ):
        try:
            request.app.state.auth.signup(email, password, confirmPassword, defer=background.add_task)
        except AuthError as exc:
            return _fail(request, "/signup", exc)
        return _redirect("/login")

    # ------------------ Password reset ------------------

    @app.get("/reset", response_class=HTMLResponse)
    def reset_get(request: Request):
        return _render(request, "auth/reset.html", {})

    @app.post("/reset")
    def reset_post(request: Request, background: BackgroundTasks, email: str = Form(...)):
        try:
            request.app.state.auth.request_reset(email, defer=background.add_task)
        except AuthError as exc:
            return _fail(request, "/reset", exc)
        return _redirect("/")

    @app.get("/reset/{token}", response_class=HTMLResponse)
    def new_password_get(request: Request, token: str):
        try:
            user_id, password_token = request.app.state.auth.resolve_reset_token(token)
        except AuthError as exc:
            return _fail(request, "/reset", exc)
        return _render(
            request,
            "auth/new_password.html",
            {"user_id": user_id, "password_token": password_token},
        )

    @app.post("/new-password")
    def new_password_post(
        request: Request,
        userId: str = Form(...),
        passwordToken: str = Form(...),
        password: str = Form(..., min_length=1),
        confirmPassword: str = Form(...),
    ):
        auth: AuthService = request.app.state.auth
        try:
            auth.complete_reset(userId, passwordToken, password, confirmPassword)
        except AuthError as exc:
            back = "/reset"
            if isinstance(exc, PasswordMismatch):
                back = f"/reset/{quote(passwordToken, safe='')}"
            return _fail(request, back, exc)
        return _redirect("/login")
