# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from secretwall.auth.errors import AuthError, ErrorKind, InvalidInput
from secretwall.auth.passwords import CredentialHasher
from secretwall.auth.service import Authenticator
from secretwall.auth.session import COOKIE_NAME, Session, SessionManager
from secretwall.auth.users import InMemoryUserStore, UserStore
from secretwall.infra.user_repo import DEFAULT_TIMEOUT_SECONDS, DEFAULT_USERS_PATH, YamlUserStore
from secretwall.permissions import CurrentUser, cookie_settings, current_user_optional, require_user, session_token
from secretwall.services.secret_service import list_secrets, submit_secret

_logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def build_store_from_env() -> UserStore:
    kind = os.getenv("SECRETWALL_STORE", "yaml").strip().lower()
    if kind == "memory":
        return InMemoryUserStore()
    if kind != "yaml":
        raise RuntimeError(f"Unknown SECRETWALL_STORE: {kind}")
    path = Path(os.getenv("SECRETWALL_USERS_PATH", str(DEFAULT_USERS_PATH))).resolve()
    timeout = float(os.getenv("SECRETWALL_STORE_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS)))
    return YamlUserStore(path, timeout=timeout)


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, status_code: int = 200):
    """TemplateResponse wrapper injecting the session state."""
    base_ctx = {
        "request": request,
        "current_user": getattr(request.state, "user", None),
    }
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _start_session(request: Request, session: Session, url: str = "/secrets") -> RedirectResponse:
    sessions: SessionManager = request.app.state.sessions
    resp = _redirect(url)
    resp.set_cookie(
        COOKIE_NAME,
        sessions.dump_cookie(session.token),
        max_age=sessions.max_age,
        **cookie_settings(),
    )
    return resp


def create_app(
    *,
    store: Optional[UserStore] = None,
    hasher: Optional[CredentialHasher] = None,
    sessions: Optional[SessionManager] = None,
) -> FastAPI:
    app = FastAPI(title="secretwall")

    app.state.store = store if store is not None else build_store_from_env()
    app.state.hasher = hasher if hasher is not None else CredentialHasher.from_env()
    app.state.sessions = sessions if sessions is not None else SessionManager.from_env()
    app.state.auth = Authenticator(app.state.store, app.state.hasher, app.state.sessions)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    @app.middleware("http")
    async def _auth_middleware(request: Request, call_next):
        request.state.user = current_user_optional(request)
        return await call_next(request)

    @app.exception_handler(AuthError)
    async def _auth_error_handler(request: Request, exc: AuthError):
        # Anything reaching here is not user-correctable; keep the detail server-side.
        _logger.error("%s %s failed: %s", request.method, request.url.path, exc.kind.value, exc_info=exc)
        status = 503 if exc.kind is ErrorKind.STORE_UNAVAILABLE else 500
        return _render(request, "error.html", {}, status_code=status)

    # ------------------ Routes ------------------

    @app.get("/", response_class=HTMLResponse)
    def home(request: Request):
        return _render(request, "home.html")

    @app.get("/healthz")
    def healthz():
        return JSONResponse({"status": "ok"})

    @app.get("/register", response_class=HTMLResponse)
    def register_get(request: Request):
        if getattr(request.state, "user", None):
            return _redirect("/secrets")
        return _render(request, "register.html")

    @app.post("/register")
    async def register_post(request: Request, username: str = Form(""), password: str = Form("")):
        auth: Authenticator = request.app.state.auth
        try:
            session = await auth.register(username, password)
        except AuthError as e:
            if not e.recoverable:
                raise
            _logger.info("Registration rejected: %s", e.kind.value)
            return _redirect("/register")
        return _start_session(request, session)

    @app.get("/login", response_class=HTMLResponse)
    def login_get(request: Request):
        if getattr(request.state, "user", None):
            return _redirect("/secrets")
        return _render(request, "login.html")

    @app.post("/login")
    async def login_post(request: Request, username: str = Form(""), password: str = Form("")):
        auth: Authenticator = request.app.state.auth
        try:
            session = await auth.login(username, password)
        except AuthError as e:
            if not e.recoverable:
                raise
            return _redirect("/login")
        return _start_session(request, session)

    @app.get("/secrets", response_class=HTMLResponse)
    async def secrets_get(request: Request):
        users = await list_secrets(request.app.state.store)
        return _render(request, "secrets.html", {"users_with_secrets": users})

    @app.get("/submit", response_class=HTMLResponse)
    def submit_get(request: Request, user: CurrentUser = Depends(require_user)):
        return _render(request, "submit.html")

    @app.post("/submit")
    async def submit_post(request: Request, secret: str = Form(""), user: CurrentUser = Depends(require_user)):
        try:
            await submit_secret(request.app.state.store, user.user_id, secret)
        except InvalidInput:
            return _redirect("/submit")
        return _redirect("/secrets")

    @app.get("/logout")
    def logout(request: Request):
        auth: Authenticator = request.app.state.auth
        auth.logout(session_token(request))
        resp = _redirect("/")
        resp.delete_cookie(COOKIE_NAME)
        return resp

    return app
