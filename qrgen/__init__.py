"""Application factory and top-level wiring for the QR inventory app.

``create_app`` brings together configuration, the database handle, the admin
session store, middleware, routers and error handling. Everything stateful is
built here and hung off ``app.state`` so tests can pass their own storage or
session store in.
"""

from __future__ import annotations

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from .core.config import AppSettings, get_settings
from .core.errors import register_exception_handlers
from .core.jinja import build_templates
from .core.security import AuthGate, SessionStore
from .db.migrate import bootstrap_storage
from .db.session import Storage
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware
from .routers import admin_ui, api_items, form_ui


def create_app(
    settings: AppSettings | None = None,
    *,
    storage: Storage | None = None,
    sessions: SessionStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    storage = storage or Storage.from_url(settings.database_url, pool_size=settings.DB_POOL_SIZE)
    # Raises StorageUnavailable when the database cannot be reached; startup stops here.
    bootstrap_storage(storage, settings)

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    app.state.storage = storage
    app.state.auth = AuthGate.from_settings(settings, sessions)
    app.state.templates = build_templates(settings.templates_dir)

    # Middleware added last runs first: request ids wrap everything, the session
    # cookie is decoded before any router sees the request.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=False,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(form_ui.router)
    app.include_router(admin_ui.router)
    app.include_router(api_items.router)

    register_exception_handlers(app)
    return app


__all__ = ["create_app"]
