from __future__ import annotations

from fastapi import Request

from ..core.security import AdminSession, AuthGate
from ..middlewares import principal_ctx_var

SESSION_KEY = "sid"


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth


def current_session_id(request: Request) -> str | None:
    return request.session.get(SESSION_KEY)


def _set_principal(request: Request, principal: str) -> None:
    principal_ctx_var.set(principal)
    request.state.principal = principal


async def require_admin_session(request: Request) -> AdminSession:
    """Gate for admin pages.

    Raises ``Unauthenticated``; the app-level handler turns that into a
    redirect to the login form.
    """

    session = get_auth_gate(request).require_session(current_session_id(request))
    _set_principal(request, f"admin:{session.username}")
    return session
