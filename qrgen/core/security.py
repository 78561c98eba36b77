"""Admin authentication: one configured account and server-side sessions.

*What:* ``AuthGate`` checks the single admin credential and hands out
``AdminSession`` records kept in a ``SessionStore``.
*When:* The login/logout routes call it directly; ``deps.auth`` calls it before
every admin-only page.
*How:* Passwords are compared with bcrypt unless the deployment explicitly opts
into the plaintext offline mode. The browser only ever holds a random session
id, so logging out kills the session even if an old cookie is replayed.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable

import bcrypt

from .config import AppSettings
from .errors import InvalidCredentials, Unauthenticated

logger = logging.getLogger("qrgen.auth")

DEFAULT_OFFLINE_PASSWORD = "admin123"


def hash_password(plain: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in configuration.
        logger.error("auth.bad_password_hash")
        return False


@dataclass(frozen=True)
class AdminSession:
    session_id: str
    username: str
    created_at: float
    expires_at: float


@dataclass(frozen=True)
class AdminCredential:
    username: str
    password_hash: str = ""
    plaintext_password: str = ""

    @property
    def insecure(self) -> bool:
        return bool(self.plaintext_password)


class SessionStore:
    """In-process session table keyed by session id."""

    def __init__(self, max_age: int, clock: Callable[[], float] = time.time) -> None:
        self.max_age = max_age
        self._clock = clock
        self._sessions: dict[str, AdminSession] = {}
        self._lock = threading.Lock()

    def create(self, username: str) -> AdminSession:
        now = self._clock()
        session = AdminSession(
            session_id=secrets.token_urlsafe(32),
            username=username,
            created_at=now,
            expires_at=now + self.max_age,
        )
        with self._lock:
            self._purge_expired(now)
            self._sessions[session.session_id] = session
        return session

    def _purge_expired(self, now: float) -> None:
        expired = [sid for sid, held in self._sessions.items() if held.expires_at <= now]
        for sid in expired:
            del self._sessions[sid]

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get(self, session_id: str | None) -> AdminSession | None:
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None and session.expires_at <= self._clock():
                del self._sessions[session_id]
                return None
        return session

    def destroy(self, session_id: str | None) -> None:
        if not session_id:
            return
        with self._lock:
            self._sessions.pop(session_id, None)


class AuthGate:
    def __init__(self, credential: AdminCredential, sessions: SessionStore) -> None:
        if not credential.password_hash and not credential.plaintext_password:
            raise ValueError("admin credential needs a password hash or a plaintext password")
        self.credential = credential
        self.sessions = sessions

    @classmethod
    def from_settings(cls, settings: AppSettings, sessions: SessionStore | None = None) -> "AuthGate":
        if sessions is None:
            sessions = SessionStore(max_age=settings.SESSION_MAX_AGE)
        if settings.ADMIN_INSECURE_PLAINTEXT and settings.ADMIN_PASSWORD:
            logger.warning("auth.insecure_plaintext_mode")
            credential = AdminCredential(settings.ADMIN_USERNAME, plaintext_password=settings.ADMIN_PASSWORD)
            return cls(credential, sessions)

        password_hash = settings.ADMIN_PASSWORD_HASH.strip()
        if not password_hash:
            logger.warning("auth.default_password_in_use")
            password_hash = hash_password(DEFAULT_OFFLINE_PASSWORD)
        return cls(AdminCredential(settings.ADMIN_USERNAME, password_hash=password_hash), sessions)

    def _password_matches(self, password: str) -> bool:
        if self.credential.insecure:
            return hmac.compare_digest(password.encode("utf-8"), self.credential.plaintext_password.encode("utf-8"))
        return verify_password(password, self.credential.password_hash)

    def login(self, username: str, password: str) -> AdminSession:
        user_ok = hmac.compare_digest(username.encode("utf-8"), self.credential.username.encode("utf-8"))
        # Always pay for the password check so a wrong username takes as long as a wrong password.
        password_ok = self._password_matches(password)
        if not (user_ok and password_ok):
            logger.info("auth.login_failed")
            raise InvalidCredentials()
        session = self.sessions.create(self.credential.username)
        logger.info("auth.login", extra={"extra_data": {"principal": session.username}})
        return session

    def require_session(self, session_id: str | None) -> AdminSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise Unauthenticated()
        return session

    def logout(self, session_id: str | None) -> None:
        self.sessions.destroy(session_id)
