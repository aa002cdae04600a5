"""Server-side sessions and the login gate.

The browser only ever holds an opaque token (inside the signed session
cookie); whether that token is authenticated, and as whom, lives here.
"""

import logging
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from auth import get_user_by_username, verify_password
from config import DEFAULT_USERNAME, SESSION_TTL_MINUTES
from errors import AuthError

logger = logging.getLogger(__name__)


@dataclass
class ServerSession:
    token: str
    expires_at: float
    authenticated: bool = False
    user: Optional[dict] = field(default=None)


class SessionStore:
    """In-memory token -> ServerSession map for a single-instance deployment."""

    def __init__(self, ttl_seconds: float = SESSION_TTL_MINUTES * 60, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions = {}
        self._lock = threading.Lock()

    def create(self) -> ServerSession:
        now = self._clock()
        session = ServerSession(token=secrets.token_urlsafe(32),
                                expires_at=now + self.ttl_seconds)
        with self._lock:
            expired = [t for t, s in self._sessions.items() if s.expires_at <= now]
            for token in expired:
                del self._sessions[token]
            self._sessions[session.token] = session
        return session

    def get(self, token: Optional[str]) -> Optional[ServerSession]:
        if not token:
            return None
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.expires_at <= self._clock():
                del self._sessions[token]
                return None
            return session

    def renew(self, session: ServerSession):
        with self._lock:
            session.expires_at = self._clock() + self.ttl_seconds

    def destroy(self, token: Optional[str]):
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)

    def clear(self):
        with self._lock:
            self._sessions.clear()

    def __len__(self):
        return len(self._sessions)


class SessionGate:
    """Authenticates the single admin credential and guards protected calls.

    Every method takes the session handle (the token read from the cookie, or
    None) rather than reaching into request state.
    """

    def __init__(self, store: SessionStore, username: str = DEFAULT_USERNAME):
        self.store = store
        self.username = username

    def login(self, db: Session, handle: Optional[str], password: str) -> ServerSession:
        user = get_user_by_username(db, self.username)
        if user is None or not verify_password(password, user.password_hash):
            raise AuthError("パスワードが正しくありません")

        # fresh token on every login; the old one must not stay valid
        self.store.destroy(handle)
        session = self.store.create()
        session.authenticated = True
        session.user = user.to_public()
        return session

    def logout(self, handle: Optional[str]):
        self.store.destroy(handle)

    def status(self, handle: Optional[str]) -> dict:
        session = self.store.get(handle)
        if session is None or not session.authenticated:
            return {"authenticated": False, "user": None}
        return {"authenticated": True, "user": session.user}

    def require_authenticated(self, handle: Optional[str]) -> ServerSession:
        session = self.store.get(handle)
        if session is None or not session.authenticated:
            raise AuthError()
        self.store.renew(session)
        return session
