"""
Admin sessions: create, look up and delete bearer-token sessions.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import threading
import time
from dataclasses import asdict, dataclass
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class InvalidCredentialsError(Exception):
    pass


@dataclass
class AdminSession:
    token: str
    email: str
    expires_at: float

    def as_dict(self) -> dict:
        return asdict(self)


class SessionStore(Protocol):
    def get_current(self, token: str) -> Optional[AdminSession]:
        ...

    def create(self, email: str, password: str) -> AdminSession:
        ...

    def delete(self, token: str) -> bool:
        ...


class InMemorySessionStore:
    """Sessions for a single configured admin account."""

    def __init__(self, admin_email: str, admin_password: Optional[str], ttl_seconds: int):
        self.admin_email = admin_email
        self.admin_password = admin_password
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self.sessions: dict[str, AdminSession] = {}

    def reset(self) -> None:
        with self._lock:
            self.sessions.clear()

    def get_current(self, token: str) -> Optional[AdminSession]:
        if not token:
            return None
        with self._lock:
            session = self.sessions.get(token)
            if session and session.expires_at <= time.time():
                del self.sessions[token]
                return None
            return session

    def create(self, email: str, password: str) -> AdminSession:
        if not self.admin_password:
            logger.warning("Login attempted but no admin password is configured")
            raise InvalidCredentialsError("Admin login is disabled")
        email_ok = hmac.compare_digest(
            email.strip().lower().encode(), self.admin_email.lower().encode()
        )
        password_ok = hmac.compare_digest(password.encode(), self.admin_password.encode())
        if not (email_ok and password_ok):
            logger.info("Rejected admin login for %s", email)
            raise InvalidCredentialsError("Invalid credentials")
        session = AdminSession(
            token=secrets.token_urlsafe(32),
            email=self.admin_email,
            expires_at=time.time() + self.ttl_seconds,
        )
        with self._lock:
            self.sessions[session.token] = session
        return session

    def delete(self, token: str) -> bool:
        with self._lock:
            return self.sessions.pop(token, None) is not None
