# backend/smartwork/core/sessions.py

import secrets
import threading
from typing import Optional


class SessionRegistry:
    """
    Opaque bearer token -> username, kept in process memory only.

    One instance lives on ``app.state`` for the lifetime of the process;
    restarting the process invalidates every token.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: dict[str, str] = {}

    def create(self, username: str) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[token] = username
        return token

    def resolve(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        with self._lock:
            return self._sessions.get(token)
