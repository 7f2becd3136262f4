"""In-memory login sessions.

Sessions live only in process memory: a lock-guarded map from session id to
``Session``. A background task started at application startup sweeps out
sessions that have not been touched within the TTL.
"""

import asyncio
import logging
import secrets
import threading
import time
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_CLEANUP_INTERVAL_SECONDS = 5 * 60

# Keys stored in each session
USER_ID = "user_id"
USERNAME = "username"
KEY_ID = "key_id"
REGION = "region"


class Session:
    """A string map with a last-access timestamp."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._lock = threading.RLock()
        self._values: Dict[str, str] = {}
        self._clock = clock
        self._last_access = clock()

    def get_string(self, key: str, default: str = "") -> str:
        with self._lock:
            self._last_access = self._clock()
            return self._values.get(key, default)

    def set_string(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value
            self._last_access = self._clock()

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)
            self._last_access = self._clock()

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def touch(self) -> None:
        with self._lock:
            self._last_access = self._clock()

    @property
    def last_access(self) -> float:
        with self._lock:
            return self._last_access


class SessionStore:
    """Mutex-guarded session map with TTL eviction."""

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl = ttl
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _is_expired(self, session: Session, now: float) -> bool:
        return session.last_access < now - self.ttl

    def create(self) -> tuple[str, Session]:
        """Issue a fresh session under a new random id."""
        session_id = secrets.token_urlsafe(32)
        return session_id, self.get_or_create(session_id)

    def get_or_create(self, session_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                session.touch()
                return session
            session = Session(clock=self._clock)
            self._sessions[session_id] = session
            return session

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        """Return the live session for ``session_id``; expired ids count as unknown."""
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if self._is_expired(session, self._clock()):
                del self._sessions[session_id]
                return None
            session.touch()
            return session

    def discard(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        with self._lock:
            self._sessions.pop(session_id, None)

    def cleanup_expired(self, now: Optional[float] = None) -> int:
        """Drop every session idle for longer than the TTL; return how many."""
        now = self._clock() if now is None else now
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if self._is_expired(s, now)]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.info("sessions: evicted %d expired session(s)", len(expired))
        return len(expired)

    async def run_cleanup_loop(self) -> None:
        """Sweep expired sessions every ``cleanup_interval`` seconds until cancelled."""
        logger.debug("sessions: cleanup loop started (interval=%ss, ttl=%ss)", self.cleanup_interval, self.ttl)
        while True:
            await asyncio.sleep(self.cleanup_interval)
            self.cleanup_expired()
