from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable

from config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionIdentity:
    user_id: int
    username: str
    display_name: str


@dataclass
class _SessionRecord:
    identity: SessionIdentity
    created_at: float
    last_seen_at: float


class SessionManager:
    """In-process table of opaque session tokens.

    A token stays valid until it is destroyed, sits unused for longer than
    ``idle_timeout`` seconds, or outlives ``absolute_timeout`` seconds from
    creation. All methods are safe to call from concurrent request threads.
    """

    def __init__(
        self,
        *,
        idle_timeout: float,
        absolute_timeout: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._idle_timeout = max(float(idle_timeout), 1.0)
        self._absolute_timeout = max(float(absolute_timeout), 1.0)
        self._clock = clock
        self._records: dict[str, _SessionRecord] = {}
        self._lock = threading.Lock()

    def _is_expired(self, record: _SessionRecord, now: float) -> bool:
        return (
            now - record.last_seen_at > self._idle_timeout
            or now - record.created_at > self._absolute_timeout
        )

    def create(self, identity: SessionIdentity) -> str:
        token = secrets.token_urlsafe(32)
        now = self._clock()
        with self._lock:
            self._purge_locked(now)
            self._records[token] = _SessionRecord(identity=identity, created_at=now, last_seen_at=now)
        logger.info("Session created for user_id=%s", identity.user_id)
        return token

    def resolve(self, token: str | None) -> SessionIdentity | None:
        if not token:
            return None
        now = self._clock()
        with self._lock:
            record = self._records.get(token)
            if record is None:
                return None
            if self._is_expired(record, now):
                del self._records[token]
                return None
            record.last_seen_at = now
            return record.identity

    def destroy(self, token: str | None) -> None:
        if not token:
            return
        with self._lock:
            record = self._records.pop(token, None)
        if record is not None:
            logger.info("Session destroyed for user_id=%s", record.identity.user_id)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked(self._clock())

    def _purge_locked(self, now: float) -> int:
        expired = [token for token, record in self._records.items() if self._is_expired(record, now)]
        for token in expired:
            del self._records[token]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


_SESSION_MANAGER = SessionManager(
    idle_timeout=settings.SESSION_IDLE_MINUTES * 60,
    absolute_timeout=settings.SESSION_ABSOLUTE_HOURS * 3600,
)


def get_session_manager() -> SessionManager:
    return _SESSION_MANAGER
