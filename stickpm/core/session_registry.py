"""
SessionRegistry: In-memory presence sessions with timed expiry.

Every announced user gets a session that lives for SESSION_TTL_SECONDS and is
then removed by its own expiry timer. Nothing is persisted; a restart starts
with an empty registry.
"""

import time
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .identifiers import generate_session_id

logger = logging.getLogger(__name__)


def thread_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    """Default scheduler: run callback once after delay seconds on a daemon timer thread."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


@dataclass
class Session:
    """
    One active presence record.

    Attributes:
        id: Registry key, generated on creation
        label: Display name supplied by the client (not validated beyond being text)
        created_at: Unix timestamp of creation
        expires_at: created_at + TTL
    """
    id: str
    label: str
    created_at: float
    expires_at: float
    timer: Any = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'label': self.label,
            'created_at': self.created_at,
            'expires_at': self.expires_at,
        }


class SessionRegistry:
    """
    Keyed store of active sessions.

    Handles:
    - Session creation with a per-session expiry timer
    - Idempotent removal (cancels the pending timer)
    - Optional periodic sweep that evicts anything past its TTL

    All map mutations happen under one lock, so handlers, timer threads and
    the chat bot thread never observe a half-applied change.
    """

    # Sessions are removed this long after creation (5 minutes)
    SESSION_TTL_SECONDS = 5 * 60

    def __init__(self, ttl_seconds: Optional[float] = None,
                 scheduler: Callable[[float, Callable[[], None]], Any] = thread_timer,
                 clock: Callable[[], float] = time.time,
                 id_factory: Callable[[], str] = generate_session_id):
        """
        Args:
            ttl_seconds: Session lifetime, defaults to SESSION_TTL_SECONDS
            scheduler: Callable(delay, callback) returning a handle with cancel()
            clock: Returns the current time in seconds
            id_factory: Produces new session ids
        """
        self.ttl_seconds = self.SESSION_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._scheduler = scheduler
        self._clock = clock
        self._id_factory = id_factory

        # Using RLock so expire() can call remove() while holding the lock
        self._lock = threading.RLock()
        self._sessions: Dict[str, Session] = {}

        self._sweep_timer: Any = None
        self._sweep_interval: float = 0

    def add(self, label: str) -> str:
        """
        Create a session for label and schedule its expiry.

        Returns:
            The new session id
        """
        with self._lock:
            session_id = self._id_factory()
            while session_id in self._sessions:
                session_id = self._id_factory()

            now = self._clock()
            session = Session(
                id=session_id,
                label=label,
                created_at=now,
                expires_at=now + self.ttl_seconds
            )
            self._sessions[session_id] = session
            try:
                session.timer = self._scheduler(
                    self.ttl_seconds,
                    lambda: self.expire(session_id)
                )
            except Exception:
                # A session without an expiry timer would never leave the registry
                del self._sessions[session_id]
                raise

        logger.info(f"Session added: {label} with id: {session_id}")
        return session_id

    def remove(self, session_id: str) -> bool:
        """
        Remove a session if present.

        Returns:
            True if a session was removed, False if the id was unknown
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                return False
            if session.timer is not None:
                # No-op when called from the timer that is firing
                session.timer.cancel()

        logger.info(f"Session removed: {session.label} (id: {session_id})")
        return True

    def expire(self, session_id: str) -> None:
        """Expiry timer callback. Removal is attempted unconditionally."""
        try:
            if self.remove(session_id):
                logger.debug(f"Session {session_id} expired after {self.ttl_seconds}s")
        except Exception as e:
            logger.exception(f"Failed to expire session {session_id}: {e}")

    def get(self, session_id: str) -> Optional[Session]:
        """Get a session by id."""
        with self._lock:
            return self._sessions.get(session_id)

    def list_sessions(self) -> List[Session]:
        """Get a snapshot of all active sessions, oldest first."""
        with self._lock:
            return sorted(self._sessions.values(), key=lambda s: s.created_at)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    # =========================================================================
    # Reconciliation sweep
    # =========================================================================

    def sweep_expired(self) -> int:
        """
        Remove every session whose TTL has elapsed.

        Catches sessions whose timer was lost or delayed.

        Returns:
            Number of sessions removed
        """
        now = self._clock()
        with self._lock:
            stale_ids = [
                sid for sid, session in self._sessions.items()
                if now >= session.expires_at
            ]
            removed = sum(1 for sid in stale_ids if self.remove(sid))

        if removed:
            logger.info(f"Swept {removed} expired sessions")
        return removed

    def start_sweeper(self, interval_seconds: float) -> None:
        """Run sweep_expired every interval_seconds until shutdown()."""
        if interval_seconds <= 0:
            raise ValueError('Sweep interval must be positive')
        with self._lock:
            self._sweep_interval = interval_seconds
            self._schedule_sweep()
        logger.info(f"Session sweeper started (every {interval_seconds}s)")

    def _schedule_sweep(self) -> None:
        """Schedule the next sweep."""
        if self._sweep_timer:
            self._sweep_timer.cancel()
        self._sweep_timer = self._scheduler(self._sweep_interval, self._run_sweep)

    def _run_sweep(self) -> None:
        try:
            self.sweep_expired()
        except Exception as e:
            logger.exception(f"Session sweep failed: {e}")
        finally:
            with self._lock:
                if self._sweep_interval:
                    self._schedule_sweep()

    def shutdown(self) -> None:
        """Cancel the sweeper and every pending expiry timer. Sessions stay in place."""
        with self._lock:
            self._sweep_interval = 0
            if self._sweep_timer:
                self._sweep_timer.cancel()
                self._sweep_timer = None
            for session in self._sessions.values():
                if session.timer is not None:
                    session.timer.cancel()
                    session.timer = None
