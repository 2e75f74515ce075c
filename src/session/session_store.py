"""
Per-user session memory

Features:
- Lazy session creation keyed by user id (phone number)
- Bounded message history (last N turns, FIFO)
- Up to two identified team slugs, most recent last
- LRU capacity limit and inactivity TTL
- Per-user asyncio locks: one user's turns are serialized,
  different users never wait on each other
"""
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable, Dict, List, Optional, Sequence
import asyncio

from config.settings import (
    SESSION_MAX_USERS,
    SESSION_TTL_HOURS,
    SESSION_HISTORY_LIMIT,
    GREETING_COOLDOWN_MINUTES,
)
from src.utils.logger import setup_logger

logger = setup_logger(__name__)

MAX_IDENTIFIED_SLUGS = 2


@dataclass
class ChatMessage:
    """Single message in a conversation"""
    role: str  # "user" or "bot"
    text: str
    timestamp: datetime

    def to_dict(self) -> Dict:
        return {
            "role": self.role,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class UserSession:
    """Short-term memory for one user"""
    user_id: str
    messages: List[ChatMessage] = field(default_factory=list)
    identified_slugs: List[str] = field(default_factory=list)
    last_greeting_at: Optional[datetime] = None
    last_message_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)

    def get_history(self, max_turns: int = SESSION_HISTORY_LIMIT) -> List[ChatMessage]:
        """Most recent messages, oldest first"""
        if max_turns <= 0:
            return []
        return list(self.messages[-max_turns:])

    def to_dict(self) -> Dict:
        return {
            "user_id": self.user_id,
            "messages": [m.to_dict() for m in self.messages],
            "identified_slugs": list(self.identified_slugs),
            "last_greeting_at": self.last_greeting_at.isoformat() if self.last_greeting_at else None,
            "last_message_id": self.last_message_id,
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
        }


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class SessionStore:
    """
    Bounded, TTL'd session store.

    Synchronous methods never await, so each one is atomic on the event
    loop. Multi-step read-modify-write (a whole message turn) must run
    inside `async with store.session(user_id)`.

    Example:
        store = SessionStore()
        async with store.session("+972501234567") as session:
            store.add_message(session.user_id, "user", "ארסנל")
    """

    def __init__(
        self,
        max_sessions: int = SESSION_MAX_USERS,
        ttl_hours: float = SESSION_TTL_HOURS,
        history_limit: int = SESSION_HISTORY_LIMIT,
        greeting_cooldown_minutes: float = GREETING_COOLDOWN_MINUTES,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize session store

        Args:
            max_sessions: Maximum users kept in memory (LRU beyond that)
            ttl_hours: Inactivity timeout
            history_limit: Messages kept per user
            greeting_cooldown_minutes: Minimum gap between branded greetings
            clock: Time source (injectable for tests)
        """
        self.max_sessions = max_sessions
        self.ttl = timedelta(hours=ttl_hours)
        self.history_limit = history_limit
        self.greeting_cooldown = timedelta(minutes=greeting_cooldown_minutes)
        self._clock = clock
        self._sessions: "OrderedDict[str, UserSession]" = OrderedDict()
        # Only keys with a holder or waiter have an entry
        self._locks: Dict[str, _KeyLock] = {}

        logger.info(
            f"Session store initialized (max: {max_sessions}, ttl: {ttl_hours}h, history: {history_limit})"
        )

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def locked(self, user_id: str) -> AsyncIterator[None]:
        """Hold the user's lock without touching the session"""
        key_lock = self._locks.get(user_id)
        if key_lock is None:
            key_lock = self._locks[user_id] = _KeyLock()
        key_lock.users += 1
        try:
            async with key_lock.lock:
                yield
        finally:
            key_lock.users -= 1
            if key_lock.users == 0 and self._locks.get(user_id) is key_lock:
                del self._locks[user_id]

    @asynccontextmanager
    async def session(self, user_id: str) -> AsyncIterator[UserSession]:
        """Hold the user's lock for a read-modify-write and yield the session"""
        async with self.locked(user_id):
            yield self.get_or_create(user_id)

    async def reset(self, user_id: str) -> bool:
        """Clear a session once any in-flight turn for the user has finished"""
        async with self.locked(user_id):
            return self.clear(user_id)

    def is_in_use(self, user_id: str) -> bool:
        return user_id in self._locks

    # ------------------------------------------------------------------
    # Session access
    # ------------------------------------------------------------------

    def _is_expired(self, session: UserSession, now: datetime) -> bool:
        return now - session.last_activity > self.ttl

    def get(self, user_id: str) -> Optional[UserSession]:
        """Existing, non-expired session or None (never creates)"""
        session = self._sessions.get(user_id)
        if session is None:
            return None
        if self._is_expired(session, self._clock()) and not self.is_in_use(user_id):
            del self._sessions[user_id]
            logger.info(f"Session expired: {user_id}")
            return None
        return session

    def get_or_create(self, user_id: str) -> UserSession:
        """Get the user's session, creating a fresh one on miss or expiry"""
        now = self._clock()
        session = self._sessions.get(user_id)

        if session is not None and self._is_expired(session, now):
            logger.info(f"Session expired: {user_id}")
            session = None

        if session is None:
            session = UserSession(user_id=user_id, created_at=now, last_activity=now)
            self._sessions[user_id] = session
            logger.debug(f"Created session for {user_id}")
        else:
            session.last_activity = now

        # Most recently used
        self._sessions.move_to_end(user_id)
        self._evict(now)
        return session

    def add_message(self, user_id: str, role: str, text: str) -> None:
        """Append a message, keeping only the last `history_limit`"""
        session = self.get_or_create(user_id)
        session.messages.append(ChatMessage(role=role, text=text, timestamp=self._clock()))
        if len(session.messages) > self.history_limit:
            del session.messages[: len(session.messages) - self.history_limit]

    def update_slugs(self, user_id: str, slugs: Sequence[str]) -> List[str]:
        """
        Merge new slugs into memory.

        Incoming slugs move to the most-recent end; only the last two are
        kept.

        Returns:
            The stored slugs after the update
        """
        session = self.get_or_create(user_id)
        incoming = list(dict.fromkeys(s for s in slugs if s))
        if incoming:
            kept = [s for s in session.identified_slugs if s not in incoming]
            session.identified_slugs = (kept + incoming)[-MAX_IDENTIFIED_SLUGS:]
        return list(session.identified_slugs)

    def set_greeting_time(self, user_id: str) -> None:
        session = self.get_or_create(user_id)
        session.last_greeting_at = self._clock()

    def should_send_primary_greeting(self, user_id: str) -> bool:
        """True when no branded greeting was sent within the cool-down"""
        session = self.get_or_create(user_id)
        if session.last_greeting_at is None:
            return True
        return self._clock() - session.last_greeting_at > self.greeting_cooldown

    def get_snapshot(self, user_id: str) -> Optional[Dict]:
        """Read-only copy of a session for inspection (None when absent)"""
        session = self.get(user_id)
        return session.to_dict() if session else None

    def clear(self, user_id: str) -> bool:
        """Forget everything about a user (callers outside a turn use `reset`)"""
        if self._sessions.pop(user_id, None) is not None:
            logger.info(f"Session cleared for {user_id}")
            return True
        return False

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def _evict(self, now: datetime) -> None:
        """Drop expired sessions, then least recently used beyond capacity"""
        expired = [
            uid for uid, s in self._sessions.items()
            if self._is_expired(s, now) and not self.is_in_use(uid)
        ]
        for uid in expired:
            del self._sessions[uid]
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")

        if len(self._sessions) <= self.max_sessions:
            return
        for uid in list(self._sessions):
            if len(self._sessions) <= self.max_sessions:
                break
            if self.is_in_use(uid):
                continue
            del self._sessions[uid]
            logger.debug(f"Evicted least recently used session: {uid}")

    def cleanup_expired(self) -> int:
        """Remove expired sessions now; returns how many were removed"""
        before = len(self._sessions)
        self._evict(self._clock())
        return before - len(self._sessions)

    def get_stats(self) -> Dict:
        total = len(self._sessions)
        return {
            "total_sessions": total,
            "active_locks": len(self._locks),
            "avg_messages": (sum(len(s.messages) for s in self._sessions.values()) / total) if total else 0,
            "max_sessions": self.max_sessions,
            "ttl_hours": self.ttl.total_seconds() / 3600,
        }

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions
