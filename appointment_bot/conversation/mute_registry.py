"""
Time-boxed mutes for human handoff.

While a conversation is muted the bot stays silent so a person can take
over. Expiry is checked lazily on read: an entry whose deadline has passed
is dropped the next time anyone asks about it and is never reported as
active.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MuteRegistry:
    """Concurrency-safe mapping from conversation id to mute deadline."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._expires_at: dict[str, datetime] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def mute(self, conversation_id: str, duration: timedelta) -> datetime:
        """Mute a conversation for ``duration``; returns the new deadline."""
        if duration <= timedelta(0):
            raise ValueError(f"Mute duration must be positive, got {duration}")
        with self._lock:
            expires_at = self._clock() + duration
            self._expires_at[conversation_id] = expires_at
        logger.info("Muted %s until %s", conversation_id, expires_at.isoformat())
        return expires_at

    def is_muted(self, conversation_id: str) -> bool:
        with self._lock:
            expires_at = self._expires_at.get(conversation_id)
            if expires_at is None:
                return False
            if self._clock() >= expires_at:
                del self._expires_at[conversation_id]
                logger.info("Mute expired for %s", conversation_id)
                return False
            return True

    def expires_at(self, conversation_id: str) -> Optional[datetime]:
        """Deadline of an active mute, or None."""
        with self._lock:
            until = self._expires_at.get(conversation_id)
            return until if until is not None and self._clock() < until else None

    def unmute(self, conversation_id: str) -> bool:
        """Clear one mute early. Returns True if an entry was removed."""
        with self._lock:
            removed = self._expires_at.pop(conversation_id, None) is not None
        if removed:
            logger.info("Unmuted %s", conversation_id)
        return removed

    def unmute_all(self) -> int:
        """Clear every mute. Returns how many entries were removed."""
        with self._lock:
            count = len(self._expires_at)
            self._expires_at.clear()
        logger.info("Unmuted all conversations (%d entries)", count)
        return count

    def purge_expired(self) -> int:
        """Drop every expired entry; usable from a periodic cleanup task."""
        with self._lock:
            now = self._clock()
            expired = [cid for cid, until in self._expires_at.items() if now >= until]
            for cid in expired:
                del self._expires_at[cid]
        return len(expired)
