"""
In-memory, thread-safe store of one Session per conversation.

Sessions are created lazily on first reference and never deleted; a reset
replaces the session with a fresh IDLE one. Callers always receive copies,
so a value read from the store is complete and cannot be mutated behind the
store's back.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from appointment_bot.schemas.session_schema import ConversationState, FlowData, Session

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Concurrency-safe mapping from conversation id to Session."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _get_or_create(self, conversation_id: str) -> Session:
        session = self._sessions.get(conversation_id)
        if session is None:
            session = Session(conversation_id=conversation_id, last_activity=self._clock())
            self._sessions[conversation_id] = session
        return session

    def get(self, conversation_id: str) -> Session:
        """Return the conversation's session, creating an IDLE one if needed."""
        with self._lock:
            session = self._get_or_create(conversation_id)
            session.last_activity = self._clock()
            return session.model_copy(deep=True)

    def set_state(
        self,
        conversation_id: str,
        state: ConversationState,
        data: Optional[FlowData] = None,
        **patch: Any,
    ) -> Session:
        """
        Replace the state and update flow data in one step.

        Args:
            state: New state.
            data: Starts a new flow, replacing whatever data was held.
            **patch: Fields merged into the current flow's data.

        Raises:
            ValueError: If patching without any flow data to patch.
        """
        with self._lock:
            current = self._get_or_create(conversation_id)
            new_data = data if data is not None else current.data
            if patch:
                if new_data is None:
                    raise ValueError(
                        f"Cannot patch {sorted(patch)} into a session without flow data"
                    )
                merged = {**new_data.model_dump(), **patch}
                new_data = type(new_data).model_validate(merged)
            updated = Session(
                conversation_id=conversation_id,
                state=state,
                data=new_data.model_copy(deep=True) if new_data is not None else None,
                last_activity=self._clock(),
            )
            self._sessions[conversation_id] = updated
            logger.debug(
                "Session %s -> %s data=%s", conversation_id, state.value, updated.snapshot()["data"]
            )
            return updated.model_copy(deep=True)

    def reset(self, conversation_id: str) -> Session:
        """Put the conversation back to IDLE with no collected data."""
        with self._lock:
            fresh = Session(conversation_id=conversation_id, last_activity=self._clock())
            self._sessions[conversation_id] = fresh
            return fresh.model_copy(deep=True)

    def __contains__(self, conversation_id: object) -> bool:
        with self._lock:
            return conversation_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
