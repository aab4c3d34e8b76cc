"""Session store: load/save SessionState by id. In-memory implementation with expiry."""

import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from cv_builder_ai.config import SESSION_TTL_SECONDS
from cv_builder_ai.errors import SessionNotFound
from cv_builder_ai.schemas.session import SessionState
from cv_builder_ai.utils.logger import get_logger

logger = get_logger(__name__)


class SessionStore(ABC):
    """Persistence boundary around the session agent."""

    @abstractmethod
    def load(self, session_id: str) -> Optional[SessionState]:
        ...

    @abstractmethod
    def save(self, state: SessionState) -> None:
        ...

    @abstractmethod
    def delete(self, session_id: str) -> None:
        ...

    def get(self, session_id: str) -> SessionState:
        """Like load, but raises SessionNotFound for unknown or expired ids."""
        state = self.load(session_id)
        if state is None:
            raise SessionNotFound(session_id)
        return state


class InMemorySessionStore(SessionStore):
    """
    Process-local store. Saves a serialized copy so callers cannot mutate stored
    state without saving; entries expire ttl_seconds after their last save.
    """

    def __init__(self, ttl_seconds: int = SESSION_TTL_SECONDS) -> None:
        self._ttl = ttl_seconds
        self._items: Dict[str, Tuple[float, str]] = {}
        self._lock = threading.Lock()

    def load(self, session_id: str) -> Optional[SessionState]:
        with self._lock:
            entry = self._items.get(session_id)
            if entry is None:
                return None
            saved_at, payload = entry
            if time.monotonic() - saved_at > self._ttl:
                del self._items[session_id]
                logger.info("Session expired: %s", session_id)
                return None
        return SessionState.model_validate_json(payload)

    def save(self, state: SessionState) -> None:
        payload = state.model_dump_json(by_alias=True)
        with self._lock:
            self._items[state.session_id] = (time.monotonic(), payload)

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._items.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
