"""
In-memory TTL cache for live conversation state.

Implements TranscriptCachePort. Entries live for ``ttl_seconds`` after
their last write and are lost on restart; stored conversation chunks stay
the source of truth.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from domain.models import LiveConversationState
from ports.transcript_cache import TranscriptCachePort  # noqa: F401 (runtime_checkable)
from shared_utils.constants import Defaults, LogScope
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.ADAPTER)


class InMemoryTranscriptCacheAdapter:
    """Thread-safe dict of meeting id -> (expires_at, state)."""

    def __init__(
        self,
        ttl_seconds: float = Defaults.TRANSCRIPT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, LiveConversationState]] = {}

    # ------------------------------------------------------------------
    # TranscriptCachePort implementation
    # ------------------------------------------------------------------

    def get(self, meeting_id: str) -> Optional[LiveConversationState]:
        with self._lock:
            entry = self._entries.get(meeting_id)
            if entry is None:
                return None
            expires_at, state = entry
            if self._clock() >= expires_at:
                del self._entries[meeting_id]
                logger.debug("live_state_expired", meeting_id=meeting_id)
                return None
            return state.model_copy()

    def set(self, meeting_id: str, state: LiveConversationState) -> None:
        with self._lock:
            self._entries[meeting_id] = (self._clock() + self._ttl, state.model_copy())

    def expire(self, meeting_id: str) -> None:
        with self._lock:
            self._entries.pop(meeting_id, None)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.info("live_state_purged", count=len(stale))
        return len(stale)
