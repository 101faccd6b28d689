"""
Port interface for the short-lived live conversation cache.

The cache is non-durable: entries vanish after their TTL or on restart.
Stored conversation chunks remain the source of truth.

Implementations: InMemoryTranscriptCacheAdapter (adapters/)
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from domain.models import LiveConversationState


@runtime_checkable
class TranscriptCachePort(Protocol):

    def get(self, meeting_id: str) -> Optional[LiveConversationState]:
        """Return the live state, or None when missing or expired."""
        ...

    def set(self, meeting_id: str, state: LiveConversationState) -> None:
        """Store ``state`` and restart its TTL."""
        ...

    def expire(self, meeting_id: str) -> None:
        """Drop the entry immediately (no-op when absent)."""
        ...

    def purge_expired(self) -> int:
        """Remove expired entries and return how many were removed."""
        ...
