"""
Port interface for durable conversation chunk storage.

Implementations: SqlConversationStoreAdapter (adapters/)
"""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from domain.models import ConversationChunk


@runtime_checkable
class ConversationStorePort(Protocol):
    """Append-only store of utterances captured during calls."""

    def append_chunk(self, chunk: ConversationChunk) -> ConversationChunk:
        """Persist one chunk.

        Raises:
            StorageError: If the meeting does not exist or the write fails.
        """
        ...

    def list_chunks(self, meeting_id: str) -> List[ConversationChunk]:
        """Return all chunks of a meeting ordered by timestamp ascending."""
        ...
