"""
SQLAlchemy-backed conversation chunk store.

Implements ConversationStorePort.
"""

from __future__ import annotations

from typing import List

from sqlalchemy import select

from adapters.database import SqlStoreBase
from adapters.sql_schema import ConversationChunkRow
from domain.models import ConversationChunk, Speaker
from shared_utils.constants import LogScope
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


class SqlConversationStoreAdapter(SqlStoreBase):
    """Append-only relational store of conversation chunks."""

    def append_chunk(self, chunk: ConversationChunk) -> ConversationChunk:
        with self._session("append_chunk") as session:
            session.add(ConversationChunkRow(
                id=chunk.chunk_id,
                meeting_id=chunk.meeting_id,
                speaker=chunk.speaker.value,
                user_id=chunk.user_id,
                user_name=chunk.user_name,
                text=chunk.text,
                ts=chunk.ts,
            ))
        logger.debug("chunk_appended", meeting_id=chunk.meeting_id, speaker=chunk.speaker.value)
        return chunk

    def list_chunks(self, meeting_id: str) -> List[ConversationChunk]:
        with self._session("list_chunks") as session:
            rows = session.execute(
                select(ConversationChunkRow)
                .where(ConversationChunkRow.meeting_id == meeting_id)
                .order_by(ConversationChunkRow.ts.asc(), ConversationChunkRow.id.asc())
            ).scalars().all()
            return [
                ConversationChunk(
                    chunk_id=row.id,
                    meeting_id=row.meeting_id,
                    speaker=Speaker(row.speaker),
                    user_id=row.user_id,
                    user_name=row.user_name,
                    text=row.text,
                    ts=row.ts,
                )
                for row in rows
            ]
