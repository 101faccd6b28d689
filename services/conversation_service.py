"""
Conversation service: durable chunk capture plus the live-call sync cache.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Union

from core_intelligence.parser.transcript import format_transcript
from domain.models import ConversationChunk, LiveConversationState, Speaker
from ports.conversation_store import ConversationStorePort
from ports.meeting_store import MeetingStorePort
from ports.transcript_cache import TranscriptCachePort
from shared_utils.constants import LogScope
from shared_utils.error_handler import NotFoundError, ValidationError
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.validation import InputValidator

logger = get_scoped_logger(LogScope.CONVERSATION)

TRANSCRIPT_FORMATS = ("chunks", "text")


class ConversationService:

    def __init__(
        self,
        conversation_store: ConversationStorePort,
        meeting_store: MeetingStorePort,
        transcript_cache: TranscriptCachePort,
    ) -> None:
        self._chunks = conversation_store
        self._meetings = meeting_store
        self._cache = transcript_cache

    # ------------------------------------------------------------------
    # Durable chunks
    # ------------------------------------------------------------------

    def append_chunk(
        self,
        meeting_id: str,
        speaker: str,
        text: str,
        user_id: Optional[str] = None,
        user_name: Optional[str] = None,
        ts: Optional[datetime] = None,
    ) -> ConversationChunk:
        """Validate and persist one utterance; ``ts`` defaults to now (UTC)."""
        meeting_id = InputValidator.validate_identifier(meeting_id, "meetingId")
        text = InputValidator.validate_non_empty_string(text, "text")
        speaker = InputValidator.validate_choice(speaker, "speaker", [s.value for s in Speaker])
        if self._meetings.get_meeting(meeting_id) is None:
            raise NotFoundError("Meeting", meeting_id)

        chunk = ConversationChunk(
            chunk_id=str(uuid.uuid4()),
            meeting_id=meeting_id,
            speaker=Speaker(speaker),
            text=text,
            ts=ts or datetime.now(timezone.utc),
            user_id=user_id,
            user_name=user_name.strip() if user_name and user_name.strip() else None,
        )
        self._chunks.append_chunk(chunk)
        logger.info("chunk_captured", meeting_id=meeting_id, speaker=speaker, chars=len(text))
        return chunk

    def list_chunks(self, meeting_id: str) -> List[ConversationChunk]:
        return self._chunks.list_chunks(meeting_id)

    def get_transcript(self, meeting_id: str) -> str:
        """Joined ``"Speaker: text"`` lines in timestamp order."""
        return format_transcript(self._chunks.list_chunks(meeting_id))

    def read_transcript(
        self, meeting_id: str, fmt: str = "text"
    ) -> Union[str, List[ConversationChunk]]:
        """Transcript as structured chunks or as the joined string."""
        meeting_id = InputValidator.validate_identifier(meeting_id, "meetingId")
        fmt = InputValidator.validate_choice(fmt, "format", TRANSCRIPT_FORMATS)
        if fmt == "chunks":
            return self.list_chunks(meeting_id)
        return self.get_transcript(meeting_id)

    # ------------------------------------------------------------------
    # Live sync (non-durable)
    # ------------------------------------------------------------------

    def sync_live_state(
        self,
        meeting_id: str,
        transcript: Optional[str] = None,
        agent_response: Optional[str] = None,
        is_agent_speaking: Optional[bool] = None,
    ) -> LiveConversationState:
        """Merge the given fields into the cached live state."""
        meeting_id = InputValidator.validate_identifier(meeting_id, "meetingId")
        if is_agent_speaking is not None and not isinstance(is_agent_speaking, bool):
            raise ValidationError("isAgentSpeaking must be a boolean")

        state = self._cache.get(meeting_id) or LiveConversationState()
        update = {"last_updated": datetime.now(timezone.utc)}
        if transcript is not None:
            update["transcript"] = transcript
        if agent_response is not None:
            update["agent_response"] = agent_response
        if is_agent_speaking is not None:
            update["is_agent_speaking"] = is_agent_speaking
        state = state.model_copy(update=update)
        self._cache.set(meeting_id, state)
        logger.debug("live_state_synced", meeting_id=meeting_id)
        return state

    def get_live_state(self, meeting_id: str) -> LiveConversationState:
        """Cached state, or empty defaults when missing or expired."""
        meeting_id = InputValidator.validate_identifier(meeting_id, "meetingId")
        return self._cache.get(meeting_id) or LiveConversationState()

    def clear_live_state(self, meeting_id: str) -> None:
        meeting_id = InputValidator.validate_identifier(meeting_id, "meetingId")
        self._cache.expire(meeting_id)
