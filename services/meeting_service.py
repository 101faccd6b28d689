"""
Meeting service: lifecycle, visibility and participant roster.

Completion flow:  processing -> summarize (insight pipeline) ->
                  store serialized summary -> completed.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from domain.models import (
    MeetingPage,
    MeetingRecord,
    MeetingStatus,
    MeetingSummary,
    ParticipantRecord,
    UserRecord,
)
from ports.agent_store import AgentStorePort
from ports.meeting_store import MeetingStorePort
from services.conversation_service import ConversationService
from services.insight_service import InsightService
from shared_utils.constants import LogScope
from shared_utils.error_handler import NotFoundError, ValidationError
from shared_utils.logging_utils import ContextualLogger, get_scoped_logger
from shared_utils.validation import InputValidator

logger = get_scoped_logger(LogScope.MEETINGS)

UPDATABLE_FIELDS = ("name", "agent_id", "status", "started_at", "ended_at",
                    "transcript_url", "recording_url")
PARTICIPANT_ROLES = ("host", "attendee")


class MeetingService:
    """Owner/participant scoped meeting operations."""

    def __init__(
        self,
        meeting_store: MeetingStorePort,
        agent_store: AgentStorePort,
        conversation_service: ConversationService,
        insight_service: InsightService,
    ) -> None:
        self._meetings = meeting_store
        self._agents = agent_store
        self._conversation = conversation_service
        self._insights = insight_service

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def register_user(self, user_id: str, name: str, email: str, image: Optional[str] = None) -> UserRecord:
        """Create or refresh the local copy of an externally managed user."""
        user = self._meetings.put_user(UserRecord(
            user_id=InputValidator.validate_identifier(user_id, "userId"),
            name=InputValidator.validate_non_empty_string(name, "name"),
            email=InputValidator.validate_non_empty_string(email, "email"),
            image=image or None,
        ))
        logger.info("user_registered", user_id=user.user_id)
        return user

    def create_meeting(self, user_id: str, name: str, agent_id: str) -> MeetingRecord:
        """Create a meeting already ``active`` so it shows up immediately."""
        user_id = InputValidator.validate_identifier(user_id, "userId")
        if self._meetings.get_user(user_id) is None:
            raise NotFoundError("User", user_id)
        name = InputValidator.validate_non_empty_string(name, "name")
        agent_id = InputValidator.validate_identifier(agent_id, "agentId")
        if self._agents.get_agent(agent_id) is None:
            raise NotFoundError("Agent", agent_id)

        meeting = self._meetings.add_meeting(MeetingRecord(
            meeting_id=uuid.uuid4().hex,
            name=name,
            user_id=user_id,
            agent_id=agent_id,
            status=MeetingStatus.ACTIVE,
        ))
        logger.info("meeting_created", meeting_id=meeting.meeting_id, agent_id=agent_id)
        return meeting

    def get_meeting(self, user_id: str, meeting_id: str) -> MeetingRecord:
        """Meeting visible to its owner or to a participant; 404 otherwise."""
        meeting = self._meetings.get_meeting(meeting_id)
        if meeting is None or not self._can_view(user_id, meeting):
            raise NotFoundError("Meeting", meeting_id)
        return meeting

    def list_meetings(
        self,
        user_id: str,
        page: Any = None,
        page_size: Any = None,
        search: Optional[str] = None,
        status: Optional[str] = None,
        agent_id: Optional[str] = None,
    ) -> MeetingPage:
        page, page_size = InputValidator.validate_pagination(page, page_size)
        status_filter = None
        if status:
            status_filter = MeetingStatus(
                InputValidator.validate_choice(status, "status", [s.value for s in MeetingStatus])
            )
        return self._meetings.list_meetings(
            user_id,
            page,
            page_size,
            search=search.strip() if search and search.strip() else None,
            status=status_filter,
            agent_id=agent_id or None,
        )

    def list_open_meetings(self, user_id: str) -> List[MeetingRecord]:
        return self._meetings.list_open_meetings(user_id)

    def update_meeting(self, user_id: str, meeting_id: str, **fields: Any) -> MeetingRecord:
        meeting = self._owned(user_id, meeting_id)
        changes = self._clean_update(fields)
        if not changes:
            return meeting
        updated = self._meetings.update_meeting(meeting_id, changes)
        logger.info("meeting_updated", meeting_id=meeting_id, fields=sorted(changes))
        return updated

    def remove_meeting(self, user_id: str, meeting_id: str) -> MeetingRecord:
        meeting = self._owned(user_id, meeting_id)
        self._meetings.delete_meeting(meeting_id)
        logger.info("meeting_removed", meeting_id=meeting_id)
        return meeting

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def join_meeting(self, user_id: str, meeting_id: str, role: str = "attendee") -> ParticipantRecord:
        """Upsert the caller's participant row; re-joining clears ``left_at``."""
        user_id = InputValidator.validate_identifier(user_id, "userId")
        role = InputValidator.validate_choice(role or "attendee", "role", PARTICIPANT_ROLES)
        if self._meetings.get_user(user_id) is None:
            raise NotFoundError("User", user_id)
        if self._meetings.get_meeting(meeting_id) is None:
            raise NotFoundError("Meeting", meeting_id)
        participant = self._meetings.upsert_participant(meeting_id, user_id, role)
        logger.info("participant_joined", meeting_id=meeting_id, user_id=user_id, role=role)
        return participant

    def leave_meeting(self, user_id: str, meeting_id: str) -> ParticipantRecord:
        participant = self._meetings.mark_participant_left(meeting_id, user_id)
        if participant is None:
            raise NotFoundError("Participant", f"{meeting_id}/{user_id}")
        logger.info("participant_left", meeting_id=meeting_id, user_id=user_id)
        return participant

    def list_participants(self, meeting_id: str) -> List[ParticipantRecord]:
        meeting_id = InputValidator.validate_identifier(meeting_id, "meetingId")
        return self._meetings.list_participants(meeting_id)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def complete_meeting(self, meeting_id: str, conversation: Optional[str] = None) -> MeetingSummary:
        """Summarize the meeting and mark it completed.

        Uses ``conversation`` when given, else the stored chunk transcript.
        If summarization fails unexpectedly the meeting goes back to
        ``active`` (best effort) and the error propagates.
        """
        meeting_id = InputValidator.validate_identifier(meeting_id, "meetingId")
        meeting = self._meetings.get_meeting(meeting_id)
        if meeting is None:
            raise NotFoundError("Meeting", meeting_id)

        log = ContextualLogger(LogScope.MEETINGS, meeting_id=meeting_id)
        self._meetings.update_meeting(meeting_id, {"status": MeetingStatus.PROCESSING})
        log.info("meeting_processing")

        try:
            transcript = conversation if conversation and conversation.strip() else \
                self._conversation.get_transcript(meeting_id)
            participants = [
                p.user_name for p in self._meetings.list_participants(meeting_id) if p.user_name
            ]
            summary = self._insights.summarize(transcript, participants)
        except Exception as e:
            log.error("meeting_summary_failed", error=str(e))
            try:
                self._meetings.update_meeting(meeting_id, {"status": MeetingStatus.ACTIVE})
            except Exception as revert_error:
                log.error("meeting_status_revert_failed", error=str(revert_error))
            raise

        self._meetings.update_meeting(meeting_id, {
            "summary": summary.to_storage(),
            "status": MeetingStatus.COMPLETED,
            "ended_at": datetime.now(timezone.utc),
        })
        log.info(
            "meeting_completed",
            source=summary.insights.source.value if summary.insights else None,
            summary_chars=len(summary.summary_text),
        )
        return summary

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _can_view(self, user_id: Optional[str], meeting: MeetingRecord) -> bool:
        if not user_id:
            return False
        if meeting.user_id == user_id:
            return True
        return self._meetings.is_participant(meeting.meeting_id, user_id)

    def _owned(self, user_id: str, meeting_id: str) -> MeetingRecord:
        meeting = self._meetings.get_meeting(meeting_id)
        if meeting is None or meeting.user_id != user_id:
            raise NotFoundError("Meeting", meeting_id)
        return meeting

    def _clean_update(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unsupported meeting fields: {', '.join(sorted(unknown))}",
                context={"fields": sorted(unknown)},
            )
        changes: Dict[str, Any] = {}
        for key, value in fields.items():
            if key == "name":
                changes[key] = InputValidator.validate_non_empty_string(value, "name")
            elif key == "agent_id":
                agent_id = InputValidator.validate_identifier(value, "agentId")
                if self._agents.get_agent(agent_id) is None:
                    raise NotFoundError("Agent", agent_id)
                changes[key] = agent_id
            elif key == "status":
                changes[key] = MeetingStatus(
                    InputValidator.validate_choice(value, "status", [s.value for s in MeetingStatus])
                )
            elif key in ("started_at", "ended_at"):
                changes[key] = InputValidator.parse_optional_datetime(value, key)
            else:
                changes[key] = value or None
        return changes
