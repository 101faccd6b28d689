"""
Port interface for users, meetings and meeting participants.

Implementations: SqlMeetingStoreAdapter (adapters/)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from domain.models import (
    MeetingPage,
    MeetingRecord,
    MeetingStatus,
    ParticipantRecord,
    UserRecord,
)


@runtime_checkable
class MeetingStorePort(Protocol):
    """Abstract interface for meeting CRUD and membership."""

    # -- users --------------------------------------------------------

    def put_user(self, record: UserRecord) -> UserRecord:
        """Create or update a user."""
        ...

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    # -- meetings -----------------------------------------------------

    def add_meeting(self, record: MeetingRecord) -> MeetingRecord:
        """Insert a meeting.

        Raises:
            StorageError: If the owner or agent does not exist.
        """
        ...

    def get_meeting(self, meeting_id: str) -> Optional[MeetingRecord]:
        """Return the meeting with ``agent_name`` filled in, or None."""
        ...

    def list_meetings(
        self,
        user_id: str,
        page: int,
        page_size: int,
        search: Optional[str] = None,
        status: Optional[MeetingStatus] = None,
        agent_id: Optional[str] = None,
    ) -> MeetingPage:
        """Meetings owned by or joined by ``user_id``, newest first.

        Args:
            user_id: Caller.
            page: 1-based page number.
            page_size: Items per page.
            search: Case-insensitive substring of the meeting name.
            status: Exact status filter.
            agent_id: Exact agent filter.
        """
        ...

    def list_open_meetings(self, user_id: str) -> List[MeetingRecord]:
        """Active or upcoming meetings owned by ``user_id``."""
        ...

    def update_meeting(self, meeting_id: str, fields: Dict[str, Any]) -> Optional[MeetingRecord]:
        """Apply ``fields`` and return the updated record (None if missing)."""
        ...

    def delete_meeting(self, meeting_id: str) -> bool:
        """Delete the meeting and, by cascade, everything it owns."""
        ...

    # -- participants -------------------------------------------------

    def upsert_participant(self, meeting_id: str, user_id: str, role: str) -> ParticipantRecord:
        """Insert membership or refresh ``joined_at`` and clear ``left_at``."""
        ...

    def mark_participant_left(self, meeting_id: str, user_id: str) -> Optional[ParticipantRecord]:
        ...

    def is_participant(self, meeting_id: str, user_id: str) -> bool:
        ...

    def list_participants(self, meeting_id: str) -> List[ParticipantRecord]:
        """Participants with user name and email, in join order."""
        ...
