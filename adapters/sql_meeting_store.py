"""
SQLAlchemy-backed stores for users, agents, meetings and participants.

Implements MeetingStorePort and AgentStorePort.
"""

from __future__ import annotations

import math
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select

from adapters.database import SqlStoreBase
from adapters.sql_schema import AgentRow, MeetingRow, ParticipantRow, UserRow, utcnow
from domain.models import (
    AgentRecord,
    MeetingPage,
    MeetingRecord,
    MeetingStatus,
    OPEN_MEETING_STATUSES,
    ParticipantRecord,
    UserRecord,
)
from shared_utils.constants import LogScope
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)

_MEETING_COLUMNS = {
    "name", "agent_id", "status", "started_at", "ended_at",
    "transcript_url", "recording_url", "summary",
}
_AGENT_COLUMNS = {"name", "instructions"}


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class SqlMeetingStoreAdapter(SqlStoreBase):
    """Relational implementation of MeetingStorePort."""

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def put_user(self, record: UserRecord) -> UserRecord:
        with self._session("put_user") as session:
            row = session.get(UserRow, record.user_id)
            if row is None:
                row = UserRow(id=record.user_id)
                session.add(row)
            row.name = record.name
            row.email = record.email
            row.image = record.image
        return record

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self._session("get_user") as session:
            row = session.get(UserRow, user_id)
            return self._user_from_row(row) if row else None

    # ------------------------------------------------------------------
    # Meetings
    # ------------------------------------------------------------------

    def add_meeting(self, record: MeetingRecord) -> MeetingRecord:
        with self._session("add_meeting") as session:
            session.add(MeetingRow(
                id=record.meeting_id,
                name=record.name,
                user_id=record.user_id,
                agent_id=record.agent_id,
                status=record.status.value,
                started_at=record.started_at,
                ended_at=record.ended_at,
                transcript_url=record.transcript_url,
                recording_url=record.recording_url,
                summary=record.summary,
            ))
        logger.info("meeting_added", meeting_id=record.meeting_id, status=record.status.value)
        return self.get_meeting(record.meeting_id)

    def get_meeting(self, meeting_id: str) -> Optional[MeetingRecord]:
        with self._session("get_meeting") as session:
            result = session.execute(
                select(MeetingRow, AgentRow.name)
                .outerjoin(AgentRow, AgentRow.id == MeetingRow.agent_id)
                .where(MeetingRow.id == meeting_id)
            ).first()
            if result is None:
                return None
            return self._meeting_from_row(result[0], result[1])

    def list_meetings(
        self,
        user_id: str,
        page: int,
        page_size: int,
        search: Optional[str] = None,
        status: Optional[MeetingStatus] = None,
        agent_id: Optional[str] = None,
    ) -> MeetingPage:
        joined = select(ParticipantRow.meeting_id).where(ParticipantRow.user_id == user_id)
        conditions = [or_(MeetingRow.user_id == user_id, MeetingRow.id.in_(joined))]
        if search:
            conditions.append(func.lower(MeetingRow.name).contains(search.lower()))
        if status is not None:
            conditions.append(MeetingRow.status == _plain(status))
        if agent_id:
            conditions.append(MeetingRow.agent_id == agent_id)

        with self._session("list_meetings") as session:
            total = session.execute(
                select(func.count()).select_from(MeetingRow).where(*conditions)
            ).scalar_one()
            rows = session.execute(
                select(MeetingRow, AgentRow.name)
                .outerjoin(AgentRow, AgentRow.id == MeetingRow.agent_id)
                .where(*conditions)
                .order_by(MeetingRow.created_at.desc(), MeetingRow.id.desc())
                .limit(page_size)
                .offset((page - 1) * page_size)
            ).all()
            items = [self._meeting_from_row(row, agent_name) for row, agent_name in rows]

        return MeetingPage(
            items=items,
            total=total,
            total_pages=math.ceil(total / page_size) if page_size else 0,
        )

    def list_open_meetings(self, user_id: str) -> List[MeetingRecord]:
        with self._session("list_open_meetings") as session:
            rows = session.execute(
                select(MeetingRow, AgentRow.name)
                .outerjoin(AgentRow, AgentRow.id == MeetingRow.agent_id)
                .where(
                    MeetingRow.user_id == user_id,
                    MeetingRow.status.in_([s.value for s in OPEN_MEETING_STATUSES]),
                )
                .order_by(MeetingRow.created_at.desc())
            ).all()
            return [self._meeting_from_row(row, agent_name) for row, agent_name in rows]

    def update_meeting(self, meeting_id: str, fields: Dict[str, Any]) -> Optional[MeetingRecord]:
        unknown = set(fields) - _MEETING_COLUMNS
        if unknown:
            raise ValueError(f"Unknown meeting fields: {sorted(unknown)}")
        with self._session("update_meeting") as session:
            row = session.get(MeetingRow, meeting_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, _plain(value))
        return self.get_meeting(meeting_id)

    def delete_meeting(self, meeting_id: str) -> bool:
        with self._session("delete_meeting") as session:
            row = session.get(MeetingRow, meeting_id)
            if row is None:
                return False
            session.delete(row)
        logger.info("meeting_deleted", meeting_id=meeting_id)
        return True

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def upsert_participant(self, meeting_id: str, user_id: str, role: str) -> ParticipantRecord:
        with self._session("upsert_participant") as session:
            row = session.execute(
                select(ParticipantRow).where(
                    ParticipantRow.meeting_id == meeting_id,
                    ParticipantRow.user_id == user_id,
                )
            ).scalar_one_or_none()
            if row is None:
                row = ParticipantRow(
                    id=uuid.uuid4().hex,
                    meeting_id=meeting_id,
                    user_id=user_id,
                    role=role,
                )
                session.add(row)
            row.role = role
            row.joined_at = utcnow()
            row.left_at = None
            session.flush()
            return self._participant_from_row(row)

    def mark_participant_left(self, meeting_id: str, user_id: str) -> Optional[ParticipantRecord]:
        with self._session("mark_participant_left") as session:
            row = session.execute(
                select(ParticipantRow).where(
                    ParticipantRow.meeting_id == meeting_id,
                    ParticipantRow.user_id == user_id,
                )
            ).scalar_one_or_none()
            if row is None:
                return None
            row.left_at = utcnow()
            session.flush()
            return self._participant_from_row(row)

    def is_participant(self, meeting_id: str, user_id: str) -> bool:
        with self._session("is_participant") as session:
            found = session.execute(
                select(ParticipantRow.id).where(
                    ParticipantRow.meeting_id == meeting_id,
                    ParticipantRow.user_id == user_id,
                )
            ).first()
            return found is not None

    def list_participants(self, meeting_id: str) -> List[ParticipantRecord]:
        with self._session("list_participants") as session:
            rows = session.execute(
                select(ParticipantRow, UserRow.name, UserRow.email)
                .join(UserRow, UserRow.id == ParticipantRow.user_id)
                .where(ParticipantRow.meeting_id == meeting_id)
                .order_by(ParticipantRow.joined_at.asc())
            ).all()
            return [
                self._participant_from_row(row, name, email)
                for row, name, email in rows
            ]

    # ------------------------------------------------------------------
    # Conversion helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _user_from_row(row: UserRow) -> UserRecord:
        return UserRecord(user_id=row.id, name=row.name, email=row.email, image=row.image)

    @staticmethod
    def _meeting_from_row(row: MeetingRow, agent_name: Optional[str] = None) -> MeetingRecord:
        return MeetingRecord(
            meeting_id=row.id,
            name=row.name,
            user_id=row.user_id,
            agent_id=row.agent_id,
            status=MeetingStatus(row.status),
            started_at=row.started_at,
            ended_at=row.ended_at,
            transcript_url=row.transcript_url,
            recording_url=row.recording_url,
            summary=row.summary,
            agent_name=agent_name,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _participant_from_row(
        row: ParticipantRow,
        user_name: Optional[str] = None,
        user_email: Optional[str] = None,
    ) -> ParticipantRecord:
        return ParticipantRecord(
            participant_id=row.id,
            meeting_id=row.meeting_id,
            user_id=row.user_id,
            role=row.role,
            joined_at=row.joined_at,
            left_at=row.left_at,
            user_name=user_name,
            user_email=user_email,
        )


class SqlAgentStoreAdapter(SqlStoreBase):
    """Relational implementation of AgentStorePort."""

    def add_agent(self, record: AgentRecord) -> AgentRecord:
        with self._session("add_agent") as session:
            row = AgentRow(
                id=record.agent_id,
                name=record.name,
                user_id=record.user_id,
                instructions=record.instructions,
            )
            session.add(row)
            session.flush()
            created = self._from_row(row)
        logger.info("agent_added", agent_id=record.agent_id)
        return created

    def get_agent(self, agent_id: str) -> Optional[AgentRecord]:
        with self._session("get_agent") as session:
            row = session.get(AgentRow, agent_id)
            return self._from_row(row) if row else None

    def list_agents(self, user_id: str, search: Optional[str] = None) -> List[AgentRecord]:
        query = select(AgentRow).where(AgentRow.user_id == user_id)
        if search:
            query = query.where(func.lower(AgentRow.name).contains(search.lower()))
        with self._session("list_agents") as session:
            rows = session.execute(
                query.order_by(AgentRow.created_at.desc(), AgentRow.id.desc())
            ).scalars().all()
            return [self._from_row(row) for row in rows]

    def update_agent(self, agent_id: str, fields: Dict[str, Any]) -> Optional[AgentRecord]:
        unknown = set(fields) - _AGENT_COLUMNS
        if unknown:
            raise ValueError(f"Unknown agent fields: {sorted(unknown)}")
        with self._session("update_agent") as session:
            row = session.get(AgentRow, agent_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            session.flush()
            return self._from_row(row)

    def delete_agent(self, agent_id: str) -> bool:
        with self._session("delete_agent") as session:
            row = session.get(AgentRow, agent_id)
            if row is None:
                return False
            session.delete(row)
        return True

    @staticmethod
    def _from_row(row: AgentRow) -> AgentRecord:
        return AgentRecord(
            agent_id=row.id,
            name=row.name,
            user_id=row.user_id,
            instructions=row.instructions,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
