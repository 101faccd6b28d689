"""
SQLAlchemy table definitions for the relational store.

Ownership cascades are declared on the foreign keys: deleting a meeting
removes its participants, conversation chunks, phases, tasks, subtasks and
plans.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    email = Column(String(320), nullable=False, unique=True)
    image = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class AgentRow(Base):
    __tablename__ = "agents"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    instructions = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class MeetingRow(Base):
    __tablename__ = "meetings"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    agent_id = Column(String(64), ForeignKey("agents.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="upcoming")
    started_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    transcript_url = Column(Text, nullable=True)
    recording_url = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class ParticipantRow(Base):
    __tablename__ = "meeting_participants"
    __table_args__ = (UniqueConstraint("meeting_id", "user_id", name="uq_meeting_participant"),)

    id = Column(String(64), primary_key=True)
    meeting_id = Column(String(64), ForeignKey("meetings.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(32), nullable=False, default="attendee")
    joined_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    left_at = Column(DateTime(timezone=True), nullable=True)


class ConversationChunkRow(Base):
    __tablename__ = "conversation_chunks"

    id = Column(String(64), primary_key=True)
    meeting_id = Column(String(64), ForeignKey("meetings.id", ondelete="CASCADE"), nullable=False, index=True)
    speaker = Column(String(8), nullable=False)
    user_id = Column(String(64), nullable=True)
    user_name = Column(Text, nullable=True)
    text = Column(Text, nullable=False)
    ts = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


class PhaseRow(Base):
    __tablename__ = "project_phases"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    order = Column(Integer, nullable=False)
    color = Column(String(16), nullable=False)
    meeting_id = Column(String(64), ForeignKey("meetings.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class TaskRow(Base):
    __tablename__ = "tasks"

    id = Column(String(64), primary_key=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    phase_id = Column(String(64), ForeignKey("project_phases.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="todo")
    assignee = Column(Text, nullable=True)
    assignee_id = Column(String(64), nullable=True)
    priority = Column(String(10), nullable=False, default="medium")
    estimated_hours = Column(Integer, nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    ai_generated = Column(Boolean, nullable=False, default=False)
    meeting_id = Column(String(64), ForeignKey("meetings.id", ondelete="CASCADE"), nullable=True, index=True)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class SubtaskRow(Base):
    __tablename__ = "subtasks"

    id = Column(String(64), primary_key=True)
    task_id = Column(String(64), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    ai_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class ProjectPlanRow(Base):
    __tablename__ = "ai_project_plans"

    id = Column(String(64), primary_key=True)
    meeting_id = Column(String(64), ForeignKey("meetings.id", ondelete="CASCADE"), nullable=False, index=True)
    generation_id = Column(String(64), nullable=False)
    phases = Column(JSON, nullable=False)
    suggested_assignees = Column(JSON, nullable=False)
    workload_analysis = Column(JSON, nullable=False)
    used_fallback = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
