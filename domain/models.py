"""
Pure domain models for CollabSphereAI.

These models carry no persistence or HTTP types. They represent the core
business concepts that flow through ports and services: meetings and their
participants, conversation chunks, generated insights and project plans,
the task board, and the transient items of the speech output pipeline.
"""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError


# ---------------------------------------------------------------------------
# Users, agents, meetings
# ---------------------------------------------------------------------------


class UserRecord(BaseModel):
    """Application user (identity is managed externally)."""

    user_id: str
    name: str
    email: str
    image: Optional[str] = None


class AgentRecord(BaseModel):
    """AI agent persona that joins meetings."""

    agent_id: str
    name: str
    user_id: str
    instructions: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MeetingStatus(str, Enum):
    """Meeting lifecycle status."""

    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"
    PROCESSING = "processing"
    CANCELLED = "cancelled"


OPEN_MEETING_STATUSES = (MeetingStatus.ACTIVE, MeetingStatus.UPCOMING)


class MeetingRecord(BaseModel):
    """Meeting row.

    ``summary`` holds the serialized :class:`MeetingSummary` (JSON) or a
    legacy plain-text summary.
    """

    meeting_id: str
    name: str
    user_id: str
    agent_id: str
    status: MeetingStatus = MeetingStatus.UPCOMING
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    transcript_url: Optional[str] = None
    recording_url: Optional[str] = None
    summary: Optional[str] = None
    agent_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def parsed_summary(self) -> Optional["MeetingSummary"]:
        """Decode the stored summary column, if any."""
        if self.summary is None:
            return None
        return MeetingSummary.from_storage(self.summary)


class MeetingPage(BaseModel):
    """One page of a meeting listing."""

    items: List[MeetingRecord]
    total: int
    total_pages: int


class ParticipantRecord(BaseModel):
    """Membership of a user in a meeting."""

    participant_id: str
    meeting_id: str
    user_id: str
    role: str = "attendee"
    joined_at: Optional[datetime] = None
    left_at: Optional[datetime] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None


# ---------------------------------------------------------------------------
# Conversation capture
# ---------------------------------------------------------------------------


class Speaker(str, Enum):
    """Who produced a conversation chunk."""

    USER = "user"
    AI = "ai"


class ConversationChunk(BaseModel):
    """One utterance captured during a live call. Append-only."""

    chunk_id: str
    meeting_id: str
    speaker: Speaker
    text: str
    ts: datetime
    user_id: Optional[str] = None
    user_name: Optional[str] = None

    @property
    def speaker_label(self) -> str:
        """Label used when the chunk is rendered as a transcript line."""
        if self.user_name:
            return self.user_name
        return "AI" if self.speaker == Speaker.AI else "User"


class LiveConversationState(BaseModel):
    """Transient live-call state held in the transcript cache."""

    model_config = ConfigDict(populate_by_name=True)

    transcript: str = ""
    agent_response: str = Field(default="", alias="agentResponse")
    is_agent_speaking: bool = Field(default=False, alias="isAgentSpeaking")
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------


class InsightSource(str, Enum):
    """Which signals produced an insights payload."""

    GROQ = "groq"
    HEURISTIC = "heuristic"
    HF_SST2 = "hf-sst2"
    HYBRID = "hybrid"


class ParticipantSentiment(BaseModel):
    avg_sentiment: float
    confidence_level: Optional[float] = None


class SentimentAnalysis(BaseModel):
    """Overall and per-participant sentiment, score in [0, 1]."""

    overall_score: float = 0.5
    notes: List[str] = []
    participants: Optional[Dict[str, ParticipantSentiment]] = None


class RoleSuggestion(BaseModel):
    role: str
    user: str
    confidence: float
    reasoning: Optional[str] = None


class InsightsPayload(BaseModel):
    """Structured insights derived from a meeting transcript."""

    source: InsightSource = InsightSource.HEURISTIC
    sentiment_analysis: SentimentAnalysis = Field(default_factory=SentimentAnalysis)
    expertise_detection: Dict[str, Dict[str, float]] = {}
    role_suggestions: List[RoleSuggestion] = []

    @classmethod
    def neutral(cls) -> "InsightsPayload":
        """Default payload for an empty conversation."""
        return cls(
            source=InsightSource.HEURISTIC,
            sentiment_analysis=SentimentAnalysis(overall_score=0.5, notes=[]),
            expertise_detection={},
            role_suggestions=[],
        )


class SentimentResult(BaseModel):
    """Classifier output unified to a single positive-sentiment score."""

    label: str
    score: float
    positive_score: float


class MeetingSummary(BaseModel):
    """Summary text plus optional insights, stored in the meeting row."""

    model_config = ConfigDict(populate_by_name=True)

    summary_text: str = Field(alias="summaryText")
    insights: Optional[InsightsPayload] = None

    def to_storage(self) -> str:
        """Serialize to the JSON document kept in the summary column."""
        return json.dumps(self.model_dump(mode="json", by_alias=True))

    @classmethod
    def from_storage(cls, raw: str) -> "MeetingSummary":
        """Decode a stored summary.

        A value that is not a JSON object with ``summaryText`` is a legacy
        plain-text summary without insights.
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return cls(summary_text=raw or "")
        if not isinstance(data, dict) or "summaryText" not in data:
            return cls(summary_text=raw)
        try:
            return cls.model_validate(data)
        except PydanticValidationError:
            return cls(summary_text=str(data.get("summaryText", "")))


# ---------------------------------------------------------------------------
# Project plan (LLM document, camelCase on the wire)
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PlanSubtask(_CamelModel):
    title: str
    description: str = ""


class PlanTask(_CamelModel):
    title: str
    description: str = ""
    priority: str = "medium"
    estimated_hours: int = Field(default=4, alias="estimatedHours")
    suggested_assignee: Optional[str] = Field(default=None, alias="suggestedAssignee")
    subtasks: List[PlanSubtask] = []


class PlanPhase(_CamelModel):
    name: str
    order: int
    color: str
    tasks: List[PlanTask] = []


class SuggestedAssignee(_CamelModel):
    user_name: str = Field(alias="userName")
    role: str = ""
    confidence: float = 0.0
    reasoning: str = ""
    current_workload: Optional[int] = Field(default=None, alias="currentWorkload")
    max_workload: Optional[int] = Field(default=None, alias="maxWorkload")
    emotional_state: Optional[str] = Field(default=None, alias="emotionalState")
    expertise: List[str] = []


class WorkloadAnalysis(_CamelModel):
    total_tasks: int = Field(default=0, alias="totalTasks")
    estimated_total_hours: float = Field(default=0, alias="estimatedTotalHours")
    workload_distribution: Dict[str, float] = Field(default_factory=dict, alias="workloadDistribution")
    recommendations: List[str] = []


class ProjectPlan(_CamelModel):
    phases: List[PlanPhase] = []
    suggested_assignees: List[SuggestedAssignee] = Field(default_factory=list, alias="suggestedAssignees")
    workload_analysis: WorkloadAnalysis = Field(default_factory=WorkloadAnalysis, alias="workloadAnalysis")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ProjectPlanRecord(_CamelModel):
    """A persisted plan document."""

    plan_id: str = Field(alias="planId")
    meeting_id: str = Field(alias="meetingId")
    generation_id: str = Field(alias="generationId")
    plan: ProjectPlan
    used_fallback: bool = Field(default=False, alias="usedFallback")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


# ---------------------------------------------------------------------------
# Task board
# ---------------------------------------------------------------------------


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PhaseRecord(BaseModel):
    phase_id: str
    name: str
    order: int
    color: str
    meeting_id: Optional[str] = None


class SubtaskRecord(BaseModel):
    subtask_id: str
    task_id: str
    title: str
    completed: bool = False
    ai_generated: bool = False
    created_at: Optional[datetime] = None


class TaskRecord(BaseModel):
    task_id: str
    title: str
    phase_id: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    assignee: Optional[str] = None
    assignee_id: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    estimated_hours: Optional[int] = None
    due_date: Optional[datetime] = None
    ai_generated: bool = False
    meeting_id: Optional[str] = None
    tags: List[str] = []
    phase_name: Optional[str] = None
    phase_color: Optional[str] = None
    subtasks: List[SubtaskRecord] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubtaskSuggestion(_CamelModel):
    """AI-proposed breakdown item for a task."""

    title: str
    description: str = ""
    estimated_hours: Optional[float] = Field(default=None, alias="estimatedHours")


# ---------------------------------------------------------------------------
# Speech output
# ---------------------------------------------------------------------------


class SpeechMode(str, Enum):
    """Synthesis mode, decided once per call session."""

    UNSET = "unset"
    NEURAL = "neural"
    BROWSER = "browser"


class SpeechQueueItem(BaseModel):
    """A phrase awaiting synthesis, with prosody and the pause that follows it."""

    text: str
    rate: float
    pitch: float
    volume: float
    pause_ms: int
    ends_sentence: bool = False


class SynthesizedAudio(BaseModel):
    """Audio bytes returned by a hosted synthesis call."""

    content: bytes
    content_type: str
