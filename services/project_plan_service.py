"""
Project plan service: transcript -> structured plan -> task board rows.

Flow:  meeting lookup -> transcript -> LLM plan document ->
       normalize (or deterministic fallback) -> atomic persistence.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from core_intelligence.engine.planning import build_fallback_plan, normalize_plan
from core_intelligence.parser.llm_json import parse_json_object
from domain.models import MeetingRecord, ProjectPlan, ProjectPlanRecord
from ports.llm_provider import ChatCompletionPort
from ports.meeting_store import MeetingStorePort
from ports.task_store import TaskStorePort
from services.conversation_service import ConversationService
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import NotFoundError, PlanGenerationError
from shared_utils.logging_utils import ContextualLogger, log_execution
from shared_utils.validation import InputValidator


PLAN_SYSTEM_PROMPT = (
    "You are an expert project manager. You turn meeting transcripts into "
    "actionable project plans and answer with one valid JSON object only."
)

PLAN_USER_TEMPLATE = """Analyze this meeting transcript and create a detailed, actionable project plan.

MEETING: {meeting_name}
TRANSCRIPT: {transcript}

Based on the conversation, create a structured project plan with:

1. PROJECT PHASES: Extract the actual phases mentioned in the conversation (use the exact names mentioned)
2. TASKS: Create specific, actionable tasks based on what was discussed
3. ASSIGNMENTS: Suggest team members based on the conversation context
4. TIMELINES: Estimate realistic hours for each task

IMPORTANT:
- Use ONLY the phases and topics actually mentioned in the conversation
- Create tasks that directly relate to what was discussed
- Make task titles specific and actionable

Format your response as a valid JSON object exactly like this:

{{
  "phases": [
    {{
      "name": "Exact Phase Name from Conversation",
      "order": 1,
      "color": "#3B82F6",
      "tasks": [
        {{
          "title": "Specific task title based on conversation",
          "description": "Detailed description of what needs to be done",
          "priority": "high|medium|low",
          "estimatedHours": 8,
          "suggestedAssignee": "Team Member Name",
          "subtasks": [
            {{"title": "Specific subtask", "description": "What this subtask involves"}}
          ]
        }}
      ]
    }}
  ],
  "suggestedAssignees": [
    {{
      "userName": "Team Member Name",
      "role": "Their role from conversation",
      "confidence": 0.9,
      "reasoning": "Why this person should be assigned based on conversation",
      "currentWorkload": 20,
      "maxWorkload": 40,
      "emotionalState": "positive|neutral|negative",
      "expertise": ["skill1", "skill2"]
    }}
  ],
  "workloadAnalysis": {{
    "totalTasks": 5,
    "estimatedTotalHours": 40,
    "workloadDistribution": {{"Team Member": 20}},
    "recommendations": ["Start with frontend foundation", "Prioritize critical features"]
  }}
}}"""


class ProjectPlanService:
    """Generates, persists and reads AI project plans."""

    def __init__(
        self,
        meeting_store: MeetingStorePort,
        task_store: TaskStorePort,
        conversation_service: ConversationService,
        llm_provider: Optional[ChatCompletionPort] = None,
    ) -> None:
        self._meetings = meeting_store
        self._tasks = task_store
        self._conversation = conversation_service
        self._llm = llm_provider

    @log_execution(scope=LogScope.PLANNING)
    def generate_plan(self, meeting_id: str) -> ProjectPlanRecord:
        """Generate a plan for the meeting and persist it atomically.

        Raises:
            NotFoundError: Unknown meeting.
            PlanGenerationError: The LLM call itself failed.
            StorageError: Persistence failed; nothing was written.
        """
        meeting_id = InputValidator.validate_identifier(meeting_id, "meetingId")
        meeting = self._meetings.get_meeting(meeting_id)
        if meeting is None:
            raise NotFoundError("Meeting", meeting_id)

        generation_id = uuid.uuid4().hex
        log = ContextualLogger(LogScope.PLANNING, meeting_id=meeting_id, generation_id=generation_id)
        transcript = self._conversation.get_transcript(meeting_id)

        plan: Optional[ProjectPlan] = None
        if self._llm is None:
            log.warning("plan_llm_not_configured")
        else:
            plan = self._plan_from_llm(meeting, transcript, log)

        used_fallback = plan is None
        if used_fallback:
            plan = build_fallback_plan(transcript)

        record = self._tasks.save_plan(ProjectPlanRecord(
            plan_id=uuid.uuid4().hex,
            meeting_id=meeting_id,
            generation_id=generation_id,
            plan=plan,
            used_fallback=used_fallback,
        ))
        log.info(
            "plan_generated",
            used_fallback=used_fallback,
            phases=len(plan.phases),
            total_tasks=plan.workload_analysis.total_tasks,
        )
        return record

    def get_plan(self, meeting_id: str) -> Dict[str, Any]:
        """Latest plan with phases read back from the phase table by order."""
        meeting_id = InputValidator.validate_identifier(meeting_id, "meetingId")
        record = self._tasks.get_latest_plan(meeting_id)
        if record is None:
            raise NotFoundError("Project plan", meeting_id)
        return {"plan": record, "phases": self._tasks.list_phases(meeting_id)}

    def _plan_from_llm(
        self,
        meeting: MeetingRecord,
        transcript: str,
        log: ContextualLogger,
    ) -> Optional[ProjectPlan]:
        try:
            raw = self._llm.complete(
                PLAN_SYSTEM_PROMPT,
                PLAN_USER_TEMPLATE.format(meeting_name=meeting.name, transcript=transcript),
                temperature=Defaults.PLAN_TEMPERATURE,
                max_tokens=Defaults.PLAN_MAX_TOKENS,
            )
        except Exception as e:
            log.error("plan_llm_failed", error=str(e))
            raise PlanGenerationError(meeting.meeting_id, {"error": str(e)}) from e

        parsed = parse_json_object(raw, ("phases",))
        if not parsed.ok:
            log.warning("plan_fallback", reason=parsed.fallback_reason)
            return None
        try:
            return normalize_plan(parsed.value)
        except (ValueError, OverflowError) as e:
            log.warning("plan_fallback", reason=str(e))
            return None
