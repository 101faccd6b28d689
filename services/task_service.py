"""
Task board service: tasks, subtasks and project phases.

Phase resolution heals bad input: a phase id or name that does not belong
to the meeting falls back to the meeting's first phase, creating the
default planning phase when the meeting has none.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from domain.models import (
    PhaseRecord,
    SubtaskRecord,
    SubtaskSuggestion,
    TaskPriority,
    TaskRecord,
    TaskStatus,
)
from ports.meeting_store import MeetingStorePort
from ports.task_store import TaskStorePort
from services.chat_service import ChatService
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import NotFoundError, ValidationError
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.validation import InputValidator, validate_input

logger = get_scoped_logger(LogScope.TASKS)

TASK_UPDATE_FIELDS = (
    "title", "description", "phase", "status", "assignee", "assignee_id",
    "priority", "estimated_hours", "due_date", "tags",
)


def _new_id() -> str:
    return uuid.uuid4().hex


class TaskService:

    def __init__(
        self,
        task_store: TaskStorePort,
        meeting_store: MeetingStorePort,
        chat_service: Optional[ChatService] = None,
    ) -> None:
        self._tasks = task_store
        self._meetings = meeting_store
        self._chat = chat_service

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def list_phases(self, meeting_id: Optional[str] = None) -> List[PhaseRecord]:
        return self._tasks.list_phases(meeting_id or None)

    def resolve_phase(self, meeting_id: Optional[str], phase: Optional[str]) -> PhaseRecord:
        """Phase by id or name within the meeting, else the default phase."""
        if phase:
            found = self._tasks.get_phase(phase)
            if found is not None and found.meeting_id == meeting_id:
                return found
            found = self._tasks.find_phase_by_name(phase, meeting_id)
            if found is not None:
                return found
        return self._default_phase(meeting_id)

    def _default_phase(self, meeting_id: Optional[str]) -> PhaseRecord:
        existing = self._tasks.list_phases(meeting_id)
        if existing:
            return existing[0]
        phase = self._tasks.add_phase(PhaseRecord(
            phase_id=_new_id(),
            name=Defaults.DEFAULT_PHASE_NAME,
            order=1,
            color=Defaults.DEFAULT_PHASE_COLOR,
            meeting_id=meeting_id,
        ))
        logger.info("default_phase_created", meeting_id=meeting_id, phase_id=phase.phase_id)
        return phase

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def list_tasks(self, meeting_id: str) -> List[TaskRecord]:
        meeting_id = InputValidator.validate_identifier(meeting_id, "meetingId")
        return self._tasks.list_tasks(meeting_id)

    def create_task(
        self,
        meeting_id: str,
        title: str,
        phase: str,
        description: Optional[str] = None,
        assignee_id: Optional[str] = None,
        priority: Optional[str] = None,
        estimated_hours: Any = None,
        due_date: Any = None,
        tags: Any = None,
    ) -> Dict[str, Any]:
        """Create a task and ask for subtask suggestions.

        Returns:
            ``{"task": TaskRecord, "suggested_subtasks": [SubtaskSuggestion]}``
        """
        meeting_id = InputValidator.validate_identifier(meeting_id, "meetingId")
        title = InputValidator.validate_non_empty_string(title, "title")
        if not phase:
            raise ValidationError("Title, phase, and meetingId are required", {"field": "phase"})
        if self._meetings.get_meeting(meeting_id) is None:
            raise NotFoundError("Meeting", meeting_id)

        resolved = self.resolve_phase(meeting_id, phase)
        task = self._tasks.add_task(TaskRecord(
            task_id=_new_id(),
            title=title,
            phase_id=resolved.phase_id,
            description=description,
            assignee=self._assignee_name(assignee_id),
            assignee_id=assignee_id or None,
            priority=TaskPriority(InputValidator.validate_choice(
                priority or Defaults.TASK_PRIORITY, "priority", [p.value for p in TaskPriority])),
            estimated_hours=InputValidator.coerce_optional_int(estimated_hours, "estimatedHours"),
            due_date=InputValidator.parse_optional_datetime(due_date, "dueDate"),
            ai_generated=False,
            meeting_id=meeting_id,
            tags=InputValidator.coerce_tags(tags),
        ))
        logger.info("task_created", task_id=task.task_id, phase_id=resolved.phase_id)

        suggestions: List[SubtaskSuggestion] = []
        if self._chat is not None:
            suggestions = self._chat.suggest_subtasks(title, description)
        return {"task": task, "suggested_subtasks": suggestions}

    def update_task(self, task_id: str, **fields: Any) -> TaskRecord:
        """Apply a partial update with input normalization.

        ``due_date`` accepts ISO strings or blanks, ``estimated_hours`` ints,
        numeric strings or blanks, and ``tags`` a list or comma string. A
        phase that is not valid for the task's meeting is healed to the
        default phase.
        """
        task_id = InputValidator.validate_identifier(task_id, "taskId")
        existing = self._tasks.get_task(task_id)
        if existing is None:
            raise NotFoundError("Task", task_id)

        unknown = set(fields) - set(TASK_UPDATE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unsupported task fields: {', '.join(sorted(unknown))}",
                {"fields": sorted(unknown)},
            )

        changes: Dict[str, Any] = {}
        for key, value in fields.items():
            if key == "title":
                changes["title"] = InputValidator.validate_non_empty_string(value, "title")
            elif key == "status":
                changes["status"] = TaskStatus(
                    InputValidator.validate_choice(value, "status", [s.value for s in TaskStatus]))
            elif key == "priority":
                changes["priority"] = TaskPriority(
                    InputValidator.validate_choice(value, "priority", [p.value for p in TaskPriority]))
            elif key == "estimated_hours":
                changes["estimated_hours"] = InputValidator.coerce_optional_int(value, "estimatedHours")
            elif key == "due_date":
                changes["due_date"] = InputValidator.parse_optional_datetime(value, "dueDate")
            elif key == "tags":
                changes["tags"] = InputValidator.coerce_tags(value)
            elif key == "assignee_id":
                changes["assignee_id"] = value or None
                if value:
                    changes["assignee"] = self._assignee_name(value)
            elif key != "phase":
                changes[key] = value

        requested_phase = fields.get("phase") or existing.phase_id
        changes["phase_id"] = self.resolve_phase(existing.meeting_id, requested_phase).phase_id

        updated = self._tasks.update_task(task_id, changes)
        logger.info("task_updated", task_id=task_id, fields=sorted(changes))
        return updated

    def delete_task(self, task_id: str) -> None:
        task_id = InputValidator.validate_identifier(task_id, "taskId")
        if not self._tasks.delete_task(task_id):
            raise NotFoundError("Task", task_id)
        logger.info("task_removed", task_id=task_id)

    # ------------------------------------------------------------------
    # Subtasks
    # ------------------------------------------------------------------

    def list_subtasks(self, task_id: str) -> List[SubtaskRecord]:
        task_id = InputValidator.validate_identifier(task_id, "taskId")
        return self._tasks.list_subtasks(task_id)

    @validate_input({
        "task_id": lambda x: InputValidator.validate_identifier(x, "taskId"),
        "title": lambda x: InputValidator.validate_non_empty_string(x, "title"),
    }, scope=LogScope.TASKS)
    def create_subtask(self, *, task_id: str, title: str, ai_generated: bool = False) -> SubtaskRecord:
        if self._tasks.get_task(task_id) is None:
            raise NotFoundError("Task", task_id)
        return self._tasks.add_subtask(SubtaskRecord(
            subtask_id=_new_id(),
            task_id=task_id,
            title=title,
            completed=False,
            ai_generated=bool(ai_generated),
        ))

    def update_subtask(
        self,
        subtask_id: str,
        title: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> SubtaskRecord:
        subtask_id = InputValidator.validate_identifier(subtask_id, "subtaskId")
        changes: Dict[str, Any] = {}
        if title is not None:
            changes["title"] = InputValidator.validate_non_empty_string(title, "title")
        if completed is not None:
            if not isinstance(completed, bool):
                raise ValidationError("completed must be a boolean", {"field": "completed"})
            changes["completed"] = completed
        updated = self._tasks.update_subtask(subtask_id, changes)
        if updated is None:
            raise NotFoundError("Subtask", subtask_id)
        return updated

    def delete_subtask(self, subtask_id: str) -> None:
        subtask_id = InputValidator.validate_identifier(subtask_id, "subtaskId")
        if not self._tasks.delete_subtask(subtask_id):
            raise NotFoundError("Subtask", subtask_id)

    def _assignee_name(self, assignee_id: Optional[str]) -> Optional[str]:
        if not assignee_id:
            return None
        user = self._meetings.get_user(assignee_id)
        return user.name if user else None
