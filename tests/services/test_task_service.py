"""
Tests for services.task_service: phase healing, task normalization and
subtasks.
"""

from unittest.mock import MagicMock

import pytest

from domain.models import MeetingRecord, PhaseRecord, SubtaskSuggestion, TaskPriority, TaskStatus
from services.task_service import TaskService
from shared_utils.error_handler import NotFoundError, ValidationError


@pytest.fixture()
def service(task_store, meeting_store) -> TaskService:
    return TaskService(task_store, meeting_store)


# ---------------------------------------------------------------------------
# Phase resolution
# ---------------------------------------------------------------------------

class TestResolvePhase:
    def test_creates_default_phase(self, service, seeded) -> None:
        phase = service.resolve_phase("m-1", "does-not-exist")
        assert (phase.name, phase.order, phase.color) == ("Project Planning & Setup", 1, "#8B5CF6")
        assert phase.meeting_id == "m-1"
        # a second bad reference reuses the existing first phase
        assert service.resolve_phase("m-1", "nope").phase_id == phase.phase_id

    def test_by_id_and_name(self, service, task_store, seeded) -> None:
        task_store.add_phase(PhaseRecord(phase_id="p-1", name="Setup", order=1, color="#fff", meeting_id="m-1"))
        task_store.add_phase(PhaseRecord(phase_id="p-2", name="Build", order=2, color="#000", meeting_id="m-1"))
        assert service.resolve_phase("m-1", "p-2").name == "Build"
        assert service.resolve_phase("m-1", "Build").phase_id == "p-2"
        assert service.resolve_phase("m-1", None).phase_id == "p-1"

    def test_phase_from_other_meeting_is_healed(self, service, task_store, meeting_store, seeded) -> None:
        meeting_store.add_meeting(MeetingRecord(meeting_id="m-2", name="Other", user_id="u-alice", agent_id="a-1"))
        task_store.add_phase(PhaseRecord(phase_id="p-x", name="Foreign", order=1, color="#fff", meeting_id="m-2"))
        healed = service.resolve_phase("m-1", "p-x")
        assert healed.phase_id != "p-x"
        assert healed.meeting_id == "m-1"

    def test_list_phases(self, service, seeded) -> None:
        service.resolve_phase("m-1", None)
        assert len(service.list_phases("m-1")) == 1


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

class TestCreateTask:
    def test_normalizes_fields(self, service, seeded) -> None:
        result = service.create_task(
            "m-1", "Write API", "Backend", description="REST",
            assignee_id="u-bob", priority="high", estimated_hours="6",
            due_date="2026-02-01", tags="api, backend,",
        )
        task = result["task"]
        assert task.assignee == "Bob"
        assert task.priority == TaskPriority.HIGH
        assert task.estimated_hours == 6
        assert task.due_date.year == 2026
        assert task.tags == ["api", "backend"]
        assert task.phase_name == "Project Planning & Setup"
        assert task.ai_generated is False
        assert result["suggested_subtasks"] == []

    def test_includes_suggestions(self, task_store, meeting_store, seeded) -> None:
        chat = MagicMock()
        chat.suggest_subtasks.return_value = [SubtaskSuggestion(title="Routes")]
        result = TaskService(task_store, meeting_store, chat).create_task("m-1", "Write API", "Backend")
        assert result["suggested_subtasks"][0].title == "Routes"
        chat.suggest_subtasks.assert_called_once_with("Write API", None)

    def test_missing_phase(self, service, seeded) -> None:
        with pytest.raises(ValidationError, match="Title, phase, and meetingId are required"):
            service.create_task("m-1", "Write API", "")

    @pytest.mark.parametrize(
        "kwargs",
        [{"priority": "urgent"}, {"estimated_hours": "lots"}, {"due_date": "next week"}, {"tags": 5}],
    )
    def test_invalid_fields(self, service, seeded, kwargs) -> None:
        with pytest.raises(ValidationError):
            service.create_task("m-1", "Write API", "Backend", **kwargs)

    def test_unknown_meeting(self, service, seeded) -> None:
        with pytest.raises(NotFoundError):
            service.create_task("ghost", "Write API", "Backend")


class TestUpdateTask:
    @pytest.fixture()
    def task_id(self, service, seeded) -> str:
        return service.create_task("m-1", "Write API", "Backend")["task"].task_id

    def test_partial_update(self, service, task_id) -> None:
        updated = service.update_task(
            task_id, status="in-progress", estimated_hours="", due_date="", assignee_id="u-alice",
        )
        assert updated.status == TaskStatus.IN_PROGRESS
        assert updated.estimated_hours is None
        assert updated.due_date is None
        assert updated.assignee == "Alice"

    def test_moves_to_named_phase(self, service, task_store, task_id) -> None:
        task_store.add_phase(PhaseRecord(phase_id="p-2", name="Launch", order=2, color="#000", meeting_id="m-1"))
        assert service.update_task(task_id, phase="Launch").phase_name == "Launch"

    def test_errors(self, service, task_id) -> None:
        with pytest.raises(ValidationError):
            service.update_task(task_id, status="blocked")
        with pytest.raises(ValidationError):
            service.update_task(task_id, meeting_id="m-2")
        with pytest.raises(NotFoundError):
            service.update_task("ghost", title="x")

    def test_delete(self, service, task_id) -> None:
        service.delete_task(task_id)
        assert service.list_tasks("m-1") == []
        with pytest.raises(NotFoundError):
            service.delete_task(task_id)


# ---------------------------------------------------------------------------
# Subtasks
# ---------------------------------------------------------------------------

class TestSubtasks:
    @pytest.fixture()
    def task_id(self, service, seeded) -> str:
        return service.create_task("m-1", "Write API", "Backend")["task"].task_id

    def test_lifecycle(self, service, task_id) -> None:
        subtask = service.create_subtask(task_id=task_id, title="  Routes ", ai_generated=True)
        assert subtask.title == "Routes"
        assert subtask.ai_generated is True

        done = service.update_subtask(subtask.subtask_id, completed=True)
        assert done.completed is True
        assert [s.subtask_id for s in service.list_subtasks(task_id)] == [subtask.subtask_id]

        service.delete_subtask(subtask.subtask_id)
        assert service.list_subtasks(task_id) == []

    def test_create_errors(self, service, task_id) -> None:
        with pytest.raises(ValidationError):
            service.create_subtask(task_id=task_id, title="")
        with pytest.raises(NotFoundError):
            service.create_subtask(task_id="ghost", title="Routes")

    def test_update_errors(self, service, task_id) -> None:
        subtask = service.create_subtask(task_id=task_id, title="Routes")
        with pytest.raises(ValidationError):
            service.update_subtask(subtask.subtask_id, completed="yes")
        with pytest.raises(NotFoundError):
            service.update_subtask("ghost", title="x")
        with pytest.raises(NotFoundError):
            service.delete_subtask("ghost")
