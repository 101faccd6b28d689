"""
Port interface for the task board: phases, tasks, subtasks and plans.

Implementations: SqlTaskStoreAdapter (adapters/)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from domain.models import (
    PhaseRecord,
    ProjectPlanRecord,
    SubtaskRecord,
    TaskRecord,
)


@runtime_checkable
class TaskStorePort(Protocol):
    """Abstract interface for task board persistence."""

    # -- phases -------------------------------------------------------

    def add_phase(self, record: PhaseRecord) -> PhaseRecord:
        ...

    def get_phase(self, phase_id: str) -> Optional[PhaseRecord]:
        ...

    def find_phase_by_name(self, name: str, meeting_id: Optional[str] = None) -> Optional[PhaseRecord]:
        """First phase with exactly ``name`` (scoped to the meeting when given)."""
        ...

    def list_phases(self, meeting_id: Optional[str] = None) -> List[PhaseRecord]:
        """Phases ordered by ``order`` ascending."""
        ...

    # -- tasks --------------------------------------------------------

    def add_task(self, record: TaskRecord) -> TaskRecord:
        ...

    def get_task(self, task_id: str) -> Optional[TaskRecord]:
        ...

    def list_tasks(self, meeting_id: str) -> List[TaskRecord]:
        """Tasks of a meeting with phase name/colour and subtasks attached."""
        ...

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> Optional[TaskRecord]:
        ...

    def delete_task(self, task_id: str) -> bool:
        """Delete the task's subtasks, then the task."""
        ...

    # -- subtasks -----------------------------------------------------

    def add_subtask(self, record: SubtaskRecord) -> SubtaskRecord:
        ...

    def list_subtasks(self, task_id: str) -> List[SubtaskRecord]:
        ...

    def update_subtask(self, subtask_id: str, fields: Dict[str, Any]) -> Optional[SubtaskRecord]:
        ...

    def delete_subtask(self, subtask_id: str) -> bool:
        ...

    # -- plans --------------------------------------------------------

    def save_plan(self, record: ProjectPlanRecord) -> ProjectPlanRecord:
        """Persist the plan document and its normalized rows atomically.

        Writes the plan row, then each phase, each task under the saved
        phase id, then each subtask, all in one transaction.

        Raises:
            StorageError: If any write fails (nothing is committed).
        """
        ...

    def get_latest_plan(self, meeting_id: str) -> Optional[ProjectPlanRecord]:
        ...
