"""
SQLAlchemy-backed task board store.

Implements TaskStorePort: phases, tasks, subtasks and generated project
plans. A plan and its normalized phase/task/subtask rows are written in one
transaction.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select

from adapters.database import SqlStoreBase
from adapters.sql_schema import PhaseRow, ProjectPlanRow, SubtaskRow, TaskRow
from domain.models import (
    PhaseRecord,
    ProjectPlan,
    ProjectPlanRecord,
    SubtaskRecord,
    TaskPriority,
    TaskRecord,
    TaskStatus,
)
from shared_utils.constants import LogScope
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)

_TASK_COLUMNS = {
    "title", "description", "phase_id", "status", "assignee", "assignee_id",
    "priority", "estimated_hours", "due_date", "tags",
}
_SUBTASK_COLUMNS = {"title", "completed"}


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _new_id() -> str:
    return uuid.uuid4().hex


class SqlTaskStoreAdapter(SqlStoreBase):
    """Relational implementation of TaskStorePort."""

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def add_phase(self, record: PhaseRecord) -> PhaseRecord:
        with self._session("add_phase") as session:
            session.add(PhaseRow(
                id=record.phase_id,
                name=record.name,
                order=record.order,
                color=record.color,
                meeting_id=record.meeting_id,
            ))
        return record

    def get_phase(self, phase_id: str) -> Optional[PhaseRecord]:
        with self._session("get_phase") as session:
            row = session.get(PhaseRow, phase_id)
            return self._phase_from_row(row) if row else None

    def find_phase_by_name(self, name: str, meeting_id: Optional[str] = None) -> Optional[PhaseRecord]:
        query = select(PhaseRow).where(PhaseRow.name == name)
        if meeting_id is not None:
            query = query.where(PhaseRow.meeting_id == meeting_id)
        with self._session("find_phase_by_name") as session:
            row = session.execute(
                query.order_by(PhaseRow.order.asc(), PhaseRow.created_at.asc()).limit(1)
            ).scalar_one_or_none()
            return self._phase_from_row(row) if row else None

    def list_phases(self, meeting_id: Optional[str] = None) -> List[PhaseRecord]:
        query = select(PhaseRow)
        if meeting_id is not None:
            query = query.where(PhaseRow.meeting_id == meeting_id)
        with self._session("list_phases") as session:
            rows = session.execute(
                query.order_by(PhaseRow.order.asc(), PhaseRow.created_at.asc())
            ).scalars().all()
            return [self._phase_from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def add_task(self, record: TaskRecord) -> TaskRecord:
        with self._session("add_task") as session:
            session.add(TaskRow(
                id=record.task_id,
                title=record.title,
                description=record.description,
                phase_id=record.phase_id,
                status=record.status.value,
                assignee=record.assignee,
                assignee_id=record.assignee_id,
                priority=record.priority.value,
                estimated_hours=record.estimated_hours,
                due_date=record.due_date,
                ai_generated=record.ai_generated,
                meeting_id=record.meeting_id,
                tags=list(record.tags),
            ))
        logger.info("task_added", task_id=record.task_id, phase_id=record.phase_id)
        return self.get_task(record.task_id)

    def get_task(self, task_id: str) -> Optional[TaskRecord]:
        with self._session("get_task") as session:
            result = session.execute(
                select(TaskRow, PhaseRow.name, PhaseRow.color)
                .outerjoin(PhaseRow, PhaseRow.id == TaskRow.phase_id)
                .where(TaskRow.id == task_id)
            ).first()
            if result is None:
                return None
            row, phase_name, phase_color = result
            subtasks = self._subtasks_for(session, [row.id]).get(row.id, [])
            return self._task_from_row(row, phase_name, phase_color, subtasks)

    def list_tasks(self, meeting_id: str) -> List[TaskRecord]:
        with self._session("list_tasks") as session:
            results = session.execute(
                select(TaskRow, PhaseRow.name, PhaseRow.color)
                .outerjoin(PhaseRow, PhaseRow.id == TaskRow.phase_id)
                .where(TaskRow.meeting_id == meeting_id)
                .order_by(PhaseRow.order.asc(), TaskRow.created_at.asc())
            ).all()
            subtasks = self._subtasks_for(session, [row.id for row, _, _ in results])
            return [
                self._task_from_row(row, phase_name, phase_color, subtasks.get(row.id, []))
                for row, phase_name, phase_color in results
            ]

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> Optional[TaskRecord]:
        unknown = set(fields) - _TASK_COLUMNS
        if unknown:
            raise ValueError(f"Unknown task fields: {sorted(unknown)}")
        with self._session("update_task") as session:
            row = session.get(TaskRow, task_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, _plain(value))
        return self.get_task(task_id)

    def delete_task(self, task_id: str) -> bool:
        with self._session("delete_task") as session:
            row = session.get(TaskRow, task_id)
            if row is None:
                return False
            session.execute(delete(SubtaskRow).where(SubtaskRow.task_id == task_id))
            session.delete(row)
        logger.info("task_deleted", task_id=task_id)
        return True

    # ------------------------------------------------------------------
    # Subtasks
    # ------------------------------------------------------------------

    def add_subtask(self, record: SubtaskRecord) -> SubtaskRecord:
        with self._session("add_subtask") as session:
            row = SubtaskRow(
                id=record.subtask_id,
                task_id=record.task_id,
                title=record.title,
                completed=record.completed,
                ai_generated=record.ai_generated,
            )
            session.add(row)
            session.flush()
            return self._subtask_from_row(row)

    def list_subtasks(self, task_id: str) -> List[SubtaskRecord]:
        with self._session("list_subtasks") as session:
            return self._subtasks_for(session, [task_id]).get(task_id, [])

    def update_subtask(self, subtask_id: str, fields: Dict[str, Any]) -> Optional[SubtaskRecord]:
        unknown = set(fields) - _SUBTASK_COLUMNS
        if unknown:
            raise ValueError(f"Unknown subtask fields: {sorted(unknown)}")
        with self._session("update_subtask") as session:
            row = session.get(SubtaskRow, subtask_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            session.flush()
            return self._subtask_from_row(row)

    def delete_subtask(self, subtask_id: str) -> bool:
        with self._session("delete_subtask") as session:
            row = session.get(SubtaskRow, subtask_id)
            if row is None:
                return False
            session.delete(row)
        return True

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    def save_plan(self, record: ProjectPlanRecord) -> ProjectPlanRecord:
        plan = record.plan
        task_count = 0
        with self._session("save_plan") as session:
            session.add(ProjectPlanRow(
                id=record.plan_id,
                meeting_id=record.meeting_id,
                generation_id=record.generation_id,
                phases=[p.model_dump(mode="json", by_alias=True) for p in plan.phases],
                suggested_assignees=[
                    a.model_dump(mode="json", by_alias=True) for a in plan.suggested_assignees
                ],
                workload_analysis=plan.workload_analysis.model_dump(mode="json", by_alias=True),
                used_fallback=record.used_fallback,
            ))
            session.flush()

            for phase in plan.phases:
                phase_row = PhaseRow(
                    id=_new_id(),
                    name=phase.name,
                    order=phase.order,
                    color=phase.color,
                    meeting_id=record.meeting_id,
                )
                session.add(phase_row)
                session.flush()

                for task in phase.tasks:
                    task_row = TaskRow(
                        id=_new_id(),
                        title=task.title,
                        description=task.description,
                        phase_id=phase_row.id,
                        status=TaskStatus.TODO.value,
                        assignee=task.suggested_assignee,
                        priority=task.priority,
                        estimated_hours=task.estimated_hours,
                        ai_generated=True,
                        meeting_id=record.meeting_id,
                        tags=[],
                    )
                    session.add(task_row)
                    session.flush()
                    task_count += 1

                    for subtask in task.subtasks:
                        session.add(SubtaskRow(
                            id=_new_id(),
                            task_id=task_row.id,
                            title=subtask.title,
                            completed=False,
                            ai_generated=True,
                        ))
                    session.flush()

        logger.info(
            "plan_persisted",
            meeting_id=record.meeting_id,
            generation_id=record.generation_id,
            phases=len(plan.phases),
            tasks=task_count,
        )
        return record

    def get_latest_plan(self, meeting_id: str) -> Optional[ProjectPlanRecord]:
        with self._session("get_latest_plan") as session:
            row = session.execute(
                select(ProjectPlanRow)
                .where(ProjectPlanRow.meeting_id == meeting_id)
                .order_by(ProjectPlanRow.created_at.desc())
                .limit(1)
            ).scalar_one_or_none()
            if row is None:
                return None
            return ProjectPlanRecord(
                plan_id=row.id,
                meeting_id=row.meeting_id,
                generation_id=row.generation_id,
                used_fallback=row.used_fallback,
                created_at=row.created_at,
                plan=ProjectPlan.model_validate({
                    "phases": row.phases,
                    "suggestedAssignees": row.suggested_assignees,
                    "workloadAnalysis": row.workload_analysis,
                }),
            )

    # ------------------------------------------------------------------
    # Conversion helpers
    # ------------------------------------------------------------------

    def _subtasks_for(self, session, task_ids: List[str]) -> Dict[str, List[SubtaskRecord]]:
        if not task_ids:
            return {}
        rows = session.execute(
            select(SubtaskRow)
            .where(SubtaskRow.task_id.in_(task_ids))
            .order_by(SubtaskRow.created_at.asc())
        ).scalars().all()
        grouped: Dict[str, List[SubtaskRecord]] = {}
        for row in rows:
            grouped.setdefault(row.task_id, []).append(self._subtask_from_row(row))
        return grouped

    @staticmethod
    def _phase_from_row(row: PhaseRow) -> PhaseRecord:
        return PhaseRecord(
            phase_id=row.id,
            name=row.name,
            order=row.order,
            color=row.color,
            meeting_id=row.meeting_id,
        )

    @staticmethod
    def _subtask_from_row(row: SubtaskRow) -> SubtaskRecord:
        return SubtaskRecord(
            subtask_id=row.id,
            task_id=row.task_id,
            title=row.title,
            completed=row.completed,
            ai_generated=row.ai_generated,
            created_at=row.created_at,
        )

    @staticmethod
    def _task_from_row(
        row: TaskRow,
        phase_name: Optional[str],
        phase_color: Optional[str],
        subtasks: List[SubtaskRecord],
    ) -> TaskRecord:
        return TaskRecord(
            task_id=row.id,
            title=row.title,
            description=row.description,
            phase_id=row.phase_id,
            status=TaskStatus(row.status),
            assignee=row.assignee,
            assignee_id=row.assignee_id,
            priority=TaskPriority(row.priority),
            estimated_hours=row.estimated_hours,
            due_date=row.due_date,
            ai_generated=row.ai_generated,
            meeting_id=row.meeting_id,
            tags=list(row.tags or []),
            phase_name=phase_name,
            phase_color=phase_color,
            subtasks=subtasks,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
