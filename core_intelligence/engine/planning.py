"""
Project plan normalization and the deterministic fallback planner.

``normalize_plan`` turns a decoded LLM document into a well-typed
ProjectPlan, backfilling missing fields. ``build_fallback_plan`` produces a
canned plan from keyword families found in the transcript when the LLM
answer cannot be used.
"""

import math
import re
from typing import Any, Dict, List, Optional

from domain.models import (
    PlanPhase,
    PlanSubtask,
    PlanTask,
    ProjectPlan,
    SuggestedAssignee,
    TaskPriority,
    WorkloadAnalysis,
)
from shared_utils.constants import Defaults


FALLBACK_TEAM = "Development Team"

FALLBACK_RECOMMENDATIONS = [
    "Start with frontend foundation as it's the user-facing component",
    "Coordinate between frontend and backend teams for seamless integration",
    "Focus on delivering core features first to ensure quality",
    "Prioritize critical features as emphasized in the meeting discussion",
]


# ---------------------------------------------------------------------------
# Canned phases, in priority order
# ---------------------------------------------------------------------------

def _phase(name: str, order: int, color: str, task: Dict[str, Any]) -> Dict[str, Any]:
    return {"name": name, "order": order, "color": color, "tasks": [task]}


FALLBACK_PHASES = [
    (
        ("frontend", "ui", "ux", "user interface"),
        _phase("Frontend Development", 1, "#3B82F6", {
            "title": "Build responsive UI/UX foundation",
            "description": "Create solid UI/UX foundation with focus on responsiveness and accessibility as discussed in meeting",
            "priority": "high",
            "estimatedHours": 16,
            "suggestedAssignee": "Frontend Developer",
            "subtasks": [
                {"title": "Design system setup", "description": "Establish design tokens and component library"},
                {"title": "Responsive layout implementation", "description": "Implement mobile-first responsive design"},
                {"title": "Accessibility features", "description": "Add ARIA labels and keyboard navigation support"},
                {"title": "State management setup", "description": "Implement state management library as recommended"},
            ],
        }),
    ),
    (
        ("backend", "api", "database", "server"),
        _phase("Backend Development", 2, "#10B981", {
            "title": "Implement robust backend architecture",
            "description": "Develop scalable backend system with authentication and authorization as discussed",
            "priority": "high",
            "estimatedHours": 20,
            "suggestedAssignee": "Backend Developer",
            "subtasks": [
                {"title": "Framework selection and setup", "description": "Choose and configure suitable backend framework"},
                {"title": "Database design and implementation", "description": "Design and implement robust database schema"},
                {"title": "API development", "description": "Build RESTful API endpoints with proper documentation"},
                {"title": "Authentication system", "description": "Implement secure user authentication and authorization"},
                {"title": "Scalability planning", "description": "Design architecture for future growth and scaling"},
            ],
        }),
    ),
    (
        ("implementation", "deployment", "launch", "delivery"),
        _phase("Implementation & Launch", 3, "#F59E0B", {
            "title": "Execute project implementation plan",
            "description": "Coordinate project execution and prepare for successful launch",
            "priority": "medium",
            "estimatedHours": 12,
            "suggestedAssignee": "Project Manager",
            "subtasks": [
                {"title": "Phase coordination", "description": "Coordinate between frontend and backend development teams"},
                {"title": "Testing and QA", "description": "Conduct thorough testing of all features and functionality"},
                {"title": "Deployment preparation", "description": "Prepare production environment and deployment pipeline"},
                {"title": "Quality assurance", "description": "Ensure high-quality product delivery as emphasized in meeting"},
            ],
        }),
    ),
]

GENERIC_PHASE = _phase(Defaults.DEFAULT_PHASE_NAME, 1, Defaults.DEFAULT_PHASE_COLOR, {
    "title": "Analyze meeting outcomes and create action plan",
    "description": "Review meeting transcript to extract key decisions and create detailed project roadmap",
    "priority": "high",
    "estimatedHours": 6,
    "suggestedAssignee": "Project Lead",
    "subtasks": [
        {"title": "Extract key decisions", "description": "Document all decisions and recommendations made during meeting"},
        {"title": "Create detailed task breakdown", "description": "Break down project into specific, actionable tasks"},
        {"title": "Assign team responsibilities", "description": "Distribute tasks among team members based on expertise"},
        {"title": "Set project milestones", "description": "Establish clear milestones and delivery timelines"},
    ],
})


def _mentions(text: str, keywords) -> bool:
    pattern = r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")\b"
    return re.search(pattern, text) is not None


def build_fallback_plan(transcript: str) -> ProjectPlan:
    """Canned plan: one phase per keyword family found (whole words, any case)."""
    lowered = (transcript or "").lower()
    phases = [
        PlanPhase.model_validate(template)
        for keywords, template in FALLBACK_PHASES
        if _mentions(lowered, keywords)
    ]
    if not phases:
        phases = [PlanPhase.model_validate(GENERIC_PHASE)]

    return ProjectPlan(
        phases=phases,
        suggested_assignees=[SuggestedAssignee(
            user_name=FALLBACK_TEAM,
            role="Full-Stack Development Team",
            confidence=0.9,
            reasoning="Based on meeting discussion about frontend, backend, and implementation phases",
            current_workload=20,
            max_workload=40,
            emotional_state="positive",
            expertise=["frontend development", "backend development", "project management", "UI/UX design"],
        )],
        workload_analysis=compute_workload(phases, recommendations=FALLBACK_RECOMMENDATIONS),
    )


# ---------------------------------------------------------------------------
# Workload
# ---------------------------------------------------------------------------

def compute_workload(
    phases: List[PlanPhase],
    distribution: Optional[Dict[str, float]] = None,
    recommendations: Optional[List[str]] = None,
) -> WorkloadAnalysis:
    """Totals summed over every task; distribution defaults to one team."""
    total_tasks = sum(len(phase.tasks) for phase in phases)
    total_hours = sum(task.estimated_hours or 0 for phase in phases for task in phase.tasks)
    return WorkloadAnalysis(
        total_tasks=total_tasks,
        estimated_total_hours=total_hours,
        workload_distribution=distribution if distribution else {FALLBACK_TEAM: total_hours},
        recommendations=list(recommendations or []),
    )


# ---------------------------------------------------------------------------
# Normalization of LLM documents
# ---------------------------------------------------------------------------

_PRIORITIES = {p.value for p in TaskPriority}


def _as_float(value: Any) -> Optional[float]:
    """Finite float, or None for bools, junk, NaN and infinities."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any, default: int) -> int:
    number = _as_float(value)
    if number is None or number < 1:
        return default
    return int(number)


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _normalize_subtask(raw: Any) -> Optional[PlanSubtask]:
    if isinstance(raw, str):
        return PlanSubtask(title=raw.strip()) if raw.strip() else None
    if isinstance(raw, dict) and _text(raw.get("title")):
        return PlanSubtask(title=_text(raw.get("title")), description=_text(raw.get("description")))
    return None


def _normalize_task(raw: Any, index: int) -> Optional[PlanTask]:
    if isinstance(raw, str):
        raw = {"title": raw}
    if not isinstance(raw, dict):
        return None
    priority = _text(raw.get("priority"), Defaults.TASK_PRIORITY).lower()
    subtasks = raw.get("subtasks") if isinstance(raw.get("subtasks"), list) else []
    return PlanTask(
        title=_text(raw.get("title"), f"Task {index + 1}"),
        description=_text(raw.get("description")),
        priority=priority if priority in _PRIORITIES else Defaults.TASK_PRIORITY,
        estimated_hours=_as_int(raw.get("estimatedHours"), Defaults.TASK_ESTIMATED_HOURS),
        suggested_assignee=_text(raw.get("suggestedAssignee")) or None,
        subtasks=[s for s in (_normalize_subtask(item) for item in subtasks) if s],
    )


def _normalize_phase(raw: Any, index: int) -> PlanPhase:
    raw = raw if isinstance(raw, dict) else {}
    tasks = raw.get("tasks") if isinstance(raw.get("tasks"), list) else []
    return PlanPhase(
        name=_text(raw.get("name"), f"Phase {index + 1}"),
        order=_as_int(raw.get("order"), index + 1),
        color=_text(raw.get("color"), Defaults.PHASE_COLOR),
        tasks=[t for t in (_normalize_task(item, i) for i, item in enumerate(tasks)) if t],
    )


def _normalize_assignee(raw: Any) -> Optional[SuggestedAssignee]:
    if not isinstance(raw, dict) or not _text(raw.get("userName")):
        return None
    expertise = raw.get("expertise") if isinstance(raw.get("expertise"), list) else []
    confidence = _as_float(raw.get("confidence", 0)) or 0.0
    return SuggestedAssignee(
        user_name=_text(raw.get("userName")),
        role=_text(raw.get("role")),
        confidence=min(1.0, max(0.0, confidence)),
        reasoning=_text(raw.get("reasoning")),
        current_workload=_as_int(raw.get("currentWorkload"), 0) or None,
        max_workload=_as_int(raw.get("maxWorkload"), 0) or None,
        emotional_state=_text(raw.get("emotionalState")) or None,
        expertise=[str(e) for e in expertise],
    )


def normalize_plan(data: Dict[str, Any]) -> ProjectPlan:
    """Coerce a decoded plan document into a ProjectPlan.

    Phases get ``Phase N`` / ``N`` / default colour / ``[]`` when fields are
    missing. Workload totals are always recomputed from the tasks so they
    agree with the phases; the LLM's distribution and recommendations are
    kept when present.

    Raises:
        ValueError: If ``phases`` is missing or not a list.
    """
    phases_raw = data.get("phases")
    if not isinstance(phases_raw, list):
        raise ValueError("plan document has no phases list")

    phases = [_normalize_phase(raw, i) for i, raw in enumerate(phases_raw)]
    assignees_raw = data.get("suggestedAssignees")
    assignees = [
        a for a in (_normalize_assignee(raw) for raw in (assignees_raw if isinstance(assignees_raw, list) else []))
        if a
    ]

    workload_raw = data.get("workloadAnalysis") if isinstance(data.get("workloadAnalysis"), dict) else {}
    distribution_raw = workload_raw.get("workloadDistribution")
    distribution: Dict[str, float] = {}
    if isinstance(distribution_raw, dict):
        for name, hours in distribution_raw.items():
            number = _as_float(hours)
            if number is not None:
                distribution[str(name)] = number
    recommendations = workload_raw.get("recommendations")

    return ProjectPlan(
        phases=phases,
        suggested_assignees=assignees,
        workload_analysis=compute_workload(
            phases,
            distribution=distribution,
            recommendations=[str(r) for r in recommendations] if isinstance(recommendations, list) else [],
        ),
    )
