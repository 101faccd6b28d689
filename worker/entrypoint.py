"""
Worker entrypoint for post-meeting processing.

Run as a one-off job with environment variables:
    MEETING_ID       the meeting to finalize
    FINALIZE_STEPS   comma-separated steps, default ``complete,plan``

The worker:
    1. ``complete``: summarizes the stored transcript and marks the meeting completed.
    2. ``plan``: generates and persists the AI project plan.
    3. Exits 0 on success, 1 on failure.

All logging is JSON (structlog).
"""

from __future__ import annotations

import os
import sys

from shared_utils.constants import LogScope
from shared_utils.config_loader import get_settings
from shared_utils.logging_utils import configure_logging, get_scoped_logger
from shared_utils.di_container import get_di_container

logger = get_scoped_logger(LogScope.WORKER)

DEFAULT_STEPS = "complete,plan"
KNOWN_STEPS = ("complete", "plan")


def main() -> int:
    """Worker main: parse env vars, build deps, run the finalize steps."""
    configure_logging(get_settings().log_level)
    meeting_id = os.environ.get("MEETING_ID", "").strip()
    steps = [
        s.strip().lower()
        for s in os.environ.get("FINALIZE_STEPS", DEFAULT_STEPS).split(",")
        if s.strip()
    ]

    if not meeting_id:
        logger.error("worker_missing_env", meeting_id=meeting_id)
        print("ERROR: MEETING_ID env var is required", file=sys.stderr)
        return 1

    unknown = [s for s in steps if s not in KNOWN_STEPS]
    if unknown or not steps:
        logger.error("worker_invalid_steps", steps=steps, unknown=unknown)
        print(f"ERROR: FINALIZE_STEPS must be drawn from {list(KNOWN_STEPS)}", file=sys.stderr)
        return 1

    logger.info("worker_started", meeting_id=meeting_id, steps=steps)

    try:
        container = get_di_container()

        if "complete" in steps:
            summary = container.get_meeting_service().complete_meeting(meeting_id)
            logger.info(
                "worker_meeting_completed",
                meeting_id=meeting_id,
                insights_source=summary.insights.source.value if summary.insights else None,
            )

        if "plan" in steps:
            record = container.get_project_plan_service().generate_plan(meeting_id)
            logger.info(
                "worker_plan_generated",
                meeting_id=meeting_id,
                generation_id=record.generation_id,
                used_fallback=record.used_fallback,
                total_tasks=record.plan.workload_analysis.total_tasks,
            )

        logger.info("worker_completed", meeting_id=meeting_id)
        return 0

    except Exception as exc:
        logger.error(
            "worker_failed",
            meeting_id=meeting_id,
            error=str(exc),
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
