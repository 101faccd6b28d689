"""
FastAPI backend for CollabSphereAI.

Endpoints:
    GET    /health                       Health check + provider availability
    POST   /api/users                    Register / refresh the calling user
    POST   /api/agents                   Create agent
    GET    /api/agents                   List caller's agents (?search=)
    GET    /api/agents/{id}              Get agent
    PATCH  /api/agents/{id}              Update agent
    DELETE /api/agents/{id}              Remove agent
    GET    /api/agent-info               Public agent lookup (?agentId=)
    POST   /api/meetings                 Create meeting
    GET    /api/meetings                 Paged meeting list
    GET    /api/meetings/open            Caller's active/upcoming meetings
    GET    /api/meetings/{id}            Get meeting with parsed summary
    PATCH  /api/meetings/{id}            Update meeting
    DELETE /api/meetings/{id}            Remove meeting
    POST   /api/meetings/{id}/join       Join as participant
    POST   /api/meetings/{id}/leave      Leave meeting
    GET    /api/meeting-participants     Participant roster (?meetingId=)
    POST   /api/meeting-complete         Summarize + complete a meeting
    POST   /api/conversation-chunks      Append one utterance
    GET    /api/conversation-chunks      Transcript (?meetingId=&format=chunks|text)
    POST   /api/conversation-sync        Merge live-call state
    GET    /api/conversation-sync        Read live-call state
    DELETE /api/conversation-sync        Drop live-call state
    POST   /api/chat                     Agent reply
    POST   /api/ai-subtasks              Subtask suggestions
    GET|POST|PUT|DELETE /api/tasks       Task board
    GET|POST|PUT|DELETE /api/subtasks    Subtasks
    GET    /api/phases                   Project phases
    POST   /api/ai-project-plan          Generate project plan
    GET    /api/ai-project-plan          Latest project plan
    POST   /api/tts                      Neural speech (audio bytes)
    GET    /api/tts                      Neural speech availability
    GET    /api/sentiment/check          Sentiment classifier health

Caller identity is supplied by the upstream auth layer in ``X-User-Id``.
"""

from typing import Any, Dict, Optional
from fastapi import FastAPI, Header, Query, Request, status
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
import uvicorn

from shared_utils.config_loader import get_settings
from shared_utils.logging_utils import ContextualLogger, configure_logging
from shared_utils.constants import LogScope, APIEndpoints
from shared_utils.error_handler import (
    AccessDeniedError, AppException, SpeechSynthesisError, ValidationError, handle_error
)
from shared_utils.validation import InputValidator
from shared_utils.di_container import get_di_container
from domain.models import MeetingRecord


# ---------------------------------------------------------------------------
# Application bootstrap
# ---------------------------------------------------------------------------

settings = get_settings()
configure_logging(settings.log_level)
logger = ContextualLogger(scope=LogScope.API)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=settings.app_description,
)

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

LLM_RATE = "10/minute"
CRUD_RATE = "60/minute"

logger.info("api_initialized", environment=settings.environment)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_user(user_id: Optional[str]) -> str:
    if not user_id or not user_id.strip():
        raise AccessDeniedError("X-User-Id header is required")
    return user_id.strip()


def _app_error(e: AppException, event: str) -> JSONResponse:
    logger.warning(event, error_code=e.error_code)
    return JSONResponse(status_code=e.http_status, content=e.to_dict())


def _unexpected_error(e: Exception) -> JSONResponse:
    error_response = handle_error(e, scope=LogScope.API)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response,
    )


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(mode="json")


def _meeting_json(meeting: MeetingRecord) -> Dict[str, Any]:
    body = _dump(meeting)
    parsed = meeting.parsed_summary()
    body["summary"] = parsed.model_dump(mode="json", by_alias=True) if parsed else None
    return body


def _pick(body: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, Any]:
    """Rename the present camelCase keys of ``body`` to service field names."""
    return {field: body[key] for key, field in mapping.items() if key in body}


MEETING_FIELDS = {
    "name": "name", "agentId": "agent_id", "status": "status",
    "startedAt": "started_at", "endedAt": "ended_at",
    "transcriptUrl": "transcript_url", "recordingUrl": "recording_url",
}
AGENT_FIELDS = {"name": "name", "instructions": "instructions"}
TASK_FIELDS = {
    "title": "title", "description": "description", "phase": "phase",
    "status": "status", "assignee": "assignee", "assigneeId": "assignee_id",
    "priority": "priority", "estimatedHours": "estimated_hours",
    "dueDate": "due_date", "tags": "tags",
}


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get(APIEndpoints.HEALTH)
def health_check() -> dict:
    """Health check endpoint."""
    try:
        logger.debug("health_check_requested")
        return {
            "status": "healthy",
            "environment": settings.environment,
            "providers": get_di_container().provider_status(),
        }
    except Exception as e:
        logger.error("health_check_failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "error": str(e)},
        )


# ======================================================================
# Users and agents
# ======================================================================

@app.post(APIEndpoints.USERS)
@limiter.limit(CRUD_RATE)
async def register_user(
    request: Request,
    body: dict,
    x_user_id: Optional[str] = Header(default=None),
) -> JSONResponse:
    """Create or refresh the caller's user row (identity is external)."""
    try:
        user_id = _require_user(x_user_id)
        user = get_di_container().get_meeting_service().register_user(
            user_id=user_id,
            name=body.get("name"),
            email=body.get("email"),
            image=body.get("image"),
        )
        return JSONResponse(content={"success": True, "user": _dump(user)})
    except AppException as e:
        return _app_error(e, "register_user_error")
    except Exception as e:
        return _unexpected_error(e)


@app.post(APIEndpoints.AGENTS)
@limiter.limit(CRUD_RATE)
async def create_agent(
    request: Request,
    body: dict,
    x_user_id: Optional[str] = Header(default=None),
) -> JSONResponse:
    try:
        user_id = _require_user(x_user_id)
        agent = get_di_container().get_agent_service().create_agent(
            user_id=user_id,
            name=body.get("name"),
            instructions=body.get("instructions"),
        )
        return JSONResponse(status_code=status.HTTP_201_CREATED, content=_dump(agent))
    except AppException as e:
        return _app_error(e, "create_agent_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.AGENTS)
async def list_agents(
    search: Optional[str] = None,
    x_user_id: Optional[str] = Header(default=None),
) -> JSONResponse:
    try:
        user_id = _require_user(x_user_id)
        agents = get_di_container().get_agent_service().list_agents(user_id, search=search)
        return JSONResponse(content={"items": [_dump(a) for a in agents]})
    except AppException as e:
        return _app_error(e, "list_agents_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.AGENT)
async def get_agent(agent_id: str, x_user_id: Optional[str] = Header(default=None)) -> JSONResponse:
    try:
        user_id = _require_user(x_user_id)
        agent = get_di_container().get_agent_service().get_agent(user_id, agent_id)
        return JSONResponse(content=_dump(agent))
    except AppException as e:
        return _app_error(e, "get_agent_error")
    except Exception as e:
        return _unexpected_error(e)


@app.patch(APIEndpoints.AGENT)
@limiter.limit(CRUD_RATE)
async def update_agent(
    request: Request,
    agent_id: str,
    body: dict,
    x_user_id: Optional[str] = Header(default=None),
) -> JSONResponse:
    try:
        user_id = _require_user(x_user_id)
        agent = get_di_container().get_agent_service().update_agent(
            user_id, agent_id, **_pick(body, AGENT_FIELDS)
        )
        return JSONResponse(content=_dump(agent))
    except AppException as e:
        return _app_error(e, "update_agent_error")
    except Exception as e:
        return _unexpected_error(e)


@app.delete(APIEndpoints.AGENT)
async def remove_agent(agent_id: str, x_user_id: Optional[str] = Header(default=None)) -> JSONResponse:
    try:
        user_id = _require_user(x_user_id)
        agent = get_di_container().get_agent_service().remove_agent(user_id, agent_id)
        return JSONResponse(content=_dump(agent))
    except AppException as e:
        return _app_error(e, "remove_agent_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.AGENT_INFO)
async def agent_info(agent_id: Optional[str] = Query(default=None, alias="agentId")) -> JSONResponse:
    """Public agent lookup used by the call UI."""
    try:
        info = get_di_container().get_agent_service().get_agent_info(agent_id)
        return JSONResponse(content=info)
    except AppException as e:
        return _app_error(e, "agent_info_error")
    except Exception as e:
        return _unexpected_error(e)


# ======================================================================
# Meetings
# ======================================================================

@app.post(APIEndpoints.MEETINGS)
@limiter.limit(CRUD_RATE)
async def create_meeting(
    request: Request,
    body: dict,
    x_user_id: Optional[str] = Header(default=None),
) -> JSONResponse:
    try:
        user_id = _require_user(x_user_id)
        meeting = get_di_container().get_meeting_service().create_meeting(
            user_id=user_id,
            name=body.get("name"),
            agent_id=body.get("agentId"),
        )
        return JSONResponse(status_code=status.HTTP_201_CREATED, content=_meeting_json(meeting))
    except AppException as e:
        return _app_error(e, "create_meeting_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.MEETINGS)
async def list_meetings(
    page: Optional[str] = None,
    page_size: Optional[str] = Query(default=None, alias="pageSize"),
    search: Optional[str] = None,
    meeting_status: Optional[str] = Query(default=None, alias="status"),
    agent_id: Optional[str] = Query(default=None, alias="agentId"),
    x_user_id: Optional[str] = Header(default=None),
) -> JSONResponse:
    """Owner-or-participant meetings, newest first."""
    try:
        user_id = _require_user(x_user_id)
        result = get_di_container().get_meeting_service().list_meetings(
            user_id,
            page=page,
            page_size=page_size,
            search=search,
            status=meeting_status,
            agent_id=agent_id,
        )
        return JSONResponse(content={
            "items": [_meeting_json(m) for m in result.items],
            "total": result.total,
            "totalPages": result.total_pages,
        })
    except AppException as e:
        return _app_error(e, "list_meetings_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.MEETINGS_OPEN)
async def list_open_meetings(x_user_id: Optional[str] = Header(default=None)) -> JSONResponse:
    try:
        user_id = _require_user(x_user_id)
        meetings = get_di_container().get_meeting_service().list_open_meetings(user_id)
        return JSONResponse(content={"items": [_meeting_json(m) for m in meetings]})
    except AppException as e:
        return _app_error(e, "list_open_meetings_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.MEETING)
async def get_meeting(meeting_id: str, x_user_id: Optional[str] = Header(default=None)) -> JSONResponse:
    try:
        user_id = _require_user(x_user_id)
        meeting = get_di_container().get_meeting_service().get_meeting(user_id, meeting_id)
        return JSONResponse(content=_meeting_json(meeting))
    except AppException as e:
        return _app_error(e, "get_meeting_error")
    except Exception as e:
        return _unexpected_error(e)


@app.patch(APIEndpoints.MEETING)
@limiter.limit(CRUD_RATE)
async def update_meeting(
    request: Request,
    meeting_id: str,
    body: dict,
    x_user_id: Optional[str] = Header(default=None),
) -> JSONResponse:
    try:
        user_id = _require_user(x_user_id)
        meeting = get_di_container().get_meeting_service().update_meeting(
            user_id, meeting_id, **_pick(body, MEETING_FIELDS)
        )
        return JSONResponse(content=_meeting_json(meeting))
    except AppException as e:
        return _app_error(e, "update_meeting_error")
    except Exception as e:
        return _unexpected_error(e)


@app.delete(APIEndpoints.MEETING)
async def remove_meeting(meeting_id: str, x_user_id: Optional[str] = Header(default=None)) -> JSONResponse:
    try:
        user_id = _require_user(x_user_id)
        meeting = get_di_container().get_meeting_service().remove_meeting(user_id, meeting_id)
        return JSONResponse(content=_meeting_json(meeting))
    except AppException as e:
        return _app_error(e, "remove_meeting_error")
    except Exception as e:
        return _unexpected_error(e)


@app.post(APIEndpoints.MEETING_JOIN)
@limiter.limit(CRUD_RATE)
async def join_meeting(
    request: Request,
    meeting_id: str,
    body: Optional[dict] = None,
    x_user_id: Optional[str] = Header(default=None),
) -> JSONResponse:
    try:
        user_id = _require_user(x_user_id)
        participant = get_di_container().get_meeting_service().join_meeting(
            user_id, meeting_id, role=(body or {}).get("role") or "attendee"
        )
        return JSONResponse(content={"success": True, "participant": _dump(participant)})
    except AppException as e:
        return _app_error(e, "join_meeting_error")
    except Exception as e:
        return _unexpected_error(e)


@app.post(APIEndpoints.MEETING_LEAVE)
async def leave_meeting(meeting_id: str, x_user_id: Optional[str] = Header(default=None)) -> JSONResponse:
    try:
        user_id = _require_user(x_user_id)
        participant = get_di_container().get_meeting_service().leave_meeting(user_id, meeting_id)
        return JSONResponse(content={"success": True, "participant": _dump(participant)})
    except AppException as e:
        return _app_error(e, "leave_meeting_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.MEETING_PARTICIPANTS)
async def list_participants(meeting_id: Optional[str] = Query(default=None, alias="meetingId")) -> JSONResponse:
    try:
        participants = get_di_container().get_meeting_service().list_participants(meeting_id)
        return JSONResponse(content={"participants": [_dump(p) for p in participants]})
    except AppException as e:
        return _app_error(e, "list_participants_error")
    except Exception as e:
        return _unexpected_error(e)


@app.post(APIEndpoints.MEETING_COMPLETE)
@limiter.limit(LLM_RATE)
def complete_meeting(request: Request, body: dict) -> JSONResponse:
    """Summarize the conversation, store insights and mark completed.

    Body JSON:
        meetingId (str): Meeting to complete.
        conversation (str, optional): Transcript text; defaults to stored chunks.
    """
    try:
        meeting_id = body.get("meetingId")
        if not meeting_id:
            raise ValidationError("Missing meetingId")
        summary = get_di_container().get_meeting_service().complete_meeting(
            meeting_id, conversation=body.get("conversation")
        )
        return JSONResponse(content={
            "success": True,
            "summary": summary.summary_text,
            "insights": summary.insights.model_dump(mode="json") if summary.insights else None,
        })
    except AppException as e:
        return _app_error(e, "meeting_complete_error")
    except Exception as e:
        return _unexpected_error(e)


# ======================================================================
# Conversation capture and live sync
# ======================================================================

@app.post(APIEndpoints.CONVERSATION_CHUNKS)
@limiter.limit("120/minute")
async def append_chunk(request: Request, body: dict) -> JSONResponse:
    try:
        chunk = get_di_container().get_conversation_service().append_chunk(
            meeting_id=body.get("meetingId"),
            speaker=body.get("speaker"),
            text=body.get("text"),
            user_id=body.get("userId"),
            user_name=body.get("userName"),
            ts=InputValidator.parse_optional_datetime(body.get("ts"), "ts"),
        )
        return JSONResponse(content={"success": True, "chunk": _dump(chunk)})
    except AppException as e:
        return _app_error(e, "append_chunk_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.CONVERSATION_CHUNKS)
async def read_transcript(
    meeting_id: Optional[str] = Query(default=None, alias="meetingId"),
    fmt: str = Query(default="text", alias="format"),
) -> JSONResponse:
    try:
        result = get_di_container().get_conversation_service().read_transcript(meeting_id, fmt)
        if isinstance(result, str):
            return JSONResponse(content={"transcript": result})
        return JSONResponse(content={"chunks": [_dump(c) for c in result]})
    except AppException as e:
        return _app_error(e, "read_transcript_error")
    except Exception as e:
        return _unexpected_error(e)


@app.post(APIEndpoints.CONVERSATION_SYNC)
@limiter.limit("120/minute")
async def sync_live_state(request: Request, body: dict) -> JSONResponse:
    try:
        state = get_di_container().get_conversation_service().sync_live_state(
            body.get("meetingId"),
            transcript=body.get("transcript"),
            agent_response=body.get("agentResponse"),
            is_agent_speaking=body.get("isAgentSpeaking"),
        )
        return JSONResponse(content={"success": True, **state.model_dump(mode="json", by_alias=True)})
    except AppException as e:
        return _app_error(e, "sync_live_state_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.CONVERSATION_SYNC)
async def get_live_state(meeting_id: Optional[str] = Query(default=None, alias="meetingId")) -> JSONResponse:
    try:
        state = get_di_container().get_conversation_service().get_live_state(meeting_id)
        return JSONResponse(content=state.model_dump(mode="json", by_alias=True))
    except AppException as e:
        return _app_error(e, "get_live_state_error")
    except Exception as e:
        return _unexpected_error(e)


@app.delete(APIEndpoints.CONVERSATION_SYNC)
async def clear_live_state(meeting_id: Optional[str] = Query(default=None, alias="meetingId")) -> JSONResponse:
    try:
        get_di_container().get_conversation_service().clear_live_state(meeting_id)
        return JSONResponse(content={"success": True})
    except AppException as e:
        return _app_error(e, "clear_live_state_error")
    except Exception as e:
        return _unexpected_error(e)


# ======================================================================
# Agent chat
# ======================================================================

@app.post(APIEndpoints.CHAT)
@limiter.limit(LLM_RATE)
def chat(request: Request, body: dict) -> JSONResponse:
    """Agent reply. Body JSON: message (str), agentId (str)."""
    try:
        reply = get_di_container().get_chat_service().reply(body.get("message"), body.get("agentId"))
        return JSONResponse(content=reply)
    except AppException as e:
        return _app_error(e, "chat_error")
    except Exception as e:
        return _unexpected_error(e)


@app.post(APIEndpoints.AI_SUBTASKS)
@limiter.limit(LLM_RATE)
def ai_subtasks(request: Request, body: dict) -> JSONResponse:
    try:
        title = body.get("title")
        if not title:
            raise ValidationError("Title is required", context={"field": "title"})
        suggestions = get_di_container().get_chat_service().suggest_subtasks(title, body.get("description"))
        return JSONResponse(content={
            "success": True,
            "suggestions": [s.model_dump(mode="json", by_alias=True) for s in suggestions],
        })
    except AppException as e:
        return _app_error(e, "ai_subtasks_error")
    except Exception as e:
        return _unexpected_error(e)


# ======================================================================
# Task board
# ======================================================================

@app.get(APIEndpoints.TASKS)
async def list_tasks(meeting_id: Optional[str] = Query(default=None, alias="meetingId")) -> JSONResponse:
    try:
        tasks = get_di_container().get_task_service().list_tasks(meeting_id)
        return JSONResponse(content={"success": True, "tasks": [_dump(t) for t in tasks]})
    except AppException as e:
        return _app_error(e, "list_tasks_error")
    except Exception as e:
        return _unexpected_error(e)


@app.post(APIEndpoints.TASKS)
@limiter.limit(CRUD_RATE)
def create_task(request: Request, body: dict) -> JSONResponse:
    try:
        result = get_di_container().get_task_service().create_task(
            meeting_id=body.get("meetingId"),
            title=body.get("title"),
            phase=body.get("phase"),
            description=body.get("description"),
            assignee_id=body.get("assigneeId"),
            priority=body.get("priority"),
            estimated_hours=body.get("estimatedHours"),
            due_date=body.get("dueDate"),
            tags=body.get("tags"),
        )
        return JSONResponse(content={
            "success": True,
            "task": _dump(result["task"]),
            "aiSubtaskSuggestions": [
                s.model_dump(mode="json", by_alias=True) for s in result["suggested_subtasks"]
            ],
        })
    except AppException as e:
        return _app_error(e, "create_task_error")
    except Exception as e:
        return _unexpected_error(e)


@app.put(APIEndpoints.TASKS)
@limiter.limit(CRUD_RATE)
async def update_task(request: Request, body: dict) -> JSONResponse:
    try:
        task_id = body.get("id")
        if not task_id:
            raise ValidationError("Task ID is required", context={"field": "id"})
        task = get_di_container().get_task_service().update_task(task_id, **_pick(body, TASK_FIELDS))
        return JSONResponse(content={"success": True, "task": _dump(task)})
    except AppException as e:
        return _app_error(e, "update_task_error")
    except Exception as e:
        return _unexpected_error(e)


@app.delete(APIEndpoints.TASKS)
async def delete_task(task_id: Optional[str] = Query(default=None, alias="taskId")) -> JSONResponse:
    try:
        get_di_container().get_task_service().delete_task(task_id)
        return JSONResponse(content={"success": True, "message": "Task deleted successfully"})
    except AppException as e:
        return _app_error(e, "delete_task_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.SUBTASKS)
async def list_subtasks(task_id: Optional[str] = Query(default=None, alias="taskId")) -> JSONResponse:
    try:
        subtasks = get_di_container().get_task_service().list_subtasks(task_id)
        return JSONResponse(content={"success": True, "subtasks": [_dump(s) for s in subtasks]})
    except AppException as e:
        return _app_error(e, "list_subtasks_error")
    except Exception as e:
        return _unexpected_error(e)


@app.post(APIEndpoints.SUBTASKS)
@limiter.limit(CRUD_RATE)
async def create_subtask(request: Request, body: dict) -> JSONResponse:
    try:
        subtask = get_di_container().get_task_service().create_subtask(
            task_id=body.get("taskId"),
            title=body.get("title"),
            ai_generated=bool(body.get("aiGenerated", False)),
        )
        return JSONResponse(content={"success": True, "subtask": _dump(subtask)})
    except AppException as e:
        return _app_error(e, "create_subtask_error")
    except Exception as e:
        return _unexpected_error(e)


@app.put(APIEndpoints.SUBTASKS)
@limiter.limit(CRUD_RATE)
async def update_subtask(request: Request, body: dict) -> JSONResponse:
    try:
        subtask_id = body.get("id")
        if not subtask_id:
            raise ValidationError("Subtask ID is required", context={"field": "id"})
        subtask = get_di_container().get_task_service().update_subtask(
            subtask_id, title=body.get("title"), completed=body.get("completed")
        )
        return JSONResponse(content={"success": True, "subtask": _dump(subtask)})
    except AppException as e:
        return _app_error(e, "update_subtask_error")
    except Exception as e:
        return _unexpected_error(e)


@app.delete(APIEndpoints.SUBTASKS)
async def delete_subtask(subtask_id: Optional[str] = Query(default=None, alias="subtaskId")) -> JSONResponse:
    try:
        get_di_container().get_task_service().delete_subtask(subtask_id)
        return JSONResponse(content={"success": True, "message": "Subtask deleted successfully"})
    except AppException as e:
        return _app_error(e, "delete_subtask_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.PHASES)
async def list_phases(meeting_id: Optional[str] = Query(default=None, alias="meetingId")) -> JSONResponse:
    try:
        phases = get_di_container().get_task_service().list_phases(meeting_id)
        return JSONResponse(content={"success": True, "phases": [_dump(p) for p in phases]})
    except AppException as e:
        return _app_error(e, "list_phases_error")
    except Exception as e:
        return _unexpected_error(e)


# ======================================================================
# Project plan
# ======================================================================

@app.post(APIEndpoints.PROJECT_PLAN)
@limiter.limit(LLM_RATE)
def generate_project_plan(request: Request, body: dict) -> JSONResponse:
    """Generate and persist a project plan. Body JSON: meetingId (str)."""
    try:
        meeting_id = body.get("meetingId")
        if not meeting_id:
            raise ValidationError("Meeting ID is required", context={"field": "meetingId"})
        record = get_di_container().get_project_plan_service().generate_plan(meeting_id)
        document = record.plan.to_document()
        return JSONResponse(content={
            "success": True,
            "projectPlan": record.model_dump(mode="json", by_alias=True, exclude={"plan"}),
            **document,
        })
    except AppException as e:
        return _app_error(e, "generate_plan_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.PROJECT_PLAN)
async def get_project_plan(meeting_id: Optional[str] = Query(default=None, alias="meetingId")) -> JSONResponse:
    try:
        result = get_di_container().get_project_plan_service().get_plan(meeting_id)
        record = result["plan"]
        return JSONResponse(content={
            "success": True,
            "projectPlan": record.model_dump(mode="json", by_alias=True, exclude={"plan"}),
            "phases": [_dump(p) for p in result["phases"]],
            "suggestedAssignees": [
                a.model_dump(mode="json", by_alias=True) for a in record.plan.suggested_assignees
            ],
            "workloadAnalysis": record.plan.workload_analysis.model_dump(mode="json", by_alias=True),
        })
    except AppException as e:
        return _app_error(e, "get_plan_error")
    except Exception as e:
        return _unexpected_error(e)


# ======================================================================
# Speech and sentiment providers
# ======================================================================

@app.post(APIEndpoints.TTS)
@limiter.limit("120/minute")
def text_to_speech(request: Request, body: dict) -> Response:
    """Synthesize one phrase with the neural voice; returns audio bytes."""
    try:
        text = InputValidator.validate_non_empty_string(body.get("text"), "text")
        provider = get_di_container().get_speech_provider()
        if provider is None:
            raise SpeechSynthesisError("ElevenLabs API key not configured", not_configured=True)
        audio = provider.synthesize(text, voice_id=body.get("voiceId"))
        return Response(content=audio.content, media_type=audio.content_type)
    except AppException as e:
        return _app_error(e, "tts_error")
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.TTS)
async def tts_available() -> JSONResponse:
    try:
        provider = get_di_container().get_speech_provider()
        return JSONResponse(content={"available": provider is not None and provider.is_available()})
    except Exception as e:
        return _unexpected_error(e)


@app.get(APIEndpoints.SENTIMENT_CHECK)
def sentiment_check() -> JSONResponse:
    """Probe the hosted sentiment classifier with a fixed sentence."""
    try:
        provider = get_di_container().get_sentiment_provider()
        if provider is None:
            return JSONResponse(content={"ok": False, "error": "HUGGINGFACE_API_KEY not configured"})
        return JSONResponse(content=provider.health_check())
    except Exception as e:
        return _unexpected_error(e)


if __name__ == "__main__":
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.api_port,
        log_level="info"
    )
