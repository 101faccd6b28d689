"""
Endpoint tests for the FastAPI app.

The DI container is reset per test so every test gets a fresh in-memory
SQLite database. Hosted providers are unconfigured (see conftest) unless a
test patches a provider getter on the container.
"""

from typing import Dict
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from api_service.src.main import app
from domain.models import SynthesizedAudio
from shared_utils.constants import APIEndpoints
from shared_utils.di_container import get_di_container


ALICE = {"X-User-Id": "u-alice"}
BOB = {"X-User-Id": "u-bob"}


@pytest.fixture()
def container():
    c = get_di_container()
    c.reset()
    yield c
    c.reset()


@pytest.fixture()
def client(container) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def ids(client: TestClient) -> Dict[str, str]:
    """Register Alice and Bob, create Alice's agent and meeting."""
    client.post(APIEndpoints.USERS, json={"name": "Alice", "email": "alice@example.com"}, headers=ALICE)
    client.post(APIEndpoints.USERS, json={"name": "Bob", "email": "bob@example.com"}, headers=BOB)
    agent = client.post(
        APIEndpoints.AGENTS, json={"name": "Planner", "instructions": "You plan."}, headers=ALICE,
    ).json()
    meeting = client.post(
        APIEndpoints.MEETINGS, json={"name": "Kickoff", "agentId": agent["agent_id"]}, headers=ALICE,
    ).json()
    return {"agent_id": agent["agent_id"], "meeting_id": meeting["meeting_id"]}


# ---------------------------------------------------------------------------
# Health and identity
# ---------------------------------------------------------------------------

class TestHealth:
    def test_health_check(self, client: TestClient) -> None:
        response = client.get(APIEndpoints.HEALTH)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["providers"] == {"llm": False, "sentiment": False, "tts": False}

    def test_unhealthy(self, client: TestClient, container, monkeypatch) -> None:
        monkeypatch.setattr(container, "provider_status", MagicMock(side_effect=RuntimeError("db down")))
        response = client.get(APIEndpoints.HEALTH)
        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


class TestUsers:
    def test_missing_identity_header(self, client: TestClient) -> None:
        response = client.get(APIEndpoints.AGENTS)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ACCESS_DENIED"

    def test_register(self, client: TestClient) -> None:
        response = client.post(APIEndpoints.USERS, json={"name": "Cara", "email": "c@x.io"}, headers={"X-User-Id": "u-cara"})
        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Cara"

    def test_register_requires_name(self, client: TestClient) -> None:
        response = client.post(APIEndpoints.USERS, json={"email": "c@x.io"}, headers={"X-User-Id": "u-cara"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_INPUT"


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------

class TestAgents:
    def test_crud(self, client: TestClient, ids) -> None:
        agent_url = f"{APIEndpoints.AGENTS}/{ids['agent_id']}"

        listed = client.get(APIEndpoints.AGENTS, params={"search": "plan"}, headers=ALICE).json()
        assert [a["name"] for a in listed["items"]] == ["Planner"]

        assert client.get(agent_url, headers=BOB).status_code == 404

        patched = client.patch(agent_url, json={"instructions": "Be brief."}, headers=ALICE)
        assert patched.json()["instructions"] == "Be brief."

        info = client.get(APIEndpoints.AGENT_INFO, params={"agentId": ids["agent_id"]}).json()
        assert info == {"id": ids["agent_id"], "name": "Planner", "instructions": "Be brief."}

        assert client.delete(agent_url, headers=ALICE).status_code == 200
        assert client.get(agent_url, headers=ALICE).status_code == 404

    def test_unknown_user_cannot_create(self, client: TestClient) -> None:
        response = client.post(
            APIEndpoints.AGENTS, json={"name": "X", "instructions": "Y"}, headers={"X-User-Id": "u-ghost"},
        )
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Meetings
# ---------------------------------------------------------------------------

class TestMeetings:
    def test_create_is_active(self, client: TestClient, ids) -> None:
        meeting = client.get(f"{APIEndpoints.MEETINGS}/{ids['meeting_id']}", headers=ALICE).json()
        assert meeting["status"] == "active"
        assert meeting["agent_name"] == "Planner"
        assert meeting["summary"] is None

    def test_create_unknown_user(self, client: TestClient, ids) -> None:
        response = client.post(
            APIEndpoints.MEETINGS, json={"name": "X", "agentId": ids["agent_id"]}, headers={"X-User-Id": "u-ghost"},
        )
        assert response.status_code == 404

    def test_list_and_open(self, client: TestClient, ids) -> None:
        page = client.get(APIEndpoints.MEETINGS, params={"page": 1, "pageSize": 5}, headers=ALICE).json()
        assert page["total"] == 1
        assert page["totalPages"] == 1
        opened = client.get(APIEndpoints.MEETINGS_OPEN, headers=ALICE).json()
        assert [m["meeting_id"] for m in opened["items"]] == [ids["meeting_id"]]

    def test_bad_status_filter(self, client: TestClient, ids) -> None:
        response = client.get(APIEndpoints.MEETINGS, params={"status": "archived"}, headers=ALICE)
        assert response.status_code == 400

    def test_update_and_delete(self, client: TestClient, ids) -> None:
        url = f"{APIEndpoints.MEETINGS}/{ids['meeting_id']}"
        patched = client.patch(url, json={"name": "Renamed", "status": "upcoming"}, headers=ALICE).json()
        assert (patched["name"], patched["status"]) == ("Renamed", "upcoming")
        assert client.patch(url, json={"name": "Hijack"}, headers=BOB).status_code == 404
        assert client.delete(url, headers=ALICE).status_code == 200
        assert client.get(url, headers=ALICE).status_code == 404

    def test_participants(self, client: TestClient, ids) -> None:
        meeting_url = f"{APIEndpoints.MEETINGS}/{ids['meeting_id']}"
        assert client.get(meeting_url, headers=BOB).status_code == 404

        joined = client.post(f"{meeting_url}/join", json={"role": "attendee"}, headers=BOB)
        assert joined.json()["success"] is True
        assert client.get(meeting_url, headers=BOB).status_code == 200

        roster = client.get(APIEndpoints.MEETING_PARTICIPANTS, params={"meetingId": ids["meeting_id"]}).json()
        assert [p["user_name"] for p in roster["participants"]] == ["Bob"]

        left = client.post(f"{meeting_url}/leave", headers=BOB).json()
        assert left["participant"]["left_at"] is not None

    def test_complete(self, client: TestClient, ids) -> None:
        client.post(APIEndpoints.CONVERSATION_CHUNKS, json={
            "meetingId": ids["meeting_id"], "speaker": "user", "text": "I'm good at React",
            "userName": "Bob", "ts": "2026-01-15T10:00:00Z",
        })
        response = client.post(APIEndpoints.MEETING_COMPLETE, json={"meetingId": ids["meeting_id"]})
        body = response.json()
        assert body["success"] is True
        assert body["summary"].startswith("Key points:")
        assert body["insights"]["source"] == "heuristic"
        assert body["insights"]["expertise_detection"] == {"Bob": {"react": 0.6}}

        meeting = client.get(f"{APIEndpoints.MEETINGS}/{ids['meeting_id']}", headers=ALICE).json()
        assert meeting["status"] == "completed"
        assert meeting["summary"]["summaryText"] == body["summary"]

    def test_complete_requires_meeting_id(self, client: TestClient) -> None:
        assert client.post(APIEndpoints.MEETING_COMPLETE, json={}).status_code == 400


# ---------------------------------------------------------------------------
# Conversation capture and live sync
# ---------------------------------------------------------------------------

class TestConversation:
    def test_chunks_and_transcript(self, client: TestClient, ids) -> None:
        for i, (speaker, text, name) in enumerate([("user", "Hi all", "Alice"), ("ai", "Hello!", None)]):
            response = client.post(APIEndpoints.CONVERSATION_CHUNKS, json={
                "meetingId": ids["meeting_id"], "speaker": speaker, "text": text,
                "userName": name, "ts": f"2026-01-15T10:00:0{i}Z",
            })
            assert response.json()["success"] is True

        text = client.get(APIEndpoints.CONVERSATION_CHUNKS, params={"meetingId": ids["meeting_id"]}).json()
        assert text == {"transcript": "Alice: Hi all\nAI: Hello!"}
        chunks = client.get(
            APIEndpoints.CONVERSATION_CHUNKS, params={"meetingId": ids["meeting_id"], "format": "chunks"},
        ).json()
        assert [c["speaker"] for c in chunks["chunks"]] == ["user", "ai"]

    def test_invalid_chunk(self, client: TestClient, ids) -> None:
        response = client.post(APIEndpoints.CONVERSATION_CHUNKS, json={
            "meetingId": ids["meeting_id"], "speaker": "robot", "text": "beep",
        })
        assert response.status_code == 400

    def test_live_sync(self, client: TestClient) -> None:
        posted = client.post(APIEndpoints.CONVERSATION_SYNC, json={
            "meetingId": "m-live", "transcript": "Alice: hi", "isAgentSpeaking": True,
        }).json()
        assert posted["success"] is True
        assert posted["isAgentSpeaking"] is True

        state = client.get(APIEndpoints.CONVERSATION_SYNC, params={"meetingId": "m-live"}).json()
        assert state["transcript"] == "Alice: hi"
        assert state["agentResponse"] == ""

        assert client.delete(APIEndpoints.CONVERSATION_SYNC, params={"meetingId": "m-live"}).json() == {"success": True}
        assert client.get(APIEndpoints.CONVERSATION_SYNC, params={"meetingId": "m-live"}).json()["transcript"] == ""


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

class TestChat:
    def test_without_llm(self, client: TestClient, ids) -> None:
        response = client.post(APIEndpoints.CHAT, json={"message": "Hi", "agentId": ids["agent_id"]})
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INVALID_CONFIG"

    def test_with_llm(self, client: TestClient, container, ids, monkeypatch, mock_llm) -> None:
        monkeypatch.setattr(container, "get_llm_provider", lambda: mock_llm)
        mock_llm.complete.return_value = "Let's plan."
        response = client.post(APIEndpoints.CHAT, json={"message": "Hi", "agentId": ids["agent_id"]})
        assert response.json() == {"response": "Let's plan.", "agent": "Planner"}

    def test_missing_message(self, client: TestClient) -> None:
        assert client.post(APIEndpoints.CHAT, json={"agentId": "a"}).status_code == 400

    def test_ai_subtasks(self, client: TestClient, container, monkeypatch, mock_llm) -> None:
        assert client.post(APIEndpoints.AI_SUBTASKS, json={}).status_code == 400
        assert client.post(APIEndpoints.AI_SUBTASKS, json={"title": "Build API"}).json()["suggestions"] == []

        container.reset()
        monkeypatch.setattr(container, "get_llm_provider", lambda: mock_llm)
        mock_llm.complete.return_value = '[{"title": "Routes", "estimatedHours": 2}]'
        body = client.post(APIEndpoints.AI_SUBTASKS, json={"title": "Build API"}).json()
        assert body["suggestions"] == [{"title": "Routes", "description": "", "estimatedHours": 2.0}]


# ---------------------------------------------------------------------------
# Task board
# ---------------------------------------------------------------------------

class TestTaskBoard:
    def test_task_lifecycle(self, client: TestClient, ids) -> None:
        created = client.post(APIEndpoints.TASKS, json={
            "meetingId": ids["meeting_id"], "title": "Write API", "phase": "Backend",
            "estimatedHours": "6", "tags": "api,backend",
        }).json()
        assert created["success"] is True
        assert created["aiSubtaskSuggestions"] == []
        task = created["task"]
        assert task["phase_name"] == "Project Planning & Setup"
        assert task["tags"] == ["api", "backend"]

        phases = client.get(APIEndpoints.PHASES, params={"meetingId": ids["meeting_id"]}).json()
        assert [p["name"] for p in phases["phases"]] == ["Project Planning & Setup"]

        updated = client.put(APIEndpoints.TASKS, json={"id": task["task_id"], "status": "done"}).json()
        assert updated["task"]["status"] == "done"

        subtask = client.post(APIEndpoints.SUBTASKS, json={"taskId": task["task_id"], "title": "Routes"}).json()
        subtask_id = subtask["subtask"]["subtask_id"]
        toggled = client.put(APIEndpoints.SUBTASKS, json={"id": subtask_id, "completed": True}).json()
        assert toggled["subtask"]["completed"] is True
        listed = client.get(APIEndpoints.SUBTASKS, params={"taskId": task["task_id"]}).json()
        assert len(listed["subtasks"]) == 1
        deleted = client.delete(APIEndpoints.SUBTASKS, params={"subtaskId": subtask_id}).json()
        assert deleted["message"] == "Subtask deleted successfully"

        tasks = client.get(APIEndpoints.TASKS, params={"meetingId": ids["meeting_id"]}).json()
        assert len(tasks["tasks"]) == 1
        response = client.delete(APIEndpoints.TASKS, params={"taskId": task["task_id"]})
        assert response.json()["message"] == "Task deleted successfully"

    def test_validation(self, client: TestClient, ids) -> None:
        missing_phase = client.post(APIEndpoints.TASKS, json={"meetingId": ids["meeting_id"], "title": "x"})
        assert missing_phase.status_code == 400
        assert client.put(APIEndpoints.TASKS, json={"status": "done"}).status_code == 400
        assert client.put(APIEndpoints.SUBTASKS, json={"completed": True}).status_code == 400
        assert client.delete(APIEndpoints.TASKS, params={"taskId": "ghost"}).status_code == 404


# ---------------------------------------------------------------------------
# Project plan
# ---------------------------------------------------------------------------

class TestProjectPlan:
    def test_generate_and_read(self, client: TestClient, ids) -> None:
        client.post(APIEndpoints.CONVERSATION_CHUNKS, json={
            "meetingId": ids["meeting_id"], "speaker": "user", "text": "The frontend UI needs work",
        })
        generated = client.post(APIEndpoints.PROJECT_PLAN, json={"meetingId": ids["meeting_id"]}).json()
        assert generated["success"] is True
        assert generated["projectPlan"]["usedFallback"] is True
        assert [p["name"] for p in generated["phases"]] == ["Frontend Development"]
        assert generated["workloadAnalysis"]["estimatedTotalHours"] == 16

        latest = client.get(APIEndpoints.PROJECT_PLAN, params={"meetingId": ids["meeting_id"]}).json()
        assert latest["projectPlan"]["generationId"] == generated["projectPlan"]["generationId"]
        assert latest["phases"][0]["color"] == "#3B82F6"
        assert latest["suggestedAssignees"][0]["userName"] == "Development Team"

    def test_errors(self, client: TestClient, ids) -> None:
        assert client.post(APIEndpoints.PROJECT_PLAN, json={}).status_code == 400
        assert client.post(APIEndpoints.PROJECT_PLAN, json={"meetingId": "ghost"}).status_code == 404
        assert client.get(APIEndpoints.PROJECT_PLAN, params={"meetingId": ids["meeting_id"]}).status_code == 404


# ---------------------------------------------------------------------------
# Speech and sentiment
# ---------------------------------------------------------------------------

class TestProviders:
    def test_tts_not_configured(self, client: TestClient) -> None:
        response = client.post(APIEndpoints.TTS, json={"text": "Hello"})
        assert response.status_code == 501
        assert response.json()["error"]["code"] == "TTS_NOT_CONFIGURED"
        assert client.get(APIEndpoints.TTS).json() == {"available": False}

    def test_tts_audio(self, client: TestClient, container, monkeypatch) -> None:
        provider = MagicMock()
        provider.synthesize.return_value = SynthesizedAudio(content=b"ID3", content_type="audio/mpeg")
        monkeypatch.setattr(container, "get_speech_provider", lambda: provider)

        response = client.post(APIEndpoints.TTS, json={"text": "Hello", "voiceId": "v-2"})
        assert response.status_code == 200
        assert response.content == b"ID3"
        assert response.headers["content-type"] == "audio/mpeg"
        provider.synthesize.assert_called_once_with("Hello", voice_id="v-2")

    def test_tts_requires_text(self, client: TestClient) -> None:
        assert client.post(APIEndpoints.TTS, json={"text": "  "}).status_code == 400

    def test_sentiment_check(self, client: TestClient) -> None:
        assert client.get(APIEndpoints.SENTIMENT_CHECK).json() == {
            "ok": False, "error": "HUGGINGFACE_API_KEY not configured",
        }
