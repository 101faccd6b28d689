"""
Tests for shared_utils.constants.

Validates enum membership, constant values, and the overall structure
so that accidental additions or removals are caught.
"""

from shared_utils.constants import (
    APIEndpoints,
    Defaults,
    ENVIRONMENT_ALIASES,
    Environment,
    ErrorCode,
    LLMProvider,
    LogScope,
    ModelIDs,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TestEnvironment:
    def test_long_forms(self) -> None:
        assert Environment.DEVELOPMENT.value == "development"
        assert Environment.STAGING.value == "staging"
        assert Environment.PRODUCTION.value == "production"

    def test_aliases(self) -> None:
        assert ENVIRONMENT_ALIASES == {
            "dev": "development",
            "stage": "staging",
            "prod": "production",
        }


class TestLLMProvider:
    def test_values(self) -> None:
        assert LLMProvider.GROQ.value == "groq"
        assert LLMProvider.NONE.value == "none"
        assert len(LLMProvider) == 2


class TestErrorCode:
    def test_codes(self) -> None:
        assert ErrorCode.INVALID_INPUT.value == "INVALID_INPUT"
        assert ErrorCode.NOT_FOUND.value == "NOT_FOUND"
        assert ErrorCode.ACCESS_DENIED.value == "ACCESS_DENIED"
        assert ErrorCode.PLAN_GENERATION_FAILED.value == "PLAN_GENERATION_FAILED"
        assert ErrorCode.TTS_NOT_CONFIGURED.value == "TTS_NOT_CONFIGURED"


# ---------------------------------------------------------------------------
# Constant classes
# ---------------------------------------------------------------------------


class TestModelIDs:
    def test_groq_model(self) -> None:
        assert ModelIDs.GROQ_LLAMA3_8B == "llama3-8b-8192"

    def test_sentiment_model(self) -> None:
        assert "sst-2" in ModelIDs.HF_SST2_SENTIMENT


class TestDefaults:
    def test_sentiment_bounds(self) -> None:
        assert Defaults.SENTIMENT_FLOOR == 0.05
        assert Defaults.SENTIMENT_CEILING == 0.95
        assert Defaults.NEUTRAL_SENTIMENT == 0.5

    def test_speech_limits(self) -> None:
        assert Defaults.SPEECH_CHUNK_CHARS == 220
        assert Defaults.NEURAL_PHRASE_MAX_CHARS == 300
        assert Defaults.RECANCEL_DELAYS_SECONDS == (0.05, 0.15, 0.3)

    def test_default_phase(self) -> None:
        assert Defaults.DEFAULT_PHASE_NAME == "Project Planning & Setup"
        assert Defaults.DEFAULT_PHASE_COLOR == "#8B5CF6"

    def test_positive_numbers(self) -> None:
        assert Defaults.REQUEST_TIMEOUT > 0
        assert Defaults.TRANSCRIPT_CACHE_TTL_SECONDS > 0
        assert Defaults.MAX_PAGE_SIZE >= Defaults.PAGE_SIZE


class TestLogScope:
    def test_core_scopes(self) -> None:
        assert LogScope.CONFIG == "config_loader"
        assert LogScope.API == "api"
        assert LogScope.PROVIDER == "provider"

    def test_pipeline_scopes(self) -> None:
        assert LogScope.INSIGHTS == "insights"
        assert LogScope.PLANNING == "planning"
        assert LogScope.SPEECH == "speech"
        assert LogScope.WORKER == "worker"


class TestAPIEndpoints:
    def test_health_endpoint(self) -> None:
        assert APIEndpoints.HEALTH == "/health"

    def test_meeting_routes(self) -> None:
        assert APIEndpoints.MEETINGS == "/api/meetings"
        assert "{meeting_id}" in APIEndpoints.MEETING
        assert APIEndpoints.MEETING_JOIN.endswith("/join")

    def test_planning_routes(self) -> None:
        assert APIEndpoints.PROJECT_PLAN == "/api/ai-project-plan"
        assert APIEndpoints.AI_SUBTASKS == "/api/ai-subtasks"

    def test_all_under_api_prefix(self) -> None:
        routes = [
            value for name, value in vars(APIEndpoints).items()
            if name.isupper() and name != "HEALTH"
        ]
        assert routes
        assert all(route.startswith("/api/") for route in routes)
