"""
Constants management.
Centralized configuration for model IDs, defaults, routes and error codes.
"""

from enum import Enum
from typing import Final


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


# Short forms accepted by the ENVIRONMENT variable
ENVIRONMENT_ALIASES: Final[dict] = {
    "dev": Environment.DEVELOPMENT.value,
    "stage": Environment.STAGING.value,
    "prod": Environment.PRODUCTION.value,
}


class LLMProvider(str, Enum):
    """Supported chat-completion providers."""
    GROQ = "groq"
    NONE = "none"


# Model IDs
class ModelIDs:
    """Centralized model identifiers."""
    # Groq chat completion
    GROQ_LLAMA3_8B: Final[str] = "llama3-8b-8192"

    # Hugging Face inference
    HF_SST2_SENTIMENT: Final[str] = "distilbert-base-uncased-finetuned-sst-2-english"

    # ElevenLabs
    ELEVENLABS_MONOLINGUAL_V1: Final[str] = "eleven_monolingual_v1"
    ELEVENLABS_DEFAULT_VOICE: Final[str] = "21m00Tcm4TlvDq8ikWAM"


class ExternalURLs:
    """Base URLs of hosted APIs."""
    HF_INFERENCE: Final[str] = "https://api-inference.huggingface.co/models"
    ELEVENLABS: Final[str] = "https://api.elevenlabs.io/v1"


# Default values
class Defaults:
    """Defaults shared by the pipelines and the API layer."""
    REQUEST_TIMEOUT: Final[float] = 30.0
    LOG_LEVEL: Final[str] = "INFO"

    # Insights
    SENTIMENT_MAX_CHARS: Final[int] = 8000
    NEUTRAL_SENTIMENT: Final[float] = 0.5
    SENTIMENT_FLOOR: Final[float] = 0.05
    SENTIMENT_CEILING: Final[float] = 0.95
    INSIGHTS_TEMPERATURE: Final[float] = 0.2
    INSIGHTS_MAX_TOKENS: Final[int] = 900

    # Summary
    SUMMARY_MAX_WORDS: Final[int] = 120
    SUMMARY_TEMPERATURE: Final[float] = 0.3
    SUMMARY_MAX_TOKENS: Final[int] = 240
    SUMMARY_TAIL_LINES: Final[int] = 12
    SUMMARY_KEY_POINTS: Final[int] = 5

    # Chat
    CHAT_TEMPERATURE: Final[float] = 0.5
    CHAT_MAX_TOKENS: Final[int] = 800
    SUBTASK_TEMPERATURE: Final[float] = 0.3
    SUBTASK_MAX_TOKENS: Final[int] = 800

    # Planning
    PLAN_TEMPERATURE: Final[float] = 0.3
    PLAN_MAX_TOKENS: Final[int] = 4000
    PHASE_COLOR: Final[str] = "#3B82F6"
    DEFAULT_PHASE_NAME: Final[str] = "Project Planning & Setup"
    DEFAULT_PHASE_COLOR: Final[str] = "#8B5CF6"
    TASK_PRIORITY: Final[str] = "medium"
    TASK_ESTIMATED_HOURS: Final[int] = 4

    # Conversation sync
    TRANSCRIPT_CACHE_TTL_SECONDS: Final[int] = 300

    # Speech
    SPEECH_CHUNK_CHARS: Final[int] = 220
    NEURAL_PHRASE_MAX_CHARS: Final[int] = 300
    TTS_RETRY_DELAY_SECONDS: Final[float] = 1.2
    RESTART_DELAY_SECONDS: Final[float] = 0.1
    RECANCEL_DELAYS_SECONDS: Final[tuple] = (0.05, 0.15, 0.3)
    SENTENCE_PAUSE_RANGE_MS: Final[tuple] = (160, 240)
    PHRASE_PAUSE_RANGE_MS: Final[tuple] = (80, 130)
    SPEECH_RATE: Final[float] = 0.95
    SPEECH_PITCH: Final[float] = 1.05
    SPEECH_VOLUME: Final[float] = 0.85

    # Pagination
    PAGE: Final[int] = 1
    PAGE_SIZE: Final[int] = 10
    MAX_PAGE_SIZE: Final[int] = 100


# Logging scopes
class LogScope:
    """Standardized logging scope names."""
    CONFIG = "config_loader"
    API = "api"
    VALIDATION = "validation"
    ERROR_HANDLER = "error_handler"
    PROVIDER = "provider"
    ADAPTER = "adapter"
    PARSER = "llm_parser"
    INSIGHTS = "insights"
    PLANNING = "planning"
    CONVERSATION = "conversation"
    MEETINGS = "meetings"
    AGENTS = "agents"
    TASKS = "tasks"
    CHAT = "chat"
    SPEECH = "speech"
    WORKER = "worker"


# API endpoints and paths
class APIEndpoints:
    """API route definitions."""
    HEALTH = "/health"
    USERS = "/api/users"
    AGENTS = "/api/agents"
    AGENT = "/api/agents/{agent_id}"
    AGENT_INFO = "/api/agent-info"
    MEETINGS = "/api/meetings"
    MEETINGS_OPEN = "/api/meetings/open"
    MEETING = "/api/meetings/{meeting_id}"
    MEETING_JOIN = "/api/meetings/{meeting_id}/join"
    MEETING_LEAVE = "/api/meetings/{meeting_id}/leave"
    MEETING_PARTICIPANTS = "/api/meeting-participants"
    MEETING_COMPLETE = "/api/meeting-complete"
    CONVERSATION_CHUNKS = "/api/conversation-chunks"
    CONVERSATION_SYNC = "/api/conversation-sync"
    CHAT = "/api/chat"
    AI_SUBTASKS = "/api/ai-subtasks"
    TASKS = "/api/tasks"
    SUBTASKS = "/api/subtasks"
    PHASES = "/api/phases"
    PROJECT_PLAN = "/api/ai-project-plan"
    TTS = "/api/tts"
    SENTIMENT_CHECK = "/api/sentiment/check"


# Error codes
class ErrorCode(str, Enum):
    """Standardized error codes for consistency."""
    INVALID_CONFIG = "INVALID_CONFIG"
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    ACCESS_DENIED = "ACCESS_DENIED"
    MODEL_NOT_AVAILABLE = "MODEL_NOT_AVAILABLE"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    PLAN_GENERATION_FAILED = "PLAN_GENERATION_FAILED"
    TTS_FAILED = "TTS_FAILED"
    TTS_NOT_CONFIGURED = "TTS_NOT_CONFIGURED"
    WORKER_ERROR = "WORKER_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
