from pydantic_settings import BaseSettings
from pydantic import field_validator, ConfigDict
from functools import lru_cache
from typing import Optional

from shared_utils.constants import (
    Defaults,
    ENVIRONMENT_ALIASES,
    ExternalURLs,
    LLMProvider,
    LogScope,
    ModelIDs,
)
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.CONFIG)


def _mask(value: Optional[str]) -> Optional[str]:
    """Hide all but the last four characters of a secret."""
    if not value:
        return None
    return f"***{value[-4:]}" if len(value) > 4 else "***"


class Settings(BaseSettings):
    """Application configuration with environment variable precedence.

    Precedence: 1) Environment Variables > 2) .env file > 3) Class defaults
    (required fields have no defaults).

    Hosted API keys are optional: a missing key disables that provider and
    the pipelines fall back to their heuristics.
    """
    # Application metadata
    app_name: str = "CollabSphereAI"
    app_version: str = "1.0.0"
    app_description: str = "AI-assisted meetings with insights and project planning"

    # API Base URL Configuration
    api_host: str = "localhost"
    api_port: int = 8000
    api_protocol: str = "http"

    # Chat completion (Groq)
    llm_provider: str = LLMProvider.GROQ.value
    groq_api_key: Optional[str] = None
    groq_model_id: str = ModelIDs.GROQ_LLAMA3_8B

    # Sentiment classifier (Hugging Face inference)
    huggingface_api_key: Optional[str] = None
    hf_sentiment_model_id: str = ModelIDs.HF_SST2_SENTIMENT
    hf_inference_base_url: str = ExternalURLs.HF_INFERENCE

    # Neural text-to-speech (ElevenLabs)
    elevenlabs_api_key: Optional[str] = None
    elevenlabs_voice_id: str = ModelIDs.ELEVENLABS_DEFAULT_VOICE
    elevenlabs_model_id: str = ModelIDs.ELEVENLABS_MONOLINGUAL_V1
    elevenlabs_base_url: str = ExternalURLs.ELEVENLABS

    # HTTP behaviour
    request_timeout_seconds: float = Defaults.REQUEST_TIMEOUT
    rate_limit_enabled: bool = True

    # Live conversation cache
    transcript_cache_ttl_seconds: int = Defaults.TRANSCRIPT_CACHE_TTL_SECONDS

    # Database (any SQLAlchemy URL)
    database_uri: str

    # Environment
    environment: str
    log_level: str = Defaults.LOG_LEVEL

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator('llm_provider')
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        """Validate chat-completion provider is supported."""
        valid_providers = {p.value for p in LLMProvider}
        if v.lower() not in valid_providers:
            raise ValueError(f"llm_provider must be one of {valid_providers}, got {v}")
        return v.lower()

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment, accepting dev|stage|prod shorthand."""
        value = ENVIRONMENT_ALIASES.get(v.lower(), v.lower())
        valid_envs = {"development", "staging", "production"}
        if value not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}, got {v}")
        return value

    @field_validator('api_protocol')
    @classmethod
    def validate_api_protocol(cls, v: str) -> str:
        if v.lower() not in {"http", "https"}:
            raise ValueError(f"api_protocol must be http or https, got {v}")
        return v.lower()

    @field_validator('api_port')
    @classmethod
    def validate_api_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"api_port must be between 1 and 65535, got {v}")
        return v

    @field_validator('transcript_cache_ttl_seconds')
    @classmethod
    def validate_cache_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("transcript_cache_ttl_seconds must be positive")
        return v

    @property
    def llm_enabled(self) -> bool:
        """True when a chat-completion provider can be constructed."""
        return self.llm_provider == LLMProvider.GROQ.value and bool(self.groq_api_key)

    def get_api_base_url(self) -> str:
        """Get full API base URL constructed from host, port and protocol.

        Returns:
            Full API base URL (e.g., "http://localhost:8000")
        """
        # Standard ports are implied by the protocol
        port_str = "" if (
            (self.api_protocol == "http" and self.api_port == 80) or
            (self.api_protocol == "https" and self.api_port == 443)
        ) else f":{self.api_port}"

        return f"{self.api_protocol}://{self.api_host}{port_str}"


@lru_cache()
def get_settings() -> Settings:
    """Load and cache application settings.

    Returns:
        Validated Settings instance

    Raises:
        pydantic.ValidationError: If required settings are missing or invalid
    """
    settings = Settings()

    # Log loaded configuration (sensitive values masked)
    logger.info(
        "configuration_loaded",
        environment=settings.environment,
        llm_provider=settings.llm_provider,
        groq_model_id=settings.groq_model_id,
        groq_api_key=_mask(settings.groq_api_key),
        huggingface_api_key=_mask(settings.huggingface_api_key),
        elevenlabs_api_key=_mask(settings.elevenlabs_api_key),
        database_uri=settings.database_uri.split("@")[-1],
    )

    return settings
