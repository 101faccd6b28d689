"""
Factory for creating configured provider instances.

Every hosted API is optional: a factory returns None when its credentials
are missing so that callers can fall back to heuristics.
"""

from typing import Optional
import logging

from core_intelligence.providers.elevenlabs_tts import ElevenLabsSpeechProvider
from core_intelligence.providers.groq_llm import GroqLLMProvider
from core_intelligence.providers.hf_sentiment import HuggingFaceSentimentProvider
from shared_utils.config_loader import Settings, get_settings
from shared_utils.constants import LLMProvider, LogScope


logger = logging.getLogger(__name__)


class LLMProviderFactory:
    """Factory for creating chat-completion providers."""

    @staticmethod
    def create(settings: Optional[Settings] = None) -> Optional[GroqLLMProvider]:
        """Create the configured chat-completion provider.

        Returns:
            Initialized provider, or None when disabled or unconfigured.
        """
        settings = settings or get_settings()

        if settings.llm_provider == LLMProvider.NONE.value:
            logger.info("LLM provider disabled", extra={"scope": LogScope.PROVIDER})
            return None
        if not settings.groq_api_key:
            logger.warning("GROQ_API_KEY not configured", extra={"scope": LogScope.PROVIDER})
            return None

        provider = GroqLLMProvider(
            model_id=settings.groq_model_id,
            api_key=settings.groq_api_key,
            timeout=settings.request_timeout_seconds,
        )
        provider.initialize()
        return provider


class SentimentProviderFactory:
    """Factory for the hosted sentiment classifier."""

    @staticmethod
    def create(settings: Optional[Settings] = None) -> Optional[HuggingFaceSentimentProvider]:
        settings = settings or get_settings()
        if not settings.huggingface_api_key:
            logger.warning("HUGGINGFACE_API_KEY not configured", extra={"scope": LogScope.PROVIDER})
            return None

        provider = HuggingFaceSentimentProvider(
            api_key=settings.huggingface_api_key,
            model_id=settings.hf_sentiment_model_id,
            base_url=settings.hf_inference_base_url,
            timeout=settings.request_timeout_seconds,
        )
        provider.initialize()
        return provider


class SpeechProviderFactory:
    """Factory for the hosted neural voice."""

    @staticmethod
    def create(settings: Optional[Settings] = None) -> Optional[ElevenLabsSpeechProvider]:
        settings = settings or get_settings()
        if not settings.elevenlabs_api_key:
            logger.info("ELEVENLABS_API_KEY not configured", extra={"scope": LogScope.PROVIDER})
            return None

        provider = ElevenLabsSpeechProvider(
            api_key=settings.elevenlabs_api_key,
            voice_id=settings.elevenlabs_voice_id,
            model_id=settings.elevenlabs_model_id,
            base_url=settings.elevenlabs_base_url,
            timeout=settings.request_timeout_seconds,
        )
        provider.initialize()
        return provider
