"""
Dependency injection container for managing application dependencies.
Centralizes provider creation, store wiring and service lifecycle.

Hosted providers are optional: their getters return None when the
corresponding credentials are missing and services fall back to
heuristics.
"""

from typing import Any, Dict, Optional
import logging

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from core_intelligence.providers.elevenlabs_tts import ElevenLabsSpeechProvider
from core_intelligence.providers.factory import (
    LLMProviderFactory,
    SentimentProviderFactory,
    SpeechProviderFactory,
)
from core_intelligence.providers.groq_llm import GroqLLMProvider
from core_intelligence.providers.hf_sentiment import HuggingFaceSentimentProvider
from shared_utils.config_loader import get_settings
from shared_utils.constants import LogScope


logger = logging.getLogger(__name__)


_UNSET = object()


class DIContainer:
    """Singleton dependency injection container."""

    _instance: Optional['DIContainer'] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.reset()
        return cls._instance

    def reset(self):
        """Reset container (useful for testing)."""
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._llm_provider: Any = _UNSET
        self._sentiment_provider: Any = _UNSET
        self._speech_provider: Any = _UNSET
        self._meeting_store = None
        self._agent_store = None
        self._conversation_store = None
        self._task_store = None
        self._transcript_cache = None
        self._conversation_service = None
        self._insight_service = None
        self._meeting_service = None
        self._agent_service = None
        self._chat_service = None
        self._task_service = None
        self._project_plan_service = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def get_engine(self) -> Engine:
        """Get or create the database engine and make sure tables exist."""
        if self._engine is None:
            from adapters.database import create_db_engine, init_schema

            settings = get_settings()
            logger.info("Initializing database engine", extra={"scope": LogScope.CONFIG})
            self._engine = create_db_engine(settings.database_uri)
            init_schema(self._engine)
        return self._engine

    def get_session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            from adapters.database import make_session_factory

            self._session_factory = make_session_factory(self.get_engine())
        return self._session_factory

    def get_meeting_store(self):
        """Get or create SqlMeetingStoreAdapter (lazy singleton)."""
        if self._meeting_store is None:
            from adapters.sql_meeting_store import SqlMeetingStoreAdapter

            self._meeting_store = SqlMeetingStoreAdapter(self.get_session_factory())
            logger.info("Initialized SqlMeetingStoreAdapter")
        return self._meeting_store

    def get_agent_store(self):
        """Get or create SqlAgentStoreAdapter (lazy singleton)."""
        if self._agent_store is None:
            from adapters.sql_meeting_store import SqlAgentStoreAdapter

            self._agent_store = SqlAgentStoreAdapter(self.get_session_factory())
            logger.info("Initialized SqlAgentStoreAdapter")
        return self._agent_store

    def get_conversation_store(self):
        """Get or create SqlConversationStoreAdapter (lazy singleton)."""
        if self._conversation_store is None:
            from adapters.sql_conversation_store import SqlConversationStoreAdapter

            self._conversation_store = SqlConversationStoreAdapter(self.get_session_factory())
            logger.info("Initialized SqlConversationStoreAdapter")
        return self._conversation_store

    def get_task_store(self):
        """Get or create SqlTaskStoreAdapter (lazy singleton)."""
        if self._task_store is None:
            from adapters.sql_task_store import SqlTaskStoreAdapter

            self._task_store = SqlTaskStoreAdapter(self.get_session_factory())
            logger.info("Initialized SqlTaskStoreAdapter")
        return self._task_store

    def get_transcript_cache(self):
        """Get or create the in-process live transcript cache."""
        if self._transcript_cache is None:
            from adapters.in_memory_transcript_cache import InMemoryTranscriptCacheAdapter

            self._transcript_cache = InMemoryTranscriptCacheAdapter(
                ttl_seconds=get_settings().transcript_cache_ttl_seconds,
            )
            logger.info("Initialized InMemoryTranscriptCacheAdapter")
        return self._transcript_cache

    # ------------------------------------------------------------------
    # Hosted providers (None when unconfigured)
    # ------------------------------------------------------------------

    def get_llm_provider(self) -> Optional[GroqLLMProvider]:
        """Get or create the chat-completion provider (lazy singleton).

        Raises:
            RuntimeError: If a configured provider fails to initialize.
        """
        if self._llm_provider is _UNSET:
            logger.info("Initializing LLM provider", extra={"scope": LogScope.CONFIG})
            try:
                self._llm_provider = LLMProviderFactory.create()
            except Exception as e:
                logger.error(
                    "Failed to initialize LLM provider",
                    extra={"scope": LogScope.CONFIG, "error": str(e)}
                )
                raise RuntimeError(f"LLM provider initialization failed: {e}") from e
        return self._llm_provider

    def get_sentiment_provider(self) -> Optional[HuggingFaceSentimentProvider]:
        if self._sentiment_provider is _UNSET:
            logger.info("Initializing sentiment provider", extra={"scope": LogScope.CONFIG})
            try:
                self._sentiment_provider = SentimentProviderFactory.create()
            except Exception as e:
                logger.error(
                    "Failed to initialize sentiment provider",
                    extra={"scope": LogScope.CONFIG, "error": str(e)}
                )
                raise RuntimeError(f"Sentiment provider initialization failed: {e}") from e
        return self._sentiment_provider

    def get_speech_provider(self) -> Optional[ElevenLabsSpeechProvider]:
        if self._speech_provider is _UNSET:
            logger.info("Initializing speech provider", extra={"scope": LogScope.CONFIG})
            try:
                self._speech_provider = SpeechProviderFactory.create()
            except Exception as e:
                logger.error(
                    "Failed to initialize speech provider",
                    extra={"scope": LogScope.CONFIG, "error": str(e)}
                )
                raise RuntimeError(f"Speech provider initialization failed: {e}") from e
        return self._speech_provider

    def provider_status(self) -> Dict[str, bool]:
        """Availability of each hosted provider, for the health endpoint."""
        status = {}
        for name, getter in (
            ("llm", self.get_llm_provider),
            ("sentiment", self.get_sentiment_provider),
            ("tts", self.get_speech_provider),
        ):
            try:
                provider = getter()
                status[name] = provider is not None and provider.is_available()
            except Exception as e:
                logger.warning(
                    "Provider status check failed",
                    extra={"scope": LogScope.CONFIG, "provider": name, "error": str(e)}
                )
                status[name] = False
        return status

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def get_conversation_service(self):
        if self._conversation_service is None:
            from services.conversation_service import ConversationService

            self._conversation_service = ConversationService(
                conversation_store=self.get_conversation_store(),
                meeting_store=self.get_meeting_store(),
                transcript_cache=self.get_transcript_cache(),
            )
            logger.info("Initialized ConversationService")
        return self._conversation_service

    def get_insight_service(self):
        if self._insight_service is None:
            from services.insight_service import InsightService

            self._insight_service = InsightService(
                llm_provider=self.get_llm_provider(),
                sentiment_classifier=self.get_sentiment_provider(),
            )
            logger.info("Initialized InsightService")
        return self._insight_service

    def get_meeting_service(self):
        if self._meeting_service is None:
            from services.meeting_service import MeetingService

            self._meeting_service = MeetingService(
                meeting_store=self.get_meeting_store(),
                agent_store=self.get_agent_store(),
                conversation_service=self.get_conversation_service(),
                insight_service=self.get_insight_service(),
            )
            logger.info("Initialized MeetingService")
        return self._meeting_service

    def get_agent_service(self):
        if self._agent_service is None:
            from services.agent_service import AgentService

            self._agent_service = AgentService(
                agent_store=self.get_agent_store(),
                user_store=self.get_meeting_store(),
            )
            logger.info("Initialized AgentService")
        return self._agent_service

    def get_chat_service(self):
        if self._chat_service is None:
            from services.chat_service import ChatService

            self._chat_service = ChatService(
                agent_store=self.get_agent_store(),
                llm_provider=self.get_llm_provider(),
            )
            logger.info("Initialized ChatService")
        return self._chat_service

    def get_task_service(self):
        if self._task_service is None:
            from services.task_service import TaskService

            self._task_service = TaskService(
                task_store=self.get_task_store(),
                meeting_store=self.get_meeting_store(),
                chat_service=self.get_chat_service(),
            )
            logger.info("Initialized TaskService")
        return self._task_service

    def get_project_plan_service(self):
        if self._project_plan_service is None:
            from services.project_plan_service import ProjectPlanService

            self._project_plan_service = ProjectPlanService(
                meeting_store=self.get_meeting_store(),
                task_store=self.get_task_store(),
                conversation_service=self.get_conversation_service(),
                llm_provider=self.get_llm_provider(),
            )
            logger.info("Initialized ProjectPlanService")
        return self._project_plan_service

    def create_speech_session(self, engine=None, player=None, recognizer=None, preferred_voice=None):
        """New speech session whose neural voice goes through this API's /api/tts."""
        from adapters.tts_proxy_client import TTSProxyClient
        from services.speech_service import SpeechSession

        settings = get_settings()
        return SpeechSession(
            neural=TTSProxyClient(
                base_url=settings.get_api_base_url(),
                voice_id=settings.elevenlabs_voice_id,
                timeout=settings.request_timeout_seconds,
            ),
            engine=engine,
            player=player,
            recognizer=recognizer,
            preferred_voice=preferred_voice,
        )


# Global singleton instance
_container = DIContainer()


def get_di_container() -> DIContainer:
    """Get global DI container instance."""
    return _container
