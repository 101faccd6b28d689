"""
Tests for shared_utils.di_container.

Tests singleton behaviour, lazy initialisation, reset(), optional hosted
providers and service wiring. Persistence runs on in-memory SQLite; every
provider factory is mocked.
"""

from unittest.mock import MagicMock, patch

import pytest

from adapters.sql_meeting_store import SqlMeetingStoreAdapter
from services.meeting_service import MeetingService
from services.speech_service import SpeechSession
from shared_utils.di_container import DIContainer, get_di_container


# ---------------------------------------------------------------------------
# Ensure each test gets a fresh singleton
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_singleton():
    """Reset the DIContainer singleton before and after each test."""
    DIContainer._instance = None
    yield
    DIContainer._instance = None


def _mock_settings():
    mock = MagicMock()
    mock.database_uri = "sqlite:///:memory:"
    mock.transcript_cache_ttl_seconds = 300
    mock.elevenlabs_voice_id = "voice-1"
    mock.request_timeout_seconds = 5.0
    mock.get_api_base_url.return_value = "http://localhost:8000"
    return mock


# ---------------------------------------------------------------------------
# Singleton behaviour
# ---------------------------------------------------------------------------


class TestSingleton:
    def test_same_instance(self) -> None:
        assert DIContainer() is DIContainer()

    def test_get_di_container_returns_container(self) -> None:
        c1 = get_di_container()
        c2 = get_di_container()
        assert c1 is c2
        assert isinstance(c1, DIContainer)


class TestReset:
    def test_reset_clears_cached_objects(self) -> None:
        container = DIContainer()
        container._meeting_store = "fake"
        container._meeting_service = "fake"
        container._llm_provider = "fake"

        container.reset()

        assert container._meeting_store is None
        assert container._meeting_service is None
        # Providers are re-resolved lazily after a reset
        with patch("shared_utils.di_container.LLMProviderFactory.create", return_value=None) as create:
            assert container.get_llm_provider() is None
            create.assert_called_once()


# ---------------------------------------------------------------------------
# Hosted providers
# ---------------------------------------------------------------------------


class TestLLMProvider:
    @patch("shared_utils.di_container.LLMProviderFactory.create", return_value=MagicMock())
    def test_returns_same_instance(self, mock_create) -> None:
        container = DIContainer()
        assert container.get_llm_provider() is container.get_llm_provider()
        mock_create.assert_called_once()

    @patch("shared_utils.di_container.LLMProviderFactory.create", return_value=None)
    def test_unconfigured_is_cached_as_none(self, mock_create) -> None:
        container = DIContainer()
        assert container.get_llm_provider() is None
        assert container.get_llm_provider() is None
        mock_create.assert_called_once()

    @patch("shared_utils.di_container.LLMProviderFactory.create", side_effect=ValueError("bad key"))
    def test_raises_on_factory_error(self, mock_create) -> None:
        with pytest.raises(RuntimeError, match="LLM provider initialization failed"):
            DIContainer().get_llm_provider()


class TestOtherProviders:
    @patch("shared_utils.di_container.SentimentProviderFactory.create", side_effect=ValueError("x"))
    def test_sentiment_error(self, mock_create) -> None:
        with pytest.raises(RuntimeError, match="Sentiment provider initialization failed"):
            DIContainer().get_sentiment_provider()

    @patch("shared_utils.di_container.SpeechProviderFactory.create", return_value=None)
    def test_speech_unconfigured(self, mock_create) -> None:
        assert DIContainer().get_speech_provider() is None


class TestProviderStatus:
    @patch("shared_utils.di_container.SpeechProviderFactory.create", side_effect=ValueError("boom"))
    @patch("shared_utils.di_container.SentimentProviderFactory.create", return_value=None)
    @patch("shared_utils.di_container.LLMProviderFactory.create")
    def test_reports_each_provider(self, mock_llm, mock_sentiment, mock_speech) -> None:
        llm = MagicMock()
        llm.is_available.return_value = True
        mock_llm.return_value = llm

        status = DIContainer().provider_status()

        assert status == {"llm": True, "sentiment": False, "tts": False}


# ---------------------------------------------------------------------------
# Stores and services
# ---------------------------------------------------------------------------


class TestStores:
    @patch("shared_utils.di_container.get_settings")
    def test_meeting_store_lazy_singleton(self, mock_get_settings) -> None:
        mock_get_settings.return_value = _mock_settings()
        container = DIContainer()
        store = container.get_meeting_store()
        assert isinstance(store, SqlMeetingStoreAdapter)
        assert container.get_meeting_store() is store

    @patch("shared_utils.di_container.get_settings")
    def test_stores_share_one_engine(self, mock_get_settings) -> None:
        mock_get_settings.return_value = _mock_settings()
        container = DIContainer()
        container.get_meeting_store()
        container.get_task_store()
        assert container.get_engine() is container.get_engine()

    @patch("shared_utils.di_container.get_settings")
    def test_transcript_cache_uses_ttl(self, mock_get_settings) -> None:
        mock_get_settings.return_value = _mock_settings()
        cache = DIContainer().get_transcript_cache()
        assert cache._ttl == 300


class TestServices:
    @patch("shared_utils.di_container.get_settings")
    @patch("shared_utils.di_container.SentimentProviderFactory.create", return_value=None)
    @patch("shared_utils.di_container.LLMProviderFactory.create", return_value=None)
    def test_meeting_service_wiring(self, mock_llm, mock_sentiment, mock_get_settings) -> None:
        mock_get_settings.return_value = _mock_settings()
        container = DIContainer()
        service = container.get_meeting_service()
        assert isinstance(service, MeetingService)
        assert container.get_meeting_service() is service
        assert service._conversation is container.get_conversation_service()

    @patch("shared_utils.di_container.get_settings")
    @patch("shared_utils.di_container.LLMProviderFactory.create", return_value=None)
    def test_task_service_gets_chat_service(self, mock_llm, mock_get_settings) -> None:
        mock_get_settings.return_value = _mock_settings()
        container = DIContainer()
        assert container.get_task_service()._chat is container.get_chat_service()

    @patch("shared_utils.di_container.get_settings")
    def test_create_speech_session(self, mock_get_settings) -> None:
        mock_get_settings.return_value = _mock_settings()
        session = DIContainer().create_speech_session(preferred_voice="Samantha")
        assert isinstance(session, SpeechSession)
        assert session._neural._url == "http://localhost:8000/api/tts"
        assert session._neural._voice_id == "voice-1"
