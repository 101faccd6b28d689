"""
Abstract base classes for swappable providers.
Enables dependency injection and flexible component swapping.
"""

from abc import ABC, abstractmethod
from typing import Optional
import logging

from domain.models import SentimentResult, SynthesizedAudio


class BaseProvider(ABC):
    """Base class for all providers."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @abstractmethod
    def initialize(self) -> None:
        """Initialize provider. Called after instantiation."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if provider is initialized and has credentials."""
        pass


class ChatLLMProviderBase(BaseProvider):
    """Abstract base for chat-completion providers."""

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 512,
    ) -> str:
        """Generate a completion for a system+user prompt pair."""
        pass


class SentimentProviderBase(BaseProvider):
    """Abstract base for binary sentiment classifiers."""

    @abstractmethod
    def classify(self, text: str) -> SentimentResult:
        """Classify text as POSITIVE/NEGATIVE."""
        pass


class SpeechProviderBase(BaseProvider):
    """Abstract base for hosted text-to-speech."""

    @abstractmethod
    def synthesize(self, text: str, voice_id: Optional[str] = None) -> SynthesizedAudio:
        """Synthesize text into audio bytes."""
        pass
