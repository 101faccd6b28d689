"""
Port interfaces for the speech output pipeline.

The platform synthesis engine, audio element and recognizer are external
capabilities of the runtime hosting the call UI; the pipeline only drives
them through these interfaces.

Implementations: TTSProxyClient (adapters/) for NeuralSpeechPort.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from domain.models import SynthesizedAudio


@runtime_checkable
class NeuralSpeechPort(Protocol):
    """Hosted neural voice."""

    async def synthesize(self, text: str) -> SynthesizedAudio:
        """Synthesize one phrase.

        Raises:
            SpeechSynthesisError: On non-2xx status, non-audio content type
                or transport failure. ``quota_exceeded`` is set when the
                provider reports an exhausted quota.
        """
        ...


@runtime_checkable
class SpeechEnginePort(Protocol):
    """Platform speech synthesis."""

    @property
    def available(self) -> bool:
        ...

    def voices(self) -> List[str]:
        ...

    async def speak(
        self,
        text: str,
        voice: Optional[str],
        rate: float,
        pitch: float,
        volume: float,
    ) -> None:
        """Speak ``text`` and return when the utterance ends.

        Raises:
            RuntimeError: If the utterance errors.
        """
        ...

    def cancel(self) -> None:
        """Cancel the current and any queued utterance."""
        ...


@runtime_checkable
class AudioPlayerPort(Protocol):
    """Single reusable audio element."""

    async def play(self, audio: SynthesizedAudio) -> None:
        """Play ``audio`` and return when playback ends."""
        ...

    def stop(self) -> None:
        ...


@runtime_checkable
class SpeechRecognizerPort(Protocol):
    """Speech-to-text listener owned by the call session."""

    @property
    def listening(self) -> bool:
        ...

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...
