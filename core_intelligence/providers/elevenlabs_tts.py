"""
ElevenLabs neural text-to-speech provider implementation.
"""

import time
from typing import Callable, Optional
from urllib.parse import quote

import requests

from core_intelligence.providers import SpeechProviderBase
from domain.models import SynthesizedAudio
from shared_utils.constants import Defaults, ExternalURLs, LogScope, ModelIDs
from shared_utils.error_handler import SpeechSynthesisError


VOICE_SETTINGS = {
    "stability": 0.4,
    "similarity_boost": 0.85,
    "style": 0.35,
    "use_speaker_boost": True,
}

QUOTA_MARKER = "quota_exceeded"


class ElevenLabsSpeechProvider(SpeechProviderBase):
    """Synthesizes speech through the ElevenLabs REST API."""

    def __init__(
        self,
        api_key: str,
        voice_id: str = ModelIDs.ELEVENLABS_DEFAULT_VOICE,
        model_id: str = ModelIDs.ELEVENLABS_MONOLINGUAL_V1,
        base_url: str = ExternalURLs.ELEVENLABS,
        timeout: float = Defaults.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(name=f"ElevenLabs({model_id})")
        self.api_key = api_key
        self.voice_id = voice_id
        self.model_id = model_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._sleep = sleep

    def initialize(self) -> None:
        if self._session is None:
            self._session = requests.Session()
        self.logger.info(
            "Initialized ElevenLabs speech provider",
            extra={"scope": LogScope.PROVIDER, "voice_id": self.voice_id}
        )

    def is_available(self) -> bool:
        return self._session is not None and bool(self.api_key)

    def synthesize(self, text: str, voice_id: Optional[str] = None) -> SynthesizedAudio:
        """Synthesize ``text``; a 503 (model loading) is retried once.

        Raises:
            RuntimeError: If the provider was not initialized.
            SpeechSynthesisError: On transport errors, non-2xx responses or
                a non-audio content type.
        """
        if not self.is_available():
            raise RuntimeError("ElevenLabs provider not initialized")

        response = self._post(text, voice_id or self.voice_id)
        if response.status_code == 503:
            self.logger.warning(
                "ElevenLabs returned 503, retrying once",
                extra={"scope": LogScope.PROVIDER}
            )
            self._sleep(Defaults.TTS_RETRY_DELAY_SECONDS)
            response = self._post(text, voice_id or self.voice_id)

        if not response.ok:
            details = response.text[:500]
            raise SpeechSynthesisError(
                f"Failed to synthesize: {details}" if details else "Failed to synthesize",
                status_code=response.status_code,
                quota_exceeded=QUOTA_MARKER in details,
            )

        content_type = response.headers.get("Content-Type", "")
        if not content_type.startswith("audio/"):
            raise SpeechSynthesisError(
                "Synthesis returned non-audio content",
                status_code=response.status_code,
                context={"content_type": content_type},
            )

        return SynthesizedAudio(content=response.content, content_type=content_type)

    def _post(self, text: str, voice_id: str) -> requests.Response:
        url = f"{self.base_url}/text-to-speech/{quote(voice_id, safe='')}"
        try:
            return self._session.post(
                url,
                json={
                    "text": text,
                    "model_id": self.model_id,
                    "voice_settings": VOICE_SETTINGS,
                },
                headers={
                    "xi-api-key": self.api_key,
                    "Content-Type": "application/json",
                    "Accept": "audio/mpeg",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self.logger.error(
                "ElevenLabs request failed",
                extra={"scope": LogScope.PROVIDER, "error": str(e)}
            )
            raise SpeechSynthesisError(f"Failed to synthesize: {e}") from e
