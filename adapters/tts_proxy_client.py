"""
HTTP client for the service's own TTS proxy endpoint.

Implements NeuralSpeechPort for the speech output pipeline: the call UI
never holds the provider key, it posts phrases to ``/api/tts``.
"""

from __future__ import annotations

from typing import Optional

import httpx

from domain.models import SynthesizedAudio
from ports.speech import NeuralSpeechPort  # noqa: F401 (runtime_checkable)
from shared_utils.constants import APIEndpoints, Defaults, LogScope
from shared_utils.error_handler import SpeechSynthesisError
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.SPEECH)

QUOTA_MARKER = "quota_exceeded"


class TTSProxyClient:
    """Async client posting ``{text, voiceId}`` to the TTS proxy."""

    def __init__(
        self,
        base_url: str,
        voice_id: Optional[str] = None,
        timeout: float = Defaults.REQUEST_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}{APIEndpoints.TTS}"
        self._voice_id = voice_id
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def synthesize(self, text: str) -> SynthesizedAudio:
        payload = {"text": text}
        if self._voice_id:
            payload["voiceId"] = self._voice_id
        try:
            response = await self._client.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("tts_proxy_unreachable", error=str(exc))
            raise SpeechSynthesisError(f"TTS proxy unreachable: {exc}") from exc

        if response.status_code >= 400:
            body = response.text
            raise SpeechSynthesisError(
                "TTS proxy returned an error",
                status_code=response.status_code,
                quota_exceeded=QUOTA_MARKER in body,
                not_configured=response.status_code == 501,
            )

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("audio/"):
            raise SpeechSynthesisError(
                "TTS proxy returned non-audio content",
                status_code=response.status_code,
                context={"content_type": content_type},
            )
        return SynthesizedAudio(content=response.content, content_type=content_type)

    async def is_available(self) -> bool:
        """Ask the proxy whether a neural voice is configured."""
        try:
            response = await self._client.get(self._url)
            return response.status_code == 200 and bool(response.json().get("available"))
        except (httpx.HTTPError, ValueError):
            return False

    async def aclose(self) -> None:
        await self._client.aclose()
