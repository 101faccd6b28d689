"""
Groq chat-completion provider implementation.
"""

from typing import Optional

import groq
from groq import Groq

from core_intelligence.providers import ChatLLMProviderBase
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import ExternalServiceError


class GroqLLMProvider(ChatLLMProviderBase):
    """Groq-hosted chat completion."""

    def __init__(
        self,
        model_id: str,
        api_key: str,
        timeout: float = Defaults.REQUEST_TIMEOUT,
        client: Optional[Groq] = None,
    ):
        super().__init__(name=f"GroqLLM({model_id})")
        self.model_id = model_id
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    def initialize(self) -> None:
        """Initialize Groq client."""
        if self._client is None:
            self._client = Groq(api_key=self.api_key, timeout=self.timeout)
        self.logger.info(
            "Initialized Groq LLM provider",
            extra={"scope": LogScope.PROVIDER, "model_id": self.model_id}
        )

    def is_available(self) -> bool:
        return self._client is not None and bool(self.api_key)

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 512,
    ) -> str:
        """Send one system+user exchange and return the first choice's text.

        Raises:
            RuntimeError: If the provider was not initialized.
            ExternalServiceError: On any Groq API failure.
        """
        if not self.is_available():
            raise RuntimeError("Groq LLM provider not initialized")

        try:
            response = self._client.chat.completions.create(
                model=self.model_id,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except groq.APIError as e:
            self.logger.error(
                "Groq completion failed",
                extra={"scope": LogScope.PROVIDER, "error": str(e)}
            )
            raise ExternalServiceError("Groq", str(e)) from e

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()
