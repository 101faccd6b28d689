"""
Port interface for hosted chat completion.

Implementations: GroqLLMProvider (core_intelligence/providers/)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ChatCompletionPort(Protocol):
    """Abstract interface for a system+user prompt chat completion."""

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 512,
    ) -> str:
        """Generate a completion.

        The response text is free-form; callers that expect JSON must parse
        it defensively.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: The user turn (transcript, question, ...).
            temperature: Sampling temperature.
            max_tokens: Upper bound on generated tokens.

        Returns:
            Generated text (may be empty).

        Raises:
            ExternalServiceError: On transport failure or non-2xx response.
        """
        ...
