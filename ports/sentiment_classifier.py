"""
Port interface for the hosted binary sentiment classifier.

Implementations: HuggingFaceSentimentProvider (core_intelligence/providers/)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from domain.models import SentimentResult


@runtime_checkable
class SentimentClassifierPort(Protocol):
    """Classifies text as POSITIVE/NEGATIVE."""

    def classify(self, text: str) -> SentimentResult:
        """Classify ``text`` (implementations truncate long input).

        Returns:
            The winning label with ``positive_score`` unified so that a
            NEGATIVE verdict at score s yields 1 - s.

        Raises:
            ExternalServiceError: On transport failure, non-2xx status or a
                payload without POSITIVE/NEGATIVE scores.
        """
        ...
