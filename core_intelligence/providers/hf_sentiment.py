"""
Hugging Face inference API sentiment classifier.
"""

from typing import Any, Dict, Optional

import requests

from core_intelligence.providers import SentimentProviderBase
from domain.models import SentimentResult
from shared_utils.constants import Defaults, ExternalURLs, LogScope, ModelIDs
from shared_utils.error_handler import ExternalServiceError


class HuggingFaceSentimentProvider(SentimentProviderBase):
    """Binary POSITIVE/NEGATIVE classifier served by the HF inference API."""

    def __init__(
        self,
        api_key: str,
        model_id: str = ModelIDs.HF_SST2_SENTIMENT,
        base_url: str = ExternalURLs.HF_INFERENCE,
        timeout: float = Defaults.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(name=f"HFSentiment({model_id})")
        self.api_key = api_key
        self.model_id = model_id
        self.url = f"{base_url.rstrip('/')}/{model_id}"
        self.timeout = timeout
        self._session = session

    def initialize(self) -> None:
        if self._session is None:
            self._session = requests.Session()
        self.logger.info(
            "Initialized Hugging Face sentiment provider",
            extra={"scope": LogScope.PROVIDER, "model_id": self.model_id}
        )

    def is_available(self) -> bool:
        return self._session is not None and bool(self.api_key)

    def classify(self, text: str) -> SentimentResult:
        """Classify at most the first 8000 characters of ``text``.

        Raises:
            RuntimeError: If the provider was not initialized.
            ExternalServiceError: On transport errors, non-2xx responses or
                a payload without POSITIVE/NEGATIVE scores.
        """
        if not self.is_available():
            raise RuntimeError("Hugging Face sentiment provider not initialized")

        payload = {"inputs": text[:Defaults.SENTIMENT_MAX_CHARS]}
        try:
            response = self._session.post(
                self.url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                    "X-Wait-For-Model": "true",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ExternalServiceError("HuggingFace", str(e)) from e

        if not response.ok:
            raise ExternalServiceError(
                "HuggingFace",
                f"HTTP {response.status_code}",
                context={"body": response.text[:200]},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalServiceError("HuggingFace", "Response was not JSON") from e

        return self.parse_scores(data)

    @staticmethod
    def parse_scores(data: Any) -> SentimentResult:
        """Interpret ``[{label, score}, ...]`` (optionally nested one level).

        Raises:
            ExternalServiceError: If no POSITIVE/NEGATIVE score is present.
        """
        items = data[0] if isinstance(data, list) and data and isinstance(data[0], list) else data
        if not isinstance(items, list):
            raise ExternalServiceError("HuggingFace", "Unexpected payload shape")

        scores: Dict[str, float] = {}
        for item in items:
            if not isinstance(item, dict):
                continue
            label = str(item.get("label", "")).upper()
            score = item.get("score")
            if label in ("POSITIVE", "NEGATIVE") and isinstance(score, (int, float)):
                scores[label] = float(score)

        if not scores:
            raise ExternalServiceError("HuggingFace", "No sentiment labels in payload")

        pos = scores.get("POSITIVE")
        neg = scores.get("NEGATIVE")
        if pos is not None and (neg is None or pos >= neg):
            return SentimentResult(label="POSITIVE", score=pos, positive_score=pos)
        return SentimentResult(label="NEGATIVE", score=neg, positive_score=1.0 - neg)

    def health_check(self) -> Dict[str, Any]:
        """Classify a fixed sentence to confirm the API key and model work."""
        try:
            result = self.classify("I love this product, it works great!")
        except (ExternalServiceError, RuntimeError) as e:
            return {"ok": False, "model": self.model_id, "error": str(e)}
        return {
            "ok": True,
            "model": self.model_id,
            "label": result.label,
            "score": result.score,
        }
