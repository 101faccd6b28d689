"""
Insight service: transcript -> summary text + structured insights.

Flow:  classifier sentiment (optional) -> LLM insights (optional) ->
       merge / clamp / role backfill -> heuristic fallback.

The pipeline never raises to its caller: every hosted call is guarded and
the result always carries well-typed defaults.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional

from core_intelligence.engine.insights import (
    clamp_sentiment,
    extractive_summary,
    heuristic_insights,
    suggest_roles,
)
from core_intelligence.parser.llm_json import ParseResult, parse_json_object
from core_intelligence.parser.transcript import speakers_in
from domain.models import (
    InsightSource,
    InsightsPayload,
    MeetingSummary,
    ParticipantSentiment,
    RoleSuggestion,
    SentimentAnalysis,
    SentimentResult,
)
from ports.llm_provider import ChatCompletionPort
from ports.sentiment_classifier import SentimentClassifierPort
from shared_utils.constants import Defaults, LogScope
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.INSIGHTS)


NO_CONVERSATION_SUMMARY = "No conversation captured."

SUMMARY_SYSTEM_PROMPT = (
    "You are an assistant that writes concise meeting summaries. "
    f"Keep it under {Defaults.SUMMARY_MAX_WORDS} words. "
    "Use bullet points only if necessary."
)

INSIGHTS_SYSTEM_PROMPT = (
    "You analyze meeting transcripts. Respond with strict JSON only: "
    "no prose, no markdown, no code fences."
)

INSIGHTS_USER_TEMPLATE = (
    "Participants: {participants}\n\n"
    "Transcript:\n{transcript}\n\n"
    "Return one JSON object with exactly these top-level keys:\n"
    '  "sentiment_analysis": {{"overall_score": number between 0 and 1, '
    '"notes": [string], "participants": {{"<name>": {{"avg_sentiment": number, '
    '"confidence_level": number}}}}}},\n'
    '  "expertise_detection": {{"<name>": {{"<skill>": confidence between 0 and 1}}}},\n'
    '  "role_suggestions": [{{"role": string, "user": string, '
    '"confidence": number, "reasoning": string}}]\n'
    "Only use evidence from the transcript."
)

REQUIRED_INSIGHT_KEYS = ("sentiment_analysis", "expertise_detection", "role_suggestions")


# ---------------------------------------------------------------------------
# Document coercion
# ---------------------------------------------------------------------------

def _as_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _coerce_sentiment(raw: Any) -> SentimentAnalysis:
    if not isinstance(raw, dict):
        raise ValueError("sentiment_analysis must be an object")
    notes = raw.get("notes") or []
    if isinstance(notes, str):
        notes = [notes]
    participants: Dict[str, ParticipantSentiment] = {}
    for name, value in (raw.get("participants") or {}).items():
        if isinstance(value, dict):
            avg = _as_float(value.get("avg_sentiment"))
            confidence = _as_float(value.get("confidence_level"))
        else:
            avg, confidence = _as_float(value), None
        if avg is not None:
            participants[str(name)] = ParticipantSentiment(avg_sentiment=avg, confidence_level=confidence)
    return SentimentAnalysis(
        overall_score=_as_float(raw.get("overall_score"), Defaults.NEUTRAL_SENTIMENT),
        notes=[str(n) for n in notes],
        participants=participants or None,
    )


def _coerce_expertise(raw: Any) -> Dict[str, Dict[str, float]]:
    if not isinstance(raw, dict):
        raise ValueError("expertise_detection must be an object")
    expertise: Dict[str, Dict[str, float]] = {}
    for user, skills in raw.items():
        if isinstance(skills, dict):
            cleaned = {
                str(skill).lower(): min(1.0, max(0.0, score))
                for skill, score in ((k, _as_float(v)) for k, v in skills.items())
                if score is not None
            }
        elif isinstance(skills, list):
            cleaned = {str(skill).lower(): 0.5 for skill in skills}
        else:
            continue
        if cleaned:
            expertise[str(user)] = cleaned
    return expertise


def _coerce_roles(raw: Any) -> List[RoleSuggestion]:
    if not isinstance(raw, list):
        raise ValueError("role_suggestions must be a list")
    roles = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("role") or not item.get("user"):
            continue
        roles.append(RoleSuggestion(
            role=str(item["role"]),
            user=str(item["user"]),
            confidence=min(1.0, max(0.0, _as_float(item.get("confidence"), 0.5))),
            reasoning=str(item["reasoning"]) if item.get("reasoning") else None,
        ))
    return roles


# ---------------------------------------------------------------------------
# InsightService
# ---------------------------------------------------------------------------

class InsightService:
    """Generates meeting summaries and insights with heuristic fallbacks."""

    def __init__(
        self,
        llm_provider: Optional[ChatCompletionPort] = None,
        sentiment_classifier: Optional[SentimentClassifierPort] = None,
    ) -> None:
        self._llm = llm_provider
        self._classifier = sentiment_classifier

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def summarize(self, transcript: str, participants: Iterable[str] = ()) -> MeetingSummary:
        """Summary text plus insights; empty input makes no network calls."""
        if not transcript or not transcript.strip():
            return MeetingSummary(
                summary_text=NO_CONVERSATION_SUMMARY,
                insights=InsightsPayload.neutral(),
            )
        return MeetingSummary(
            summary_text=self.generate_summary(transcript),
            insights=self.generate_insights(transcript, participants),
        )

    def generate_insights(self, transcript: str, participants: Iterable[str] = ()) -> InsightsPayload:
        if not transcript or not transcript.strip():
            return InsightsPayload.neutral()

        names = [p for p in participants if p] or speakers_in(transcript)

        # 1. Hosted classifier sentiment (optional)
        classifier = self._classifier_sentiment(transcript)

        # 2. LLM insights (optional)
        if self._llm is not None:
            result = self._llm_insights(transcript, names, classifier)
            if result.ok:
                logger.info(
                    "insights_generated",
                    source=result.value.source.value,
                    overall_score=result.value.sentiment_analysis.overall_score,
                )
                return result.value
            logger.warning("insights_llm_fallback", reason=result.fallback_reason)

        # 3. Heuristic fallback
        payload = heuristic_insights(transcript, names)
        if classifier is not None:
            payload = payload.model_copy(update={
                "source": InsightSource.HF_SST2,
                "sentiment_analysis": clamp_sentiment(SentimentAnalysis(
                    overall_score=classifier.positive_score,
                    notes=[self._classifier_note(classifier)],
                    participants=payload.sentiment_analysis.participants,
                )),
            })
        logger.info("insights_generated", source=payload.source.value,
                    overall_score=payload.sentiment_analysis.overall_score)
        return payload

    def generate_summary(self, transcript: str) -> str:
        if not transcript or not transcript.strip():
            return NO_CONVERSATION_SUMMARY
        if self._llm is not None:
            try:
                text = self._llm.complete(
                    SUMMARY_SYSTEM_PROMPT,
                    transcript,
                    temperature=Defaults.SUMMARY_TEMPERATURE,
                    max_tokens=Defaults.SUMMARY_MAX_TOKENS,
                )
                if text and text.strip():
                    return text.strip()
                logger.warning("summary_llm_empty")
            except Exception as e:
                logger.warning("summary_llm_failed", error=str(e))
        return extractive_summary(transcript)

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def _classifier_sentiment(self, transcript: str) -> Optional[SentimentResult]:
        if self._classifier is None:
            return None
        try:
            return self._classifier.classify(transcript[:Defaults.SENTIMENT_MAX_CHARS])
        except Exception as e:
            logger.warning("classifier_sentiment_unavailable", error=str(e))
            return None

    def _llm_insights(
        self,
        transcript: str,
        participants: List[str],
        classifier: Optional[SentimentResult],
    ) -> ParseResult[InsightsPayload]:
        try:
            raw = self._llm.complete(
                INSIGHTS_SYSTEM_PROMPT,
                INSIGHTS_USER_TEMPLATE.format(
                    participants=", ".join(participants) or "unknown",
                    transcript=transcript,
                ),
                temperature=Defaults.INSIGHTS_TEMPERATURE,
                max_tokens=Defaults.INSIGHTS_MAX_TOKENS,
            )
        except Exception as e:
            return ParseResult.fallback(f"llm_error:{type(e).__name__}")

        parsed = parse_json_object(raw, REQUIRED_INSIGHT_KEYS)
        if not parsed.ok:
            return ParseResult.fallback(parsed.fallback_reason)

        try:
            sentiment = _coerce_sentiment(parsed.value["sentiment_analysis"])
            expertise = _coerce_expertise(parsed.value["expertise_detection"])
            roles = _coerce_roles(parsed.value["role_suggestions"])
        except (ValueError, TypeError, AttributeError) as e:
            return ParseResult.fallback(f"invalid_document:{e}")

        source = InsightSource.GROQ
        if classifier is not None:
            # Classifier sentiment wins over the LLM's own number
            sentiment = sentiment.model_copy(update={
                "overall_score": classifier.positive_score,
                "notes": [self._classifier_note(classifier)],
            })
            source = InsightSource.HYBRID

        if not roles and expertise:
            roles = suggest_roles(expertise, confidence_boost=0.1)

        return ParseResult.success(InsightsPayload(
            source=source,
            sentiment_analysis=clamp_sentiment(sentiment),
            expertise_detection=expertise,
            role_suggestions=roles,
        ))

    @staticmethod
    def _classifier_note(result: SentimentResult) -> str:
        return f"Hosted classifier: {result.label} ({result.score:.2f})."
