"""
Heuristic building blocks of the insight generation pipeline.

Everything here is pure and deterministic: keyword sentiment, expertise
extraction from self-descriptions, the shared skill -> role table, score
clamping and the extractive summary used when no LLM answer is available.
"""

import math
import re
from typing import Dict, Iterable, List, Optional, Tuple

from core_intelligence.parser.transcript import split_speaker_lines
from domain.models import (
    InsightSource,
    InsightsPayload,
    ParticipantSentiment,
    RoleSuggestion,
    SentimentAnalysis,
)
from shared_utils.constants import Defaults


# ---------------------------------------------------------------------------
# Skill -> role table (shared by LLM backfill and heuristic fallback)
# ---------------------------------------------------------------------------

SKILL_ROLE_MAP: Dict[str, str] = {
    "react": "Frontend Lead",
    "vue": "Frontend Lead",
    "angular": "Frontend Lead",
    "frontend": "Frontend Lead",
    "javascript": "Frontend Lead",
    "typescript": "Frontend Lead",
    "css": "Frontend Lead",
    "ui": "UI/UX Designer",
    "ux": "UI/UX Designer",
    "design": "UI/UX Designer",
    "figma": "UI/UX Designer",
    "backend": "Backend Lead",
    "api": "Backend Lead",
    "apis": "Backend Lead",
    "python": "Backend Lead",
    "node": "Backend Lead",
    "nodejs": "Backend Lead",
    "java": "Backend Lead",
    "go": "Backend Lead",
    "django": "Backend Lead",
    "fastapi": "Backend Lead",
    "sql": "Database Design",
    "database": "Database Design",
    "databases": "Database Design",
    "postgres": "Database Design",
    "postgresql": "Database Design",
    "mysql": "Database Design",
    "mongodb": "Database Design",
    "devops": "DevOps Engineer",
    "docker": "DevOps Engineer",
    "kubernetes": "DevOps Engineer",
    "ci/cd": "DevOps Engineer",
    "aws": "Cloud Infrastructure",
    "azure": "Cloud Infrastructure",
    "gcp": "Cloud Infrastructure",
    "cloud": "Cloud Infrastructure",
    "testing": "QA Lead",
    "qa": "QA Lead",
    "machine learning": "ML Engineer",
    "ml": "ML Engineer",
    "ai": "ML Engineer",
    "data science": "Data Analyst",
    "data analysis": "Data Analyst",
    "analytics": "Data Analyst",
    "mobile": "Mobile Developer",
    "ios": "Mobile Developer",
    "android": "Mobile Developer",
    "project management": "Project Manager",
    "management": "Project Manager",
    "planning": "Project Manager",
    "marketing": "Marketing Lead",
    "security": "Security Engineer",
}


def role_for_skill(skill: str) -> Optional[str]:
    """Look up a role for ``skill``, trying the whole phrase then each word."""
    key = skill.strip().lower()
    if key in SKILL_ROLE_MAP:
        return SKILL_ROLE_MAP[key]
    for token in key.split():
        if token in SKILL_ROLE_MAP:
            return SKILL_ROLE_MAP[token]
    return None


def suggest_roles(
    expertise: Dict[str, Dict[str, float]],
    confidence_boost: float = 0.1,
) -> List[RoleSuggestion]:
    """One suggestion per (user, role), from the strongest matching skill."""
    best: Dict[Tuple[str, str], RoleSuggestion] = {}
    for user, skills in expertise.items():
        for skill, confidence in skills.items():
            role = role_for_skill(skill)
            if role is None:
                continue
            suggestion = RoleSuggestion(
                role=role,
                user=user,
                confidence=round(min(1.0, float(confidence) + confidence_boost), 3),
                reasoning=f"Mentioned experience with {skill}",
            )
            current = best.get((user, role))
            if current is None or suggestion.confidence > current.confidence:
                best[(user, role)] = suggestion
    return sorted(best.values(), key=lambda s: (-s.confidence, s.user, s.role))


# ---------------------------------------------------------------------------
# Keyword sentiment
# ---------------------------------------------------------------------------

POSITIVE_WORDS = frozenset({"good", "great", "cool", "nice", "love", "awesome", "works"})
NEGATIVE_WORDS = frozenset({"bad", "problem", "issue", "don't", "can't", "confused", "stuck"})

_WORD = re.compile(r"[a-z]+(?:'[a-z]+)?")


def _words(text: str) -> List[str]:
    return _WORD.findall(text.lower().replace("’", "'"))


def keyword_counts(text: str) -> Tuple[int, int]:
    """Number of positive and negative keyword occurrences."""
    words = _words(text)
    pos = sum(1 for w in words if w in POSITIVE_WORDS)
    neg = sum(1 for w in words if w in NEGATIVE_WORDS)
    return pos, neg


def keyword_sentiment(text: str) -> float:
    """Laplace-smoothed share of positive keywords; 0.5 when none match."""
    pos, neg = keyword_counts(text)
    return (pos + 1) / (pos + neg + 2)


def clamp_sentiment(analysis: SentimentAnalysis) -> SentimentAnalysis:
    """Clamp overall_score into [0.05, 0.95], noting any change."""
    score = analysis.overall_score
    notes = list(analysis.notes)
    if score is None or not math.isfinite(score):
        clamped = Defaults.NEUTRAL_SENTIMENT
    else:
        clamped = min(Defaults.SENTIMENT_CEILING, max(Defaults.SENTIMENT_FLOOR, score))
    if clamped != score:
        notes.append(
            f"Sentiment score adjusted from {score} to {clamped} to avoid overstating certainty."
        )
    return analysis.model_copy(update={"overall_score": clamped, "notes": notes})


# ---------------------------------------------------------------------------
# Expertise extraction
# ---------------------------------------------------------------------------

EXPERTISE_PATTERN = re.compile(
    r"\bi(?:'m| am)\s+(?:really\s+|pretty\s+|very\s+|quite\s+)?"
    r"(?:good|great|skilled|experienced|an expert|strong)\s+(?:at|with|in)\s+"
    r"([^.,;!?\n]+)",
    re.IGNORECASE,
)

STOP_WORDS = frozenset({
    "a", "an", "the", "my", "our", "some", "lots", "of", "stuff", "things",
    "doing", "working", "using", "building", "writing", "it", "this", "that",
    "really", "very", "pretty", "too", "also", "as", "well", "so",
})

BASE_EXPERTISE_CONFIDENCE = 0.6
REPEAT_MENTION_BOOST = 0.2


def _clean_skill(phrase: str) -> Optional[str]:
    tokens = [t for t in phrase.lower().replace("’", "'").split() if t not in STOP_WORDS]
    if not 1 <= len(tokens) <= 3:
        return None
    skill = " ".join(tokens).strip(" '\"")
    if not 2 <= len(skill) <= 30:
        return None
    return skill


def extract_skills(text: str) -> List[str]:
    """Skills a single line claims, e.g. "I'm good at React and SQL"."""
    skills: List[str] = []
    for match in EXPERTISE_PATTERN.finditer(text.replace("’", "'")):
        for part in re.split(r"\s+and\s+|\s*&\s*|/(?!cd)", match.group(1)):
            skill = _clean_skill(part)
            if skill:
                skills.append(skill)
    return skills


def extract_expertise(transcript: str, exclude_speakers: Iterable[str] = ("AI",)) -> Dict[str, Dict[str, float]]:
    """Map speaker -> skill -> confidence from self-described expertise.

    The first mention scores 0.6; each repeat adds 0.2, capped at 1.0.
    """
    skipped = {s.lower() for s in exclude_speakers}
    expertise: Dict[str, Dict[str, float]] = {}
    for speaker, text in split_speaker_lines(transcript):
        user = speaker or "Unknown"
        if user.lower() in skipped:
            continue
        for skill in extract_skills(text):
            skills = expertise.setdefault(user, {})
            if skill in skills:
                skills[skill] = round(min(1.0, skills[skill] + REPEAT_MENTION_BOOST), 3)
            else:
                skills[skill] = BASE_EXPERTISE_CONFIDENCE
    return expertise


# ---------------------------------------------------------------------------
# Heuristic payload and summary
# ---------------------------------------------------------------------------

def heuristic_insights(transcript: str, participants: Iterable[str] = ()) -> InsightsPayload:
    """Full insights payload without any hosted model."""
    pos, neg = keyword_counts(transcript)
    overall = keyword_sentiment(transcript)

    by_speaker: Dict[str, List[str]] = {}
    for speaker, text in split_speaker_lines(transcript):
        if speaker:
            by_speaker.setdefault(speaker, []).append(text)

    per_participant: Dict[str, ParticipantSentiment] = {}
    for name in list(participants) or list(by_speaker):
        lines = by_speaker.get(name)
        if not lines:
            continue
        spoken = " ".join(lines)
        p, n = keyword_counts(spoken)
        per_participant[name] = ParticipantSentiment(
            avg_sentiment=round(keyword_sentiment(spoken), 3),
            confidence_level=round(min(1.0, (p + n) / 5), 3),
        )

    expertise = extract_expertise(transcript)
    analysis = clamp_sentiment(SentimentAnalysis(
        overall_score=round(overall, 3),
        notes=[f"Keyword sentiment: {pos} positive, {neg} negative mentions."],
        participants=per_participant or None,
    ))
    return InsightsPayload(
        source=InsightSource.HEURISTIC,
        sentiment_analysis=analysis,
        expertise_detection=expertise,
        role_suggestions=suggest_roles(expertise),
    )


_USER_PREFIX = re.compile(r"^\s*User:\s*", re.IGNORECASE)


def extractive_summary(transcript: str) -> str:
    """Last 5 non-empty lines of the last 12, as "Key points: a. b. c"."""
    tail = transcript.strip().splitlines()[-Defaults.SUMMARY_TAIL_LINES:]
    points = [_USER_PREFIX.sub("", line).strip() for line in tail]
    points = [p for p in points if p][-Defaults.SUMMARY_KEY_POINTS:]
    if not points:
        return "Summary unavailable."
    return "Key points: " + ". ".join(points)
