"""
Text preparation for spoken AI responses.

Markdown is stripped, the text is cut into sentence-bounded chunks and
then into phrase-sized pieces, and each piece gets prosody and the pause
that follows it.
"""

import random
import re
from typing import List, Optional

from domain.models import SpeechQueueItem
from shared_utils.constants import Defaults


_CODE_FENCE = re.compile(r"```[a-zA-Z0-9_-]*")
_INLINE_CODE = re.compile(r"`([^`]*)`")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_HEADING = re.compile(r"^\s{0,3}#{1,6}\s*", re.MULTILINE)
_BULLET = re.compile(r"^\s*(?:[-*+•]|\d+[.)])\s+", re.MULTILINE)
_EMPHASIS = re.compile(r"(\*\*|__|\*|_|~~)(?=\S)(.+?)(?<=\S)\1")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")
_PHRASE_BREAK = re.compile(r"(?<=[,;:])\s+|\s+[-–—]+\s+")
_SENTENCE_END = re.compile(r"[.!?][\"')\]]*$")


def sanitize_for_speech(text: str) -> str:
    """Remove markdown emphasis, code markers, bullets and link syntax."""
    if not text:
        return ""
    cleaned = _CODE_FENCE.sub(" ", text)
    cleaned = _INLINE_CODE.sub(r"\1", cleaned)
    cleaned = _LINK.sub(r"\1", cleaned)
    cleaned = _HEADING.sub("", cleaned)
    cleaned = _BULLET.sub("", cleaned)
    cleaned = _EMPHASIS.sub(r"\2", cleaned)
    cleaned = cleaned.replace("**", "").replace("`", "")
    return _WHITESPACE.sub(" ", cleaned).strip()


def hard_split(text: str, max_len: int) -> List[str]:
    """Split on word boundaries into pieces of at most ``max_len`` chars.

    A single word longer than ``max_len`` is cut mid-word.
    """
    pieces: List[str] = []
    current = ""
    for word in text.split():
        while len(word) > max_len:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(word[:max_len])
            word = word[max_len:]
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_len:
            current = candidate
        else:
            pieces.append(current)
            current = word
    if current:
        pieces.append(current)
    return pieces


def split_into_chunks(text: str, max_len: int = Defaults.SPEECH_CHUNK_CHARS) -> List[str]:
    """Group whole sentences into chunks of at most ``max_len`` chars."""
    normalized = _WHITESPACE.sub(" ", text or "").strip()
    if not normalized:
        return []

    chunks: List[str] = []
    current = ""
    for sentence in _SENTENCE_BREAK.split(normalized):
        if len(sentence) > max_len:
            if current:
                chunks.append(current)
                current = ""
            chunks.extend(hard_split(sentence, max_len))
            continue
        candidate = f"{current} {sentence}" if current else sentence
        if len(candidate) <= max_len:
            current = candidate
        else:
            chunks.append(current)
            current = sentence
    if current:
        chunks.append(current)
    return chunks


def split_into_phrases(chunk: str) -> List[str]:
    """Split a chunk at sentence ends, commas, semicolons, colons and dashes."""
    phrases: List[str] = []
    for sentence in _SENTENCE_BREAK.split(chunk.strip()):
        phrases.extend(p.strip() for p in _PHRASE_BREAK.split(sentence) if p and p.strip())
    return phrases


def ends_sentence(phrase: str) -> bool:
    return bool(_SENTENCE_END.search(phrase.strip()))


def pause_after(phrase: str, rng: random.Random) -> int:
    """Milliseconds of silence after ``phrase``: longer after a sentence end."""
    low, high = (
        Defaults.SENTENCE_PAUSE_RANGE_MS if ends_sentence(phrase)
        else Defaults.PHRASE_PAUSE_RANGE_MS
    )
    return rng.randint(low, high)


def build_speech_queue(
    text: str,
    neural: bool = False,
    rng: Optional[random.Random] = None,
) -> List[SpeechQueueItem]:
    """Turn a response into ordered queue items.

    Neural phrases are additionally capped at 300 characters. Browser
    prosody gets a small pitch jitter per phrase.
    """
    rng = rng or random.Random()
    items: List[SpeechQueueItem] = []
    for chunk in split_into_chunks(sanitize_for_speech(text)):
        for phrase in split_into_phrases(chunk):
            parts = hard_split(phrase, Defaults.NEURAL_PHRASE_MAX_CHARS) if neural else [phrase]
            for part in parts:
                items.append(SpeechQueueItem(
                    text=part,
                    rate=Defaults.SPEECH_RATE,
                    pitch=round(Defaults.SPEECH_PITCH + rng.uniform(-0.03, 0.03), 3),
                    volume=Defaults.SPEECH_VOLUME,
                    pause_ms=pause_after(part, rng),
                    ends_sentence=ends_sentence(part),
                ))
    return items
