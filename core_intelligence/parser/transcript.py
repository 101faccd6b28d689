"""
Transcript formatting and parsing.

A transcript is the newline-joined ``"Speaker: text"`` rendering of a
meeting's conversation chunks in timestamp order.
"""

import re
from typing import Iterable, List, Optional, Tuple

from domain.models import ConversationChunk


SPEAKER_LINE = re.compile(r'^\s*([^:\n]{1,60}?)\s*:\s*(.*)$')


def format_transcript(chunks: Iterable[ConversationChunk]) -> str:
    """Render chunks as ``"Speaker: text"`` lines."""
    lines = []
    for chunk in chunks:
        text = chunk.text.strip()
        if text:
            lines.append(f"{chunk.speaker_label}: {text}")
    return "\n".join(lines)


def split_speaker_lines(transcript: str) -> List[Tuple[Optional[str], str]]:
    """Split a transcript into (speaker, text) pairs.

    Lines without a leading ``Speaker:`` token get speaker None. Blank lines
    are dropped.
    """
    pairs: List[Tuple[Optional[str], str]] = []
    for raw in transcript.splitlines():
        if not raw.strip():
            continue
        match = SPEAKER_LINE.match(raw)
        if match:
            pairs.append((match.group(1).strip(), match.group(2).strip()))
        else:
            pairs.append((None, raw.strip()))
    return pairs


def speakers_in(transcript: str, exclude: Iterable[str] = ("AI",)) -> List[str]:
    """Distinct speakers in order of first appearance."""
    skipped = {name.lower() for name in exclude}
    seen: List[str] = []
    for speaker, _ in split_speaker_lines(transcript):
        if speaker and speaker.lower() not in skipped and speaker not in seen:
            seen.append(speaker)
    return seen
