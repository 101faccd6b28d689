"""
Defensive parsing of JSON embedded in LLM completions.

Models are asked for strict JSON but often wrap it in prose or code fences.
Parsing never raises: the caller receives a ParseResult that either holds
the validated value or names the reason a fallback is needed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Generic, Iterable, List, Optional, TypeVar

from shared_utils.constants import LogScope
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.PARSER)

T = TypeVar("T")


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Either a validated value or a fallback marker."""

    value: Optional[T] = None
    fallback_reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.fallback_reason is None

    @classmethod
    def success(cls, value: T) -> "ParseResult[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, reason: str) -> "ParseResult[T]":
        return cls(fallback_reason=reason)


def _slice(text: Optional[str], opener: str, closer: str) -> Optional[str]:
    if not text:
        return None
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def slice_json_object(text: Optional[str]) -> Optional[str]:
    """Substring from the first ``{`` to the last ``}``, or None."""
    return _slice(text, "{", "}")


def slice_json_array(text: Optional[str]) -> Optional[str]:
    """Substring from the first ``[`` to the last ``]``, or None."""
    return _slice(text, "[", "]")


def parse_json_object(
    text: Optional[str],
    required_keys: Iterable[str] = (),
) -> ParseResult[Dict[str, Any]]:
    """Extract and decode a JSON object, checking ``required_keys`` exist."""
    candidate = slice_json_object(text)
    if candidate is None:
        return ParseResult.fallback("no_json_object")
    try:
        data = json.loads(candidate)
    except ValueError as e:
        logger.debug("llm_json_decode_failed", error=str(e))
        return ParseResult.fallback("invalid_json")
    if not isinstance(data, dict):
        return ParseResult.fallback("not_an_object")

    missing = [key for key in required_keys if key not in data]
    if missing:
        logger.debug("llm_json_missing_keys", missing=missing)
        return ParseResult.fallback(f"missing_keys:{','.join(missing)}")
    return ParseResult.success(data)


def parse_json_array(text: Optional[str]) -> ParseResult[List[Any]]:
    """Decode the whole text as a JSON array, else the ``[...]`` slice."""
    if text:
        try:
            data = json.loads(text)
            if isinstance(data, list):
                return ParseResult.success(data)
        except ValueError:
            pass

    candidate = slice_json_array(text)
    if candidate is None:
        return ParseResult.fallback("no_json_array")
    try:
        data = json.loads(candidate)
    except ValueError:
        return ParseResult.fallback("invalid_json")
    if not isinstance(data, list):
        return ParseResult.fallback("not_an_array")
    return ParseResult.success(data)
