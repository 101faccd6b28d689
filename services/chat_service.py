"""
Chat service: one-shot agent replies and AI subtask suggestions.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from core_intelligence.parser.llm_json import parse_json_array
from domain.models import AgentRecord, SubtaskSuggestion
from ports.agent_store import AgentStorePort
from ports.llm_provider import ChatCompletionPort
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import ConfigurationError, NotFoundError, ValidationError
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.CHAT)


DEFAULT_AGENT_PROMPT = (
    "You are a helpful assistant in a video call. "
    "Respond naturally and conversationally."
)
EMPTY_REPLY = "I'm sorry, I didn't understand that."

SUBTASK_SYSTEM_PROMPT = "You are a helpful assistant that returns valid JSON only when asked to output JSON."
SUBTASK_USER_TEMPLATE = (
    'Given this task: "{title}"{description}, suggest 3-5 logical subtasks '
    "that would help break down this work.\n\n"
    "Format as JSON array:\n"
    "[\n"
    "  {{\n"
    '    "title": "Subtask title",\n'
    '    "description": "Brief description of what needs to be done",\n'
    '    "estimatedHours": 2\n'
    "  }}\n"
    "]\n\n"
    "Keep subtasks specific, actionable, and realistic in scope."
)
MAX_SUGGESTIONS = 5


class ChatService:
    """Agent conversation turns backed by the chat-completion port."""

    def __init__(
        self,
        agent_store: AgentStorePort,
        llm_provider: Optional[ChatCompletionPort] = None,
    ) -> None:
        self._agents = agent_store
        self._llm = llm_provider

    def reply(self, message: Any, agent_id: Any) -> Dict[str, str]:
        """Answer ``message`` in the persona of the agent.

        Returns:
            ``{"response": text, "agent": agent name}``

        Raises:
            ValidationError: Message or agent id missing.
            NotFoundError: Unknown agent.
            ConfigurationError: No LLM provider configured.
            ExternalServiceError: The provider call failed.
        """
        if not message or not agent_id or not isinstance(message, str) or not message.strip():
            raise ValidationError("Missing message or agentId")
        agent: Optional[AgentRecord] = self._agents.get_agent(str(agent_id))
        if agent is None:
            raise NotFoundError("Agent", str(agent_id))
        if self._llm is None:
            raise ConfigurationError("Chat model is not configured")

        text = self._llm.complete(
            agent.instructions or DEFAULT_AGENT_PROMPT,
            message,
            temperature=Defaults.CHAT_TEMPERATURE,
            max_tokens=Defaults.CHAT_MAX_TOKENS,
        )
        logger.info("chat_reply", agent_id=agent.agent_id, chars=len(text or ""))
        return {"response": text or EMPTY_REPLY, "agent": agent.name}

    def suggest_subtasks(self, task_title: str, task_description: Optional[str] = None) -> List[SubtaskSuggestion]:
        """3-5 subtask suggestions for a task; empty list on any failure."""
        if self._llm is None or not task_title or not task_title.strip():
            return []
        prompt = SUBTASK_USER_TEMPLATE.format(
            title=task_title.strip(),
            description=f" - {task_description.strip()}" if task_description and task_description.strip() else "",
        )
        try:
            raw = self._llm.complete(
                SUBTASK_SYSTEM_PROMPT,
                prompt,
                temperature=Defaults.SUBTASK_TEMPERATURE,
                max_tokens=Defaults.SUBTASK_MAX_TOKENS,
            )
        except Exception as e:
            logger.warning("subtask_suggestions_failed", error=str(e))
            return []

        parsed = parse_json_array(raw)
        if not parsed.ok:
            logger.warning("subtask_suggestions_unparsed", reason=parsed.fallback_reason)
            return []

        suggestions: List[SubtaskSuggestion] = []
        for item in parsed.value:
            if not isinstance(item, dict) or not item.get("title"):
                continue
            try:
                suggestions.append(SubtaskSuggestion.model_validate(item))
            except PydanticValidationError:
                continue
        logger.info("subtask_suggestions", task_title=task_title, count=len(suggestions))
        return suggestions[:MAX_SUGGESTIONS]
