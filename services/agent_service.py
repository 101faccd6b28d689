"""
Agent service: owner-scoped CRUD over AI agent personas.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from domain.models import AgentRecord
from ports.agent_store import AgentStorePort
from ports.meeting_store import MeetingStorePort
from shared_utils.constants import LogScope
from shared_utils.error_handler import NotFoundError, ValidationError
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.validation import InputValidator

logger = get_scoped_logger(LogScope.AGENTS)

UPDATABLE_FIELDS = ("name", "instructions")


class AgentService:

    def __init__(
        self,
        agent_store: AgentStorePort,
        user_store: Optional[MeetingStorePort] = None,
    ) -> None:
        self._agents = agent_store
        self._users = user_store

    def create_agent(self, user_id: str, name: str, instructions: str) -> AgentRecord:
        user_id = InputValidator.validate_identifier(user_id, "userId")
        if self._users is not None and self._users.get_user(user_id) is None:
            raise NotFoundError("User", user_id)
        agent = self._agents.add_agent(AgentRecord(
            agent_id=uuid.uuid4().hex,
            name=InputValidator.validate_non_empty_string(name, "name"),
            user_id=user_id,
            instructions=InputValidator.validate_non_empty_string(instructions, "instructions"),
        ))
        logger.info("agent_created", agent_id=agent.agent_id)
        return agent

    def get_agent(self, user_id: str, agent_id: str) -> AgentRecord:
        return self._owned(user_id, agent_id)

    def list_agents(self, user_id: str, search: Optional[str] = None) -> List[AgentRecord]:
        search = search.strip() if search and search.strip() else None
        return self._agents.list_agents(user_id, search=search)

    def update_agent(self, user_id: str, agent_id: str, **fields: Any) -> AgentRecord:
        agent = self._owned(user_id, agent_id)
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unsupported agent fields: {', '.join(sorted(unknown))}",
                context={"fields": sorted(unknown)},
            )
        changes: Dict[str, Any] = {
            key: InputValidator.validate_non_empty_string(value, key)
            for key, value in fields.items()
        }
        if not changes:
            return agent
        updated = self._agents.update_agent(agent_id, changes)
        logger.info("agent_updated", agent_id=agent_id, fields=sorted(changes))
        return updated

    def remove_agent(self, user_id: str, agent_id: str) -> AgentRecord:
        agent = self._owned(user_id, agent_id)
        self._agents.delete_agent(agent_id)
        logger.info("agent_removed", agent_id=agent_id)
        return agent

    def get_agent_info(self, agent_id: str) -> Dict[str, str]:
        """Public lookup used by the call UI: id, name and instructions only."""
        agent_id = InputValidator.validate_identifier(agent_id, "agentId")
        agent = self._agents.get_agent(agent_id)
        if agent is None:
            raise NotFoundError("Agent", agent_id)
        return {"id": agent.agent_id, "name": agent.name, "instructions": agent.instructions}

    def _owned(self, user_id: str, agent_id: str) -> AgentRecord:
        agent = self._agents.get_agent(agent_id)
        if agent is None or agent.user_id != user_id:
            raise NotFoundError("Agent", agent_id)
        return agent
