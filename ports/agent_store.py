"""
Port interface for agent persistence.

Implementations: SqlAgentStoreAdapter (adapters/)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from domain.models import AgentRecord


@runtime_checkable
class AgentStorePort(Protocol):

    def add_agent(self, record: AgentRecord) -> AgentRecord:
        ...

    def get_agent(self, agent_id: str) -> Optional[AgentRecord]:
        ...

    def list_agents(self, user_id: str, search: Optional[str] = None) -> List[AgentRecord]:
        """Agents owned by ``user_id``, newest first, optional name filter."""
        ...

    def update_agent(self, agent_id: str, fields: Dict[str, Any]) -> Optional[AgentRecord]:
        """Apply ``fields`` and return the updated record (None if missing)."""
        ...

    def delete_agent(self, agent_id: str) -> bool:
        """Delete the agent and, by cascade, its meetings."""
        ...
