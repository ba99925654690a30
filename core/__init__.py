"""Core building blocks: storage, session, agents and the dashboard orchestrator."""

from .agent_factory import AgentFactory, AgentSkill, load_agent, load_all_agents
from .data_store import DataStore, MemoryDataStore, PersistenceError
from .gateway import AgentGateway, GatewayError, GraphAgentGateway
from .orchestrator import FinanceOrchestrator

__all__ = [
    "AgentFactory",
    "AgentGateway",
    "AgentSkill",
    "DataStore",
    "FinanceOrchestrator",
    "GatewayError",
    "GraphAgentGateway",
    "MemoryDataStore",
    "PersistenceError",
    "load_agent",
    "load_all_agents",
]
