"""Agent gateway: send a message to a named agent, get an envelope back.

``GraphAgentGateway`` runs each agent as a one-node LangGraph graph over its
system prompt. The graph is checkpointed per ``session_id`` so follow-up chat
turns see the earlier analysis.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, StateGraph

from agents.schemas import AgentEnvelope, AgentResponsePayload
from agents.state import AgentTurnState
from core.agent_factory import AgentFactory, AgentSkill

logger = logging.getLogger("financedashboard.gateway")


class GatewayError(Exception):
    """Transport-level failure: the agent could not be reached or crashed."""


class AgentGateway(ABC):
    """Contract consumed by the orchestrator."""

    @abstractmethod
    async def send(
        self, message: str, agent_id: str, context: Mapping[str, str]
    ) -> AgentEnvelope:
        """Deliver ``message`` to ``agent_id``; raise ``GatewayError`` on transport faults."""

    def end_session(self, session_id: str) -> None:
        """Release anything kept for ``session_id``. Stateless gateways keep nothing."""


# ------------------------------------------------------------------
# Reply decoding
# ------------------------------------------------------------------


def extract_json(text: str) -> dict[str, Any]:
    """Pull a JSON object out of model text (fenced block, whole text, or outer braces)."""
    text = (text or "").strip()
    if not text:
        return {}

    if "```" in text:
        for part in text.split("```")[1::2]:
            part = part.strip()
            if part.startswith("json"):
                part = part[4:].strip()
            try:
                parsed = json.loads(part)
                return parsed if isinstance(parsed, dict) else {}
            except (json.JSONDecodeError, ValueError):
                continue

    for candidate in (text, text[text.find("{"): text.rfind("}") + 1] if "{" in text else ""):
        if not candidate:
            continue
        try:
            parsed = json.loads(candidate)
            return parsed if isinstance(parsed, dict) else {}
        except (json.JSONDecodeError, ValueError):
            continue
    return {}


def _message_text(msg: Any) -> str:
    content = getattr(msg, "content", "")
    if isinstance(content, list):
        return " ".join(b.get("text", "") if isinstance(b, dict) else str(b) for b in content).strip()
    return str(content or "").strip()


def _thread_id(session_id: str, agent_id: str) -> str:
    return f"{session_id or 'anonymous'}:{agent_id}"


# ------------------------------------------------------------------
# LangGraph-backed gateway
# ------------------------------------------------------------------


class GraphAgentGateway(AgentGateway):
    """Runs agent definitions locally through LangGraph with per-session memory."""

    def __init__(self, agent_factory: AgentFactory | None = None, checkpointer: Any = None):
        self.agent_factory = agent_factory or AgentFactory()
        self.checkpointer = checkpointer or MemorySaver()
        self._graphs: dict[str, Any] = {}

    def _graph_for(self, skill: AgentSkill) -> Any:
        if skill.id in self._graphs:
            return self._graphs[skill.id]

        llm = self.agent_factory.create_llm(skill.id)
        system = SystemMessage(content=skill.system_prompt)

        async def respond(state: AgentTurnState) -> dict[str, Any]:
            reply = await llm.ainvoke([system, *state["messages"]])
            return {"messages": [reply]}

        workflow = StateGraph(AgentTurnState)
        workflow.add_node("respond", respond)
        workflow.set_entry_point("respond")
        workflow.add_edge("respond", END)
        graph = workflow.compile(checkpointer=self.checkpointer)
        self._graphs[skill.id] = graph
        logger.info("Compiled agent graph for %s (%s)", skill.name, skill.id)
        return graph

    async def send(
        self, message: str, agent_id: str, context: Mapping[str, str]
    ) -> AgentEnvelope:
        skill = self.agent_factory.get(agent_id)
        if skill is None:
            logger.warning("Unknown agent id %s", agent_id)
            return AgentEnvelope(success=False, error=f"Unknown agent '{agent_id}'.")

        session_id = str(context.get("session_id") or "")
        config = {"configurable": {"thread_id": _thread_id(session_id, agent_id)}}
        log_preview = message[:80].replace("\n", " ")
        logger.info("-> %s [%s] %s", skill.name, session_id, log_preview)

        try:
            final_state = await self._graph_for(skill).ainvoke(
                {"messages": [HumanMessage(content=message)]}, config=config
            )
        except Exception as exc:
            logger.error("Agent %s call failed: %s", agent_id, exc, exc_info=True)
            raise GatewayError(str(exc) or "Agent call failed.") from exc

        messages = final_state.get("messages", [])
        text = _message_text(messages[-1]) if messages else ""
        parsed = extract_json(text)
        logger.info("<- %s replied (%d chars, json=%s)", skill.name, len(text), bool(parsed))
        return AgentEnvelope(
            success=True,
            response=AgentResponsePayload(
                result=parsed if parsed else text,
                message=None if parsed else text,
            ),
        )

    def end_session(self, session_id: str) -> None:
        """Drop the checkpointed conversation of every agent for one session."""
        for agent_id in self._graphs:
            self.checkpointer.delete_thread(_thread_id(session_id, agent_id))
        logger.info("Released agent memory for session %s", session_id)

    def conversation(self, session_id: str, agent_id: str) -> list[BaseMessage]:
        """Messages checkpointed for one session/agent pair (empty if none)."""
        graph = self._graphs.get(agent_id)
        if graph is None:
            return []
        config = {"configurable": {"thread_id": _thread_id(session_id, agent_id)}}
        snapshot = graph.get_state(config)
        return list(snapshot.values.get("messages", [])) if snapshot else []
