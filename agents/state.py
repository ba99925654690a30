"""Shared state definitions for the agent graph and the dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Literal, TypedDict

from langchain_core.messages import AnyMessage
from langgraph.graph.message import add_messages

from agents.schemas import ChatMessage, FinancialProfile, FinancialReport, HistoryEntry


class AgentTurnState(TypedDict):
    """Checkpointed conversation for one agent within one session."""

    messages: Annotated[list[AnyMessage], add_messages]


AnalysisStatus = Literal["idle", "awaiting_analysis", "analysis_error", "report_ready"]
ChatStatus = Literal["chat_idle", "chat_awaiting_reply"]
ErrorKind = Literal["gateway_failure", "unparseable_response"]


@dataclass(frozen=True)
class DashboardState:
    """Read-only snapshot handed to the presentation layer.

    analysis_status / chat_status are orthogonal: a chat round-trip may be in
    flight while an analysis is pending, and both write the same ``report``.
    """

    session_id: str
    analysis_status: AnalysisStatus = "idle"
    chat_status: ChatStatus = "chat_idle"
    profile: FinancialProfile | None = None
    report: FinancialReport | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    chat_messages: tuple[ChatMessage, ...] = ()
    history: tuple[HistoryEntry, ...] = ()
    busy_agents: frozenset[str] = field(default_factory=frozenset)
    sample_mode: bool = False

    @property
    def has_profile(self) -> bool:
        return self.profile is not None and self.profile.is_complete

    @property
    def is_analyzing(self) -> bool:
        return self.analysis_status == "awaiting_analysis"

    @property
    def is_chatting(self) -> bool:
        return self.chat_status == "chat_awaiting_reply"
