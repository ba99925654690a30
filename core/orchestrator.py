"""FinanceOrchestrator: the dashboard's state machine.

Owns the active profile, report, chat log and history for one client session.
The presentation layer reads ``state`` and only changes things through the
transition methods below.

Analysis and chat are separate channels, each gated by its own status. Both
may be in flight at once and both write the single active-report slot; the
reply that lands last wins.
"""

from __future__ import annotations

import json
import logging
from collections import Counter

from agents.normalizer import envelope_error, envelope_message, envelope_succeeded, normalize
from agents.samples import SAMPLE_PROFILE, SAMPLE_REPORT
from agents.schemas import ChatMessage, FinancialProfile, FinancialReport, HistoryEntry
from agents.state import AnalysisStatus, ChatStatus, DashboardState, ErrorKind
from config import ANALYSIS_SEARCH_QUERY, CHAT_REPLACES_REPORT, MANAGER_AGENT_ID
from core.data_store import DataStore
from core.gateway import AgentGateway
from core.history import HistoryStore
from core.profile import ProfileStore
from core.session import SessionContext, create_session

logger = logging.getLogger("financedashboard.orchestrator")

ANALYSIS_FAILED = "An error occurred during analysis."
ANALYSIS_UNPARSEABLE = "Could not parse the financial analysis. Please try again."
CHAT_NO_REPLY = "I was unable to process your request. Please try again."
CHAT_FAILED = "Sorry, an error occurred. Please try again."


def build_analysis_message(
    profile: FinancialProfile, search_query: str = ANALYSIS_SEARCH_QUERY
) -> str:
    """Serialized ``analyze_finances`` request for the coordinator agent."""
    return json.dumps(
        {
            "action": "analyze_finances",
            "financial_profile": profile.to_agent_payload(),
            "search_query": search_query,
        }
    )


def chat_reply_text(report: FinancialReport | None, envelope: object) -> str:
    """First non-empty of follow-up, advice, gateway message, fallback."""
    if report is not None:
        if report.follow_up_response:
            return report.follow_up_response
        if report.advice:
            return report.advice
    return envelope_message(envelope) or CHAT_NO_REPLY


class FinanceOrchestrator:
    def __init__(
        self,
        gateway: AgentGateway,
        data_store: DataStore | None = None,
        *,
        agent_id: str = MANAGER_AGENT_ID,
        search_query: str = ANALYSIS_SEARCH_QUERY,
        chat_replaces_report: bool = CHAT_REPLACES_REPORT,
        session: SessionContext | None = None,
        history: HistoryStore | None = None,
        profiles: ProfileStore | None = None,
    ):
        self.gateway = gateway
        self.agent_id = agent_id
        self.search_query = search_query
        self.chat_replaces_report = chat_replaces_report
        # Created before anything can reach the gateway.
        self.session = session or create_session()

        self.profiles = profiles or ProfileStore(data_store)
        self.history = history or HistoryStore(data_store)

        self._profile: FinancialProfile | None = self.profiles.load()
        self.history.load()

        self._analysis_status: AnalysisStatus = "idle"
        self._chat_status: ChatStatus = "chat_idle"
        self._report: FinancialReport | None = None
        self._error: str | None = None
        self._error_kind: ErrorKind | None = None
        self._chat_messages: list[ChatMessage] = []
        self._busy: Counter[str] = Counter()
        self._sample_mode = False

        logger.info(
            "Session %s started (profile=%s, history=%d)",
            self.session.session_id,
            self._profile is not None,
            len(self.history),
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> DashboardState:
        return DashboardState(
            session_id=self.session.session_id,
            analysis_status=self._analysis_status,
            chat_status=self._chat_status,
            profile=self._profile,
            report=self._report,
            error=self._error,
            error_kind=self._error_kind,
            chat_messages=tuple(self._chat_messages),
            history=self.history.entries,
            busy_agents=frozenset(a for a, n in self._busy.items() if n > 0),
            sample_mode=self._sample_mode,
        )

    def snapshot(self) -> DashboardState:
        return self.state

    # ------------------------------------------------------------------
    # Busy indicator
    # ------------------------------------------------------------------

    def _acquire(self, agent_id: str) -> None:
        self._busy[agent_id] += 1

    def _release(self, agent_id: str) -> None:
        self._busy[agent_id] -= 1
        if self._busy[agent_id] <= 0:
            del self._busy[agent_id]

    # ------------------------------------------------------------------
    # Analysis channel
    # ------------------------------------------------------------------

    async def analyze(self) -> FinancialReport | None:
        """Request a full analysis of the current profile.

        Returns the new report, or None when the request was skipped or failed
        (the reason is on ``state.error``).
        """
        profile = self._profile
        if profile is None or not profile.is_complete:
            logger.info("Analysis skipped: profile is missing or incomplete")
            return None
        if self._analysis_status == "awaiting_analysis":
            logger.info("Analysis skipped: a request is already in flight")
            return None

        self._analysis_status = "awaiting_analysis"
        self._error = None
        self._error_kind = None
        message = build_analysis_message(profile, self.search_query)

        self._acquire(self.agent_id)
        try:
            envelope = await self.gateway.send(message, self.agent_id, self.session.as_context())
        except Exception as exc:
            logger.error("Analysis request failed: %s", exc, exc_info=True)
            self._fail_analysis("gateway_failure", str(exc) or ANALYSIS_FAILED)
            return None
        finally:
            self._release(self.agent_id)

        if not envelope_succeeded(envelope):
            reason = envelope_error(envelope) or ANALYSIS_FAILED
            logger.warning("Agent reported failure: %s", reason)
            self._fail_analysis("gateway_failure", reason)
            return None

        report = normalize(envelope)
        if report is None:
            self._fail_analysis("unparseable_response", ANALYSIS_UNPARSEABLE)
            return None

        self._report = report
        self._analysis_status = "report_ready"
        self.history.record(report, profile)
        logger.info("Analysis ready (%s, %s)", report.kind, report.analysis_period or "-")
        return report

    def _fail_analysis(self, kind: ErrorKind, message: str) -> None:
        self._analysis_status = "analysis_error"
        self._error = message
        self._error_kind = kind

    # ------------------------------------------------------------------
    # Chat channel
    # ------------------------------------------------------------------

    async def send_chat(self, text: str) -> ChatMessage | None:
        """Send a follow-up question; returns the agent message appended."""
        text = (text or "").strip()
        if not text:
            return None
        if self._chat_status == "chat_awaiting_reply":
            logger.info("Chat message dropped: waiting for the previous reply")
            return None

        self._chat_messages.append(ChatMessage(role="user", content=text))
        self._chat_status = "chat_awaiting_reply"

        self._acquire(self.agent_id)
        try:
            envelope = await self.gateway.send(text, self.agent_id, self.session.as_context())
        except Exception as exc:
            logger.error("Chat request failed: %s", exc, exc_info=True)
            reply = CHAT_FAILED
        else:
            report = normalize(envelope)
            reply = chat_reply_text(report, envelope)
            # Only a reply carrying an income summary is a full analysis.
            if report is not None and report.income_summary is not None and self.chat_replaces_report:
                self._report = report
                if self._analysis_status == "idle":
                    self._analysis_status = "report_ready"
        finally:
            self._release(self.agent_id)
            self._chat_status = "chat_idle"

        message = ChatMessage(role="agent", content=reply)
        self._chat_messages.append(message)
        return message

    # ------------------------------------------------------------------
    # Local transitions (no gateway call)
    # ------------------------------------------------------------------

    def select_history(self, entry_id: str) -> HistoryEntry | None:
        """Show a past analysis together with the profile it was run against."""
        entry = self.history.get(entry_id)
        if entry is None:
            logger.debug("Unknown history entry %s", entry_id)
            return None
        self._report = entry.report
        self._profile = entry.profile
        if self._analysis_status != "awaiting_analysis":
            self._analysis_status = "report_ready"
        return entry

    def save_profile(self, profile: FinancialProfile) -> bool:
        """Replace the profile; returns whether it was also persisted."""
        self._profile = profile
        return self.profiles.save(profile)

    def set_sample_mode(self, enabled: bool) -> None:
        self._sample_mode = enabled
        if enabled:
            if self._profile is None or not self._profile.is_complete:
                self._profile = SAMPLE_PROFILE
            self._report = SAMPLE_REPORT
            if self._analysis_status != "awaiting_analysis":
                self._analysis_status = "report_ready"
        else:
            self._report = None
            if self._analysis_status == "report_ready":
                self._analysis_status = "idle"
