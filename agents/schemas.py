"""Pydantic models shared by the normalizer, the stores and the orchestrator.

The profile models mirror what the user enters in the setup form. The report
models are the canonical shape every downstream consumer reads; the agent's
raw payload never leaves ``agents.normalizer`` in any other form.

Canonical entities are frozen: a new analysis or a profile save replaces the
whole object instead of patching fields in place.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


ReportKind = Literal["structured", "conversational"]
ChatRole = Literal["user", "agent"]


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class CreditCardProfile(BaseModel):
    """A card the user holds, with its credit limit."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="")
    limit: float = Field(default=0.0, ge=0)


class EMIProfile(BaseModel):
    """A recurring loan instalment."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="")
    amount: float = Field(default=0.0, ge=0)


class FixedExpenses(BaseModel):
    model_config = ConfigDict(frozen=True)

    rent: float = Field(default=0.0, ge=0)
    utilities: float = Field(default=0.0, ge=0)
    insurance: float = Field(default=0.0, ge=0)


class FinancialProfile(BaseModel):
    """User-supplied financial inputs. Overwritten wholesale on every save."""

    model_config = ConfigDict(frozen=True)

    salary: float = Field(default=0.0, ge=0, description="Monthly net salary.")
    cards: list[CreditCardProfile] = Field(default_factory=list)
    emis: list[EMIProfile] = Field(default_factory=list)
    fixed_expenses: FixedExpenses = Field(
        default_factory=FixedExpenses,
        validation_alias=AliasChoices("fixed_expenses", "fixedExpenses"),
    )

    @property
    def is_complete(self) -> bool:
        """Only profiles with a positive salary may be analyzed."""
        return self.salary > 0

    def to_agent_payload(self) -> dict[str, Any]:
        """Shape sent to the coordinator agent as ``financial_profile``."""
        return {
            "monthly_salary": self.salary,
            "credit_cards": [{"name": c.name, "limit": c.limit} for c in self.cards],
            "emis": [{"name": e.name, "amount": e.amount} for e in self.emis],
            "fixed_expenses": self.fixed_expenses.model_dump(),
        }


# ---------------------------------------------------------------------------
# Canonical report
# ---------------------------------------------------------------------------


class IncomeSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    net_income: float = Field(default=0.0)
    total_fixed_expenses: float = Field(default=0.0)
    total_variable_expenses: float = Field(default=0.0)
    total_emi: float = Field(default=0.0)
    total_outflow: float = Field(default=0.0)
    savings: float = Field(default=0.0)
    savings_rate: float = Field(default=0.0, description="Percentage of net income saved.")


class CreditCardData(BaseModel):
    model_config = ConfigDict(frozen=True)

    card_name: str = Field(default="")
    limit: float = Field(default=0.0)
    spend: float = Field(default=0.0)
    utilization_percent: float = Field(default=0.0)


class CategoryBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str = Field(default="")
    amount: float = Field(default=0.0)
    percent_of_total: float = Field(default=0.0)
    transaction_count: int = Field(default=0)


class RiskAlert(BaseModel):
    model_config = ConfigDict(frozen=True)

    alert_type: str = Field(default="")
    message: str = Field(default="")
    severity: str = Field(default="", description="Usually 'high', 'medium' or 'low'.")


class FinancialReport(BaseModel):
    """Canonical analysis result.

    ``kind`` tells consumers which half of the model is meaningful:
    structured reports carry the dashboard sections, conversational ones only
    ``follow_up_response``.
    """

    model_config = ConfigDict(frozen=True)

    kind: ReportKind = Field(default="structured")
    report_type: str = Field(default="")
    income_summary: IncomeSummary | None = Field(default=None)
    credit_cards: list[CreditCardData] = Field(default_factory=list)
    category_breakdown: list[CategoryBreakdown] = Field(default_factory=list)
    risk_alerts: list[RiskAlert] = Field(default_factory=list)
    safe_to_spend: float = Field(default=0.0)
    analysis_period: str = Field(default="")
    advice: str = Field(default="")
    follow_up_response: str = Field(default="")

    @property
    def is_structured(self) -> bool:
        return self.kind == "structured"


# ---------------------------------------------------------------------------
# History & chat
# ---------------------------------------------------------------------------


class HistoryEntry(BaseModel):
    """Snapshot of one successful analysis and the profile it was run with."""

    model_config = ConfigDict(frozen=True)

    id: str
    date: str = Field(description="Human-readable capture time.")
    report: FinancialReport
    profile: FinancialProfile


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Agent gateway envelope
# ---------------------------------------------------------------------------


class AgentResponsePayload(BaseModel):
    """Body of a gateway reply. ``result`` is opaque and may be any JSON value."""

    result: Any = Field(default=None)
    message: str | None = Field(default=None)


class AgentEnvelope(BaseModel):
    """Success/failure wrapper returned by every gateway call."""

    success: bool = Field(default=False)
    response: AgentResponsePayload | None = Field(default=None)
    error: str | None = Field(default=None)
