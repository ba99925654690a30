"""Builders and fake collaborators shared by the test modules."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from agents.schemas import AgentEnvelope, AgentResponsePayload
from core.data_store import MemoryDataStore, PersistenceError
from core.gateway import AgentGateway


def envelope(
    result: Any = None,
    message: str | None = None,
    success: bool = True,
    error: str | None = None,
) -> AgentEnvelope:
    if not success:
        return AgentEnvelope(success=False, error=error)
    return AgentEnvelope(success=True, response=AgentResponsePayload(result=result, message=message))


def structured_result(**overrides: Any) -> dict[str, Any]:
    result = {
        "report_type": "Monthly Analysis",
        "income_summary": {
            "net_income": 5000,
            "total_fixed_expenses": 1500,
            "total_variable_expenses": 1200,
            "total_emi": 300,
            "total_outflow": 3000,
            "savings": 2000,
            "savings_rate": 40,
        },
        "credit_cards": [{"card_name": "Visa", "limit": 5000, "spend": 1200, "utilization_percent": 24}],
        "category_breakdown": [
            {"category": "Groceries", "amount": 400, "percent_of_total": 33.3, "transaction_count": 9}
        ],
        "risk_alerts": [{"alert_type": "Credit Alert", "message": "Due soon", "severity": "high"}],
        "safe_to_spend": 800,
        "analysis_period": "September 2026",
        "advice": "Keep it up.",
        "follow_up_response": "",
    }
    result.update(overrides)
    return result


class ScriptedGateway(AgentGateway):
    """Replies with queued envelopes (or raises queued exceptions) in order."""

    def __init__(self, *replies: Any):
        self.replies = list(replies)
        self.calls: list[tuple[str, str, dict[str, str]]] = []

    async def send(self, message: str, agent_id: str, context: Mapping[str, str]) -> AgentEnvelope:
        self.calls.append((message, agent_id, dict(context)))
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class GatedGateway(AgentGateway):
    """Every call blocks until the test resolves its future."""

    def __init__(self):
        self.calls: list[str] = []
        self.pending: list[asyncio.Future] = []

    async def send(self, message: str, agent_id: str, context: Mapping[str, str]) -> AgentEnvelope:
        future = asyncio.get_running_loop().create_future()
        self.calls.append(message)
        self.pending.append(future)
        return await future


class FailingDataStore(MemoryDataStore):
    """Reads work, every write fails like a full disk."""

    def write(self, key: str, content: str) -> None:
        raise PersistenceError(f"Cannot write '{key}': disk full")


async def settle() -> None:
    """Give scheduled tasks a few loop turns to reach their next await."""
    for _ in range(5):
        await asyncio.sleep(0)
