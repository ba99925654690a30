"""Pure presentation helpers: no Chainlit imports, easy to test.

Turns canonical models into display values (bands, summaries, markdown) and
parses the free-text profile inputs from the settings panel.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any, Literal

from pydantic import ValidationError

from agents.schemas import (
    CategoryBreakdown,
    CreditCardProfile,
    EMIProfile,
    FinancialProfile,
    FinancialReport,
    FixedExpenses,
    HistoryEntry,
)

logger = logging.getLogger("financedashboard.ui")

UtilizationLevel = Literal["low", "moderate", "high"]
SeverityLevel = Literal["high", "medium", "low"]
CategorySortKey = Literal["amount", "percent_of_total", "transaction_count"]

CATEGORY_SORT_KEYS: tuple[str, ...] = ("amount", "percent_of_total", "transaction_count")

SEVERITY_ICONS = {"high": "🔴", "medium": "🟡", "low": "🔵"}
UTILIZATION_ICONS = {"low": "🟢", "moderate": "🟡", "high": "🔴"}

CHAT_SUGGESTIONS = (
    "What if I cancel my streaming subscriptions?",
    "How can I reduce dining expenses?",
    "Should I pay off my car loan early?",
)

_NAMED_AMOUNT_RE = re.compile(r"^\s*(?P<name>.+?)\s*[:=]\s*(?P<amount>[-+]?[\d,]*\.?\d+)\s*$")


# ------------------------------------------------------------------
# Bands
# ------------------------------------------------------------------


def utilization_level(percent: float) -> UtilizationLevel:
    if percent < 30:
        return "low"
    if percent < 60:
        return "moderate"
    return "high"


def severity_level(severity: str | None) -> SeverityLevel:
    """Case-insensitive; anything unrecognized is treated as low."""
    s = (severity or "").strip().lower()
    if s == "high":
        return "high"
    if s == "medium":
        return "medium"
    return "low"


def sorted_categories(
    categories: Iterable[CategoryBreakdown],
    key: CategorySortKey = "amount",
    descending: bool = True,
) -> list[CategoryBreakdown]:
    if key not in CATEGORY_SORT_KEYS:
        raise ValueError(f"Unknown sort key '{key}'")
    return sorted(categories, key=lambda c: getattr(c, key), reverse=descending)


# ------------------------------------------------------------------
# History
# ------------------------------------------------------------------


def top_category(report: FinancialReport) -> CategoryBreakdown | None:
    """Largest category by amount; the first one wins a tie."""
    if not report.category_breakdown:
        return None
    return max(report.category_breakdown, key=lambda c: c.amount)


def history_card(entry: HistoryEntry) -> dict[str, Any]:
    """Summary values shown for one past analysis."""
    report = entry.report
    summary = report.income_summary
    top = top_category(report)
    return {
        "id": entry.id,
        "date": entry.date,
        "title": report.report_type or "Analysis",
        "period": report.analysis_period,
        "total_outflow": summary.total_outflow if summary else 0.0,
        "savings_rate": summary.savings_rate if summary else 0.0,
        "top_category": top.category if top else "",
    }


# ------------------------------------------------------------------
# Markdown rendering
# ------------------------------------------------------------------


def _money(value: float) -> str:
    return f"{value:,.2f}"


def _pct(value: float) -> str:
    return f"{value:.1f}%"


def report_markdown(report: FinancialReport, sort_key: CategorySortKey = "amount") -> str:
    """Render a report as markdown for a chat message."""
    if not report.is_structured:
        return report.follow_up_response

    lines: list[str] = [f"## {report.report_type}"]
    if report.analysis_period:
        lines.append(f"_{report.analysis_period}_")

    summary = report.income_summary
    if summary is not None:
        lines += [
            "",
            "### Income summary",
            "| Net income | Fixed | Variable | EMI | Outflow | Savings | Rate |",
            "|---:|---:|---:|---:|---:|---:|---:|",
            "| "
            + " | ".join(
                [
                    _money(summary.net_income),
                    _money(summary.total_fixed_expenses),
                    _money(summary.total_variable_expenses),
                    _money(summary.total_emi),
                    _money(summary.total_outflow),
                    _money(summary.savings),
                    _pct(summary.savings_rate),
                ]
            )
            + " |",
        ]

    lines += ["", f"**Safe to spend:** {_money(report.safe_to_spend)}"]

    if report.credit_cards:
        lines += ["", "### Credit cards"]
        for card in report.credit_cards:
            icon = UTILIZATION_ICONS[utilization_level(card.utilization_percent)]
            lines.append(
                f"- {icon} **{card.card_name or 'Card'}**: {_money(card.spend)} of "
                f"{_money(card.limit)} ({_pct(card.utilization_percent)})"
            )

    if report.category_breakdown:
        lines += [
            "",
            "### Spending by category",
            "| Category | Amount | % Total | Txns |",
            "|---|---:|---:|---:|",
        ]
        for cat in sorted_categories(report.category_breakdown, sort_key):
            lines.append(
                f"| {cat.category or 'Other'} | {_money(cat.amount)} | "
                f"{_pct(cat.percent_of_total)} | {cat.transaction_count} |"
            )

    if report.risk_alerts:
        lines += ["", "### Risk alerts"]
        for alert in report.risk_alerts:
            icon = SEVERITY_ICONS[severity_level(alert.severity)]
            lines.append(f"- {icon} **{alert.alert_type or 'Alert'}**: {alert.message}")

    if report.advice:
        lines += ["", "### Advice", report.advice]

    return "\n".join(lines)


def agent_status_lines(agents: Mapping[str, str], busy_agents: Iterable[str]) -> list[str]:
    """One line per known agent (id -> name); busy ones are marked as working."""
    busy = set(busy_agents)
    return [
        f"{'🟢' if agent_id in busy else '⚪'} {name}{' (working...)' if agent_id in busy else ''}"
        for agent_id, name in agents.items()
    ]


# ------------------------------------------------------------------
# Profile input parsing
# ------------------------------------------------------------------


def _safe_float(value: Any, default: float = 0.0) -> float:
    """Convert to float, tolerating commas and blanks."""
    if isinstance(value, bool):
        return default
    try:
        number = float(str(value).replace(",", "").strip()) if value not in (None, "") else default
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def parse_named_amounts(text: str) -> list[tuple[str, float]]:
    """Parse ``Name: amount`` lines. Malformed or negative lines are skipped."""
    items: list[tuple[str, float]] = []
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        match = _NAMED_AMOUNT_RE.match(line)
        if match is None:
            logger.debug("Skipping unparseable line %r", line)
            continue
        amount = _safe_float(match.group("amount"), -1.0)
        if amount < 0:
            continue
        items.append((match.group("name"), amount))
    return items


def _plain(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def format_named_amounts(items: Iterable[tuple[str, float]]) -> str:
    return "\n".join(f"{name}: {_plain(amount)}" for name, amount in items)


def profile_from_settings(settings: Mapping[str, Any]) -> FinancialProfile | None:
    """Build a profile from the settings panel values, or None if invalid."""
    try:
        return FinancialProfile(
            salary=max(_safe_float(settings.get("salary")), 0.0),
            cards=[
                CreditCardProfile(name=name, limit=limit)
                for name, limit in parse_named_amounts(settings.get("cards", ""))
            ],
            emis=[
                EMIProfile(name=name, amount=amount)
                for name, amount in parse_named_amounts(settings.get("emis", ""))
            ],
            fixed_expenses=FixedExpenses(
                rent=max(_safe_float(settings.get("rent")), 0.0),
                utilities=max(_safe_float(settings.get("utilities")), 0.0),
                insurance=max(_safe_float(settings.get("insurance")), 0.0),
            ),
        )
    except ValidationError as exc:
        logger.warning("Profile settings rejected: %s", exc.error_count())
        return None


def settings_from_profile(profile: FinancialProfile | None) -> dict[str, Any]:
    """Initial values for the settings panel: numbers for the amount inputs, text for the lists."""
    if profile is None:
        return {"salary": None, "cards": "", "emis": "", "rent": None, "utilities": None, "insurance": None}
    return {
        "salary": profile.salary,
        "cards": format_named_amounts((c.name, c.limit) for c in profile.cards),
        "emis": format_named_amounts((e.name, e.amount) for e in profile.emis),
        "rent": profile.fixed_expenses.rent,
        "utilities": profile.fixed_expenses.utilities,
        "insurance": profile.fixed_expenses.insurance,
    }
