"""Report normalizer: opaque agent envelope -> canonical ``FinancialReport``.

The coordinator agent is free-form: it may answer with a full analysis, a
plain sentence, or a sub-agent's envelope forwarded verbatim. Decoding is an
explicit tagged step:

  structured      -> payload exposes income_summary / credit_cards /
                     category_breakdown; every field is rebuilt with a typed
                     default when missing or malformed
  conversational  -> anything else; the best human-readable string goes to
                     ``follow_up_response``
  unparseable     -> failure envelope or no result payload at all

Nothing in here raises on bad input. Callers receive ``None`` from
``normalize`` and decide how to report it.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel

from agents.schemas import (
    CategoryBreakdown,
    CreditCardData,
    FinancialReport,
    IncomeSummary,
    RiskAlert,
)

logger = logging.getLogger("financedashboard.normalizer")

STRUCTURED_KEYS = ("income_summary", "credit_cards", "category_breakdown")
WRAPPER_KEYS = ("result", "response")

DEFAULT_REPORT_TYPE = "Monthly Analysis"
DEFAULT_ANALYSIS_PERIOD = "Current Month"

PayloadKind = Literal["structured", "conversational", "unparseable"]


@dataclass(frozen=True)
class DecodedPayload:
    kind: PayloadKind
    report: FinancialReport | None = None
    reason: str = ""


# ------------------------------------------------------------------
# Coercion helpers ("missing is default")
# ------------------------------------------------------------------


def _number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    number = float(value)
    return number if math.isfinite(number) else default


def _count(value: Any) -> int:
    return int(round(_number(value)))


def _text(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _records(value: Any) -> list[Mapping[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, Mapping)]


def _exposes(value: Any) -> bool:
    # Empty containers still count: the agent chose the structured shape.
    if isinstance(value, (Mapping, list)):
        return True
    return bool(value)


def _is_missing(value: Any) -> bool:
    if value is None or value is False:
        return True
    return isinstance(value, (str, int, float)) and not value


def _serialize(value: Any) -> str:
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


# ------------------------------------------------------------------
# Envelope access
# ------------------------------------------------------------------


def _as_mapping(envelope: Any) -> Mapping[str, Any] | None:
    if isinstance(envelope, BaseModel):
        return envelope.model_dump()
    if isinstance(envelope, Mapping):
        return envelope
    return None


def _result_payload(envelope: Mapping[str, Any]) -> Any:
    response = envelope.get("response")
    if not isinstance(response, Mapping):
        return None
    return response.get("result")


def envelope_succeeded(envelope: Any) -> bool:
    data = _as_mapping(envelope)
    return bool(data and data.get("success"))


def envelope_error(envelope: Any) -> str:
    """Return the failure text a gateway attached to the envelope, else ``""``."""
    data = _as_mapping(envelope)
    if data is None:
        return ""
    return _text(data.get("error"))


def envelope_message(envelope: Any) -> str:
    """Return ``response.message`` when the gateway supplied one, else ``""``."""
    data = _as_mapping(envelope)
    if data is None:
        return ""
    response = data.get("response")
    if not isinstance(response, Mapping):
        return ""
    return _text(response.get("message"))


def unwrap_payload(raw: Any) -> Any:
    """Peel a nested ``result`` then a nested ``response`` wrapper, if present."""
    data = raw
    for key in WRAPPER_KEYS:
        if isinstance(data, Mapping) and isinstance(data.get(key), Mapping):
            data = data[key]
    return data


def is_structured_payload(data: Any) -> bool:
    return isinstance(data, Mapping) and any(_exposes(data.get(key)) for key in STRUCTURED_KEYS)


# ------------------------------------------------------------------
# Builders
# ------------------------------------------------------------------


def _income_summary(value: Any) -> IncomeSummary | None:
    if not isinstance(value, Mapping):
        return None
    return IncomeSummary(**{name: _number(value.get(name)) for name in IncomeSummary.model_fields})


def _credit_cards(value: Any) -> list[CreditCardData]:
    return [
        CreditCardData(
            card_name=_text(item.get("card_name")),
            limit=_number(item.get("limit")),
            spend=_number(item.get("spend")),
            utilization_percent=_number(item.get("utilization_percent")),
        )
        for item in _records(value)
    ]


def _categories(value: Any) -> list[CategoryBreakdown]:
    return [
        CategoryBreakdown(
            category=_text(item.get("category")),
            amount=_number(item.get("amount")),
            percent_of_total=_number(item.get("percent_of_total")),
            transaction_count=_count(item.get("transaction_count")),
        )
        for item in _records(value)
    ]


def _risk_alerts(value: Any) -> list[RiskAlert]:
    return [
        RiskAlert(
            alert_type=_text(item.get("alert_type")),
            message=_text(item.get("message")),
            severity=_text(item.get("severity")),
        )
        for item in _records(value)
    ]


def build_structured_report(data: Mapping[str, Any]) -> FinancialReport:
    return FinancialReport(
        kind="structured",
        report_type=_text(data.get("report_type"), DEFAULT_REPORT_TYPE),
        income_summary=_income_summary(data.get("income_summary")),
        credit_cards=_credit_cards(data.get("credit_cards")),
        category_breakdown=_categories(data.get("category_breakdown")),
        risk_alerts=_risk_alerts(data.get("risk_alerts")),
        safe_to_spend=_number(data.get("safe_to_spend")),
        analysis_period=_text(data.get("analysis_period"), DEFAULT_ANALYSIS_PERIOD),
        advice=_text(data.get("advice")),
        follow_up_response=_text(data.get("follow_up_response")),
    )


def _conversational_text(raw: Any, data: Any) -> str:
    if isinstance(raw, str):
        return raw
    for source in (raw, data):
        if not isinstance(source, Mapping):
            continue
        for key in ("text", "message"):
            value = source.get(key)
            if isinstance(value, str):
                return value
    return _serialize(raw)


def build_conversational_report(raw: Any, data: Any = None) -> FinancialReport:
    return FinancialReport(
        kind="conversational",
        follow_up_response=_conversational_text(raw, data if data is not None else raw),
    )


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def decode_envelope(envelope: Any) -> DecodedPayload:
    """Classify a gateway envelope and build the matching canonical report."""
    try:
        data = _as_mapping(envelope)
        if data is None:
            return DecodedPayload("unparseable", reason="envelope is not a mapping")
        if not data.get("success"):
            return DecodedPayload("unparseable", reason="envelope signals failure")

        raw = _result_payload(data)
        if _is_missing(raw):
            return DecodedPayload("unparseable", reason="envelope carries no result")

        payload = unwrap_payload(raw)
        if is_structured_payload(payload):
            return DecodedPayload("structured", build_structured_report(payload))
        return DecodedPayload("conversational", build_conversational_report(raw, payload))
    except Exception as exc:
        logger.warning("Normalizer rejected payload: %s", exc, exc_info=True)
        return DecodedPayload("unparseable", reason=str(exc))


def normalize(envelope: Any) -> FinancialReport | None:
    """Return the canonical report for ``envelope``, or ``None`` if unparseable."""
    decoded = decode_envelope(envelope)
    if decoded.kind == "unparseable":
        logger.debug("Unparseable agent response: %s", decoded.reason)
    return decoded.report
