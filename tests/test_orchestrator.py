import asyncio
import json

import pytest

from agents.samples import SAMPLE_PROFILE, SAMPLE_REPORT
from agents.schemas import FinancialProfile
from config import ANALYSIS_SEARCH_QUERY, MANAGER_AGENT_ID
from core.gateway import GatewayError
from core.orchestrator import (
    ANALYSIS_FAILED,
    ANALYSIS_UNPARSEABLE,
    CHAT_FAILED,
    CHAT_NO_REPLY,
    FinanceOrchestrator,
    build_analysis_message,
)
from tests.helpers import GatedGateway, ScriptedGateway, envelope, settle, structured_result


def _ready(gateway, memory_store, profile, **kwargs) -> FinanceOrchestrator:
    orchestrator = FinanceOrchestrator(gateway, memory_store, **kwargs)
    orchestrator.save_profile(profile)
    return orchestrator


# -- Startup -------------------------------------------------------------------


def test_empty_storage_starts_idle(memory_store):
    state = FinanceOrchestrator(ScriptedGateway(), memory_store).state
    assert state.analysis_status == "idle"
    assert state.chat_status == "chat_idle"
    assert state.profile is None
    assert state.report is None
    assert state.history == ()
    assert state.session_id.startswith("session_")


def test_startup_loads_saved_profile_and_history(memory_store, profile):
    first = _ready(ScriptedGateway(), memory_store, profile)
    first.history.record(SAMPLE_REPORT, profile)

    state = FinanceOrchestrator(ScriptedGateway(), memory_store).state
    assert state.profile == profile
    assert len(state.history) == 1
    assert state.report is None


def test_build_analysis_message(profile):
    request = json.loads(build_analysis_message(profile, "card alerts"))
    assert request == {
        "action": "analyze_finances",
        "financial_profile": profile.to_agent_payload(),
        "search_query": "card alerts",
    }


# -- Analysis ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_analyze_requires_complete_profile(memory_store):
    gateway = ScriptedGateway()
    orchestrator = FinanceOrchestrator(gateway, memory_store)
    orchestrator.save_profile(FinancialProfile(salary=0))

    assert await orchestrator.analyze() is None
    assert gateway.calls == []
    assert orchestrator.state.analysis_status == "idle"


@pytest.mark.asyncio
async def test_analyze_success(memory_store, profile):
    gateway = ScriptedGateway(envelope(result=structured_result()))
    orchestrator = _ready(gateway, memory_store, profile)

    report = await orchestrator.analyze()

    state = orchestrator.state
    assert state.analysis_status == "report_ready"
    assert state.report == report
    assert report.is_structured
    assert state.error is None
    assert state.busy_agents == frozenset()
    assert len(state.history) == 1
    assert state.history[0].report == report
    assert state.history[0].profile == profile

    message, agent_id, context = gateway.calls[0]
    assert agent_id == MANAGER_AGENT_ID
    assert context == {"session_id": state.session_id}
    assert json.loads(message)["search_query"] == ANALYSIS_SEARCH_QUERY


@pytest.mark.asyncio
async def test_gateway_exception_is_gateway_failure(memory_store, profile):
    orchestrator = _ready(ScriptedGateway(GatewayError("network down")), memory_store, profile)

    assert await orchestrator.analyze() is None
    state = orchestrator.state
    assert state.analysis_status == "analysis_error"
    assert state.error_kind == "gateway_failure"
    assert state.error == "network down"
    assert state.busy_agents == frozenset()
    assert state.history == ()


@pytest.mark.asyncio
async def test_failure_envelope_uses_default_message(memory_store, profile):
    orchestrator = _ready(ScriptedGateway(envelope(success=False)), memory_store, profile)

    await orchestrator.analyze()
    assert orchestrator.state.error_kind == "gateway_failure"
    assert orchestrator.state.error == ANALYSIS_FAILED


@pytest.mark.asyncio
async def test_unparseable_response(memory_store, profile):
    orchestrator = _ready(ScriptedGateway(envelope(result=None)), memory_store, profile)

    await orchestrator.analyze()
    state = orchestrator.state
    assert state.analysis_status == "analysis_error"
    assert state.error_kind == "unparseable_response"
    assert state.error == ANALYSIS_UNPARSEABLE


@pytest.mark.asyncio
async def test_retry_after_error_clears_error(memory_store, profile):
    gateway = ScriptedGateway(GatewayError("boom"), envelope(result=structured_result()))
    orchestrator = _ready(gateway, memory_store, profile)

    await orchestrator.analyze()
    await orchestrator.analyze()
    state = orchestrator.state
    assert state.analysis_status == "report_ready"
    assert state.error is None
    assert state.error_kind is None


@pytest.mark.asyncio
async def test_reanalysis_replaces_report(memory_store, profile):
    gateway = ScriptedGateway(
        envelope(result=structured_result(safe_to_spend=100, advice="old")),
        envelope(result={"credit_cards": []}),
    )
    orchestrator = _ready(gateway, memory_store, profile)

    await orchestrator.analyze()
    second = await orchestrator.analyze()

    report = orchestrator.state.report
    assert report == second
    assert report.advice == ""
    assert report.safe_to_spend == 0
    assert report.income_summary is None
    assert len(orchestrator.state.history) == 2


@pytest.mark.asyncio
async def test_analysis_in_flight_gates_new_requests(memory_store, profile):
    gateway = GatedGateway()
    orchestrator = _ready(gateway, memory_store, profile)

    task = asyncio.create_task(orchestrator.analyze())
    await settle()
    assert orchestrator.state.is_analyzing
    assert orchestrator.state.busy_agents == frozenset({MANAGER_AGENT_ID})
    assert await orchestrator.analyze() is None
    assert len(gateway.calls) == 1

    gateway.pending[0].set_result(envelope(result=structured_result()))
    await task
    assert orchestrator.state.analysis_status == "report_ready"
    assert orchestrator.state.busy_agents == frozenset()


@pytest.mark.asyncio
async def test_history_keeps_profile_from_request_time(memory_store, profile):
    gateway = GatedGateway()
    orchestrator = _ready(gateway, memory_store, profile)

    task = asyncio.create_task(orchestrator.analyze())
    await settle()
    orchestrator.save_profile(SAMPLE_PROFILE)
    gateway.pending[0].set_result(envelope(result=structured_result()))
    await task

    assert orchestrator.state.history[0].profile == profile
    assert orchestrator.state.profile == SAMPLE_PROFILE


# -- Chat ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_blank_chat_is_ignored(memory_store):
    gateway = ScriptedGateway()
    orchestrator = FinanceOrchestrator(gateway, memory_store)

    assert await orchestrator.send_chat("   ") is None
    assert gateway.calls == []
    assert orchestrator.state.chat_messages == ()


@pytest.mark.asyncio
async def test_chat_sends_raw_text_and_appends_reply(memory_store):
    gateway = ScriptedGateway(envelope(result="Try meal prepping."))
    orchestrator = FinanceOrchestrator(gateway, memory_store)

    reply = await orchestrator.send_chat(" How can I save? ")

    assert gateway.calls[0][0] == "How can I save?"
    messages = orchestrator.state.chat_messages
    assert [(m.role, m.content) for m in messages] == [
        ("user", "How can I save?"),
        ("agent", "Try meal prepping."),
    ]
    assert reply == messages[-1]
    assert orchestrator.state.chat_status == "chat_idle"
    assert orchestrator.state.report is None
    assert orchestrator.state.history == ()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply, expected",
    [
        (envelope(result=structured_result(advice="Save more.")), "Save more."),
        (envelope(result=structured_result(follow_up_response="Sure.", advice="Save more.")), "Sure."),
        (envelope(result=structured_result(advice=""), message="From gateway"), "From gateway"),
        (envelope(result=structured_result(advice="")), CHAT_NO_REPLY),
        (envelope(success=False), CHAT_NO_REPLY),
        (GatewayError("offline"), CHAT_FAILED),
    ],
)
async def test_chat_reply_fallbacks(memory_store, reply, expected):
    orchestrator = FinanceOrchestrator(ScriptedGateway(reply), memory_store)

    message = await orchestrator.send_chat("question")
    assert message.role == "agent"
    assert message.content == expected
    assert len(orchestrator.state.chat_messages) == 2
    assert orchestrator.state.busy_agents == frozenset()


@pytest.mark.asyncio
async def test_structured_chat_reply_replaces_report(memory_store, profile):
    gateway = ScriptedGateway(
        envelope(result=structured_result(safe_to_spend=1)),
        envelope(result=structured_result(safe_to_spend=2, follow_up_response="Updated.")),
    )
    orchestrator = _ready(gateway, memory_store, profile)
    await orchestrator.analyze()

    await orchestrator.send_chat("recompute please")
    assert orchestrator.state.report.safe_to_spend == 2
    assert len(orchestrator.state.history) == 1


@pytest.mark.asyncio
async def test_conversational_chat_reply_keeps_report(memory_store, profile):
    gateway = ScriptedGateway(envelope(result=structured_result()), envelope(result="Just a tip."))
    orchestrator = _ready(gateway, memory_store, profile)
    report = await orchestrator.analyze()

    await orchestrator.send_chat("tip?")
    assert orchestrator.state.report == report


@pytest.mark.asyncio
async def test_chat_reply_without_income_summary_keeps_report(memory_store, profile):
    gateway = ScriptedGateway(
        envelope(result=structured_result(safe_to_spend=800)),
        envelope(result={"follow_up_response": "Dining is your top category.", "credit_cards": []}),
    )
    orchestrator = _ready(gateway, memory_store, profile)
    report = await orchestrator.analyze()

    reply = await orchestrator.send_chat("where does my money go?")
    assert reply.content == "Dining is your top category."
    assert orchestrator.state.report == report
    assert orchestrator.state.report.income_summary is not None
    assert orchestrator.state.report.safe_to_spend == 800


@pytest.mark.asyncio
async def test_chat_can_be_kept_off_the_report(memory_store, profile):
    gateway = ScriptedGateway(
        envelope(result=structured_result(safe_to_spend=1)),
        envelope(result=structured_result(safe_to_spend=2)),
    )
    orchestrator = _ready(gateway, memory_store, profile, chat_replaces_report=False)
    await orchestrator.analyze()

    await orchestrator.send_chat("recompute please")
    assert orchestrator.state.report.safe_to_spend == 1


@pytest.mark.asyncio
async def test_chat_in_flight_drops_new_messages(memory_store):
    gateway = GatedGateway()
    orchestrator = FinanceOrchestrator(gateway, memory_store)

    task = asyncio.create_task(orchestrator.send_chat("first"))
    await settle()
    assert orchestrator.state.is_chatting
    assert await orchestrator.send_chat("second") is None

    gateway.pending[0].set_result(envelope(result="ok"))
    await task
    assert [m.content for m in orchestrator.state.chat_messages] == ["first", "ok"]


# -- Analysis and chat together -------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("chat_finishes_last", [True, False])
async def test_last_completion_owns_the_report(memory_store, profile, chat_finishes_last):
    gateway = GatedGateway()
    orchestrator = _ready(gateway, memory_store, profile)

    analysis = asyncio.create_task(orchestrator.analyze())
    chat = asyncio.create_task(orchestrator.send_chat("and now?"))
    await settle()
    assert orchestrator.state.is_analyzing and orchestrator.state.is_chatting
    assert orchestrator.state.busy_agents == frozenset({MANAGER_AGENT_ID})

    analysis_reply = envelope(result=structured_result(safe_to_spend=10))
    chat_reply = envelope(result=structured_result(safe_to_spend=20))
    order = [(0, analysis_reply, analysis), (1, chat_reply, chat)]
    if not chat_finishes_last:
        order.reverse()

    for index, reply, task in order:
        gateway.pending[index].set_result(reply)
        await task
        if index == order[0][0]:
            # The agent stays busy while the other call is outstanding.
            assert orchestrator.state.busy_agents == frozenset({MANAGER_AGENT_ID})

    assert orchestrator.state.report.safe_to_spend == (20 if chat_finishes_last else 10)
    assert orchestrator.state.busy_agents == frozenset()
    assert len(orchestrator.state.history) == 1


# -- Local transitions ---------------------------------------------------------


@pytest.mark.asyncio
async def test_select_history_restores_snapshot(memory_store, profile):
    gateway = ScriptedGateway(envelope(result=structured_result(safe_to_spend=5)))
    orchestrator = _ready(gateway, memory_store, profile)
    await orchestrator.analyze()
    entry = orchestrator.state.history[0]
    orchestrator.save_profile(SAMPLE_PROFILE)
    orchestrator.set_sample_mode(True)

    assert orchestrator.select_history(entry.id) == entry
    first = orchestrator.state
    orchestrator.select_history(entry.id)
    second = orchestrator.state

    assert first.report == entry.report and first.profile == profile
    assert (second.report, second.profile, second.history) == (first.report, first.profile, first.history)
    assert len(gateway.calls) == 1


def test_select_unknown_history_is_noop(memory_store):
    orchestrator = FinanceOrchestrator(ScriptedGateway(), memory_store)
    before = orchestrator.state
    assert orchestrator.select_history("nope") is None
    assert orchestrator.state == before


def test_save_profile_persists(memory_store, profile):
    orchestrator = FinanceOrchestrator(ScriptedGateway(), memory_store)
    assert orchestrator.save_profile(profile) is True
    assert FinanceOrchestrator(ScriptedGateway(), memory_store).state.profile == profile


def test_sample_mode_installs_sample_data(memory_store):
    orchestrator = FinanceOrchestrator(ScriptedGateway(), memory_store)

    orchestrator.set_sample_mode(True)
    state = orchestrator.state
    assert state.sample_mode
    assert state.report == SAMPLE_REPORT
    assert state.profile == SAMPLE_PROFILE

    orchestrator.set_sample_mode(False)
    state = orchestrator.state
    assert not state.sample_mode
    assert state.report is None
    assert state.profile == SAMPLE_PROFILE


def test_sample_mode_keeps_existing_profile(memory_store, profile):
    orchestrator = _ready(ScriptedGateway(), memory_store, profile)
    orchestrator.set_sample_mode(True)
    assert orchestrator.state.profile == profile
