"""Chainlit application entry point.

Run with: chainlit run app.py
"""
from __future__ import annotations

import asyncio
import logging

import chainlit as cl

from config import LOG_DATE_FORMAT, LOG_FORMAT, LOG_LEVEL, STORE_DIR
from core.agent_factory import AgentFactory
from core.data_store import DataStore
from core.gateway import GraphAgentGateway
from core.orchestrator import FinanceOrchestrator
from ui.components import (
    chat_starters,
    send_agent_status,
    send_dashboard,
    send_history,
    send_profile_settings,
)
from ui.formatting import profile_from_settings

# -- Logging setup ---
log = logging.getLogger("financedashboard.app")
logging.basicConfig(
    format=LOG_FORMAT,
    datefmt=LOG_DATE_FORMAT,
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
)

# One gateway for the process; its checkpointer keeps each session's thread apart.
agent_factory = AgentFactory()
gateway = GraphAgentGateway(agent_factory)
data_store = DataStore(STORE_DIR)


def _orchestrator() -> FinanceOrchestrator:
    orchestrator: FinanceOrchestrator | None = cl.user_session.get("orchestrator")
    if orchestrator is None:
        orchestrator = FinanceOrchestrator(gateway, data_store)
        cl.user_session.set("orchestrator", orchestrator)
    return orchestrator


def _agent_names() -> dict[str, str]:
    return {agent_id: skill.name for agent_id, skill in agent_factory.agents.items()}


# ------------------------------------------------------------------
# Lifecycle
# ------------------------------------------------------------------


@cl.on_chat_start
async def on_chat_start():
    orchestrator = FinanceOrchestrator(gateway, data_store)
    cl.user_session.set("orchestrator", orchestrator)
    state = orchestrator.state
    log.info("Chat start session=%s", state.session_id)
    await send_profile_settings(state.profile)
    await send_dashboard(state)


@cl.set_starters
async def set_starters():
    return chat_starters()


@cl.on_settings_update
async def on_settings_update(settings: dict):
    orchestrator = _orchestrator()
    profile = profile_from_settings(settings)
    if profile is None or not profile.is_complete:
        await cl.Message(
            content="Please enter a monthly salary greater than zero.", author="System"
        ).send()
        return
    stored = orchestrator.save_profile(profile)
    note = "" if stored else " (kept for this session only)"
    await cl.Message(content=f"Profile saved{note}.", author="System").send()
    await send_dashboard(orchestrator.state)


@cl.on_message
async def on_message(message: cl.Message):
    orchestrator = _orchestrator()
    if orchestrator.state.is_chatting:
        await cl.Message(content="Still working on your last question...", author="System").send()
        return
    previous_report = orchestrator.state.report
    reply = await orchestrator.send_chat(message.content or "")
    if reply is None:
        return
    await cl.Message(content=reply.content).send()
    if orchestrator.state.report is not previous_report:
        await send_dashboard(orchestrator.state)


# ------------------------------------------------------------------
# Actions
# ------------------------------------------------------------------


@cl.action_callback("analyze")
async def on_analyze(action: cl.Action):
    orchestrator = _orchestrator()
    state = orchestrator.state
    if not state.has_profile:
        await cl.Message(content="Set up your profile first.", author="System").send()
        return
    if state.is_analyzing:
        return

    async with cl.Step(name="Finance Coordinator", type="run") as step:
        step.input = "Analyzing your transactions and spending patterns..."
        task = asyncio.create_task(orchestrator.analyze())
        await asyncio.sleep(0)  # let the request start so the busy flag is set
        await send_agent_status(_agent_names(), orchestrator.state)
        await task
        step.output = orchestrator.state.analysis_status
    await send_dashboard(orchestrator.state)


@cl.action_callback("show_history")
async def on_show_history(action: cl.Action):
    await send_history(_orchestrator().state)


@cl.action_callback("view_history")
async def on_view_history(action: cl.Action):
    orchestrator = _orchestrator()
    entry = orchestrator.select_history(str(action.payload.get("entry_id", "")))
    if entry is None:
        await cl.Message(content="That analysis is no longer available.", author="System").send()
        return
    await send_profile_settings(entry.profile)
    await send_dashboard(orchestrator.state)


@cl.action_callback("toggle_sample")
async def on_toggle_sample(action: cl.Action):
    orchestrator = _orchestrator()
    orchestrator.set_sample_mode(bool(action.payload.get("enabled")))
    state = orchestrator.state
    await send_profile_settings(state.profile)
    await send_dashboard(state)


@cl.on_chat_end
async def on_chat_end():
    orchestrator: FinanceOrchestrator | None = cl.user_session.get("orchestrator")
    if orchestrator is not None:
        log.info("Chat end session=%s, releasing agent memory", orchestrator.session.session_id)
        gateway.end_session(orchestrator.session.session_id)
