"""Chainlit UI components: dashboard report, history list, agent status, settings.

Everything here reads a ``DashboardState`` snapshot; none of it mutates the
orchestrator.
"""

from __future__ import annotations

from collections.abc import Mapping

import chainlit as cl
from chainlit.input_widget import NumberInput, TextInput

from agents.schemas import FinancialProfile
from agents.state import DashboardState
from ui.formatting import (
    CHAT_SUGGESTIONS,
    agent_status_lines,
    history_card,
    report_markdown,
    settings_from_profile,
)


# ------------------------------------------------------------------
# Actions
# ------------------------------------------------------------------


def dashboard_actions(state: DashboardState) -> list[cl.Action]:
    actions = [
        cl.Action(name="analyze", payload={}, label="Analyze finances"),
        cl.Action(name="show_history", payload={}, label=f"History ({len(state.history)})"),
        cl.Action(
            name="toggle_sample",
            payload={"enabled": not state.sample_mode},
            label="Hide sample data" if state.sample_mode else "Show sample data",
        ),
    ]
    return actions


# ------------------------------------------------------------------
# Settings panel (profile form)
# ------------------------------------------------------------------


async def send_profile_settings(profile: FinancialProfile | None) -> None:
    values = settings_from_profile(profile)
    await cl.ChatSettings([
        NumberInput(id="salary", label="Monthly salary", initial=values["salary"]),
        TextInput(
            id="cards", label="Credit cards", initial=values["cards"], multiline=True,
            description="One card per line, e.g. 'Chase Sapphire: 15000' (name: limit).",
        ),
        TextInput(
            id="emis", label="EMIs", initial=values["emis"], multiline=True,
            description="One loan per line, e.g. 'Car Loan: 450' (name: monthly amount).",
        ),
        NumberInput(id="rent", label="Rent", initial=values["rent"]),
        NumberInput(id="utilities", label="Utilities", initial=values["utilities"]),
        NumberInput(id="insurance", label="Insurance", initial=values["insurance"]),
    ]).send()


# ------------------------------------------------------------------
# Messages
# ------------------------------------------------------------------


async def send_dashboard(state: DashboardState) -> cl.Message:
    """Render the active report (or the reason there is none)."""
    if state.report is not None:
        content = report_markdown(state.report)
        if state.sample_mode:
            content = "_Sample data_\n\n" + content
    elif state.error:
        content = f"**Analysis failed:** {state.error}"
    elif not state.has_profile:
        content = "Set up your profile in the settings panel to get started."
    else:
        content = "No analysis yet. Press **Analyze finances** to run one."
    msg = cl.Message(content=content, actions=dashboard_actions(state), author="Dashboard")
    await msg.send()
    return msg


async def send_history(state: DashboardState) -> None:
    if not state.history:
        await cl.Message(content="No past analyses yet.", author="Dashboard").send()
        return

    lines: list[str] = []
    actions: list[cl.Action] = []
    for entry in state.history:
        card = history_card(entry)
        lines.append(
            f"- **{card['title']}** ({card['date']}): outflow {card['total_outflow']:,.2f}, "
            f"savings {card['savings_rate']:.1f}%"
            + (f", top: {card['top_category']}" if card["top_category"] else "")
        )
        actions.append(
            cl.Action(name="view_history", payload={"entry_id": card["id"]}, label=card["date"])
        )
    await cl.Message(content="\n".join(lines), actions=actions, author="Dashboard").send()


async def send_agent_status(agents: Mapping[str, str], state: DashboardState) -> None:
    await cl.Message(
        content="\n".join(agent_status_lines(agents, state.busy_agents)), author="System"
    ).send()


def chat_starters() -> list[cl.Starter]:
    return [cl.Starter(label=q, message=q) for q in CHAT_SUGGESTIONS]
