"""AgentFactory: parse agent .md definitions and build their chat models.

Each definition is a markdown file whose YAML frontmatter carries the
agent's gateway id, display name and model settings; the markdown body is
the system prompt.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml

from config import AGENTS_DIR, DEFAULT_MAX_TOKENS, DEFAULT_MODEL, DEFAULT_TEMPERATURE, DEFAULT_TOP_P
from core.llm import get_llm


# ------------------------------------------------------------------
# Agent definition dataclass + parser
# ------------------------------------------------------------------


@dataclass
class AgentSkill:
    """Parsed agent definition from a markdown file."""

    id: str
    name: str
    description: str
    system_prompt: str
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    top_p: float = DEFAULT_TOP_P
    max_tokens: int = DEFAULT_MAX_TOKENS
    metadata: dict[str, Any] = field(default_factory=dict)
    source_file: str = ""


def _split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Return parsed YAML frontmatter and markdown body."""
    if not text.startswith("---"):
        return {}, text.strip()

    parts = text.split("---", 2)
    if len(parts) < 3:
        return {}, text.strip()

    raw = parts[1].strip()
    body = parts[2].strip()
    frontmatter = yaml.safe_load(raw) if raw else {}
    if not isinstance(frontmatter, dict):
        frontmatter = {}
    return frontmatter, body


def load_agent(filepath: str | Path) -> AgentSkill:
    """Load a single agent definition from disk."""
    path = Path(filepath)
    fm, body = _split_frontmatter(path.read_text(encoding="utf-8"))

    return AgentSkill(
        id=str(fm.get("id") or path.stem),
        name=fm.get("name", path.stem),
        description=fm.get("description", ""),
        system_prompt=body,
        model=fm.get("model", DEFAULT_MODEL),
        temperature=fm.get("temperature", DEFAULT_TEMPERATURE),
        top_p=fm.get("top_p", DEFAULT_TOP_P),
        max_tokens=fm.get("max_tokens", DEFAULT_MAX_TOKENS),
        metadata=fm.get("metadata") or {},
        source_file=str(path),
    )


def load_all_agents(agents_dir: str | Path = AGENTS_DIR) -> dict[str, AgentSkill]:
    """Load every definition in ``agents_dir``, keyed by gateway id."""
    root = Path(agents_dir)
    return {skill.id: skill for path in sorted(root.glob("*.md")) for skill in [load_agent(path)]}


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------


class AgentFactory:
    """Resolves agent ids to definitions and creates their LLMs."""

    def __init__(
        self,
        definitions_dir: str | Path = AGENTS_DIR,
        llm_factory: Callable[..., Any] | None = None,
    ):
        self.definitions_dir = Path(definitions_dir)
        self.llm_factory = llm_factory or get_llm
        self._agents: dict[str, AgentSkill] | None = None

    @property
    def agents(self) -> dict[str, AgentSkill]:
        if self._agents is None:
            self._agents = load_all_agents(self.definitions_dir)
        return self._agents

    def get(self, agent_id: str) -> AgentSkill | None:
        return self.agents.get(agent_id)

    def create_llm(self, agent_id: str) -> Any:
        cfg = self.agents[agent_id]
        return self.llm_factory(
            model=cfg.model,
            temperature=cfg.temperature,
            top_p=cfg.top_p,
            max_tokens=cfg.max_tokens,
        )
