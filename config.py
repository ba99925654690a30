"""Application configuration loaded from environment variables.

All project-wide constants and tunables live here.
Set ``CHAT_REPLACES_REPORT=false`` to keep chat replies from overwriting the
dashboard report when the agent answers a follow-up with a full analysis.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# -- Paths ------------------------------------------------------------------
ROOT_DIR = Path(__file__).resolve().parent
AGENTS_DIR = ROOT_DIR / "agents" / "definitions"

DATA_DIR = ROOT_DIR / os.getenv("DATA_DIR", "data")
DATA_CACHE_DIR = DATA_DIR / ".cache"
# Profile and history documents (one JSON file per key).
STORE_DIR = Path(os.getenv("STORE_DIR", str(DATA_CACHE_DIR / "store")))

# -- Google AI Studio / Gemini -------------------------------------------------
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")

# -- Model defaults -----------------------------------------------------------
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "gemini-2.5-flash")
DEFAULT_TEMPERATURE = float(os.getenv("DEFAULT_TEMPERATURE", "0.1"))
DEFAULT_TOP_P = float(os.getenv("DEFAULT_TOP_P", "0.95"))
DEFAULT_MAX_TOKENS = int(os.getenv("DEFAULT_MAX_TOKENS", "8192"))

# The coordinator fans out to other agents, so one call can take a while.
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "120"))
LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "2"))

# -- Agents -------------------------------------------------------------------
# The coordinator receives every analysis and chat request and delegates to
# the transaction and analyst agents on its own.
MANAGER_AGENT_ID = os.getenv("MANAGER_AGENT_ID", "6992c20848cf09a10ff22202")

# Fixed mailbox query sent with every analysis request.
ANALYSIS_SEARCH_QUERY = os.getenv(
    "ANALYSIS_SEARCH_QUERY", "credit card transaction alert statement"
)

# -- Persistent store ---------------------------------------------------------
PROFILE_STORE_KEY = "finance_profile"
HISTORY_STORE_KEY = "finance_history"
HISTORY_LIMIT = 20  # Oldest analyses are evicted beyond this

# -- Behaviour ----------------------------------------------------------------
CHAT_REPLACES_REPORT = os.getenv("CHAT_REPLACES_REPORT", "true").lower() in ("1", "true", "yes")

# -- Logging ------------------------------------------------------------------
# Log level for console logging ("debug" | "info" | "warning" | "error")
LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()
LOG_FORMAT = os.getenv("LOG_FORMAT", " [%(levelname)s]---------[ %(name)s ]----------- %(message)s")
LOG_DATE_FORMAT = os.getenv("LOG_DATE_FORMAT", "%H:%M:%S")
