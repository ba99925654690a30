"""Gemini chat model for the finance agents."""

from __future__ import annotations

import logging

from langchain_google_genai import ChatGoogleGenerativeAI

from config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_P,
    GOOGLE_API_KEY,
    LLM_MAX_RETRIES,
    LLM_TIMEOUT,
)

logger = logging.getLogger("financedashboard.llm")


def get_llm(
    model: str = DEFAULT_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
    top_p: float = DEFAULT_TOP_P,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    *,
    timeout: float = LLM_TIMEOUT,
    max_retries: int = LLM_MAX_RETRIES,
) -> ChatGoogleGenerativeAI:
    """Build the model behind one agent definition.

    Retries and the per-call timeout are bounded so a stalled agent surfaces
    as a gateway failure instead of hanging the dashboard.
    """
    if not GOOGLE_API_KEY:
        logger.warning("GOOGLE_API_KEY is not set; agent calls will fail")
    logger.debug("Creating %s (timeout=%ss, retries=%d)", model, timeout, max_retries)
    return ChatGoogleGenerativeAI(
        model=model,
        google_api_key=GOOGLE_API_KEY,
        temperature=temperature,
        top_p=top_p,
        max_output_tokens=max_tokens,
        timeout=timeout,
        max_retries=max_retries,
    )
