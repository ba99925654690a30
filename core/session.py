"""Session identity forwarded with every agent call."""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_SUFFIX_LENGTH = 7


@dataclass(frozen=True)
class SessionContext:
    """Opaque per-client identifier. The agent uses it to correlate turns."""

    session_id: str

    def as_context(self) -> dict[str, str]:
        return {"session_id": self.session_id}


def create_session_id() -> str:
    """``session_<epoch-ms>_<random base36>``; the suffix keeps concurrent tabs apart."""
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"session_{int(time.time() * 1000)}_{suffix}"


def create_session() -> SessionContext:
    return SessionContext(session_id=create_session_id())
