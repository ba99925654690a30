"""DataStore: file-backed key/value storage for the profile and history.

Each key is one JSON document under ``base_dir``. The store is a best-effort
cache: callers catch ``PersistenceError`` and keep working from memory.
"""

from __future__ import annotations

import json
import re
import shutil
from pathlib import Path
from typing import Any

from config import STORE_DIR


class PersistenceError(Exception):
    """Storage read/write failed or the stored document is unreadable."""


def _safe_key(key: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]", "_", str(key).strip())[:80] or "_"


class DataStore:
    """Key/value documents stored as ``<base_dir>/<key>.json``."""

    def __init__(self, base_dir: str | Path = STORE_DIR):
        self.base_dir = Path(base_dir)

    def _path(self, key: str) -> Path:
        return self.base_dir / f"{_safe_key(key)}.json"

    def read(self, key: str) -> str | None:
        """Return the raw document for ``key``, or None if it was never written."""
        path = self._path(key)
        try:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Cannot read '{key}': {exc}") from exc

    def write(self, key: str, content: str) -> None:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            self._path(key).write_text(content, encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Cannot write '{key}': {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Cannot delete '{key}': {exc}") from exc

    def read_json(self, key: str) -> Any:
        """Decode the document for ``key``; None when absent."""
        raw = self.read(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, ValueError) as exc:
            raise PersistenceError(f"Corrupt document '{key}': {exc}") from exc

    def write_json(self, key: str, value: Any) -> None:
        self.write(key, json.dumps(value, indent=2, default=str))

    def list_keys(self) -> list[str]:
        if not self.base_dir.exists():
            return []
        return sorted(p.stem for p in self.base_dir.glob("*.json"))

    def cleanup(self) -> None:
        """Remove every stored document."""
        if self.base_dir.exists():
            shutil.rmtree(self.base_dir)


class MemoryDataStore(DataStore):
    """Process-local store for tests and for sessions without a writable disk."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._docs: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self._docs.get(key)

    def write(self, key: str, content: str) -> None:
        self._docs[key] = content

    def delete(self, key: str) -> None:
        self._docs.pop(key, None)

    def list_keys(self) -> list[str]:
        return sorted(self._docs)

    def cleanup(self) -> None:
        self._docs.clear()
