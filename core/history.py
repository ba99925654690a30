"""Bounded, newest-first log of past analyses."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from pydantic import ValidationError

from agents.schemas import FinancialProfile, FinancialReport, HistoryEntry
from config import HISTORY_LIMIT, HISTORY_STORE_KEY
from core.data_store import DataStore, PersistenceError

logger = logging.getLogger("financedashboard.history")

DATE_FORMAT = "%B %d, %Y at %I:%M %p"


class HistoryStore:
    """Keeps at most ``limit`` entries, newest first.

    Entries live in memory for the session; each append is mirrored to the
    data store when possible. A failed write never loses the in-memory entry.
    """

    def __init__(
        self,
        data_store: DataStore | None,
        limit: int = HISTORY_LIMIT,
        key: str = HISTORY_STORE_KEY,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.data_store = data_store
        self.limit = limit
        self.key = key
        self.clock = clock
        self._entries: list[HistoryEntry] = []

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def load(self) -> list[HistoryEntry]:
        """Read persisted history into memory. Never raises."""
        self._entries = self._read()
        logger.info("Loaded %d history entries", len(self._entries))
        return list(self._entries)

    def _read(self) -> list[HistoryEntry]:
        if self.data_store is None:
            return []
        try:
            raw = self.data_store.read_json(self.key)
        except PersistenceError as exc:
            logger.warning("Ignoring stored history: %s", exc)
            return []
        if not isinstance(raw, list):
            return []

        entries: list[HistoryEntry] = []
        seen: set[str] = set()
        for item in raw:
            try:
                entry = HistoryEntry.model_validate(item)
            except ValidationError:
                logger.debug("Skipping malformed history entry")
                continue
            if entry.id in seen:
                continue
            seen.add(entry.id)
            entries.append(entry)
        return entries[: self.limit]

    def _next_id(self, now: datetime) -> str:
        stamp = int(now.timestamp() * 1000)
        if self._entries:
            try:
                stamp = max(stamp, int(self._entries[0].id) + 1)
            except ValueError:
                pass
        return str(stamp)

    def record(self, report: FinancialReport, profile: FinancialProfile) -> HistoryEntry:
        """Prepend a snapshot, evict beyond the limit, and persist (best effort)."""
        now = self.clock()
        entry = HistoryEntry(
            id=self._next_id(now),
            date=now.strftime(DATE_FORMAT),
            report=report,
            profile=profile,
        )
        self._entries = [entry, *self._entries][: self.limit]
        self._persist()
        return entry

    def get(self, entry_id: str) -> HistoryEntry | None:
        return next((e for e in self._entries if e.id == entry_id), None)

    def _persist(self) -> None:
        if self.data_store is None:
            return
        try:
            self.data_store.write_json(
                self.key, [e.model_dump(mode="json") for e in self._entries]
            )
        except PersistenceError as exc:
            logger.warning("History kept in memory only: %s", exc)
