"""Profile persistence. The stored copy is a cache; memory is authoritative."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from agents.schemas import FinancialProfile
from config import PROFILE_STORE_KEY
from core.data_store import DataStore, PersistenceError

logger = logging.getLogger("financedashboard.profile")


class ProfileStore:
    """Loads and saves the single user profile."""

    def __init__(self, data_store: DataStore | None, key: str = PROFILE_STORE_KEY):
        self.data_store = data_store
        self.key = key

    def load(self) -> FinancialProfile | None:
        """Return the saved profile if it is usable, else None.

        Absent, corrupt or incomplete (salary of zero) documents all read as
        "no profile yet".
        """
        if self.data_store is None:
            return None
        try:
            raw = self.data_store.read_json(self.key)
        except PersistenceError as exc:
            logger.warning("Ignoring stored profile: %s", exc)
            return None
        if not isinstance(raw, dict):
            return None
        try:
            profile = FinancialProfile.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Stored profile failed validation: %s", exc.error_count())
            return None
        return profile if profile.is_complete else None

    def save(self, profile: FinancialProfile) -> bool:
        """Persist ``profile``; returns False if the write did not stick."""
        if self.data_store is None:
            return False
        try:
            self.data_store.write_json(self.key, profile.model_dump(mode="json"))
        except PersistenceError as exc:
            logger.warning("Profile kept in memory only: %s", exc)
            return False
        return True
