"""Shared fixtures."""

from __future__ import annotations

import os

import pytest

# Keep config from picking up a real key.
os.environ.setdefault("GOOGLE_API_KEY", "test-google-key-for-pytest")

from agents.schemas import CreditCardProfile, EMIProfile, FinancialProfile, FixedExpenses  # noqa: E402
from core.data_store import DataStore, MemoryDataStore  # noqa: E402


@pytest.fixture
def memory_store() -> MemoryDataStore:
    return MemoryDataStore()


@pytest.fixture
def file_store(tmp_path) -> DataStore:
    return DataStore(tmp_path / "store")


@pytest.fixture
def profile() -> FinancialProfile:
    return FinancialProfile(
        salary=5000,
        cards=[CreditCardProfile(name="Visa", limit=5000)],
        emis=[EMIProfile(name="Car Loan", amount=300)],
        fixed_expenses=FixedExpenses(rent=1200, utilities=150, insurance=150),
    )
