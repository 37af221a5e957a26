"""Pytest configuration and fixtures for the filter engine tests."""

import pytest
import pandas as pd

from portfolio_filters.exceptions import PersistenceError
from portfolio_filters.presets import PresetManager
from portfolio_filters.quick_filters import QuickFilterToggle
from portfolio_filters.storage import KeyValueStore, MemoryKeyValueStore
from portfolio_filters.store import FilterStore


class FailingKeyValueStore(KeyValueStore):
    """Backend whose reads succeed and writes always fail."""

    def __init__(self, initial=None):
        self._data = dict(initial or {})
        self.write_attempts = 0

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self.write_attempts += 1
        raise PersistenceError("disk full", key=key)

    def delete(self, key):
        raise PersistenceError("disk full", key=key)


@pytest.fixture
def store():
    """Fresh filter store at defaults."""
    return FilterStore()


@pytest.fixture
def memory_storage():
    """Empty in-memory key-value store."""
    return MemoryKeyValueStore()


@pytest.fixture
def failing_storage():
    """Key-value store that rejects every write."""
    return FailingKeyValueStore()


@pytest.fixture
def toggle(store):
    """Quick filter engine over the default catalog."""
    return QuickFilterToggle(store)


@pytest.fixture
def preset_manager(store, memory_storage):
    """Preset manager backed by in-memory storage."""
    return PresetManager(store, memory_storage)


@pytest.fixture
def sample_positions():
    """Sample positions DataFrame."""
    return pd.DataFrame({
        "symbol": ["SOL", "mSOL", "USDC", "RAY-USDC", "JUP", "ETH"],
        "name": ["Solana", "Marinade SOL", "USD Coin", "Raydium LP", "Jupiter", "Ether"],
        "token_type": ["native", "spl", "stable", "lp", "spl", "wrapped"],
        "protocol": [None, "marinade", "kamino", "raydium", "jupiter", None],
        "chain": ["solana", "solana", "solana", "solana", "solana", "ethereum"],
        "position_type": [None, "staking", "lending", "liquidity", None, None],
        "value": [2500.0, 1200.0, 5.0, 800.0, 0.0, 15000.0],
        "amount": [12.5, 5.0, 5.0, 40.0, 0.0, 4.2],
        "apy": [0.0, 7.2, 11.5, 24.0, 0.0, 0.0],
        "change24h": [3.1, 2.9, 0.0, -4.5, -1.2, 1.0],
        "allocation": [12.5, 6.0, 0.1, 4.0, 0.0, 77.4],
        "is_staked": [False, True, False, False, False, False],
        "is_active": [True, True, True, True, False, True],
    })
