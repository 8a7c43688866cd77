import asyncio
from datetime import datetime

import pytest

from tradelab.core.exceptions import StorageUnavailableError
from tradelab.core.models import Trade
from tradelab.infrastructure.storage.base import StorageBackend


def make_trade(pnl=None, entry=100.0, exit=None, qty=1.0, direction="long",
               date=datetime(2024, 1, 2, 10, 0), symbol="AAPL", market="stock", **kwargs) -> Trade:
    """Builds a trade; pnl is a shortcut for a 1-lot long trade entered at 100."""
    if pnl is not None:
        exit = entry + pnl
    elif exit is None:
        exit = entry
    return Trade(
        symbol=symbol,
        market=market,
        entry_price=entry,
        exit_price=exit,
        quantity=qty,
        date=date,
        direction=direction,
        **kwargs,
    )


class MemoryStorage:
    """In-memory backend with optional per-call delays and failure switches."""

    kind = StorageBackend.LOCAL

    def __init__(self, trades=None, save_delays=None, fail_load=False, fail_save=False):
        self.trades = list(trades or [])
        self.save_delays = list(save_delays or [])
        self.fail_load = fail_load
        self.fail_save = fail_save
        self.saved = []
        self.load_calls = 0

    async def load_all(self):
        self.load_calls += 1
        await asyncio.sleep(0)
        if self.fail_load:
            raise StorageUnavailableError("storage blocked")
        return list(self.trades)

    async def save_all(self, trades):
        delay = self.save_delays.pop(0) if self.save_delays else 0
        await asyncio.sleep(delay)
        if self.fail_save:
            raise StorageUnavailableError("quota exceeded")
        self.trades = list(trades)
        self.saved.append(list(trades))


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture(name="make_trade")
def make_trade_fixture():
    return make_trade


@pytest.fixture
def make_storage():
    return MemoryStorage
