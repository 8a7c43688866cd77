import asyncio
import json
from typing import List, Sequence

from tradelab.config.logging import logger
from tradelab.core.exceptions import AppError, StorageUnavailableError
from tradelab.core.models import Trade
from tradelab.infrastructure.kv_store import KeyValueStore
from .base import StorageBackend
from .mapper import TradeMapper

TRADES_KEY = "trades"

class KeyValueTradeStorage:
    """把整個交易清單以 JSON 字串存放在 key-value store 的 'trades' 鍵。"""

    kind = StorageBackend.LOCAL

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _read(self) -> List[Trade]:
        raw = self.store.get_item(TRADES_KEY)
        if not raw:
            return []
        try:
            records = json.loads(raw)
            return [TradeMapper.from_dict(r) for r in records]
        except (ValueError, TypeError, AppError) as e:
            logger.error(f"Stored trades under '{TRADES_KEY}' are unreadable: {e}")
            raise StorageUnavailableError(f"Corrupt trade data in key-value store: {e}") from e

    def _write(self, trades: Sequence[Trade]):
        payload = json.dumps([TradeMapper.to_dict(t) for t in trades], ensure_ascii=False)
        self.store.set_item(TRADES_KEY, payload)

    async def load_all(self) -> List[Trade]:
        return await asyncio.to_thread(self._read)

    async def save_all(self, trades: Sequence[Trade]) -> None:
        await asyncio.to_thread(self._write, list(trades))
