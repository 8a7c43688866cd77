import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import List, Sequence, Union

from tradelab.config.logging import logger
from tradelab.core.exceptions import AppError, StorageUnavailableError
from tradelab.core.models import Trade
from .base import StorageBackend
from .mapper import TradeMapper

class JsonFileTradeStorage:
    """
    交易清單存成本機 JSON 檔 (縮排格式，方便人工檢視)。
    檔案不存在時視為空清單。
    """

    kind = StorageBackend.FILE

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def _read(self) -> List[Trade]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                records = json.load(f)
            return [TradeMapper.from_dict(r) for r in records]
        except FileNotFoundError:
            return []
        except (OSError, ValueError, TypeError, AppError) as e:
            logger.error(f"Failed to load trades from {self.path}: {e}")
            raise StorageUnavailableError(f"Trade file read error: {e}") from e

    def _write(self, trades: Sequence[Trade]):
        data = [TradeMapper.to_dict(t) for t in trades]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # 先寫暫存檔再取代，避免寫到一半留下殘缺的檔案
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".trades-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Failed to save trades to {self.path}: {e}")
            raise StorageUnavailableError(f"Trade file write error: {e}") from e

    async def load_all(self) -> List[Trade]:
        return await asyncio.to_thread(self._read)

    async def save_all(self, trades: Sequence[Trade]) -> None:
        await asyncio.to_thread(self._write, list(trades))
