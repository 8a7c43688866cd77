import asyncio
import os
import tempfile
from pathlib import Path
from typing import List, Sequence, Union

import pandas as pd

from tradelab.config.logging import logger
from tradelab.core.exceptions import AppError, StorageUnavailableError
from tradelab.core.models import Trade
from .base import StorageBackend
from .mapper import EXPORT_FIELDS, TradeMapper

TEXT_COLUMNS = {"id": str, "symbol": str, "market": str, "date": str, "notes": str, "direction": str}

class SpreadsheetTradeStorage:
    """
    交易清單存成 CSV 試算表 (每筆交易一列，欄位名稱與匯出格式相同)。
    """

    kind = StorageBackend.SPREADSHEET

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def _read(self) -> List[Trade]:
        if not self.path.exists():
            return []
        try:
            df = pd.read_csv(self.path, dtype=TEXT_COLUMNS, keep_default_na=False)
        except pd.errors.EmptyDataError:
            return []
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read spreadsheet {self.path}: {e}")
            raise StorageUnavailableError(f"Spreadsheet read error: {e}") from e

        try:
            return [TradeMapper.from_dict(row) for row in df.to_dict(orient="records")]
        except AppError as e:
            logger.error(f"Spreadsheet {self.path} contains an invalid trade row: {e}")
            raise StorageUnavailableError(f"Spreadsheet contains invalid rows: {e}") from e

    def _write(self, trades: Sequence[Trade]):
        df = pd.DataFrame([TradeMapper.to_dict(t) for t in trades], columns=EXPORT_FIELDS)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".trades-", suffix=".csv")
            os.close(fd)
            try:
                df.to_csv(tmp_name, index=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Failed to write spreadsheet {self.path}: {e}")
            raise StorageUnavailableError(f"Spreadsheet write error: {e}") from e

    async def load_all(self) -> List[Trade]:
        return await asyncio.to_thread(self._read)

    async def save_all(self, trades: Sequence[Trade]) -> None:
        await asyncio.to_thread(self._write, list(trades))
