from pathlib import Path
from typing import Optional, Union

from tradelab.config.settings import settings
from tradelab.infrastructure.kv_store import KeyValueStore
from .base import StorageBackend, TradeStorage
from .json_file import JsonFileTradeStorage
from .key_value import KeyValueTradeStorage
from .spreadsheet import SpreadsheetTradeStorage

def create_storage(
    kind: Union[str, StorageBackend],
    store: KeyValueStore,
    file_path: Optional[Union[str, Path]] = None,
) -> TradeStorage:
    """依偏好設定建立對應的儲存後端。"""
    backend = kind if isinstance(kind, StorageBackend) else StorageBackend.parse(kind)

    if backend is StorageBackend.LOCAL:
        return KeyValueTradeStorage(store)
    if backend is StorageBackend.FILE:
        return JsonFileTradeStorage(file_path or settings.data_path(settings.TRADES_FILE))
    return SpreadsheetTradeStorage(file_path or settings.data_path(settings.SPREADSHEET_FILE))
