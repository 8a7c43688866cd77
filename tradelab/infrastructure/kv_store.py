import json
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Union

from tradelab.config.logging import logger
from tradelab.core.exceptions import StorageUnavailableError

class KeyValueStore:
    """
    本機 key-value 儲存 (等同瀏覽器的 localStorage)。
    所有值都是字串，整份資料存成一個 JSON 檔；path 為 None 時只存在記憶體。
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path).expanduser() if path else None
        self._data: Optional[Dict[str, str]] = None if self.path else {}

    def _load(self) -> Dict[str, str]:
        if self._data is not None:
            return self._data
        try:
            if self.path.exists():
                with self.path.open("r", encoding="utf-8") as f:
                    raw = json.load(f)
                if not isinstance(raw, dict):
                    raise ValueError("store root must be a JSON object")
                self._data = {str(k): str(v) for k, v in raw.items()}
            else:
                self._data = {}
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read key-value store {self.path}: {e}")
            raise StorageUnavailableError(f"Key-value store read error: {e}") from e
        return self._data

    def _flush(self, data: Dict[str, str]):
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".kv-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Failed to write key-value store {self.path}: {e}")
            raise StorageUnavailableError(f"Key-value store write error: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str):
        data = dict(self._load())
        data[key] = str(value)
        self._flush(data)
        self._data = data

    def remove_item(self, key: str):
        data = dict(self._load())
        if data.pop(key, None) is not None:
            self._flush(data)
            self._data = data

    def keys(self) -> List[str]:
        return list(self._load().keys())
