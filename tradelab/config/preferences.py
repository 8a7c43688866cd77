from datetime import datetime, timedelta
from typing import Dict, Optional

from tradelab.config.logging import logger
from tradelab.config.settings import settings
from tradelab.core.exceptions import ConfigurationError
from tradelab.infrastructure.kv_store import KeyValueStore
from tradelab.infrastructure.storage.base import StorageBackend

STORAGE_PREFERENCE = "storagePreference"
STORAGE_FILE_PATH = "storageFilePath"
THEME = "theme"
DEFAULT_VIEW = "defaultView"
DATE_FORMAT = "dateFormat"
AUTO_BACKUP = "autoBackup"
BACKUP_INTERVAL = "backupInterval"
LAST_BACKUP = "lastBackup"

DEFAULTS: Dict[str, str] = {
    THEME: "light",
    DEFAULT_VIEW: "list",
    DATE_FORMAT: "MM/DD/YYYY",
    AUTO_BACKUP: "false",
    BACKUP_INTERVAL: "daily",
}

THEMES = ("light", "dark")
VIEWS = ("list", "grid")
# 介面上的日期格式 -> strftime 格式
DATE_FORMATS = {
    "MM/DD/YYYY": "%m/%d/%Y",
    "DD/MM/YYYY": "%d/%m/%Y",
    "YYYY-MM-DD": "%Y-%m-%d",
}
BACKUP_INTERVALS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
    "monthly": timedelta(days=30),
}

class PreferenceStore:
    """
    使用者偏好設定 (存放在本機 key-value store)。
    與 Settings 不同：Settings 來自環境變數，偏好設定由使用者在執行期間修改。
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get(self, key: str) -> Optional[str]:
        value = self.store.get_item(key)
        return value if value is not None else DEFAULTS.get(key)

    def set(self, key: str, value: str):
        self.store.set_item(key, value)

    # ---------- storage ----------
    @property
    def storage_backend(self) -> StorageBackend:
        value = self.store.get_item(STORAGE_PREFERENCE) or settings.DEFAULT_STORAGE_BACKEND
        return StorageBackend.parse(value)

    @property
    def storage_file_path(self) -> Optional[str]:
        return self.store.get_item(STORAGE_FILE_PATH)

    def set_storage_backend(self, backend: StorageBackend, file_path: Optional[str] = None):
        self.store.set_item(STORAGE_PREFERENCE, backend.value)
        if file_path:
            self.store.set_item(STORAGE_FILE_PATH, str(file_path))

    # ---------- display ----------
    @property
    def theme(self) -> str:
        return self.get(THEME)

    def set_theme(self, theme: str):
        if theme not in THEMES:
            raise ConfigurationError(f"Unknown theme {theme!r}")
        self.set(THEME, theme)

    def toggle_theme(self) -> str:
        new_theme = "light" if self.theme == "dark" else "dark"
        self.set(THEME, new_theme)
        return new_theme

    def set_default_view(self, view: str):
        if view not in VIEWS:
            raise ConfigurationError(f"Unknown view {view!r}")
        self.set(DEFAULT_VIEW, view)

    @property
    def date_format(self) -> str:
        return self.get(DATE_FORMAT)

    @property
    def date_pattern(self) -> str:
        return DATE_FORMATS.get(self.date_format, DATE_FORMATS["MM/DD/YYYY"]) + " %H:%M"

    def set_date_format(self, fmt: str):
        if fmt not in DATE_FORMATS:
            raise ConfigurationError(f"Unknown date format {fmt!r}")
        self.set(DATE_FORMAT, fmt)

    # ---------- backup ----------
    @property
    def auto_backup(self) -> bool:
        return self.get(AUTO_BACKUP) == "true"

    @property
    def backup_interval(self) -> timedelta:
        name = self.get(BACKUP_INTERVAL)
        if name not in BACKUP_INTERVALS:
            raise ConfigurationError(f"Unknown backup interval {name!r}")
        return BACKUP_INTERVALS[name]

    def set_auto_backup(self, enabled: bool, interval: Optional[str] = None):
        if interval is not None:
            if interval not in BACKUP_INTERVALS:
                raise ConfigurationError(f"Unknown backup interval {interval!r}")
            self.set(BACKUP_INTERVAL, interval)
        self.set(AUTO_BACKUP, "true" if enabled else "false")

    @property
    def last_backup(self) -> Optional[datetime]:
        value = self.store.get_item(LAST_BACKUP)
        if not value:
            return None
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            # 無法解析時視為從未備份，下次備份會覆寫
            logger.warning(f"Ignoring unreadable {LAST_BACKUP} value {value!r}")
            return None

    def set_last_backup(self, when: datetime):
        self.set(LAST_BACKUP, when.isoformat())

    def reset(self):
        """恢復預設值 (儲存後端選擇也一併清除)。"""
        for key in (STORAGE_PREFERENCE, DEFAULT_VIEW, DATE_FORMAT, AUTO_BACKUP, BACKUP_INTERVAL, THEME):
            self.store.remove_item(key)
