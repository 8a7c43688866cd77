import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """
    應用程式全域設定。
    自動從環境變數 (.env) 讀取並驗證型別。
    """
    # 本機資料位置
    DATA_DIR: Path = Path.home() / ".tradelab"
    LOCAL_STORE_FILE: str = "local_storage.json"   # 模擬瀏覽器 localStorage 的 key-value 檔
    TRADES_FILE: str = "tradelab_trades.json"       # fileStorage 後端預設路徑
    SPREADSHEET_FILE: str = "tradelab_trades.csv"   # spreadsheet 後端預設路徑
    EXPORT_DIR: Path = Path(".")

    # 儲存後端 (使用者偏好未設定時的預設值)
    DEFAULT_STORAGE_BACKEND: str = "localStorage"
    PERSIST_TIMEOUT_SECONDS: Optional[float] = None

    # 分析
    BEST_WORST_COUNT: int = 5

    # Environment
    TZ: str = "UTC"

    # 應用程式行為
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None                  # 例如 tradelab.log，相對路徑放在 DATA_DIR

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True  # 區分大小寫，通常環境變數建議全大寫

    def data_path(self, name: str) -> Path:
        """相對檔名放在 DATA_DIR 之下，絕對路徑維持原樣。"""
        path = Path(name).expanduser()
        return path if path.is_absolute() else self.DATA_DIR / path

# Singleton Instance
try:
    settings = Settings()
except ValidationError as e:
    # 這裡只做基本 print，因為 logging 模組依賴 settings，避免循環
    print(f"CRITICAL: Failed to load configuration. Invalid env vars? {e}", file=sys.stderr)
    raise
