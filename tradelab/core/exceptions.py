class AppError(Exception):
    """所有應用程式自定義錯誤的基類"""
    pass

class ConfigurationError(AppError):
    """設定錯誤 (如未知的儲存後端或備份週期)"""
    pass

class MalformedInputError(AppError):
    """交易欄位無法解析 (價格、數量為空、NaN 或非數字)"""
    pass

class StorageUnavailableError(AppError):
    """儲存後端讀寫失敗或逾時"""
    pass

class InvalidImportFormatError(AppError):
    """匯入的 JSON 無法解析或內容不是交易陣列"""
    pass

class BackendMigrationError(AppError):
    """切換儲存後端時資料遷移失敗"""
    pass

class ManagerStateError(AppError):
    """交易管理器尚未載入完成就被要求修改資料"""
    pass

class TradeNotFoundError(AppError):
    """找不到指定 ID 的交易"""
    pass
