import logging
import sys
from typing import Optional

from tradelab.config.settings import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(name: str = "tradelab", level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    日誌配置：Console (stdout)，設定 LOG_FILE 時另外寫入 DATA_DIR 底下的檔案。
    同一個 logger 只會配置一次。
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level_name = (level or settings.LOG_LEVEL).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    # 不往 root logger 傳遞
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = [logging.StreamHandler(sys.stdout)]

    log_file = log_file or settings.LOG_FILE
    if log_file:
        path = settings.data_path(log_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(path, encoding="utf-8"))
        except OSError as e:
            print(f"WARNING: cannot open log file {path}: {e}", file=sys.stderr)

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


# 預設 Logger
logger = setup_logging()
