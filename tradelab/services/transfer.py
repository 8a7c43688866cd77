import json
from datetime import date
from pathlib import Path
from typing import List, Sequence, Union

from tradelab.config.logging import logger
from tradelab.core.exceptions import AppError, InvalidImportFormatError, StorageUnavailableError
from tradelab.core.models import Trade
from tradelab.infrastructure.storage.mapper import TradeMapper


def export_filename(today: date) -> str:
    return f"trades_export_{today.isoformat()}.json"


def export_trades(trades: Sequence[Trade]) -> str:
    """Serialize the whole collection as an indented JSON array."""
    return json.dumps([TradeMapper.to_dict(t) for t in trades], ensure_ascii=False, indent=2)


def write_export(trades: Sequence[Trade], directory: Union[str, Path], today: date) -> Path:
    path = Path(directory).expanduser() / export_filename(today)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(export_trades(trades), encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to write export {path}: {e}")
        raise StorageUnavailableError(f"Export write error: {e}") from e
    logger.info(f"Exported {len(trades)} trades to {path}")
    return path


def parse_import(text: str) -> List[Trade]:
    """
    Parse an exported JSON array back into trades.

    Profit/loss is recomputed from the prices. Any structural problem, or a
    record that does not make a valid trade, rejects the whole import.
    """
    try:
        records = json.loads(text)
    except ValueError as e:
        raise InvalidImportFormatError(f"Invalid trade data format: {e}") from e
    if not isinstance(records, list):
        raise InvalidImportFormatError("Invalid trade data format: expected a JSON array of trades")

    trades = []
    for index, record in enumerate(records):
        try:
            trades.append(TradeMapper.from_dict(record))
        except AppError as e:
            raise InvalidImportFormatError(f"Invalid trade at position {index}: {e}") from e
    return trades


def read_import(path: Union[str, Path]) -> List[Trade]:
    try:
        text = Path(path).expanduser().read_text(encoding="utf-8")
    except OSError as e:
        raise InvalidImportFormatError(f"Cannot read import file {path}: {e}") from e
    return parse_import(text)
