from typing import Any, Dict

from tradelab.core.exceptions import MalformedInputError
from tradelab.core.models import LONG, Trade

# 匯出格式的欄位名稱 (與瀏覽器版本的 JSON 完全一致)
EXPORT_FIELDS = [
    "id",
    "symbol",
    "market",
    "entryPrice",
    "exitPrice",
    "quantity",
    "date",
    "notes",
    "direction",
    "profitLoss",
    "maxRunup",
    "maxDrawdown",
]

class TradeMapper:
    """
    負責 Trade 與 JSON/試算表列 (camelCase 欄位) 之間的轉換。
    """

    @staticmethod
    def to_dict(trade: Trade) -> Dict[str, Any]:
        record = {
            "id": trade.id,
            "symbol": trade.symbol,
            "market": trade.market,
            "entryPrice": trade.entry_price,
            "exitPrice": trade.exit_price,
            "quantity": trade.quantity,
            "date": trade.date.isoformat(),
            "notes": trade.notes,
            "direction": trade.direction,
            "profitLoss": trade.profit_loss,
        }
        # 選填欄位只在有值時輸出
        if trade.max_runup is not None:
            record["maxRunup"] = trade.max_runup
        if trade.max_drawdown is not None:
            record["maxDrawdown"] = trade.max_drawdown
        return record

    @staticmethod
    def from_dict(raw: Dict[str, Any], keep_id: bool = True) -> Trade:
        """
        將 JSON 物件重建為 Trade。
        profitLoss 不信任外部資料，一律由價格重新計算；
        舊版資料沒有 direction 欄位時視為 long。
        """
        if not isinstance(raw, dict):
            raise MalformedInputError(f"trade record must be an object, got {type(raw).__name__}")
        trade_id = raw.get("id") if keep_id else None
        return Trade.create(
            symbol=raw.get("symbol"),
            market=raw.get("market") or "",
            entry_price=raw.get("entryPrice"),
            exit_price=raw.get("exitPrice"),
            quantity=raw.get("quantity"),
            date=raw.get("date"),
            notes=raw.get("notes") or "",
            direction=raw.get("direction") or LONG,
            max_runup=raw.get("maxRunup"),
            max_drawdown=raw.get("maxDrawdown"),
            trade_id=str(trade_id) if trade_id not in (None, "") else None,
        )
