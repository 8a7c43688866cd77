import math
import time
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time as dt_time
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from tradelab.core.exceptions import MalformedInputError

LONG = "long"
SHORT = "short"
DIRECTIONS = (LONG, SHORT)

_last_id = 0


def new_trade_id() -> str:
    """
    產生唯一且可排序的交易 ID (建立時間的微秒時間戳)。
    同一微秒內連續建立時往後遞增，保證不重複。
    """
    global _last_id
    candidate = time.time_ns() // 1000
    if candidate <= _last_id:
        candidate = _last_id + 1
    _last_id = candidate
    return str(candidate)


def compute_profit_loss(entry_price: float, exit_price: float, quantity: float, direction: str) -> float:
    if direction == SHORT:
        return (entry_price - exit_price) * quantity
    return (exit_price - entry_price) * quantity


def _parse_number(name: str, raw: Any, required: bool = True) -> Optional[float]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        if required:
            raise MalformedInputError(f"{name} is required")
        return None
    if isinstance(raw, bool):
        raise MalformedInputError(f"{name} must be a number, got {raw!r}")
    try:
        value = float(Decimal(str(raw).strip().replace(",", "")))
    except (InvalidOperation, ValueError) as e:
        raise MalformedInputError(f"{name} is not a number: {raw!r}") from e
    if math.isnan(value) or math.isinf(value):
        raise MalformedInputError(f"{name} must be finite, got {raw!r}")
    return value


def _parse_date(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime.combine(raw, dt_time())
    if isinstance(raw, str) and raw.strip():
        text = raw.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError as e:
            raise MalformedInputError(f"date is not an ISO timestamp: {raw!r}") from e
    raise MalformedInputError(f"date is required, got {raw!r}")


@dataclass(frozen=True)
class Trade:
    """
    核心交易模型 (Domain Model)。
    代表交易日誌中一筆手動紀錄的已平倉交易。

    profit_loss 在建立時計算並快取；物件不可變，
    任何編輯都必須透過 revise() 重建，確保損益與欄位一致。
    """
    symbol: str              # 代號，比較時不分大小寫
    market: str              # 市場分類 (stock, futures, options, crypto...)
    entry_price: float       # 進場價
    exit_price: float        # 出場價
    quantity: float          # 數量 (正數，方向由 direction 決定)
    date: datetime           # 交易時間
    notes: str = ""
    direction: str = LONG    # long 或 short

    # 選填欄位：最大浮盈 / 最大浮虧 (整個部位的金額)
    max_runup: Optional[float] = None
    max_drawdown: Optional[float] = None

    id: str = field(default_factory=new_trade_id)
    profit_loss: float = field(init=False)

    def __post_init__(self):
        symbol = self.symbol.strip() if isinstance(self.symbol, str) else ""
        if not symbol:
            raise MalformedInputError("symbol must be a non-empty string")
        if self.market is not None and not isinstance(self.market, str):
            raise MalformedInputError(f"market must be a string, got {self.market!r}")
        if self.notes is not None and not isinstance(self.notes, str):
            raise MalformedInputError(f"notes must be a string, got {self.notes!r}")
        direction =self.direction.strip().lower() if isinstance(self.direction, str) else ""
        if direction not in DIRECTIONS:
            raise MalformedInputError(f"direction must be 'long' or 'short', got {self.direction!r}")
        if not isinstance(self.date, datetime):
            raise MalformedInputError(f"date must be a datetime, got {self.date!r}")

        entry_price = _parse_number("entryPrice", self.entry_price)
        exit_price = _parse_number("exitPrice", self.exit_price)
        quantity = _parse_number("quantity", self.quantity)
        if entry_price <= 0 or exit_price <= 0:
            raise MalformedInputError("entryPrice and exitPrice must be positive")
        if quantity <= 0:
            raise MalformedInputError("quantity must be positive; use direction for shorts")

        object.__setattr__(self, "symbol", symbol)
        object.__setattr__(self, "market", (self.market or "").strip())
        object.__setattr__(self, "notes", self.notes or "")
        object.__setattr__(self, "direction", direction)
        object.__setattr__(self, "entry_price", entry_price)
        object.__setattr__(self, "exit_price", exit_price)
        object.__setattr__(self, "quantity", quantity)
        object.__setattr__(self, "max_runup", _parse_number("maxRunup", self.max_runup, required=False))
        object.__setattr__(self, "max_drawdown", _parse_number("maxDrawdown", self.max_drawdown, required=False))
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(
            self, "profit_loss", compute_profit_loss(entry_price, exit_price, quantity, direction)
        )

    @classmethod
    def create(
        cls,
        symbol: str,
        market: str,
        entry_price: Any,
        exit_price: Any,
        quantity: Any,
        date: Any,
        notes: Optional[str] = "",
        direction: str = LONG,
        max_runup: Any = None,
        max_drawdown: Any = None,
        trade_id: Optional[str] = None,
    ) -> "Trade":
        """從表單或匯入的原始值 (字串) 建立交易，解析失敗時拋出 MalformedInputError。"""
        kwargs = {} if trade_id is None else {"id": trade_id}
        return cls(
            symbol=symbol,
            market=market,
            entry_price=_parse_number("entryPrice", entry_price),
            exit_price=_parse_number("exitPrice", exit_price),
            quantity=_parse_number("quantity", quantity),
            date=_parse_date(date),
            notes=notes or "",
            direction=direction,
            max_runup=max_runup,
            max_drawdown=max_drawdown,
            **kwargs,
        )

    def revise(self, **changes) -> "Trade":
        """以相同 ID 重建交易 (編輯流程)，損益會重新計算。"""
        if "date" in changes:
            changes["date"] = _parse_date(changes["date"])
        return replace(self, **changes)

    @property
    def display_symbol(self) -> str:
        return self.symbol.upper()

    @property
    def local_time(self) -> datetime:
        """交易時間的本地時間 (naive)。含時區的時間會先轉成本機時區。"""
        if self.date.tzinfo is None:
            return self.date
        return self.date.astimezone().replace(tzinfo=None)

    @property
    def day(self) -> date:
        return self.local_time.date()

    def is_profit(self) -> bool:
        return self.profit_loss > 0

    def is_loss(self) -> bool:
        return self.profit_loss < 0


@dataclass(frozen=True)
class PerformanceSummary:
    """所有主要績效指標的快照。"""
    total_trades: int
    total_pnl: float
    win_rate: float
    profit_factor: float
    average_trade: float
    largest_win: float
    largest_loss: float
    average_win: float
    average_loss: float
    risk_reward: float
    longest_win_streak: int
    longest_loss_streak: int
    max_drawdown_pct: float
    average_daily_volume: float


@dataclass(frozen=True)
class StreakStats:
    longest_win_streak: int
    longest_loss_streak: int


@dataclass(frozen=True)
class EquityPoint:
    day: date
    net_pnl: float        # 當日淨損益
    equity: float         # 累積權益
    peak: float           # 截至當日的權益高點
    drawdown_pct: float   # 自高點回撤百分比


@dataclass(frozen=True)
class ExcursionMetrics:
    position_mfe: float = 0.0
    position_mae: float = 0.0
    price_mfe: float = 0.0
    price_mae: float = 0.0
    has_data: bool = False


@dataclass(frozen=True)
class WeekdayPerformance:
    day_name: str
    pnl: float
    total_trades: int
    winning_trades: int
    win_rate: float
    share_of_trades: float


@dataclass(frozen=True)
class PriceBucket:
    label: str
    min_price: float
    max_price: float   # math.inf 代表最後一個無上限區間

    def contains(self, price: float) -> bool:
        return self.min_price <= price < self.max_price


@dataclass(frozen=True)
class PriceBucketPerformance:
    bucket: PriceBucket
    pnl: float
    total_trades: int
    share_of_trades: float


@dataclass(frozen=True)
class MonthlyPerformance:
    month: int
    name: str
    pnl: float
    total_trades: int
    share_of_profit: float


@dataclass(frozen=True)
class CalendarMonthStats:
    month: int
    win_count: int
    loss_count: int
    pnl: float


@dataclass(frozen=True)
class CalendarWeekStats:
    start: date   # 週日 (或當月第一天)
    end: date     # 週六 (或當月最後一天)
    pnl: float
    trade_count: int


@dataclass(frozen=True)
class PeriodPnL:
    start: datetime
    end: datetime
    pnl: float
    trade_count: int
    starting_balance: float
    roi_pct: float


@dataclass(frozen=True)
class HistorySummary:
    total_trades: int
    win_rate: float
    total_pnl: float
    average_pnl: float


@dataclass(frozen=True)
class DailyValue:
    day: date
    value: float


TradeList = List[Trade]
