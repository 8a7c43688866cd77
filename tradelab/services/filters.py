from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from tradelab.core.exceptions import ConfigurationError
from tradelab.core.models import Trade

# 與分析頁面的時間範圍選單一致
TIME_RANGES = {
    "current": {"type": "year", "label": "Current Year"},
    "year": {"type": "year", "label": "Year"},
    "7": {"days": 7, "label": "Last 7 Days"},
    "30": {"days": 30, "label": "Last 30 Days"},
    "90": {"days": 90, "label": "Last 90 Days"},
    "custom": {"type": "custom", "label": "Custom Range"},
}


def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def filter_trades(
    trades: Sequence[Trade],
    symbol: Optional[str] = None,
    market: Optional[str] = None,
    direction: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Trade]:
    """
    Simple predicate pass used by the history and analytics views.

    symbol matches as a case-insensitive substring, market and direction
    exactly; start/end compare local calendar dates and are inclusive.
    Order is preserved.
    """
    start_day = _as_date(start)
    end_day = _as_date(end)
    needle = symbol.lower() if symbol else None

    result = []
    for trade in trades:
        if needle and needle not in trade.symbol.lower():
            continue
        if market and trade.market != market:
            continue
        if direction and trade.direction != direction.lower():
            continue
        if start_day and trade.day < start_day:
            continue
        if end_day and trade.day > end_day:
            continue
        result.append(trade)
    return result


def time_range_bounds(
    range_key: str,
    today: date,
    year: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Tuple[date, date]:
    """Resolve a time-range preset into inclusive start/end dates."""
    preset = TIME_RANGES.get(str(range_key))
    if preset is None:
        raise ConfigurationError(f"Unknown time range: {range_key!r}")

    if preset.get("type") == "year":
        target = year if (range_key == "year" and year) else today.year
        return date(target, 1, 1), date(target, 12, 31)
    if preset.get("type") == "custom":
        if start is None or end is None:
            raise ConfigurationError("Custom range needs both start and end dates")
        return _as_date(start), _as_date(end)
    return today - timedelta(days=preset["days"]), today


def apply_time_range(trades: Sequence[Trade], range_key: str, today: date, **kwargs) -> List[Trade]:
    start, end = time_range_bounds(range_key, today, **kwargs)
    return filter_trades(trades, start=start, end=end)
