import calendar
import math
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from tradelab.core.models import (
    CalendarMonthStats,
    CalendarWeekStats,
    DailyValue,
    EquityPoint,
    HistorySummary,
    MonthlyPerformance,
    PeriodPnL,
    PriceBucket,
    PriceBucketPerformance,
    Trade,
    WeekdayPerformance,
)

WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

PRICE_BUCKETS = [
    PriceBucket("< $2.00", 0, 2),
    PriceBucket("$2 - $4.99", 2, 5),
    PriceBucket("$5 - $9.99", 5, 10),
    PriceBucket("$10 - $19.99", 10, 20),
    PriceBucket("$20 - $49.99", 20, 50),
    PriceBucket("$50 - $99.99", 50, 100),
    PriceBucket("$100 - $199.99", 100, 200),
    PriceBucket("$200 - $499.99", 200, 500),
    PriceBucket("$500 - $999.99", 500, 1000),
    PriceBucket("> $1000", 1000, math.inf),
]


def weekday_name(day: date) -> str:
    # date.weekday() is Monday=0; the dashboard lists Sunday first
    return WEEKDAY_NAMES[(day.weekday() + 1) % 7]


class AggregationService:
    """
    Time- and bucket-based aggregations behind the dashboard, analytics and
    calendar views. Pure functions over trade lists; empty input yields
    empty or zero-valued output.
    """

    @staticmethod
    def daily_pnl(trades: Sequence[Trade]) -> Dict[date, float]:
        """Net P/L per local calendar date, ascending. Days without trades are absent."""
        totals: Dict[date, float] = {}
        for trade in trades:
            totals[trade.day] = totals.get(trade.day, 0.0) + trade.profit_loss
        return dict(sorted(totals.items()))

    @staticmethod
    def equity_curve(trades: Sequence[Trade]) -> List[EquityPoint]:
        """
        Cumulative equity by trading day with the running peak and the
        percentage drawdown from it.

        Drawdown is ``(peak - equity) / peak * 100`` while the peak is
        positive and 0 otherwise, so a journal that never made money shows no
        drawdown at all.
        """
        points = []
        equity = 0.0
        peak = 0.0
        for day, net in AggregationService.daily_pnl(trades).items():
            equity += net
            if equity > peak:
                peak = equity
            drawdown = (peak - equity) / peak * 100 if peak > 0 else 0.0
            points.append(EquityPoint(day=day, net_pnl=net, equity=equity, peak=peak, drawdown_pct=drawdown))
        return points

    @staticmethod
    def drawdown_curve(trades: Sequence[Trade]) -> List[DailyValue]:
        return [DailyValue(p.day, p.drawdown_pct) for p in AggregationService.equity_curve(trades)]

    @staticmethod
    def max_drawdown_pct(trades: Sequence[Trade]) -> float:
        return max((p.drawdown_pct for p in AggregationService.equity_curve(trades)), default=0.0)

    @staticmethod
    def day_of_week(trades: Sequence[Trade]) -> List[WeekdayPerformance]:
        buckets = {name: {"pnl": 0.0, "total": 0, "wins": 0} for name in WEEKDAY_NAMES}
        for trade in trades:
            bucket = buckets[weekday_name(trade.day)]
            bucket["pnl"] += trade.profit_loss
            bucket["total"] += 1
            if trade.profit_loss > 0:
                bucket["wins"] += 1

        total = len(trades)
        return [
            WeekdayPerformance(
                day_name=name,
                pnl=b["pnl"],
                total_trades=b["total"],
                winning_trades=b["wins"],
                win_rate=b["wins"] / b["total"] * 100 if b["total"] else 0.0,
                share_of_trades=b["total"] / total * 100 if total else 0.0,
            )
            for name, b in buckets.items()
        ]

    @staticmethod
    def price_buckets(trades: Sequence[Trade]) -> List[PriceBucketPerformance]:
        """Performance by entry price range. Ranges without trades are left out."""
        total = len(trades)
        results = []
        for bucket in PRICE_BUCKETS:
            in_range = [t for t in trades if bucket.contains(t.entry_price)]
            if not in_range:
                continue
            results.append(
                PriceBucketPerformance(
                    bucket=bucket,
                    pnl=sum(t.profit_loss for t in in_range),
                    total_trades=len(in_range),
                    share_of_trades=len(in_range) / total * 100,
                )
            )
        return results

    @staticmethod
    def direction_performance(trades: Sequence[Trade]) -> Dict[str, float]:
        performance: Dict[str, float] = {}
        for trade in trades:
            label = trade.direction.upper()
            performance[label] = performance.get(label, 0.0) + trade.profit_loss
        return performance

    @staticmethod
    def daily_volume(trades: Sequence[Trade]) -> List[DailyValue]:
        volumes: Dict[date, float] = {}
        for trade in trades:
            volumes[trade.day] = volumes.get(trade.day, 0.0) + abs(trade.quantity)
        return [DailyValue(day, volume) for day, volume in sorted(volumes.items())]

    @staticmethod
    def average_daily_volume(trades: Sequence[Trade]) -> float:
        volumes = AggregationService.daily_volume(trades)
        if not volumes:
            return 0.0
        return sum(v.value for v in volumes) / len(volumes)

    @staticmethod
    def daily_average_pnl(trades: Sequence[Trade]) -> List[DailyValue]:
        sums: Dict[date, List[float]] = {}
        for trade in trades:
            sums.setdefault(trade.day, []).append(trade.profit_loss)
        return [DailyValue(day, sum(pnls) / len(pnls)) for day, pnls in sorted(sums.items())]

    @staticmethod
    def monthly_performance(trades: Sequence[Trade]) -> List[MonthlyPerformance]:
        """
        P/L per calendar month (all years folded together). The share is
        relative to the sum of the profitable months only.
        """
        pnl = [0.0] * 12
        counts = [0] * 12
        for trade in trades:
            month = trade.local_time.month - 1
            pnl[month] += trade.profit_loss
            counts[month] += 1

        total_profit = sum(max(0.0, value) for value in pnl)
        return [
            MonthlyPerformance(
                month=i + 1,
                name=MONTH_NAMES[i],
                pnl=pnl[i],
                total_trades=counts[i],
                share_of_profit=pnl[i] / total_profit * 100 if total_profit > 0 else 0.0,
            )
            for i in range(12)
        ]

    # ---------- calendar ----------
    @staticmethod
    def calendar_year(trades: Sequence[Trade], year: int) -> List[CalendarMonthStats]:
        stats = []
        for month in range(1, 13):
            month_trades = [t for t in trades if t.local_time.year == year and t.local_time.month == month]
            stats.append(
                CalendarMonthStats(
                    month=month,
                    win_count=sum(1 for t in month_trades if t.profit_loss > 0),
                    loss_count=sum(1 for t in month_trades if t.profit_loss < 0),
                    pnl=sum(t.profit_loss for t in month_trades),
                )
            )
        return stats

    @staticmethod
    def calendar_days(trades: Sequence[Trade], year: int, month: int) -> List[DailyValue]:
        """Net P/L for every day of the month, zero on days without trades."""
        _, days_in_month = calendar.monthrange(year, month)
        totals = {date(year, month, d): 0.0 for d in range(1, days_in_month + 1)}
        for trade in trades:
            if trade.day in totals:
                totals[trade.day] += trade.profit_loss
        return [DailyValue(day, pnl) for day, pnl in totals.items()]

    @staticmethod
    def calendar_weeks(trades: Sequence[Trade], year: int, month: int) -> List[CalendarWeekStats]:
        """Sunday-to-Saturday weeks of the month, clipped to the month's first and last day."""
        _, days_in_month = calendar.monthrange(year, month)
        month_start = date(year, month, 1)
        month_end = date(year, month, days_in_month)

        weeks = []
        start = month_start
        while start <= month_end:
            days_to_saturday = (5 - start.weekday()) % 7
            end = min(start + timedelta(days=days_to_saturday), month_end)
            week_trades = [t for t in trades if start <= t.day <= end]
            weeks.append(
                CalendarWeekStats(
                    start=start,
                    end=end,
                    pnl=sum(t.profit_loss for t in week_trades),
                    trade_count=len(week_trades),
                )
            )
            start = end + timedelta(days=1)
        return weeks

    @staticmethod
    def period_pnl(trades: Sequence[Trade], start: datetime, end: datetime) -> PeriodPnL:
        """
        P/L inside [start, end] with an ROI measured against the cumulative
        P/L booked before ``start``.
        """
        starting_balance = sum(t.profit_loss for t in trades if t.local_time < start)
        in_period = [t for t in trades if start <= t.local_time <= end]
        pnl = sum(t.profit_loss for t in in_period)

        if starting_balance != 0:
            roi = pnl / abs(starting_balance) * 100
        else:
            roi = 100.0 if pnl != 0 else 0.0
        if pnl < 0:
            roi = -abs(roi)

        return PeriodPnL(
            start=start,
            end=end,
            pnl=pnl,
            trade_count=len(in_period),
            starting_balance=starting_balance,
            roi_pct=roi,
        )

    @staticmethod
    def period_bounds(year: int, month: Optional[int] = None, day: Optional[int] = None) -> Tuple[datetime, datetime]:
        """Start/end datetimes of a calendar year, month or day."""
        if month is None:
            return datetime(year, 1, 1), datetime.combine(date(year, 12, 31), time.max)
        if day is None:
            _, days_in_month = calendar.monthrange(year, month)
            return datetime(year, month, 1), datetime.combine(date(year, month, days_in_month), time.max)
        return datetime(year, month, day), datetime.combine(date(year, month, day), time.max)

    @staticmethod
    def history_summary(trades: Sequence[Trade]) -> HistorySummary:
        total = len(trades)
        total_pnl = sum(t.profit_loss for t in trades)
        wins = sum(1 for t in trades if t.profit_loss > 0)
        return HistorySummary(
            total_trades=total,
            win_rate=wins / total * 100 if total else 0.0,
            total_pnl=total_pnl,
            average_pnl=total_pnl / total if total else 0.0,
        )
