from typing import List, Sequence, Tuple

from tradelab.core.models import ExcursionMetrics, PerformanceSummary, StreakStats, Trade
from tradelab.services.aggregations import AggregationService

STORAGE_ORDER = "storage"
CHRONOLOGICAL_ORDER = "chronological"


class AnalyticsService:
    """
    Headline performance statistics over a list of trades.

    Every method is pure and total: an empty list, or a zero denominator,
    yields a neutral value (0) instead of raising.
    """

    @staticmethod
    def win_rate(trades: Sequence[Trade]) -> float:
        if not trades:
            return 0.0
        wins = sum(1 for t in trades if t.profit_loss > 0)
        return wins / len(trades) * 100

    @staticmethod
    def gross_profit(trades: Sequence[Trade]) -> float:
        return sum(t.profit_loss for t in trades if t.profit_loss > 0)

    @staticmethod
    def gross_loss(trades: Sequence[Trade]) -> float:
        """Sum of absolute losing P/L."""
        return -sum(t.profit_loss for t in trades if t.profit_loss < 0)

    @staticmethod
    def profit_factor(trades: Sequence[Trade]) -> float:
        """
        Gross profit / gross loss. Reported as 0 (not infinity) when there
        are no losing trades.
        """
        gross_loss = AnalyticsService.gross_loss(trades)
        if gross_loss == 0:
            return 0.0
        return AnalyticsService.gross_profit(trades) / gross_loss

    @staticmethod
    def total_pnl(trades: Sequence[Trade]) -> float:
        return sum(t.profit_loss for t in trades)

    @staticmethod
    def average_trade(trades: Sequence[Trade]) -> float:
        if not trades:
            return 0.0
        return AnalyticsService.total_pnl(trades) / len(trades)

    @staticmethod
    def largest_win(trades: Sequence[Trade]) -> float:
        return max([t.profit_loss for t in trades] + [0.0])

    @staticmethod
    def largest_loss(trades: Sequence[Trade]) -> float:
        return min([t.profit_loss for t in trades] + [0.0])

    @staticmethod
    def average_win(trades: Sequence[Trade]) -> float:
        wins = [t.profit_loss for t in trades if t.profit_loss > 0]
        return sum(wins) / len(wins) if wins else 0.0

    @staticmethod
    def average_loss(trades: Sequence[Trade]) -> float:
        """Mean absolute value of the losing trades."""
        losses = [-t.profit_loss for t in trades if t.profit_loss < 0]
        return sum(losses) / len(losses) if losses else 0.0

    @staticmethod
    def risk_reward(trades: Sequence[Trade]) -> float:
        avg_loss = AnalyticsService.average_loss(trades)
        if avg_loss <= 0:
            return 0.0
        return AnalyticsService.average_win(trades) / avg_loss

    @staticmethod
    def order_trades(trades: Sequence[Trade], order: str = STORAGE_ORDER) -> List[Trade]:
        if order == STORAGE_ORDER:
            return list(trades)
        if order == CHRONOLOGICAL_ORDER:
            return sorted(trades, key=lambda t: t.local_time)
        raise ValueError(f"Unknown trade order: {order!r}")

    @staticmethod
    def streaks(trades: Sequence[Trade], order: str = STORAGE_ORDER) -> StreakStats:
        """
        Longest win and loss streaks.

        A signed counter walks the trades: wins push it up (restarting at 1
        after a loss), losses push it down (restarting at -1 after a win) and
        a break-even trade resets it to 0. The walk follows storage order
        unless ``order="chronological"`` is requested.
        """
        current = 0
        max_streak = 0
        min_streak = 0
        for trade in AnalyticsService.order_trades(trades, order):
            if trade.profit_loss > 0:
                current = current + 1 if current > 0 else 1
            elif trade.profit_loss < 0:
                current = current - 1 if current < 0 else -1
            else:
                current = 0
            max_streak = max(max_streak, current)
            min_streak = min(min_streak, current)
        return StreakStats(longest_win_streak=max_streak, longest_loss_streak=abs(min_streak))

    @staticmethod
    def excursion_metrics(trades: Sequence[Trade]) -> ExcursionMetrics:
        """
        MFE/MAE over the trades that carry max_runup / max_drawdown
        annotations. Price-normalized values divide by |quantity|.
        """
        annotated = [t for t in trades if t.max_runup or t.max_drawdown]
        if not annotated:
            return ExcursionMetrics()

        first = annotated[0]
        position_mfe = 0.0
        position_mae = first.max_drawdown or 0.0
        price_mfe = 0.0
        price_mae = first.max_drawdown / abs(first.quantity) if first.max_drawdown else 0.0

        for trade in annotated:
            if trade.max_runup:
                position_mfe = max(position_mfe, trade.max_runup)
                price_mfe = max(price_mfe, trade.max_runup / abs(trade.quantity))
            if trade.max_drawdown:
                position_mae = min(position_mae, trade.max_drawdown)
                price_mae = min(price_mae, trade.max_drawdown / abs(trade.quantity))

        return ExcursionMetrics(
            position_mfe=position_mfe,
            position_mae=position_mae,
            price_mfe=price_mfe,
            price_mae=price_mae,
            has_data=True,
        )

    @staticmethod
    def best_and_worst(trades: Sequence[Trade], count: int = 5) -> Tuple[List[Trade], List[Trade]]:
        """
        Top ``count`` trades by P/L (descending) and bottom ``count``
        (worst first). The sort is stable so ties keep storage order.
        """
        if count <= 0:
            return [], []
        ranked = sorted(trades, key=lambda t: t.profit_loss, reverse=True)
        best = ranked[:count]
        worst = list(reversed(ranked[-count:]))
        return best, worst

    @staticmethod
    def calculate_stats(trades: Sequence[Trade], order: str = STORAGE_ORDER) -> PerformanceSummary:
        """
        Calculate the full performance summary for a list of trades.
        """
        streaks = AnalyticsService.streaks(trades, order)
        return PerformanceSummary(
            total_trades=len(trades),
            total_pnl=AnalyticsService.total_pnl(trades),
            win_rate=AnalyticsService.win_rate(trades),
            profit_factor=AnalyticsService.profit_factor(trades),
            average_trade=AnalyticsService.average_trade(trades),
            largest_win=AnalyticsService.largest_win(trades),
            largest_loss=AnalyticsService.largest_loss(trades),
            average_win=AnalyticsService.average_win(trades),
            average_loss=AnalyticsService.average_loss(trades),
            risk_reward=AnalyticsService.risk_reward(trades),
            longest_win_streak=streaks.longest_win_streak,
            longest_loss_streak=streaks.longest_loss_streak,
            max_drawdown_pct=AggregationService.max_drawdown_pct(trades),
            average_daily_volume=AggregationService.average_daily_volume(trades),
        )
