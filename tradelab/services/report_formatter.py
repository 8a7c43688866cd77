from typing import List, Sequence

from tradelab.core.models import (
    CalendarMonthStats,
    CalendarWeekStats,
    EquityPoint,
    ExcursionMetrics,
    PerformanceSummary,
    PeriodPnL,
    PriceBucketPerformance,
    Trade,
    WeekdayPerformance,
)
from tradelab.services.aggregations import MONTH_NAMES


def format_currency(value: float) -> str:
    sign = "+" if value >= 0 else "-"
    return f"{sign}${abs(value):.2f}"


class ReportFormatter:
    @staticmethod
    def format_trade_line(index: int, trade: Trade, date_format: str = "%Y-%m-%d %H:%M") -> str:
        note = f"（{trade.notes}）" if trade.notes else ""
        return (
            f"{index}) [{trade.id}] {trade.local_time.strftime(date_format)} {trade.display_symbol} "
            f"{trade.market} {trade.direction.upper()} {trade.entry_price:g} -> {trade.exit_price:g} "
            f"x{trade.quantity:g} {format_currency(trade.profit_loss)}{note}"
        )

    @staticmethod
    def format_trade_list(trades: Sequence[Trade], date_format: str = "%Y-%m-%d %H:%M") -> str:
        if not trades:
            return "📒 交易紀錄\n\n目前沒有交易 💤"
        lines = [f"📒 交易紀錄 ({len(trades)} 筆)"]
        for i, trade in enumerate(trades, 1):
            lines.append(ReportFormatter.format_trade_line(i, trade, date_format))
        return "\n".join(lines)

    @staticmethod
    def format_summary(
        summary: PerformanceSummary,
        excursion: ExcursionMetrics,
        best: List[Trade],
        worst: List[Trade],
    ) -> str:
        """
        Formats the performance dashboard into a plain-text report.
        """
        lines = ["📊 交易績效總覽"]
        lines.append(f"交易筆數：{summary.total_trades}")
        lines.append(f"總損益：{format_currency(summary.total_pnl)}")
        lines.append(f"勝率：{summary.win_rate:.1f}%")
        lines.append(f"獲利因子：{summary.profit_factor:.2f}")
        lines.append(f"平均每筆：{format_currency(summary.average_trade)}")
        lines.append("")

        lines.append("🔢 盈虧分布")
        lines.append(f"最大獲利：{format_currency(summary.largest_win)}")
        lines.append(f"最大虧損：{format_currency(summary.largest_loss)}")
        lines.append(f"平均獲利：{format_currency(summary.average_win)}")
        lines.append(f"平均虧損：{format_currency(-summary.average_loss)}")
        lines.append(f"風險報酬比：{summary.risk_reward:.2f}:1")
        lines.append(f"最長連勝：{summary.longest_win_streak}")
        lines.append(f"最長連敗：{summary.longest_loss_streak}")
        lines.append(f"最大回撤：{summary.max_drawdown_pct:.2f}%")
        lines.append(f"平均日成交量：{round(summary.average_daily_volume):,}")
        lines.append("")

        if excursion.has_data:
            lines.append("📐 最大浮盈 / 浮虧")
            lines.append(f"部位 MFE：{format_currency(excursion.position_mfe)}")
            lines.append(f"部位 MAE：{format_currency(-abs(excursion.position_mae))}")
            lines.append(f"價格 MFE：{format_currency(excursion.price_mfe)}")
            lines.append(f"價格 MAE：{format_currency(-abs(excursion.price_mae))}")
            lines.append("")

        if best:
            lines.append("🏆 最佳交易")
            for trade in best:
                lines.append(f"{trade.display_symbol} {format_currency(trade.profit_loss)}")
            lines.append("")
        if worst:
            lines.append("💸 最差交易")
            for trade in worst:
                lines.append(f"{trade.display_symbol} {format_currency(trade.profit_loss)}")

        return "\n".join(lines).rstrip()

    @staticmethod
    def format_breakdowns(
        weekdays: Sequence[WeekdayPerformance],
        buckets: Sequence[PriceBucketPerformance],
        equity: Sequence[EquityPoint],
    ) -> str:
        lines = ["📅 星期分析"]
        for day in weekdays:
            lines.append(
                f"{day.day_name}：{format_currency(day.pnl)} "
                f"({day.total_trades} 筆, 勝率 {day.win_rate:.1f}%, 佔 {day.share_of_trades:.1f}%)"
            )
        lines.append("")

        lines.append("💲 價格區間")
        if not buckets:
            lines.append("（無資料）")
        for b in buckets:
            lines.append(f"{b.bucket.label}：{format_currency(b.pnl)} ({b.total_trades} 筆, {b.share_of_trades:.1f}%)")
        lines.append("")

        lines.append("📈 權益曲線")
        if not equity:
            lines.append("（無資料）")
        for point in equity:
            lines.append(
                f"{point.day.isoformat()} 當日 {format_currency(point.net_pnl)} "
                f"累積 {format_currency(point.equity)} 回撤 {point.drawdown_pct:.2f}%"
            )
        return "\n".join(lines)

    @staticmethod
    def format_calendar_year(year: int, months: Sequence[CalendarMonthStats], period: PeriodPnL) -> str:
        lines = [f"🗓️ {year} 年度 P/L：{format_currency(period.pnl)} ({period.roi_pct:+.2f}%)"]
        for m in months:
            lines.append(f"{MONTH_NAMES[m.month - 1]}：{format_currency(m.pnl)} 勝 {m.win_count} / 敗 {m.loss_count}")
        return "\n".join(lines)

    @staticmethod
    def format_calendar_month(
        year: int, month: int, weeks: Sequence[CalendarWeekStats], period: PeriodPnL
    ) -> str:
        lines = [
            f"🗓️ {MONTH_NAMES[month - 1]} {year} P/L：{format_currency(period.pnl)} "
            f"({period.roi_pct:+.2f}%, {period.trade_count} 筆)"
        ]
        for week in weeks:
            lines.append(
                f"{week.start.isoformat()} ~ {week.end.isoformat()}：{format_currency(week.pnl)} ({week.trade_count} 筆)"
            )
        return "\n".join(lines)
