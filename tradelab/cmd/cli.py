import argparse
import asyncio
import sys
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tradelab.config.logging import logger
from tradelab.config.preferences import PreferenceStore
from tradelab.config.settings import settings
from tradelab.core.exceptions import AppError
from tradelab.core.models import Trade
from tradelab.infrastructure.kv_store import KeyValueStore
from tradelab.services.aggregations import AggregationService
from tradelab.services.analytics import AnalyticsService
from tradelab.services.backup import AutoBackup
from tradelab.services.filters import apply_time_range, filter_trades
from tradelab.services.report_formatter import ReportFormatter
from tradelab.services.reporter import ReporterService
from tradelab.services.trade_manager import TradeCollectionManager
from tradelab.services.transfer import read_import, write_export


def local_now() -> datetime:
    try:
        tz = ZoneInfo(settings.TZ)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Invalid timezone {settings.TZ}, falling back to UTC")
        tz = ZoneInfo("UTC")
    return datetime.now(tz).replace(tzinfo=None)


def build_manager(store: Optional[KeyValueStore] = None):
    """組裝應用程式：key-value store -> 偏好設定 -> 儲存後端 -> 管理器。"""
    store = store or KeyValueStore(settings.data_path(settings.LOCAL_STORE_FILE))
    preferences = PreferenceStore(store)
    manager = TradeCollectionManager.from_preferences(
        store, preferences, persist_timeout=settings.PERSIST_TIMEOUT_SECONDS
    )
    backup = AutoBackup(preferences, settings.EXPORT_DIR)
    manager.subscribe(backup.listener(local_now))
    return manager, preferences


def _selected_trades(manager: TradeCollectionManager, args) -> list:
    trades = filter_trades(
        manager.trades,
        symbol=getattr(args, "symbol", None),
        market=getattr(args, "market", None),
        direction=getattr(args, "direction", None),
    )
    if getattr(args, "range", None):
        trades = apply_time_range(
            trades, args.range, local_now().date(), year=args.year, start=args.start, end=args.end
        )
    elif getattr(args, "start", None) or getattr(args, "end", None):
        trades = filter_trades(trades, start=args.start, end=args.end)
    return trades


async def run_command(args, manager: TradeCollectionManager, preferences: PreferenceStore) -> str:
    await manager.load()

    if args.command == "add":
        trade = Trade.create(
            symbol=args.symbol,
            market=args.market,
            entry_price=args.entry,
            exit_price=args.exit,
            quantity=args.qty,
            date=args.date or local_now().replace(second=0, microsecond=0),
            notes=args.notes,
            direction=args.direction,
            max_runup=args.max_runup,
            max_drawdown=args.max_drawdown,
        )
        trade = await manager.add(trade)
        return ReportFormatter.format_trade_line(1, trade, preferences.date_pattern)

    if args.command == "list":
        trades = _selected_trades(manager, args)
        return ReportFormatter.format_trade_list(trades, preferences.date_pattern)

    if args.command == "edit":
        existing = manager.get(args.id)
        changes = {
            "symbol": args.symbol,
            "market": args.market,
            "entry_price": args.entry,
            "exit_price": args.exit,
            "quantity": args.qty,
            "date": args.date,
            "notes": args.notes,
            "direction": args.direction,
            "max_runup": args.max_runup,
            "max_drawdown": args.max_drawdown,
        }
        revised = existing.revise(**{k: v for k, v in changes.items() if v is not None})
        await manager.update(revised)
        return ReportFormatter.format_trade_line(1, revised, preferences.date_pattern)

    if args.command == "delete":
        removed = await manager.delete(args.id)
        return f"Deleted {removed.display_symbol} ({removed.id})"

    if args.command == "import":
        imported = await manager.import_bulk(read_import(args.file))
        return f"Imported {len(imported)} trades."

    if args.command == "export":
        path = write_export(manager.trades, args.dir or settings.EXPORT_DIR, local_now().date())
        return f"Exported {len(manager.trades)} trades to {path}"

    if args.command == "clear":
        if not args.yes:
            return "Refusing to clear all trades without --yes"
        await manager.clear()
        return "All trades cleared."

    if args.command == "stats":
        trades = _selected_trades(manager, args)
        summary = AnalyticsService.calculate_stats(trades, order=args.order)
        best, worst = AnalyticsService.best_and_worst(trades, settings.BEST_WORST_COUNT)
        output = ReportFormatter.format_summary(
            summary, AnalyticsService.excursion_metrics(trades), best, worst
        )
        if args.details:
            output += "\n\n" + ReportFormatter.format_breakdowns(
                AggregationService.day_of_week(trades),
                AggregationService.price_buckets(trades),
                AggregationService.equity_curve(trades),
            )
        return output

    if args.command == "calendar":
        year = args.year or local_now().year
        trades = manager.trades
        if args.month:
            start, end = AggregationService.period_bounds(year, args.month)
            return ReportFormatter.format_calendar_month(
                year,
                args.month,
                AggregationService.calendar_weeks(trades, year, args.month),
                AggregationService.period_pnl(trades, start, end),
            )
        start, end = AggregationService.period_bounds(year)
        return ReportFormatter.format_calendar_year(
            year, AggregationService.calendar_year(trades, year), AggregationService.period_pnl(trades, start, end)
        )

    if args.command == "backend":
        if not args.kind:
            return f"Current storage backend: {preferences.storage_backend.value}"
        await manager.set_backend(args.kind, args.path)
        return f"Storage backend switched to {manager.storage.kind.value}"

    if args.command == "backup":
        if args.enable or args.disable:
            preferences.set_auto_backup(bool(args.enable), args.interval)
        state = "on" if preferences.auto_backup else "off"
        return f"Auto-backup is {state} ({preferences.get('backupInterval')})"

    if args.command == "prefs":
        if args.reset:
            preferences.reset()
        if args.theme == "toggle":
            preferences.toggle_theme()
        elif args.theme:
            preferences.set_theme(args.theme)
        if args.view:
            preferences.set_default_view(args.view)
        if args.date_format:
            preferences.set_date_format(args.date_format)
        return (
            f"theme={preferences.theme} defaultView={preferences.get('defaultView')} "
            f"dateFormat={preferences.date_format} storage={preferences.storage_backend.value}"
        )

    if args.command == "report":
        path = ReporterService.generate_monthly_report(manager.trades, args.output)
        return f"Report saved to {path}"

    raise ValueError(f"Unknown command {args.command}")


def _add_trade_fields(parser: argparse.ArgumentParser, required: bool):
    parser.add_argument("--symbol", required=required)
    parser.add_argument("--market", required=required, help="stock, futures, options, crypto...")
    parser.add_argument("--entry", required=required, help="Entry price")
    parser.add_argument("--exit", required=required, help="Exit price")
    parser.add_argument("--qty", required=required, help="Quantity (positive)")
    parser.add_argument("--date", help="ISO timestamp, e.g. 2024-03-01T09:30")
    parser.add_argument("--notes")
    parser.add_argument("--direction", choices=["long", "short"], default="long" if required else None)
    parser.add_argument("--max-runup", dest="max_runup", help="Largest open profit of the position")
    parser.add_argument("--max-drawdown", dest="max_drawdown", help="Largest open loss of the position (negative)")


def _add_filter_fields(parser: argparse.ArgumentParser):
    parser.add_argument("--symbol")
    parser.add_argument("--market")
    parser.add_argument("--direction", choices=["long", "short"])
    parser.add_argument("--range", choices=["current", "year", "7", "30", "90", "custom"])
    parser.add_argument("--year", type=int)
    parser.add_argument("--start", type=date.fromisoformat)
    parser.add_argument("--end", type=date.fromisoformat)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Trade journal CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    add_parser = subparsers.add_parser("add", help="Record a closed trade")
    _add_trade_fields(add_parser, required=True)

    list_parser = subparsers.add_parser("list", help="List trades (newest first)")
    _add_filter_fields(list_parser)

    edit_parser = subparsers.add_parser("edit", help="Edit a trade by id")
    edit_parser.add_argument("id")
    _add_trade_fields(edit_parser, required=False)

    delete_parser = subparsers.add_parser("delete", help="Delete a trade by id")
    delete_parser.add_argument("id")

    import_parser = subparsers.add_parser("import", help="Import an exported JSON file")
    import_parser.add_argument("file")

    export_parser = subparsers.add_parser("export", help="Export all trades to JSON")
    export_parser.add_argument("--dir")

    clear_parser = subparsers.add_parser("clear", help="Delete every trade")
    clear_parser.add_argument("--yes", action="store_true")

    stats_parser = subparsers.add_parser("stats", help="Performance dashboard")
    _add_filter_fields(stats_parser)
    stats_parser.add_argument("--order", choices=["storage", "chronological"], default="storage")
    stats_parser.add_argument("--details", action="store_true", help="Include weekday, price and equity breakdowns")

    calendar_parser = subparsers.add_parser("calendar", help="Calendar P/L for a year or month")
    calendar_parser.add_argument("--year", type=int)
    calendar_parser.add_argument("--month", type=int, choices=range(1, 13))

    backend_parser = subparsers.add_parser("backend", help="Show or switch the storage backend")
    backend_parser.add_argument("kind", nargs="?", choices=["localStorage", "fileStorage", "spreadsheet"])
    backend_parser.add_argument("--path", help="File path for file based backends")

    backup_parser = subparsers.add_parser("backup", help="Configure automatic backups")
    toggle = backup_parser.add_mutually_exclusive_group()
    toggle.add_argument("--enable", action="store_true")
    toggle.add_argument("--disable", action="store_true")
    backup_parser.add_argument("--interval", choices=["daily", "weekly", "monthly"])

    prefs_parser = subparsers.add_parser("prefs", help="Show or change display preferences")
    prefs_parser.add_argument("--theme", choices=["light", "dark", "toggle"])
    prefs_parser.add_argument("--view", choices=["list", "grid"])
    prefs_parser.add_argument("--date-format", dest="date_format", choices=["MM/DD/YYYY", "DD/MM/YYYY", "YYYY-MM-DD"])
    prefs_parser.add_argument("--reset", action="store_true")

    report_parser = subparsers.add_parser("report", help="Monthly P/L spreadsheet report")
    report_parser.add_argument("--output", default=f"pnl_report_{date.today().year}.csv")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        manager, preferences = build_manager()
        print(asyncio.run(run_command(args, manager, preferences)))
    except AppError as e:
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
