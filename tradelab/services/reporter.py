from pathlib import Path
from typing import Optional, Sequence, Union

import pandas as pd

from tradelab.config.logging import logger
from tradelab.core.exceptions import ConfigurationError, StorageUnavailableError
from tradelab.core.models import Trade


class ReporterService:
    """
    Builds a month-by-month P/L table from the journal and saves it as a
    spreadsheet (CSV or Excel).
    """

    @staticmethod
    def monthly_pnl(trades: Sequence[Trade]) -> pd.DataFrame:
        """
        One row per calendar month that has trades, with net P/L, trade
        count, win count and cumulative P/L.
        """
        columns = ["Month", "PnL", "Trades", "Wins", "Cumulative"]
        if not trades:
            return pd.DataFrame(columns=columns)

        df = pd.DataFrame(
            {
                "Timestamp": [t.local_time for t in trades],
                "PnL": [t.profit_loss for t in trades],
                "Win": [t.profit_loss > 0 for t in trades],
            }
        )
        df["Month"] = pd.to_datetime(df["Timestamp"]).dt.to_period("M").astype(str)

        monthly = (
            df.groupby("Month")
            .agg(PnL=("PnL", "sum"), Trades=("PnL", "size"), Wins=("Win", "sum"))
            .sort_index()
            .reset_index()
        )
        monthly["Wins"] = monthly["Wins"].astype(int)
        monthly["Cumulative"] = monthly["PnL"].cumsum()
        return monthly[columns]

    @staticmethod
    def generate_monthly_report(
        trades: Sequence[Trade], file_path: Union[str, Path], output_format: Optional[str] = None
    ) -> Path:
        path = Path(file_path).expanduser()
        fmt = output_format or ("excel" if path.suffix.lower() == ".xlsx" else "csv")
        if fmt not in ("csv", "excel"):
            raise ConfigurationError(f"Unsupported report format: {fmt}")

        logger.info("Starting monthly P/L report generation...")
        monthly = ReporterService.monthly_pnl(trades)
        if monthly.empty:
            logger.warning("No trades found. The report will only contain headers.")

        try:
            if fmt == "csv":
                monthly.to_csv(path, index=False)
            else:
                monthly.to_excel(path, sheet_name="Monthly PnL", index=False)
        except OSError as e:
            logger.error(f"Failed to write report {path}: {e}")
            raise StorageUnavailableError(f"Report write error: {e}") from e

        logger.info(f"Successfully saved report to {path}")
        return path
