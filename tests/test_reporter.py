from datetime import datetime

import pandas as pd
import pytest

from tradelab.core.exceptions import ConfigurationError
from tradelab.services.reporter import ReporterService


def test_monthly_pnl_empty():
    df = ReporterService.monthly_pnl([])
    assert df.empty
    assert list(df.columns) == ["Month", "PnL", "Trades", "Wins", "Cumulative"]


def test_monthly_pnl(make_trade):
    trades = [
        make_trade(pnl=-20, date=datetime(2024, 3, 2)),
        make_trade(pnl=50, date=datetime(2024, 1, 5)),
        make_trade(pnl=10, date=datetime(2024, 1, 20)),
    ]
    df = ReporterService.monthly_pnl(trades)
    assert list(df["Month"]) == ["2024-01", "2024-03"]
    assert list(df["PnL"]) == [60, -20]
    assert list(df["Trades"]) == [2, 1]
    assert list(df["Wins"]) == [2, 0]
    assert list(df["Cumulative"]) == [60, 40]


def test_generate_csv_report(tmp_path, make_trade):
    path = ReporterService.generate_monthly_report(
        [make_trade(pnl=5, date=datetime(2024, 2, 1))], tmp_path / "pnl.csv"
    )
    df = pd.read_csv(path)
    assert df.loc[0, "Month"] == "2024-02"
    assert df.loc[0, "PnL"] == 5


def test_unsupported_format(tmp_path):
    with pytest.raises(ConfigurationError):
        ReporterService.generate_monthly_report([], tmp_path / "pnl.pdf", output_format="pdf")
