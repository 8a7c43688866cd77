import dataclasses
from datetime import datetime, timezone

import pytest

from tradelab.core.exceptions import MalformedInputError
from tradelab.core.models import Trade, compute_profit_loss, new_trade_id


def test_long_trade_profit():
    trade = Trade.create("AAPL", "stock", "100", "110", "10", "2024-01-02T10:00")
    assert trade.profit_loss == 100
    assert trade.direction == "long"
    assert trade.date == datetime(2024, 1, 2, 10, 0)


def test_short_trade_profit_and_loss():
    win = Trade.create("ES", "futures", "50", "40", "5", "2024-01-02T10:00", direction="short")
    loss = Trade.create("ES", "futures", "50", "60", "2", "2024-01-02T10:00", direction="short")
    assert win.profit_loss == 50
    assert loss.profit_loss == -20


def test_compute_profit_loss_is_direction_aware():
    assert compute_profit_loss(100, 90, 3, "long") == -30
    assert compute_profit_loss(100, 90, 3, "short") == 30


@pytest.mark.parametrize("raw", ["abc", "nan", "NaN", "inf", "-inf", "", None])
def test_rejects_non_numeric_prices(raw):
    with pytest.raises(MalformedInputError):
        Trade.create("AAPL", "stock", raw, "110", "10", "2024-01-02T10:00")


@pytest.mark.parametrize(
    "entry, exit, qty",
    [("0", "110", "1"), ("-5", "110", "1"), ("100", "110", "0"), ("100", "110", "-2")],
)
def test_rejects_non_positive_values(entry, exit, qty):
    with pytest.raises(MalformedInputError):
        Trade.create("AAPL", "stock", entry, exit, qty, "2024-01-02T10:00")


def test_rejects_bad_direction_symbol_and_date():
    with pytest.raises(MalformedInputError):
        Trade.create("AAPL", "stock", "100", "110", "1", "2024-01-02T10:00", direction="sideways")
    with pytest.raises(MalformedInputError):
        Trade.create("   ", "stock", "100", "110", "1", "2024-01-02T10:00")
    with pytest.raises(MalformedInputError):
        Trade.create("AAPL", "stock", "100", "110", "1", "yesterday")


def test_normalizes_direction_and_numbers():
    trade = Trade.create(" aapl ", "stock", "1,250.5", "1,260.5", "2", "2024-01-02T10:00", direction="SHORT")
    assert trade.symbol == "aapl"
    assert trade.display_symbol == "AAPL"
    assert trade.direction == "short"
    assert trade.entry_price == 1250.5
    assert trade.profit_loss == -20


def test_optional_excursions():
    trade = Trade.create("AAPL", "stock", "100", "110", "1", "2024-01-02", max_runup="", max_drawdown="-12.5")
    assert trade.max_runup is None
    assert trade.max_drawdown == -12.5
    assert trade.date == datetime(2024, 1, 2)


def test_trade_is_immutable():
    trade = Trade.create("AAPL", "stock", "100", "110", "10", "2024-01-02T10:00")
    with pytest.raises(dataclasses.FrozenInstanceError):
        trade.exit_price = 200


def test_revise_recomputes_profit_loss_and_keeps_id():
    trade = Trade.create("AAPL", "stock", "100", "110", "10", "2024-01-02T10:00")
    revised = trade.revise(exit_price=120, date="2024-01-03T09:30")
    assert revised.id == trade.id
    assert revised.profit_loss == 200
    assert revised.date == datetime(2024, 1, 3, 9, 30)
    assert trade.profit_loss == 100

    flipped = trade.revise(direction="short")
    assert flipped.profit_loss == -100


def test_revise_validates():
    trade = Trade.create("AAPL", "stock", "100", "110", "10", "2024-01-02T10:00")
    with pytest.raises(MalformedInputError):
        trade.revise(quantity=0)


def test_ids_are_unique_and_increasing():
    ids = [new_trade_id() for _ in range(200)]
    assert len(set(ids)) == len(ids)
    assert [int(i) for i in ids] == sorted(int(i) for i in ids)


def test_explicit_id_is_kept():
    trade = Trade.create("AAPL", "stock", "100", "110", "1", "2024-01-02", trade_id="1700000000000")
    assert trade.id == "1700000000000"


def test_aware_date_uses_local_time():
    trade = Trade.create("AAPL", "stock", "100", "110", "1", "2024-01-02T10:00:00Z")
    assert trade.date.tzinfo is not None
    expected = datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    assert trade.local_time == expected
    assert trade.day == expected.date()


def test_profit_flags():
    win = Trade.create("AAPL", "stock", "100", "110", "1", "2024-01-02")
    flat = Trade.create("AAPL", "stock", "100", "100", "1", "2024-01-02")
    assert win.is_profit() and not win.is_loss()
    assert not flat.is_profit() and not flat.is_loss()


@pytest.mark.parametrize("field, value", [("market", 5), ("notes", ["a"])])
def test_rejects_non_string_text_fields(field, value):
    kwargs = {"market": "stock", "notes": ""}
    kwargs[field] = value
    with pytest.raises(MalformedInputError):
        Trade(symbol="AAPL", entry_price=100, exit_price=110, quantity=1, date=datetime(2024, 1, 2), **kwargs)
