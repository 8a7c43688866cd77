import json
import os

import pytest

from tradelab.core.exceptions import ConfigurationError, StorageUnavailableError
from tradelab.infrastructure.kv_store import KeyValueStore
from tradelab.infrastructure.storage.base import StorageBackend, TradeStorage
from tradelab.infrastructure.storage.factory import create_storage
from tradelab.infrastructure.storage.json_file import JsonFileTradeStorage
from tradelab.infrastructure.storage.key_value import KeyValueTradeStorage
from tradelab.infrastructure.storage.spreadsheet import SpreadsheetTradeStorage


@pytest.fixture
def sample_trades(make_trade):
    return [
        make_trade(entry=100, exit=110, qty=10, notes="gap up, held"),
        make_trade(entry=50, exit=60, qty=2, direction="short", max_runup=12.5, max_drawdown=-30, symbol="ES"),
    ]


def test_key_value_store_in_memory():
    store = KeyValueStore()
    assert store.get_item("theme") is None
    store.set_item("theme", "dark")
    assert store.get_item("theme") == "dark"
    assert store.keys() == ["theme"]
    store.remove_item("theme")
    assert store.get_item("theme") is None


def test_key_value_store_persists_to_file(tmp_path):
    path = tmp_path / "local_storage.json"
    KeyValueStore(path).set_item("autoBackup", "true")
    assert KeyValueStore(path).get_item("autoBackup") == "true"


def test_key_value_store_corrupt_file(tmp_path):
    path = tmp_path / "local_storage.json"
    path.write_text("[1, 2")
    with pytest.raises(StorageUnavailableError):
        KeyValueStore(path).get_item("trades")


@pytest.mark.asyncio
async def test_key_value_storage_round_trip(tmp_path, sample_trades):
    path = tmp_path / "local_storage.json"
    await KeyValueTradeStorage(KeyValueStore(path)).save_all(sample_trades)
    loaded = await KeyValueTradeStorage(KeyValueStore(path)).load_all()
    assert loaded == sample_trades


@pytest.mark.asyncio
async def test_key_value_storage_empty_and_corrupt():
    store = KeyValueStore()
    storage = KeyValueTradeStorage(store)
    assert await storage.load_all() == []
    store.set_item("trades", "{not json")
    with pytest.raises(StorageUnavailableError):
        await storage.load_all()


@pytest.mark.asyncio
async def test_json_file_storage(tmp_path, sample_trades):
    path = tmp_path / "data" / "trades.json"
    storage = JsonFileTradeStorage(path)
    assert await storage.load_all() == []

    await storage.save_all(sample_trades)
    records = json.loads(path.read_text(encoding="utf-8"))
    assert records[1]["direction"] == "short"
    assert records[1]["exitPrice"] == 60
    assert await storage.load_all() == sample_trades


@pytest.mark.asyncio
async def test_json_file_storage_errors(tmp_path, sample_trades):
    path = tmp_path / "trades.json"
    path.write_text("garbage")
    with pytest.raises(StorageUnavailableError):
        await JsonFileTradeStorage(path).load_all()

    blocker = tmp_path / "blocker"
    blocker.write_text("")
    with pytest.raises(StorageUnavailableError):
        await JsonFileTradeStorage(blocker / "trades.json").save_all(sample_trades)


@pytest.mark.asyncio
async def test_spreadsheet_storage(tmp_path, sample_trades):
    path = tmp_path / "trades.csv"
    storage = SpreadsheetTradeStorage(path)
    assert await storage.load_all() == []

    await storage.save_all(sample_trades)
    header = path.read_text(encoding="utf-8").splitlines()[0]
    assert header.split(",") == [
        "id", "symbol", "market", "entryPrice", "exitPrice", "quantity",
        "date", "notes", "direction", "profitLoss", "maxRunup", "maxDrawdown",
    ]
    assert await storage.load_all() == sample_trades


@pytest.mark.asyncio
async def test_spreadsheet_storage_empty_collection(tmp_path):
    storage = SpreadsheetTradeStorage(tmp_path / "trades.csv")
    await storage.save_all([])
    assert await storage.load_all() == []


@pytest.mark.asyncio
async def test_spreadsheet_invalid_row(tmp_path):
    path = tmp_path / "trades.csv"
    path.write_text(
        "id,symbol,market,entryPrice,exitPrice,quantity,date,notes,direction,profitLoss,maxRunup,maxDrawdown\n"
        "1,AAPL,stock,abc,10,1,2024-01-01,,long,0,,\n"
    )
    with pytest.raises(StorageUnavailableError):
        await SpreadsheetTradeStorage(path).load_all()


def test_create_storage(tmp_path):
    store = KeyValueStore()
    local = create_storage("localStorage", store)
    assert isinstance(local, KeyValueTradeStorage)
    assert isinstance(local, TradeStorage)

    file_storage = create_storage(StorageBackend.FILE, store, tmp_path / "t.json")
    assert isinstance(file_storage, JsonFileTradeStorage)
    assert file_storage.path == tmp_path / "t.json"

    sheet = create_storage("spreadsheet", store, str(tmp_path / "t.csv"))
    assert isinstance(sheet, SpreadsheetTradeStorage)
    assert sheet.kind is StorageBackend.SPREADSHEET


def test_unknown_backend():
    with pytest.raises(ConfigurationError):
        create_storage("cloud", KeyValueStore())


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "make_backend",
    [
        lambda d: JsonFileTradeStorage(d / "trades.json"),
        lambda d: SpreadsheetTradeStorage(d / "trades.csv"),
        lambda d: KeyValueTradeStorage(KeyValueStore(d / "local_storage.json")),
    ],
    ids=["json", "spreadsheet", "key_value"],
)
async def test_failed_write_leaves_no_temp_file(tmp_path, monkeypatch, sample_trades, make_backend):
    def refuse(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", refuse)
    with pytest.raises(StorageUnavailableError):
        await make_backend(tmp_path).save_all(sample_trades)
    assert list(tmp_path.iterdir()) == []
