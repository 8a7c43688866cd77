import json
from datetime import datetime, timedelta

import pytest

from tradelab.config.preferences import PreferenceStore
from tradelab.infrastructure.kv_store import KeyValueStore
from tradelab.services.backup import AutoBackup


@pytest.fixture
def preferences():
    return PreferenceStore(KeyValueStore())


def test_disabled_backup_does_nothing(tmp_path, preferences, make_trade):
    backup = AutoBackup(preferences, tmp_path)
    assert backup.run_if_due([make_trade(pnl=1)], datetime(2024, 3, 1)) is None
    assert list(tmp_path.iterdir()) == []


def test_backup_respects_interval(tmp_path, preferences, make_trade):
    preferences.set_auto_backup(True, "daily")
    backup = AutoBackup(preferences, tmp_path)
    now = datetime(2024, 3, 1, 9, 0)

    path = backup.run_if_due([make_trade(pnl=1)], now)
    assert path.name == "trades_export_2024-03-01.json"
    assert len(json.loads(path.read_text(encoding="utf-8"))) == 1
    assert preferences.last_backup == now

    assert backup.run_if_due([], now + timedelta(hours=23)) is None
    later = backup.run_if_due([], now + timedelta(days=1))
    assert later.name == "trades_export_2024-03-02.json"


def test_listener_logs_failures(tmp_path, preferences, make_trade):
    preferences.set_auto_backup(True)
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    on_change = AutoBackup(preferences, blocker).listener(lambda: datetime(2024, 3, 1))
    on_change((make_trade(pnl=1),))
    assert preferences.last_backup is None


def test_unreadable_last_backup_is_replaced(tmp_path, preferences, make_trade):
    preferences.set_auto_backup(True)
    preferences.set("lastBackup", "not-a-date")
    on_change = AutoBackup(preferences, tmp_path).listener(lambda: datetime(2024, 3, 1))
    on_change((make_trade(pnl=1),))
    assert preferences.last_backup == datetime(2024, 3, 1)
    assert (tmp_path / "trades_export_2024-03-01.json").exists()
