from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Union

from tradelab.config.logging import logger
from tradelab.config.preferences import PreferenceStore
from tradelab.core.exceptions import AppError
from tradelab.core.models import Trade
from tradelab.services.transfer import write_export


class AutoBackup:
    """
    Writes a dated export file when auto-backup is enabled and the
    configured interval has passed since the last backup.
    """

    def __init__(self, preferences: PreferenceStore, export_dir: Union[str, Path]):
        self.preferences = preferences
        self.export_dir = Path(export_dir)

    def is_due(self, now: datetime) -> bool:
        if not self.preferences.auto_backup:
            return False
        last = self.preferences.last_backup
        return last is None or now - last >= self.preferences.backup_interval

    def run_if_due(self, trades: Sequence[Trade], now: datetime) -> Optional[Path]:
        if not self.is_due(now):
            return None
        path = write_export(trades, self.export_dir, now.date())
        self.preferences.set_last_backup(now)
        logger.info(f"Auto-backup written to {path}")
        return path

    def listener(self, now_fn=datetime.now):
        """Manager listener that backs up after changes; failures are logged, not raised."""

        def on_change(trades):
            try:
                self.run_if_due(trades, now_fn())
            except AppError as e:
                logger.error(f"Auto-backup failed: {e}")

        return on_change
