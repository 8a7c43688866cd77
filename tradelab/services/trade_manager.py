import asyncio
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar, Union

from tradelab.config.logging import logger
from tradelab.config.preferences import PreferenceStore
from tradelab.core.exceptions import (
    BackendMigrationError,
    ConfigurationError,
    ManagerStateError,
    MalformedInputError,
    StorageUnavailableError,
    TradeNotFoundError,
)
from tradelab.core.models import Trade, new_trade_id
from tradelab.infrastructure.kv_store import KeyValueStore
from tradelab.infrastructure.storage.base import StorageBackend, TradeStorage
from tradelab.infrastructure.storage.factory import create_storage

T = TypeVar("T")
Listener = Callable[[Tuple[Trade, ...]], None]
StorageFactory = Callable[[StorageBackend, Optional[str]], TradeStorage]


class ManagerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class TradeCollectionManager:
    """
    負責交易清單的 載入 -> 修改 -> 儲存 -> 通知 流程，並持有記憶體中的工作集。

    管理器只推送原始交易清單給訂閱者，不計算任何績效指標；
    指標由訂閱者自行呼叫分析服務重新計算。
    """

    def __init__(
        self,
        storage: TradeStorage,
        preferences: Optional[PreferenceStore] = None,
        storage_factory: Optional[StorageFactory] = None,
        persist_timeout: Optional[float] = None,
    ):
        self.storage = storage
        self.preferences = preferences
        self.storage_factory = storage_factory
        self.persist_timeout = persist_timeout
        self.state = ManagerState.UNINITIALIZED
        # True 代表最近一次儲存失敗，記憶體中的資料比後端新
        self.dirty = False
        self._trades: List[Trade] = []
        self._listeners: List[Listener] = []
        self._save_lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @classmethod
    def from_preferences(
        cls,
        store: KeyValueStore,
        preferences: PreferenceStore,
        persist_timeout: Optional[float] = None,
    ) -> "TradeCollectionManager":
        """依使用者偏好的儲存後端組裝管理器 (應用程式啟動時呼叫一次)。"""

        def factory(backend: StorageBackend, file_path: Optional[str] = None) -> TradeStorage:
            return create_storage(backend, store, file_path)

        storage = factory(preferences.storage_backend, preferences.storage_file_path)
        return cls(storage, preferences=preferences, storage_factory=factory, persist_timeout=persist_timeout)

    # ---------- read access ----------
    @property
    def trades(self) -> Tuple[Trade, ...]:
        return tuple(self._trades)

    def get(self, trade_id: str) -> Trade:
        for trade in self._trades:
            if trade.id == trade_id:
                return trade
        raise TradeNotFoundError(f"No trade with id {trade_id}")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """註冊變更通知，回傳取消訂閱的函式。"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        snapshot = self.trades
        for listener in list(self._listeners):
            listener(snapshot)

    # ---------- persistence ----------
    async def _call(self, operation: Awaitable[T]) -> T:
        try:
            if self.persist_timeout:
                return await asyncio.wait_for(operation, self.persist_timeout)
            return await operation
        except asyncio.TimeoutError as e:
            raise StorageUnavailableError(
                f"Storage backend did not respond within {self.persist_timeout} seconds"
            ) from e

    async def load(self):
        """從目前的儲存後端載入交易。失敗時保留原本的狀態與資料。"""
        previous_state = self.state
        self.state = ManagerState.LOADING
        logger.info(f"Loading trades from {self.storage.kind.value}...")
        try:
            trades = await self._call(self.storage.load_all())
        except StorageUnavailableError as e:
            logger.error(f"Error loading trades: {e}")
            self.state = previous_state
            raise
        except BaseException:
            logger.exception("Unexpected error while loading trades")
            self.state = previous_state
            raise

        self._trades = list(trades)
        self.dirty = False
        self.state = ManagerState.READY
        logger.info(f"Loaded {len(self._trades)} trades.")
        self._notify()

    def _get_save_lock(self) -> asyncio.Lock:
        # 鎖綁定目前的 event loop；管理器可能在 asyncio.run 之前建立
        loop = asyncio.get_running_loop()
        if self._save_lock is None or self._lock_loop is not loop:
            self._save_lock = asyncio.Lock()
            self._lock_loop = loop
        return self._save_lock

    async def _persist(self):
        # 每次儲存都在取得鎖之後才擷取工作集，確保最後寫入的是最新的完整清單
        async with self._get_save_lock():
            snapshot = list(self._trades)
            try:
                await self._call(self.storage.save_all(snapshot))
            except StorageUnavailableError as e:
                self.dirty = True
                logger.error(f"Error saving trades: {e}")
                raise
            self.dirty = False

    async def _commit(self):
        try:
            await self._persist()
        finally:
            self._notify()

    def _require_ready(self):
        if self.state is not ManagerState.READY:
            raise ManagerStateError(f"Trade manager is {self.state.value}; call load() first")

    def _with_unique_id(self, trade: Trade, taken: set) -> Trade:
        if trade.id in taken:
            fresh = trade.revise(id=new_trade_id())
            logger.warning(f"Trade id {trade.id} already exists, reassigned to {fresh.id}")
            trade = fresh
        taken.add(trade.id)
        return trade

    # ---------- mutations ----------
    async def add(self, trade: Trade) -> Trade:
        self._require_ready()
        if not isinstance(trade, Trade):
            raise MalformedInputError(f"Expected a Trade, got {type(trade).__name__}")
        trade = self._with_unique_id(trade, {t.id for t in self._trades})
        self._trades.insert(0, trade)
        logger.info(f"Added trade {trade.id} ({trade.display_symbol} {trade.direction} {trade.profit_loss:+.2f})")
        await self._commit()
        return trade

    async def update(self, trade: Trade) -> Trade:
        """以相同 ID 取代既有交易，位置不變。"""
        self._require_ready()
        if not isinstance(trade, Trade):
            raise MalformedInputError(f"Expected a Trade, got {type(trade).__name__}")
        for index, existing in enumerate(self._trades):
            if existing.id == trade.id:
                self._trades[index] = trade
                break
        else:
            raise TradeNotFoundError(f"No trade with id {trade.id}")
        logger.info(f"Updated trade {trade.id}")
        await self._commit()
        return trade

    async def delete(self, trade_id: str) -> Trade:
        self._require_ready()
        removed = self.get(trade_id)
        self._trades = [t for t in self._trades if t.id != trade_id]
        logger.info(f"Deleted trade {trade_id}")
        await self._commit()
        return removed

    async def import_bulk(self, trades: Iterable[Trade]) -> List[Trade]:
        """匯入多筆交易：全部放在清單最前面，只儲存一次。"""
        self._require_ready()
        taken = {t.id for t in self._trades}
        imported = [self._with_unique_id(t, taken) for t in trades]
        self._trades = imported + self._trades
        logger.info(f"Imported {len(imported)} trades.")
        await self._commit()
        return imported

    async def clear(self):
        self._require_ready()
        count = len(self._trades)
        self._trades = []
        logger.info(f"Cleared {count} trades.")
        await self._commit()

    async def set_backend(self, kind: Union[str, StorageBackend], file_path: Optional[Union[str, Path]] = None):
        """
        切換儲存後端：從舊後端讀出完整清單，寫入新後端，
        成功之後才更新偏好設定並改用新後端。
        """
        self._require_ready()
        backend = kind if isinstance(kind, StorageBackend) else StorageBackend.parse(kind)
        if self.storage_factory is None:
            raise ConfigurationError("No storage factory configured; cannot switch backends")

        path = str(file_path) if file_path else None
        new_storage = self.storage_factory(backend, path)
        logger.info(f"Migrating trades from {self.storage.kind.value} to {backend.value}...")

        async with self._get_save_lock():
            try:
                if self.dirty:
                    logger.warning("Unsaved changes in memory; migrating the in-memory trades.")
                    trades = list(self._trades)
                else:
                    trades = await self._call(self.storage.load_all())
            except StorageUnavailableError as e:
                logger.error(f"Migration aborted, could not read {self.storage.kind.value}: {e}")
                raise BackendMigrationError(f"Could not read trades from {self.storage.kind.value}: {e}") from e

            try:
                await self._call(new_storage.save_all(trades))
                if self.preferences is not None:
                    self.preferences.set_storage_backend(backend, path)
            except StorageUnavailableError as e:
                logger.error(f"Migration to {backend.value} failed, keeping {self.storage.kind.value}: {e}")
                raise BackendMigrationError(f"Could not write trades to {backend.value}: {e}") from e

            self.storage = new_storage
            self._trades = trades
            self.dirty = False

        logger.info(f"Storage backend switched to {backend.value} ({len(trades)} trades).")
        self._notify()
