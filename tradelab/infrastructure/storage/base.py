from enum import Enum
from typing import List, Protocol, Sequence, runtime_checkable

from tradelab.core.exceptions import ConfigurationError
from tradelab.core.models import Trade

class StorageBackend(str, Enum):
    """可切換的儲存後端，值即為 storagePreference 偏好設定中的字串。"""
    LOCAL = "localStorage"
    FILE = "fileStorage"
    SPREADSHEET = "spreadsheet"

    @classmethod
    def parse(cls, value: str) -> "StorageBackend":
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(b.value for b in cls)
            raise ConfigurationError(f"Unknown storage backend {value!r}. Expected one of: {valid}")


@runtime_checkable
class TradeStorage(Protocol):
    """
    Persistence gateway consumed by the trade manager.

    Implementations always read and write the complete collection.
    Failures surface as StorageUnavailableError; a failed load means the
    collection is unknown, not empty.
    """

    kind: StorageBackend

    async def load_all(self) -> List[Trade]:
        ...

    async def save_all(self, trades: Sequence[Trade]) -> None:
        ...
