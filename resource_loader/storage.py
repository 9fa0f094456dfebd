# resource_loader/storage.py

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from resource_loader.logger import get_logger

logger = get_logger(__name__)


class PermissionSink(ABC):
    """
    Получатель флага «разрешено ли локальное постоянное хранилище».
    Синхронный, возвращаемое значение не используется.
    """

    @abstractmethod
    def set_allowed(self, allowed: bool) -> None:
        ...


class LocalStorage(PermissionSink):
    """
    Простое key/value-хранилище в памяти. Пока хранение запрещено,
    set/get/remove/clear ничего не делают.
    """

    def __init__(self, allowed: bool = False):
        self.allowed = allowed
        self._data: Dict[str, Any] = {}

    def set_allowed(self, allowed: bool) -> None:
        allowed = bool(allowed)
        if allowed != self.allowed:
            logger.info(f"LocalStorage allowed: {self.allowed} -> {allowed}")
        self.allowed = allowed

    def set(self, key: str, value: Any) -> None:
        if self.allowed:
            self._data[key] = value

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        if not self.allowed:
            return default
        return self._data.get(key, default)

    def remove(self, key: str) -> None:
        if self.allowed:
            self._data.pop(key, None)

    def clear(self) -> None:
        if self.allowed:
            self._data.clear()
