# resource_loader/store.py

from typing import Any, Callable, Dict, List, Optional

import simpy

from resource_loader.logger import get_logger

logger = get_logger(__name__)

# callback(error, payload)
Waiter = Callable[[Optional[BaseException], Any], None]


def call_soon(env: simpy.Environment, fn: Callable, *args) -> None:
    """Вызвать fn(*args) на следующем шаге цикла событий, а не синхронно."""
    evt = env.timeout(0)
    evt.callbacks.append(lambda _evt: fn(*args))


class CacheEntry:
    """
    Запись кеша.
    Attributes:
        value: полезная нагрузка ресурса.
        timestamp: время (env.now) записи.
    """
    __slots__ = ("value", "timestamp")

    def __init__(self, value: Any, timestamp: float):
        self.value = value
        self.timestamp = timestamp


class PendingOperation:
    """
    Незавершённое получение одного ключа.

    Держит список ожидающих callback-ов и завершается ровно один раз:
    resolve() или reject(). Все ожидающие получают одно и то же значение.
    Ожидающий, добавленный после завершения, получает результат
    на следующем шаге цикла событий.
    """

    __slots__ = ("env", "key", "_waiters", "_settled", "_ok", "_value")

    def __init__(self, env: simpy.Environment, key: str):
        self.env = env
        self.key = key
        self._waiters: List[Waiter] = []
        self._settled = False
        self._ok = False
        self._value: Any = None

    def __repr__(self):
        state = "pending" if not self._settled else ("ok" if self._ok else "failed")
        return f"PendingOperation({self.key}, {state}, waiters={len(self._waiters)})"

    @property
    def settled(self) -> bool:
        return self._settled

    @property
    def waiters(self) -> int:
        return len(self._waiters)

    def add_waiter(self, waiter: Waiter) -> None:
        if self._settled:
            call_soon(self.env, self._deliver, waiter)
        else:
            self._waiters.append(waiter)

    def resolve(self, value: Any) -> None:
        self._settle(True, value)

    def reject(self, error: BaseException) -> None:
        self._settle(False, error)

    def _settle(self, ok: bool, value: Any) -> None:
        if self._settled:
            raise RuntimeError(f"{self!r} is already settled")
        self._settled = True
        self._ok = ok
        self._value = value

        # у каждого ожидающего своё событие
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            call_soon(self.env, self._deliver, waiter)

    def _deliver(self, waiter: Waiter) -> None:
        if self._ok:
            waiter(None, self._value)
        else:
            waiter(self._value, None)


class CacheStore:
    """
    Таблица незавершённых операций и готовых записей.

    Один экземпляр принадлежит одному загрузчику; его можно передать явно,
    чтобы несколько независимых кешей жили рядом (например, в тестах).
    """

    def __init__(self, env: simpy.Environment):
        self.env = env
        self._entries: Dict[str, CacheEntry] = {}
        self._pending: Dict[str, PendingOperation] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def keys(self):
        return list(self._entries)

    # ------------------------------------------------------------------ #
    #   Записи                                                           #
    # ------------------------------------------------------------------ #
    def get_entry(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def put(self, key: str, value: Any) -> CacheEntry:
        """Прямая запись (перезаписывает существующую)."""
        entry = CacheEntry(value, self.env.now)
        self._entries[key] = entry
        logger.debug(f"t={self.env.now:.2f}: STORE PUT key={key}")
        return entry

    def put_if_absent(self, key: str, value: Any) -> bool:
        """Побеждает первый записавший. Возвращает True, если запись создана."""
        if key in self._entries:
            logger.debug(f"t={self.env.now:.2f}: STORE KEEP key={key} (already cached)")
            return False
        self._entries[key] = CacheEntry(value, self.env.now)
        logger.debug(f"t={self.env.now:.2f}: STORE FIRST key={key}")
        return True

    # ------------------------------------------------------------------ #
    #   Незавершённые операции                                           #
    # ------------------------------------------------------------------ #
    def get_pending(self, key: str) -> Optional[PendingOperation]:
        return self._pending.get(key)

    def open_pending(self, key: str) -> PendingOperation:
        if key in self._pending:
            raise RuntimeError(f"Pending operation for {key} already exists")
        op = PendingOperation(self.env, key)
        self._pending[key] = op
        return op

    def close_pending(self, key: str, op: PendingOperation) -> None:
        # убираем только свою операцию
        if self._pending.get(key) is op:
            del self._pending[key]
