# resource_loader/config_channel.py

"""
Канал конфигурации клиента.

Состояния
---------
* UNLOADED – конфигурация ещё не прочитана;
* LOADED   – успешное чтение состоялось, дальше ответы только из кеша.

read() делает не более одного запроса к ConfigReader одновременно
(ключ незавершённой операции "config"). write() всегда передаёт флаг
localStorage в PermissionSink, независимо от состояния; при этом состояние
не меняется, так что последующий read() в UNLOADED всё равно сходит
за конфигурацией.
"""

import json
from abc import ABC, abstractmethod
from enum import Enum
from functools import partial
from typing import Any, Dict, Optional

import simpy

from resource_loader.logger import get_logger
from resource_loader.metrics import MetricsCollector
from resource_loader.storage import PermissionSink
from resource_loader.store import CacheStore, PendingOperation, Waiter, call_soon
from resource_loader.transport import Transport

logger = get_logger(__name__)

CONFIG_KEY = "config"
CONFIG_URL = "/api/v1/config"


class ConfigReader(ABC):
    @abstractmethod
    def read(self) -> simpy.Event:
        """Событие SimPy, завершающееся словарём конфигурации."""
        ...


class TransportConfigReader(ConfigReader):
    """Читает конфигурацию через транспорт по REST-адресу."""

    def __init__(self, env: simpy.Environment, transport: Transport, url: str = CONFIG_URL):
        self.env = env
        self.transport = transport
        self.url = url

    def read(self) -> simpy.Event:
        return self.env.process(self._read_proc())

    def _read_proc(self):
        data = yield self.transport.fetch(self.url)
        if isinstance(data, str):
            data = json.loads(data)
        return data


class ConfigState(Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"


class ConfigChannel:

    def __init__(
            self,
            env: simpy.Environment,
            reader: ConfigReader,
            storage: PermissionSink,
            store: CacheStore,
            metrics: Optional[MetricsCollector] = None,
    ):
        self.env = env
        self._reader = reader
        self._storage = storage
        self._store = store
        self._metrics = metrics
        self.state = ConfigState.UNLOADED

    def read(self, callback: Waiter) -> None:
        if self.state is ConfigState.LOADED:
            entry = self._store.get_entry(CONFIG_KEY)
            logger.debug(f"t={self.env.now:.2f}: CONFIG HIT")
            if self._metrics:
                self._metrics.record_hit()
            call_soon(self.env, callback, None, entry.value)
            return

        pending = self._store.get_pending(CONFIG_KEY)
        if pending is None:
            pending = self._store.open_pending(CONFIG_KEY)
            logger.debug(f"t={self.env.now:.2f}: CONFIG READ issued")
            if self._metrics:
                self._metrics.record_miss()
                self._metrics.record_config_read()
            try:
                evt = self._reader.read()
            except Exception:
                self._store.close_pending(CONFIG_KEY, pending)
                raise
            evt.callbacks.append(partial(self._on_read, pending))
        else:
            logger.debug(f"t={self.env.now:.2f}: CONFIG READ joined ({pending.waiters} waiting)")
            if self._metrics:
                self._metrics.record_join()

        pending.add_waiter(callback)

    def write(self, data: Dict[str, Any]) -> None:
        self._apply_permission(data)

    # ------------------------------------------------------------------ #
    def _on_read(self, pending: PendingOperation, evt: simpy.Event) -> None:
        self._store.close_pending(CONFIG_KEY, pending)

        if not evt.ok:
            evt.defused = True
            logger.warning(f"t={self.env.now:.2f}: CONFIG READ failed: {evt.value}")
            pending.reject(evt.value)
            return

        data = evt.value
        self.state = ConfigState.LOADED
        if self._store.put_if_absent(CONFIG_KEY, data):
            self._apply_permission(data)
        pending.resolve(data)

    def _apply_permission(self, data: Dict[str, Any]) -> None:
        allowed = bool(data.get("localStorage", False))
        self._storage.set_allowed(allowed)
        if self._metrics:
            self._metrics.record_permission(self.env.now, allowed)
