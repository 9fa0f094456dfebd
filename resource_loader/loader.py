# resource_loader/loader.py

from functools import partial
from typing import Any, Callable, Optional, Sequence, Union

import simpy

from resource_loader.batch import BatchCoordinator
from resource_loader.config_channel import CONFIG_KEY, ConfigChannel
from resource_loader.logger import get_logger
from resource_loader.metrics import MetricsCollector
from resource_loader.names import ClassificationError, ResourceClass, check, classify, is_known
from resource_loader.paths import PathResolver
from resource_loader.store import CacheStore, PendingOperation, Waiter, call_soon
from resource_loader.transport import Transport

logger = get_logger(__name__)


def _check_callback(callback: Any) -> None:
    if not callable(callback):
        raise TypeError(f"callback should be callable, got {type(callback).__name__}")


class ResourceLoader:
    """
    Загрузчик ресурсов с дедупликацией и кешем в памяти.

    * get(name, cb)   – классифицирует имя, строит локатор, обращается к
                        транспорту не более одного раза на локатор;
    * get(names, cb)  – пакетная загрузка через BatchCoordinator;
    * set(name, data, cb) – прямая запись в кеш без транспорта.

    callback вызывается как callback(None, payload) при успехе и
    callback(error, None) при ошибке транспорта. Неизвестное имя:
    синхронный ClassificationError, callback не вызывается.
    """

    def __init__(
            self,
            env: simpy.Environment,
            transport: Transport,
            config_channel: ConfigChannel,
            store: Optional[CacheStore] = None,
            resolver: Optional[PathResolver] = None,
            metrics: Optional[MetricsCollector] = None,
    ):
        self.env = env
        self._transport = transport
        self._config = config_channel
        self._store = store if store is not None else CacheStore(env)
        self._resolver = resolver or PathResolver()
        self._metrics = metrics
        self._batch = BatchCoordinator(env, self, metrics=metrics)

    def __len__(self) -> int:
        return len(self._store)

    @property
    def store(self) -> CacheStore:
        return self._store

    # ------------------------------------------------------------------------- #
    #                               Публичный API                              #
    # ------------------------------------------------------------------------- #
    def get(self, name: Union[str, Sequence[str]], callback: Callable) -> "ResourceLoader":
        _check_callback(callback)

        if isinstance(name, (list, tuple)):
            self._batch.get(name, callback)
        else:
            self._get_one(name, callback)
        return self

    def set(self, name: str, data: Any, callback: Callable) -> "ResourceLoader":
        _check_callback(callback)

        if not is_known(name):
            self._reject(ClassificationError(name if isinstance(name, str) else repr(name)))

        cls = classify(name)
        self._store.put(self.key_for(name, cls), data)
        callback(None)

        if cls is ResourceClass.CONFIG:
            self._config.write(data)
        return self

    def request(self, name: Union[str, Sequence[str]]) -> simpy.Event:
        """
        То же, что get(), но в виде события SimPy для `yield` внутри процессов.
        Ошибка классификации по-прежнему выбрасывается синхронно.
        """
        evt = self.env.event()
        self.get(name, partial(_settle_event, evt))
        return evt

    def key_for(self, name: str, cls: ResourceClass) -> str:
        if cls is ResourceClass.CONFIG:
            return CONFIG_KEY
        return self._resolver.resolve(name, cls)

    # ------------------------------------------------------------------------- #
    #                          Классификация и локаторы                        #
    # ------------------------------------------------------------------------- #
    def _classify(self, name: str) -> ResourceClass:
        result = check(name)
        if isinstance(result, ClassificationError):
            self._reject(result)
        return result

    def _reject(self, error: ClassificationError) -> None:
        if self._metrics:
            self._metrics.record_classification_error()
        logger.error(f"t={self.env.now:.2f}: {error}")
        raise error

    def _get_one(self, name: str, callback: Waiter) -> None:
        cls = self._classify(name)
        if cls is ResourceClass.CONFIG:
            self._config.read(callback)
            return

        locator = self._resolver.resolve(name, cls)
        self._load(locator, callback)

    # ------------------------------------------------------------------------- #
    #                       Кеш, дедупликация и транспорт                      #
    # ------------------------------------------------------------------------- #
    def _load(self, locator: str, callback: Waiter) -> None:
        start = self.env.now

        entry = self._store.get_entry(locator)
        if entry is not None:
            logger.debug(f"t={start:.2f}: CACHE HIT {locator}")
            if self._metrics:
                self._metrics.record_hit()
            call_soon(self.env, self._tracked(callback, locator, start, "hit"), None, entry.value)
            return

        pending = self._store.get_pending(locator)
        if pending is None:
            # операция попадает в таблицу до первой приостановки
            pending = self._store.open_pending(locator)
            call_type = "miss"
            logger.debug(f"t={start:.2f}: CACHE MISS {locator}")
            if self._metrics:
                self._metrics.record_miss()
            try:
                evt = self._transport.fetch(locator)
            except Exception:
                self._store.close_pending(locator, pending)
                raise
            evt.callbacks.append(partial(self._on_fetched, locator, pending))
        else:
            call_type = "join"
            logger.debug(f"t={start:.2f}: CACHE JOIN {locator} ({pending.waiters} waiting)")
            if self._metrics:
                self._metrics.record_join()

        pending.add_waiter(self._tracked(callback, locator, start, call_type))

    def _on_fetched(self, locator: str, pending: PendingOperation, evt: simpy.Event) -> None:
        # ошибки не кешируются: следующий get снова вызовет транспорт
        self._store.close_pending(locator, pending)

        if not evt.ok:
            evt.defused = True
            logger.warning(f"t={self.env.now:.2f}: LOAD FAILED {locator}: {evt.value}")
            if self._metrics:
                self._metrics.record_failure()
            pending.reject(evt.value)
            return

        if self._store.put_if_absent(locator, evt.value):
            logger.info(f"t={self.env.now:.2f}: CACHE UPDATE {locator}")
        pending.resolve(evt.value)

    def _tracked(self, callback: Waiter, key: str, start: float, call_type: str) -> Waiter:
        if self._metrics is None:
            return callback

        def wrapper(error, data):
            kind = "error" if error is not None else call_type
            self._metrics.record_cache_call(key, start, self.env.now, kind)
            callback(error, data)

        return wrapper


def _settle_event(evt: simpy.Event, error: Optional[BaseException], data: Any = None) -> None:
    if error is not None:
        evt.fail(error)
    else:
        evt.succeed(data)
