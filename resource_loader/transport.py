# resource_loader/transport.py

import json
import random
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

import simpy

from resource_loader.logger import get_logger
from resource_loader.metrics import MetricsCollector

logger = get_logger(__name__)


class TransportError(Exception):
    """
    Ошибка получения ресурса. Доставляется в callback первым аргументом
    и никогда не кешируется.
    """

    def __init__(self, locator: str, reason: str = "not found"):
        # args повторяют сигнатуру: SimPy пересоздаёт исключение как type(exc)(*exc.args)
        super().__init__(locator, reason)
        self.locator = locator
        self.reason = reason

    def __str__(self):
        return f"{self.locator}: {self.reason}"


class Transport(ABC):
    """
    Абстрактный транспорт: один вызов fetch равен одному обращению к источнику.
    Повторов внутри нет.
    """

    @abstractmethod
    def fetch(self, locator: str) -> simpy.Event:
        """
        Начать получение ресурса.

        :param locator: путь, построенный PathResolver
        :return: событие SimPy, которое завершится полезной нагрузкой
                 или упадёт с TransportError
        """
        ...


class StaticTransport(Transport):
    """
    Раздача статики: файлы из каталога root и/или словаря files.
    Все запросы проходят через общую очередь с одним обработчиком,
    время обслуживания равномерно распределено в [min_service, max_service].
    Нагрузка *.json разбирается, остальное отдаётся текстом.
    """

    def __init__(
            self,
            env: simpy.Environment,
            root: Optional[str] = None,
            files: Optional[Dict[str, Any]] = None,
            min_service: float = 0.0,
            max_service: float = 0.0,
            metrics: Optional[MetricsCollector] = None,
    ):
        if min_service < 0 or max_service < min_service:
            raise ValueError("service time range must satisfy 0 <= min_service <= max_service")

        self.env = env
        self.root = Path(root) if root else None
        self.files: Dict[str, Any] = dict(files or {})
        self.min_service = min_service
        self.max_service = max_service
        self.metrics = metrics
        self.server = simpy.Resource(env, capacity=1)
        self.calls = 0

    def fetch(self, locator: str) -> simpy.Event:
        self.calls += 1
        return self.env.process(self._fetch_proc(locator))

    def _fetch_proc(self, locator: str):
        arr = self.env.now
        # общая очередь
        with self.server.request() as req:
            yield req
            service_time = random.uniform(self.min_service, self.max_service)
            yield self.env.timeout(service_time)

        finish = self.env.now
        try:
            payload = self._read(locator)
        except TransportError as exc:
            logger.warning(f"t={finish:.2f}: Transport failed {locator}: {exc.reason}")
            if self.metrics:
                self.metrics.record_transport_call(locator, arr, finish, ok=False)
            raise

        logger.info(f"t={finish:.2f}: Served {locator}, wait={finish - arr:.2f}")
        if self.metrics:
            self.metrics.record_transport_call(locator, arr, finish, ok=True)
        return payload

    def _read(self, locator: str) -> Any:
        if locator in self.files:
            raw = self.files[locator]
        elif self.root is not None:
            path = self.root / locator.lstrip("/")
            if not path.is_file():
                raise TransportError(locator)
            try:
                raw = path.read_text(encoding="utf-8")
            except OSError as exc:
                raise TransportError(locator, str(exc)) from exc
        else:
            raise TransportError(locator)

        if locator.endswith(".json") and isinstance(raw, str):
            try:
                return json.loads(raw)
            except ValueError as exc:
                raise TransportError(locator, f"invalid json: {exc}") from exc
        return raw
