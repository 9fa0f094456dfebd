"""
Генератор клиентских запросов к загрузчику.

Client – стационарный поток запросов (постоянная λ или собственная функция
inter-arrival). Ключ запроса: одно имя или список имён (пакет).
"""

from __future__ import annotations

import random
from typing import Any, Callable, Optional

import simpy

from resource_loader.logger import get_logger
from resource_loader.transport import TransportError

logger = get_logger(__name__)


class Client:

    def __init__(
            self,
            env: simpy.Environment,
            request_fn: Callable[[Any], simpy.Event],
            *,
            arrival_rate: Optional[float] = None,
            interarrival_fn: Optional[Callable[[], float]] = None,
            key_generator: Optional[Callable[[str], Any]] = None,
            start_time: float = 0.0,
            name_prefix: str = "Client",
    ):
        self.env = env
        self.request_fn = request_fn
        self.arrival_rate = arrival_rate
        self.interarrival_fn = interarrival_fn or self._default_interarrival
        self.key_generator = key_generator or (lambda cid: cid)
        self.start_time = start_time
        self.name_prefix = name_prefix
        self._counter = 0
        self.completed = 0
        self.failed = 0

        logger.info(
            f"[Client] started: λ={arrival_rate}, start={start_time}, prefix={name_prefix}"
        )
        env.process(self._generate_clients())

    # ------------------------------------------------------------------ #
    def _default_interarrival(self) -> float:
        if self.arrival_rate is None:
            raise ValueError("Either arrival_rate or interarrival_fn must be provided")
        return random.expovariate(self.arrival_rate)

    # ------------------------------------------------------------------ #
    def _generate_clients(self):
        yield self.env.timeout(self.start_time)
        logger.info(f"[Client] generation begins at t={self.env.now:.2f}")
        while True:
            self._counter += 1
            client_id = f"{self.name_prefix}-{self._counter}"
            key = self.key_generator(client_id)

            self.env.process(self._handle_request(client_id, key))

            interval = self.interarrival_fn()
            yield self.env.timeout(interval)

    def _handle_request(self, client_id: str, key: Any):
        start = self.env.now
        logger.debug(f"t={start:.2f}: {client_id} → key={key}")
        try:
            yield self.request_fn(key)
        except TransportError as exc:
            self.failed += 1
            logger.warning(f"t={self.env.now:.2f}: {client_id} failed: {exc}")
            return
        self.completed += 1
        end = self.env.now
        logger.info(f"t={end:.2f}: {client_id} done (wait {end - start:.3f})")
