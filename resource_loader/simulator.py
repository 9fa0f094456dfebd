# resource_loader/simulator.py

import json
import random
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

import simpy

from resource_loader.client import Client
from resource_loader.config import Settings
from resource_loader.config_channel import ConfigChannel, TransportConfigReader
from resource_loader.loader import ResourceLoader
from resource_loader.logger import get_logger
from resource_loader.metrics import MetricsCollector
from resource_loader.names import ResourceClass, check
from resource_loader.paths import PathResolver
from resource_loader.storage import LocalStorage
from resource_loader.store import CacheStore
from resource_loader.transport import StaticTransport

logger = get_logger(__name__)


class Simulator:
    """
    Фасад сценария нагрузки: строит окружение, транспорт, канал конфигурации,
    загрузчик и клиентов, затем запускает DES.
    """

    def __init__(self, settings: Settings):
        self.cfg = settings
        self.env = simpy.Environment()
        self.metrics = MetricsCollector()
        self.export_path = None

        # фиксируем seed для воспроизводимости
        random.seed(self.cfg.simulator.random_seed)

        # имена проверяем сразу, а не в середине прогона
        for name in self.cfg.simulator.names:
            result = check(name)
            if not isinstance(result, ResourceClass):
                raise result

        self.resolver = PathResolver.from_config(self.cfg.paths)

        # 1) Транспорт
        tcfg = self.cfg.transport
        self.transport = StaticTransport(
            env=self.env,
            root=tcfg.root,
            files=None if tcfg.root else self._synthetic_files(),
            min_service=tcfg.min_service,
            max_service=tcfg.max_service,
            metrics=self.metrics,
        )

        # 2) Хранилище и канал конфигурации
        self.store = CacheStore(self.env)
        self.storage = LocalStorage()
        self.config_channel = ConfigChannel(
            env=self.env,
            reader=TransportConfigReader(self.env, self.transport, url=self.cfg.paths.config_url),
            storage=self.storage,
            store=self.store,
            metrics=self.metrics,
        )

        # 3) Загрузчик
        self.loader = ResourceLoader(
            env=self.env,
            transport=self.transport,
            config_channel=self.config_channel,
            store=self.store,
            resolver=self.resolver,
            metrics=self.metrics,
        )

        # 4) Клиентский генератор
        self._init_clients()

    def _synthetic_files(self) -> Dict[str, Any]:
        files: Dict[str, Any] = {self.cfg.paths.config_url: {"localStorage": True}}
        for name in self.cfg.simulator.names:
            cls = check(name)
            if cls is ResourceClass.CONFIG:
                continue
            locator = self.resolver.resolve(name, cls)
            if cls is ResourceClass.JSON:
                files[locator] = {"name": name}
            else:
                files[locator] = f"<!-- {name} -->"
        return files

    def _pick_key(self, _client_id: str):
        scfg = self.cfg.simulator
        names = scfg.names
        if random.random() < scfg.batch_probability:
            return random.sample(names, min(scfg.batch_size, len(names)))
        return random.choice(names)

    def _init_clients(self) -> None:
        scfg = self.cfg.simulator
        self.client = Client(
            env=self.env,
            request_fn=self.loader.request,
            arrival_rate=scfg.arrival_rate,
            start_time=scfg.start_time,
            key_generator=self._pick_key,
            name_prefix=scfg.client_prefix,
        )

    def run(self) -> None:
        t_end = self.cfg.simulator.sim_time
        logger.info(f"=== Simulation start until t={t_end} ===")

        # Запускаем события до конца
        self.env.run(until=t_end)
        logger.info(
            f"=== Simulation done: cached={len(self.store)}, "
            f"completed={self.client.completed}, failed={self.client.failed} ==="
        )

        # Экспортим результаты
        payload = {
            "settings": self.cfg.model_dump(),
            "metrics": self.metrics.summary()
        }
        if self.cfg.output and self.cfg.output.path:
            fn = Path(self.cfg.output.path).with_suffix("")
            fn = fn.with_name(f"{fn.stem}_{datetime.now():%Y%m%d_%H%M%S}.json")
            fn.parent.mkdir(parents=True, exist_ok=True)
            with open(fn, "w", encoding="utf-8") as out:
                json.dump(payload, out, indent=2, ensure_ascii=False)
            logger.info(f"[Simulator] Metrics exported to {fn}")
            self.export_path = fn
