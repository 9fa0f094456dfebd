from statistics import mean
from typing import Any, Dict, List, Optional

from resource_loader.logger import get_logger

logger = get_logger(__name__)


class MetricsCollector:
    """
    Сбор и экспорт метрик загрузчика.

    Типы обращений к кешу:
    ----------------------
    * hit   – ответ из готовой записи, без транспорта;
    * join  – присоединение к уже идущему запросу (дедупликация);
    * miss  – первый запрос ключа, вызван транспорт;
    * error – запрос завершился ошибкой транспорта.
    """

    def __init__(self):
        # ---- счётчики событий ----
        self.hits: int = 0
        self.joins: int = 0
        self.misses: int = 0
        self.failures: int = 0
        self.classification_errors: int = 0
        self.config_reads: int = 0

        # ---- «сырые» данные ----
        self.cache_calls: List[Dict[str, Any]] = []
        self.transport_calls: List[Dict[str, Any]] = []
        self.permission_changes: List[Dict[str, Any]] = []
        self.batches: List[Dict[str, Any]] = []

    # ------------------------------------------------------------------ #
    #   Методы‑регистраторы                                              #
    # ------------------------------------------------------------------ #
    def record_hit(self):
        self.hits += 1

    def record_join(self):
        self.joins += 1

    def record_miss(self):
        self.misses += 1

    def record_failure(self):
        self.failures += 1

    def record_classification_error(self):
        self.classification_errors += 1

    def record_config_read(self):
        self.config_reads += 1

    def record_cache_call(self, key: str, start: float, finish: float, call_type: str):
        self.cache_calls.append(
            {
                "key": key,
                "start": start,
                "finish": finish,
                "type": call_type,
            }
        )

    def record_transport_call(self, locator: str, start: float, finish: float, ok: bool):
        self.transport_calls.append(
            {
                "locator": locator,
                "start": start,
                "finish": finish,
                "latency": finish - start,
                "ok": ok,
            }
        )

    def record_permission(self, time: float, allowed: bool):
        self.permission_changes.append({"time": time, "allowed": allowed})

    def record_batch(self, start: float, finish: float, size: int, ok: bool):
        self.batches.append({"start": start, "finish": finish, "size": size, "ok": ok})

    # ------------------------------------------------------------------ #
    #   Сводка результатов                                               #
    # ------------------------------------------------------------------ #
    def transport_calls_for(self, locator: str) -> int:
        return sum(1 for c in self.transport_calls if c["locator"] == locator)

    def summary(self) -> dict:
        total = self.hits + self.joins + self.misses
        latencies = [c["latency"] for c in self.transport_calls]

        calls_by_locator: Dict[str, int] = {}
        for rec in self.transport_calls:
            calls_by_locator.setdefault(rec["locator"], 0)
            calls_by_locator[rec["locator"]] += 1

        data = {
            # агрегаты
            "total_requests": total,
            "hits": self.hits,
            "joins": self.joins,
            "misses": self.misses,
            "failures": self.failures,
            "classification_errors": self.classification_errors,
            "config_reads": self.config_reads,
            "hit_rate": self.hits / total if total else 0.0,
            "dedup_rate": self.joins / total if total else 0.0,
            "transport_calls": len(self.transport_calls),
            "avg_transport_latency": mean(latencies) if latencies else None,
            "calls_by_locator": calls_by_locator,
            "batches": len(self.batches),
            # подробные логи
            "cache_calls_detail": self.cache_calls,
            "transport_calls_detail": self.transport_calls,
            "permission_changes": self.permission_changes,
            "batches_detail": self.batches,
        }
        return data
