# resource_loader/batch.py

from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence, Tuple

import simpy

from resource_loader.logger import get_logger
from resource_loader.metrics import MetricsCollector
from resource_loader.names import ClassificationError, check

if TYPE_CHECKING:
    from resource_loader.loader import ResourceLoader

logger = get_logger(__name__)

Outcome = Tuple[Optional[BaseException], Any]


class BatchCoordinator:
    """
    Пакетная загрузка: по одной единице работы на имя, все единицы идут
    параллельно, результат выдаётся после завершения всех.

    Успех только если успешны все единицы; результаты выстроены в порядке
    входного списка. При ошибках отдаётся первая по порядку входа (не по
    времени завершения). Остальные единицы не отменяются и могут
    дозаполнить кеш.
    """

    def __init__(
            self,
            env: simpy.Environment,
            loader: "ResourceLoader",
            metrics: Optional[MetricsCollector] = None,
    ):
        self.env = env
        self._loader = loader
        self._metrics = metrics

    def get(self, names: Sequence[str], callback: Callable) -> None:
        names = list(names)

        # неверное имя не должно дойти до кеша ни в одной единице
        for name in names:
            result = check(name)
            if isinstance(result, ClassificationError):
                if self._metrics:
                    self._metrics.record_classification_error()
                raise result

        units = [self.env.process(self._unit(name)) for name in names]
        self.env.process(self._join(units, callback))

    # ------------------------------------------------------------------ #
    def _unit(self, name: str):
        try:
            data = yield self._loader.request(name)
        except Exception as exc:
            return exc, None
        return None, data

    def _join(self, units: List[simpy.Process], callback: Callable):
        start = self.env.now
        yield self.env.all_of(units)

        outcomes: List[Outcome] = [unit.value for unit in units]
        error = next((err for err, _ in outcomes if err is not None), None)
        if self._metrics:
            self._metrics.record_batch(start, self.env.now, len(units), ok=error is None)

        if error is not None:
            logger.warning(f"t={self.env.now:.2f}: BATCH of {len(units)} failed: {error}")
            callback(error, None)
        else:
            logger.debug(f"t={self.env.now:.2f}: BATCH of {len(units)} done")
            callback(None, [data for _, data in outcomes])
