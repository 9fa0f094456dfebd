import matplotlib.patches as mpatches
import matplotlib.pyplot as plt


class SimulationVisualizer:
    """
    Визуализатор сценария нагрузки:
      - plot_request_flow: диаграмма Ганта запросов к кешу и транспорту для одного локатора
      - plot_transport_timeline: все обращения к транспорту, по дорожке на локатор
    """

    def __init__(self, metrics: dict, locator: str = None):
        self.metrics = metrics
        self.cache_calls = metrics.get("cache_calls_detail", [])
        self.transport_calls = metrics.get("transport_calls_detail", [])

        all_times = [c["finish"] for c in self.cache_calls] + \
                    [c["finish"] for c in self.transport_calls]
        self.t_end = max(all_times) if all_times else 0.0

        # выбираем локатор
        self.locator = locator or (
            self.transport_calls[0]["locator"] if self.transport_calls else None
        )

        # цвета для разных типов ответов кеша
        self.cache_colors = {
            "hit": "#4caf50",
            "join": "#2196f3",
            "miss": "#ff9800",
            "error": "#f44336",
        }

        # подписи для легенды по типам
        self.cache_labels = {
            "hit": "Попадание",
            "join": "Ожидание общего запроса",
            "miss": "Промах",
            "error": "Ошибка транспорта",
        }

    def plot_request_flow(self, ax=None):
        """
        Рисует диаграмму Ганта для запросов:
          Пользователь → Кеш → Транспорт
        """
        if ax is None:
            fig, ax = plt.subplots(figsize=(12, 4))

        lane_y = {"user": 2, "cache": 1, "transport": 0}
        height = 0.3

        # запросы к кешу
        for call in self.cache_calls:
            if call["key"] != self.locator:
                continue
            t0, t1 = call["start"], call["finish"]
            color = self.cache_colors.get(call["type"], "gray")
            ax.broken_barh(
                [(t0, t1 - t0)],
                (lane_y["cache"] - height / 2, height),
                facecolors=color, edgecolors="black"
            )
            ax.annotate(
                "",
                xy=(t0, lane_y["cache"]),
                xytext=(t0, lane_y["user"]),
                arrowprops=dict(arrowstyle="->", color=color)
            )

        # запросы к транспорту
        for src in self.transport_calls:
            if src["locator"] != self.locator:
                continue
            t0, t1 = src["start"], src["finish"]
            color = self.cache_colors["miss"] if src["ok"] else self.cache_colors["error"]
            ax.broken_barh(
                [(t0, t1 - t0)],
                (lane_y["transport"] - height / 2, height),
                facecolors=color, edgecolors="black"
            )
            ax.annotate(
                "",
                xy=(t0, lane_y["transport"]),
                xytext=(t0, lane_y["cache"]),
                arrowprops=dict(arrowstyle="->", color=color)
            )

        ax.set_ylim(-0.5, 2.5)
        ax.set_xlim(0, self.t_end or 1.0)
        ax.margins(x=0)
        ax.set_yticks([lane_y["user"], lane_y["cache"], lane_y["transport"]])
        ax.set_yticklabels(["Пользователь", "Кэш", "Транспорт"])
        ax.set_xlabel("Время")
        ax.set_title(f"Поток запросов для {self.locator}")

        patches = [
            mpatches.Patch(color=self.cache_colors[k], label=self.cache_labels[k])
            for k in self.cache_colors
        ]
        ax.legend(handles=patches, bbox_to_anchor=(1.02, 1), loc="upper left")

        return ax

    def plot_transport_timeline(self, ax=None):
        """
        Дорожка на каждый локатор; отрезок соответствует одному обращению к транспорту.
        При работающей дедупликации отрезки одной дорожки не перекрываются.
        """
        if ax is None:
            fig, ax = plt.subplots(figsize=(12, 3))

        locators = sorted({c["locator"] for c in self.transport_calls})
        height = 0.4

        for y, locator in enumerate(locators):
            spans = [
                (c["start"], c["finish"] - c["start"])
                for c in self.transport_calls if c["locator"] == locator
            ]
            ax.broken_barh(
                spans,
                (y - height / 2, height),
                facecolors=self.cache_colors["miss"], edgecolors="black"
            )

        ax.set_ylim(-0.5, max(len(locators), 1) - 0.5)
        ax.set_xlim(0, self.t_end or 1.0)
        ax.margins(x=0)
        ax.set_yticks(list(range(len(locators))))
        ax.set_yticklabels(locators)
        ax.set_xlabel("Время")
        ax.set_title("Обращения к транспорту")

        return ax

    def show_all(self):
        """
        Выводит оба графика на одной фигуре.
        """
        fig = plt.figure(constrained_layout=True, figsize=(14, 8))
        gs = fig.add_gridspec(3, 1, height_ratios=[2, 1, 2])

        ax1 = fig.add_subplot(gs[0, 0])
        self.plot_request_flow(ax1)

        ax2 = fig.add_subplot(gs[1:, 0])
        self.plot_transport_timeline(ax2)

        plt.show()
