# scripts/run_simulation.py

import argparse
import sys

from resource_loader.config import Settings
from resource_loader.logger import setup_logging, get_logger
from resource_loader.simulator import Simulator

logger = get_logger(__name__)

SUMMARY_SKIP = ("cache_calls_detail", "transport_calls_detail", "permission_changes", "batches_detail")


def parse_args():
    parser = argparse.ArgumentParser(
        description="Запуск сценария нагрузки на загрузчик ресурсов с заданным конфигом"
    )
    parser.add_argument(
        "-c", "--config",
        metavar="PATH",
        type=str,
        default=None,
        help="Путь до YAML-конфига (по умолчанию: CONFIG_PATH или config/default.yaml)"
    )
    parser.add_argument(
        "--no-export",
        action="store_true",
        help="Не экспортировать метрики в файл"
    )
    parser.add_argument(
        "--plot",
        metavar="LOCATOR",
        nargs="?",
        const="",
        default=None,
        help="Показать графики (для указанного локатора или первого запрошенного)"
    )
    return parser.parse_args()


def main():
    args = parse_args()

    settings = Settings.load(path=args.config)
    if args.no_export:
        settings.output = None

    setup_logging(settings)
    logger.info("Loaded settings and configured logging")

    sim = Simulator(settings)
    sim.run()

    # Печать сводки по метрикам
    summary = sim.metrics.summary()
    print("\n=== Simulation Metrics Summary ===")
    for k, v in summary.items():
        if k in SUMMARY_SKIP:
            continue
        print(f"{k:22}: {v}")

    if args.no_export:
        logger.info("Skipping metrics export (--no-export)")
    elif sim.export_path:
        logger.info(f"Metrics were exported to {sim.export_path}")
    else:
        logger.warning("No output.path in config; nothing was exported")

    if args.plot is not None:
        from resource_loader.visualizer import SimulationVisualizer
        SimulationVisualizer(summary, locator=args.plot or None).show_all()

    return 0


if __name__ == "__main__":
    sys.exit(main())
