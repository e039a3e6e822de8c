# methcompare/__main__.py
"""
Run a segmentation comparison from a YAML config.

Usage: python -m methcompare config.yaml [--log-level DEBUG] [--log-file run.log]
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from methcompare.config import PipelineConfig
from methcompare.core.exceptions import CoreError
from methcompare.pipeline import ComparisonPipeline


logger = logging.getLogger("methcompare")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO", log_file: str | Path | None = None) -> None:
    """Console logging at `level`, plus a DEBUG file log when `log_file` is given."""
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level.upper())
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_file else level.upper())
    root_logger.handlers = []
    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="methcompare",
        description="Compare methylation segmentation tools on one chromosome.",
    )
    parser.add_argument("config", help="YAML pipeline configuration")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level (default: INFO)",
    )
    parser.add_argument("--log-file", default=None, help="Also write a DEBUG log to this file")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    try:
        config = PipelineConfig.from_yaml(args.config)
        result = ComparisonPipeline(config).run()
    except CoreError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1

    for key, path in result.outputs.items():
        logger.info("%-24s %s", key, path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
