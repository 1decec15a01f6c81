"""CLI entry point for the surveillance aircraft analysis.

Configures logging from the YAML config, then loads detections and reference
layers, enriches them, and writes the tables, charts and HTML report.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict

from spyplanes.config import load_config
from spyplanes.pipeline import run


def configure_logging(log_cfg: Dict[str, object]) -> None:
    """Configure root logger with both file and console handlers."""

    log_dir = Path(log_cfg.get("dir", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    filename = log_cfg.get("filename", "spyplanes.log")
    log_path = log_dir / filename
    level_name = str(log_cfg.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s - %(levelname)s - %(message)s"
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    file_handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(fmt))
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(fmt))

    root.addHandler(file_handler)
    root.addHandler(stream_handler)
    root.info("Logging to %s (level=%s)", log_path, level_name)


def main(config_path: str = "config/spyplanes.yaml") -> None:
    cfg = load_config(config_path)
    configure_logging(cfg.get("logging", {}) or {})
    logging.info("Using config %s", config_path)

    report_path = run(cfg)
    logging.info("Report written to %s", report_path)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Surveillance aircraft detection analysis.")
    parser.add_argument(
        "-c",
        "--config",
        default="config/spyplanes.yaml",
        help="Path to YAML config file.",
    )
    args = parser.parse_args()
    main(args.config)
