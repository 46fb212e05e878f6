"""JSON report output."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

from flowrunner.models.run_result import RunReport

logger = logging.getLogger(__name__)


def _report_path(output_dir: Path) -> Path:
    stem = f"report_{time.time_ns() // 1_000_000}"
    path = output_dir / f"{stem}.json"
    n = 1
    while path.exists():
        path = output_dir / f"{stem}_{n}.json"
        n += 1
    return path


def write_json_report(report: RunReport, output_dir: Path) -> Path:
    """Write a machine-readable JSON report and return its path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = _report_path(output_dir)
    with open(path, "w") as f:
        json.dump(report.to_json_dict(), f, indent=2)
    logger.debug("JSON report written to %s", path)
    return path
