"""Run orchestrator: coordinates load, resolve, execute, and report stages."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from rich.console import Console

from flowrunner.executor.executor import FlowExecutor
from flowrunner.models.config import GlobalConfig, RunConfig, RunOptions, resolve_config
from flowrunner.models.flow import Flow, load_flow
from flowrunner.models.run_result import RunReport
from flowrunner.reporter.json_report import write_json_report

logger = logging.getLogger(__name__)


class Orchestrator:
    """Coordinates one flow run."""

    def __init__(
        self, global_config: GlobalConfig, options: RunOptions, console: Console | None = None,
    ):
        self.global_config = global_config
        self.options = options
        self.console = console or Console(stderr=True)

    def load(self) -> tuple[Flow, RunConfig]:
        """Load the flow and resolve its run config. Raises StartupError."""
        flow = load_flow(self.options.flow_file)
        config = resolve_config(self.global_config, self.options.env, flow.config)
        return flow, config

    def run(self) -> dict:
        """Load, execute and (optionally) report one flow.

        Returns a dict with the ``report`` and the generated ``reports``
        (format -> path). Startup errors propagate before any browser opens.
        """
        flow, config = self.load()
        return asyncio.run(self._run_flow(flow, config))

    async def _run_flow(self, flow: Flow, config: RunConfig) -> dict:
        flow_label = flow.name or self.options.flow_file
        logger.info("Running flow: %s", flow_label)
        logger.info("Environment: %s", config.env)
        logger.info("Base URL: %s", config.base_url)
        logger.info("Headless: %s", self.options.headless)

        executor = FlowExecutor(self.options, console=self.console)
        report = await executor.execute(flow, config, flow_label)

        return {
            "report": report,
            "total_steps": len(flow.steps),
            "reports": self._report(report),
        }

    def _report(self, report: RunReport) -> dict[str, str]:
        generated: dict[str, str] = {}
        if self.options.report != "json":
            return generated
        try:
            path = write_json_report(report, Path(self.options.reports_dir))
        except OSError as e:
            logger.error("Failed to write JSON report: %s", e)
            return generated
        generated["json"] = str(path)
        logger.info("Report saved to %s", path)
        return generated
