"""Flow executor: runs a flow's steps in order against one browser session."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from playwright.async_api import Page
from rich.console import Console

from flowrunner.errors import DriverError, ErrorKind, StepError
from flowrunner.models.config import RunConfig, RunOptions
from flowrunner.models.flow import Flow, Step
from flowrunner.models.run_result import RunReport, StepResult
from flowrunner.reporter.diagnosis import print_failure_diagnostics
from flowrunner.utils.browser import open_session

from .diagnostics import DiagnosticCollector
from .step_runner import execute_step, format_step

logger = logging.getLogger(__name__)


class FlowExecutor:
    """Executes a flow with fail-fast semantics using Playwright."""

    def __init__(self, options: RunOptions, console: Console | None = None):
        self.options = options
        self.console = console or Console(stderr=True)
        self.screenshots_dir = Path(options.screenshots_dir)

    async def execute(self, flow: Flow, config: RunConfig, flow_label: str) -> RunReport:
        """Run every step of ``flow`` in one browser session and return the report.

        The session is opened before the first step and released after the
        last executed one, whatever the outcome. Duration covers the whole
        span from launch to release.
        """
        start_time = time.time()
        logger.debug("Executing %d steps (timeout=%dms)", len(flow.steps), config.timeout_ms)

        collector = DiagnosticCollector(self.screenshots_dir)
        async with open_session(
            config.timeout_ms, headless=self.options.headless, slow_mo=self.options.slowmo,
        ) as page:
            collector.attach(page)
            try:
                results = await self.run_steps(page, flow, config, collector)
            finally:
                collector.detach(page)

        duration_ms = int((time.time() - start_time) * 1000)
        success = all(r.status == "passed" for r in results)

        report = RunReport(
            flow_name=flow_label,
            env=config.env,
            success=success,
            duration_ms=duration_ms,
            steps=results,
            timestamp=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        )
        logger.info("Execution complete: %d passed, %d failed (%dms)",
                    report.passed, report.failed, duration_ms)
        return report

    async def run_steps(
        self, page: Page, flow: Flow, config: RunConfig, collector: DiagnosticCollector,
    ) -> list[StepResult]:
        """Run steps in order, stopping at the first failure.

        A flow whose k-th step fails yields exactly k results.
        """
        results: list[StepResult] = []
        for i, step in enumerate(flow.steps):
            logger.info(format_step(step, i))
            try:
                await execute_step(page, step, config)
            except Exception as e:
                if isinstance(e, StepError):
                    error = e
                else:
                    error = DriverError(str(e), kind=ErrorKind.DRIVER)
                results.append(
                    await self._record_failure(page, flow, step, i + 1, error, collector)
                )
                break
            results.append(StepResult(index=i + 1, type=step.type_name, status="passed"))
        return results

    async def _record_failure(
        self,
        page: Page,
        flow: Flow,
        step: Step,
        index: int,
        error: StepError,
        collector: DiagnosticCollector,
    ) -> StepResult:
        logger.error("ERROR: step %d (%s) - %s", index, step.type, error)

        debug = await collector.snapshot(page, step)
        screenshot = await collector.capture_failure_screenshot(page, flow.name, index)
        if screenshot:
            logger.info("Screenshot saved to %s", screenshot)

        result = StepResult(
            index=index,
            type=step.type_name,
            status="failed",
            error=str(error),
            error_kind=error.kind.value,
            screenshot=screenshot,
            debug=debug,
        )
        if self.options.verbose:
            print_failure_diagnostics(self.console, self.options.flow_file, result, error)
        return result
