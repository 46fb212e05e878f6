"""Diagnostic collector: console/page-error capture and failure snapshots."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from playwright.async_api import ConsoleMessage, Page

from flowrunner.models.flow import Step
from flowrunner.models.run_result import ConsoleEntry, DiagnosticSnapshot

logger = logging.getLogger(__name__)

CONSOLE_LOG_LIMIT = 20
UNKNOWN = "unknown"

_UNSAFE_FILENAME_RE = re.compile(r"[^\w.-]+")


class DiagnosticCollector:
    """Collects browser console output and page errors for one run."""

    def __init__(self, screenshots_dir: Path):
        self.screenshots_dir = screenshots_dir
        self.console_logs: list[ConsoleEntry] = []
        self.page_errors: list[str] = []

    def _on_console(self, msg: ConsoleMessage) -> None:
        self.console_logs.append(ConsoleEntry(type=msg.type, text=msg.text))

    def _on_page_error(self, error) -> None:
        self.page_errors.append(getattr(error, "message", None) or str(error))

    def attach(self, page: Page) -> None:
        """Attach console and page-error listeners to a page."""
        page.on("console", self._on_console)
        page.on("pageerror", self._on_page_error)

    def detach(self, page: Page) -> None:
        page.remove_listener("console", self._on_console)
        page.remove_listener("pageerror", self._on_page_error)

    async def snapshot(self, page: Page, step: Step) -> DiagnosticSnapshot:
        """Build a snapshot of the page state for a failed step."""
        try:
            page_url = page.url
            page_title = await page.title()
        except Exception as e:
            logger.debug("Could not read page state: %s", e)
            page_url = page_title = UNKNOWN

        return DiagnosticSnapshot(
            page_url=page_url,
            page_title=page_title,
            step_definition=step.definition(),
            console_logs=self.console_logs[-CONSOLE_LOG_LIMIT:],
            page_errors=list(self.page_errors),
        )

    def failure_screenshot_path(self, flow_name: str | None, index: int) -> Path:
        name = _UNSAFE_FILENAME_RE.sub("_", flow_name or "flow")
        return self.screenshots_dir / f"{name}_step-{index}.png"

    async def capture_failure_screenshot(
        self, page: Page, flow_name: str | None, index: int,
    ) -> str | None:
        """Capture a screenshot for the failed step. Returns None on failure."""
        path = self.failure_screenshot_path(flow_name, index)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(path))
        except Exception as e:
            logger.warning("Failed to save screenshot: %s", e)
            return None
        return str(path)
