"""Verbose failure output: page state, failing step and likely causes."""

from __future__ import annotations

from pathlib import Path

import yaml
from rich.console import Console

from flowrunner.errors import ErrorKind, StepError
from flowrunner.models.run_result import StepResult

CONSOLE_ERROR_LIMIT = 10
PAGE_ERROR_LIMIT = 5

_HINTS: dict[ErrorKind, list[str]] = {
    ErrorKind.TIMEOUT: [
        "LIKELY CAUSE: Element not found on page",
        "CHECK: Is the selector correct? Is the element visible?",
        "TRY: Run with --headed to watch the browser",
    ],
    ErrorKind.NOT_FOUND: [
        "LIKELY CAUSE: Text or element does not exist",
        "CHECK: Verify the page content matches expectations",
    ],
}


def diagnose(error: StepError) -> list[str]:
    """Guidance lines for the error's kind (empty if there is none)."""
    return list(_HINTS.get(error.kind, []))


def print_failure_diagnostics(
    console: Console, flow_file: str | Path, result: StepResult, error: StepError,
) -> None:
    debug = result.debug
    console.print("\n[bold]--- DEBUG INFO ---[/bold]", highlight=False)
    console.print(f"Flow file: {Path(flow_file).resolve()}", markup=False, highlight=False)
    if debug:
        console.print(f"Current URL: {debug.page_url}", markup=False, highlight=False)
        console.print(f"Page title: {debug.page_title}", markup=False, highlight=False)
        console.print("\nFailed step definition:", highlight=False)
        console.print(
            yaml.safe_dump(debug.step_definition, indent=2, sort_keys=False).rstrip(),
            markup=False, highlight=False,
        )

    console.print("[bold]--- DIAGNOSIS ---[/bold]")
    for line in diagnose(error):
        console.print(line, markup=False, highlight=False)

    if debug:
        error_logs = [e for e in debug.console_logs if e.type in ("error", "warning")]
        if error_logs:
            console.print("\n[bold]--- BROWSER CONSOLE ERRORS ---[/bold]")
            for entry in error_logs[-CONSOLE_ERROR_LIMIT:]:
                console.print(f"[{entry.type}] {entry.text}", markup=False, highlight=False)

        if debug.page_errors:
            console.print("\n[bold]--- PAGE ERRORS ---[/bold]")
            for message in debug.page_errors[-PAGE_ERROR_LIMIT:]:
                console.print(message, markup=False, highlight=False)

    console.print("\nTO FIX:")
    console.print("- If selector is wrong: Update the flow file", highlight=False)
    console.print("- If page is wrong: Check your app's behavior", highlight=False)
    console.print("[bold]------------------[/bold]\n")
