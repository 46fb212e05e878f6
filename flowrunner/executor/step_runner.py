"""Step runner: translates flow Steps to Playwright calls."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from pydantic.alias_generators import to_camel

from flowrunner.errors import DriverError, ErrorKind, StepConfigurationError, UnknownStepError
from flowrunner.models.config import RunConfig
from flowrunner.models.flow import Step, StepType

logger = logging.getLogger(__name__)

# Embedded third-party inputs (payment iframes) can be attached before
# they accept input.
IFRAME_FILL_ATTEMPTS = 3
IFRAME_RETRY_DELAY_MS = 500

DEFAULT_WAIT_STATE = "visible"

# Fields holding a duration; every other step field is a string.
_NUMBER_FIELDS = frozenset({"ms"})

StepHandler = Callable[[Page, Step, RunConfig], Awaitable[None]]


def _field(step: Step, name: str, required: bool = True) -> Any:
    """Return a step field after checking its type.

    Raises a configuration error if the field is missing (when required)
    or holds the wrong kind of value.
    """
    value = getattr(step, name)
    if value is None:
        if required:
            raise StepConfigurationError(
                f"{step.type} step requires {to_camel(name)}", field=to_camel(name),
            )
        return None
    if name in _NUMBER_FIELDS:
        valid, expected = isinstance(value, (int, float)), "a number"
    else:
        valid, expected = isinstance(value, str), "a string"
    if isinstance(value, bool) or not valid:
        raise StepConfigurationError(
            f"{step.type} step field {to_camel(name)} must be {expected}, got {value!r}",
            field=to_camel(name), value=value,
        )
    return value


def _driver_error(
    error: PlaywrightError, default_kind: ErrorKind = ErrorKind.DRIVER, **details,
) -> DriverError:
    kind = ErrorKind.TIMEOUT if isinstance(error, PlaywrightTimeoutError) else default_kind
    return DriverError(str(error), kind=kind, **details)


async def _goto(page: Page, step: Step, config: RunConfig) -> None:
    url = _field(step, "url", required=False)
    path = _field(step, "path", required=False)
    if not url:
        if path is None:
            raise StepConfigurationError("goto step requires url or path", fields=["url", "path"])
        url = f"{config.base_url}{path}"
    logger.debug("Navigating to %s", url)
    try:
        await page.goto(url)
    except PlaywrightError as e:
        raise _driver_error(e, ErrorKind.NAVIGATION, url=url, timeout_ms=config.timeout_ms) from e


async def _fill(page: Page, step: Step, config: RunConfig) -> None:
    selector, value = _field(step, "selector"), _field(step, "value")
    logger.debug("Filling %s", selector)
    await page.locator(selector).fill(value)


async def _click(page: Page, step: Step, config: RunConfig) -> None:
    selector = _field(step, "selector", required=False)
    text = _field(step, "text", required=False)
    if selector:
        logger.debug("Clicking: %s", selector)
        await page.locator(selector).click()
    elif text:
        logger.debug("Clicking text: %s", text)
        await page.get_by_text(text, exact=False).click()
    else:
        raise StepConfigurationError(
            "click step requires selector or text", fields=["selector", "text"],
        )


async def _wait_for_url(page: Page, step: Step, config: RunConfig) -> None:
    contains = _field(step, "contains", required=False)
    equals = _field(step, "equals", required=False)
    if contains:
        await page.wait_for_url(lambda url: contains in url)
    elif equals:
        await page.wait_for_url(lambda url: url == equals)
    else:
        raise StepConfigurationError(
            "wait-for-url requires contains or equals", fields=["contains", "equals"],
        )


async def _wait_for_selector(page: Page, step: Step, config: RunConfig) -> None:
    selector = _field(step, "selector")
    state = _field(step, "state", required=False) or DEFAULT_WAIT_STATE
    logger.debug("Waiting for %s to be %s", selector, state)
    await page.locator(selector).wait_for(state=state)


async def _wait_for_text(page: Page, step: Step, config: RunConfig) -> None:
    selector, text = _field(step, "selector"), _field(step, "text")
    await page.locator(selector).filter(has_text=text).wait_for()


async def _wait(page: Page, step: Step, config: RunConfig) -> None:
    ms = _field(step, "ms")
    logger.debug("Waiting %sms...", ms)
    await page.wait_for_timeout(ms)


async def _iframe_fill(page: Page, step: Step, config: RunConfig) -> None:
    """Fill a field inside an iframe, retrying the fill a fixed number of times.

    A frame that never attaches or has no content document fails at once;
    only the fill itself is retried. Errors from earlier attempts are
    dropped and the last one is raised.
    """
    iframe_selector = _field(step, "iframe_selector")
    selector, value = _field(step, "selector"), _field(step, "value")

    iframe = page.locator(iframe_selector)
    await iframe.wait_for(state="attached")
    handle = await iframe.element_handle()
    frame = await handle.content_frame() if handle else None
    if frame is None:
        raise DriverError(
            f"Could not access frame content for {iframe_selector}",
            kind=ErrorKind.FRAME_UNAVAILABLE,
            iframe_selector=iframe_selector,
        )

    last_error: PlaywrightError | None = None
    for attempt in range(1, IFRAME_FILL_ATTEMPTS + 1):
        try:
            await frame.locator(selector).fill(value)
            return
        except PlaywrightError as e:
            last_error = e
            logger.debug("iframe-fill attempt %d/%d failed for %s: %s",
                         attempt, IFRAME_FILL_ATTEMPTS, selector, e)
            if attempt < IFRAME_FILL_ATTEMPTS:
                await page.wait_for_timeout(IFRAME_RETRY_DELAY_MS)

    raise _driver_error(
        last_error,
        selector=selector,
        iframe_selector=iframe_selector,
        attempts=IFRAME_FILL_ATTEMPTS,
    ) from last_error


async def _assert_text(page: Page, step: Step, config: RunConfig) -> None:
    selector, text = _field(step, "selector"), _field(step, "text")
    actual = await page.locator(selector).text_content()
    if not actual or text not in actual:
        raise DriverError(
            f'Expected text "{text}" not found in {selector}',
            kind=ErrorKind.NOT_FOUND,
            selector=selector,
            expected=text,
            actual=actual,
        )


async def _assert_url(page: Page, step: Step, config: RunConfig) -> None:
    contains = _field(step, "contains", required=False)
    equals = _field(step, "equals", required=False)
    if not contains and not equals:
        raise StepConfigurationError(
            "assert-url requires contains or equals", fields=["contains", "equals"],
        )
    current_url = page.url
    if contains and contains not in current_url:
        raise DriverError(
            f'URL does not contain "{contains}". Current: {current_url}',
            kind=ErrorKind.ASSERTION, expected=contains, actual=current_url,
        )
    if equals and current_url != equals:
        raise DriverError(
            f'URL does not equal "{equals}". Current: {current_url}',
            kind=ErrorKind.ASSERTION, expected=equals, actual=current_url,
        )


async def _screenshot(page: Page, step: Step, config: RunConfig) -> None:
    path = Path(_field(step, "path")).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Saving screenshot to %s", path)
    await page.screenshot(path=str(path))


_HANDLERS: dict[StepType, StepHandler] = {
    StepType.GOTO: _goto,
    StepType.FILL: _fill,
    StepType.CLICK: _click,
    StepType.WAIT_FOR_URL: _wait_for_url,
    StepType.WAIT_FOR_SELECTOR: _wait_for_selector,
    StepType.WAIT_FOR_TEXT: _wait_for_text,
    StepType.WAIT: _wait,
    StepType.IFRAME_FILL: _iframe_fill,
    StepType.ASSERT_TEXT: _assert_text,
    StepType.ASSERT_URL: _assert_url,
    StepType.SCREENSHOT: _screenshot,
}


async def execute_step(page: Page, step: Step, config: RunConfig) -> None:
    """Execute a single step on the Playwright page.

    Raises:
        StepError: every failure, with Playwright errors converted to
            DriverError (TIMEOUT for timeouts).
    """
    try:
        handler = _HANDLERS[StepType(step.type)]
    except (TypeError, ValueError):
        raise UnknownStepError(f"Unknown step type: {step.type}", type=step.type) from None

    try:
        await handler(page, step, config)
    except PlaywrightError as e:
        raise _driver_error(
            e, selector=step.selector, timeout_ms=config.timeout_ms,
        ) from e


def _url_predicate(step: Step) -> str:
    if step.contains:
        return f'contains "{step.contains}"'
    return f'equals "{step.equals}"'


_FORMATTERS: dict[StepType, Callable[[Step], str]] = {
    StepType.GOTO: lambda s: f"goto {s.path or s.url}",
    StepType.FILL: lambda s: f"fill {s.selector}",
    StepType.CLICK: lambda s: f"click {s.selector}" if s.selector else f'click text="{s.text}"',
    StepType.WAIT_FOR_URL: lambda s: f"wait-for-url {_url_predicate(s)}",
    StepType.WAIT_FOR_SELECTOR: lambda s: f"wait-for-selector {s.selector}",
    StepType.WAIT_FOR_TEXT: lambda s: f'wait-for-text "{s.text}"',
    StepType.WAIT: lambda s: f"wait {s.ms}ms",
    StepType.IFRAME_FILL: lambda s: f"iframe-fill {s.selector}",
    StepType.ASSERT_TEXT: lambda s: f'assert-text "{s.text}"',
    StepType.ASSERT_URL: lambda s: f"assert-url {_url_predicate(s)}",
    StepType.SCREENSHOT: lambda s: f"screenshot {s.path}",
}


def format_step(step: Step, index: int) -> str:
    """One-line progress summary; ``index`` is 0-based."""
    prefix = f"STEP {index + 1}:"
    try:
        formatter = _FORMATTERS[StepType(step.type)]
    except (TypeError, ValueError):
        return f"{prefix} {step.type}"
    return f"{prefix} {formatter(step)}"
