"""Pytest configuration and shared fixtures."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from flowrunner.models.config import EnvConfig, GlobalConfig, RunConfig, RunOptions


# ============================================================================
# Playwright Fakes
# ============================================================================


def create_mock_locator(text: Optional[str] = None) -> Mock:
    """Create a mock Locator: sync builders, async actions."""
    locator = Mock()
    locator.fill = AsyncMock()
    locator.click = AsyncMock()
    locator.wait_for = AsyncMock()
    locator.text_content = AsyncMock(return_value=text)
    locator.element_handle = AsyncMock()
    locator.filter = Mock(return_value=locator)
    return locator


def create_mock_page(url: str = "https://example.com/login") -> Mock:
    """Create a mock Playwright page."""
    page = Mock()
    page.url = url
    page.title = AsyncMock(return_value="Example Page")
    page.goto = AsyncMock()
    page.screenshot = AsyncMock()
    page.wait_for_url = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.locator = Mock(return_value=create_mock_locator())
    page.get_by_text = Mock(return_value=create_mock_locator())
    page.on = Mock()  # Sync callback registration
    page.remove_listener = Mock()
    return page


def fake_session(page: Any, events: Optional[list] = None):
    """Stand-in for open_session that yields ``page`` and records open/close."""
    events = events if events is not None else []

    @asynccontextmanager
    async def _open(*args, **kwargs):
        events.append("open")
        try:
            yield page
        finally:
            events.append("close")

    return Mock(side_effect=_open)


@pytest.fixture
def mock_page() -> Mock:
    return create_mock_page()


@pytest.fixture
def mock_locator():
    """Factory for mock locators."""
    return create_mock_locator


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def run_config() -> RunConfig:
    return RunConfig(base_url="https://example.com", timeout_ms=5000, env="staging")


@pytest.fixture
def global_config() -> GlobalConfig:
    return GlobalConfig(
        envs={
            "local": EnvConfig(base_url="http://localhost:3000"),
            "staging": EnvConfig(base_url="https://staging.example.com", timeout_ms=20000),
        },
        default_env="local",
        default_timeout_ms=15000,
    )


@pytest.fixture
def run_options(tmp_path: Path) -> RunOptions:
    return RunOptions(
        flow_file=str(tmp_path / "login.yaml"),
        screenshots_dir=str(tmp_path / "screenshots"),
        reports_dir=str(tmp_path / "reports"),
    )


# ============================================================================
# Flow Fixtures
# ============================================================================


LOGIN_FLOW_YAML = """\
name: login
config:
  baseUrl: https://app.example.com
  timeoutMs: 5000
steps:
  - type: goto
    path: /login
  - type: fill
    selector: "#email"
    value: user@example.com
  - type: click
    text: Sign in
  - type: wait-for-url
    contains: /dashboard
"""


@pytest.fixture
def login_flow_file(tmp_path: Path) -> Path:
    path = tmp_path / "login.yaml"
    path.write_text(LOGIN_FLOW_YAML)
    return path
