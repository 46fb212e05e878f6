"""Configuration models and the layered run-config resolver."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from flowrunner.errors import StartupError

logger = logging.getLogger(__name__)

DEFAULT_ENV = "local"
DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_TIMEOUT_MS = 15000


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EnvConfig(_CamelModel):
    base_url: Optional[str] = None
    timeout_ms: Optional[int] = Field(default=None, gt=0)


class FlowConfig(_CamelModel):
    """Per-flow overrides from the flow file's ``config`` block."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    base_url: Optional[str] = None
    timeout_ms: Optional[int] = Field(default=None, gt=0)


class GlobalConfig(_CamelModel):
    envs: dict[str, EnvConfig] = Field(default_factory=dict)
    default_env: str = DEFAULT_ENV
    default_timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)

    @classmethod
    def load(cls, path: str | Path) -> "GlobalConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls.model_validate(data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(by_alias=True), f, indent=2)


def load_global_config(path: str | Path) -> GlobalConfig:
    """Load the global config, falling back to defaults when the file is absent."""
    try:
        return GlobalConfig.load(path)
    except FileNotFoundError:
        logger.debug("No global config at %s, using defaults", path)
        return GlobalConfig()
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise StartupError(f"Invalid config file {path}: {e}") from e


class RunConfig(_CamelModel):
    """Effective configuration for one run. Immutable once resolved."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    base_url: str = DEFAULT_BASE_URL
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    env: str = DEFAULT_ENV


class RunOptions(BaseModel):
    """Options for a single ``flowrunner run`` invocation."""
    flow_file: str
    env: Optional[str] = None
    headless: bool = True
    slowmo: int = 0
    report: Optional[Literal["json"]] = None
    verbose: bool = False
    screenshots_dir: str = "screenshots"
    reports_dir: str = "reports"


def resolve_env_name(global_config: GlobalConfig | None, env_name: str | None) -> str:
    if env_name:
        return env_name
    if global_config and global_config.default_env:
        return global_config.default_env
    return DEFAULT_ENV


def resolve_config(
    global_config: GlobalConfig | None,
    env_name: str | None,
    flow_config: FlowConfig | None,
) -> RunConfig:
    """Merge flow > environment > global > built-in defaults, field by field."""
    env = resolve_env_name(global_config, env_name)
    env_config = EnvConfig()
    if global_config is not None:
        if env in global_config.envs:
            env_config = global_config.envs[env]
        elif global_config.envs:
            logger.warning("Environment '%s' not defined in config, using defaults", env)
    flow_config = flow_config or FlowConfig()

    base_url = flow_config.base_url or env_config.base_url or DEFAULT_BASE_URL
    timeout_ms = (
        flow_config.timeout_ms
        or env_config.timeout_ms
        or (global_config.default_timeout_ms if global_config else None)
        or DEFAULT_TIMEOUT_MS
    )
    return RunConfig(base_url=base_url, timeout_ms=timeout_ms, env=env)
