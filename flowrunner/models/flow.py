"""Flow data structures loaded from YAML or JSON flow files."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from flowrunner.errors import StartupError
from .config import FlowConfig

YAML_SUFFIXES = (".yaml", ".yml")
JSON_SUFFIXES = (".json",)


class StepType(str, Enum):
    GOTO = "goto"
    FILL = "fill"
    CLICK = "click"
    WAIT_FOR_URL = "wait-for-url"
    WAIT_FOR_SELECTOR = "wait-for-selector"
    WAIT_FOR_TEXT = "wait-for-text"
    WAIT = "wait"
    IFRAME_FILL = "iframe-fill"
    ASSERT_TEXT = "assert-text"
    ASSERT_URL = "assert-url"
    SCREENSHOT = "screenshot"


class Step(BaseModel):
    """One declarative action or assertion.

    ``type`` is the only discriminator. Which of the other fields a step
    needs, and what type each must have, depends on its type and is checked
    when the step runs, not here. A malformed step therefore fails the run
    at that step rather than refusing to load the flow. Unknown keys are
    kept so the step can be echoed back verbatim.
    """
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow", frozen=True,
    )

    type: Any = None
    url: Any = None
    path: Any = None
    selector: Any = None
    value: Any = None
    text: Any = None
    contains: Any = None
    equals: Any = None
    state: Any = None
    ms: Any = None
    iframe_selector: Any = None

    @field_validator("type", "value", "text", "contains", "equals", mode="before")
    @classmethod
    def coerce_scalar(cls, v: Any) -> Any:
        # YAML turns `value: 4242424242424242` into an int
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def definition(self) -> dict[str, Any]:
        """The step as written in the flow file."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @property
    def type_name(self) -> Optional[str]:
        """``type`` when it is a string, for results and reports."""
        return self.type if isinstance(self.type, str) else None


class Flow(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    config: Optional[FlowConfig] = None
    steps: list[Step]


def parse_flow_document(content: str, suffix: str) -> Any:
    suffix = suffix.lower()
    if suffix in YAML_SUFFIXES:
        return yaml.safe_load(content)
    if suffix in JSON_SUFFIXES:
        return json.loads(content)
    raise StartupError("Flow file must be .yaml, .yml, or .json")


def load_flow(path: str | Path) -> Flow:
    """Read and parse a flow file.

    Raises:
        StartupError: if the file is missing, has an unsupported suffix,
            cannot be parsed, or does not describe a flow.
    """
    path = Path(path).resolve()
    if not path.exists():
        raise StartupError(f"Flow file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise StartupError(f"Could not read flow file {path}: {e}") from e

    try:
        data = parse_flow_document(content, path.suffix)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise StartupError(f"Could not parse flow file {path}: {e}") from e

    if not isinstance(data, dict):
        raise StartupError(f"Flow file {path} must contain a mapping with a 'steps' list")

    try:
        return Flow.model_validate(data)
    except ValidationError as e:
        raise StartupError(f"Invalid flow file {path}: {e}") from e
