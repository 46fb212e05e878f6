"""Result data structures produced by the flow executor."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ResultModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConsoleEntry(_ResultModel):
    type: str
    text: str


class DiagnosticSnapshot(_ResultModel):
    """Page state captured at the moment a step failed."""
    page_url: str = "unknown"
    page_title: str = "unknown"
    step_definition: dict[str, Any] = Field(default_factory=dict)
    console_logs: list[ConsoleEntry] = Field(default_factory=list)
    page_errors: list[str] = Field(default_factory=list)


class StepResult(_ResultModel):
    """Result of executing a single flow step."""
    index: int  # 1-based
    type: Optional[str] = None
    status: Literal["passed", "failed"] = "passed"
    error: Optional[str] = None
    error_kind: Optional[str] = None
    screenshot: Optional[str] = None
    debug: Optional[DiagnosticSnapshot] = None


class RunReport(_ResultModel):
    flow_name: str
    env: str
    success: bool
    duration_ms: int = 0
    steps: list[StepResult] = Field(default_factory=list)
    timestamp: str

    @property
    def passed(self) -> int:
        return sum(1 for s in self.steps if s.status == "passed")

    @property
    def failed(self) -> int:
        return sum(1 for s in self.steps if s.status == "failed")

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
