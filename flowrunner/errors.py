"""Error taxonomy for flow loading and step execution."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    ASSERTION = "assertion"
    NAVIGATION = "navigation"
    FRAME_UNAVAILABLE = "frame_unavailable"
    UNKNOWN_STEP = "unknown_step"
    DRIVER = "driver"


class FlowRunnerError(Exception):
    """Base class for all errors raised by flowrunner."""


class StartupError(FlowRunnerError):
    """The run could not start (missing/unparseable flow or config)."""


class StepError(FlowRunnerError):
    """A single step failed. Carries a kind and structured details."""

    kind: ErrorKind = ErrorKind.DRIVER

    def __init__(self, message: str, kind: ErrorKind | None = None, **details: Any):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.details = details

    def __str__(self) -> str:
        return self.message


class StepConfigurationError(StepError):
    """The step's fields cannot be resolved into an action."""

    kind = ErrorKind.CONFIGURATION


class DriverError(StepError):
    """The browser action itself failed (timeout, missing element, mismatch)."""


class UnknownStepError(StepError):
    """The step type is missing or has no handler."""

    kind = ErrorKind.UNKNOWN_STEP
