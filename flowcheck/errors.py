"""Exception types shared across the runner."""

from __future__ import annotations


class FlowcheckError(Exception):
    """Base class for all flowcheck errors."""


class ConfigurationError(FlowcheckError):
    """A test configuration cannot run as written (fatal to that configuration only)."""


class DataLoadError(ConfigurationError):
    """A data file is missing, unreadable, or in an unsupported format."""


class MissingEnvironmentVariable(ConfigurationError):
    def __init__(self, name: str):
        super().__init__(
            f"Environment variable {name} is not defined. Please set it in your .env file."
        )
        self.name = name


class StepError(FlowcheckError):
    """An action failed. Retryable by the scheduler."""


class UnknownActionError(StepError):
    def __init__(self, action: str):
        super().__init__(f"Unknown action: {action}")
        self.action = action


class VisualMismatchError(StepError):
    def __init__(self, snapshot_name: str, diff_pixels: int):
        super().__init__(
            f"Visual regression detected: {diff_pixels} pixels differ. "
            "Run 'flowcheck approve' to accept changes."
        )
        self.snapshot_name = snapshot_name
        self.diff_pixels = diff_pixels


class DuplicateActionError(FlowcheckError):
    def __init__(self, name: str):
        super().__init__(f"Action '{name}' is already registered")
        self.name = name
