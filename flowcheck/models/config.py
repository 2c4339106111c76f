"""Configuration models for the test runner."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ViewportConfig(BaseModel):
    width: int = 1280
    height: int = 720


def _stringify(values: dict | None) -> dict | None:
    if not isinstance(values, dict):
        return values
    return {str(k): "" if v is None else str(v) for k, v in values.items()}


class TestConfig(BaseModel):
    """A single declarative test: which templates to run and with what parameters."""

    id: str
    name: str
    template_id: Optional[str] = None
    workflow: Optional[list[str]] = None  # template ids run in sequence
    parameters: dict[str, str]
    data: Optional[str] = None  # path to a JSON or CSV data file
    device: Optional[str] = None  # Playwright device name, e.g. "iPhone 12"
    viewport: Optional[ViewportConfig] = None
    tags: list[str] = Field(default_factory=list)
    created_at: str = ""

    @field_validator("parameters", mode="before")
    @classmethod
    def coerce_parameter_values(cls, v):
        return _stringify(v)

    @model_validator(mode="after")
    def check_template_or_workflow(self) -> "TestConfig":
        has_template = bool(self.template_id)
        has_workflow = bool(self.workflow)
        if has_template == has_workflow:
            raise ValueError("Exactly one of template_id or workflow must be specified")
        return self

    @property
    def template_ids(self) -> list[str]:
        return list(self.workflow) if self.workflow else [self.template_id]

    @property
    def template_label(self) -> str:
        return self.template_id or "+".join(self.workflow or []) or "unknown"

    @property
    def config_file(self) -> str:
        return f"{self.id}.json"


class FrameworkConfig(BaseModel):
    # Locations
    templates_dir: str = "templates"
    configs_dir: str = "configs"
    data_dir: str = "data"
    plugins_dir: str = "plugins"
    screenshots_dir: str = "screenshots"

    # Browser
    headless: bool = True
    action_timeout_ms: int = 30000

    # Execution defaults (overridable from the CLI)
    default_concurrency: int = 1
    default_retries: int = 0

    # Reporting
    report_formats: list[str] = Field(default_factory=lambda: ["html", "json"])
    report_output_dir: str = "reports"

    @classmethod
    def load(cls, path: str | Path) -> "FrameworkConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    @classmethod
    def load_or_default(cls, path: str | Path) -> "FrameworkConfig":
        if Path(path).exists():
            return cls.load(path)
        return cls()

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
