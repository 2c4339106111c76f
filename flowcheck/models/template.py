"""Template data structures: reusable, ordered step sequences."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class TemplateParameter(BaseModel):
    name: str
    description: str = ""
    type: str = "string"  # string, number, boolean, array
    example: Optional[str] = None

    @property
    def is_optional(self) -> bool:
        return "optional" in self.description.lower()


class TemplateStep(BaseModel):
    action: str  # built-in action name or plugin name
    params: list[str] = Field(default_factory=list)  # literals or {{placeholders}}

    @field_validator("params", mode="before")
    @classmethod
    def coerce_params(cls, v):
        if isinstance(v, list):
            return [str(p) for p in v]
        return v


class Template(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    required_parameters: list[TemplateParameter] = Field(default_factory=list)
    steps: list[TemplateStep] = Field(default_factory=list)
