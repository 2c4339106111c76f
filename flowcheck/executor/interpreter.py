"""Step interpreter — resolves placeholders and dispatches one step to its action."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from flowcheck.errors import (
    ConfigurationError,
    FlowcheckError,
    MissingEnvironmentVariable,
    StepError,
    UnknownActionError,
)
from flowcheck.models.template import TemplateStep

from .context import ActionContext
from .registry import ActionRegistry

logger = logging.getLogger(__name__)

ENV_PREFIX = "env."


def resolve_param(value: str, params: Mapping[str, str], env: Mapping[str, str]) -> str:
    """Resolve a ``{{key}}`` or ``{{env.NAME}}`` parameter; anything else is a literal.

    Missing parameter keys resolve to an empty string so templates can have
    optional fields. A missing environment variable raises.
    """
    if len(value) < 4 or not (value.startswith("{{") and value.endswith("}}")):
        return value

    key = value[2:-2].strip()
    if key.startswith(ENV_PREFIX):
        name = key[len(ENV_PREFIX):]
        if name not in env:
            raise MissingEnvironmentVariable(name)
        return env[name]

    resolved = params.get(key)
    return "" if resolved is None else str(resolved)


@dataclass
class StepOutcome:
    action: str
    error: Optional[FlowcheckError] = None

    @classmethod
    def success(cls, action: str = "") -> "StepOutcome":
        return cls(action)

    @classmethod
    def failure(cls, action: str, error: FlowcheckError) -> "StepOutcome":
        return cls(action, error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def retryable(self) -> bool:
        """Configuration problems fail the same way on every attempt."""
        return not isinstance(self.error, ConfigurationError)

    @property
    def message(self) -> str:
        if self.error is None:
            return ""
        if not self.action:
            return str(self.error)
        return f"Step failed: {self.action} - {self.error}"


class StepInterpreter:
    """Runs template steps for one browser session."""

    def __init__(
        self,
        context: ActionContext,
        registry: ActionRegistry,
        env: Mapping[str, str],
    ):
        self.context = context
        self.registry = registry
        self.env = env

    async def execute(self, step: TemplateStep, params: Mapping[str, str]) -> StepOutcome:
        action = step.action
        try:
            resolved = [resolve_param(p, params, self.env) for p in step.params]
        except ConfigurationError as e:
            logger.error("  Cannot run step %s: %s", action, e)
            return StepOutcome.failure(action, e)

        # Log the unresolved params so env secrets stay out of the log
        logger.info("  Running step: %s %s", action, ", ".join(step.params))

        handler = self.registry.resolve(action)
        if handler is None:
            return StepOutcome.failure(action, UnknownActionError(action))

        try:
            result = handler(self.context, resolved)
            if inspect.isawaitable(result):
                await result
        except FlowcheckError as e:
            return StepOutcome.failure(action, e)
        except Exception as e:
            return StepOutcome.failure(action, StepError(str(e) or type(e).__name__))
        return StepOutcome.success(action)
