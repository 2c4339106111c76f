"""Test config validation — catches problems before a run starts."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from flowcheck.executor.registry import ActionRegistry
from flowcheck.models.config import TestConfig
from flowcheck.storage.template_store import TemplateStore

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"

_ENV_REF_RE = re.compile(r"^\{\{\s*env\.(\w+)\s*\}\}$")
_SELECTOR_PATTERNS = [
    re.compile(r"^#[\w-]+"),  # #id
    re.compile(r"^\.[\w-]+"),  # .class
    re.compile(r"^\[[\w-]+"),  # [attr]
    re.compile(r"^[\w-]+$"),  # tag
    re.compile(r"^[\w-]+\["),  # tag[attr]
]


@dataclass
class ValidationIssue:
    field: str
    message: str
    severity: str = ERROR


@dataclass
class ValidationResult:
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def is_plausible_selector(selector: str) -> bool:
    return any(p.match(selector) for p in _SELECTOR_PATTERNS)


class ConfigValidator:
    """Checks configs against the template store and an environment snapshot."""

    def __init__(
        self,
        templates: TemplateStore,
        env: Mapping[str, str],
        registry: ActionRegistry | None = None,
    ):
        self.templates = templates
        self.env = env
        self.registry = registry

    def validate(self, config: TestConfig) -> ValidationResult:
        result = ValidationResult()
        self._check_templates(config, result)
        self._check_selectors(config, result)
        self._check_env_vars(config, result)
        return result

    def validate_many(self, configs: list[TestConfig]) -> dict[str, ValidationResult]:
        results = {config.id: self.validate(config) for config in configs}
        self._check_duplicate_snapshots(configs, results)
        return results

    def _check_templates(self, config: TestConfig, result: ValidationResult) -> None:
        for template_id in config.template_ids:
            template = self.templates.get_template(template_id)
            if template is None:
                result.errors.append(ValidationIssue(
                    "template_id", f'Template "{template_id}" not found'))
                continue

            for param in template.required_parameters:
                if param.is_optional:
                    continue
                if not config.parameters.get(param.name) and not config.data:
                    result.warnings.append(ValidationIssue(
                        param.name,
                        f'Required parameter "{param.name}" is missing for template "{template_id}"',
                        WARNING,
                    ))

            if self.registry is not None:
                for i, step in enumerate(template.steps):
                    if step.action not in self.registry:
                        result.errors.append(ValidationIssue(
                            f"{template_id}.steps[{i}]",
                            f'Unknown action "{step.action}" in template "{template_id}"',
                        ))

    def _check_selectors(self, config: TestConfig, result: ValidationResult) -> None:
        for key, selector in config.parameters.items():
            if "selector" not in key.lower() or not selector:
                continue
            if selector.startswith("{{"):
                continue
            if not is_plausible_selector(selector):
                result.warnings.append(ValidationIssue(
                    key,
                    f'Selector "{selector}" may be invalid. CSS selectors should start '
                    "with #, ., [ or be a tag name.",
                    WARNING,
                ))

    def _check_env_vars(self, config: TestConfig, result: ValidationResult) -> None:
        for key, value in config.parameters.items():
            match = _ENV_REF_RE.match(value)
            if match and not self.env.get(match.group(1)):
                result.warnings.append(ValidationIssue(
                    key,
                    f'Environment variable "{match.group(1)}" is not set. '
                    "Make sure it's defined in your .env file.",
                    WARNING,
                ))

    @staticmethod
    def _check_duplicate_snapshots(
        configs: list[TestConfig], results: dict[str, ValidationResult],
    ) -> None:
        by_snapshot: dict[str, list[str]] = {}
        for config in configs:
            name = config.parameters.get("snapshotName")
            if name:
                by_snapshot.setdefault(name, []).append(config.id)

        for name, config_ids in by_snapshot.items():
            if len(config_ids) < 2:
                continue
            for config_id in config_ids:
                results[config_id].warnings.append(ValidationIssue(
                    "snapshotName",
                    f'Snapshot name "{name}" is used by multiple configs: '
                    f"{', '.join(config_ids)}. This may cause baseline conflicts.",
                    WARNING,
                ))
