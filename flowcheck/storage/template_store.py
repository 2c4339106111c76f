"""Template store — loads step templates from a directory of JSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from flowcheck.models.template import Template

logger = logging.getLogger(__name__)


class TemplateStore:
    """Resolves template ids to templates.

    Templates are read once and cached; they are treated as immutable for the
    lifetime of the store (one run). Files that cannot be parsed are skipped
    and recorded in ``invalid``, so a config naming one sees a missing template.
    """

    def __init__(self, templates_dir: Path):
        self.templates_dir = Path(templates_dir)
        self._templates: dict[str, Template] | None = None
        self._invalid: dict[str, str] = {}

    def _load(self) -> dict[str, Template]:
        templates: dict[str, Template] = {}
        self._invalid = {}
        if not self.templates_dir.exists():
            logger.warning("Templates directory not found: %s", self.templates_dir)
            return templates

        for path in sorted(self.templates_dir.glob("*.json")):
            try:
                with open(path) as f:
                    data = json.load(f)
                template = Template(**data)
            except (json.JSONDecodeError, ValidationError, TypeError) as e:
                logger.error("Invalid template %s: %s", path.name, e)
                self._invalid[path.name] = str(e)
                continue
            if template.id in templates:
                logger.warning("Duplicate template id '%s' in %s, keeping the first", template.id, path)
                continue
            templates[template.id] = template
        logger.debug("Loaded %d templates from %s", len(templates), self.templates_dir)
        return templates

    def _ensure_loaded(self) -> dict[str, Template]:
        if self._templates is None:
            self._templates = self._load()
        return self._templates

    @property
    def invalid(self) -> dict[str, str]:
        """File name -> error message for template files that could not be loaded."""
        self._ensure_loaded()
        return dict(self._invalid)

    def list_templates(self) -> list[Template]:
        return list(self._ensure_loaded().values())

    def get_template(self, template_id: str) -> Template | None:
        return self._ensure_loaded().get(template_id)
