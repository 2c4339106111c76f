"""Config store — test configurations persisted as one JSON file per config."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from flowcheck.models.config import TestConfig

logger = logging.getLogger(__name__)


class ConfigStore:
    def __init__(self, configs_dir: Path):
        self.configs_dir = Path(configs_dir)
        # file name -> error message for files that could not be loaded
        self.invalid: dict[str, str] = {}

    def _path(self, config_id: str) -> Path:
        return self.configs_dir / f"{config_id}.json"

    def load_configs(self) -> list[TestConfig]:
        """Load every config in the directory, skipping (and recording) invalid files."""
        self.invalid = {}
        if not self.configs_dir.exists():
            return []

        configs = []
        for path in sorted(self.configs_dir.glob("*.json")):
            try:
                with open(path) as f:
                    data = json.load(f)
                configs.append(TestConfig(**data))
            except (json.JSONDecodeError, ValidationError, TypeError) as e:
                logger.error("Invalid config %s: %s", path.name, e)
                self.invalid[path.name] = str(e)
        return configs

    def get_config(self, config_id: str) -> TestConfig | None:
        path = self._path(config_id)
        if not path.exists():
            return None
        with open(path) as f:
            return TestConfig(**json.load(f))

    def save_config(self, config: TestConfig) -> Path:
        self.configs_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(config.id)
        with open(path, "w") as f:
            json.dump(config.model_dump(exclude_none=True), f, indent=2)
        logger.debug("Saved config %s to %s", config.id, path)
        return path

    def delete_config(self, config_id: str) -> bool:
        path = self._path(config_id)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Deleted config %s", config_id)
        return True
