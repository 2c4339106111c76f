"""Plugin loader — registers custom actions from a directory of Python files.

A plugin is any ``*.py`` file (not starting with ``_``) with a module-level
``action`` object that has a ``name`` string and an ``execute(context, params)``
callable, e.g. a :class:`flowcheck.executor.registry.CustomAction`.
"""

from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from types import ModuleType

from flowcheck.errors import DuplicateActionError

from .registry import ActionRegistry

logger = logging.getLogger(__name__)


def _import_file(path: Path) -> ModuleType:
    spec = importlib.util.spec_from_file_location(f"flowcheck_plugins.{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot import {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _is_valid_action(action) -> bool:
    return (
        action is not None
        and isinstance(getattr(action, "name", None), str)
        and bool(action.name)
        and callable(getattr(action, "execute", None))
    )


def load_plugins(plugins_dir: Path, registry: ActionRegistry) -> list[str]:
    """Register every valid plugin in ``plugins_dir``; returns the loaded names.

    Plugins add to the registry and never replace an existing action. Files
    that fail to import, lack a valid ``action`` or clash with a registered
    name are reported and skipped.
    """
    if not plugins_dir.exists():
        logger.debug("No plugins directory at %s", plugins_dir)
        return []

    loaded = []
    for path in sorted(plugins_dir.glob("*.py")):
        if path.name.startswith("_"):
            continue
        try:
            module = _import_file(path)
        except Exception as e:
            logger.error("Failed to load plugin %s: %s", path.name, e)
            continue

        action = getattr(module, "action", None)
        if not _is_valid_action(action):
            logger.warning("Skipping invalid plugin file: %s", path.name)
            continue

        try:
            registry.register(action.name, action.execute)
        except DuplicateActionError as e:
            logger.error("Plugin %s ignored: %s", path.name, e)
            continue

        loaded.append(action.name)
        logger.info("Loaded plugin: %s", action.name)
    return loaded
