"""Action registry — maps action names to handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from flowcheck.errors import DuplicateActionError

from .actions import BUILTIN_ACTIONS

logger = logging.getLogger(__name__)

# (context, resolved params) -> awaitable; plain functions are accepted too
ActionHandler = Callable[[Any, list[str]], Optional[Awaitable[None]]]


@dataclass
class CustomAction:
    """What a plugin module exposes as its module-level ``action``."""
    name: str
    execute: ActionHandler


class ActionRegistry:
    def __init__(self):
        self._handlers: dict[str, ActionHandler] = {}
        self._builtins: set[str] = set()

    def register(self, name: str, handler: ActionHandler, builtin: bool = False) -> None:
        """Add a handler. Names are unique: re-registering one raises."""
        if not name:
            raise ValueError("Action name must not be empty")
        if name in self._handlers:
            raise DuplicateActionError(name)
        self._handlers[name] = handler
        if builtin:
            self._builtins.add(name)

    def resolve(self, name: str) -> ActionHandler | None:
        return self._handlers.get(name)

    def is_builtin(self, name: str) -> bool:
        return name in self._builtins

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, name: str) -> bool:
        return name in self._handlers


def build_registry(plugins_dir: Path | None = None) -> ActionRegistry:
    """Registry with every built-in action plus any plugins found in ``plugins_dir``."""
    from .plugins import load_plugins

    registry = ActionRegistry()
    for name, handler in BUILTIN_ACTIONS.items():
        registry.register(name, handler, builtin=True)
    if plugins_dir is not None:
        load_plugins(Path(plugins_dir), registry)
    return registry
