"""Environment snapshot helpers."""

from __future__ import annotations

import os
from collections.abc import Mapping
from types import MappingProxyType


def snapshot_environment(environ: Mapping[str, str] | None = None) -> Mapping[str, str]:
    """Freeze the process environment (or a given mapping) into a read-only view."""
    source = os.environ if environ is None else environ
    return MappingProxyType(dict(source))
