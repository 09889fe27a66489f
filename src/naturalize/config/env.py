"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import InvalidSettingError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def require_any_env_var(names: Sequence[str]) -> str:
    """Return the first non-blank variable among ``names`` (aliases of one setting)."""

    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    raise MissingConfigurationError(f"Missing configuration for: {' or '.join(names)}")


def env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise InvalidSettingError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise InvalidSettingError(f"{name} must be >= {minimum}, got {value}")
    return value


def env_flag(name: str, *, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY
