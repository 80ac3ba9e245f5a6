"""Helpers for reading and loading environment variables.

Receiver options can be set through TBSK_* variables, either in the process
environment or in `.env` files (python-dotenv).

Precedence for load_environment (default `override_existing=False`):
1) Process environment (`os.environ`)
2) User config `.env` (`~/.tbsk_receiver/.env`)
3) Local project `.env` (current working directory)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from dotenv import dotenv_values

logger = logging.getLogger("tbsk_receiver")

T = TypeVar("T")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_bool(value: str | None) -> bool | None:
    """Parses common boolean string values.

    Returns:
        - True/False when recognized
        - None when value is None or unrecognized
    """
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return None


def _strict_bool(raw: str) -> bool:
    parsed = parse_bool(raw)
    if parsed is None:
        raise ValueError(raw)
    return parsed


def _get_env(name: str, convert: Callable[[str], T]) -> T | None:
    """Reads `name` and converts it; unset → None, invalid → None with warning."""
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        return convert(raw.strip())
    except ValueError:
        logger.warning(f"Ungültiger {name}={raw!r}, ignoriere")
        return None


def get_env_bool(name: str) -> bool | None:
    return _get_env(name, _strict_bool)


def get_env_int(name: str) -> int | None:
    return _get_env(name, int)


def get_env_float(name: str) -> float | None:
    return _get_env(name, float)


def get_env_str(name: str) -> str | None:
    """Returns stripped string from env or None if unset/empty."""
    value = _get_env(name, str)
    return value or None


def load_environment(*, override_existing: bool = False) -> None:
    """Loads `.env` values into `os.environ`.

    With `override_existing=True`, `.env` values replace variables that are
    already set; the user `.env` always wins over the local one.
    """
    from config import USER_CONFIG_DIR

    merged: dict[str, str] = {}
    # Local first, then user (user wins).
    for env_path in (Path(".env"), USER_CONFIG_DIR / ".env"):
        if not env_path.exists():
            continue
        for key, value in dotenv_values(env_path).items():
            if key.startswith("TBSK_") and value is not None:
                merged[key] = value

    for key, value in merged.items():
        if override_existing or key not in os.environ:
            os.environ[key] = value


__all__ = [
    "get_env_bool",
    "get_env_float",
    "get_env_int",
    "get_env_str",
    "load_environment",
    "parse_bool",
]
