from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, List, Optional

from dotenv import load_dotenv

from .errors import InvalidArgumentError


_TRUTHY = {"1", "true", "t", "yes", "y", "on"}
_FALSY = {"0", "false", "f", "no", "n", "off"}


def parse_bool(value: Any) -> Optional[bool]:
    """Booleans and their usual string spellings; None when unrecognized."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        val = value.strip().lower()
        if val in _TRUTHY:
            return True
        if val in _FALSY:
            return False
    return None


def _get_bool_env(name: str, default: bool) -> bool:
    """Parse a boolean environment variable with a safe default."""
    parsed = parse_bool(os.getenv(name))
    return default if parsed is None else parsed


def _split_csv_env(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


def _get_positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip().replace("_", ""))
    except ValueError as exc:
        raise InvalidArgumentError(f"{name} must be an integer") from exc
    if value < 1:
        raise InvalidArgumentError(f"{name} must be greater than zero")
    return value


@dataclass(frozen=True)
class RenderConfig:
    """Rendering defaults shared by every request of the process."""

    display_exceptions: bool = False
    default_hydrator: str | None = None
    page_size: int = 30
    collection_name: str = "items"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, *, use_dotenv: bool = True) -> "RenderConfig":
        """Read HAL_* variables (optionally from a .env file first)."""
        if use_dotenv:
            load_dotenv()
        default_hydrator = os.getenv("HAL_DEFAULT_HYDRATOR", "").strip() or None
        return cls(
            display_exceptions=_get_bool_env(
                "HAL_DISPLAY_EXCEPTIONS", cls.display_exceptions
            ),
            default_hydrator=default_hydrator,
            page_size=_get_positive_int_env("HAL_PAGE_SIZE", cls.page_size),
            collection_name=os.getenv("HAL_COLLECTION_NAME", "").strip()
            or cls.collection_name,
            log_level=os.getenv("HAL_LOG_LEVEL", cls.log_level).strip().upper(),
        )


__all__ = ["RenderConfig", "parse_bool", "_get_bool_env", "_split_csv_env"]
