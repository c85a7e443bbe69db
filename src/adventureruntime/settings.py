"""Configuration helpers for the adventure runtime engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _normalise_path(value: str | None) -> Path | None:
    if value is None:
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    return Path(trimmed).expanduser()


def _normalise_string(value: str | None, *, default: str) -> str:
    if value is None:
        return default

    trimmed = value.strip()
    return trimmed or default


def _parse_busy_timeout(value: str | None) -> float:
    if value is None or not value.strip():
        return 0.0
    try:
        parsed = float(value.strip())
    except ValueError as exc:
        raise ValueError(
            "ADVENTURE_RUNTIME_BUSY_TIMEOUT must be a number of seconds."
        ) from exc
    if parsed < 0:
        raise ValueError("ADVENTURE_RUNTIME_BUSY_TIMEOUT must not be negative.")
    return parsed


def _parse_max_instructions(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise ValueError(
            "ADVENTURE_RUNTIME_MAX_INSTRUCTIONS must be a positive integer."
        ) from exc
    if parsed < 1:
        raise ValueError(
            "ADVENTURE_RUNTIME_MAX_INSTRUCTIONS must be greater than zero."
        )
    return parsed


@dataclass(frozen=True)
class EngineSettings:
    """Runtime settings for the adventure engine.

    The helper reads from environment variables so deployments can tune the
    engine without modifying application code. Empty strings are treated as if
    the variable was unset.
    """

    default_language: str = "en"
    empty_copy_text: str = "empty copy"
    busy_timeout: float = 0.0
    max_instructions: int | None = None
    game_store_dir: Path | None = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "default_language", self.default_language.strip().lower()
        )
        level = self.log_level.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        object.__setattr__(self, "log_level", level)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.
        """

        source = environ if environ is not None else os.environ

        return cls(
            default_language=_normalise_string(
                source.get("ADVENTURE_RUNTIME_DEFAULT_LANGUAGE"), default="en"
            ),
            empty_copy_text=_normalise_string(
                source.get("ADVENTURE_RUNTIME_EMPTY_COPY_TEXT"), default="empty copy"
            ),
            busy_timeout=_parse_busy_timeout(
                source.get("ADVENTURE_RUNTIME_BUSY_TIMEOUT")
            ),
            max_instructions=_parse_max_instructions(
                source.get("ADVENTURE_RUNTIME_MAX_INSTRUCTIONS")
            ),
            game_store_dir=_normalise_path(
                source.get("ADVENTURE_RUNTIME_GAME_STORE_DIR")
            ),
            log_level=_normalise_string(
                source.get("ADVENTURE_RUNTIME_LOG_LEVEL"), default="INFO"
            ),
        )

    def apply_log_level(self) -> None:
        """Set the package logger to the configured level."""

        logging.getLogger("adventureruntime").setLevel(self.log_level)


__all__ = ["EngineSettings"]
