"""Environment-driven settings for memoized wrappers."""

from __future__ import annotations

from typing import Mapping, Optional
import logging
import os

from pydantic import BaseModel, ConfigDict, field_validator

ENABLED_ENV = "AUTOMEMO_ENABLED"
LOG_LEVEL_ENV = "AUTOMEMO_LOG_LEVEL"

_FALSE_VALUES = {"0", "false", "no", "off"}

VERBOSE_LEVEL = 15  # Between INFO (20) and DEBUG (10)
logging.addLevelName(VERBOSE_LEVEL, "VERBOSE")


class MemoSettings(BaseModel):
    """Options resolved once, when a function is wrapped."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def log_level_number(self) -> int:
        return int(logging.getLevelName(self.log_level))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MemoSettings":
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        enabled = env.get(ENABLED_ENV, "").strip()
        if enabled:
            values["enabled"] = enabled.lower() not in _FALSE_VALUES
        log_level = env.get(LOG_LEVEL_ENV, "").strip()
        if log_level:
            values["log_level"] = log_level
        return cls(**values)
