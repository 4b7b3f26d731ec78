from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "SIGNED_QUERY_"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# ----------------------------
# Settings
# ----------------------------

class ExchangeSettings(BaseModel):
    """
    Settings for one exchange run.

    Resolution order (from_env):
      1) explicit overrides passed by the caller
      2) SIGNED_QUERY_* environment variables (optionally loaded from .env)
      3) field defaults
    """
    exchange_dir: str = "requests"
    db_path: str = "exchange.db"
    key_size: int = Field(default=2048)
    barrier_timeout: Optional[float] = None
    log_level: str = "INFO"

    @field_validator("key_size")
    @classmethod
    def _key_size_floor(cls, v: int) -> int:
        if v < 2048:
            raise ValueError("key_size must be at least 2048 bits")
        return v

    @field_validator("barrier_timeout")
    @classmethod
    def _positive_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("barrier_timeout must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        name = str(v).upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"unknown log level: {v}")
        return name

    @classmethod
    def from_env(
        cls,
        overrides: Optional[Mapping[str, Any]] = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
        auto_dotenv: bool = False,
        dotenv_path: Optional[str] = None,
        dotenv_override: bool = False,
    ) -> "ExchangeSettings":
        if auto_dotenv:
            load_dotenv(dotenv_path=dotenv_path, override=dotenv_override)

        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for name in cls.model_fields:
            raw = env.get(ENV_PREFIX + name.upper())
            if raw is None or raw == "":
                continue
            data[name] = raw

        # "none" disables the bounded wait explicitly
        if str(data.get("barrier_timeout", "")).lower() == "none":
            data["barrier_timeout"] = None

        for k, v in (overrides or {}).items():
            if v is not None:
                data[k] = v
        return cls.model_validate(data)


# ----------------------------
# Logging
# ----------------------------

def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """
    Install one stream handler on the package logger (idempotent).
    Returns the package logger.
    """
    logger = logging.getLogger("signed_query")
    logger.setLevel(level if isinstance(level, int) else str(level).upper())

    for h in logger.handlers:
        if getattr(h, "_signed_query", False):
            break
    else:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter(LOG_FORMAT))
        h._signed_query = True  # type: ignore[attr-defined]
        logger.addHandler(h)

    return logger
