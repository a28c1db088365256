"""Environment-driven settings.

Values are read once when the application is built. Bad numeric values fail
at startup instead of surfacing mid-game.
"""
from __future__ import annotations

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field

from .constants import SPIN_GUARD_SECONDS

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    users_file: str = "users.txt"
    static_dir: str = "public"
    spin_guard_seconds: float = Field(default=SPIN_GUARD_SECONDS, ge=0)
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    log_json: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        values: dict = {}
        if "ROULETTE_USERS_FILE" in env:
            values["users_file"] = env["ROULETTE_USERS_FILE"]
        if "ROULETTE_STATIC_DIR" in env:
            values["static_dir"] = env["ROULETTE_STATIC_DIR"]
        if "ROULETTE_SPIN_GUARD_SECONDS" in env:
            values["spin_guard_seconds"] = float(env["ROULETTE_SPIN_GUARD_SECONDS"])
        if "ROULETTE_HOST" in env:
            values["host"] = env["ROULETTE_HOST"]
        if "ROULETTE_PORT" in env:
            values["port"] = int(env["ROULETTE_PORT"])
        if "ROULETTE_LOG_LEVEL" in env:
            values["log_level"] = env["ROULETTE_LOG_LEVEL"].upper()
        if "ROULETTE_LOG_JSON" in env:
            values["log_json"] = env["ROULETTE_LOG_JSON"].strip().lower() in _TRUTHY
        if "ROULETTE_CORS_ORIGINS" in env:
            values["cors_origins"] = [o.strip() for o in env["ROULETTE_CORS_ORIGINS"].split(",") if o.strip()]
        return cls(**values)


__all__ = ["Settings"]
