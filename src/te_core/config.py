from __future__ import annotations

import os
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator


def load_env_file() -> None:
    load_dotenv(override=False)


class Settings(BaseModel):
    """Host-level settings shared by every strategy run (env / ``.env``)."""

    log_level: str = "INFO"
    log_root: str = "logs"
    training_output_dir: str = "training"
    prom_port: Optional[int] = None
    decisions_file: Optional[str] = None
    initial_cash: float = 100_000.0

    @field_validator("log_level", mode="before")
    def _norm_level(cls, v):
        if not v:
            return "INFO"
        return str(v).strip().upper()

    @field_validator("prom_port", mode="before")
    def _blank_port(cls, v):
        if v is None:
            return None
        s = str(v).strip()
        if not s or s.lower() in {"0", "off", "none"}:
            return None
        return int(s)

    @field_validator("decisions_file", mode="before")
    def _blank_path(cls, v):
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @field_validator("initial_cash", mode="before")
    def _cash(cls, v):
        if v is None or str(v).strip() == "":
            return 100_000.0
        return float(str(v).replace("_", ""))


def load_settings() -> Settings:
    load_env_file()
    raw: dict[str, Any] = {
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_root": os.getenv("LOG_ROOT", "logs"),
        "training_output_dir": os.getenv("TRAINING_OUTPUT_DIR", "training"),
        "prom_port": os.getenv("PROM_PORT"),
        "decisions_file": os.getenv("DECISIONS_FILE"),
        "initial_cash": os.getenv("INITIAL_CASH"),
    }
    return Settings.model_validate(raw)
