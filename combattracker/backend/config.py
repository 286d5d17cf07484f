"""Configuration helpers for backend runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class BackendSettings:
    database_url: str | None
    data_dir: str | None
    host: str
    port: int
    log_level: str


def load_settings() -> BackendSettings:
    port_raw = os.getenv("COMBATTRACKER_PORT", "8000")
    return BackendSettings(
        database_url=os.getenv("COMBATTRACKER_DATABASE_URL"),
        data_dir=os.getenv("COMBATTRACKER_DATA_DIR"),
        host=os.getenv("COMBATTRACKER_HOST", "127.0.0.1"),
        port=int(port_raw),
        log_level=os.getenv("COMBATTRACKER_LOG_LEVEL", "INFO").upper(),
    )
