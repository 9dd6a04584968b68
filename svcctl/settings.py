from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Event log
    db_path: str = os.getenv("SVCCTL_DB_PATH", "svcctl.db")
    enable_event_log: bool = _env_bool("SVCCTL_ENABLE_EVENT_LOG", True)
    debug: bool = _env_bool("SVCCTL_DEBUG", False)

    # Supervisor control binary
    hab_bin: str = os.getenv("SVCCTL_HAB_BIN", "hab")
    command_timeout_s: int = _env_int("SVCCTL_COMMAND_TIMEOUT_S", 300)

    # Status probing
    connect_timeout_s: float = _env_float("SVCCTL_CONNECT_TIMEOUT_S", 1.0)
    http_timeout_s: float = _env_float("SVCCTL_HTTP_TIMEOUT_S", 5.0)
    # Whole seconds between convergence polls during restart/reload.
    poll_delay_s: int = _env_int("SVCCTL_POLL_DELAY_S", 1)


settings = Settings()
