from __future__ import annotations

import logging
import os

HEADLESS_ENV_VAR = "CLOSEDROOM_HEADLESS"
LOG_LEVEL_ENV_VAR = "CLOSEDROOM_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def env_flag_enabled(var_name: str) -> bool:
    return os.environ.get(var_name, "").strip().lower() in {"1", "true", "yes", "on"}


def resolve_log_level(cli_value: str | None) -> int:
    name = (cli_value or os.environ.get(LOG_LEVEL_ENV_VAR) or DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {name}")
    return level


def configure_logging(cli_value: str | None = None) -> None:
    logging.basicConfig(level=resolve_log_level(cli_value), format=LOG_FORMAT)
