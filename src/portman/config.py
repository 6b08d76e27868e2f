"""Runtime configuration for portman."""

import json
import os
import tempfile
from dataclasses import dataclass, fields
from pathlib import Path

from portman.errors import ConfigError

VERSION = "0.1.0"

DEFAULT_LOG_FILE = os.path.join(tempfile.gettempdir(), "portman_debug.log")


@dataclass
class AppConfig:
    poll_interval: float = 5.0  # seconds between socket polls
    tick_interval: float = 0.5  # seconds between forced redraws
    status_duration: float = 3.0  # how long a status message stays visible
    kill_timeout: float = 3.0
    reap_wait: float = 0.5
    surplus_ratio: float = 0.9  # share of spare width given to growing columns

    log_file: str = DEFAULT_LOG_FILE
    log_level: str = "WARNING"


def load_config(path: str | Path | None = None) -> AppConfig:
    """
    Load an AppConfig from a JSON file.

    Unknown keys are ignored. A missing path yields the defaults; a file
    that exists but cannot be parsed raises ConfigError.
    """
    if path is None:
        return AppConfig()
    path = Path(path)
    if not path.exists():
        return AppConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a JSON object")

    known = {f.name for f in fields(AppConfig)}
    try:
        return AppConfig(**{k: v for k, v in data.items() if k in known})
    except TypeError as exc:
        raise ConfigError(f"invalid config {path}: {exc}") from exc
