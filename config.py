import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

API_VERSION = "1.0.0"


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    environment: str
    log_level: str
    rate_limit_max: int
    rate_limit_window_seconds: int


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        raw = line.strip()
        if not raw or raw.startswith("#") or "=" not in raw:
            continue
        key, value = raw.split("=", maxsplit=1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _parse_int(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def load_settings(env_file: Path = Path(".env")) -> Settings:
    _load_env_file(env_file)

    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_parse_int(os.getenv("PORT"), 8000),
        environment=os.getenv("APP_ENV", "development"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        rate_limit_max=_parse_int(os.getenv("RATE_LIMIT_MAX"), 100),
        rate_limit_window_seconds=_parse_int(os.getenv("RATE_LIMIT_WINDOW_SECONDS"), 15 * 60),
    )
