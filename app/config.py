"""Environment-driven settings for the admin core."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    api_url: str = "http://localhost:8080"
    api_timeout: float = 10.0
    api_token: str | None = None
    log_level: str = "INFO"
    log_max_entries: int = 100
    app_env: str = "dev"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"


def load_settings(env_file: Path | None = None) -> Settings:
    _load_env_file(env_file if env_file is not None else ROOT / "app" / ".env")
    app_env = os.getenv("APP_ENV", os.getenv("ENV", "dev")).strip().lower() or "dev"
    return Settings(
        api_url=os.getenv("BASIN_API_URL", "").strip().rstrip("/") or "http://localhost:8080",
        api_timeout=_env_float("BASIN_API_TIMEOUT", 10.0),
        api_token=os.getenv("BASIN_API_TOKEN", "").strip() or None,
        log_level=os.getenv("BASIN_LOG_LEVEL", "").strip().upper() or "INFO",
        log_max_entries=_env_int("BASIN_LOG_MAX_ENTRIES", 100),
        app_env=app_env,
    )


def validate_settings(settings: Settings) -> list[str]:
    issues: list[str] = []
    if not settings.api_url:
        issues.append("API base URL is not configured")
    if settings.api_timeout < 1:
        issues.append("API timeout is too low (should be at least 1s)")
    if settings.api_timeout > 60:
        issues.append("API timeout is too high (should be at most 60s)")
    if settings.log_max_entries < 1:
        issues.append("Log buffer size must be positive")
    return issues


def settings_summary(settings: Settings) -> dict:
    return {
        "environment": settings.app_env,
        "api": {"base_url": settings.api_url, "timeout": settings.api_timeout, "token_set": bool(settings.api_token)},
        "logging": {"level": settings.log_level, "max_entries": settings.log_max_entries},
    }
