from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    rate_limit: str
    rate_limit_enabled: bool
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    cors_allow_credentials: bool
    analytics_enabled: bool
    analytics_db_path: str
    analytics_retention_days: int
    analysis_db_path: str
    progress_ttl_s: float
    progress_retention_s: float
    progress_sweep_interval_s: float
    provider_timeout_s: float
    min_cv_chars: int
    min_job_chars: int
    history_limit: int


settings = Settings(
    api_key=_get_env("API_KEY"),
    rate_limit=_get_env("RATE_LIMIT", "30/minute") or "30/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX"),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", False),
    analytics_enabled=_get_env_bool("ANALYTICS_ENABLED", True),
    analytics_db_path=_get_env("ANALYTICS_DB_PATH", "data/analytics.db") or "data/analytics.db",
    analytics_retention_days=_get_env_int("ANALYTICS_RETENTION_DAYS", 90),
    analysis_db_path=_get_env("ANALYSIS_DB_PATH", "data/analyses.db") or "data/analyses.db",
    progress_ttl_s=_get_env_float("PROGRESS_TTL_S", 900.0),
    progress_retention_s=_get_env_float("PROGRESS_RETENTION_S", 120.0),
    progress_sweep_interval_s=_get_env_float("PROGRESS_SWEEP_INTERVAL_S", 30.0),
    provider_timeout_s=_get_env_float("PROVIDER_TIMEOUT_S", 30.0),
    min_cv_chars=_get_env_int("MIN_CV_CHARS", 100),
    min_job_chars=_get_env_int("MIN_JOB_CHARS", 50),
    history_limit=_get_env_int("HISTORY_LIMIT", 10),
)

if settings.progress_ttl_s <= 0:
    raise RuntimeError("PROGRESS_TTL_S must be greater than 0.")

if settings.provider_timeout_s <= 0:
    raise RuntimeError("PROVIDER_TIMEOUT_S must be greater than 0.")
