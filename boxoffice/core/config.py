from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off", "")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _getenv_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None

    # Demo back-office login
    admin_email: str
    admin_password: str

    # Issuance
    max_batch_size: int = 1000
    batch_code_max_attempts: int = 5

    # Documents
    asset_fetch_timeout: float = 5.0
    default_organizer_name: str = "TIPAC"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getenv_int("PORT", 8000, minimum=1)
    max_batch_size = _getenv_int("MAX_BATCH_SIZE", 1000, minimum=1)
    max_attempts = _getenv_int("BATCH_CODE_MAX_ATTEMPTS", 5, minimum=1)

    timeout_raw = _getenv("ASSET_FETCH_TIMEOUT", "5.0")
    try:
        asset_fetch_timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"ASSET_FETCH_TIMEOUT must be a number (got {timeout_raw!r})"
        ) from None
    if asset_fetch_timeout <= 0:
        raise ValueError(
            f"ASSET_FETCH_TIMEOUT must be positive (got {asset_fetch_timeout})"
        )

    admin_email = _getenv("ADMIN_EMAIL", "admin@tipac.com").lower()
    admin_password = _getenv("ADMIN_PASSWORD", "Admin123")
    if app_env_raw == "prod" and admin_password == "Admin123":
        raise ValueError("ADMIN_PASSWORD must be set explicitly when APP_ENV=prod")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv_bool("LOG_JSON", False),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        admin_email=admin_email,
        admin_password=admin_password,
        max_batch_size=max_batch_size,
        batch_code_max_attempts=max_attempts,
        asset_fetch_timeout=asset_fetch_timeout,
        default_organizer_name=_getenv("DEFAULT_ORGANIZER_NAME", "TIPAC") or "TIPAC",
    )


SETTINGS = load_settings()
