"""Configuration management for the T53 upload server."""

from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Optional

from apscheduler.triggers.cron import CronTrigger
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_NAME = "t53-upload-server"


def package_version() -> str:
    """Installed distribution version, or the source tree version."""
    try:
        return version(PACKAGE_NAME)
    except PackageNotFoundError:
        return "0.1.0"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_ignore_empty=True,
        extra="ignore",
    )

    ENV: str = "local"
    SERVICE_NAME: str = "t53-upload-server"
    SERVICE_VERSION: str = package_version()
    LOG_LEVEL: str = "INFO"

    # Upload Policy
    T53_FILE_STAGING_DIRECTORY: Path = Path("t53files")
    T53_UPLOAD_USER_AGENT: Optional[str] = None  # None = any user agent
    T53_MIN_FILE_SIZE: int = 0  # bytes, 0 or less = no limit
    T53_MAX_FILE_SIZE: int = 0  # bytes, 0 or less = no limit
    T53_OTP_KEY_FILE: Optional[Path] = None  # file holding the base64 key

    # Schedules (5-field crontab)
    T53_START_MAINTENANCE: Optional[str] = None
    T53_END_MAINTENANCE: Optional[str] = None
    T53_RELOAD_KEY: Optional[str] = None

    # Web Settings
    WEB_BASE_PATH: str = ""
    WEB_ALLOW_PORTS: bool = True
    WEB_STRIP_DOUBLE_SLASH: bool = False
    WEB_METRICS_URL: Optional[str] = None  # None = no metrics endpoint
    # Comma separated proxy addresses trusted for X-Forwarded-For/-Proto
    WEB_FORWARDED_ALLOW_IPS: str = "127.0.0.1"

    # Log Sinks
    LOG_FILE: Optional[Path] = None
    LOG_TELEGRAM_BOT_TOKEN: Optional[str] = None
    LOG_TELEGRAM_CHAT_ID: Optional[str] = None

    @model_validator(mode="after")
    def _validate(self) -> "Settings":
        errors: list[str] = []

        if (
            self.T53_MIN_FILE_SIZE > 0
            and self.T53_MAX_FILE_SIZE > 0
            and self.T53_MIN_FILE_SIZE > self.T53_MAX_FILE_SIZE
        ):
            errors.append(
                f"T53_MIN_FILE_SIZE ({self.T53_MIN_FILE_SIZE}) is greater than "
                f"T53_MAX_FILE_SIZE ({self.T53_MAX_FILE_SIZE})."
            )

        if self.T53_OTP_KEY_FILE is not None and not self.T53_OTP_KEY_FILE.is_file():
            errors.append(f"{self.T53_OTP_KEY_FILE} file does not exist.")

        if self.WEB_METRICS_URL is not None:
            if not self.WEB_METRICS_URL.startswith("/"):
                errors.append("WEB_METRICS_URL must start with a '/'.")
            elif len(self.WEB_METRICS_URL) <= 1:
                errors.append(
                    f"WEB_METRICS_URL must be 2 or greater characters.  Got: {self.WEB_METRICS_URL}"
                )

        for name in ("T53_START_MAINTENANCE", "T53_END_MAINTENANCE", "T53_RELOAD_KEY"):
            expression = getattr(self, name)
            if expression is None:
                continue
            try:
                CronTrigger.from_crontab(expression)
            except ValueError:
                errors.append(f"{name} is invalid cron string: {expression}")

        if errors:
            raise ValueError("; ".join(errors))

        return self

    @property
    def telegram_enabled(self) -> bool:
        """Both Telegram credentials are present."""
        return bool(self.LOG_TELEGRAM_BOT_TOKEN and self.LOG_TELEGRAM_CHAT_ID)


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build settings, optionally reading from a specific .env file."""
    if env_file:
        return Settings(_env_file=env_file)
    return Settings()


@lru_cache
def get_settings() -> Settings:
    """Settings from the process environment, built on first use."""
    return Settings()
