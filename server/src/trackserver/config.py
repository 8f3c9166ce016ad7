"""Server configuration read from environment variables."""
import os
from dataclasses import dataclass, field


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value else default


@dataclass(frozen=True)
class Settings:
    database_path: str = "tracker.db"
    database_timeout: float = 10.0  # seconds
    upload_dir: str = "uploads/screenshots"

    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 30

    screenshot_cap: int = 200
    max_events_per_push: int = 200
    max_upload_bytes: int = 5 * 1024 * 1024

    rate_limit_window_seconds: int = 900
    rate_limit_max_requests: int = 100
    sync_rate_limit_max_requests: int = 300

    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment, falling back to defaults."""
        defaults = cls()
        origins = os.environ.get("CORS_ORIGINS")
        return cls(
            database_path=os.environ.get("DATABASE_PATH", defaults.database_path),
            database_timeout=float(os.environ.get("DATABASE_TIMEOUT", defaults.database_timeout)),
            upload_dir=os.environ.get("UPLOAD_DIR", defaults.upload_dir),
            jwt_secret=os.environ.get("JWT_SECRET", defaults.jwt_secret),
            jwt_algorithm=os.environ.get("JWT_ALGORITHM", defaults.jwt_algorithm),
            jwt_expire_minutes=_int_env("JWT_EXPIRE_MINUTES", defaults.jwt_expire_minutes),
            screenshot_cap=_int_env("SCREENSHOT_CAP", defaults.screenshot_cap),
            max_events_per_push=_int_env("MAX_EVENTS_PER_PUSH", defaults.max_events_per_push),
            max_upload_bytes=_int_env("MAX_UPLOAD_BYTES", defaults.max_upload_bytes),
            rate_limit_window_seconds=_int_env("RATE_LIMIT_WINDOW_SECONDS", defaults.rate_limit_window_seconds),
            rate_limit_max_requests=_int_env("RATE_LIMIT_MAX_REQUESTS", defaults.rate_limit_max_requests),
            sync_rate_limit_max_requests=_int_env(
                "SYNC_RATE_LIMIT_MAX_REQUESTS", defaults.sync_rate_limit_max_requests
            ),
            cors_origins=[o.strip() for o in origins.split(",")] if origins else defaults.cors_origins,
        )
