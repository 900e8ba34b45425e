"""Dataclass-based application settings.

Every tunable lives in a frozen dataclass, grouped by concern:
- AuthConfig: token signing secret and lifetime
- UploadConfig: where attachments are stored and how many/how large
- ListingConfig: pagination defaults for task listing

Settings.from_env() reads the process environment (after loading an
optional .env file). get_settings() caches the result and doubles as a
FastAPI dependency, so tests can swap it via app.dependency_overrides.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKBOARD_"


def _env(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None or value.strip() == "" else value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


# ---------------------------------------------------------------------------
# Nested config sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuthConfig:
    """Bearer token settings."""

    token_secret: str = "change-me-in-production"
    token_ttl_seconds: int = 30 * 24 * 3600  # 30 days


@dataclass(frozen=True)
class UploadConfig:
    """Attachment storage settings."""

    upload_dir: Path = Path("uploads")
    public_prefix: str = "/uploads"
    max_files_per_request: int = 3
    max_file_size: int = 10 * 1024 * 1024  # bytes


@dataclass(frozen=True)
class ListingConfig:
    """Pagination defaults for task listing."""

    default_page_size: int = 10
    max_page_size: int = 100


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Settings:
    """Complete configuration for the taskboard service.

    Usage::

        settings = get_settings()
        if len(files) > settings.uploads.max_files_per_request:
            raise ValidationFailed(...)
    """

    database_url: str = "sqlite+aiosqlite:///./taskboard.db"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    db_echo: bool = False

    cors_origins: tuple[str, ...] = ("http://localhost:3000",)
    debug: bool = False
    auto_create_tables: bool = True

    log_level: str = "INFO"
    log_dir: Path | None = None

    auth: AuthConfig = field(default_factory=AuthConfig)
    uploads: UploadConfig = field(default_factory=UploadConfig)
    listing: ListingConfig = field(default_factory=ListingConfig)

    @classmethod
    def default(cls) -> "Settings":
        """Create settings with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "Settings":
        """Create settings from environment variables.

        Example: TASKBOARD_MAX_FILE_SIZE=5242880
        """
        load_dotenv(override=False)
        defaults = cls()

        auth = AuthConfig(
            token_secret=_env(f"{prefix}TOKEN_SECRET", defaults.auth.token_secret),
            token_ttl_seconds=_env_int(
                f"{prefix}TOKEN_TTL_SECONDS", defaults.auth.token_ttl_seconds
            ),
        )
        uploads = UploadConfig(
            upload_dir=Path(
                _env(f"{prefix}UPLOAD_DIR", str(defaults.uploads.upload_dir))
            ).expanduser(),
            max_files_per_request=_env_int(
                f"{prefix}MAX_FILES_PER_REQUEST", defaults.uploads.max_files_per_request
            ),
            max_file_size=_env_int(f"{prefix}MAX_FILE_SIZE", defaults.uploads.max_file_size),
        )
        listing = ListingConfig(
            default_page_size=_env_int(
                f"{prefix}DEFAULT_PAGE_SIZE", defaults.listing.default_page_size
            ),
            max_page_size=_env_int(f"{prefix}MAX_PAGE_SIZE", defaults.listing.max_page_size),
        )

        log_dir = os.getenv(f"{prefix}LOG_DIR")
        origins = _env("CORS_ORIGINS", ",".join(defaults.cors_origins))

        return cls(
            database_url=_env("DATABASE_URL", defaults.database_url),
            db_pool_size=_env_int("DB_POOL_SIZE", defaults.db_pool_size),
            db_max_overflow=_env_int("DB_MAX_OVERFLOW", defaults.db_max_overflow),
            db_echo=_env_bool("DB_ECHO", defaults.db_echo),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            debug=_env_bool("DEBUG", defaults.debug),
            auto_create_tables=_env_bool(
                f"{prefix}AUTO_CREATE_TABLES", defaults.auto_create_tables
            ),
            log_level=_env(f"{prefix}LOG_LEVEL", defaults.log_level).upper(),
            log_dir=Path(log_dir).expanduser() if log_dir else None,
            auth=auth,
            uploads=uploads,
            listing=listing,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (FastAPI dependency)."""
    return Settings.from_env()
