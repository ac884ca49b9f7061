import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

BACKENDS = ("memory", "sqlite", "redis")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Cache
    cache_backend: str = field(default_factory=lambda: os.getenv("CACHE_BACKEND", "memory"))
    staleness_seconds: float = field(
        default_factory=lambda: float(os.getenv("CACHE_STALENESS_SECONDS", "259200"))  # 3 days
    )
    serve_stale_on_error: bool = field(
        default_factory=lambda: _env_bool("CACHE_SERVE_STALE_ON_ERROR", "false")
    )
    single_flight: bool = field(default_factory=lambda: _env_bool("CACHE_SINGLE_FLIGHT", "false"))
    hash_fingerprints: bool = field(
        default_factory=lambda: _env_bool("CACHE_HASH_FINGERPRINTS", "false")
    )

    # SQLite
    sqlite_path: str = field(default_factory=lambda: os.getenv("CACHE_SQLITE_PATH", "./cache.db"))

    # Redis
    redis_url: str = field(default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379"))
    redis_password: str | None = field(default_factory=lambda: os.getenv("REDIS_PASSWORD"))
    key_prefix: str = field(default_factory=lambda: os.getenv("CACHE_KEY_PREFIX", "request_cache"))

    # Upstream
    upstream_timeout: float = field(
        default_factory=lambda: float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))
    )
    anilist_url: str = field(
        default_factory=lambda: os.getenv("ANILIST_URL", "https://graphql.anilist.co/")
    )
    vndb_url: str = field(default_factory=lambda: os.getenv("VNDB_URL", "https://api.vndb.org/kana"))

    # API
    api_host: str = field(default_factory=lambda: os.getenv("API_HOST", "0.0.0.0"))
    api_port: int = field(default_factory=lambda: int(os.getenv("API_PORT", "8000")))
    api_reload: bool = field(default_factory=lambda: _env_bool("API_RELOAD", "false"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_backend not in BACKENDS:
            raise ValueError(f"CACHE_BACKEND must be one of {list(BACKENDS)}, got {self.cache_backend!r}")

        if self.staleness_seconds <= 0:
            raise ValueError("CACHE_STALENESS_SECONDS must be greater than 0")

        if self.upstream_timeout <= 0:
            raise ValueError("UPSTREAM_TIMEOUT_SECONDS must be greater than 0")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
