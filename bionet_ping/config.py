"""Application configuration from environment variables."""

from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Domain suffix appended to inventory host names before probing
    host_suffix: str = ".bionet"

    @field_validator('host_suffix')
    @classmethod
    def validate_host_suffix(cls, v: str) -> str:
        """Require a dotted domain suffix such as ".bionet"."""
        v = v.strip()
        if not v.startswith(".") or len(v) < 2:
            raise ValueError('host_suffix must start with a dot, e.g. ".bionet"')
        if any(c.isspace() for c in v):
            raise ValueError('host_suffix cannot contain whitespace')
        return v

    # Probe tuning
    ping_timeout_seconds: float = 5.0  # Per-host bound, covers resolution + echo
    probe_concurrency: int = 0         # Max probes in flight; 0 runs every host at once

    @field_validator('ping_timeout_seconds')
    @classmethod
    def validate_ping_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError('ping_timeout_seconds must be positive')
        return v

    @field_validator('probe_concurrency')
    @classmethod
    def validate_probe_concurrency(cls, v: int) -> int:
        if v < 0:
            raise ValueError('probe_concurrency cannot be negative')
        return v

    # Inventory storage
    data_dir: Path = Path("data")
    inventory_database_url: Optional[str] = None  # Any async SQLAlchemy URL
    inventory_query_timeout: float = 30.0

    @property
    def database_url(self) -> str:
        """Inventory database URL, SQLite under data_dir unless overridden."""
        if self.inventory_database_url:
            return self.inventory_database_url
        return f"sqlite+aiosqlite:///{self.data_dir}/inventory.db"

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"
    log_file: Optional[Path] = None

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            raise ValueError('log_format must be "text" or "json"')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f'unknown log level: {v}')
        return v

    # Metrics (node-exporter textfile collector)
    metrics_textfile: Optional[Path] = None

    @property
    def metrics_configured(self) -> bool:
        """Check if a metrics textfile is configured."""
        return self.metrics_textfile is not None

    # Repeat sweeps every N minutes (0 = single run)
    sweep_interval_minutes: int = 0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore unknown environment variables


# Global settings instance
settings = Settings()
