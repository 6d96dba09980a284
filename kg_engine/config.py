from pathlib import Path
from typing import Optional, Dict
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="KG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Backend Configuration
    api_base_url: str = Field(default="http://localhost:8080")
    api_token: Optional[str] = Field(default=None)
    request_timeout: float = Field(default=30.0)

    # Query Defaults
    default_graph_limit: int = Field(default=150)
    related_articles_limit: int = Field(default=20)
    search_limit: int = Field(default=10)

    # Cache TTLs (seconds)
    graph_data_ttl: float = Field(default=30 * 60)
    concept_detail_ttl: float = Field(default=60 * 60)
    related_articles_ttl: float = Field(default=15 * 60)
    concept_stats_ttl: float = Field(default=2 * 60 * 60)
    search_ttl: float = Field(default=10 * 60)

    # Maintenance Configuration
    cache_sweep_interval: float = Field(default=5 * 60)
    position_cache_limit: int = Field(default=1000)
    position_cache_trim_to: int = Field(default=500)

    # Normalization Configuration
    integrity_sample_size: int = Field(default=5)

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="")

    @field_validator("position_cache_trim_to")
    @classmethod
    def trim_below_limit(cls, v, info):
        limit = info.data.get("position_cache_limit")
        if limit is not None and v > limit:
            raise ValueError("position_cache_trim_to must not exceed position_cache_limit")
        return v

    @property
    def cache_ttls(self) -> Dict[str, float]:
        """Get per-operation cache TTLs keyed by operation name."""
        return {
            "graph_data": self.graph_data_ttl,
            "concept_detail": self.concept_detail_ttl,
            "related_articles": self.related_articles_ttl,
            "concept_stats": self.concept_stats_ttl,
            "search": self.search_ttl,
        }

    @property
    def log_dir(self) -> Optional[Path]:
        """Get log directory path, if file logging is enabled."""
        if not self.log_file:
            return None
        return Path(self.log_file).parent

    def ensure_directories(self):
        """Ensure necessary directories exist."""
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)


settings = Settings()
settings.ensure_directories()
