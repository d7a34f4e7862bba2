from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from oddsnap.core.bookmakers import DEFAULT_SNAPSHOT_BOOKMAKERS, DEFAULT_SNAPSHOT_REGIONS


def split_csv(raw: str) -> list[str]:
    return [v.strip() for v in raw.split(",") if v.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @model_validator(mode="after")
    def _check_limits(self) -> "Settings":
        if self.snapshot_concurrency < 1:
            raise ValueError("SNAPSHOT_CONCURRENCY must be at least 1.")
        if self.odds_api_cache_ttl_seconds <= 0:
            raise ValueError("ODDS_API_CACHE_TTL_SECONDS must be positive.")
        if self.app_env == "production" and not self.odds_api_key:
            raise ValueError("THE_ODDS_API_KEY must be set in production.")
        return self

    app_env: str = "development"
    app_name: str = "Oddsnap Snapshot API"
    log_level: str = "INFO"

    cors_origins: str = "http://localhost:3000"

    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = 0.0

    odds_api_key: str = Field(default="", validation_alias="THE_ODDS_API_KEY")
    odds_api_base_url: str = "https://api.the-odds-api.com/v4"
    odds_api_cache_ttl_seconds: float = 600.0
    odds_api_timeout_seconds: float = 25.0

    snapshot_log_dir: str = "."
    snapshot_default_regions: str = ",".join(DEFAULT_SNAPSHOT_REGIONS)
    snapshot_default_bookmakers: str = ",".join(DEFAULT_SNAPSHOT_BOOKMAKERS)
    snapshot_concurrency: int = 1

    catalog_default_max_sports: int = 1
    catalog_default_max_events_per_sport: int = 3
    catalog_default_regions: str = "us,us_ex"
    catalog_default_bookmakers: str = "fanduel,draftkings,novig"

    @property
    def cors_origins_list(self) -> list[str]:
        return split_csv(self.cors_origins)

    @property
    def snapshot_default_bookmakers_list(self) -> list[str]:
        return split_csv(self.snapshot_default_bookmakers)

    @property
    def catalog_default_bookmakers_list(self) -> list[str]:
        return split_csv(self.catalog_default_bookmakers)


@lru_cache
def get_settings() -> Settings:
    return Settings()
