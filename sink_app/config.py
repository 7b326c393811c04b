from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment ("production" persists access logs, anything else only echoes them)
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Sink"
    app_version: str = "1.0.0"
    site_token: str = "SinkCool"  # Bearer token for the /api routes

    # Database (link records)
    database_url: str = "sqlite:///./sink.db"

    # Links
    base_url: str = "http://127.0.0.1:8000"
    slug_regex: str = r"(?i)^[a-z0-9]+(?:-[a-z0-9]+)*$"
    slug_default_length: int = 6
    case_sensitive: bool = False
    redirect_status_code: int = 302
    max_retries: int = 5
    list_limit: int = 100

    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 3600  # Cache TTL in seconds (1 hour)

    # Analytics storage
    analytics_backend: str = "sqlite"  # Options: "sqlite", "clickhouse"
    analytics_database_url: str = "sqlite:///./analytics.db"
    analytics_clickhouse_url: str = "http://localhost:8123"
    analytics_clickhouse_database: str = "sink"
    dataset: str = "sink"

    # Request signals
    trusted_ip_header: str = "x-real-ip"
    # Only enable behind a CDN that sets (and strips client-sent) geo headers
    cdn_geo_enabled: bool = False
    geo_country_header: str = "cf-ipcountry"
    geo_region_header: str = "cf-region"
    geo_city_header: str = "cf-ipcity"
    geo_timezone_header: str = "cf-timezone"

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


# Create settings instance
settings = Settings()
