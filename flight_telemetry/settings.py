from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration, read from the environment (or a local .env file).
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Ingestion
    FEED_URL: str = "https://public-api.adsbexchange.com/VirtualRadar/AircraftList.json"
    POLL_INTERVAL_MS: int = 10_000
    HTTP_TIMEOUT_S: float = 10.0

    # Event time
    ALLOWED_LATENESS_MS: int = 15_000
    WINDOW_SIZE_MS: int = 60_000
    WINDOW_SLIDE_MS: int = 30_000
    WINDOW_ALLOWED_LATENESS_MS: int = 0

    # Enrichment
    LOW_ALTITUDE_CEILING_FT: int = 3_000
    AIRPORT_RADIUS_MILES: float = 80.0

    # Graphite sink
    GRAPHITE_HOST: str = "127.0.0.1"
    GRAPHITE_PORT: int = 2004
    GRAPHITE_CONNECT_TIMEOUT_S: float = 5.0
    SINK_QUEUE_SIZE: int = 1_000
    SINK_BUFFER_SIZE: int = 10_000
    SINK_RECONNECT_BACKOFF_S: float = 1.0
    SINK_RECONNECT_MAX_BACKOFF_S: float = 30.0

    # Operations
    ADMIN_ENABLED: bool = False
    ADMIN_PORT: int = 8001
    OTEL_ENABLED: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"


settings = Settings()
