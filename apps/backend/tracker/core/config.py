from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Sector71 Tracker"

    # Empty means the document store is not configured (collector still answers 200).
    database_url: str = ""

    # Collector endpoint used as the secondary sink
    collector_base_url: str = "http://localhost:8000/api"
    http_timeout: float = 10.0

    # Landing-page behaviour
    thank_you_url: str = "thank-you.html"
    page_view_delay: float = 0.5
    redirect_delay: float = 0.5
    submission_reset_delay: float = 2.0

    # Delivery
    retry_max_attempts: int = 3
    retry_backoff_base: float = 1.0
    heartbeat_debounce_seconds: float = 5.0
    local_store_path: str = "data/local_storage.json"

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
