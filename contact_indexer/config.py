from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    database_url: str = "sqlite+aiosqlite:///./contacts.db"
    db_retry_delay_s: float = 5.0
    log_level: str = "INFO"

    source_csv_path: str = "assets/sample-websites-company-names.csv"
    ingestion_on_startup: bool = True
    ingestion_interval_hours: float = 720.0
    liveness_timeout_s: float = 10.0

    default_phone_region: str = "US"
    primary_timeout_ms: int = 30000
    fallback_timeout_ms: int = 15000
    settle_delay_ms: int = 3000
    max_fallback_pages: int = 7

    search_candidate_limit: int = 200
    fuzzy_threshold: float = 0.4
    default_max_distance_m: float = 10000.0
