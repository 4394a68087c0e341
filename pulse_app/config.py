"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Signal thresholds (confidence, 0-100)
    min_buy_confidence: float = 65.0
    min_sell_confidence: float = 70.0

    # Budget (budget units per UTC day)
    daily_buy_budget: float = 2.0
    portfolio_value: float | None = None

    # Series store
    max_time_series_points: int = 100
    time_series_interval_secs: float = 15.0

    # Exit baselines (percent of entry price)
    take_profit_percent: float = 20.0
    stop_loss_percent: float = 10.0
    trailing_stop_percent: float = 8.0

    # Price tracker
    tracker_base_url: str = "http://localhost:8080"
    tracker_api_key: str = ""
    tracked_assets: list[str] = []

    # Files
    engine_config_path: str = "engine.yaml"
    observation_log_path: str = "data/observations.jsonl"

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
