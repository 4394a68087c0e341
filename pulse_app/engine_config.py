"""Engine configuration loaded from engine.yaml.

Values come from two layers:
- Environment settings (Settings) provide the operational surface:
  thresholds, daily budget, series capacity/interval and exit baselines
- engine.yaml overrides any of them and adds the tunable weights, gates,
  take-profit tiers and stop checkpoints

No YAML file = settings plus built-in defaults.

Example engine.yaml::

    signal:
      rsi_weight: 25
      max_age_secs: 1800
      min_liquidity_depth: 5.0
    risk:
      max_position_size: 0.5
      take_profit_tiers:
        - {multiplier: 1.0, fraction: 0.5}
        - {multiplier: 2.5, fraction: 1.0}
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from pulse_app.config import Settings, get_settings
from pulse_core.models import RiskConfig, SignalConfig

logger = logging.getLogger(__name__)


class StoreConfig(BaseModel):
    """Series store configuration."""

    max_points: int = Field(default=100, ge=1)
    interval_secs: float = Field(default=15.0, ge=0)


class EngineConfig(BaseModel):
    """Top-level engine configuration."""

    signal: SignalConfig = Field(default_factory=SignalConfig)
    risk: RiskConfig = Field(default_factory=RiskConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    daily_buy_budget: float = Field(default=2.0, ge=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "EngineConfig":
        return cls(
            signal=SignalConfig(
                min_buy_confidence=settings.min_buy_confidence,
                min_sell_confidence=settings.min_sell_confidence,
            ),
            risk=RiskConfig(
                stop_loss_percent=settings.stop_loss_percent,
                take_profit_percent=settings.take_profit_percent,
                trailing_stop_percent=settings.trailing_stop_percent,
            ),
            store=StoreConfig(
                max_points=settings.max_time_series_points,
                interval_secs=settings.time_series_interval_secs,
            ),
            daily_buy_budget=settings.daily_buy_budget,
        )


def _deep_merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_engine_config(
    path: Path | None = None,
    settings: Settings | None = None,
) -> EngineConfig:
    """Load engine config from settings and an optional YAML file.

    Raises:
        ValueError: the YAML file is not a mapping or holds invalid values
    """
    settings = settings or get_settings()
    config_path = Path(path or settings.engine_config_path)
    base = EngineConfig.from_settings(settings)

    if not config_path.exists():
        logger.info("No engine config found at %s, using settings defaults", config_path)
        return base

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"{config_path}: top level must be a mapping")

    config = EngineConfig.model_validate(_deep_merge(base.model_dump(), raw))
    logger.info(
        "Loaded engine config: buy>=%.0f sell>=%.0f budget=%.2f store=%d@%.0fs, %d TP tiers",
        config.signal.min_buy_confidence,
        config.signal.min_sell_confidence,
        config.daily_buy_budget,
        config.store.max_points,
        config.store.interval_secs,
        len(config.risk.take_profit_tiers),
    )
    return config
