"""Persisted (cold path) observation model."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ObservationRecord(BaseModel):
    """Wall-clock-only form of an observation, suitable for storage and replay.

    Serialized as::

        {"asset_id": ..., "timestamp": "2026-10-18T12:00:00.250000Z",
         "price": 0.0042, "volume": 1250.0, "buy_count": 40,
         "sell_count": 12, "market_cap": 42000.0}

    ``market_cap`` is omitted when unknown.
    """

    model_config = ConfigDict(frozen=True)

    asset_id: str
    timestamp: datetime
    price: float = Field(gt=0)
    volume: float = Field(ge=0)
    buy_count: int = Field(ge=0)
    sell_count: int = Field(ge=0)
    market_cap: float | None = None

    def to_json_dict(self) -> dict:
        """Return a JSON-ready dict (ISO-8601 timestamp, no null market cap)."""
        return self.model_dump(mode="json", exclude_none=True)
