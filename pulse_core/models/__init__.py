"""Data models."""

from pulse_core.models.fast import Observation, InvalidObservation, validate_observation
from pulse_core.models.observation import ObservationRecord
from pulse_core.models.converters import (
    observation_to_record,
    record_to_observation,
    datetime_to_timestamp,
    monotonic_offset,
    timestamp_to_datetime,
)
from pulse_core.models.signal import (
    CurveReading,
    Direction,
    Factor,
    FactorSide,
    MarketContext,
    Signal,
)
from pulse_core.models.config import (
    RiskConfig,
    SignalConfig,
    StopCheckpoint,
    TakeProfitTierConfig,
)
from pulse_core.models.risk import (
    Allocation,
    AllocationStatus,
    RiskParameters,
    TakeProfitTier,
)
from pulse_core.models.position import (
    ExitEvent,
    ExitReason,
    Position,
    PositionState,
    TrailingStop,
)

__all__ = [
    # Hot path (dataclass)
    "Observation",
    "InvalidObservation",
    "validate_observation",
    # Cold path (Pydantic)
    "ObservationRecord",
    # Converters
    "observation_to_record",
    "record_to_observation",
    "datetime_to_timestamp",
    "monotonic_offset",
    "timestamp_to_datetime",
    # Signals
    "CurveReading",
    "Direction",
    "Factor",
    "FactorSide",
    "MarketContext",
    "Signal",
    # Config
    "RiskConfig",
    "SignalConfig",
    "StopCheckpoint",
    "TakeProfitTierConfig",
    # Risk
    "Allocation",
    "AllocationStatus",
    "RiskParameters",
    "TakeProfitTier",
    # Positions
    "ExitEvent",
    "ExitReason",
    "Position",
    "PositionState",
    "TrailingStop",
]
