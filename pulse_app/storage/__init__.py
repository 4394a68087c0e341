"""Data storage layer."""

from pulse_app.storage.series_store import RecordResult, SeriesStore
from pulse_app.storage.observation_log import ObservationLog

__all__ = [
    "RecordResult",
    "SeriesStore",
    "ObservationLog",
]
