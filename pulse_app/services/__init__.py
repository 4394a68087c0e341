"""Business services."""

from pulse_app.services.collector import Collector
from pulse_app.services.position_tracker import PositionTracker
from pulse_app.services.engine import Decision, SignalEngine

__all__ = [
    "Collector",
    "PositionTracker",
    "Decision",
    "SignalEngine",
]
