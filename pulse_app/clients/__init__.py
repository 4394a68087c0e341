"""External collaborator clients."""

from pulse_app.clients.protocol import CurveProvider, ObservationSource
from pulse_app.clients.tracker_rest import RateLimiter, TrackerRestClient, parse_observation

__all__ = [
    "CurveProvider",
    "ObservationSource",
    "RateLimiter",
    "TrackerRestClient",
    "parse_observation",
]
