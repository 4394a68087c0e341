"""Protocols for the external collaborators the engine consumes."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pulse_core.models import CurveReading, Observation


@runtime_checkable
class ObservationSource(Protocol):
    """Supplies the latest observation for an asset (a token/price tracker)."""

    async def fetch(self, asset_id: str) -> Observation | None:
        """Return the latest observation, or None if nothing is available."""
        ...


@runtime_checkable
class CurveProvider(Protocol):
    """Supplies bonding-curve shape facts for an intended trade size."""

    async def get_curve(self, asset_id: str, trade_size: float) -> CurveReading | None:
        """Return the current curve reading, or None if unknown."""
        ...
