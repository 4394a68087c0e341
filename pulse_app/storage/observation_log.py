"""Append-only JSON-lines log of observations for storage and replay.

Each line is one ObservationRecord serialized with orjson::

    {"asset_id":"ABC","timestamp":"2026-10-18T12:00:00.250000Z","price":0.0042,...}

Only the wall-clock timestamp is persisted. On load, every record is mapped
into the live monotonic frame with one shared offset (see
record_to_observation), so replayed and live observations are rate limited
against the same clock.
"""

import logging
from pathlib import Path
from typing import Iterable

import orjson
from pydantic import ValidationError

from pulse_app.storage.series_store import RecordResult, SeriesStore
from pulse_core.models import (
    Observation,
    ObservationRecord,
    monotonic_offset,
    observation_to_record,
    record_to_observation,
)

logger = logging.getLogger(__name__)


class ObservationLog:
    """JSON-lines observation file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def append(self, observation: Observation) -> None:
        """Append one observation."""
        self.append_many([observation])

    def append_many(self, observations: Iterable[Observation]) -> int:
        """
        Append observations in order.

        Returns:
            Number of lines written
        """
        lines = [
            orjson.dumps(observation_to_record(o).to_json_dict()) + b"\n"
            for o in observations
        ]
        if not lines:
            return 0
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "ab") as f:
            f.writelines(lines)
        return len(lines)

    def load(self, asset_id: str | None = None) -> list[Observation]:
        """
        Read observations back, optionally for a single asset.

        Malformed lines are logged and skipped.
        """
        if not self.path.exists():
            return []

        observations = []
        offset = monotonic_offset()
        skipped = 0
        with open(self.path, "rb") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = ObservationRecord.model_validate(orjson.loads(line))
                except (orjson.JSONDecodeError, ValidationError) as e:
                    skipped += 1
                    logger.warning("Skipping malformed line %d in %s: %s", line_no, self.path, e)
                    continue
                if asset_id is None or record.asset_id == asset_id:
                    observations.append(record_to_observation(record, clock_offset=offset))

        if skipped:
            logger.warning("Loaded %d observations from %s (%d skipped)", len(observations), self.path, skipped)
        return observations

    async def replay(self, store: SeriesStore, asset_id: str | None = None) -> int:
        """
        Re-record logged observations into a store, oldest first.

        Returns:
            Number of observations recorded (rate-limited ones excluded)
        """
        recorded = 0
        for observation in self.load(asset_id):
            if await store.record(observation) == RecordResult.RECORDED:
                recorded += 1
        logger.info("Replayed %d observations from %s", recorded, self.path)
        return recorded
