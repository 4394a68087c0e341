"""Main application entry point."""

import asyncio
import logging
import signal
from pathlib import Path

from pulse_app.clients import CurveProvider, ObservationSource, TrackerRestClient
from pulse_app.config import Settings, get_settings
from pulse_app.engine_config import EngineConfig, load_engine_config
from pulse_app.services import Collector, Decision, SignalEngine
from pulse_app.storage import ObservationLog, SeriesStore
from pulse_core.models import ExitEvent, Observation

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


class App:
    """Assembles collector, store, engine and persistence."""

    def __init__(
        self,
        settings: Settings | None = None,
        config: EngineConfig | None = None,
        source: ObservationSource | None = None,
        curve_provider: CurveProvider | None = None,
    ):
        self.settings = settings or get_settings()
        self.config = config or load_engine_config(settings=self.settings)

        self.store = SeriesStore(
            capacity=self.config.store.max_points,
            interval=self.config.store.interval_secs,
        )
        self._owns_source = source is None
        self.source = source or TrackerRestClient(
            base_url=self.settings.tracker_base_url,
            api_key=self.settings.tracker_api_key,
        )
        self.engine = SignalEngine.from_config(
            self.config,
            self.store,
            curve_provider=curve_provider,
            portfolio_value=self.settings.portfolio_value,
        )
        self.collector = Collector(self.source, self.store)
        self.observation_log = (
            ObservationLog(Path(self.settings.observation_log_path))
            if self.settings.observation_log_path
            else None
        )

        self.collector.on_observation(self.engine.handle_observation)
        if self.observation_log is not None:
            self.collector.on_observation(self._persist_observation)
        self.engine.on_decision(self._log_decision)
        self.engine.tracker.on_exit(self._log_exit)

        self._stop_event = asyncio.Event()

    async def _persist_observation(self, observation: Observation) -> None:
        # File I/O off the event loop
        await asyncio.to_thread(self.observation_log.append, observation)

    async def _log_decision(self, decision: Decision) -> None:
        result = decision.signal
        if decision.entered:
            risk = decision.risk
            logger.info(
                "DECISION BUY %s @ %.8g size=%.4f sl=%.2f%% tp=%s trail=%.2f%% budget_left=%.4f",
                decision.asset_id,
                decision.price,
                risk.position_size,
                risk.stop_loss_pct,
                [round(t.pct, 2) for t in risk.take_profit_tiers],
                risk.trailing_stop_pct,
                risk.daily_budget_remaining,
            )
        elif result.reasons and result.candidate != result.direction:
            logger.debug(
                "DECISION HOLD %s (candidate=%s confidence=%.1f): %s",
                decision.asset_id,
                result.candidate.value,
                result.confidence,
                ",".join(result.reasons),
            )

    async def _log_exit(self, event: ExitEvent) -> None:
        logger.info(
            "EXIT %s %s @ %.8g size=%.4f",
            event.asset_id,
            event.reason.value,
            event.price,
            event.size,
        )

    async def start(self) -> None:
        """Restore history and start collection."""
        if self.observation_log is not None:
            await self.observation_log.replay(self.store)
        await self.collector.start(self.settings.tracked_assets)

    async def stop(self) -> None:
        """Stop collection and release clients."""
        await self.collector.stop()
        if self._owns_source and isinstance(self.source, TrackerRestClient):
            await self.source.close()

    def request_stop(self) -> None:
        self._stop_event.set()

    async def run_forever(self) -> None:
        """Run until SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except NotImplementedError:
                pass  # Windows

        await self.start()
        logger.info("Engine running, tracking %d assets", len(self.collector.tracked))
        try:
            await self._stop_event.wait()
        finally:
            await self.stop()


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    asyncio.run(App(settings=settings).run_forever())


if __name__ == "__main__":
    main()
