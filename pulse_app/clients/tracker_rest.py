"""REST client for the token/price tracker that feeds the collector."""

import asyncio
from typing import Any

import httpx

from pulse_core.models import InvalidObservation, Observation


class RateLimiter:
    """Spaces tracker requests at least ``60 / calls_per_minute`` seconds apart.

    Requests from every collection task share one limiter, so the tracker
    sees the combined rate regardless of how many assets are tracked.
    """

    def __init__(self, calls_per_minute: int = 600):
        if calls_per_minute <= 0:
            raise ValueError(f"calls_per_minute must be positive, got {calls_per_minute}")
        self.calls_per_minute = calls_per_minute
        self.min_spacing = 60.0 / calls_per_minute
        self._next_slot: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait for the next free request slot."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            now = loop.time()
            if self._next_slot is not None and self._next_slot > now:
                await asyncio.sleep(self._next_slot - now)
                now = loop.time()
            self._next_slot = now + self.min_spacing


def parse_observation(asset_id: str, data: dict[str, Any]) -> Observation:
    """
    Build an Observation from a tracker stats payload.

    Expected payload::

        {"price": 0.0042, "volume": 1250.0, "buy_count": 40,
         "sell_count": 12, "market_cap": 42000.0}

    Raises:
        InvalidObservation: if required fields are missing or malformed
    """
    try:
        market_cap = data.get("market_cap")
        return Observation(
            asset_id=asset_id,
            price=float(data["price"]),
            volume=float(data.get("volume", 0.0)),
            buy_count=int(data.get("buy_count", 0)),
            sell_count=int(data.get("sell_count", 0)),
            market_cap=float(market_cap) if market_cap is not None else None,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidObservation(f"{asset_id}: malformed tracker payload: {e}") from e


class TrackerRestClient:
    """Tracker REST API client implementing ObservationSource."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        calls_per_minute: int = 600,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.rate_limiter = RateLimiter(calls_per_minute)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {}
            if self.api_key:
                headers["X-API-KEY"] = self.api_key
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make an API request with rate limiting."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        response = await client.request(method, endpoint, params=params)
        response.raise_for_status()
        return response.json()

    async def fetch(self, asset_id: str) -> Observation | None:
        """
        Fetch the latest stats for an asset.

        Returns:
            Observation stamped with the local receive time, or None if the
            tracker has no data for the asset (404 or empty body)

        Raises:
            InvalidObservation: malformed payload
            httpx.HTTPError: transport or non-404 HTTP errors
        """
        try:
            data = await self._request("GET", f"/assets/{asset_id}/stats")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise
        if not data:
            return None
        return parse_observation(asset_id, data)
