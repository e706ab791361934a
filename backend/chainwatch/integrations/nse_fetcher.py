"""
NSE Option Chain Fetcher

Retrieves one instrument's raw option chain using the shared SessionManager.
A failed attempt (session unavailable, transport error, non-200 status,
empty or non-JSON body) invalidates the session, forces a fresh handshake
and backs off before trying again. Exhausted retries yield None.
"""
import asyncio
from typing import Any, Callable, Dict, Optional, Tuple

import httpx

from chainwatch.config import UpstreamConfig
from chainwatch.core.enums import Instrument, InstrumentCategory
from chainwatch.core.exceptions import FetchError
from chainwatch.core.retry import RetryPolicy
from chainwatch.integrations.nse_session import SessionManager
from chainwatch.logger import logger


class Fetcher:
    """Option chain client for the NSE index/equity endpoints."""

    def __init__(
        self,
        session: SessionManager,
        upstream: UpstreamConfig,
        attempts: int = 3,
        backoff_unit_seconds: float = 2.0,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self._session = session
        self.upstream = upstream
        self.attempts = attempts
        self.backoff_unit_seconds = backoff_unit_seconds
        self._sleep = sleep

    def endpoint_for(self, instrument: Instrument) -> Tuple[str, Dict[str, str]]:
        """URL and query parameters for an instrument's option chain."""
        if instrument.category is InstrumentCategory.INDEX:
            path = self.upstream.index_chain_path
        else:
            path = self.upstream.equity_chain_path
        return self._session.url(path), {"symbol": instrument.value}

    async def fetch(self, instrument: Instrument) -> Optional[Dict[str, Any]]:
        """
        Fetch the raw option chain for an instrument.

        Returns:
            Decoded JSON payload, or None when every attempt failed
        """
        url, params = self.endpoint_for(instrument)
        logger.info(f"Fetching data for {instrument.value} from {url}")

        policy = RetryPolicy(
            max_attempts=self.attempts,
            backoff_unit_seconds=self.backoff_unit_seconds,
            retry_on=(FetchError,),
            sleep=self._sleep,
            name=f"Fetch {instrument.value}",
        )

        async def attempt_once(attempt: int) -> Dict[str, Any]:
            return await self._fetch_once(url, params)

        async def renew(attempt: int, error: Exception) -> None:
            logger.info(f"Retry attempt {attempt} for {instrument.value}, establishing new session...")
            self._session.invalidate()
            await self._session.acquire()

        try:
            return await policy.run(attempt_once, on_failure=renew)
        except FetchError:
            logger.error(f"Max retries reached for {instrument.value}")
            return None

    async def _fetch_once(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        if not await self._session.ensure_valid():
            raise FetchError("Failed to establish valid NSE session")

        headers = self._session.api_headers(
            referer=self._session.url(self.upstream.content_path),
            origin=True,
        )
        try:
            response = await self._session.get(url, headers=headers, params=params)
        except httpx.HTTPError as e:
            raise FetchError(f"request failed: {e}") from e

        if response.status_code != 200 or not response.content:
            raise FetchError(f"Invalid response: Status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchError("response body is not valid JSON") from e

        if not isinstance(payload, dict) or not payload:
            raise FetchError("response body is an empty JSON document")
        return payload
