"""
NSE Browser Session Integration

The option-chain API only answers clients that navigated the site first
within the same cookie session and kept one User-Agent throughout.
SessionManager reproduces that navigation:

1. Landing page (a single redirect is followed by hand)
2. Option chain page, referred from the landing page
3. Market status request with API-style headers

A successful status request makes the session valid for a fixed TTL and the
cookie state is persisted. Failures never raise to callers.
"""
import asyncio
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from urllib.parse import urljoin

import httpx

from chainwatch.config import SessionConfig, UpstreamConfig
from chainwatch.core.exceptions import SessionAcquisitionError
from chainwatch.core.retry import RetryPolicy
from chainwatch.integrations.session_store import PersistedSession, SessionStore, StoredCookie
from chainwatch.logger import logger


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """
    Owner of the process-wide NSE browsing session.

    Session state is cookie jar + identity string + expiry instant. All
    acquisitions are serialized through one asyncio.Lock so overlapping
    callers (refresh cycle, renewal cycle, manual trigger) never interleave
    handshake steps on the shared cookie jar.
    """

    def __init__(
        self,
        upstream: UpstreamConfig,
        config: SessionConfig,
        store: Optional[SessionStore] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Any] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.upstream = upstream
        self.config = config
        self.store = store
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=upstream.request_timeout_seconds,
            follow_redirects=False,
            verify=upstream.verify_tls,
        )
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._lock = asyncio.Lock()
        self._retry = RetryPolicy(
            max_attempts=config.acquire_attempts,
            backoff_unit_seconds=config.acquire_backoff_seconds,
            retry_on=(SessionAcquisitionError,),
            sleep=sleep,
            name="NSE session acquisition",
        )

        self._user_agent: Optional[str] = None
        self._expiry: Optional[datetime] = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def expiry(self) -> Optional[datetime]:
        return self._expiry

    @property
    def is_valid(self) -> bool:
        return self._expiry is not None and self._clock() < self._expiry

    @property
    def user_agent(self) -> Optional[str]:
        return self._user_agent

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    def url(self, path: str) -> str:
        return urljoin(self.upstream.base_url.rstrip("/") + "/", path.lstrip("/"))

    # =========================================================================
    # Headers
    # =========================================================================

    def navigation_headers(self, referer: Optional[str] = None) -> Dict[str, str]:
        """Headers of a top-level page load."""
        headers = {
            "User-Agent": self._user_agent or "",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
            "Upgrade-Insecure-Requests": "1",
            "Cache-Control": "max-age=0",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none" if referer is None else "same-origin",
            "Pragma": "no-cache",
        }
        if referer:
            headers["Referer"] = referer
        return headers

    def api_headers(self, referer: Optional[str] = None, origin: bool = False) -> Dict[str, str]:
        """Headers of an XHR issued by the option chain page."""
        headers = {
            "User-Agent": self._user_agent or "",
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
            "Referer": referer or self.url(self.upstream.content_path),
            "Sec-Fetch-Dest": "empty",
            "Sec-Fetch-Mode": "cors",
            "Sec-Fetch-Site": "same-origin",
        }
        if origin:
            headers["Origin"] = self.upstream.base_url.rstrip("/")
        return headers

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def acquire(self) -> bool:
        """Run the navigation handshake. Returns True on success, never raises."""
        async with self._lock:
            return await self._acquire_locked()

    async def ensure_valid(self) -> bool:
        """True immediately while the session is unexpired, otherwise acquire()."""
        if self.is_valid:
            return True
        async with self._lock:
            # Another caller may have renewed it while we waited
            if self.is_valid:
                return True
            logger.info("Session expired or not established, creating new session...")
            return await self._acquire_locked()

    def invalidate(self) -> None:
        """Force the next ensure_valid() to reacquire."""
        if self._expiry is not None:
            logger.debug("NSE session invalidated")
        self._expiry = None

    def restore(self) -> bool:
        """Load persisted cookies/identity; keep the expiry only if still in the future."""
        if self.store is None:
            return False

        state = self.store.load()
        if state is None:
            return False

        self._user_agent = state.user_agent
        self._client.cookies.clear()
        for cookie in state.cookies:
            self._client.cookies.set(cookie.name, cookie.value, domain=cookie.domain, path=cookie.path)

        if state.expiry is not None and self._clock() < state.expiry:
            self._expiry = state.expiry
            logger.info(f"Restored NSE session valid until {state.expiry.isoformat()}")
        else:
            self._expiry = None
            logger.info("Restored NSE cookies; session expired, will reacquire on next use")
        return True

    async def get(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """GET on the session's cookie jar. Transport errors propagate as httpx.HTTPError."""
        return await self._client.get(url, headers=headers, params=params)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # Handshake
    # =========================================================================

    async def _acquire_locked(self) -> bool:
        logger.info("Establishing new NSE session...")
        try:
            await self._retry.run(self._handshake)
        except SessionAcquisitionError as e:
            self._expiry = None
            logger.error(f"Error establishing NSE session: {e}")
            return False

        self._expiry = self._clock() + timedelta(seconds=self.config.ttl_seconds)
        self._persist()
        logger.success(f"NSE session established, valid until {self._expiry.isoformat()}")
        return True

    async def _handshake(self, attempt: int) -> None:
        self._expiry = None
        self._user_agent = self._rng.choice(self.upstream.user_agents)
        self._client.cookies.clear()

        landing_url = self.url(self.upstream.landing_path)
        content_url = self.url(self.upstream.content_path)

        logger.info("Step 1: Visiting NSE main page...")
        landing = await self._navigate(
            landing_url,
            {**self.navigation_headers(), "Sec-Fetch-User": "?1"},
        )
        if landing.is_redirect:
            location = urljoin(str(landing.url), landing.headers["location"])
            logger.info(f"Got redirect to: {location}")
            await self._sleep(self.config.redirect_delay_seconds)
            await self._navigate(location, self.navigation_headers())

        await self._sleep(self.config.step_delay_seconds)

        logger.info("Step 2: Visiting option chain page...")
        await self._navigate(content_url, self.navigation_headers(referer=landing_url))

        await self._sleep(self.config.step_delay_seconds)

        logger.info("Step 3: Testing session with API request...")
        status_check = await self._navigate(
            self.url(self.upstream.status_path),
            self.api_headers(referer=content_url),
        )
        if status_check.status_code != 200:
            raise SessionAcquisitionError(f"market status check returned status {status_check.status_code}")

    async def _navigate(self, url: str, headers: Dict[str, str]) -> httpx.Response:
        try:
            response = await self._client.get(url, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise SessionAcquisitionError(f"request to {url} failed: {e}") from e

        if response.status_code >= 500:
            raise SessionAcquisitionError(f"{url} returned status {response.status_code}")
        return response

    def _persist(self) -> None:
        if self.store is None:
            return
        cookies = [
            StoredCookie(name=c.name, value=c.value or "", domain=c.domain, path=c.path)
            for c in self._client.cookies.jar
        ]
        self.store.save(PersistedSession(
            user_agent=self._user_agent,
            expiry=self._expiry,
            cookies=cookies,
        ))
