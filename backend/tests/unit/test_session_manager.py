"""Unit Tests for SessionManager

Drives the three-step navigation handshake against a fake NSE upstream
served through httpx.MockTransport.
"""
import asyncio
import random
from datetime import timedelta

import httpx
import pytest
from unittest.mock import AsyncMock

from chainwatch.config import SessionConfig
from chainwatch.integrations.nse_session import SessionManager
from chainwatch.integrations.session_store import SessionStore
from tests.fixtures.fake_upstream import FakeNSE, fail, status


HANDSHAKE = ["/", "/option-chain", "/api/marketStatus"]


def _manager(fake_nse, upstream_config, session_config, clock, sleep=None, store=None):
    return SessionManager(
        upstream_config,
        session_config,
        store=store,
        client=fake_nse.client(),
        clock=clock,
        sleep=sleep or AsyncMock(),
        rng=random.Random(7),
    )


class TestHandshake:
    """Test the navigation sequence and what it sends."""

    @pytest.mark.asyncio
    async def test_successful_acquire(self, fake_nse, upstream_config, session_config, clock):
        sleep = AsyncMock()
        manager = _manager(fake_nse, upstream_config, session_config, clock, sleep=sleep)

        assert await manager.acquire() is True

        assert fake_nse.paths == HANDSHAKE
        assert manager.is_valid is True
        assert manager.expiry == clock.now + timedelta(minutes=8)
        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_one_identity_for_whole_handshake(self, fake_nse, upstream_config, session_config, clock):
        manager = _manager(fake_nse, upstream_config, session_config, clock)

        await manager.acquire()

        agents = {r.headers["user-agent"] for r in fake_nse.requests}
        assert len(agents) == 1
        assert agents.pop() in upstream_config.user_agents
        assert manager.user_agent in upstream_config.user_agents

    @pytest.mark.asyncio
    async def test_cookies_and_referers_carried_forward(self, fake_nse, upstream_config, session_config, clock):
        manager = _manager(fake_nse, upstream_config, session_config, clock)

        await manager.acquire()

        content = fake_nse.requests_to("/option-chain")[0]
        status_check = fake_nse.requests_to("/api/marketStatus")[0]
        assert content.headers["referer"] == "https://nse.test/"
        assert status_check.headers["referer"] == "https://nse.test/option-chain"
        assert "nsit=landing" in status_check.headers["cookie"]
        assert "nseappid=content" in status_check.headers["cookie"]
        assert status_check.headers["accept"].startswith("application/json")

    @pytest.mark.asyncio
    async def test_single_redirect_followed(self, fake_nse, upstream_config, session_config, clock):
        fake_nse.routes["/"] = lambda r: httpx.Response(302, headers={"location": "/home"})
        fake_nse.routes["/home"] = lambda r: httpx.Response(302, headers={"location": "/elsewhere"})
        sleep = AsyncMock()
        manager = _manager(fake_nse, upstream_config, session_config, clock, sleep=sleep)

        assert await manager.acquire() is True

        assert fake_nse.paths == ["/", "/home", "/option-chain", "/api/marketStatus"]
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 2.0]


class TestHandshakeFailures:
    """Test that failures leave no valid session and never raise."""

    @pytest.mark.asyncio
    async def test_status_check_rejected(self, fake_nse, upstream_config, session_config, clock):
        fake_nse.routes["/api/marketStatus"] = status(403, {"error": "forbidden"})
        manager = _manager(fake_nse, upstream_config, session_config, clock)

        assert await manager.acquire() is False

        assert manager.is_valid is False
        assert manager.expiry is None

    @pytest.mark.asyncio
    async def test_transport_error(self, fake_nse, upstream_config, session_config, clock):
        fake_nse.routes["/"] = fail
        manager = _manager(fake_nse, upstream_config, session_config, clock)

        assert await manager.acquire() is False
        assert fake_nse.paths == ["/"]

    @pytest.mark.asyncio
    async def test_server_error_stops_handshake(self, fake_nse, upstream_config, session_config, clock):
        fake_nse.routes["/option-chain"] = status(503)
        manager = _manager(fake_nse, upstream_config, session_config, clock)

        assert await manager.acquire() is False
        assert "/api/marketStatus" not in fake_nse.paths

    @pytest.mark.asyncio
    async def test_failure_clears_previous_session(self, fake_nse, upstream_config, session_config, clock):
        manager = _manager(fake_nse, upstream_config, session_config, clock)
        await manager.acquire()

        fake_nse.routes["/api/marketStatus"] = status(401)

        assert await manager.acquire() is False
        assert manager.is_valid is False

    @pytest.mark.asyncio
    async def test_configured_retries(self, fake_nse, upstream_config, tmp_path, clock):
        replies = [status(403), status(200, {"marketState": []})]
        fake_nse.routes["/api/marketStatus"] = lambda r: replies.pop(0)(r)
        config = SessionConfig(acquire_attempts=2, store_path=str(tmp_path / "s.json"))
        sleep = AsyncMock()
        manager = _manager(fake_nse, upstream_config, config, clock, sleep=sleep)

        assert await manager.acquire() is True

        assert fake_nse.paths == HANDSHAKE * 2
        # step, step, backoff, step, step
        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 2.0, 2.0, 2.0, 2.0]


class TestValidity:
    """Test ensure_valid and invalidate."""

    @pytest.mark.asyncio
    async def test_ensure_valid_reuses_live_session(self, fake_nse, upstream_config, session_config, clock):
        manager = _manager(fake_nse, upstream_config, session_config, clock)
        await manager.acquire()

        clock.advance(minutes=7, seconds=59)

        assert await manager.ensure_valid() is True
        assert len(fake_nse.requests) == 3

    @pytest.mark.asyncio
    async def test_ensure_valid_reacquires_after_expiry(self, fake_nse, upstream_config, session_config, clock):
        manager = _manager(fake_nse, upstream_config, session_config, clock)
        await manager.acquire()

        clock.advance(minutes=8)

        assert manager.is_valid is False
        assert await manager.ensure_valid() is True
        assert fake_nse.paths == HANDSHAKE * 2

    @pytest.mark.asyncio
    async def test_ensure_valid_acquires_when_never_established(self, fake_nse, upstream_config, session_config, clock):
        manager = _manager(fake_nse, upstream_config, session_config, clock)

        assert await manager.ensure_valid() is True
        assert fake_nse.paths == HANDSHAKE

    @pytest.mark.asyncio
    async def test_invalidate_forces_reacquire(self, fake_nse, upstream_config, session_config, clock):
        manager = _manager(fake_nse, upstream_config, session_config, clock)
        await manager.acquire()

        manager.invalidate()

        assert manager.is_valid is False
        await manager.ensure_valid()
        assert fake_nse.paths == HANDSHAKE * 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_handshake(self, fake_nse, upstream_config, session_config, clock):
        config = SessionConfig(step_delay_seconds=0.01, store_path=session_config.store_path)
        manager = _manager(fake_nse, upstream_config, config, clock, sleep=asyncio.sleep)

        results = await asyncio.gather(manager.ensure_valid(), manager.ensure_valid(), manager.ensure_valid())

        assert results == [True, True, True]
        assert fake_nse.paths == HANDSHAKE


class TestPersistence:
    """Test persisting and restoring session state."""

    @pytest.mark.asyncio
    async def test_acquire_persists_state(self, fake_nse, upstream_config, session_config, clock):
        store = SessionStore(session_config.store_path)
        manager = _manager(fake_nse, upstream_config, session_config, clock, store=store)

        await manager.acquire()

        state = store.load()
        assert state.user_agent == manager.user_agent
        assert state.expiry == manager.expiry
        assert {c.name for c in state.cookies} == {"nsit", "nseappid"}

    @pytest.mark.asyncio
    async def test_restore_live_session(self, fake_nse, upstream_config, session_config, clock):
        store = SessionStore(session_config.store_path)
        first = _manager(fake_nse, upstream_config, session_config, clock, store=store)
        await first.acquire()

        fresh_upstream = FakeNSE()
        second = _manager(fresh_upstream, upstream_config, session_config, clock, store=store)

        assert second.restore() is True
        assert second.is_valid is True
        assert second.user_agent == first.user_agent
        assert second.client.cookies.get("nsit") == "landing"
        assert await second.ensure_valid() is True
        assert fresh_upstream.requests == []

    @pytest.mark.asyncio
    async def test_restore_expired_session(self, fake_nse, upstream_config, session_config, clock):
        store = SessionStore(session_config.store_path)
        await _manager(fake_nse, upstream_config, session_config, clock, store=store).acquire()

        clock.advance(minutes=10)
        second = _manager(FakeNSE(), upstream_config, session_config, clock, store=store)

        assert second.restore() is True
        assert second.is_valid is False
        assert second.client.cookies.get("nseappid") == "content"

    def test_restore_without_store(self, fake_nse, upstream_config, session_config, clock):
        manager = _manager(fake_nse, upstream_config, session_config, clock)

        assert manager.restore() is False

    def test_restore_without_file(self, fake_nse, upstream_config, session_config, clock):
        store = SessionStore(session_config.store_path)
        manager = _manager(fake_nse, upstream_config, session_config, clock, store=store)

        assert manager.restore() is False
        assert manager.is_valid is False

    def test_restore_ignores_expiry_without_timezone(self, fake_nse, upstream_config, session_config, clock):
        store = SessionStore(session_config.store_path)
        store.path.write_text('{"user_agent": "UA", "expiry": "2030-01-01T00:00:00", "cookies": []}')
        manager = _manager(fake_nse, upstream_config, session_config, clock, store=store)

        assert manager.restore() is False
        assert manager.is_valid is False
        assert manager.user_agent is None
