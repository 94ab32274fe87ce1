from __future__ import annotations

import asyncio
import json
import logging
import unittest
from typing import Any
from unittest.mock import AsyncMock

import aiohttp

from jito_bundler.engine import JitoEngine
from jito_bundler.relay.endpoints import RelayEndpoints
from jito_bundler.relay.errors import ApiError, NoTipAccounts, RelayUnhealthy, RequestFailed, RequestTimeout
from jito_bundler.relay.transport import RelayTransport, parse_retry_after_seconds

BASE_URL = "https://relay.test/api/v1"


class _FakeResponse:
    def __init__(self, status: int, body: str, headers: dict[str, str] | None = None) -> None:
        self.status = status
        self._body = body
        self.headers = headers or {}

    async def text(self) -> str:
        return self._body

    async def __aenter__(self) -> "_FakeResponse":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


class _FakeSession:
    def __init__(self, routes: dict[str, Any]) -> None:
        self.routes = routes
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> _FakeResponse:
        self.calls.append((method, url, kwargs))
        outcome = self.routes[url]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, _FakeResponse):
            return outcome
        return _FakeResponse(200, json.dumps(outcome))

    async def close(self) -> None:
        return None


def _engine(routes: dict[str, Any]) -> tuple[JitoEngine, _FakeSession]:
    session = _FakeSession(routes)
    ledger = AsyncMock()
    engine = JitoEngine(
        logger=logging.getLogger("test.engine"),
        ledger=ledger,
        endpoints=RelayEndpoints.from_base_url(BASE_URL),
        session=session,  # type: ignore[arg-type]
    )
    return engine, session


class RelayTransportTests(unittest.IsolatedAsyncioTestCase):
    def _transport(self, routes: dict[str, Any]) -> tuple[RelayTransport, _FakeSession]:
        session = _FakeSession(routes)
        transport = RelayTransport(
            logger=logging.getLogger("test.transport"),
            timeout_seconds=3.0,
            session=session,  # type: ignore[arg-type]
        )
        return transport, session

    async def test_post_rpc_sends_json_rpc_envelope(self) -> None:
        transport, session = self._transport({f"{BASE_URL}/bundles": {"result": "ok"}})

        response = await transport.post_rpc(
            f"{BASE_URL}/bundles",
            source="bundles",
            method="sendBundle",
            params=[{"txs": []}],
            timeout_seconds=1.5,
        )

        self.assertTrue(response.ok)
        self.assertEqual(response.payload, {"result": "ok"})
        method, _, kwargs = session.calls[0]
        self.assertEqual(method, "POST")
        self.assertEqual(
            kwargs["json"],
            {"jsonrpc": "2.0", "id": 1, "method": "sendBundle", "params": [{"txs": []}]},
        )
        self.assertEqual(kwargs["timeout"].total, 1.5)

    async def test_timeout_maps_to_request_timeout(self) -> None:
        transport, _ = self._transport({f"{BASE_URL}/health": asyncio.TimeoutError()})

        with self.assertRaises(RequestTimeout) as context:
            await transport.get_json(f"{BASE_URL}/health", source="health")

        self.assertEqual(context.exception.source, "health")

    async def test_client_error_maps_to_request_failed(self) -> None:
        transport, _ = self._transport({f"{BASE_URL}/health": aiohttp.ClientConnectionError("refused")})

        with self.assertRaises(RequestFailed) as context:
            await transport.get_json(f"{BASE_URL}/health", source="health")

        self.assertNotIsInstance(context.exception, RequestTimeout)

    async def test_get_json_rejects_http_errors_and_non_json(self) -> None:
        transport, _ = self._transport(
            {
                f"{BASE_URL}/stats": _FakeResponse(503, "unavailable"),
                f"{BASE_URL}/health": _FakeResponse(200, "fine"),
            }
        )

        with self.assertRaises(RequestFailed) as failed:
            await transport.get_json(f"{BASE_URL}/stats", source="stats")
        with self.assertRaises(ApiError):
            await transport.get_json(f"{BASE_URL}/health", source="health")

        self.assertEqual(failed.exception.status, 503)

    async def test_retry_after_header_is_parsed(self) -> None:
        transport, _ = self._transport(
            {f"{BASE_URL}/bundles": _FakeResponse(429, "slow down", {"Retry-After": "3"})}
        )

        response = await transport.request("POST", f"{BASE_URL}/bundles", source="bundles")

        self.assertEqual(response.retry_after_seconds, 3.0)
        self.assertFalse(response.ok)

    def test_parse_retry_after_seconds(self) -> None:
        self.assertIsNone(parse_retry_after_seconds(None))
        self.assertIsNone(parse_retry_after_seconds("Wed, 21 Oct 2015 07:28:00 GMT"))
        self.assertIsNone(parse_retry_after_seconds("0"))
        self.assertEqual(parse_retry_after_seconds(" 1.5 "), 1.5)


class EngineTelemetryTests(unittest.IsolatedAsyncioTestCase):
    async def test_health_check_raises_when_relay_reports_unhealthy(self) -> None:
        engine, _ = _engine({f"{BASE_URL}/health": {"status": "degraded", "version": "1.2.0"}})

        self.assertFalse(await engine.health.is_healthy())
        with self.assertRaises(RelayUnhealthy) as context:
            await engine.health_check()

        self.assertEqual(context.exception.status, "degraded")

    async def test_health_check_returns_report_when_healthy(self) -> None:
        engine, _ = _engine({f"{BASE_URL}/health": {"status": "healthy", "version": "1.2.0", "uptime": 42}})

        report = await engine.health_check()

        self.assertEqual(report.uptime, 42)

    async def test_optimal_tip_account_and_recommended_tip(self) -> None:
        engine, _ = _engine(
            {
                f"{BASE_URL}/tip-accounts": {
                    "tip_accounts": [
                        {"pubkey": "A", "lamports_per_signature": 5},
                        {"pubkey": "B", "lamports_per_signature": 9},
                        {"pubkey": "C", "lamports_per_signature": 9},
                    ]
                }
            }
        )

        self.assertEqual((await engine.get_optimal_tip_account()).pubkey, "B")
        self.assertEqual(await engine.get_recommended_tip(), 9)

    async def test_empty_tip_catalog_raises(self) -> None:
        engine, _ = _engine({f"{BASE_URL}/tip-accounts": {"tip_accounts": []}})

        with self.assertRaises(NoTipAccounts):
            await engine.get_optimal_tip_account()

    async def test_malformed_tip_catalog_is_api_error(self) -> None:
        engine, _ = _engine({f"{BASE_URL}/tip-accounts": {"accounts": []}})

        with self.assertRaises(ApiError):
            await engine.get_tip_accounts()

    async def test_block_engine_snapshot_and_congestion(self) -> None:
        engine, _ = _engine(
            {
                f"{BASE_URL}/block-engine": {
                    "leaders": [{"pubkey": "L1", "slot": 10}, {"pubkey": "L2", "slot": 11}],
                    "congestion": 0.25,
                    "current_slot": 10,
                }
            }
        )

        self.assertEqual([leader.pubkey for leader in await engine.get_current_leaders()], ["L1", "L2"])
        self.assertEqual(await engine.get_network_congestion(), 0.25)

    async def test_congestion_falls_back_when_telemetry_fails(self) -> None:
        engine, _ = _engine({f"{BASE_URL}/block-engine": _FakeResponse(500, "oops")})

        with self.assertLogs("test.engine", level="WARNING"):
            congestion = await engine.get_network_congestion_or_default()

        self.assertEqual(congestion, 0.0)

    async def test_active_validators_filter(self) -> None:
        engine, _ = _engine(
            {
                f"{BASE_URL}/validators": {
                    "validators": [
                        {"identity": "V1", "vote_account": "W1", "commission": 5, "active": True},
                        {"identity": "V2", "vote_account": "W2", "commission": 7, "active": False},
                    ]
                }
            }
        )

        active = await engine.get_active_validators()

        self.assertEqual([validator.identity for validator in active], ["V1"])

    async def test_high_priority_transactions_filter(self) -> None:
        engine, _ = _engine(
            {
                f"{BASE_URL}/transactions": {
                    "transactions": [
                        {"signature": "s1", "slot": 1, "priority_fee": 10_000},
                        {"signature": "s2", "slot": 1, "priority_fee": 60_000, "cu_consumed": 1_400},
                        {"signature": "s3", "slot": 2},
                    ]
                }
            }
        )

        high = await engine.transactions_pool.get_high_priority_transactions(50_000)

        self.assertEqual([tx.signature for tx in high], ["s2"])
        self.assertEqual(len(await engine.get_mempool_transactions()), 3)

    async def test_statistics(self) -> None:
        engine, _ = _engine(
            {
                f"{BASE_URL}/stats": {
                    "bundles_sent": 10,
                    "bundles_accepted": 7,
                    "success_rate": 0.7,
                    "average_tip": 12_000,
                    "total_volume": 5_000_000,
                }
            }
        )

        self.assertEqual(await engine.statistics.get_success_rate(), 0.7)
        self.assertEqual((await engine.get_statistics()).bundles_accepted, 7)


if __name__ == "__main__":
    unittest.main()
