from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from jito_bundler.common import log_event

from .errors import ApiError, RequestFailed, RequestTimeout


def parse_retry_after_seconds(raw: str | None) -> float | None:
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds > 0 else None


@dataclass(slots=True, frozen=True)
class RelayResponse:
    status: int
    raw_text: str
    payload: Any
    is_json: bool
    retry_after_seconds: float | None = None

    @property
    def ok(self) -> bool:
        return self.status < 400

    def body_excerpt(self) -> str:
        return repr(self.raw_text[:240])


class RelayTransport:
    """Owns the single aiohttp session shared by every relay and ledger client.

    aiohttp sessions are safe for concurrent use from one event loop, so loops
    and one-off submissions can share this instance without locking.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        timeout_seconds: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._logger = logger
        self._timeout_seconds = max(0.1, float(timeout_seconds))
        self._session = session
        self._owns_session = session is None

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    async def connect(self) -> None:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        source: str,
        json_payload: Any = None,
        timeout_seconds: float | None = None,
    ) -> RelayResponse:
        if not url:
            raise RequestFailed(f"No endpoint configured for {source}.", source=source)
        if self._session is None:
            await self.connect()
        if self._session is None:
            raise RequestFailed("HTTP session is not initialized.", source=source)

        effective_timeout = self._timeout_seconds if timeout_seconds is None else max(0.1, timeout_seconds)
        try:
            async with self._session.request(
                method,
                url,
                json=json_payload,
                timeout=aiohttp.ClientTimeout(total=effective_timeout),
            ) as response:
                status = response.status
                retry_after_seconds = parse_retry_after_seconds(response.headers.get("Retry-After"))
                raw_text = await response.text()
        except asyncio.TimeoutError as error:
            log_event(
                self._logger,
                level="warning",
                event="relay_request_timeout",
                message="Relay request timed out",
                source=source,
                method=method,
                url=url,
                timeout_seconds=effective_timeout,
            )
            raise RequestTimeout(
                f"{source} request timed out after {effective_timeout}s",
                source=source,
            ) from error
        except aiohttp.ClientError as error:
            raise RequestFailed(f"{source} request failed: {error!r}", source=source) from error

        parsed: Any = None
        is_json = False
        if raw_text:
            try:
                parsed = json.loads(raw_text)
                is_json = True
            except json.JSONDecodeError:
                parsed = None

        return RelayResponse(
            status=status,
            raw_text=raw_text,
            payload=parsed,
            is_json=is_json,
            retry_after_seconds=retry_after_seconds,
        )

    async def get_json(self, url: str, *, source: str, timeout_seconds: float | None = None) -> Any:
        response = await self.request("GET", url, source=source, timeout_seconds=timeout_seconds)
        if not response.ok:
            raise RequestFailed(
                f"HTTP {response.status}: {response.raw_text}",
                source=source,
                status=response.status,
            )
        if not response.is_json:
            raise ApiError(f"{source} returned a non-JSON body: {response.body_excerpt()}", source=source)
        return response.payload

    async def post_rpc(
        self,
        url: str,
        *,
        source: str,
        method: str,
        params: list[Any],
        timeout_seconds: float | None = None,
    ) -> RelayResponse:
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params,
        }
        return await self.request(
            "POST",
            url,
            source=source,
            json_payload=payload,
            timeout_seconds=timeout_seconds,
        )
