#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from jito_bundler.bundles import select_tip_account
from jito_bundler.common import sanitize_value
from jito_bundler.relay import RelayEndpoints, RelayTransport
from jito_bundler.relay.errors import JitoError
from jito_bundler.relay.telemetry import (
    BlockEngineClient,
    HealthClient,
    StatisticsClient,
    TipClient,
    ValidatorsClient,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print a JSON snapshot of Jito relay health, tip accounts and statistics."
    )
    parser.add_argument(
        "--base-url",
        default="",
        help="Relay API base url. Defaults to JITO_BASE_URL / per-endpoint env vars.",
    )
    parser.add_argument("--timeout", type=float, default=10.0, help="Per-request timeout in seconds.")
    parser.add_argument(
        "--with-validators",
        action="store_true",
        help="Also list active validators.",
    )
    parser.add_argument(
        "--with-leaders",
        action="store_true",
        help="Also include current leaders and network congestion.",
    )
    return parser.parse_args()


async def _section(output: dict[str, Any], name: str, action: Any) -> None:
    try:
        output[name] = await action()
    except JitoError as error:
        output[name] = {"error": error.to_dict()}


async def collect(args: argparse.Namespace) -> dict[str, Any]:
    logger = logging.getLogger("jito_bundler.scripts.relay_snapshot")
    endpoints = RelayEndpoints.from_base_url(args.base_url) if args.base_url.strip() else RelayEndpoints.from_env()
    transport = RelayTransport(logger=logger, timeout_seconds=max(0.5, args.timeout))
    await transport.connect()

    health = HealthClient(logger=logger, transport=transport, endpoint=endpoints.health)
    tips = TipClient(logger=logger, transport=transport, endpoint=endpoints.tip)
    statistics = StatisticsClient(logger=logger, transport=transport, endpoint=endpoints.stats)
    block_engine = BlockEngineClient(logger=logger, transport=transport, endpoint=endpoints.block_engine)
    validators = ValidatorsClient(logger=logger, transport=transport, endpoint=endpoints.validators)

    async def read_health() -> dict[str, Any]:
        report = await health.check_health()
        return {"status": report.status, "healthy": report.healthy, "version": report.version, "uptime": report.uptime}

    async def read_tips() -> dict[str, Any]:
        catalog = await tips.get_tip_accounts()
        return {
            "accounts": [
                {"pubkey": account.pubkey, "lamports_per_signature": account.lamports_per_signature}
                for account in catalog
            ],
            "selected": select_tip_account(catalog).pubkey if catalog else None,
        }

    async def read_statistics() -> dict[str, Any]:
        return (await statistics.get_statistics()).to_dict()

    async def read_block_engine() -> dict[str, Any]:
        snapshot = await block_engine.get_block_engine_info()
        return {
            "current_slot": snapshot.current_slot,
            "congestion": snapshot.congestion,
            "leaders": [{"pubkey": leader.pubkey, "slot": leader.slot} for leader in snapshot.leaders],
        }

    async def read_validators() -> list[dict[str, Any]]:
        return [
            {
                "identity": validator.identity,
                "vote_account": validator.vote_account,
                "commission": validator.commission,
            }
            for validator in await validators.get_active_validators()
        ]

    output: dict[str, Any] = {"endpoints": {"health": endpoints.health, "tip": endpoints.tip, "stats": endpoints.stats}}
    try:
        await _section(output, "health", read_health)
        await _section(output, "tip_accounts", read_tips)
        await _section(output, "statistics", read_statistics)
        if args.with_leaders:
            await _section(output, "block_engine", read_block_engine)
        if args.with_validators:
            await _section(output, "validators", read_validators)
    finally:
        await transport.close()
    return output


def main() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    load_dotenv(repo_root / ".env")

    args = parse_args()
    output = asyncio.run(collect(args))
    print(json.dumps(sanitize_value(output), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
