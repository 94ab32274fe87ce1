from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from jito_bundler.bundles import Bundle
from jito_bundler.common import log_event, wait_with_stop
from jito_bundler.relay.errors import JitoError, NoOpportunity

from .types import CycleOutcome

if TYPE_CHECKING:
    from jito_bundler.engine import JitoEngine


class StrategyLoop:
    """Fixed-cadence loop around one strategy cycle.

    Subclasses implement ``_cycle``. A cycle that finds nothing raises
    ``NoOpportunity``; any other exception is logged and turned into an
    error outcome so the loop keeps running. Submitted bundles are confirmed
    by background tasks that are drained when the loop stops.
    """

    name = "strategy"

    def __init__(
        self,
        *,
        logger: logging.Logger,
        engine: "JitoEngine",
        interval_seconds: float,
        dry_run: bool = True,
        error_backoff_seconds: float = 0.0,
        confirm_max_retries: int | None = None,
        drain_timeout_seconds: float = 5.0,
    ) -> None:
        self._logger = logger
        self._engine = engine
        self._interval_seconds = max(0.0, float(interval_seconds))
        self._dry_run = dry_run
        self._error_backoff_seconds = max(0.0, float(error_backoff_seconds))
        self._confirm_max_retries = confirm_max_retries
        self._drain_timeout_seconds = max(0.0, float(drain_timeout_seconds))
        self._confirmations: set[asyncio.Task[None]] = set()

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def pending_confirmations(self) -> int:
        return len(self._confirmations)

    async def _cycle(self) -> CycleOutcome:
        raise NotImplementedError

    async def run_cycle(self) -> CycleOutcome:
        try:
            outcome = await self._cycle()
        except asyncio.CancelledError:
            raise
        except NoOpportunity as error:
            log_event(
                self._logger,
                level="debug",
                event="strategy_no_opportunity",
                message="No qualifying opportunity this cycle",
                strategy=self.name,
                reason=str(error),
            )
            return CycleOutcome(strategy=self.name, status="no_opportunity", reason=str(error))
        except Exception as error:
            log_event(
                self._logger,
                level="error",
                event="strategy_cycle_failed",
                message="Strategy cycle failed",
                strategy=self.name,
                error=str(error),
                error_type=type(error).__name__,
                source=error.source if isinstance(error, JitoError) else "",
            )
            return CycleOutcome(strategy=self.name, status="error", reason=str(error))

        log_event(
            self._logger,
            level="info",
            event="strategy_cycle_completed",
            message="Strategy cycle completed",
            **outcome.to_dict(),
        )
        return outcome

    async def submit(self, bundle: Bundle, **details: Any) -> CycleOutcome:
        summary = {**bundle.summary(), **details}
        if self._dry_run:
            log_event(
                self._logger,
                level="info",
                event="strategy_dry_run_bundle",
                message="Dry run: bundle assembled but not submitted",
                strategy=self.name,
                **summary,
            )
            return CycleOutcome(strategy=self.name, status="dry_run", reason="dry_run", details=summary)

        bundle_id = await self._engine.send_bundle(bundle)
        self.schedule_confirmation(bundle_id)
        return CycleOutcome(strategy=self.name, status="submitted", bundle_id=bundle_id, details=summary)

    def schedule_confirmation(self, bundle_id: str) -> asyncio.Task[None]:
        task = asyncio.create_task(self._confirm(bundle_id))
        self._confirmations.add(task)
        task.add_done_callback(self._confirmations.discard)
        return task

    async def _confirm(self, bundle_id: str) -> None:
        try:
            outcome = await self._engine.wait_for_bundle_confirmation(
                bundle_id,
                max_retries=self._confirm_max_retries,
            )
        except asyncio.CancelledError:
            raise
        except Exception as error:
            log_event(
                self._logger,
                level="error",
                event="bundle_confirmation_failed",
                message="Bundle confirmation polling failed",
                strategy=self.name,
                bundle_id=bundle_id,
                error=str(error),
            )
            return

        log_event(
            self._logger,
            level="info" if outcome.confirmed else "warning",
            event="bundle_confirmed" if outcome.confirmed else "bundle_not_confirmed",
            message="Bundle confirmed" if outcome.confirmed else "Bundle did not confirm",
            strategy=self.name,
            **outcome.to_dict(),
        )

    async def drain(self) -> None:
        if not self._confirmations:
            return

        pending_tasks = set(self._confirmations)
        _, still_pending = await asyncio.wait(pending_tasks, timeout=self._drain_timeout_seconds or None)
        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)
            log_event(
                self._logger,
                level="warning",
                event="strategy_confirmations_abandoned",
                message="Stopped waiting for bundle confirmations",
                strategy=self.name,
                abandoned=len(still_pending),
            )

    async def run(self, stop_event: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        log_event(
            self._logger,
            level="info",
            event="strategy_started",
            message="Strategy loop started",
            strategy=self.name,
            dry_run=self._dry_run,
            interval_seconds=self._interval_seconds,
        )
        try:
            while not stop_event.is_set():
                cycle = asyncio.ensure_future(self.run_cycle())
                try:
                    outcome = await asyncio.shield(cycle)
                except asyncio.CancelledError:
                    # The in-flight cycle finishes before cancellation propagates.
                    await asyncio.gather(cycle, return_exceptions=True)
                    raise

                next_tick += self._interval_seconds
                now = loop.time()
                if next_tick <= now and self._interval_seconds > 0:
                    missed_cycles = int((now - next_tick) / self._interval_seconds) + 1
                    next_tick += missed_cycles * self._interval_seconds

                delay_seconds = max(0.0, next_tick - now)
                if outcome.status == "error":
                    delay_seconds = max(delay_seconds, self._error_backoff_seconds)

                await wait_with_stop(stop_event, delay_seconds)
        finally:
            await self.drain()
            log_event(
                self._logger,
                level="info",
                event="strategy_stopped",
                message="Strategy loop stopped",
                strategy=self.name,
            )
