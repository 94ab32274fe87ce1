from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable

from jito_bundler.common import log_event

from .types import BundleState, BundleStatus

StatusFetcher = Callable[[str], Awaitable[BundleStatus]]
Sleeper = Callable[[float], Awaitable[Any]]


@dataclass(slots=True, frozen=True)
class ConfirmationOutcome:
    bundle_id: str
    confirmed: bool
    status: BundleState
    polls: int
    slot: int | None = None

    @property
    def resolved(self) -> bool:
        """True when the relay reported a terminal status before retries ran out."""
        return self.status in {"confirmed", "failed", "expired"}

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class BundleConfirmationPoller:
    """Polls bundle status until a terminal state or the retry budget is spent.

    ``confirmed`` ends the wait with success, ``failed`` and ``expired`` end it
    with failure. Any other status, including a query error (recorded as
    ``unknown``), consumes one retry. Running out of retries returns an
    unconfirmed outcome whose ``status`` is the last one observed.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        fetch_status: StatusFetcher,
        max_retries: int = 30,
        poll_interval_seconds: float = 1.0,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._logger = logger
        self._fetch_status = fetch_status
        self._max_retries = max(1, int(max_retries))
        self._poll_interval_seconds = max(0.0, float(poll_interval_seconds))
        self._sleep = sleep

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def wait(self, bundle_id: str, *, max_retries: int | None = None) -> ConfirmationOutcome:
        attempts = self._max_retries if max_retries is None else max(1, int(max_retries))
        last_state: BundleState = "pending"
        last_slot: int | None = None

        for poll in range(1, attempts + 1):
            try:
                status = await self._fetch_status(bundle_id)
            except asyncio.CancelledError:
                raise
            except Exception as error:
                last_state = "unknown"
                log_event(
                    self._logger,
                    level="warning",
                    event="jito_bundle_status_failed",
                    message="Failed to get bundle status",
                    bundle_id=bundle_id,
                    poll=poll,
                    max_retries=attempts,
                    error=str(error),
                )
            else:
                last_state = status.status
                last_slot = status.slot
                if status.status == "confirmed":
                    log_event(
                        self._logger,
                        level="info",
                        event="jito_bundle_confirmed",
                        message="Bundle confirmed",
                        bundle_id=bundle_id,
                        slot=status.slot,
                        polls=poll,
                    )
                    return ConfirmationOutcome(
                        bundle_id=bundle_id,
                        confirmed=True,
                        status="confirmed",
                        polls=poll,
                        slot=status.slot,
                    )
                if status.status in {"failed", "expired"}:
                    log_event(
                        self._logger,
                        level="warning",
                        event="jito_bundle_not_landed",
                        message="Bundle reached a terminal failure status",
                        bundle_id=bundle_id,
                        status=status.status,
                        polls=poll,
                    )
                    return ConfirmationOutcome(
                        bundle_id=bundle_id,
                        confirmed=False,
                        status=status.status,
                        polls=poll,
                        slot=status.slot,
                    )

            if poll < attempts:
                await self._sleep(self._poll_interval_seconds)

        log_event(
            self._logger,
            level="warning",
            event="jito_bundle_confirmation_exhausted",
            message="Bundle did not reach a terminal status before retries ran out",
            bundle_id=bundle_id,
            last_status=last_state,
            polls=attempts,
        )
        return ConfirmationOutcome(
            bundle_id=bundle_id,
            confirmed=False,
            status=last_state,
            polls=attempts,
            slot=last_slot,
        )
