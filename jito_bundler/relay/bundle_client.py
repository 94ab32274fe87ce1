from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from jito_bundler.common import log_event

from .encoding import encode_bundle
from .errors import (
    SOURCE_BUNDLES,
    ApiError,
    BundleRateLimited,
    BundleRejected,
    RequestFailed,
    RequestTimeout,
    SubmissionTimeout,
    error_message_from_payload,
    is_rate_limit_message,
)
from .transport import RelayResponse, RelayTransport
from .types import BundleStatus

if TYPE_CHECKING:
    from jito_bundler.bundles.types import Bundle


def _rejection_from_error(
    error_payload: Any,
    *,
    status: int,
    retry_after_seconds: float | None,
) -> BundleRejected:
    message = error_message_from_payload(error_payload)
    code = error_payload.get("code") if isinstance(error_payload, dict) else None
    data = error_payload.get("data") if isinstance(error_payload, dict) else None
    if status == 429 or is_rate_limit_message(message):
        return BundleRateLimited(
            message,
            code=code,
            data=data,
            retry_after_seconds=retry_after_seconds,
        )
    return BundleRejected(message, code=code, data=data)


def _error_object(response: RelayResponse) -> Any:
    if isinstance(response.payload, dict):
        return response.payload.get("error")
    return None


def _bundle_id_from_result(result: Any) -> str | None:
    if isinstance(result, str) and result.strip():
        return result.strip()
    if isinstance(result, dict):
        raw = result.get("bundle_id") or result.get("bundleId") or result.get("id")
        if raw:
            return str(raw)
    return None


class BundleClient:
    """JSON-RPC client for sendBundle and getBundleStatus.

    ``submit`` never retries: resubmitting a bundle risks a duplicate rejection,
    so that decision belongs to the caller.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        transport: RelayTransport,
        endpoint: str,
    ) -> None:
        self._logger = logger
        self._transport = transport
        self._endpoint = endpoint.strip()

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @staticmethod
    def build_params(bundle: "Bundle") -> dict[str, Any]:
        params: dict[str, Any] = {"txs": encode_bundle(bundle.transactions)}
        if bundle.tip is not None:
            params["tip_account"] = bundle.tip.account
            params["tip_amount"] = max(0, int(bundle.tip.amount))
        return params

    async def submit(self, bundle: "Bundle", *, timeout_seconds: float | None = None) -> str:
        params = self.build_params(bundle)
        try:
            response = await self._transport.post_rpc(
                self._endpoint,
                source=SOURCE_BUNDLES,
                method="sendBundle",
                params=[params],
                timeout_seconds=timeout_seconds,
            )
        except RequestTimeout as error:
            raise SubmissionTimeout(
                f"sendBundle timed out; the relay may have accepted the bundle: {error}",
                source=SOURCE_BUNDLES,
            ) from error

        error_payload = _error_object(response)
        if not response.ok:
            if error_payload is not None:
                raise _rejection_from_error(
                    error_payload,
                    status=response.status,
                    retry_after_seconds=response.retry_after_seconds,
                )
            if response.status == 429:
                raise BundleRateLimited(
                    response.raw_text or "Too many requests",
                    retry_after_seconds=response.retry_after_seconds,
                )
            raise RequestFailed(
                f"HTTP {response.status}: {response.raw_text}",
                source=SOURCE_BUNDLES,
                status=response.status,
            )

        if not response.is_json or not isinstance(response.payload, dict):
            raise ApiError(
                f"sendBundle returned an unexpected body: {response.body_excerpt()}",
                source=SOURCE_BUNDLES,
            )

        if error_payload is not None:
            raise _rejection_from_error(
                error_payload,
                status=response.status,
                retry_after_seconds=response.retry_after_seconds,
            )

        bundle_id = _bundle_id_from_result(response.payload.get("result"))
        if bundle_id is None:
            raise ApiError("No result in sendBundle response", source=SOURCE_BUNDLES)

        log_event(
            self._logger,
            level="info",
            event="jito_bundle_submitted",
            message="Bundle submitted to Jito block engine",
            bundle_id=bundle_id,
            label=bundle.label,
            tx_count=len(bundle.transactions),
            tip_account=params.get("tip_account"),
            tip_lamports=params.get("tip_amount"),
        )
        return bundle_id

    async def get_status(self, bundle_id: str, *, timeout_seconds: float | None = None) -> BundleStatus:
        response = await self._transport.post_rpc(
            self._endpoint,
            source=SOURCE_BUNDLES,
            method="getBundleStatus",
            params=[bundle_id],
            timeout_seconds=timeout_seconds,
        )

        error_payload = _error_object(response)
        if not response.ok and error_payload is None:
            raise RequestFailed(
                f"HTTP {response.status}: {response.raw_text}",
                source=SOURCE_BUNDLES,
                status=response.status,
            )
        if error_payload is not None:
            raise _rejection_from_error(
                error_payload,
                status=response.status,
                retry_after_seconds=response.retry_after_seconds,
            )
        if not response.is_json or not isinstance(response.payload, dict) or "result" not in response.payload:
            raise ApiError(
                f"getBundleStatus returned an unexpected body: {response.body_excerpt()}",
                source=SOURCE_BUNDLES,
            )

        return BundleStatus.from_payload(
            response.payload["result"],
            bundle_id=bundle_id,
            source=SOURCE_BUNDLES,
        )
