from __future__ import annotations

from typing import Any

SOURCE_BUNDLES = "bundles"
SOURCE_TIP_ACCOUNTS = "tip_accounts"
SOURCE_BLOCK_ENGINE = "block_engine"
SOURCE_VALIDATORS = "validators"
SOURCE_TRANSACTIONS = "transactions"
SOURCE_HEALTH = "health"
SOURCE_STATS = "stats"
SOURCE_LEDGER = "ledger"
SOURCE_ASSEMBLER = "assembler"
SOURCE_STRATEGY = "strategy"


class JitoError(RuntimeError):
    """Base error. ``source`` names the collaborator that produced it."""

    def __init__(self, message: str, *, source: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.source = source

    def to_dict(self) -> dict[str, Any]:
        return {"kind": type(self).__name__, "source": self.source, "message": self.message}


class RequestFailed(JitoError):
    """The call itself did not complete (connection error or HTTP error status)."""

    def __init__(self, message: str, *, source: str = "", status: int | None = None) -> None:
        super().__init__(message, source=source)
        self.status = status


class RequestTimeout(RequestFailed):
    pass


class SubmissionTimeout(RequestTimeout):
    """sendBundle timed out; the relay may or may not have accepted the bundle."""


class ApiError(JitoError):
    """The call completed but the response violates the expected protocol."""


class SerializationError(ApiError):
    pass


class BundleRejected(JitoError):
    """The relay answered with an error object. ``message`` is the relay's text verbatim."""

    def __init__(
        self,
        message: str,
        *,
        source: str = SOURCE_BUNDLES,
        code: int | None = None,
        data: Any = None,
    ) -> None:
        super().__init__(message, source=source)
        self.code = code
        self.data = data


class BundleRateLimited(BundleRejected):
    def __init__(
        self,
        message: str,
        *,
        source: str = SOURCE_BUNDLES,
        code: int | None = None,
        data: Any = None,
        retry_after_seconds: float | None = None,
    ) -> None:
        super().__init__(message, source=source, code=code, data=data)
        self.retry_after_seconds = retry_after_seconds


class BundleError(JitoError):
    def __init__(self, message: str, *, source: str = SOURCE_ASSEMBLER) -> None:
        super().__init__(message, source=source)


class NoTipAccounts(JitoError):
    def __init__(self, message: str = "No tip accounts available", *, source: str = SOURCE_TIP_ACCOUNTS) -> None:
        super().__init__(message, source=source)


class InsufficientBalance(JitoError):
    def __init__(
        self,
        message: str = "Insufficient balance",
        *,
        source: str = SOURCE_LEDGER,
        balance_lamports: int | None = None,
        required_lamports: int | None = None,
    ) -> None:
        super().__init__(message, source=source)
        self.balance_lamports = balance_lamports
        self.required_lamports = required_lamports


class NoOpportunity(JitoError):
    def __init__(self, message: str = "No arbitrage opportunity found", *, source: str = SOURCE_STRATEGY) -> None:
        super().__init__(message, source=source)


NoArbitrageOpportunity = NoOpportunity


class RelayUnhealthy(JitoError):
    def __init__(self, status: str, *, source: str = SOURCE_HEALTH) -> None:
        super().__init__(f"Relay reported unhealthy status: {status}", source=source)
        self.status = status


def error_message_from_payload(payload: Any) -> str:
    if isinstance(payload, dict):
        message = payload.get("message")
        if message:
            return str(message)
        details = payload.get("details")
        if details:
            return str(details)
    return str(payload)


def is_rate_limit_message(message: str) -> bool:
    lowered = message.lower()
    return any(
        marker in lowered
        for marker in (
            "rate limit",
            "too many requests",
            "network congested",
            "congested",
            "try again later",
        )
    )
