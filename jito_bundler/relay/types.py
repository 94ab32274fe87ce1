from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Literal

from .errors import ApiError

BundleState = Literal["pending", "confirmed", "failed", "expired", "unknown"]

BUNDLE_STATES: frozenset[str] = frozenset({"pending", "confirmed", "failed", "expired", "unknown"})
TERMINAL_BUNDLE_STATES: frozenset[str] = frozenset({"confirmed", "failed", "expired"})


def normalize_bundle_state(value: Any) -> BundleState:
    state = str(value or "").strip().lower()
    if state in BUNDLE_STATES:
        return state  # type: ignore[return-value]
    return "unknown"


def _require_dict(payload: Any, *, what: str, source: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ApiError(f"Unexpected {what} payload: {payload!r}", source=source)
    return payload


def _require_str(payload: dict[str, Any], key: str, *, what: str, source: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ApiError(f"Missing {key} in {what} payload: {payload!r}", source=source)
    return value.strip()


def _require_int(payload: dict[str, Any], key: str, *, what: str, source: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ApiError(f"Invalid {key} in {what} payload: {payload!r}", source=source)
    return int(value)


def _optional_int(payload: dict[str, Any], key: str) -> int | None:
    value = payload.get(key)
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def _require_float(payload: dict[str, Any], key: str, *, what: str, source: str) -> float:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ApiError(f"Invalid {key} in {what} payload: {payload!r}", source=source)
    return float(value)


@dataclass(slots=True, frozen=True)
class TipAccount:
    pubkey: str
    lamports_per_signature: int

    @classmethod
    def from_payload(cls, payload: Any, *, source: str) -> "TipAccount":
        data = _require_dict(payload, what="tip account", source=source)
        return cls(
            pubkey=_require_str(data, "pubkey", what="tip account", source=source),
            lamports_per_signature=_require_int(
                data, "lamports_per_signature", what="tip account", source=source
            ),
        )


@dataclass(slots=True, frozen=True)
class TipDecision:
    account: str
    amount: int


@dataclass(slots=True, frozen=True)
class BundleStatus:
    bundle_id: str
    status: BundleState
    slot: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_BUNDLE_STATES

    @classmethod
    def from_payload(cls, payload: Any, *, bundle_id: str, source: str) -> "BundleStatus":
        data = payload
        # getBundleStatuses-style envelopes wrap the record in {"value": [...]}.
        if isinstance(data, dict) and isinstance(data.get("value"), list):
            entries = data["value"]
            data = entries[0] if entries else {"bundle_id": bundle_id, "status": "unknown"}
        data = _require_dict(data, what="bundle status", source=source)
        returned_id = str(data.get("bundle_id") or data.get("bundleId") or bundle_id)
        raw_status = data.get("status", data.get("confirmation_status"))
        if raw_status is None:
            raise ApiError(f"Missing status in bundle status payload: {data!r}", source=source)
        return cls(
            bundle_id=returned_id,
            status=normalize_bundle_state(raw_status),
            slot=_optional_int(data, "slot"),
        )


@dataclass(slots=True, frozen=True)
class Leader:
    pubkey: str
    slot: int


@dataclass(slots=True, frozen=True)
class BlockEngineSnapshot:
    leaders: list[Leader]
    congestion: float
    current_slot: int

    @classmethod
    def from_payload(cls, payload: Any, *, source: str) -> "BlockEngineSnapshot":
        data = _require_dict(payload, what="block engine", source=source)
        raw_leaders = data.get("leaders")
        if not isinstance(raw_leaders, list):
            raise ApiError(f"Missing leaders in block engine payload: {data!r}", source=source)
        leaders = []
        for raw_leader in raw_leaders:
            leader = _require_dict(raw_leader, what="leader", source=source)
            leaders.append(
                Leader(
                    pubkey=_require_str(leader, "pubkey", what="leader", source=source),
                    slot=_require_int(leader, "slot", what="leader", source=source),
                )
            )
        return cls(
            leaders=leaders,
            congestion=max(0.0, _require_float(data, "congestion", what="block engine", source=source)),
            current_slot=_require_int(data, "current_slot", what="block engine", source=source),
        )


@dataclass(slots=True, frozen=True)
class Validator:
    identity: str
    vote_account: str
    commission: int
    active: bool

    @classmethod
    def from_payload(cls, payload: Any, *, source: str) -> "Validator":
        data = _require_dict(payload, what="validator", source=source)
        active = data.get("active")
        if not isinstance(active, bool):
            raise ApiError(f"Invalid active flag in validator payload: {data!r}", source=source)
        return cls(
            identity=_require_str(data, "identity", what="validator", source=source),
            vote_account=_require_str(data, "vote_account", what="validator", source=source),
            commission=_require_int(data, "commission", what="validator", source=source),
            active=active,
        )


@dataclass(slots=True, frozen=True)
class MempoolTransaction:
    signature: str
    slot: int
    cu_consumed: int | None = None
    priority_fee: int | None = None

    @classmethod
    def from_payload(cls, payload: Any, *, source: str) -> "MempoolTransaction":
        data = _require_dict(payload, what="mempool transaction", source=source)
        return cls(
            signature=_require_str(data, "signature", what="mempool transaction", source=source),
            slot=_require_int(data, "slot", what="mempool transaction", source=source),
            cu_consumed=_optional_int(data, "cu_consumed"),
            priority_fee=_optional_int(data, "priority_fee"),
        )


@dataclass(slots=True, frozen=True)
class HealthReport:
    status: str
    version: str
    uptime: int | None = None

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"

    @classmethod
    def from_payload(cls, payload: Any, *, source: str) -> "HealthReport":
        data = _require_dict(payload, what="health", source=source)
        status = data.get("status")
        if not isinstance(status, str):
            raise ApiError(f"Missing status in health payload: {data!r}", source=source)
        return cls(
            status=status,
            version=str(data.get("version") or ""),
            uptime=_optional_int(data, "uptime"),
        )


@dataclass(slots=True, frozen=True)
class RelayStatistics:
    bundles_sent: int
    bundles_accepted: int
    success_rate: float
    average_tip: int
    total_volume: int

    @classmethod
    def from_payload(cls, payload: Any, *, source: str) -> "RelayStatistics":
        data = _require_dict(payload, what="statistics", source=source)
        return cls(
            bundles_sent=_require_int(data, "bundles_sent", what="statistics", source=source),
            bundles_accepted=_require_int(data, "bundles_accepted", what="statistics", source=source),
            success_rate=_require_float(data, "success_rate", what="statistics", source=source),
            average_tip=_require_int(data, "average_tip", what="statistics", source=source),
            total_volume=_require_int(data, "total_volume", what="statistics", source=source),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
