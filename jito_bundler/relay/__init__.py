from .bundle_client import BundleClient
from .confirmation import BundleConfirmationPoller, ConfirmationOutcome
from .encoding import DecodedTransaction, decode_transaction, encode_bundle, encode_transaction
from .endpoints import DEFAULT_RELAY_BASE_URL, RelayEndpoints
from .errors import (
    ApiError,
    BundleError,
    BundleRateLimited,
    BundleRejected,
    InsufficientBalance,
    JitoError,
    NoArbitrageOpportunity,
    NoOpportunity,
    NoTipAccounts,
    RelayUnhealthy,
    RequestFailed,
    RequestTimeout,
    SerializationError,
    SubmissionTimeout,
)
from .telemetry import (
    BlockEngineClient,
    HealthClient,
    StatisticsClient,
    TipClient,
    TransactionsPoolClient,
    ValidatorsClient,
)
from .transport import RelayResponse, RelayTransport
from .types import (
    BlockEngineSnapshot,
    BundleState,
    BundleStatus,
    HealthReport,
    Leader,
    MempoolTransaction,
    RelayStatistics,
    TipAccount,
    TipDecision,
    Validator,
)

__all__ = [
    "ApiError",
    "BlockEngineClient",
    "BlockEngineSnapshot",
    "BundleClient",
    "BundleConfirmationPoller",
    "BundleError",
    "BundleRateLimited",
    "BundleRejected",
    "BundleState",
    "BundleStatus",
    "ConfirmationOutcome",
    "DEFAULT_RELAY_BASE_URL",
    "DecodedTransaction",
    "HealthClient",
    "HealthReport",
    "InsufficientBalance",
    "JitoError",
    "Leader",
    "MempoolTransaction",
    "NoArbitrageOpportunity",
    "NoOpportunity",
    "NoTipAccounts",
    "RelayEndpoints",
    "RelayResponse",
    "RelayStatistics",
    "RelayTransport",
    "RelayUnhealthy",
    "RequestFailed",
    "RequestTimeout",
    "SerializationError",
    "StatisticsClient",
    "SubmissionTimeout",
    "TipAccount",
    "TipClient",
    "TipDecision",
    "TransactionsPoolClient",
    "Validator",
    "ValidatorsClient",
    "decode_transaction",
    "encode_bundle",
    "encode_transaction",
]
