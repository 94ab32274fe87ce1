from .engine import JitoEngine
from .ledger import LedgerClient, ReferenceHashSource, SolanaLedgerClient
from .relay.endpoints import RelayEndpoints

__all__ = [
    "JitoEngine",
    "LedgerClient",
    "ReferenceHashSource",
    "RelayEndpoints",
    "SolanaLedgerClient",
]
