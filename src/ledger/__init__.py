"""Ledger system integration for the chat relay.

This module provides:
- Per-request HMAC token signing
- An async HTTP client for every ledger operation
- Typed request/response models mapped to the ledger's wire names
- The ledger error taxonomy
"""

from src.ledger.client import LedgerClient, LedgerGateway
from src.ledger.errors import (
    DecodingError,
    EncodingError,
    ExternalAPIError,
    LedgerError,
    TransportError,
)
from src.ledger.models import (
    CallbackPayload,
    CallbackUrlAck,
    CallbackUrlInfo,
    ConnectivityResult,
    Credentials,
    RelayMessage,
    RelayResult,
    ResellerBalance,
    ResellerInfo,
)
from src.ledger.signer import AuthSigner

__all__ = [
    # Exceptions
    "DecodingError",
    "EncodingError",
    "ExternalAPIError",
    "LedgerError",
    "TransportError",
    # Components
    "AuthSigner",
    "LedgerClient",
    "LedgerGateway",
    # Models
    "CallbackPayload",
    "CallbackUrlAck",
    "CallbackUrlInfo",
    "ConnectivityResult",
    "Credentials",
    "RelayMessage",
    "RelayResult",
    "ResellerBalance",
    "ResellerInfo",
]
