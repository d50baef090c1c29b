"""Ledger error taxonomy.

Every failure reaching the ledger is one of four kinds:

    TransportError      network never produced a response (DNS, connect, timeout)
    ExternalAPIError    ledger answered with a non-2xx status
    DecodingError       2xx answer whose body is not the expected JSON shape
    EncodingError       we could not serialize our own request or token metadata

A 2xx answer carrying an unfavourable protocol status code is NOT an error;
the relay interprets it.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for failures talking to the ledger system."""

    code = "LEDGER_ERROR"


class TransportError(LedgerError):
    """The request never got an HTTP response."""

    code = "LEDGER_UNAVAILABLE"


class ExternalAPIError(LedgerError):
    """The ledger replied with a non-2xx status."""

    code = "LEDGER_API_ERROR"

    def __init__(self, status_code: int, status_line: str) -> None:
        self.status_code = status_code
        self.status_line = status_line
        super().__init__(f"Ledger API error: {status_line}")


class DecodingError(LedgerError):
    """The ledger response body could not be parsed."""

    code = "LEDGER_BAD_RESPONSE"


class EncodingError(LedgerError):
    """Serializing a request body or token metadata failed."""

    code = "ENCODING_ERROR"
