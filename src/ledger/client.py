"""Async HTTP client for the ledger system.

Every operation follows the same contract:
1. Serialize the request to compact JSON bytes
2. Sign exactly those bytes (AuthSigner)
3. POST to ``base_url + OperationName?token=<token>`` with a 30s timeout
4. Map transport failures, non-2xx answers and bad bodies to LedgerError
5. Parse the typed response model
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, TypeVar, runtime_checkable

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.ledger.errors import DecodingError, ExternalAPIError, TransportError
from src.ledger.models import (
    CallbackUrlAck,
    CallbackUrlInfo,
    ConnectivityResult,
    Credentials,
    RelayMessage,
    RelayResult,
    ResellerBalance,
    ResellerInfo,
)
from src.ledger.signer import AuthSigner, dump_body

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 30.0
_USER_AGENT = "chat-ledger-relay/1.0"

ModelT = TypeVar("ModelT", bound=BaseModel)


@runtime_checkable
class LedgerGateway(Protocol):
    """Capability interface the relay and HTTP routes depend on."""

    async def insert_message(self, message: RelayMessage) -> RelayResult: ...

    async def set_callback_url(self, url: str) -> CallbackUrlAck: ...

    async def get_callback_url(self) -> CallbackUrlInfo: ...

    async def get_reseller_info(self, code: str) -> ResellerInfo: ...

    async def get_reseller_balance(self, code: str) -> ResellerBalance: ...

    async def test_connectivity(self, phone: str) -> ConnectivityResult: ...

    async def validate_reseller(self, code: str) -> bool: ...


class LedgerClient:
    """Signs and sends ledger operations over a shared httpx connection pool."""

    def __init__(
        self,
        credentials: Credentials,
        http_client: httpx.AsyncClient | None = None,
        signer: AuthSigner | None = None,
    ) -> None:
        self._credentials = credentials
        self._signer = signer or AuthSigner(credentials)
        self._http = http_client or httpx.AsyncClient(timeout=_TIMEOUT_SECONDS)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _url(self, operation: str) -> str:
        return f"{self._credentials.base_url.rstrip('/')}/{operation}"

    async def _call(
        self, operation: str, payload: dict[str, Any], model: type[ModelT],
    ) -> ModelT:
        body = dump_body(payload)
        token = self._signer.sign(body)
        url = self._url(operation)
        logger.debug("Ledger request %s body=%s", operation, body.decode("utf-8"))

        try:
            resp = await self._http.post(
                url,
                params={"token": token},
                content=body,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": _USER_AGENT,
                },
                timeout=_TIMEOUT_SECONDS,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Ledger {operation} timed out") from e
        except httpx.TransportError as e:
            raise TransportError(f"Ledger {operation} unreachable: {e}") from e

        logger.debug(
            "Ledger response %s status=%d body=%s",
            operation, resp.status_code, resp.text,
        )

        if not resp.is_success:
            status_line = f"{resp.status_code} {resp.reason_phrase}".strip()
            logger.error(
                "Ledger %s failed: %s, body: %s", operation, status_line, resp.text,
            )
            raise ExternalAPIError(resp.status_code, status_line)

        try:
            data = resp.json()
        except ValueError as e:
            raise DecodingError(f"Ledger {operation} returned non-JSON body") from e
        if not isinstance(data, dict):
            raise DecodingError(f"Ledger {operation} returned {type(data).__name__}, expected object")

        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise DecodingError(f"Ledger {operation} response has unexpected shape: {e}") from e

    async def insert_message(self, message: RelayMessage) -> RelayResult:
        """Forward one chat message to the ledger inbox."""
        result = await self._call("InsertInbox", message.to_wire(), RelayResult)
        logger.info(
            "Ledger InsertInbox ok=%s inbox=%d status=%d desc=%s",
            result.success, result.inbox_code, result.status_code,
            result.status_description,
        )
        return result

    async def set_callback_url(self, url: str) -> CallbackUrlAck:
        ack = await self._call("SetOutboxCallback", {"url": url}, CallbackUrlAck)
        logger.info("Ledger callback URL set to %s", url)
        return ack

    async def get_callback_url(self) -> CallbackUrlInfo:
        return await self._call("GetOutboxCallback", {}, CallbackUrlInfo)

    async def get_reseller_info(self, code: str) -> ResellerInfo:
        return await self._call("GetRs", {"kode": code}, ResellerInfo)

    async def get_reseller_balance(self, code: str) -> ResellerBalance:
        return await self._call("GetSaldoRs", {"kode": code}, ResellerBalance)

    async def test_connectivity(self, phone: str) -> ConnectivityResult:
        return await self._call("Test", {"phone": phone}, ConnectivityResult)

    async def validate_reseller(self, code: str) -> bool:
        """True when the reseller exists and is active."""
        info = await self.get_reseller_info(code)
        valid = info.lookup_status == "success" and info.is_active
        logger.debug("Reseller %s validation result: %s", code, valid)
        return valid
