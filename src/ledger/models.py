"""Pydantic models for the ledger wire protocol.

Python field names are used inside the bridge; the ledger's own
(Indonesian) field names are the aliases used on the wire.
"""

from __future__ import annotations

import os

from pydantic import AliasPath, BaseModel, ConfigDict, Field

# Fixed sender-type tag identifying the chat channel to the ledger ("W" = WhatsApp).
SENDER_TYPE_CHAT = "W"

DEFAULT_BASE_URL = "http://localhost:5000/"
DEFAULT_APP_ID = "OtomaX.Addon"


class Credentials(BaseModel):
    """Application credential triple plus the ledger base URL."""

    model_config = ConfigDict(frozen=True)

    application_id: str
    application_key: str
    developer_key: str
    base_url: str = DEFAULT_BASE_URL

    @classmethod
    def from_env(cls) -> Credentials:
        """Load credentials from ``LEDGER_*`` environment variables."""
        return cls(
            application_id=os.environ.get("LEDGER_APP_ID", DEFAULT_APP_ID),
            application_key=os.environ.get("LEDGER_APP_KEY", ""),
            developer_key=os.environ.get("LEDGER_DEV_KEY", ""),
            base_url=os.environ.get("LEDGER_BASE_URL", DEFAULT_BASE_URL),
        )


# --- Requests ---


class RelayMessage(BaseModel):
    """One chat message forwarded to the ledger inbox (``InsertInbox``).

    Field order matches the ledger's expected JSON key order.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str = Field(alias="pesan")
    reseller_code: str = Field("", alias="kode_reseller")
    sender_identifier: str = Field(alias="pengirim")
    sender_type: str = Field(SENDER_TYPE_CHAT, alias="tipe_pengirim")
    terminal_code: int = Field(0, alias="kode_terminal")

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(by_alias=True)


# --- Responses ---


class RelayResult(BaseModel):
    """``InsertInbox`` answer. ``status_code`` drives the auto-reply policy."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool = Field(False, validation_alias="ok")
    inbox_code: int = Field(0, validation_alias=AliasPath("result", "kode_inbox"))
    status_code: int = Field(0, validation_alias=AliasPath("result", "status"))
    status_description: str = Field(
        "", validation_alias=AliasPath("result", "statusDesc"),
    )
    response_text: str | None = Field(
        None, validation_alias=AliasPath("result", "pesan"),
    )


class CallbackUrlAck(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = ""
    message: str = ""


class CallbackUrlInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: str = ""
    message: str = ""
    url: str = Field("", validation_alias=AliasPath("data", "url"))


class ResellerInfo(BaseModel):
    """Reseller reference data. Fetched on demand, never cached."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: str = Field("", validation_alias=AliasPath("data", "kode"))
    name: str = Field("", validation_alias=AliasPath("data", "nama"))
    balance: float = Field(0.0, validation_alias=AliasPath("data", "saldo"))
    status: str = Field("", validation_alias=AliasPath("data", "status"))
    is_active: bool = Field(False, validation_alias=AliasPath("data", "is_active"))
    lookup_status: str = Field("", validation_alias="status")
    lookup_message: str = Field("", validation_alias="message")


class ResellerBalance(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: str = ""
    message: str = ""
    code: str = Field("", validation_alias=AliasPath("data", "kode"))
    balance: float = Field(0.0, validation_alias=AliasPath("data", "saldo"))


class ConnectivityResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: str = ""
    message: str = ""
    result: str = Field("", validation_alias=AliasPath("data", "result"))


# --- Callbacks (ledger -> bridge) ---


class CallbackPayload(BaseModel):
    """Out-of-band notification pushed by the ledger to ``/relay/callback``."""

    model_config = ConfigDict(populate_by_name=True)

    transaction_code: int = Field(alias="kode")
    status_code: int = Field(alias="status")
    message: str = ""
    response_text: str | None = Field(None, alias="pesan")
    original_sender_identifier: str | None = Field(None, alias="pengirim")
