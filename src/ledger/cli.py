"""Click CLI for poking the ledger directly (tokens, callback URL, resellers)."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import click
from pydantic import BaseModel

from src.ledger.client import LedgerClient
from src.ledger.errors import LedgerError
from src.ledger.models import DEFAULT_APP_ID, DEFAULT_BASE_URL, Credentials
from src.ledger.signer import AuthSigner, dump_body
from src.relay.validator import (
    ValidationError,
    validate_callback_url,
    validate_phone,
    validate_reseller_code,
)


@click.group()
@click.option("--base-url", envvar="LEDGER_BASE_URL", default=DEFAULT_BASE_URL, help="Ledger base URL.")
@click.option("--app-id", envvar="LEDGER_APP_ID", default=DEFAULT_APP_ID, help="Application ID.")
@click.option("--app-key", envvar="LEDGER_APP_KEY", default="", help="Application key.")
@click.option("--dev-key", envvar="LEDGER_DEV_KEY", default="", help="Developer key.")
@click.pass_context
def cli(ctx: click.Context, base_url: str, app_id: str, app_key: str, dev_key: str) -> None:
    """Ledger relay admin CLI."""
    ctx.ensure_object(dict)
    ctx.obj["credentials"] = Credentials(
        application_id=app_id,
        application_key=app_key,
        developer_key=dev_key,
        base_url=base_url,
    )


def _call(ctx: click.Context, op: Callable[[LedgerClient], Awaitable[BaseModel]]) -> None:
    async def run() -> BaseModel:
        client = LedgerClient(ctx.obj["credentials"])
        try:
            return await op(client)
        finally:
            await client.aclose()

    try:
        result = asyncio.run(run())
    except LedgerError as e:
        raise click.ClickException(f"{e.code}: {e}") from e
    click.echo(result.model_dump_json(indent=2))


def _checked(validator: Callable[[Any], Any], value: Any) -> Any:
    try:
        return validator(value)
    except ValidationError as e:
        raise click.BadParameter(e.reason) from e


@cli.command()
@click.argument("body")
@click.pass_context
def sign(ctx: click.Context, body: str) -> None:
    """Print the token for a JSON request BODY (compacted before signing)."""
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"BODY is not valid JSON: {e}") from e
    try:
        raw = dump_body(payload)
        token = AuthSigner(ctx.obj["credentials"]).sign(raw)
    except LedgerError as e:
        raise click.ClickException(str(e)) from e
    click.echo(json.dumps({"body": raw.decode("utf-8"), "token": token}, indent=2))


@cli.command("test")
@click.argument("phone")
@click.pass_context
def test_connectivity(ctx: click.Context, phone: str) -> None:
    """Run the ledger connectivity test against PHONE."""
    normalized = _checked(validate_phone, phone)
    _call(ctx, lambda client: client.test_connectivity(normalized))


@cli.command("set-callback")
@click.argument("url")
@click.pass_context
def set_callback(ctx: click.Context, url: str) -> None:
    """Register URL as the ledger's outbox callback."""
    checked = _checked(validate_callback_url, url)
    _call(ctx, lambda client: client.set_callback_url(checked))


@cli.command("get-callback")
@click.pass_context
def get_callback(ctx: click.Context) -> None:
    """Show the currently registered outbox callback."""
    _call(ctx, lambda client: client.get_callback_url())


@cli.command()
@click.argument("code")
@click.pass_context
def reseller(ctx: click.Context, code: str) -> None:
    """Look up reseller CODE."""
    checked = _checked(validate_reseller_code, code)
    _call(ctx, lambda client: client.get_reseller_info(checked))


@cli.command()
@click.argument("code")
@click.pass_context
def balance(ctx: click.Context, code: str) -> None:
    """Show the balance of reseller CODE."""
    checked = _checked(validate_reseller_code, code)
    _call(ctx, lambda client: client.get_reseller_balance(checked))
