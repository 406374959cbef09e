"""receiptmint CLI application using Typer.

Runs the tokenization pipeline on JSON transaction records and inspects
published receipts.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from receiptmint.application.commands import TokenizeReceiptCommand
from receiptmint.application.dtos import PipelineFailure, PipelineResult
from receiptmint.application.queries import ReceiptVerification, VerifyReceiptQuery
from receiptmint.domain.security.value_objects import EncryptedBundle, ReceiptKey
from receiptmint.domain.shared.exceptions import DomainException
from receiptmint.infrastructure.ledger import Ed25519TransactionSigner
from receiptmint.infrastructure.persistence.sqlalchemy.init_db import create_tables
from receiptmint.infrastructure.pipeline_factory import SettingsPipelineFactory
from receiptmint_config.settings import get_settings

app = typer.Typer(
    name="receiptmint",
    help="receiptmint - encrypt, publish and tokenize transaction receipts",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

keys_app = typer.Typer(
    name="keys",
    help="Signing key utilities",
    no_args_is_help=True,
)
app.add_typer(keys_app)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _configure_logging() -> None:
    """Configure logging once: console output on stderr, quiet third parties."""
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("receiptmint").setLevel(log_level)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@app.callback()
def main() -> None:
    _configure_logging()


@app.command("tokenize")
def tokenize(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    owner: str = typer.Option(..., "--owner", "-o", help="Address receiving the token"),
    txn_id: Optional[str] = typer.Option(
        None, "--txn-id", help="Idempotency key (defaults to the record's txnId)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Run the tokenization pipeline on a JSON transaction record."""
    try:
        payload = json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        err_console.print(f"[red]✗ {file} is not valid JSON: {e}[/red]")
        raise typer.Exit(code=2) from e

    ephemeral = get_settings().ephemeral_backends
    if ephemeral:
        err_console.print(
            f"[yellow]⚠  In-memory {' and '.join(ephemeral)}: the published "
            "bundle and token are discarded when this command exits[/yellow]",
            soft_wrap=True,
        )

    result = asyncio.run(_tokenize(payload, owner, txn_id))

    if as_json:
        console.print_json(data=result.to_dict())
    else:
        _print_result(result)

    if isinstance(result, PipelineFailure):
        raise typer.Exit(code=1)


async def _tokenize(payload: dict, owner: str, txn_id: Optional[str]) -> PipelineResult:
    factory = SettingsPipelineFactory()
    try:
        await factory.initialize()
        command = TokenizeReceiptCommand.from_factory(factory)
        return await command.execute(payload, owner, idempotency_key=txn_id)
    finally:
        await factory.close()


@app.command("decrypt")
def decrypt(
    cid: str = typer.Argument(..., help="Content identifier of the bundle"),
    key: str = typer.Option(..., "--key", "-k", help="Hex encoded receipt key"),
) -> None:
    """Fetch a published bundle and print the decrypted record."""
    if get_settings().content_store_backend == "memory":
        _refuse_ephemeral("decrypt", ["content store"])

    try:
        record = asyncio.run(_decrypt(cid, key))
    except DomainException as e:
        err_console.print(f"[red]✗ {e.message}[/red] [dim]({e.code.value})[/dim]")
        raise typer.Exit(code=1) from e

    console.print_json(data=record)


async def _decrypt(cid: str, key_hex: str) -> dict:
    receipt_key = ReceiptKey.from_hex(key_hex)
    factory = SettingsPipelineFactory()
    try:
        data = await factory.content_store().fetch(cid)
        bundle = EncryptedBundle.from_bytes(data)
        return factory.record_protector().decrypt(bundle, receipt_key)
    finally:
        await factory.close()


@app.command("verify")
def verify(
    txn_id: str = typer.Argument(..., help="Idempotency key of the transaction"),
    key: Optional[str] = typer.Option(None, "--key", "-k", help="Hex encoded key"),
) -> None:
    """Check that a transaction's token resolves to an intact bundle."""
    _refuse_ephemeral("verify", get_settings().ephemeral_backends)

    try:
        verification = asyncio.run(_verify(txn_id, key))
    except DomainException as e:
        err_console.print(f"[red]✗ {e.message}[/red] [dim]({e.code.value})[/dim]")
        raise typer.Exit(code=1) from e

    _print_verification(verification)
    if not verification.ok:
        raise typer.Exit(code=1)


async def _verify(txn_id: str, key: Optional[str]) -> ReceiptVerification:
    factory = SettingsPipelineFactory()
    try:
        await factory.initialize()
        return await VerifyReceiptQuery.from_factory(factory).execute(txn_id, key)
    finally:
        await factory.close()


@app.command("init-db")
def init_db() -> None:
    """Create the mint record tables (idempotent)."""
    asyncio.run(create_tables())
    console.print("[green]✓ Database schema is up to date[/green]")


@keys_app.command("generate")
def generate_key() -> None:
    """Generate an Ed25519 signing identity for the ledger.

    Copy the output to your .env file.
    """
    signer = Ed25519TransactionSigner.generate()

    console.print("\n[bold green]receiptmint Signer Generation[/bold green]")
    console.print("=" * 60)
    console.print(f"[cyan]SIGNER_PRIVATE_KEY[/cyan]={signer.seed_hex()}")
    console.print(f"[dim]address: {signer.address}[/dim]")
    console.print("=" * 60)
    console.print(
        "[yellow]⚠  Keep this key secure and never commit it "
        "to version control![/yellow]\n"
    )


def _refuse_ephemeral(command: str, backends: list[str]) -> None:
    """Exit when ``command`` would read state no earlier run could have kept."""
    if not backends:
        return
    err_console.print(
        f"[red]✗ {command} reads receipts published by earlier runs, which the "
        f"in-memory {' and '.join(backends)} does not keep[/red]",
        soft_wrap=True,
    )
    err_console.print(
        "[dim]Set CONTENT_STORE_BACKEND=ipfs and LEDGER_BACKEND=jsonrpc "
        "to keep published receipts between runs.[/dim]"
    )
    raise typer.Exit(code=2)


def _print_result(result: PipelineResult) -> None:
    data = result.to_dict()
    table = Table(show_header=False, box=None)
    table.add_column(style="cyan")
    table.add_column()
    for name, value in data.items():
        if name in ("success", "details"):
            continue
        if isinstance(value, list):
            value = ", ".join(value)
        table.add_row(name, "" if value is None else str(value))

    if result.success:
        console.print("[bold green]✓ Receipt tokenized[/bold green]")
    else:
        console.print("[bold red]✗ Pipeline failed[/bold red]")
    console.print(table)


def _print_verification(verification: ReceiptVerification) -> None:
    style = "green" if verification.ok else "red"
    console.print(f"[bold {style}]{verification.status.value}[/bold {style}]")
    if verification.token is not None:
        console.print(f"token: {verification.token.token_id}")
    if verification.cid:
        console.print(f"cid: {verification.cid}")
    if verification.message:
        console.print(f"[dim]{verification.message}[/dim]")
    if verification.record is not None:
        console.print_json(data=verification.record)


def cli() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    cli()
