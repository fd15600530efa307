# starledger/cli/main.py
"""
CLI for submitting, querying and verifying records on a SQLite-backed star ledger.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from starledger.chain.blockchain import Blockchain
from starledger.config import LedgerConfig
from starledger.core.errors import LedgerError
from starledger.crypto.keys import IdentityKeyPair
from starledger.registry import StarRegistry
from starledger.storage import SQLiteStorage
from starledger.verify.verifier import ChainVerifier

app = typer.Typer(
    name="starledger",
    help="Submit, query and verify records on a private star ledger",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def get_db_path(db_flag: Optional[Path] = None, config: Optional[LedgerConfig] = None) -> Path:
    """Resolve DB path in this order:
    1. --db flag
    2. STARLEDGER_DB_PATH environment variable
    3. Default: ~/.starledger/chain.db
    """
    if db_flag:
        path = db_flag.resolve()
    elif config is not None and config.db_path is not None:
        path = config.db_path
    else:
        path = Path.home() / ".starledger" / "chain.db"

    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _fail(message: str) -> None:
    console.print(f"[red]{escape(message)}[/]")
    raise typer.Exit(1)


def _open_registry(ctx: typer.Context) -> StarRegistry:
    config: LedgerConfig = ctx.obj["config"]
    db_path: Path = ctx.obj["db_path"]
    try:
        chain = Blockchain(storage=SQLiteStorage(db_path))
    except LedgerError as e:
        _fail(f"Stored chain is not valid: {e}")
    except Exception as e:
        _fail(f"Failed to open database {db_path}: {e}")
    return StarRegistry(chain=chain, config=config)


def _run(registry: StarRegistry, coro):
    try:
        return asyncio.run(coro)
    except LedgerError as e:
        _fail(f"{type(e).__name__}: {e}")
    finally:
        registry.close()


def _echo_json(data) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


@app.callback()
def main(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(
        None,
        "--db",
        help="Path to SQLite database (overrides STARLEDGER_DB_PATH env var)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log chain activity to stderr"),
):
    """Manage a private star ledger."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    try:
        config = LedgerConfig.from_env()
    except ValueError as e:
        _fail(f"Invalid configuration: {e}")
    ctx.obj = {"config": config, "db_path": get_db_path(db, config)}


@app.command()
def init(ctx: typer.Context):
    """Create the genesis block if the chain is empty."""
    registry = _open_registry(ctx)
    created = _run(registry, registry.chain.initialize())
    if created is None:
        console.print("[yellow]Chain already initialized.[/]")
    else:
        console.print(f"[green]Genesis block created[/] {created.hash}")


@app.command()
def height(ctx: typer.Context):
    """Print the current chain height (-1 when empty)."""
    registry = _open_registry(ctx)
    typer.echo(_run(registry, registry.get_chain_height()))


@app.command()
def keygen():
    """Generate a new Ed25519 identity."""
    keys = IdentityKeyPair.generate()
    typer.echo(f"identity:    {keys.identity}")
    typer.echo(f"private-key: {keys.private_key_b64url()}")


@app.command()
def challenge(
    ctx: typer.Context,
    identity: str = typer.Argument(..., help="Identity (base64url public key) to prove"),
):
    """Request an ownership challenge message to sign."""
    registry = _open_registry(ctx)
    typer.echo(_run(registry, registry.request_ownership_challenge(identity)))


@app.command()
def sign(
    message: str = typer.Argument(..., help="Challenge message to sign"),
    key: str = typer.Option(..., "--key", "-k", envvar="STARLEDGER_PRIVATE_KEY", help="base64url private key"),
):
    """Sign a challenge message with a private key."""
    try:
        keys = IdentityKeyPair.from_private_b64url(key)
    except ValueError as e:
        _fail(f"Invalid private key: {e}")
    typer.echo(keys.sign_challenge(message))


@app.command()
def submit(
    ctx: typer.Context,
    identity: str = typer.Argument(...),
    message: str = typer.Argument(..., help="Challenge message returned by `challenge`"),
    signature: str = typer.Argument(..., help="base64url signature over the challenge"),
    payload: str = typer.Argument(..., help="Record payload as JSON"),
):
    """Submit a signed record."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        _fail(f"Payload is not valid JSON: {e}")

    registry = _open_registry(ctx)
    block = _run(registry, registry.submit_record(identity, message, signature, data))
    console.print(f"[green]✓ Block {block.height} sealed[/] {block.hash}")


@app.command()
def block(
    ctx: typer.Context,
    block_hash: Optional[str] = typer.Option(None, "--hash", help="Look up by block hash"),
    block_height: Optional[int] = typer.Option(None, "--height", help="Look up by height"),
):
    """Show one block as JSON."""
    if (block_hash is None) == (block_height is None):
        _fail("Pass exactly one of --hash or --height")

    registry = _open_registry(ctx)
    if block_hash is not None:
        found = _run(registry, registry.get_block_by_hash(block_hash))
    else:
        found = _run(registry, registry.get_block_by_height(block_height))

    if found is None:
        console.print("[yellow]No block found.[/]")
        return
    _echo_json(found.to_dict())


@app.command()
def records(
    ctx: typer.Context,
    identity: str = typer.Argument(..., help="Identity whose records to list"),
):
    """List decoded records owned by an identity, in chain order."""
    registry = _open_registry(ctx)
    _echo_json(_run(registry, registry.get_records_by_identity(identity)))


@app.command()
def validate(ctx: typer.Context):
    """Re-hash every block and list the ones that fail."""
    registry = _open_registry(ctx)
    errors = _run(registry, registry.validate_chain())
    if not errors:
        console.print("[green]✓ Chain is valid[/]")
        return
    for error in errors:
        console.print(f"[red]{escape(error)}[/]")
    raise typer.Exit(1)


@app.command()
def verify(ctx: typer.Context):
    """Audit the stored chain: hashes, heights, genesis and links."""
    db_path: Path = ctx.obj["db_path"]
    if not db_path.exists():
        _fail(f"Database file not found: {db_path}")

    with SQLiteStorage(db_path) as storage:
        result = ChainVerifier().verify_from_storage(storage)

    if result.is_valid:
        console.print(f"[green]✓ {result.message}[/]")
        return

    console.print("[red]✗ Verification failed[/]")
    table = Table()
    table.add_column("Index")
    table.add_column("Category")
    table.add_column("Message")
    for failure in result.failures:
        table.add_row(str(failure.index), failure.category, escape(failure.message))
    console.print(table)
    raise typer.Exit(1)


@app.command()
def export(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file (default: chain.jsonl)"),
):
    """Export the stored chain as JSONL (one block per line)."""
    db_path: Path = ctx.obj["db_path"]
    if not db_path.exists():
        _fail(f"Database file not found: {db_path}")

    with SQLiteStorage(db_path) as storage:
        blocks = storage.load_blocks()

    if not blocks:
        console.print("[yellow]Chain is empty, nothing to export.[/]")
        raise typer.Exit(0)

    out_path = output or Path("chain.jsonl")
    with open(out_path, "w", encoding="utf-8") as f:
        for b in blocks:
            json.dump(b.to_dict(), f, separators=(",", ":"))
            f.write("\n")

    console.print(f"[green]Exported {len(blocks)} blocks to {escape(str(out_path))}[/]")


if __name__ == "__main__":
    app()
