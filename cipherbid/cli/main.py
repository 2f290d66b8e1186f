"""
Cipherbid CLI - Command Line Interface for sealed-bid auctions

Main entry point for all CLI commands. State (auctions, grants and the
local mock engine) lives in the data directory, so commands compose across
invocations.
"""

import json
import time
from pathlib import Path
from typing import Optional

import click

from cipherbid.utils.logger import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-dir", default="~/.cipherbid", help="Data directory")
@click.option("--account", default="default", help="Local account acting as caller")
@click.option("--config", "config_path", default=None, help="Config file (.env or .json)")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, data_dir, account, config_path):
    """Cipherbid - Sealed-bid auctions over encrypted arithmetic"""
    import logging
    from cipherbid.core.config import load_config

    config = load_config(config_path)
    level = logging.DEBUG if debug else getattr(logging, config.log_level)
    setup_logging(
        level=level, log_dir=str(config.log_dir), log_to_file=config.log_to_file, force=True
    )

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["account"] = account
    ctx.obj["data_dir"] = Path(data_dir).expanduser()
    ctx.obj["data_dir"].mkdir(parents=True, exist_ok=True)


# =============================================================================
# Helpers
# =============================================================================


def _account_path(ctx, name: str) -> Path:
    return ctx.obj["data_dir"] / "accounts" / f"{name}.json"


def _load_caller(ctx) -> Optional[str]:
    """Address of the selected account, or None if it does not exist."""
    name = ctx.obj["account"]
    path = _account_path(ctx, name)
    if not path.exists():
        click.echo(f"❌ Account '{name}' not found")
        click.echo(f"   Create with: cipherbid account create --name {name}")
        return None
    return json.loads(path.read_text())["address"]


def _open_manager(ctx):
    """Load the orchestrator, its registry and the local engine from disk."""
    if "manager" in ctx.obj:
        return ctx.obj["manager"]

    from cipherbid.core.auction import EncryptedAuctionManager
    from cipherbid.core.storage import StorageManager
    from cipherbid.engine import MockEngine

    config = ctx.obj["config"]
    storage = StorageManager(data_dir=ctx.obj["data_dir"], db_name=config.db_name)
    engine = MockEngine(storage_manager=storage)
    manager = EncryptedAuctionManager(engine=engine, config=config, storage_manager=storage)
    engine.bind_operator(manager.address)

    ctx.obj["manager"] = manager
    return manager


def _format_time(timestamp: int) -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(timestamp))


# =============================================================================
# Account Commands
# =============================================================================


@cli.group()
def account():
    """Local account commands"""
    pass


@account.command("create")
@click.option("--name", default="default", help="Account name")
@click.pass_context
def account_create(ctx, name):
    """Create a new local account (caller identity)"""
    from cipherbid.crypto import generate_keypair

    path = _account_path(ctx, name)
    if path.exists():
        click.echo(f"❌ Account '{name}' already exists")
        return

    kp = generate_keypair()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({
        "name": name,
        "address": kp.address,
        "public_key": kp.public_key_hex,
    }, indent=2))

    click.echo(f"✓ Account created: {name}")
    click.echo(f"  Address: {kp.address}")


@account.command("list")
@click.pass_context
def account_list(ctx):
    """List all local accounts"""
    account_dir = ctx.obj["data_dir"] / "accounts"
    if not account_dir.exists():
        click.echo("No accounts found.")
        return

    for account_file in sorted(account_dir.glob("*.json")):
        data = json.loads(account_file.read_text())
        click.echo(f"  {data['name']}: {data['address']}")


# =============================================================================
# Auction Commands
# =============================================================================


@cli.group()
def auction():
    """Auction commands"""
    pass


@auction.command("address")
@click.pass_context
def auction_address(ctx):
    """Print the orchestrator address"""
    manager = _open_manager(ctx)
    click.echo(f"Auction orchestrator address is {manager.address}")


@auction.command("create")
@click.option("--name", required=True, help="Auction name")
@click.option("--start", required=True, type=int, help="Starting price (uint32)")
@click.pass_context
def auction_create(ctx, name, start):
    """Create an auction"""
    manager = _open_manager(ctx)

    try:
        auction_id = manager.create_auction(name, start)
    except ValueError as e:
        click.echo(f"❌ {e}")
        return

    click.echo(f"✓ Auction created: id={auction_id}")
    click.echo(f"  Name: {name}")


@auction.command("bid")
@click.option("--id", "auction_id", required=True, type=int, help="Auction id")
@click.option("--value", required=True, type=int, help="Bid value (uint32)")
@click.pass_context
def auction_bid(ctx, auction_id, value):
    """Encrypt a bid locally and submit it"""
    from cipherbid.engine import EncryptedInput, user_decrypt
    from cipherbid.errors import AuctionError, EngineError
    from cipherbid.utils.validation import validate_bid_value

    caller = _load_caller(ctx)
    if caller is None:
        return

    valid, err = validate_bid_value(value)
    if not valid:
        click.echo(f"❌ {err}")
        return

    manager = _open_manager(ctx)
    bundle = EncryptedInput(manager.engine, manager.address, caller).add32(value).encrypt()

    try:
        result = manager.bid(auction_id, bundle.handles[0], bundle.input_proof, caller=caller)
        is_highest = user_decrypt(manager.engine, result, caller)
    except (AuctionError, EngineError) as e:
        click.echo(f"❌ Bid failed: {e}")
        return

    click.echo(f"✓ Bid submitted to auction {auction_id}")
    click.echo(f"  isHighest (decrypted): {str(is_highest).lower()}")


@auction.command("ended")
@click.option("--id", "auction_id", required=True, type=int, help="Auction id")
@click.pass_context
def auction_ended(ctx, auction_id):
    """Check whether an auction ended (inactivity rule)"""
    from cipherbid.engine import user_decrypt
    from cipherbid.errors import AuctionError, EngineError

    caller = _load_caller(ctx)
    if caller is None:
        return

    manager = _open_manager(ctx)
    try:
        encrypted_ended = manager.check_ended(auction_id, caller)
        ended = user_decrypt(manager.engine, encrypted_ended, caller)
    except (AuctionError, EngineError) as e:
        click.echo(f"❌ Check failed: {e}")
        return

    click.echo(f"ended (decrypted): {str(ended).lower()}")


@auction.command("info")
@click.option("--id", "auction_id", required=True, type=int, help="Auction id")
@click.pass_context
def auction_info(ctx, auction_id):
    """Show public facts and, if granted, the decrypted leader"""
    from cipherbid.engine import user_decrypt
    from cipherbid.errors import AccessDenied, NotFound

    manager = _open_manager(ctx)
    try:
        info = manager.get_auction_info(auction_id)
    except NotFound as e:
        click.echo(f"❌ {e}")
        return

    click.echo(f"Auction {auction_id}")
    click.echo("-" * 40)
    click.echo(f"  Name: {info.name}")
    click.echo(f"  Created: {_format_time(info.created_at)}")
    click.echo(f"  Highest bid handle: {manager.get_encrypted_highest_bid(auction_id).to_hex()}")

    account_path = _account_path(ctx, ctx.obj["account"])
    if not account_path.exists():
        return

    caller = json.loads(account_path.read_text())["address"]
    try:
        highest = user_decrypt(manager.engine, manager.get_encrypted_highest_bid(auction_id), caller)
        bidder = user_decrypt(manager.engine, manager.get_encrypted_highest_bidder(auction_id), caller)
        last_bid = user_decrypt(manager.engine, manager.get_encrypted_last_bid_time(auction_id), caller)
    except AccessDenied:
        click.echo("  Leader: you do not have access yet")
        return

    click.echo(f"  Highest bid: {highest}")
    click.echo(f"  Highest bidder: {bidder}")
    click.echo(f"  Last bid time: {_format_time(last_bid)}")


@auction.command("list")
@click.pass_context
def auction_list(ctx):
    """List all auctions"""
    manager = _open_manager(ctx)
    count = manager.auction_count()
    if count == 0:
        click.echo("No auctions found.")
        return

    for auction_id in range(1, count + 1):
        info = manager.get_auction_info(auction_id)
        click.echo(f"  {auction_id}: {info.name} (created {_format_time(info.created_at)})")


# =============================================================================
# Stats Command
# =============================================================================


@cli.command("stats")
@click.pass_context
def stats(ctx):
    """Show orchestrator statistics"""
    manager = _open_manager(ctx)
    click.echo("Cipherbid Statistics")
    click.echo("-" * 40)
    for key, value in manager.stats().items():
        click.echo(f"  {key}: {value}")
    for key, value in manager.engine.stats().items():
        click.echo(f"  engine.{key}: {value}")


if __name__ == "__main__":
    cli()
