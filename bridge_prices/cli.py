"""Command-line interface for bridge token prices."""

import asyncio
import logging
import os
import sys
from datetime import datetime, timezone

# Fix Windows encoding issues
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    try:
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")
    except Exception:
        pass

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .address import base58_to_bytes32, hex_to_base58, is_base58_address
from .config import Config
from .errors import (
    ConfigurationError,
    InvalidAddressError,
    TokenNotFoundError,
    UpstreamUnavailableError,
)
from .models import (
    AddressPair,
    BridgeTransaction,
    ChainPricePair,
    PriceQuote,
    SelectedPrice,
    TokenRecord,
    TransactionPage,
)
from .resolver import PriceResolver


console = Console(force_terminal=True)

USAGE = """
[bold]Usage:[/bold]
  bridge-prices price ADDRESS [--direction solana-to-base|base-to-solana]
  bridge-prices both EVM_ADDRESS [SOLANA_ADDRESS]
  bridge-prices batch EVM_ADDRESS[:SOLANA_ADDRESS] ...
  bridge-prices latest [--direction D] [--limit N]
  bridge-prices top [--direction D] [--limit N]
  bridge-prices transactions [--sort timestamp|marketCap] [--order asc|desc] [--page N] [--limit N]
  bridge-prices token ADDRESS [--page N] [--limit N]
  bridge-prices convert VALUE
  bridge-prices config
  bridge-prices --help

[bold]Setup:[/bold]
  Add to .env (all optional; ENVIO_API_URL is needed by price, latest, top,
  transactions and token):
    ENVIO_API_URL=https://.../v1/graphql
    ALCHEMY_API_KEY=...
    HELIUS_API_KEY=...
    COINGECKO_API_KEY=...
"""


def setup_logging() -> None:
    """Log through rich; level from LOG_LEVEL (default WARNING)."""
    level = getattr(logging, os.getenv("LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def _usd(value: float | None, digits: int = 6) -> str:
    if value is None:
        return "[dim]unavailable[/dim]"
    if value >= 1000:
        return f"${value:,.0f}"
    return f"${value:,.{digits}f}"


def display_selected(address: str, selected: SelectedPrice):
    """Display a single selected price."""
    if not selected.available:
        console.print(Panel(
            f"No price available for [dim]{address}[/dim]",
            title="Price Unavailable",
            border_style="yellow",
        ))
        return

    console.print(Panel(
        f"Address: [dim]{address}[/dim]\n"
        f"Price: {_usd(selected.price_usd, 10)}\n"
        f"Market Cap: {_usd(selected.market_cap_usd, 0)}",
        title="Token Price",
        border_style="green",
    ))


def display_pair(prices: ChainPricePair):
    """Display per-chain prices side by side."""
    table = Table(title="Prices by Chain")
    table.add_column("Chain", style="cyan", width=8)
    table.add_column("Price (USD)", width=20)
    table.add_column("Market Cap (USD)", width=22)

    for chain, quote in (("Base", prices.base), ("Solana", prices.solana)):
        if quote is None:
            table.add_row(chain, "N/A", "N/A")
        else:
            table.add_row(chain, _usd(quote.price_usd, 10), _usd(quote.market_cap_usd, 0))

    console.print(table)


def display_batch(results: dict[str, PriceQuote]):
    """Display a batch price update."""
    if not results:
        console.print("[yellow]No prices found.[/yellow]")
        return

    table = Table(title=f"Resolved {len(results)} address(es)")
    table.add_column("Address", style="green")
    table.add_column("Price (USD)", width=20)
    table.add_column("Market Cap (USD)", width=22)

    for address, quote in results.items():
        table.add_row(address, _usd(quote.price_usd, 10), _usd(quote.market_cap_usd, 0))

    console.print(table)


def display_conversion(value: str):
    """Show the hex <-> base58 forms of an address."""
    if is_base58_address(value):
        base58_form = value
        hex_form = base58_to_bytes32(value)
    else:
        base58_form = hex_to_base58(value)
        hex_form = base58_to_bytes32(base58_form) if base58_form else None

    if base58_form is None:
        raise InvalidAddressError(value)

    console.print(Panel(
        f"Base58: [bold]{base58_form}[/bold]\n"
        f"Bytes32: [dim]{hex_form}[/dim]",
        title="Solana Address",
        border_style="cyan",
    ))


def display_transactions(transactions: list[BridgeTransaction], title: str):
    """Display bridge transfers in a table."""
    if not transactions:
        console.print("[yellow]No bridge transactions found.[/yellow]")
        return

    table = Table(title=title)
    table.add_column("Time (UTC)", style="cyan", width=19)
    table.add_column("Direction", width=15)
    table.add_column("Token", width=10)
    table.add_column("Amount", style="yellow", justify="right")
    table.add_column("Transaction", style="dim")

    for tx in transactions:
        when = datetime.fromtimestamp(tx.block_timestamp, tz=timezone.utc)
        table.add_row(
            when.strftime("%Y-%m-%d %H:%M:%S"),
            tx.direction.value,
            tx.token_symbol or tx.token_address[:10],
            tx.formatted_amount(),
            tx.transaction_hash,
        )

    console.print(table)


def display_tokens(tokens: list[TokenRecord]):
    """Display bridged tokens ranked by market cap."""
    if not tokens:
        console.print("[yellow]No bridged tokens found.[/yellow]")
        return

    table = Table(title=f"Top {len(tokens)} Bridged Token(s)")
    table.add_column("#", style="cyan", width=4)
    table.add_column("Symbol", width=10)
    table.add_column("Base Address", style="green")
    table.add_column("Solana Mint", style="dim")
    table.add_column("Market Cap", width=16)
    table.add_column("Bridges", justify="right")

    for i, token in enumerate(tokens, 1):
        table.add_row(
            str(i),
            token.symbol or "?",
            token.address,
            (hex_to_base58(token.solana_mint_address) if token.solana_mint_address else None) or "N/A",
            _usd(token.market_cap_usd, 0),
            str(token.bridge_count_to_solana + token.bridge_count_from_solana),
        )

    console.print(table)


def display_page(page: TransactionPage, title: str):
    """Display one page of bridge transfers with its position."""
    if page.token:
        token = page.token
        console.print(Panel(
            f"[bold]{token.symbol or '?'}[/bold] - {token.name or 'Unknown'}\n"
            f"Base: [dim]{token.address}[/dim]\n"
            f"Solana: [dim]{token.solana_mint_address or 'N/A'}[/dim]\n"
            f"Bridged to Solana: {token.bridge_count_to_solana} transfer(s)\n"
            f"Bridged from Solana: {token.bridge_count_from_solana} transfer(s)",
            title="Token",
            border_style="green",
        ))

    display_transactions(page.data, title)
    p = page.pagination
    console.print(f"[dim]Page {p.page} of {max(p.total_pages, 1)} ({p.total} total)[/dim]")


def display_config(config: Config):
    """Show which integrations are configured."""
    table = Table(title="Configured Integrations")
    table.add_column("Integration", style="cyan")
    table.add_column("Status")

    for name, enabled in config.describe().items():
        table.add_row(name, "[green]yes[/green]" if enabled else "[dim]no[/dim]")

    console.print(table)


def _pop_option(args: list[str], name: str, default: str | None = None) -> tuple[str | None, list[str]]:
    """Remove `name VALUE` from args; returns (value or default, remaining args)."""
    if name not in args:
        return default, args
    idx = args.index(name)
    value = args[idx + 1] if idx + 1 < len(args) else default
    return value, args[:idx] + args[idx + 2:]


def _int_option(args: list[str], name: str, default: int) -> tuple[int, list[str]]:
    value, args = _pop_option(args, name)
    if value is None:
        return default, args
    try:
        return max(1, int(value)), args
    except ValueError:
        console.print(f"[yellow]Ignoring non-numeric {name} {value!r}[/yellow]")
        return default, args


def _parse_batch_args(args: list[str]) -> list[AddressPair]:
    pairs = []
    for arg in args:
        evm, _, solana = arg.partition(":")
        pairs.append(AddressPair(evm or None, solana or None))
    return pairs


async def run(args: list[str], config: Config) -> None:
    """Dispatch a command."""
    command, rest = args[0], args[1:]

    async with PriceResolver(config) as resolver:
        if command == "price" and rest:
            direction, rest = _pop_option(rest, "--direction")
            if not rest:
                console.print(USAGE)
                return
            selected = await resolver.resolve_single(rest[0], direction)
            display_selected(rest[0], selected)

        elif command == "both" and rest:
            prices = await resolver.get_prices_both_chains(
                rest[0], rest[1] if len(rest) > 1 else None
            )
            display_pair(prices)

        elif command == "batch" and rest:
            results = await resolver.update_prices(_parse_batch_args(rest))
            display_batch(results)

        elif command == "latest":
            direction, rest = _pop_option(rest, "--direction")
            limit, rest = _int_option(rest, "--limit", 10)
            transactions = await resolver.indexer.get_latest_bridge_transactions(limit, direction)
            display_transactions(transactions, "Latest Bridge Transactions")

        elif command == "top":
            direction, rest = _pop_option(rest, "--direction")
            limit, rest = _int_option(rest, "--limit", 10)
            tokens = await resolver.indexer.get_top_bridged_tokens(limit, direction)
            display_tokens(tokens)

        elif command == "transactions":
            sort_by, rest = _pop_option(rest, "--sort", "timestamp")
            order, rest = _pop_option(rest, "--order", "desc")
            page, rest = _int_option(rest, "--page", 1)
            limit, rest = _int_option(rest, "--limit", 50)
            result = await resolver.indexer.get_all_bridge_transactions(sort_by, order, page, limit)
            display_page(result, "Bridge Transactions")

        elif command == "token" and rest:
            page, rest = _int_option(rest, "--page", 1)
            limit, rest = _int_option(rest, "--limit", 50)
            pair = await resolver.token_resolver.resolve_pair(rest[0])
            if not pair.evm_address:
                raise TokenNotFoundError(rest[0])
            result = await resolver.indexer.get_token_bridge_transactions(pair.evm_address, page, limit)
            display_page(result, "Token Bridge Transactions")

        else:
            console.print(USAGE)


def main():
    """Main entry point."""
    args = sys.argv[1:]

    if not args or args[0] in ("--help", "-h"):
        console.print(USAGE)
        return

    setup_logging()

    try:
        if args[0] == "convert" and len(args) > 1:
            display_conversion(args[1])
            return
        if args[0] == "config":
            display_config(Config.from_env())
            return

        asyncio.run(run(args, Config.from_env()))

    except ConfigurationError as e:
        console.print(f"\n[red][bold]Configuration Error:[/bold]\n{e}[/red]\n")
        sys.exit(2)
    except InvalidAddressError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(3)
    except TokenNotFoundError as e:
        console.print(Panel(str(e), title="Token Not Found", border_style="red"))
        sys.exit(4)
    except UpstreamUnavailableError as e:
        console.print(f"[red]Upstream service unavailable (try again later): {e}[/red]")
        sys.exit(5)


if __name__ == "__main__":
    main()
