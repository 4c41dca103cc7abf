from unittest.mock import AsyncMock

import pytest

from bridge_prices import cli
from bridge_prices.api.envio import EnvioClient
from bridge_prices.config import Config
from bridge_prices.errors import ConfigurationError, TokenNotFoundError
from bridge_prices.models import AddressPair, Pagination, TokenRecord, TransactionPage

from conftest import EVM_TOKEN, make_mint


def test_parse_batch_args():
    mint, _ = make_mint()

    pairs = cli._parse_batch_args([EVM_TOKEN, f"{EVM_TOKEN}:{mint}", f":{mint}"])

    assert pairs == [
        AddressPair(EVM_TOKEN),
        AddressPair(EVM_TOKEN, mint),
        AddressPair(None, mint),
    ]


def test_help_exits_cleanly(monkeypatch):
    monkeypatch.setattr("sys.argv", ["bridge-prices", "--help"])
    assert cli.main() is None


def test_convert_invalid_value_exit_code(monkeypatch):
    monkeypatch.setattr("sys.argv", ["bridge-prices", "convert", "0xnothex"])

    with pytest.raises(SystemExit) as exc_info:
        cli.main()

    assert exc_info.value.code == 3


def test_price_without_indexer_exit_code(monkeypatch):
    for name in ("ENVIO_API_URL", "NEXT_PUBLIC_ENVIO_API_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("sys.argv", ["bridge-prices", "price", EVM_TOKEN])

    with pytest.raises(SystemExit) as exc_info:
        cli.main()

    assert exc_info.value.code == 2


def test_pop_option():
    assert cli._pop_option(["a", "--sort", "marketCap", "b"], "--sort") == ("marketCap", ["a", "b"])
    assert cli._pop_option(["a"], "--sort", "timestamp") == ("timestamp", ["a"])
    assert cli._int_option(["--page", "x"], "--page", 1) == (1, [])
    assert cli._int_option(["--page", "3"], "--page", 1) == (3, [])


def page_of(transactions, token=None):
    return TransactionPage(
        data=transactions,
        pagination=Pagination.build(1, 50, len(transactions)),
        token=token,
    )


class TestIndexerCommands:

    @pytest.mark.asyncio
    async def test_latest(self, config, monkeypatch):
        latest = AsyncMock(return_value=[])
        monkeypatch.setattr(EnvioClient, "get_latest_bridge_transactions", latest)

        await cli.run(["latest", "--direction", "solana-to-base", "--limit", "3"], config)

        latest.assert_awaited_once_with(3, "solana-to-base")

    @pytest.mark.asyncio
    async def test_top(self, config, monkeypatch):
        _, hex_mint = make_mint()
        top = AsyncMock(return_value=[
            TokenRecord(address=EVM_TOKEN, solana_mint_address=hex_mint, symbol="TKN", market_cap_usd=5000.0),
        ])
        monkeypatch.setattr(EnvioClient, "get_top_bridged_tokens", top)

        await cli.run(["top"], config)

        top.assert_awaited_once_with(10, None)

    @pytest.mark.asyncio
    async def test_transactions_options(self, config, monkeypatch):
        all_transactions = AsyncMock(return_value=page_of([]))
        monkeypatch.setattr(EnvioClient, "get_all_bridge_transactions", all_transactions)

        await cli.run(["transactions", "--sort", "marketCap", "--order", "asc", "--page", "2"], config)

        all_transactions.assert_awaited_once_with("marketCap", "asc", 2, 50)

    @pytest.mark.asyncio
    async def test_token_accepts_solana_mint(self, config, monkeypatch):
        mint, _ = make_mint()
        token = TokenRecord(address=EVM_TOKEN, solana_mint_address=mint, symbol="TKN")
        monkeypatch.setattr(EnvioClient, "get_token_by_solana_mint", AsyncMock(return_value=token))
        token_transactions = AsyncMock(return_value=page_of([], token))
        monkeypatch.setattr(EnvioClient, "get_token_bridge_transactions", token_transactions)

        await cli.run(["token", mint, "--page", "1"], config)

        token_transactions.assert_awaited_once_with(EVM_TOKEN, 1, 50)

    @pytest.mark.asyncio
    async def test_unknown_token(self, config, monkeypatch):
        monkeypatch.setattr(EnvioClient, "get_token", AsyncMock(return_value=None))

        with pytest.raises(TokenNotFoundError):
            await cli.run(["token", EVM_TOKEN], config)

    @pytest.mark.asyncio
    async def test_indexer_commands_need_indexer_url(self):
        with pytest.raises(ConfigurationError):
            await cli.run(["latest"], Config())


def test_config_command(monkeypatch, capsys):
    monkeypatch.setattr("sys.argv", ["bridge-prices", "config"])

    assert cli.main() is None
    assert "helius" in capsys.readouterr().out
