import json

import pytest
from typer.testing import CliRunner

from tokenagg.chains import SOLANA_NATIVE_SOL, SOLANA_USDC
from tokenagg.cli import app, utils
from tokenagg.engine.registry import SourceRegistry
from tokenagg.models import TokenPrice
from tokenagg.services import BalanceService, PriceService, QuoteService
from tokenagg.sources.base import BalanceSource

from tests.stub_sources import StubPriceSource, StubQuoteSource

runner = CliRunner()


@pytest.fixture
def quotes(monkeypatch):
    registry = SourceRegistry(
        {
            "alpha": StubQuoteSource("alpha", buy_amount=50_000_000),
            "beta": StubQuoteSource("beta", buy_amount=51_000_000),
            "broken": StubQuoteSource("broken", error=RuntimeError("down")),
        }
    )
    service = QuoteService(registry)
    monkeypatch.setattr(utils, "quote_service", lambda: service)
    return service


def _quote_args(*extra):
    return ["--sell", SOLANA_NATIVE_SOL, "--buy", SOLANA_USDC, "--amount", "100000000", *extra]


def test_quotes_all_prints_ranked_json(quotes) -> None:
    result = runner.invoke(app, ["quotes:all", *_quote_args()])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert [q["source"]["id"] for q in data] == ["beta", "alpha"]
    assert data[1]["min_buy_amount"] == 49_500_000


def test_quotes_all_show_failed(quotes) -> None:
    result = runner.invoke(app, ["quotes:all", *_quote_args("--show-failed")])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data[-1]["failed"] is True
    assert data[-1]["error"] == "down"
    assert data[-1]["reason"] == "call-failed"


def test_quotes_best_with_exclude(quotes) -> None:
    result = runner.invoke(app, ["quotes:best", *_quote_args("--exclude", "beta")])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["source"]["id"] == "alpha"


def test_quotes_best_without_quotes_exits_1(quotes) -> None:
    result = runner.invoke(app, ["quotes:best", *_quote_args("--include", "broken")])
    assert result.exit_code == 1


def test_quotes_rejects_bad_order(quotes) -> None:
    result = runner.invoke(app, ["quotes:all", *_quote_args("--order", "swap")])
    assert result.exit_code != 0


def test_quotes_rejects_unknown_chain(quotes) -> None:
    result = runner.invoke(app, ["quotes:all", *_quote_args("--chain", "nowhere")])
    assert result.exit_code != 0


def test_sources_list(quotes) -> None:
    result = runner.invoke(app, ["sources:list"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert list(data) == ["alpha", "beta", "broken"]
    assert data["alpha"]["chains"] == ["solana"]


def test_prices_get(monkeypatch) -> None:
    service = PriceService({"stub": StubPriceSource({"solana": {SOLANA_USDC: TokenPrice(1.0, 6, "USDC")}})})
    monkeypatch.setattr(utils, "price_service", lambda: service)
    result = runner.invoke(app, ["prices:get", "--token", SOLANA_USDC])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["solana"][SOLANA_USDC]["price"] == 1.0


def test_split_csv() -> None:
    assert utils.split_csv(["a,b", " c "]) == ("a", "b", "c")
    assert utils.split_csv([]) is None
    assert utils.split_csv([" , "]) is None


def test_main_unknown_command_prints_usage(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        app.main(["bogus"])
    assert excinfo.value.code == 1
    out = capsys.readouterr().out
    assert "Usage: python -m tokenagg.cli" in out
    assert "quotes:best" in out


def test_main_without_args_exits_cleanly(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        app.main([])
    assert excinfo.value.code == 0


def test_main_help_verbose_for_command(capsys) -> None:
    with pytest.raises(SystemExit):
        app.main(["quotes:all", "--help-verbose"])
    out = capsys.readouterr().out
    assert "quotes:all" in out


def test_command_names_include_aliases() -> None:
    names = app.command_names()
    assert "quotes:all" in names and "quotes_all" in names
    assert "balances:get" in names and "prices:get" in names


class FixedBalances(BalanceSource):
    def supported_chains(self):
        return ["solana"]

    async def get_balances(self, tokens, timeout=None):
        out = {}
        for item in tokens:
            out.setdefault(item.chain_id, {}).setdefault(item.account, {})[item.token] = 7
        return out


def test_balances_get(monkeypatch) -> None:
    service = BalanceService({"fixed": FixedBalances()})
    monkeypatch.setattr(utils, "balance_service", lambda: service)
    result = runner.invoke(
        app, ["balances:get", "--account", "Owner1", "--token", f"{SOLANA_NATIVE_SOL},{SOLANA_USDC}"]
    )
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"solana": {"Owner1": {SOLANA_NATIVE_SOL: 7, SOLANA_USDC: 7}}}
