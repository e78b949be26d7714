import json

import pytest
from conftest import TEST_MNEMONIC
from typer.testing import CliRunner

from clawstr.cli import app
from clawstr.wallet import WalletHistory, load_wallet_config, npc_address

runner = CliRunner()


def test_init_offline_uses_default_mint(fake_wallet) -> None:
    result = runner.invoke(app, ["wallet", "init", "--offline"])

    assert result.exit_code == 0, result.output
    assert "offline mode" in result.output
    config = load_wallet_config()
    assert config.mint_url == "https://mint.minibits.cash/Bitcoin"
    assert len(config.mnemonic.split()) == 24


def test_init_default_mint_follows_env(monkeypatch: pytest.MonkeyPatch, fake_wallet) -> None:
    monkeypatch.setenv("CLAWSTR_DEFAULT_MINT", "https://mint.env.example")
    result = runner.invoke(app, ["wallet", "init", "--offline"])

    assert result.exit_code == 0, result.output
    assert load_wallet_config().mint_url == "https://mint.env.example"


def test_init_with_mnemonic_and_mint_connects(fake_wallet) -> None:
    result = runner.invoke(
        app, ["wallet", "init", "--mnemonic", TEST_MNEMONIC, "--mint", "https://mint.example"]
    )

    assert result.exit_code == 0, result.output
    assert "Using provided mnemonic" in result.output
    assert npc_address(TEST_MNEMONIC) in result.output
    config = load_wallet_config()
    assert config.mnemonic == TEST_MNEMONIC
    assert config.mint_url == "https://mint.example"


def test_init_rejects_invalid_mnemonic(fake_wallet) -> None:
    result = runner.invoke(app, ["wallet", "init", "--mnemonic", "one two three"])

    assert result.exit_code == 1
    assert "Invalid mnemonic phrase" in result.output
    assert load_wallet_config() is None


def test_init_keeps_existing_wallet(wallet_config, fake_wallet) -> None:
    result = runner.invoke(app, ["wallet", "init", "--offline"])

    assert result.exit_code == 0, result.output
    assert "already initialized" in result.output
    assert load_wallet_config().mnemonic == TEST_MNEMONIC


@pytest.mark.parametrize(
    "args",
    [
        ["wallet", "balance"],
        ["wallet", "receive", "cashu", "cashuBabc"],
        ["wallet", "send", "cashu", "10"],
        ["wallet", "npc"],
        ["wallet", "mnemonic"],
        ["wallet", "history"],
    ],
)
def test_commands_require_initialized_wallet(args, fake_wallet) -> None:
    result = runner.invoke(app, args)

    assert result.exit_code == 1
    assert "Wallet not initialized" in result.output


def test_balance_empty(wallet_config, fake_wallet) -> None:
    fake_wallet.balance = 0
    result = runner.invoke(app, ["wallet", "balance"])

    assert result.exit_code == 0, result.output
    assert "Balance: 0 sats" in result.output
    assert "clawstr wallet receive cashu <token>" in result.output


def test_balance_by_mint(wallet_config, fake_wallet) -> None:
    result = runner.invoke(app, ["wallet", "balance"])

    assert result.exit_code == 0, result.output
    assert "Total Balance: 500 sats" in result.output
    assert "https://mint.example: 500 sats" in result.output


def test_balance_json(wallet_config, fake_wallet) -> None:
    result = runner.invoke(app, ["wallet", "balance", "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"https://mint.example": 500}


def test_receive_cashu_records_history(wallet_config, fake_wallet) -> None:
    result = runner.invoke(app, ["wallet", "receive", "cashu", "cashuBtoken"])

    assert result.exit_code == 0, result.output
    assert "Received 21 sats" in result.output
    assert "New balance: 521 sats" in result.output
    with WalletHistory() as history:
        assert [(e.type, e.amount) for e in history.recent()] == [("receive", 21)]


def test_receive_cashu_reports_wallet_errors(wallet_config, fake_wallet) -> None:
    result = runner.invoke(app, ["wallet", "receive", "cashu", "garbage"])

    assert result.exit_code == 1
    assert "invalid token" in result.output
    with WalletHistory() as history:
        assert history.recent() == []


def test_bolt11_invoice_is_claimed_by_balance(wallet_config, fake_wallet) -> None:
    result = runner.invoke(app, ["wallet", "receive", "bolt11", "250"])

    assert result.exit_code == 0, result.output
    assert "lnbc250fake" in result.output
    with WalletHistory() as history:
        [pending] = history.pending_invoices()
    assert pending.mint_url == "https://mint.example"

    unpaid = runner.invoke(app, ["wallet", "balance"])
    assert "Claimed" not in unpaid.output
    assert "Total Balance: 500 sats" in unpaid.output

    fake_wallet.paid_quotes.add(pending.quote_id)
    paid = runner.invoke(app, ["wallet", "balance"])

    assert paid.exit_code == 0, paid.output
    assert "Claimed 250 sats from a paid invoice" in paid.output
    assert "Total Balance: 750 sats" in paid.output
    with WalletHistory() as history:
        assert history.pending_invoices() == []
        assert [(e.type, e.amount) for e in history.recent()] == [("mint", 250)]


@pytest.mark.parametrize("command", ["receive", "send"])
def test_amounts_must_be_positive(command, wallet_config, fake_wallet) -> None:
    kind = "bolt11" if command == "receive" else "cashu"
    result = runner.invoke(app, ["wallet", command, kind, "0"])

    assert result.exit_code == 1
    assert "Amount must be a positive number" in result.output


def test_send_cashu_prints_token(wallet_config, fake_wallet) -> None:
    result = runner.invoke(app, ["wallet", "send", "cashu", "120"])

    assert result.exit_code == 0, result.output
    assert "cashuBfake120" in result.output
    assert "Remaining balance: 380 sats" in result.output
    with WalletHistory() as history:
        assert [(e.type, e.signed_amount) for e in history.recent()] == [("send", -120)]


def test_send_cashu_more_than_balance_fails(wallet_config, fake_wallet) -> None:
    result = runner.invoke(app, ["wallet", "send", "cashu", "5000"])

    assert result.exit_code == 1
    assert "balance too low" in result.output


def test_send_bolt11_pays_with_given_mint(wallet_config, fake_wallet) -> None:
    result = runner.invoke(
        app, ["wallet", "send", "bolt11", "lnbc1000n1xyz", "--mint", "https://other.example"]
    )

    assert result.exit_code == 0, result.output
    assert fake_wallet.paid_invoices == [("lnbc1000n1xyz", "https://other.example")]
    assert "100 sats + 2 sats fee reserve" in result.output
    assert "Invoice paid" in result.output
    with WalletHistory() as history:
        [entry] = history.recent()
    assert (entry.type, entry.mint_url) == ("melt", "https://other.example")


def test_npc_and_mnemonic(wallet_config) -> None:
    npc = runner.invoke(app, ["wallet", "npc"])
    assert npc.exit_code == 0, npc.output
    assert npc_address(TEST_MNEMONIC) in npc.output

    mnemonic = runner.invoke(app, ["wallet", "mnemonic"])
    assert mnemonic.exit_code == 0, mnemonic.output
    assert TEST_MNEMONIC in mnemonic.output


def test_history_text_and_json(wallet_config) -> None:
    empty = runner.invoke(app, ["wallet", "history"])
    assert "No transaction history yet." in empty.output

    with WalletHistory() as history:
        history.record("receive", 50, mint_url="https://mint.example", now=100)
        history.record("send", 20, mint_url="https://mint.example", now=200)
        history.record("zap", 7, note="ab" * 32, now=300)

    text = runner.invoke(app, ["wallet", "history", "--limit", "2"])
    assert text.exit_code == 0, text.output
    assert "-7 sats" in text.output
    assert "-20 sats" in text.output
    assert "+50 sats" not in text.output

    as_json = runner.invoke(app, ["wallet", "history", "--json"])
    payload = json.loads(as_json.output)
    assert [entry["type"] for entry in payload] == ["zap", "send", "receive"]
    assert payload[0]["note"] == "ab" * 32
