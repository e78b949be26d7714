from __future__ import annotations

import typer
from rich import print

from clawstr.format import format_timestamp
from clawstr.wallet import claim_paid_invoices, npc_address, total_balance

from .common import echo_json, fail


def _require_positive(amount: int, usage: str) -> None:
    if amount <= 0:
        raise fail(f"Amount must be a positive number. Usage: {usage}")


def wallet_init_cmd(
    *,
    is_wallet_initialized,
    wallet_config_path,
    generate_mnemonic,
    validate_mnemonic,
    create_wallet_config,
    save_wallet_config,
    load_config,
    wallet_factory,
    mnemonic: str | None,
    mint: str | None,
    offline: bool,
) -> None:
    """Create the wallet config from a new or existing mnemonic."""

    if is_wallet_initialized():
        print(f"Wallet already initialized at {wallet_config_path().parent}")
        print("To reset, delete the wallet directory and run init again.")
        return

    if mnemonic:
        if not validate_mnemonic(mnemonic):
            raise fail("Invalid mnemonic phrase")
        phrase = mnemonic
        print("Using provided mnemonic")
    else:
        phrase = generate_mnemonic()
        print("Generated new mnemonic (24 words)")

    mint_url = mint or load_config().default_mint
    config = create_wallet_config(phrase, mint_url)
    path = save_wallet_config(config)
    print(f"Wallet config saved to {path}")

    if offline:
        print("\n[green]Wallet initialized (offline mode)[/green]")
        print(f"  Mint: {mint_url}")
        print("Run `clawstr wallet balance` once online to connect to the mint.")
        return

    wallet_factory(config).balances()
    print("\n[green]Wallet initialized[/green]")
    print(f"  Mint: {mint_url}")
    print(f"  Lightning Address: {npc_address(config.mnemonic)}")
    print("\nBack up your mnemonic phrase: `clawstr wallet mnemonic` displays it.")


def wallet_balance_cmd(
    *, require_wallet_config, wallet_factory, open_history, as_json: bool
) -> None:
    """Show the balance per mint, minting any paid invoices first."""

    config = require_wallet_config()
    backend = wallet_factory(config)
    with open_history() as history:
        claimed = claim_paid_invoices(backend, history)
    balances = backend.balances()

    if as_json:
        echo_json(balances)
        return
    for invoice in claimed:
        print(f"[green]Claimed {invoice.amount} sats from a paid invoice[/green]")
    total = total_balance(balances)
    if total == 0:
        print("Balance: 0 sats")
        print("\nTo receive funds:")
        print("  clawstr wallet receive cashu <token>")
        print("  clawstr wallet receive bolt11 <amount>")
        return
    print(f"Total Balance: {total} sats\n")
    print("By Mint:")
    for mint_url, amount in balances.items():
        if amount:
            print(f"  {mint_url}: {amount} sats")


def wallet_receive_cashu_cmd(
    *, require_wallet_config, wallet_factory, open_history, token: str
) -> None:
    """Redeem a Cashu token into the wallet."""

    if not token.strip():
        raise fail("Token is required. Usage: clawstr wallet receive cashu <token>")
    config = require_wallet_config()
    backend = wallet_factory(config)
    amount, mint_url = backend.receive_token(token)
    with open_history() as history:
        history.record("receive", amount, mint_url=mint_url)
    print(f"[green]Received {amount} sats[/green]")
    print(f"New balance: {total_balance(backend.balances())} sats")


def wallet_receive_bolt11_cmd(
    *, require_wallet_config, wallet_factory, open_history, amount: int, mint: str | None
) -> None:
    """Request a Lightning invoice from the mint."""

    _require_positive(amount, "clawstr wallet receive bolt11 <amount>")
    config = require_wallet_config()
    invoice = wallet_factory(config).create_invoice(amount, mint or config.mint_url)
    with open_history() as history:
        history.add_pending_invoice(invoice)
    print("Lightning Invoice:")
    typer.echo(invoice.request)
    print(f"\nAmount: {amount} sats")
    print("Pay this invoice, then run `clawstr wallet balance` to claim the tokens.")


def wallet_send_cashu_cmd(
    *, require_wallet_config, wallet_factory, open_history, amount: int, mint: str | None
) -> None:
    """Create a Cashu token worth ``amount`` sats."""

    _require_positive(amount, "clawstr wallet send cashu <amount>")
    config = require_wallet_config()
    mint_url = mint or config.mint_url
    backend = wallet_factory(config)
    token = backend.send_token(amount, mint_url)
    with open_history() as history:
        history.record("send", amount, mint_url=mint_url)
    print("Cashu token (share this to send funds):")
    typer.echo(token)
    print(f"\nRemaining balance: {total_balance(backend.balances())} sats")


def wallet_send_bolt11_cmd(
    *, require_wallet_config, wallet_factory, open_history, invoice: str, mint: str | None
) -> None:
    """Pay a Lightning invoice with wallet funds."""

    if not invoice.strip():
        raise fail("Invoice is required. Usage: clawstr wallet send bolt11 <invoice>")
    config = require_wallet_config()
    mint_url = mint or config.mint_url
    backend = wallet_factory(config)
    result = backend.pay_invoice(invoice.strip(), mint_url)
    with open_history() as history:
        history.record("melt", result.amount, mint_url=mint_url)
    print(f"Amount: {result.amount} sats + {result.fee_reserve} sats fee reserve")
    print("[green]Invoice paid[/green]")
    print(f"Remaining balance: {total_balance(backend.balances())} sats")


def wallet_npc_cmd(*, require_wallet_config) -> None:
    config = require_wallet_config()
    print(f"Lightning Address: {npc_address(config.mnemonic)}")
    print("\nAnyone can send Bitcoin to this address.")
    print("Payments are converted to Cashu tokens.")


def wallet_mnemonic_cmd(*, require_wallet_config) -> None:
    config = require_wallet_config()
    print("MNEMONIC SEED PHRASE (KEEP SECRET!):\n")
    typer.echo(config.mnemonic)
    print("\nAnyone with this phrase can access your funds. Never share it.")


def wallet_history_cmd(*, require_wallet_config, open_history, limit: int, as_json: bool) -> None:
    """List recent wallet operations, newest first."""

    require_wallet_config()
    with open_history() as history:
        entries = history.recent(limit)
    if as_json:
        echo_json([entry.to_json() for entry in entries])
        return
    if not entries:
        print("No transaction history yet.")
        return
    print("Transaction History:\n")
    for entry in entries:
        sign = "+" if entry.signed_amount >= 0 else "-"
        print(
            f"{format_timestamp(entry.created_at)} | {entry.type:<8} | {sign}{entry.amount} sats"
        )
