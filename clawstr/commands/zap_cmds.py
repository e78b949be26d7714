from __future__ import annotations

from rich import print

from clawstr.nip19 import extract_event_id, extract_pubkey
from clawstr.subclaw import KIND_METADATA
from clawstr.zap import (
    KIND_ZAP_REQUEST,
    fetch_pay_info,
    lightning_address_from_profile,
    request_invoice,
    zap_request_tags,
)

from .common import fail, resolve_relays


def zap_cmd(
    *,
    require_key_pair,
    require_wallet_config,
    load_config,
    transport_factory,
    http_client_factory,
    wallet_factory,
    open_history,
    sign_event,
    recipient: str,
    amount: int,
    comment: str | None,
    event_ref: str | None,
    relays: list[str] | None,
) -> None:
    """Pay a NIP-57 zap to ``recipient`` from the Cashu wallet."""

    if amount <= 0:
        raise fail("Amount must be a positive number of sats")
    pubkey = extract_pubkey(recipient)
    event_id = extract_event_id(event_ref) if event_ref else None
    key_pair = require_key_pair()
    wallet_config = require_wallet_config()
    config = load_config()
    target_relays = resolve_relays(relays, config.relays)

    profiles = transport_factory(config).query(
        {"kinds": [KIND_METADATA], "authors": [pubkey], "limit": 1}, target_relays
    )
    if not profiles:
        raise fail("Recipient profile not found on any relay")
    address = lightning_address_from_profile(profiles[0].get("content") or "")

    amount_msat = amount * 1000
    with http_client_factory(config) as client:
        info = fetch_pay_info(client, address)
        info.check_amount(amount_msat)
        if not info.allows_nostr:
            raise fail(f"{address} does not support Nostr zaps")
        tags = zap_request_tags(pubkey, amount_msat, target_relays, event_id=event_id)
        zap_request = sign_event(key_pair, KIND_ZAP_REQUEST, comment or "", tags)
        invoice = request_invoice(client, info, amount_msat, zap_request.as_json())

    print(f"Zapping {amount} sats to {address}...")
    result = wallet_factory(wallet_config).pay_invoice(invoice, wallet_config.mint_url)
    with open_history() as history:
        history.record("zap", result.amount, mint_url=wallet_config.mint_url, note=pubkey)
    print(f"[green]Zapped {amount} sats to {address}[/green]")
