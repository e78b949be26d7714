"""NIP-57 zaps over LNURL-pay.

A zap asks the recipient's lightning address for an invoice, attaching a
signed kind-9734 zap request. The recipient's service publishes the zap
receipt (kind 9735) once the invoice is paid.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .errors import ZapError

logger = logging.getLogger(__name__)

KIND_ZAP_REQUEST = 9734


@dataclass(frozen=True)
class LnurlPayInfo:
    callback: str
    min_sendable: int
    max_sendable: int
    allows_nostr: bool
    nostr_pubkey: str | None

    def check_amount(self, amount_msat: int) -> None:
        if amount_msat < self.min_sendable or amount_msat > self.max_sendable:
            raise ZapError(
                f"Amount must be between {self.min_sendable // 1000} and "
                f"{self.max_sendable // 1000} sats for this recipient"
            )


def lightning_address_from_profile(content: str) -> str:
    try:
        profile = json.loads(content or "{}")
    except json.JSONDecodeError as exc:
        raise ZapError("Recipient profile is not valid JSON") from exc
    address = profile.get("lud16") if isinstance(profile, dict) else None
    if not isinstance(address, str) or "@" not in address:
        raise ZapError("Recipient has no lightning address (lud16) in their profile")
    return address.strip()


def lnurlp_url(address: str) -> str:
    name, _, domain = address.partition("@")
    if not name or not domain:
        raise ZapError(f"Invalid lightning address: {address}")
    return f"https://{domain}/.well-known/lnurlp/{name}"


def _get_json(client: httpx.Client, url: str, params: dict[str, Any] | None = None) -> dict:
    try:
        response = client.get(url, params=params)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as exc:
        raise ZapError(f"Request to {url} failed: {exc}") from exc
    except ValueError as exc:
        raise ZapError(f"Invalid JSON from {url}") from exc
    if not isinstance(data, dict):
        raise ZapError(f"Unexpected response from {url}")
    if str(data.get("status", "")).upper() == "ERROR":
        raise ZapError(str(data.get("reason") or f"{url} returned an error"))
    return data


def fetch_pay_info(client: httpx.Client, address: str) -> LnurlPayInfo:
    data = _get_json(client, lnurlp_url(address))
    try:
        info = LnurlPayInfo(
            callback=str(data["callback"]),
            min_sendable=int(data["minSendable"]),
            max_sendable=int(data["maxSendable"]),
            allows_nostr=bool(data.get("allowsNostr")),
            nostr_pubkey=data.get("nostrPubkey"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ZapError(f"Incomplete LNURL-pay response for {address}") from exc
    logger.debug("lnurl-pay for %s: %s", address, info)
    return info


def zap_request_tags(
    recipient: str,
    amount_msat: int,
    relays: list[str],
    *,
    event_id: str | None = None,
) -> list[list[str]]:
    tags = [["relays", *relays], ["amount", str(amount_msat)], ["p", recipient]]
    if event_id:
        tags.append(["e", event_id])
    return tags


def request_invoice(
    client: httpx.Client, info: LnurlPayInfo, amount_msat: int, zap_request_json: str
) -> str:
    data = _get_json(
        client, info.callback, params={"amount": amount_msat, "nostr": zap_request_json}
    )
    invoice = data.get("pr")
    if not isinstance(invoice, str) or not invoice:
        raise ZapError("Lightning service did not return an invoice")
    return invoice
