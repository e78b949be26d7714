from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

from clawstr.errors import RelayTransportError, WalletError
from clawstr.wallet import (
    MeltResult,
    MintInvoice,
    WalletConfig,
    create_wallet_config,
    save_wallet_config,
)

TEST_MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon about"
)


@pytest.fixture(autouse=True)
def _isolate_clawstr_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CLAWSTR_HOME", str(tmp_path / "clawstr-home"))
    for name in (
        "CLAWSTR_CONFIG",
        "CLAWSTR_STORE_DB",
        "CLAWSTR_RELAYS",
        "CLAWSTR_SEARCH_RELAY",
        "CLAWSTR_QUERY_TIMEOUT_S",
        "CLAWSTR_DEFAULT_MINT",
    ):
        monkeypatch.delenv(name, raising=False)


class FakeTransport:
    def __init__(
        self,
        events: list[dict[str, Any]] | None = None,
        *,
        error: str | None = None,
        by_id: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self.events = list(events or [])
        self.error = error
        self.by_id = dict(by_id or {})
        self.queries: list[tuple[dict[str, Any], list[str]]] = []
        self.published: list[tuple[Any, list[str]]] = []

    def query(self, filter: dict[str, Any], relays: Sequence[str]) -> list[dict[str, Any]]:
        self.queries.append((dict(filter), list(relays)))
        if self.error:
            raise RelayTransportError(self.error)
        if "ids" in filter:
            return [self.by_id[i] for i in filter["ids"] if i in self.by_id]
        return list(self.events)

    def publish(self, event: Any, relays: Sequence[str]) -> list[str]:
        self.published.append((event, list(relays)))
        return list(relays)


def make_event(created_at: int, **overrides: Any) -> dict[str, Any]:
    event = {
        "id": f"{created_at:064x}",
        "pubkey": "ab" * 32,
        "created_at": created_at,
        "kind": 1111,
        "tags": [["I", "https://clawstr.com/c/ai-dev"], ["K", "web"]],
        "content": f"post at {created_at}",
        "sig": "00" * 64,
    }
    event.update(overrides)
    return event


@pytest.fixture
def fake_transport():
    return FakeTransport


@pytest.fixture
def event():
    return make_event


class FakeWallet:
    def __init__(self, balance: int = 0, *, paid_quotes: set[str] | None = None) -> None:
        self.balance = balance
        self.paid_quotes = set(paid_quotes or ())
        self.paid_invoices: list[tuple[str, str]] = []
        self.invoice_counter = 0

    def balances(self) -> dict[str, int]:
        return {"https://mint.example": self.balance}

    def receive_token(self, token: str) -> tuple[int, str]:
        if not token.startswith("cashuB"):
            raise WalletError("Receiving token failed: invalid token")
        self.balance += 21
        return 21, "https://mint.example"

    def send_token(self, amount: int, mint_url: str) -> str:
        if amount > self.balance:
            raise WalletError("Sending failed: balance too low")
        self.balance -= amount
        return f"cashuBfake{amount}"

    def create_invoice(self, amount: int, mint_url: str) -> MintInvoice:
        self.invoice_counter += 1
        return MintInvoice(
            quote_id=f"quote-{self.invoice_counter}",
            request=f"lnbc{amount}fake",
            amount=amount,
            mint_url=mint_url,
        )

    def claim_invoice(self, quote_id: str, amount: int, mint_url: str) -> bool:
        if quote_id not in self.paid_quotes:
            return False
        self.balance += amount
        return True

    def pay_invoice(self, invoice: str, mint_url: str) -> MeltResult:
        self.paid_invoices.append((invoice, mint_url))
        self.balance -= 100
        return MeltResult(amount=100, fee_reserve=2)


@pytest.fixture
def fake_wallet(monkeypatch: pytest.MonkeyPatch) -> FakeWallet:
    wallet = FakeWallet(balance=500)
    monkeypatch.setattr("clawstr.cli._wallet", lambda config: wallet)
    return wallet


@pytest.fixture
def wallet_config() -> WalletConfig:
    config = create_wallet_config(TEST_MNEMONIC, "https://mint.example")
    save_wallet_config(config)
    return config
