"""Cashu e-cash wallet.

The wallet keeps a BIP39 mnemonic and a default mint in
``~/.clawstr/wallet/config.json``. Proofs live in the nutshell wallet
database next to it. Clawstr keeps its own history of wallet operations and
of unpaid Lightning invoices in the local store so ``balance`` can claim
invoices once they are paid.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import json
import logging
import os
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Any, Protocol

from mnemonic import Mnemonic
from nostr_sdk import Keys

from . import db
from .config import get_paths
from .errors import StoreError, WalletError

logger = logging.getLogger(__name__)

NPC_DOMAIN = "npubx.cash"
WALLET_CONFIG_VERSION = 1

# Entries with these types add to the balance; everything else spends.
INCOMING_TYPES = {"mint", "receive"}


@dataclass
class WalletConfig:
    mnemonic: str
    mint_url: str
    version: int = WALLET_CONFIG_VERSION
    encrypted: bool = False
    created_at: str | None = None

    def to_file_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "mnemonic": self.mnemonic,
            "encrypted": self.encrypted,
            "mintUrl": self.mint_url,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_file_dict(cls, data: dict[str, Any]) -> WalletConfig:
        mnemonic = data.get("mnemonic")
        mint_url = data.get("mintUrl")
        if not isinstance(mnemonic, str) or not isinstance(mint_url, str):
            raise WalletError("Wallet config is missing mnemonic or mintUrl")
        return cls(
            mnemonic=mnemonic,
            mint_url=mint_url,
            version=int(data.get("version") or WALLET_CONFIG_VERSION),
            encrypted=bool(data.get("encrypted", False)),
            created_at=data.get("createdAt"),
        )


def wallet_config_path() -> Path:
    return get_paths().wallet_dir / "config.json"


def is_wallet_initialized() -> bool:
    return wallet_config_path().exists()


def load_wallet_config() -> WalletConfig | None:
    path = wallet_config_path()
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise WalletError(f"Wallet config at {path} is not valid JSON") from exc
    if not isinstance(data, dict):
        raise WalletError(f"Wallet config at {path} must be an object")
    return WalletConfig.from_file_dict(data)


def require_wallet_config() -> WalletConfig:
    config = load_wallet_config()
    if config is None:
        raise WalletError("Wallet not initialized. Run `clawstr wallet init` first.")
    return config


def save_wallet_config(config: WalletConfig) -> Path:
    path = wallet_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    os.chmod(path.parent, 0o700)
    path.write_text(json.dumps(config.to_file_dict(), indent=2) + "\n")
    os.chmod(path, 0o600)
    return path


def generate_mnemonic() -> str:
    return Mnemonic("english").generate(strength=256)


def validate_mnemonic(phrase: str) -> bool:
    return Mnemonic("english").check(phrase.strip())


def create_wallet_config(mnemonic: str, mint_url: str) -> WalletConfig:
    return WalletConfig(
        mnemonic=" ".join(mnemonic.split()),
        mint_url=mint_url,
        created_at=dt.datetime.now(dt.UTC).isoformat().replace("+00:00", "Z"),
    )


def npc_address(mnemonic: str) -> str:
    """Lightning address served by npubx.cash for the NIP-06 key of ``mnemonic``."""

    npub = Keys.from_mnemonic(mnemonic).public_key().to_bech32()
    return f"{npub}@{NPC_DOMAIN}"


def total_balance(balances: dict[str, int]) -> int:
    return sum(amount for amount in balances.values() if amount)


@dataclass(frozen=True)
class MintInvoice:
    quote_id: str
    request: str
    amount: int
    mint_url: str


@dataclass(frozen=True)
class MeltResult:
    amount: int
    fee_reserve: int


class WalletBackend(Protocol):
    def balances(self) -> dict[str, int]: ...

    def receive_token(self, token: str) -> tuple[int, str]: ...

    def send_token(self, amount: int, mint_url: str) -> str: ...

    def create_invoice(self, amount: int, mint_url: str) -> MintInvoice: ...

    def claim_invoice(self, quote_id: str, amount: int, mint_url: str) -> bool: ...

    def pay_invoice(self, invoice: str, mint_url: str) -> MeltResult: ...


class CashuWallet:
    """Synchronous facade over a nutshell wallet, one mint at a time."""

    def __init__(self, config: WalletConfig, db_dir: Path | None = None):
        self.config = config
        self.db_dir = db_dir or get_paths().wallet_dir

    async def _open(self, mint_url: str):
        from cashu.wallet.wallet import Wallet

        self.db_dir.mkdir(parents=True, exist_ok=True)
        wallet = await Wallet.with_db(
            url=mint_url, db=str(self.db_dir), name="wallet", skip_db_read=True
        )
        await wallet._init_private_key(self.config.mnemonic)
        await wallet.load_mint()
        await wallet.load_proofs(reload=True)
        return wallet

    def _run(self, coro, action: str):
        try:
            return asyncio.run(coro)
        except WalletError:
            raise
        except Exception as exc:
            raise WalletError(f"{action} failed: {exc}") from exc

    def balances(self) -> dict[str, int]:
        async def _balances() -> dict[str, int]:
            wallet = await self._open(self.config.mint_url)
            return {self.config.mint_url: int(wallet.available_balance.amount)}

        return self._run(_balances(), "Balance check")

    def receive_token(self, token: str) -> tuple[int, str]:
        async def _receive() -> tuple[int, str]:
            from cashu.wallet.helpers import deserialize_token_from_string

            parsed = deserialize_token_from_string(token.strip())
            wallet = await self._open(parsed.mint)
            await wallet.redeem(parsed.proofs)
            return int(parsed.amount), parsed.mint

        return self._run(_receive(), "Receiving token")

    def send_token(self, amount: int, mint_url: str) -> str:
        async def _send() -> str:
            wallet = await self._open(mint_url)
            proofs, _fees = await wallet.select_to_send(wallet.proofs, amount, set_reserved=True)
            return await wallet.serialize_proofs(proofs)

        return self._run(_send(), "Sending")

    def create_invoice(self, amount: int, mint_url: str) -> MintInvoice:
        async def _request() -> MintInvoice:
            wallet = await self._open(mint_url)
            quote = await wallet.request_mint(amount)
            return MintInvoice(
                quote_id=quote.quote, request=quote.request, amount=amount, mint_url=mint_url
            )

        return self._run(_request(), "Creating invoice")

    def claim_invoice(self, quote_id: str, amount: int, mint_url: str) -> bool:
        async def _claim() -> bool:
            wallet = await self._open(mint_url)
            quote = await wallet.get_mint_quote(quote_id)
            if not quote.paid:
                return False
            await wallet.mint(amount, quote_id=quote_id)
            return True

        return self._run(_claim(), "Claiming invoice")

    def pay_invoice(self, invoice: str, mint_url: str) -> MeltResult:
        async def _pay() -> MeltResult:
            wallet = await self._open(mint_url)
            quote = await wallet.melt_quote(invoice)
            total = quote.amount + quote.fee_reserve
            proofs, _fees = await wallet.select_to_send(
                wallet.proofs, total, set_reserved=True, include_fees=True
            )
            await wallet.melt(
                proofs=proofs,
                invoice=invoice,
                fee_reserve_sat=quote.fee_reserve,
                quote_id=quote.quote,
            )
            return MeltResult(amount=int(quote.amount), fee_reserve=int(quote.fee_reserve))

        return self._run(_pay(), "Paying invoice")


@dataclass(frozen=True)
class HistoryEntry:
    created_at: int
    type: str
    amount: int
    mint_url: str | None
    note: str | None

    @property
    def signed_amount(self) -> int:
        return self.amount if self.type in INCOMING_TYPES else -self.amount

    def to_json(self) -> dict[str, Any]:
        return {
            "createdAt": self.created_at,
            "type": self.type,
            "amount": self.amount,
            "mintUrl": self.mint_url,
            "note": self.note,
        }


class WalletHistory:
    """Wallet history and pending invoices, kept in the local store database."""

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = Path(db_path).expanduser() if db_path else db.default_store_path()
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                conn = db.connect(self.db_path)
                db.initialize_schema(conn)
            except (sqlite3.Error, OSError) as exc:
                raise StoreError(f"Failed to open store at {self.db_path}: {exc}") from exc
            self._conn = conn
        return self._conn

    def record(
        self,
        type: str,
        amount: int,
        *,
        mint_url: str | None = None,
        note: str | None = None,
        now: int | None = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            created_at=now if now is not None else int(time.time()),
            type=type,
            amount=int(amount),
            mint_url=mint_url,
            note=note,
        )
        self.conn.execute(
            "INSERT INTO wallet_history (created_at, type, amount, mint_url, note)"
            " VALUES (?, ?, ?, ?, ?)",
            (entry.created_at, entry.type, entry.amount, entry.mint_url, entry.note),
        )
        self.conn.commit()
        logger.debug("wallet history: %s %s sats", type, amount)
        return entry

    def recent(self, limit: int = 20) -> list[HistoryEntry]:
        rows = self.conn.execute(
            "SELECT created_at, type, amount, mint_url, note FROM wallet_history"
            " ORDER BY created_at DESC, id DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [
            HistoryEntry(
                created_at=int(row["created_at"]),
                type=str(row["type"]),
                amount=int(row["amount"]),
                mint_url=row["mint_url"],
                note=row["note"],
            )
            for row in rows
        ]

    def add_pending_invoice(self, invoice: MintInvoice, *, now: int | None = None) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO wallet_quotes"
            " (quote_id, mint_url, amount, request, created_at) VALUES (?, ?, ?, ?, ?)",
            (
                invoice.quote_id,
                invoice.mint_url,
                invoice.amount,
                invoice.request,
                now if now is not None else int(time.time()),
            ),
        )
        self.conn.commit()

    def pending_invoices(self) -> list[MintInvoice]:
        rows = self.conn.execute(
            "SELECT quote_id, request, amount, mint_url FROM wallet_quotes"
            " WHERE claimed_at IS NULL ORDER BY created_at"
        ).fetchall()
        return [
            MintInvoice(
                quote_id=str(row["quote_id"]),
                request=str(row["request"]),
                amount=int(row["amount"]),
                mint_url=str(row["mint_url"]),
            )
            for row in rows
        ]

    def mark_claimed(self, invoice: MintInvoice, *, now: int | None = None) -> HistoryEntry:
        stamp = now if now is not None else int(time.time())
        self.conn.execute(
            "UPDATE wallet_quotes SET claimed_at = ? WHERE quote_id = ?",
            (stamp, invoice.quote_id),
        )
        return self.record("mint", invoice.amount, mint_url=invoice.mint_url, now=stamp)

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None

    def __enter__(self) -> WalletHistory:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def claim_paid_invoices(backend: WalletBackend, history: WalletHistory) -> list[MintInvoice]:
    """Mint tokens for every pending invoice the mint reports as paid."""

    claimed: list[MintInvoice] = []
    for invoice in history.pending_invoices():
        if backend.claim_invoice(invoice.quote_id, invoice.amount, invoice.mint_url):
            history.mark_claimed(invoice)
            claimed.append(invoice)
        else:
            logger.debug("invoice %s still unpaid", invoice.quote_id)
    return claimed
