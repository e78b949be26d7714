import json

import httpx
import pytest
from typer.testing import CliRunner

from clawstr.cli import app
from clawstr.identity import get_or_create_key_pair
from clawstr.wallet import WalletHistory

runner = CliRunner()

RECIPIENT = "cd" * 32
RELAY = "wss://relay.example"
PAY_INFO = {
    "callback": "https://ln.example/callback/alice",
    "minSendable": 1000,
    "maxSendable": 1_000_000,
    "allowsNostr": True,
    "nostrPubkey": "ef" * 32,
}


@pytest.fixture
def key_pair():
    pair, _ = get_or_create_key_pair()
    return pair


@pytest.fixture
def profile_relay(monkeypatch: pytest.MonkeyPatch, fake_transport, event):
    profile = event(
        1_700_000_000,
        kind=0,
        pubkey=RECIPIENT,
        tags=[],
        content=json.dumps({"name": "alice", "lud16": "alice@ln.example"}),
    )
    instance = fake_transport([profile])
    monkeypatch.setattr("clawstr.cli._transport", lambda config: instance)
    return instance


class LnurlServer:
    def __init__(self, pay_info: dict) -> None:
        self.pay_info = pay_info
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/.well-known/lnurlp/alice":
            return httpx.Response(200, json=self.pay_info)
        if request.url.path == "/callback/alice":
            return httpx.Response(200, json={"pr": "lnbc21u1zapinvoice", "routes": []})
        return httpx.Response(404)

    def zap_request(self) -> dict:
        return json.loads(self.requests[-1].url.params["nostr"])


@pytest.fixture
def lnurl_server(monkeypatch: pytest.MonkeyPatch) -> LnurlServer:
    server = LnurlServer(dict(PAY_INFO))
    monkeypatch.setattr(
        "clawstr.cli._http_client",
        lambda config: httpx.Client(transport=httpx.MockTransport(server)),
    )
    return server


def test_zap_pays_invoice_from_wallet(
    key_pair, wallet_config, fake_wallet, profile_relay, lnurl_server
) -> None:
    result = runner.invoke(
        app, ["zap", RECIPIENT, "21", "--comment", "great post", "--relay", RELAY]
    )

    assert result.exit_code == 0, result.output
    assert "Zapped 21 sats to alice@ln.example" in result.output
    assert fake_wallet.paid_invoices == [("lnbc21u1zapinvoice", "https://mint.example")]

    filter, relays = profile_relay.queries[0]
    assert filter == {"kinds": [0], "authors": [RECIPIENT], "limit": 1}
    assert relays == [RELAY]

    callback = lnurl_server.requests[-1]
    assert callback.url.params["amount"] == "21000"
    zap_request = lnurl_server.zap_request()
    assert zap_request["kind"] == 9734
    assert zap_request["pubkey"] == key_pair.public_key
    assert zap_request["content"] == "great post"
    assert ["amount", "21000"] in zap_request["tags"]
    assert ["p", RECIPIENT] in zap_request["tags"]
    assert ["relays", RELAY] in zap_request["tags"]

    with WalletHistory() as history:
        [entry] = history.recent()
    assert (entry.type, entry.note) == ("zap", RECIPIENT)


def test_zap_an_event_adds_e_tag(
    key_pair, wallet_config, fake_wallet, profile_relay, lnurl_server
) -> None:
    event_id = "12" * 32
    result = runner.invoke(app, ["zap", RECIPIENT, "5", "--event", event_id, "--relay", RELAY])

    assert result.exit_code == 0, result.output
    assert ["e", event_id] in lnurl_server.zap_request()["tags"]


def test_zap_requires_wallet(key_pair, profile_relay, lnurl_server) -> None:
    result = runner.invoke(app, ["zap", RECIPIENT, "21"])

    assert result.exit_code == 1
    assert "Wallet not initialized" in result.output
    assert profile_relay.queries == []


def test_zap_rejects_bad_recipient_and_amount(key_pair, wallet_config, fake_wallet) -> None:
    bad_recipient = runner.invoke(app, ["zap", "alice", "21"])
    assert bad_recipient.exit_code == 1
    assert "Invalid recipient" in bad_recipient.output

    zero = runner.invoke(app, ["zap", RECIPIENT, "0"])
    assert zero.exit_code == 1
    assert "positive number" in zero.output


def test_zap_without_profile_fails(
    monkeypatch: pytest.MonkeyPatch, key_pair, wallet_config, fake_wallet, fake_transport
) -> None:
    empty = fake_transport()
    monkeypatch.setattr("clawstr.cli._transport", lambda config: empty)

    result = runner.invoke(app, ["zap", RECIPIENT, "21", "--relay", RELAY])

    assert result.exit_code == 1
    assert "profile not found" in result.output
    assert fake_wallet.paid_invoices == []


def test_zap_requires_nostr_support(
    key_pair, wallet_config, fake_wallet, profile_relay, lnurl_server
) -> None:
    lnurl_server.pay_info["allowsNostr"] = False

    result = runner.invoke(app, ["zap", RECIPIENT, "21", "--relay", RELAY])

    assert result.exit_code == 1
    assert "does not support Nostr zaps" in result.output
    assert fake_wallet.paid_invoices == []


def test_zap_amount_outside_lnurl_limits(
    key_pair, wallet_config, fake_wallet, profile_relay, lnurl_server
) -> None:
    result = runner.invoke(app, ["zap", RECIPIENT, "5000", "--relay", RELAY])

    assert result.exit_code == 1
    assert "between 1 and 1000 sats" in result.output
    assert fake_wallet.paid_invoices == []
