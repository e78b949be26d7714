import json

import httpx
import pytest

from clawstr.errors import ZapError
from clawstr.zap import (
    LnurlPayInfo,
    fetch_pay_info,
    lightning_address_from_profile,
    lnurlp_url,
    request_invoice,
    zap_request_tags,
)

PAY_INFO = {
    "callback": "https://ln.example/callback/alice",
    "minSendable": 1000,
    "maxSendable": 100_000_000,
    "allowsNostr": True,
    "nostrPubkey": "cd" * 32,
    "tag": "payRequest",
}


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_lnurlp_url_from_lightning_address() -> None:
    assert lnurlp_url("alice@ln.example") == "https://ln.example/.well-known/lnurlp/alice"
    with pytest.raises(ZapError, match="Invalid lightning address"):
        lnurlp_url("@ln.example")


def test_lightning_address_from_profile() -> None:
    assert lightning_address_from_profile('{"lud16": " alice@ln.example "}') == "alice@ln.example"
    with pytest.raises(ZapError, match="no lightning address"):
        lightning_address_from_profile('{"name": "alice"}')
    with pytest.raises(ZapError, match="no lightning address"):
        lightning_address_from_profile('{"lud16": "not-an-address"}')
    with pytest.raises(ZapError, match="not valid JSON"):
        lightning_address_from_profile("{broken")


def test_fetch_pay_info_reads_lnurl_response() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json=PAY_INFO)

    with _client(handler) as client:
        info = fetch_pay_info(client, "alice@ln.example")

    assert seen == ["https://ln.example/.well-known/lnurlp/alice"]
    assert info == LnurlPayInfo(
        callback="https://ln.example/callback/alice",
        min_sendable=1000,
        max_sendable=100_000_000,
        allows_nostr=True,
        nostr_pubkey="cd" * 32,
    )


def test_fetch_pay_info_reports_service_errors() -> None:
    def error_status(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "ERROR", "reason": "unknown user"})

    with _client(error_status) as client, pytest.raises(ZapError, match="unknown user"):
        fetch_pay_info(client, "alice@ln.example")

    def not_found(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    with _client(not_found) as client, pytest.raises(ZapError, match="failed"):
        fetch_pay_info(client, "alice@ln.example")

    def incomplete(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"callback": "https://ln.example/cb"})

    with _client(incomplete) as client, pytest.raises(ZapError, match="Incomplete"):
        fetch_pay_info(client, "alice@ln.example")


def test_check_amount_bounds() -> None:
    info = LnurlPayInfo("https://cb", 10_000, 50_000, True, None)
    info.check_amount(10_000)
    info.check_amount(50_000)
    with pytest.raises(ZapError, match="between 10 and 50 sats"):
        info.check_amount(9_000)
    with pytest.raises(ZapError, match="between 10 and 50 sats"):
        info.check_amount(51_000)


def test_zap_request_tags() -> None:
    tags = zap_request_tags("ab" * 32, 21_000, ["wss://a", "wss://b"])
    assert tags == [["relays", "wss://a", "wss://b"], ["amount", "21000"], ["p", "ab" * 32]]

    with_event = zap_request_tags("ab" * 32, 1000, ["wss://a"], event_id="ef" * 32)
    assert with_event[-1] == ["e", "ef" * 32]


def test_request_invoice_sends_amount_and_zap_request() -> None:
    params: list[httpx.QueryParams] = []

    def handler(request: httpx.Request) -> httpx.Response:
        params.append(request.url.params)
        return httpx.Response(200, json={"pr": "lnbc210n1fake", "routes": []})

    info = LnurlPayInfo("https://ln.example/callback/alice", 1000, 10**8, True, None)
    zap_request = json.dumps({"kind": 9734})
    with _client(handler) as client:
        assert request_invoice(client, info, 21_000, zap_request) == "lnbc210n1fake"

    assert params[0]["amount"] == "21000"
    assert json.loads(params[0]["nostr"]) == {"kind": 9734}


def test_request_invoice_without_pr_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"routes": []})

    info = LnurlPayInfo("https://ln.example/cb", 1000, 10**8, True, None)
    with _client(handler) as client, pytest.raises(ZapError, match="did not return an invoice"):
        request_invoice(client, info, 1000, "{}")
