"""
Tests for the WhatsOnChain indexer backend.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from quizpay.backends.whatsonchain import (
    WhatsOnChainBackend,
    extract_rejection,
    parse_balance,
    parse_unspent,
)
from quizpay.errors import BroadcastRejected

BASE_URL = "https://api.whatsonchain.com/v1/bsv/main"
TXID = "ab" * 32

ClientFactory = Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]


class TestParsers:
    """Tests for payload parsing."""

    def test_balance(self) -> None:
        balance = parse_balance({"confirmed": 1000, "unconfirmed": -5})
        assert balance.confirmed == 1000
        assert balance.unconfirmed == -5

    def test_balance_missing_fields_default_to_zero(self) -> None:
        balance = parse_balance({})
        assert (balance.confirmed, balance.unconfirmed) == (0, 0)

    @pytest.mark.parametrize(
        "payload",
        [[], "oops", {"confirmed": "10"}, {"confirmed": 1.5}, {"confirmed": -1}],
    )
    def test_balance_rejects_malformed(self, payload: object) -> None:
        with pytest.raises(ValueError):
            parse_balance(payload)

    def test_unspent(self, platform_address: str) -> None:
        utxos = parse_unspent(
            [
                {"tx_hash": TXID.upper(), "tx_pos": 1, "value": 1000, "height": 800000},
                {"tx_hash": "cd" * 32, "tx_pos": 0, "value": 50, "height": 0},
            ],
            platform_address,
        )
        assert [u.txid for u in utxos] == [TXID, "cd" * 32]
        assert utxos[0].vout == 1
        assert utxos[0].value == 1000
        assert utxos[0].height == 800000
        assert utxos[1].height is None
        assert all(u.address == platform_address for u in utxos)

    @pytest.mark.parametrize(
        "entry",
        [
            {"tx_hash": "zz" * 32, "tx_pos": 0, "value": 1},
            {"tx_hash": "ab", "tx_pos": 0, "value": 1},
            {"tx_hash": TXID, "tx_pos": -1, "value": 1},
            {"tx_hash": TXID, "tx_pos": 0},
            {"tx_hash": TXID, "tx_pos": 0, "value": True},
        ],
    )
    def test_unspent_rejects_malformed(self, entry: dict, platform_address: str) -> None:
        with pytest.raises(ValueError):
            parse_unspent([entry], platform_address)

    def test_rejection_from_json_error(self) -> None:
        response = httpx.Response(400, json={"error": "too-low-fee"})
        assert extract_rejection(response) == "too-low-fee"

    def test_rejection_from_json_string(self) -> None:
        response = httpx.Response(400, json="258: txn-mempool-conflict")
        assert extract_rejection(response) == "258: txn-mempool-conflict"

    def test_rejection_from_text(self) -> None:
        response = httpx.Response(400, text="Missing inputs")
        assert extract_rejection(response) == "Missing inputs"

    def test_rejection_empty_body(self) -> None:
        response = httpx.Response(400)
        assert extract_rejection(response) == "HTTP 400"


class TestWhatsOnChainBackend:
    """Tests for HTTP calls against a mock transport."""

    @pytest.mark.asyncio
    async def test_get_address_balance(
        self, mock_client: ClientFactory, platform_address: str
    ) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"confirmed": 1000, "unconfirmed": 20})

        backend = WhatsOnChainBackend(BASE_URL + "/", client=mock_client(handler))
        balance = await backend.get_address_balance(platform_address)
        await backend.close()

        assert (balance.confirmed, balance.unconfirmed) == (1000, 20)
        assert requests[0].method == "GET"
        assert str(requests[0].url) == f"{BASE_URL}/address/{platform_address}/balance"

    @pytest.mark.asyncio
    async def test_get_utxos(self, mock_client: ClientFactory, platform_address: str) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith(f"/address/{platform_address}/unspent")
            return httpx.Response(
                200, json=[{"tx_hash": TXID, "tx_pos": 0, "value": 1000, "height": 1}]
            )

        backend = WhatsOnChainBackend(BASE_URL, client=mock_client(handler))
        utxos = await backend.get_utxos(platform_address)

        assert len(utxos) == 1
        assert utxos[0].txid == TXID

    @pytest.mark.asyncio
    async def test_http_error_propagates(
        self, mock_client: ClientFactory, platform_address: str
    ) -> None:
        backend = WhatsOnChainBackend(
            BASE_URL, client=mock_client(lambda request: httpx.Response(500))
        )
        with pytest.raises(httpx.HTTPStatusError):
            await backend.get_address_balance(platform_address)

    @pytest.mark.asyncio
    async def test_transport_error_propagates(
        self, mock_client: ClientFactory, platform_address: str
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        backend = WhatsOnChainBackend(BASE_URL, client=mock_client(handler))
        with pytest.raises(httpx.ConnectError):
            await backend.get_utxos(platform_address)

    @pytest.mark.asyncio
    async def test_non_json_body_is_value_error(
        self, mock_client: ClientFactory, platform_address: str
    ) -> None:
        backend = WhatsOnChainBackend(
            BASE_URL, client=mock_client(lambda request: httpx.Response(200, text="<html>"))
        )
        with pytest.raises(ValueError):
            await backend.get_address_balance(platform_address)

    @pytest.mark.asyncio
    async def test_broadcast_success(self, mock_client: ClientFactory) -> None:
        sent: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(json.loads(request.content))
            return httpx.Response(200, json=TXID)

        backend = WhatsOnChainBackend(BASE_URL, client=mock_client(handler))
        txid = await backend.broadcast_transaction("0100")

        assert txid == TXID
        assert sent == [{"txhex": "0100"}]

    @pytest.mark.asyncio
    async def test_broadcast_plain_text_txid(self, mock_client: ClientFactory) -> None:
        backend = WhatsOnChainBackend(
            BASE_URL, client=mock_client(lambda request: httpx.Response(200, text=f"{TXID}\n"))
        )
        assert await backend.broadcast_transaction("0100") == TXID

    @pytest.mark.asyncio
    async def test_broadcast_rejected(self, mock_client: ClientFactory) -> None:
        backend = WhatsOnChainBackend(
            BASE_URL,
            client=mock_client(lambda request: httpx.Response(400, json={"error": "too-low-fee"})),
        )
        with pytest.raises(BroadcastRejected) as exc_info:
            await backend.broadcast_transaction("0100")

        assert exc_info.value.rejection == "too-low-fee"
        assert exc_info.value.status_code == 400
        assert "too-low-fee" in str(exc_info.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [502, 503, 504])
    async def test_broadcast_gateway_error_is_transport_failure(
        self, mock_client: ClientFactory, status: int
    ) -> None:
        backend = WhatsOnChainBackend(
            BASE_URL, client=mock_client(lambda request: httpx.Response(status))
        )
        with pytest.raises(httpx.HTTPStatusError):
            await backend.broadcast_transaction("0100")

    @pytest.mark.asyncio
    async def test_broadcast_empty_body(self, mock_client: ClientFactory) -> None:
        backend = WhatsOnChainBackend(
            BASE_URL, client=mock_client(lambda request: httpx.Response(200, text=""))
        )
        assert await backend.broadcast_transaction("0100") == ""
