"""
WhatsOnChain REST backend.

Endpoints used (relative to the network base URL):
- GET  address/{address}/balance  -> {"confirmed": int, "unconfirmed": int}
- GET  address/{address}/unspent  -> [{"tx_hash", "tx_pos", "value", "height"}]
- POST tx/raw  {"txhex": "..."}   -> "txid"
"""

from __future__ import annotations

import json
from typing import Any

import httpx
from loguru import logger

from quizpay.backends.base import AddressBalance, IndexerBackend
from quizpay.constants import DEFAULT_REQUEST_TIMEOUT, WHATSONCHAIN_API_MAINNET
from quizpay.errors import BroadcastRejected
from quizpay.wallet.models import UnspentOutput

# Statuses meaning the request never reached a node that could judge the tx
GATEWAY_STATUSES = frozenset({502, 503, 504})


def _require_int(data: dict[str, Any], key: str, default: int | None = None) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Field {key!r} is not an integer: {value!r}")
    return value


def parse_balance(payload: Any) -> AddressBalance:
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected balance payload: {payload!r}")

    confirmed = _require_int(payload, "confirmed", 0)
    unconfirmed = _require_int(payload, "unconfirmed", 0)
    if confirmed < 0:
        raise ValueError(f"Negative confirmed balance: {confirmed}")

    return AddressBalance(confirmed=confirmed, unconfirmed=unconfirmed)


def parse_unspent(payload: Any, address: str) -> list[UnspentOutput]:
    if not isinstance(payload, list):
        raise ValueError(f"Unexpected unspent payload: {payload!r}")

    utxos: list[UnspentOutput] = []
    for entry in payload:
        if not isinstance(entry, dict):
            raise ValueError(f"Unexpected unspent entry: {entry!r}")

        txid = entry.get("tx_hash")
        if not isinstance(txid, str) or len(txid) != 64:
            raise ValueError(f"Invalid tx_hash: {txid!r}")
        bytes.fromhex(txid)

        vout = _require_int(entry, "tx_pos")
        if vout < 0:
            raise ValueError(f"Invalid tx_pos: {vout}")

        height = entry.get("height")
        utxos.append(
            UnspentOutput(
                txid=txid.lower(),
                vout=vout,
                value=_require_int(entry, "value"),
                address=address,
                height=height if isinstance(height, int) and height > 0 else None,
            )
        )

    return utxos


def extract_rejection(response: httpx.Response) -> str:
    """Rejection reason as the indexer phrased it."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or f"HTTP {response.status_code}"

    if isinstance(body, dict) and "error" in body:
        error = body["error"]
        return error if isinstance(error, str) else json.dumps(error)
    if isinstance(body, str):
        return body
    return response.text.strip()


class WhatsOnChainBackend(IndexerBackend):
    """
    Ledger indexer backed by the WhatsOnChain REST API.
    """

    def __init__(
        self,
        base_url: str = WHATSONCHAIN_API_MAINNET,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the backend.

        Args:
            base_url: Network base URL, e.g. https://api.whatsonchain.com/v1/bsv/main
            timeout: Per-request timeout in seconds
            client: Pre-built client (tests inject one with a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint}"

    async def _api_call(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """Make an API call, raising on non-2xx status or a non-JSON body."""
        url = self._url(endpoint)

        try:
            if method == "GET":
                response = await self.client.get(url)
            elif method == "POST":
                response = await self.client.post(url, json=data)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")

            response.raise_for_status()
            return response.json()

        except httpx.HTTPError as e:
            logger.debug(f"WhatsOnChain call failed: {endpoint} - {e!r}")
            raise

    async def get_address_balance(self, address: str) -> AddressBalance:
        payload = await self._api_call("GET", f"address/{address}/balance")
        balance = parse_balance(payload)
        logger.debug(
            f"Balance for {address}: confirmed={balance.confirmed} "
            f"unconfirmed={balance.unconfirmed}"
        )
        return balance

    async def get_utxos(self, address: str) -> list[UnspentOutput]:
        payload = await self._api_call("GET", f"address/{address}/unspent")
        utxos = parse_unspent(payload, address)
        logger.debug(f"Found {len(utxos)} UTXOs for {address}")
        return utxos

    async def broadcast_transaction(self, tx_hex: str) -> str:
        """
        Broadcast via POST tx/raw.

        Raises:
            BroadcastRejected: Indexer answered with a non-gateway error status
            httpx.HTTPError: Transport failure or gateway error (fate unknown)
        """
        response = await self.client.post(self._url("tx/raw"), json={"txhex": tx_hex})

        if response.status_code in GATEWAY_STATUSES:
            response.raise_for_status()

        if not response.is_success:
            rejection = extract_rejection(response)
            logger.debug(f"Broadcast rejected with HTTP {response.status_code}: {rejection}")
            raise BroadcastRejected(rejection, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError:
            body = response.text

        txid = body if isinstance(body, str) else ""
        return txid.strip().strip('"')

    async def close(self) -> None:
        await self.client.aclose()
