"""
Test configuration for quizpay tests.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
from coincurve import PrivateKey

from quizpay.backends.base import AddressBalance, IndexerBackend
from quizpay.balance import BalanceBook, BalanceOracle
from quizpay.session import MemoryKeyStore, WalletSession
from quizpay.wallet.adapter import CoincurveWalletAdapter
from quizpay.wallet.keys import KeyPair
from quizpay.wallet.models import UnspentOutput
from quizpay.wallet.signing import compute_txid

# Secret 1: the well-known test key (not for production use!)
PLATFORM_WIF = "KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn"
PLATFORM_ADDRESS = "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH"
USER_ADDRESS = "1cMh228HTCiwS8ZsaakH8A8wze1JR5ZsP"


class FakeIndexer(IndexerBackend):
    """In-memory indexer that records every call."""

    def __init__(self) -> None:
        self.balances: dict[str, AddressBalance] = {}
        self.utxos: dict[str, list[UnspentOutput]] = {}
        self.broadcast_result: str | None = None
        self.broadcast_error: Exception | None = None
        self.utxo_error: Exception | None = None
        self.balance_error: Exception | None = None
        self.broadcasts: list[str] = []
        self.calls: list[tuple[str, str]] = []

    async def get_address_balance(self, address: str) -> AddressBalance:
        self.calls.append(("balance", address))
        if self.balance_error is not None:
            raise self.balance_error
        return self.balances.get(address, AddressBalance(confirmed=0, unconfirmed=0))

    async def get_utxos(self, address: str) -> list[UnspentOutput]:
        self.calls.append(("utxos", address))
        if self.utxo_error is not None:
            raise self.utxo_error
        return list(self.utxos.get(address, []))

    async def broadcast_transaction(self, tx_hex: str) -> str:
        self.calls.append(("broadcast", tx_hex))
        self.broadcasts.append(tx_hex)
        if self.broadcast_error is not None:
            raise self.broadcast_error
        if self.broadcast_result is not None:
            return self.broadcast_result
        # Echo the real txid like a healthy indexer
        return compute_txid(bytes.fromhex(tx_hex))


@pytest.fixture
def platform_key() -> KeyPair:
    return KeyPair(PrivateKey((1).to_bytes(32, "big")))


@pytest.fixture
def user_key() -> KeyPair:
    return KeyPair(PrivateKey((2).to_bytes(32, "big")))


@pytest.fixture
def adapter() -> CoincurveWalletAdapter:
    return CoincurveWalletAdapter("mainnet")


@pytest.fixture
def make_utxo(platform_key: KeyPair) -> Callable[..., UnspentOutput]:
    """Factory for platform-owned outputs with distinct txids."""

    def _make(value: int, index: int = 0, address: str | None = None) -> UnspentOutput:
        return UnspentOutput(
            txid=f"{index + 1:064x}",
            vout=index,
            value=value,
            address=address or platform_key.address,
        )

    return _make


@pytest.fixture
def fake_indexer() -> FakeIndexer:
    return FakeIndexer()


@pytest.fixture
def balance_book(fake_indexer: FakeIndexer) -> BalanceBook:
    return BalanceBook(BalanceOracle(fake_indexer, timeout=1.0))


@pytest.fixture
def wallet_session(
    adapter: CoincurveWalletAdapter,
    balance_book: BalanceBook,
    platform_key: KeyPair,
    user_key: KeyPair,
) -> WalletSession:
    """Session with both wallets loaded and no balances yet."""
    session = WalletSession(adapter=adapter, balances=balance_book, key_store=MemoryKeyStore())
    session.platform_key = platform_key
    session.user_key = user_key
    return session


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an AsyncClient whose requests are answered by ``handler``."""

    def _client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _client


@pytest.fixture
def platform_wif() -> str:
    return PLATFORM_WIF


@pytest.fixture
def platform_address() -> str:
    return PLATFORM_ADDRESS


@pytest.fixture
def user_address() -> str:
    return USER_ADDRESS
