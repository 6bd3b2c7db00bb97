"""
Tests for the wallet session and key persistence.
"""

from __future__ import annotations

import json
import stat
from pathlib import Path

import pytest

from quizpay.backends.base import AddressBalance
from quizpay.balance import BalanceBook
from quizpay.constants import USER_WALLET_SECRET_KEY
from quizpay.errors import InvalidKeyEncoding
from quizpay.session import FileKeyStore, MemoryKeyStore, WalletSession
from quizpay.wallet.adapter import CoincurveWalletAdapter


@pytest.fixture
def store() -> MemoryKeyStore:
    return MemoryKeyStore()


@pytest.fixture
def session(
    adapter: CoincurveWalletAdapter, balance_book: BalanceBook, store: MemoryKeyStore
) -> WalletSession:
    return WalletSession(adapter=adapter, balances=balance_book, key_store=store)


class TestFileKeyStore:
    """Tests for FileKeyStore."""

    def test_missing_file(self, tmp_path: Path) -> None:
        assert FileKeyStore(tmp_path / "wallet.json").get("key") is None

    def test_set_and_get(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "wallet.json"
        store = FileKeyStore(path)

        store.set("a", "1")
        store.set("b", "2")

        assert FileKeyStore(path).get("a") == "1"
        assert json.loads(path.read_text()) == {"a": "1", "b": "2"}
        assert not path.with_suffix(".json.tmp").exists()

    def test_owner_only_permissions(self, tmp_path: Path) -> None:
        path = tmp_path / "wallet.json"
        FileKeyStore(path).set("a", "1")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_not_an_object(self, tmp_path: Path) -> None:
        path = tmp_path / "wallet.json"
        path.write_text("[]")
        with pytest.raises(ValueError, match="not a JSON object"):
            FileKeyStore(path).get("a")


class TestPlatformWallet:
    """Tests for loading the platform wallet."""

    def test_valid(self, session: WalletSession, platform_wif: str, platform_address: str) -> None:
        keypair = session.load_platform_wallet(platform_wif)
        assert keypair is not None
        assert session.platform_address == platform_address
        assert session.error == ""

    def test_missing(self, session: WalletSession) -> None:
        assert session.load_platform_wallet(None) is None
        assert session.platform_key is None
        assert "Platform WIF not configured" in session.error

    def test_invalid(self, session: WalletSession) -> None:
        assert session.load_platform_wallet("garbage") is None
        assert session.platform_key is None
        assert session.error.startswith("Failed to initialize platform wallet")


class TestUserWallet:
    """Tests for the user wallet lifecycle."""

    def test_nothing_stored(self, session: WalletSession) -> None:
        assert session.load_user_wallet() is None
        assert session.user_key is None

    def test_generate_persists(self, session: WalletSession, store: MemoryKeyStore) -> None:
        keypair = session.generate_user_wallet()
        assert store.get(USER_WALLET_SECRET_KEY) == keypair.to_wif()
        assert session.user_address == keypair.address

    def test_reload_from_store(
        self,
        adapter: CoincurveWalletAdapter,
        balance_book: BalanceBook,
        session: WalletSession,
        store: MemoryKeyStore,
    ) -> None:
        original = session.generate_user_wallet()
        restored = WalletSession(adapter=adapter, balances=balance_book, key_store=store)

        assert restored.load_user_wallet() == original

    def test_import_strips_and_persists(
        self, session: WalletSession, store: MemoryKeyStore, platform_wif: str
    ) -> None:
        session.use_user_wallet(f" {platform_wif} ")
        assert store.get(USER_WALLET_SECRET_KEY) == platform_wif

    def test_import_invalid_keeps_current(
        self, session: WalletSession, store: MemoryKeyStore
    ) -> None:
        current = session.generate_user_wallet()

        with pytest.raises(InvalidKeyEncoding):
            session.use_user_wallet("garbage")

        assert session.user_key == current
        assert store.get(USER_WALLET_SECRET_KEY) == current.to_wif()

    def test_corrupt_stored_secret(self, session: WalletSession, store: MemoryKeyStore) -> None:
        store.set(USER_WALLET_SECRET_KEY, "garbage")
        assert session.load_user_wallet() is None
        assert session.error.startswith("Failed to initialize user wallet")

    @pytest.mark.asyncio
    async def test_switching_wallet_drops_old_balance(
        self, session: WalletSession, fake_indexer
    ) -> None:
        old = session.generate_user_wallet()
        fake_indexer.balances[old.address] = AddressBalance(100, 0)
        await session.refresh_balances()
        assert session.user_balance.total == 100

        session.generate_user_wallet()

        assert session.balances.get(old.address) is None
        assert session.user_balance is None


class TestRefreshBalances:
    """Tests for WalletSession.refresh_balances."""

    @pytest.mark.asyncio
    async def test_refreshes_both(
        self, wallet_session: WalletSession, fake_indexer
    ) -> None:
        fake_indexer.balances[wallet_session.platform_address] = AddressBalance(1000, 0)
        fake_indexer.balances[wallet_session.user_address] = AddressBalance(5, 5)

        await wallet_session.refresh_balances()

        assert wallet_session.platform_balance.total == 1000
        assert wallet_session.user_balance.total == 10

    @pytest.mark.asyncio
    async def test_no_wallets(self, session: WalletSession, fake_indexer) -> None:
        await session.refresh_balances()
        assert fake_indexer.calls == []
