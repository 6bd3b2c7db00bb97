"""
Wallet session: the explicit context shared by the quiz and the engine.

Holds the platform and user keys, last known balances and the last reward.
Key changes go through the session; the engine only writes ``last_result``.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger

from quizpay.balance import BalanceBook
from quizpay.constants import USER_WALLET_SECRET_KEY
from quizpay.errors import InvalidKeyEncoding
from quizpay.wallet.adapter import WalletAdapter
from quizpay.wallet.keys import KeyPair, mask_secret
from quizpay.wallet.models import Balance, DisbursementResult


class KeyStore(ABC):
    """String key-value store for wallet secrets. ``set`` is durable on return."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Stored value or None"""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value"""


class MemoryKeyStore(KeyStore):
    def __init__(self, initial: dict[str, str] | None = None):
        self._data = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class FileKeyStore(KeyStore):
    """JSON file store, readable by the owner only."""

    def __init__(self, path: Path):
        self.path = path

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text())
        if not isinstance(data, dict):
            raise ValueError(f"Key store {self.path} is not a JSON object")
        return data

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(data, f)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)


class WalletSession:
    """
    Context object for one player.

    Replaces ambient wallet state: every operation that needs keys or
    balances receives the session explicitly.
    """

    def __init__(
        self,
        adapter: WalletAdapter,
        balances: BalanceBook,
        key_store: KeyStore,
        secret_key: str = USER_WALLET_SECRET_KEY,
    ):
        self.adapter = adapter
        self.balances = balances
        self.key_store = key_store
        self.secret_key = secret_key

        self.platform_key: KeyPair | None = None
        self.user_key: KeyPair | None = None
        self.last_result: DisbursementResult | None = None
        self.error = ""

    @property
    def platform_address(self) -> str | None:
        return self.platform_key.address if self.platform_key else None

    @property
    def user_address(self) -> str | None:
        return self.user_key.address if self.user_key else None

    @property
    def platform_balance(self) -> Balance | None:
        if self.platform_key is None:
            return None
        return self.balances.get(self.platform_key.address)

    @property
    def user_balance(self) -> Balance | None:
        if self.user_key is None:
            return None
        return self.balances.get(self.user_key.address)

    def load_platform_wallet(self, wif: str | None) -> KeyPair | None:
        """
        Import the platform key supplied at startup.

        A missing or invalid secret leaves the session without a platform
        wallet; rewards are then skipped rather than failing the process.
        """
        if not wif:
            self.error = "Failed to initialize platform wallet: Platform WIF not configured"
            logger.error(self.error)
            return None

        try:
            self.platform_key = self.adapter.from_encoded_secret(wif)
        except InvalidKeyEncoding as e:
            self.error = f"Failed to initialize platform wallet: {e}"
            logger.error(self.error)
            return None

        logger.info(f"Platform wallet: {self.platform_key.address}")
        return self.platform_key

    def load_user_wallet(self) -> KeyPair | None:
        """Restore the user wallet persisted by a previous run, if any."""
        stored = self.key_store.get(self.secret_key)
        if not stored:
            return None

        try:
            return self.use_user_wallet(stored)
        except InvalidKeyEncoding as e:
            self.error = f"Failed to initialize user wallet: {e}"
            logger.warning(f"Stored user wallet {mask_secret(stored)} is unusable: {e}")
            return None

    def use_user_wallet(self, wif: str) -> KeyPair:
        """
        Switch to a user-supplied WIF and persist it.

        Raises:
            InvalidKeyEncoding: The WIF does not decode
        """
        keypair = self.adapter.from_encoded_secret(wif)
        self.key_store.set(self.secret_key, wif.strip())
        self._set_user_key(keypair)
        return keypair

    def generate_user_wallet(self) -> KeyPair:
        keypair = self.adapter.generate()
        self.key_store.set(self.secret_key, keypair.to_wif())
        self._set_user_key(keypair)
        logger.info(f"Generated new user wallet {keypair.address}")
        return keypair

    def _set_user_key(self, keypair: KeyPair) -> None:
        if self.user_key is not None and self.user_key.address != keypair.address:
            self.balances.forget(self.user_key.address)
        self.user_key = keypair
        self.error = ""
        logger.info(f"User wallet: {keypair.address} ({mask_secret(keypair.to_wif())})")

    async def refresh_balances(self) -> None:
        """Refresh platform and user balances concurrently."""
        addresses = [addr for addr in (self.platform_address, self.user_address) if addr]
        if addresses:
            await self.balances.refresh_many(addresses)
