"""
Base ledger indexer interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from quizpay.wallet.models import UnspentOutput


@dataclass
class AddressBalance:
    """Raw balance figures as reported by the indexer."""

    confirmed: int
    unconfirmed: int


class IndexerBackend(ABC):
    """
    Abstract ledger indexer.

    Implementations let transport exceptions (``httpx.HTTPError``) and payload
    errors (``ValueError``) propagate; callers decide whether a failure is soft
    or hard. Only a definitive rejection of a broadcast is raised as
    ``BroadcastRejected``, since recognising one depends on the wire format.
    """

    @abstractmethod
    async def get_address_balance(self, address: str) -> AddressBalance:
        """Confirmed and unconfirmed balance in satoshis"""

    @abstractmethod
    async def get_utxos(self, address: str) -> list[UnspentOutput]:
        """Unspent outputs for an address, in indexer order"""

    @abstractmethod
    async def broadcast_transaction(self, tx_hex: str) -> str:
        """Broadcast a raw transaction, returns the txid as reported"""

    async def close(self) -> None:
        """Close backend connection"""
        pass
