"""
Transaction broadcaster.
"""

from __future__ import annotations

import httpx
from loguru import logger

from quizpay.backends.base import IndexerBackend
from quizpay.errors import BroadcastRejected, IndexerUnavailable
from quizpay.wallet.adapter import WalletAdapter
from quizpay.wallet.models import PaymentTransaction


class Broadcaster:
    """
    Submits signed transactions to the indexer.

    A rejection is definitive and carries the indexer's reason. A transport
    failure leaves the transaction's fate unknown; it is never re-sent here,
    a retry must start from freshly fetched UTXOs.
    """

    def __init__(self, backend: IndexerBackend, adapter: WalletAdapter):
        self.backend = backend
        self.adapter = adapter

    async def submit(self, transaction: PaymentTransaction) -> str:
        """
        Returns:
            The transaction id reported by the indexer

        Raises:
            BroadcastRejected: The indexer refused the transaction
            IndexerUnavailable: Fate unknown (transport failure or empty id)
        """
        tx_hex = self.adapter.encode_transaction(transaction)

        try:
            txid = await self.backend.broadcast_transaction(tx_hex)
        except BroadcastRejected as e:
            logger.error(f"Broadcast of {transaction.txid} rejected: {e.rejection}")
            raise
        except httpx.HTTPError as e:
            logger.error(
                f"Broadcast of {transaction.txid} failed, fate unknown: {e!r}. "
                "Re-check UTXOs before paying again"
            )
            raise IndexerUnavailable(f"Broadcast failed: {e}", fate_unknown=True) from e

        if not txid:
            logger.error(f"Indexer accepted {transaction.txid} but returned no transaction id")
            raise IndexerUnavailable(
                "Broadcast returned an empty transaction id", fate_unknown=True
            )

        if txid != transaction.txid:
            logger.warning(f"Indexer reported txid {txid}, computed {transaction.txid}")

        logger.info(f"Broadcast transaction: {txid}")
        return txid
