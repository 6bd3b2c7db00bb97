"""
Spendable output source.
"""

from __future__ import annotations

import httpx
from loguru import logger

from quizpay.backends.base import IndexerBackend
from quizpay.errors import IndexerUnavailable, NoSpendableOutputs
from quizpay.wallet.models import UnspentOutput


class UtxoSource:
    """
    Fetches spendable outputs fresh for every disbursement attempt.

    Results are never cached: the set changes with every broadcast, and a
    stale copy invites double-spends.
    """

    def __init__(self, backend: IndexerBackend):
        self.backend = backend

    async def fetch_spendable(self, address: str) -> list[UnspentOutput]:
        """
        Args:
            address: Owning address

        Returns:
            Positive-value outputs in the order the indexer returned them

        Raises:
            NoSpendableOutputs: The address has no eligible outputs
            IndexerUnavailable: Network, HTTP or payload failure
        """
        try:
            utxos = await self.backend.get_utxos(address)
        except httpx.HTTPError as e:
            raise IndexerUnavailable(f"Failed to fetch UTXOs: {e}") from e
        except ValueError as e:
            raise IndexerUnavailable(f"Malformed UTXO response: {e}") from e

        spendable = [utxo for utxo in utxos if utxo.value > 0]
        if len(spendable) < len(utxos):
            logger.debug(f"Ignoring {len(utxos) - len(spendable)} zero-value outputs")

        if not spendable:
            raise NoSpendableOutputs(address)

        logger.debug(
            f"{len(spendable)} spendable outputs for {address}, "
            f"total {sum(u.value for u in spendable):,} sats"
        )
        return spendable
