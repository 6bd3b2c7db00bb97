"""
Payment transaction builder.

Builds the reward payment from:
- The platform key and its UTXOs (in indexer order)
- The payee address and fixed amount
- A fee rate in satoshis per 1000 bytes
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from loguru import logger

from quizpay.constants import (
    DEFAULT_FEE_RATE_PER_KB,
    DUST_THRESHOLD,
    P2PKH_INPUT_SIZE,
    P2PKH_OUTPUT_SIZE,
    TX_OVERHEAD_SIZE,
)
from quizpay.errors import InsufficientFunds
from quizpay.wallet.adapter import WalletAdapter
from quizpay.wallet.keys import KeyPair
from quizpay.wallet.models import PaymentTransaction, TxOutput, UnspentOutput
from quizpay.wallet.signing import compute_txid


def estimate_tx_size(num_inputs: int, num_outputs: int) -> int:
    """
    Estimate serialized size of a P2PKH transaction.

    P2PKH inputs: ~148 bytes each
    P2PKH outputs: 34 bytes each
    Overhead: ~10 bytes
    """
    return TX_OVERHEAD_SIZE + num_inputs * P2PKH_INPUT_SIZE + num_outputs * P2PKH_OUTPUT_SIZE


def calculate_tx_fee(num_inputs: int, num_outputs: int, fee_rate_per_kb: int) -> int:
    """Fee for the estimated size, rounded up to a whole satoshi."""
    return math.ceil(estimate_tx_size(num_inputs, num_outputs) * fee_rate_per_kb / 1000)


def select_inputs(
    utxos: Sequence[UnspentOutput], amount: int, fee_rate_per_kb: int
) -> list[UnspentOutput]:
    """
    Greedy first-fit selection in the order given.

    Stops as soon as the inputs cover the amount plus the fee of a
    payee-only transaction.

    Raises:
        InsufficientFunds: The whole set is exhausted first
    """
    selected: list[UnspentOutput] = []
    total = 0

    for utxo in utxos:
        selected.append(utxo)
        total += utxo.value
        if total >= amount + calculate_tx_fee(len(selected), 1, fee_rate_per_kb):
            return selected

    needed = amount + calculate_tx_fee(max(len(selected), 1), 1, fee_rate_per_kb)
    raise InsufficientFunds(needed=needed, available=total)


class TransactionBuilder:
    """
    Builds and signs single-payee payments with optional change.

    Change below ``dust_threshold`` is not created; that value goes to the fee.
    """

    def __init__(self, adapter: WalletAdapter, dust_threshold: int = DUST_THRESHOLD):
        self.adapter = adapter
        self.dust_threshold = dust_threshold

    def build(
        self,
        payer_key: KeyPair,
        payee_address: str,
        amount: int,
        utxos: Sequence[UnspentOutput],
        fee_rate_per_kb: int = DEFAULT_FEE_RATE_PER_KB,
    ) -> PaymentTransaction:
        """
        Select inputs, lay out outputs and sign.

        Raises:
            InsufficientFunds: The UTXOs cannot cover amount + fee
            SigningFailed: The adapter could not sign
        """
        if amount <= 0:
            raise ValueError(f"Amount must be positive: {amount}")
        if fee_rate_per_kb < 0:
            raise ValueError(f"Fee rate must not be negative: {fee_rate_per_kb}")

        inputs = select_inputs(utxos, amount, fee_rate_per_kb)
        total_input = sum(utxo.value for utxo in inputs)

        outputs = [TxOutput(address=payee_address, value=amount)]
        change = total_input - amount - calculate_tx_fee(len(inputs), 2, fee_rate_per_kb)

        if change >= self.dust_threshold and change > 0:
            outputs.append(TxOutput(address=payer_key.address, value=change))
        else:
            logger.debug(
                f"Change of {change} sats is below dust threshold {self.dust_threshold}, "
                f"fee absorbs {total_input - amount} sats"
            )

        fee = total_input - sum(out.value for out in outputs)

        raw = self.adapter.build_and_sign(payer_key, inputs, outputs)
        tx = PaymentTransaction(
            inputs=tuple(inputs),
            outputs=tuple(outputs),
            fee_rate_per_kb=fee_rate_per_kb,
            fee=fee,
            raw=raw,
            txid=compute_txid(raw),
        )

        logger.info(
            f"Built tx {tx.txid}: {len(inputs)} inputs, {len(outputs)} outputs, "
            f"{amount} sats to {payee_address}, fee {fee} sats"
        )
        return tx
