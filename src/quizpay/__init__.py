"""
quizpay - Bitcoin SV micropayment rewards for quiz answers

Provides key handling, balance queries, transaction building, broadcast
and the reward disbursement engine.
"""

__version__ = "0.1.0"

from quizpay.balance import BalanceBook, BalanceOracle
from quizpay.broadcaster import Broadcaster
from quizpay.engine import DisbursementOutcome, DisbursementState, RewardEngine, SkipReason
from quizpay.errors import (
    BroadcastRejected,
    DisbursementError,
    IndexerUnavailable,
    InsufficientFunds,
    InvalidKeyEncoding,
    NoSpendableOutputs,
    SigningFailed,
)
from quizpay.session import FileKeyStore, MemoryKeyStore, WalletSession
from quizpay.tx_builder import TransactionBuilder
from quizpay.utxo import UtxoSource

__all__ = [
    "BalanceBook",
    "BalanceOracle",
    "BroadcastRejected",
    "Broadcaster",
    "DisbursementError",
    "DisbursementOutcome",
    "DisbursementState",
    "FileKeyStore",
    "IndexerUnavailable",
    "InsufficientFunds",
    "InvalidKeyEncoding",
    "MemoryKeyStore",
    "NoSpendableOutputs",
    "RewardEngine",
    "SigningFailed",
    "SkipReason",
    "TransactionBuilder",
    "UtxoSource",
    "WalletSession",
]
