"""
Wallet primitives: keys, addresses, signing and data models.
"""

from quizpay.wallet.adapter import CoincurveWalletAdapter, WalletAdapter
from quizpay.wallet.keys import (
    KeyPair,
    derive_address,
    encode_wif,
    generate_keypair,
    keypair_from_wif,
    mask_secret,
)
from quizpay.wallet.models import (
    Balance,
    BalanceFailure,
    DisbursementResult,
    PaymentTransaction,
    TxOutput,
    UnspentOutput,
)

__all__ = [
    "Balance",
    "BalanceFailure",
    "CoincurveWalletAdapter",
    "DisbursementResult",
    "KeyPair",
    "PaymentTransaction",
    "TxOutput",
    "UnspentOutput",
    "WalletAdapter",
    "derive_address",
    "encode_wif",
    "generate_keypair",
    "keypair_from_wif",
    "mask_secret",
]
