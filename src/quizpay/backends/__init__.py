"""
Ledger indexer backends.

Available backends:
- WhatsOnChainBackend: public WhatsOnChain REST API (mainnet or testnet)
"""

from quizpay.backends.base import AddressBalance, IndexerBackend
from quizpay.backends.whatsonchain import WhatsOnChainBackend

__all__ = [
    "AddressBalance",
    "IndexerBackend",
    "WhatsOnChainBackend",
]
