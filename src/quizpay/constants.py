"""
Reward and Bitcoin SV network constants.

The reward is a fixed micropayment. Change outputs below DUST_THRESHOLD are
not created; their value is absorbed into the fee instead.
"""

from __future__ import annotations

# Fixed reward paid for each correct answer
REWARD_AMOUNT_SATS = 5

# Fee policy used by the original quiz wallet (satoshis per 1000 bytes)
DEFAULT_FEE_RATE_PER_KB = 10

# Smallest change output worth creating. Anything below the reward itself
# is not a practical payment on this platform.
DUST_THRESHOLD = REWARD_AMOUNT_SATS

# P2PKH size estimates in bytes
TX_OVERHEAD_SIZE = 10
P2PKH_INPUT_SIZE = 148
P2PKH_OUTPUT_SIZE = 34

# Network timing
DEFAULT_REQUEST_TIMEOUT = 10.0  # seconds
DEFAULT_SETTLE_DELAY = 2.0  # seconds to wait before re-querying balances

# Indexer endpoints
WHATSONCHAIN_API_MAINNET = "https://api.whatsonchain.com/v1/bsv/main"
WHATSONCHAIN_API_TESTNET = "https://api.whatsonchain.com/v1/bsv/test"
WHATSONCHAIN_TX_URL = "https://whatsonchain.com/tx/{txid}"

# Storage key for the current user's wallet secret
USER_WALLET_SECRET_KEY = "current_user_wallet_secret"

# Base58check version bytes
P2PKH_VERSION = {"mainnet": 0x00, "testnet": 0x6F}
WIF_PREFIX = {"mainnet": 0x80, "testnet": 0xEF}

# BSV signs with the replay-protected fork id flag
SIGHASH_ALL = 0x01
SIGHASH_FORKID = 0x40
