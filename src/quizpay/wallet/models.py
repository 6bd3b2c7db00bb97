"""
Wallet data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from quizpay.constants import WHATSONCHAIN_TX_URL
from quizpay.wallet.address import address_to_scriptpubkey


def utc_now() -> datetime:
    return datetime.now(UTC)


class BalanceFailure(str, Enum):
    """Why a balance query fell back to the degraded value."""

    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class Balance:
    """Point-in-time balance snapshot. Raw fields are kept for diagnostics."""

    confirmed: int
    unconfirmed: int
    observed_at: datetime = field(default_factory=utc_now)
    fetch_failed: bool = False
    failure: BalanceFailure | None = None

    @property
    def total(self) -> int:
        """Spendable total for display and gating, never negative."""
        return max(0, self.confirmed + self.unconfirmed)

    @classmethod
    def degraded(cls, failure: BalanceFailure) -> Balance:
        return cls(confirmed=0, unconfirmed=0, fetch_failed=True, failure=failure)


@dataclass(frozen=True)
class UnspentOutput:
    txid: str
    vout: int
    value: int
    address: str
    height: int | None = None

    @property
    def script_pubkey(self) -> bytes:
        """Locking script, derived from the owning address."""
        return address_to_scriptpubkey(self.address)


@dataclass(frozen=True)
class TxOutput:
    address: str
    value: int


@dataclass(frozen=True)
class PaymentTransaction:
    """A signed payment. sum(inputs) == sum(outputs) + fee."""

    inputs: tuple[UnspentOutput, ...]
    outputs: tuple[TxOutput, ...]
    fee_rate_per_kb: int
    fee: int
    raw: bytes
    txid: str

    @property
    def input_value(self) -> int:
        return sum(utxo.value for utxo in self.inputs)

    @property
    def output_value(self) -> int:
        return sum(out.value for out in self.outputs)

    @property
    def hex(self) -> str:
        return self.raw.hex()


@dataclass(frozen=True)
class DisbursementResult:
    transaction_id: str
    payee_address: str
    amount: int
    broadcast_at: datetime = field(default_factory=utc_now)

    @property
    def explorer_url(self) -> str:
        return WHATSONCHAIN_TX_URL.format(txid=self.transaction_id)
