"""
Disbursement error taxonomy.

Every error here is scoped to a single disbursement attempt. The engine turns
them into a FAILED outcome carrying ``reason`` and a readable message; none of
them stop the quiz.
"""

from __future__ import annotations


class DisbursementError(Exception):
    """Base class for attempt-scoped failures."""

    reason = "disbursement_error"


class InvalidKeyEncoding(DisbursementError):
    reason = "invalid_key_encoding"


class NoSpendableOutputs(DisbursementError):
    reason = "no_spendable_outputs"

    def __init__(self, address: str):
        super().__init__(f"No UTXOs available for {address}")
        self.address = address


class IndexerUnavailable(DisbursementError):
    """
    The indexer could not be reached or answered with garbage.

    When raised during broadcast, ``fate_unknown`` is True: the transaction may
    or may not have been accepted, so it must not be blindly re-sent.
    """

    reason = "indexer_unavailable"

    def __init__(self, message: str, fate_unknown: bool = False):
        super().__init__(message)
        self.fate_unknown = fate_unknown


class InsufficientFunds(DisbursementError):
    reason = "insufficient_funds"

    def __init__(self, needed: int, available: int):
        super().__init__(f"Insufficient funds: need {needed}, have {available}")
        self.needed = needed
        self.available = available


class SigningFailed(DisbursementError):
    reason = "signing_failed"


class BroadcastRejected(DisbursementError):
    """The indexer refused the transaction. ``rejection`` is its reason verbatim."""

    reason = "broadcast_rejected"

    def __init__(self, rejection: str, status_code: int | None = None):
        super().__init__(f"Broadcast rejected: {rejection}")
        self.rejection = rejection
        self.status_code = status_code
