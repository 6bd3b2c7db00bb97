"""
Reward disbursement engine.

Orchestrates one reward payment:
1. Gate on the last known platform balance (soft skip when too low)
2. Fetch spendable outputs for the platform address
3. Build and sign the payment
4. Broadcast and report the result immediately
5. After a settling delay, refresh platform and payee balances once
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from quizpay.broadcaster import Broadcaster
from quizpay.constants import DEFAULT_FEE_RATE_PER_KB, DEFAULT_SETTLE_DELAY, REWARD_AMOUNT_SATS
from quizpay.errors import DisbursementError, IndexerUnavailable
from quizpay.session import WalletSession
from quizpay.tx_builder import TransactionBuilder
from quizpay.utxo import UtxoSource
from quizpay.wallet.models import DisbursementResult


class DisbursementState(str, Enum):
    """Disbursement attempt states."""

    IDLE = "idle"
    CHECKING_BALANCE = "checking_balance"
    BUILDING_TRANSACTION = "building_transaction"
    BROADCASTING = "broadcasting"
    RECONCILING = "reconciling"
    DONE = "done"
    FAILED = "failed"


class SkipReason(str, Enum):
    """Why a correct answer did not start an attempt. Skips are not failures."""

    NO_PLATFORM_WALLET = "no_platform_wallet"
    NO_USER_WALLET = "no_user_wallet"
    ATTEMPT_IN_PROGRESS = "attempt_in_progress"
    INSUFFICIENT_PLATFORM_BALANCE = "insufficient_platform_balance"


@dataclass(frozen=True)
class DisbursementOutcome:
    """
    What a single trigger produced.

    Use ``succeeded`` to test for a paid reward. A successful outcome is
    returned while the engine is still RECONCILING; the payment itself is
    final at that point and reconciliation only refreshes balances.
    """

    state: DisbursementState
    result: DisbursementResult | None = None
    error: DisbursementError | None = None
    skip_reason: SkipReason | None = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None

    @property
    def reason(self) -> str | None:
        return self.error.reason if self.error else None

    @property
    def message(self) -> str:
        if self.error is not None:
            return f"Failed to send reward: {self.error}"
        if self.result is not None:
            return f"You've earned {self.result.amount} satoshis for your correct answer!"
        return ""


class RewardEngine:
    """
    Pays the fixed reward for correct answers, one attempt at a time.

    A trigger that arrives while an attempt is in flight is dropped: two
    attempts against the same UTXO set could select the same inputs. The
    in-flight guard is held through reconciliation so the next attempt sees
    outputs the indexer has already marked spent.
    """

    def __init__(
        self,
        utxo_source: UtxoSource,
        builder: TransactionBuilder,
        broadcaster: Broadcaster,
        reward_amount: int = REWARD_AMOUNT_SATS,
        fee_rate_per_kb: int = DEFAULT_FEE_RATE_PER_KB,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
    ):
        self.utxo_source = utxo_source
        self.builder = builder
        self.broadcaster = broadcaster
        self.reward_amount = reward_amount
        self.fee_rate_per_kb = fee_rate_per_kb
        self.settle_delay = settle_delay

        self.state = DisbursementState.IDLE
        self.failure: DisbursementError | None = None
        # Set when an attempt reaches DONE; consumers use it to celebrate
        self.celebration = asyncio.Event()

        self._in_flight = False
        self._reconcile_task: asyncio.Task[None] | None = None

    @property
    def busy(self) -> bool:
        return self._in_flight

    def _transition(self, state: DisbursementState) -> None:
        logger.debug(f"Disbursement state: {self.state.value} -> {state.value}")
        self.state = state

    def _precheck(self, session: WalletSession) -> SkipReason | None:
        if self._in_flight:
            return SkipReason.ATTEMPT_IN_PROGRESS
        if session.platform_key is None:
            return SkipReason.NO_PLATFORM_WALLET
        if session.user_key is None:
            return SkipReason.NO_USER_WALLET

        # Unknown or degraded balance counts as zero
        balance = session.platform_balance
        known_total = balance.total if balance is not None else 0
        if known_total < self.reward_amount:
            return SkipReason.INSUFFICIENT_PLATFORM_BALANCE
        return None

    async def on_correct_answer(self, session: WalletSession) -> DisbursementOutcome:
        """Entry point for the quiz's "correct answer" event."""
        return await self.disburse(session)

    async def disburse(self, session: WalletSession) -> DisbursementOutcome:
        """
        Run one disbursement attempt up to broadcast.

        Returns as soon as the transaction is broadcast; reconciliation runs
        in the background. Attempt-scoped errors end in FAILED and are
        reported in the outcome, never raised.
        """
        skip = self._precheck(session)
        if skip is not None:
            logger.info(f"Skipping reward: {skip.value}")
            return DisbursementOutcome(state=DisbursementState.IDLE, skip_reason=skip)

        payer = session.platform_key
        payee_address = session.user_address
        if payer is None or payee_address is None:
            raise RuntimeError("Disbursement requires platform and user wallets")

        # No await between the precheck and taking the guard
        self._in_flight = True
        self.failure = None
        self.celebration.clear()

        try:
            self._transition(DisbursementState.CHECKING_BALANCE)
            utxos = await self.utxo_source.fetch_spendable(payer.address)

            self._transition(DisbursementState.BUILDING_TRANSACTION)
            tx = self.builder.build(
                payer_key=payer,
                payee_address=payee_address,
                amount=self.reward_amount,
                utxos=utxos,
                fee_rate_per_kb=self.fee_rate_per_kb,
            )

            self._transition(DisbursementState.BROADCASTING)
            txid = await self.broadcaster.submit(tx)

        except DisbursementError as e:
            return self._fail(e)
        except BaseException:
            self._transition(DisbursementState.FAILED)
            self._in_flight = False
            raise

        result = DisbursementResult(
            transaction_id=txid,
            payee_address=payee_address,
            amount=self.reward_amount,
        )
        session.last_result = result
        logger.info(f"Sent {self.reward_amount} sats to {payee_address} in {txid}")

        self._transition(DisbursementState.RECONCILING)
        self._reconcile_task = asyncio.create_task(
            self._reconcile(session, payer.address, payee_address)
        )
        return DisbursementOutcome(state=DisbursementState.RECONCILING, result=result)

    def _fail(self, error: DisbursementError) -> DisbursementOutcome:
        if isinstance(error, IndexerUnavailable) and error.fate_unknown:
            logger.error(
                f"Reward disbursement fate unknown ({error.reason}): {error}. "
                "Not retrying automatically"
            )
        else:
            logger.error(f"Reward disbursement failed ({error.reason}): {error}")

        self.failure = error
        self._transition(DisbursementState.FAILED)
        self._in_flight = False
        return DisbursementOutcome(state=DisbursementState.FAILED, error=error)

    async def _reconcile(
        self, session: WalletSession, platform_address: str, payee_address: str
    ) -> None:
        """Informational balance refresh after the ledger had time to settle."""
        try:
            await asyncio.sleep(self.settle_delay)
            results = await session.balances.refresh_many([platform_address, payee_address])
            for address, balance in results.items():
                if balance is not None and balance.fetch_failed:
                    logger.warning(f"Balance for {address} left stale after reward")

            self._transition(DisbursementState.DONE)
            self.celebration.set()
        except Exception as e:
            logger.error(f"Balance reconciliation error: {e}")
            self._transition(DisbursementState.DONE)
        finally:
            self._in_flight = False

    async def wait_settled(self) -> None:
        """Wait for a pending reconciliation, if any."""
        task = self._reconcile_task
        if task is not None and not task.done():
            await asyncio.wait([task])

    async def close(self) -> None:
        """Cancel a pending reconciliation without applying its results."""
        task = self._reconcile_task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._reconcile_task = None
