"""
Balance oracle with degraded-mode fallback and per-address sequencing.

Balance display is advisory, so a failed query never raises: it yields a
zero Balance flagged ``fetch_failed`` and the caller treats it as
"unknown, assume insufficient".
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable

import httpx
from loguru import logger

from quizpay.backends.base import IndexerBackend
from quizpay.constants import DEFAULT_REQUEST_TIMEOUT
from quizpay.wallet.models import Balance, BalanceFailure

BALANCE_TIMEOUT_MESSAGE = "Balance fetch timed out. Please try again."
BALANCE_UNAVAILABLE_MESSAGE = (
    "Unable to fetch balance. The service might be temporarily unavailable."
)

BalanceListener = Callable[[str, Balance], None]


def describe_failure(balance: Balance | None) -> str | None:
    """User-facing message for a degraded balance, None if the fetch succeeded."""
    if balance is None or not balance.fetch_failed:
        return None
    if balance.failure == BalanceFailure.TIMEOUT:
        return BALANCE_TIMEOUT_MESSAGE
    return BALANCE_UNAVAILABLE_MESSAGE


def format_balance(balance: Balance | None) -> str:
    if balance is None:
        return "..."
    return f"{balance.total} satoshis"


class BalanceOracle:
    """Single balance queries with an enforced, cancelling timeout."""

    def __init__(self, backend: IndexerBackend, timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self.backend = backend
        self.timeout = timeout

    async def fetch_balance(self, address: str, timeout: float | None = None) -> Balance:
        """
        Query the indexer once.

        ``asyncio.wait_for`` cancels the in-flight request when the timeout
        expires, so a late response can never be applied.

        Returns:
            The observed Balance, or a degraded one on any indexer failure
        """
        timeout = self.timeout if timeout is None else timeout

        try:
            raw = await asyncio.wait_for(self.backend.get_address_balance(address), timeout)
        except (TimeoutError, httpx.TimeoutException):
            failure = BalanceFailure.TIMEOUT
        except httpx.HTTPStatusError as e:
            logger.debug(f"Balance query for {address} returned {e.response.status_code}")
            failure = BalanceFailure.HTTP_ERROR
        except httpx.HTTPError as e:
            logger.debug(f"Balance query for {address} failed: {e!r}")
            failure = BalanceFailure.TRANSPORT_ERROR
        except ValueError as e:
            logger.debug(f"Malformed balance payload for {address}: {e}")
            failure = BalanceFailure.PARSE_ERROR
        else:
            return Balance(confirmed=raw.confirmed, unconfirmed=raw.unconfirmed)

        logger.warning(f"Error fetching balance for {address}: {failure.value}")
        return Balance.degraded(failure)


class BalanceBook:
    """
    Last known balance per address.

    Each refresh is tagged with a per-address sequence number; a response is
    only stored (and listeners notified) if no newer query for the same
    address was issued while it was in flight.
    """

    def __init__(self, oracle: BalanceOracle):
        self.oracle = oracle
        self._issued: dict[str, int] = {}
        self._balances: dict[str, Balance] = {}
        self._listeners: list[BalanceListener] = []

    def add_listener(self, listener: BalanceListener) -> None:
        self._listeners.append(listener)

    def get(self, address: str) -> Balance | None:
        return self._balances.get(address)

    def last_error(self, address: str) -> str | None:
        return describe_failure(self._balances.get(address))

    def forget(self, address: str) -> None:
        """Drop stored state for an address; in-flight responses become stale."""
        self._balances.pop(address, None)
        self._issued[address] = self._issued.get(address, 0) + 1

    async def refresh(self, address: str, timeout: float | None = None) -> Balance | None:
        """
        Fetch and store the balance for ``address``.

        Returns:
            The stored Balance, or None if the response was superseded
        """
        seq = self._issued.get(address, 0) + 1
        self._issued[address] = seq

        balance = await self.oracle.fetch_balance(address, timeout)

        if self._issued.get(address) != seq:
            logger.debug(f"Discarding stale balance response #{seq} for {address}")
            return None

        self._balances[address] = balance
        for listener in self._listeners:
            listener(address, balance)
        return balance

    async def refresh_many(self, addresses: Iterable[str]) -> dict[str, Balance | None]:
        """Refresh distinct addresses concurrently."""
        unique = list(dict.fromkeys(addresses))
        results = await asyncio.gather(*(self.refresh(address) for address in unique))
        return dict(zip(unique, results, strict=True))
