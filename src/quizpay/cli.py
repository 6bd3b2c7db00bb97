"""
Command-line interface for quizpay.
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path

import httpx
import typer
from loguru import logger

from quizpay.backends.whatsonchain import WhatsOnChainBackend
from quizpay.balance import BalanceBook, BalanceOracle, describe_failure, format_balance
from quizpay.broadcaster import Broadcaster
from quizpay.config import Settings, get_settings
from quizpay.constants import REWARD_AMOUNT_SATS
from quizpay.engine import RewardEngine
from quizpay.errors import InvalidKeyEncoding
from quizpay.quiz import QuizSession
from quizpay.session import FileKeyStore, KeyStore, WalletSession
from quizpay.tx_builder import TransactionBuilder
from quizpay.utxo import UtxoSource
from quizpay.wallet.adapter import CoincurveWalletAdapter
from quizpay.wallet.keys import mask_secret

app = typer.Typer(
    name="quizpay",
    help="quizpay - Earn satoshis for correct quiz answers",
    add_completion=False,
)


def setup_logging(level: str) -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


@dataclass
class Runtime:
    backend: WhatsOnChainBackend
    session: WalletSession
    engine: RewardEngine

    async def close(self) -> None:
        await self.engine.close()
        await self.backend.close()


def build_runtime(
    settings: Settings,
    key_store: KeyStore | None = None,
    client: httpx.AsyncClient | None = None,
) -> Runtime:
    """Wire backend, wallet session and engine from settings."""
    backend = WhatsOnChainBackend(
        base_url=settings.indexer_url, timeout=settings.request_timeout, client=client
    )
    adapter = CoincurveWalletAdapter(settings.network)
    balances = BalanceBook(BalanceOracle(backend, timeout=settings.request_timeout))
    session = WalletSession(
        adapter=adapter,
        balances=balances,
        key_store=key_store or FileKeyStore(settings.key_store_path),
    )
    engine = RewardEngine(
        utxo_source=UtxoSource(backend),
        builder=TransactionBuilder(adapter, dust_threshold=settings.dust_threshold),
        broadcaster=Broadcaster(backend, adapter),
        reward_amount=REWARD_AMOUNT_SATS,
        fee_rate_per_kb=settings.fee_rate_per_kb,
        settle_delay=settings.settle_delay,
    )
    return Runtime(backend=backend, session=session, engine=engine)


def _load_settings(network: str | None, key_store: Path | None) -> Settings:
    settings = get_settings()
    updates: dict[str, object] = {}
    if network:
        updates["network"] = network
    if key_store:
        updates["key_store_path"] = key_store
    if not updates:
        return settings
    # Re-validate so the indexer default follows an overridden network
    data = settings.model_dump()
    data.update(updates)
    if network and network != settings.network:
        data["indexer_url"] = ""
    return Settings(**data)


def _print_wallet(label: str, address: str, wif: str, show_secret: bool) -> None:
    typer.echo(f"{label} address: {address}")
    typer.echo(f"{label} WIF:     {wif if show_secret else mask_secret(wif)}")


@app.command("new-wallet")
def new_wallet(
    network: str | None = typer.Option(None, "--network", "-n", help="mainnet | testnet"),
    key_store: Path | None = typer.Option(None, "--key-store", help="Wallet file path"),
    show_secret: bool = typer.Option(False, "--show-secret", help="Print the full WIF"),
    log_level: str = typer.Option("INFO", "--log-level", "-l"),
) -> None:
    """Generate a new user wallet and store it."""
    setup_logging(log_level)
    settings = _load_settings(network, key_store)
    runtime = build_runtime(settings)

    try:
        keypair = runtime.session.generate_user_wallet()
    finally:
        asyncio.run(runtime.close())

    _print_wallet("User", keypair.address, keypair.to_wif(), show_secret)
    typer.echo(f"\nWallet saved to: {settings.key_store_path}")
    typer.echo("KEEP THIS FILE SECURE - IT CONTROLS YOUR REWARDS!")


@app.command("import-wallet")
def import_wallet(
    wif: str = typer.Argument(..., help="WIF private key"),
    network: str | None = typer.Option(None, "--network", "-n", help="mainnet | testnet"),
    key_store: Path | None = typer.Option(None, "--key-store", help="Wallet file path"),
    log_level: str = typer.Option("INFO", "--log-level", "-l"),
) -> None:
    """Use an existing WIF as the user wallet."""
    setup_logging(log_level)
    settings = _load_settings(network, key_store)
    runtime = build_runtime(settings)

    try:
        keypair = runtime.session.use_user_wallet(wif)
    except InvalidKeyEncoding as e:
        logger.error(f"Invalid WIF: {e}")
        raise typer.Exit(1)
    finally:
        asyncio.run(runtime.close())

    _print_wallet("User", keypair.address, keypair.to_wif(), show_secret=False)
    typer.echo(f"\nWallet saved to: {settings.key_store_path}")


@app.command()
def balance(
    address: str = typer.Argument(..., help="Address to query"),
    network: str | None = typer.Option(None, "--network", "-n", help="mainnet | testnet"),
    log_level: str = typer.Option("INFO", "--log-level", "-l"),
) -> None:
    """Show the balance of an address."""
    setup_logging(log_level)
    settings = _load_settings(network, None)
    asyncio.run(_show_balance(settings, address))


async def _show_balance(settings: Settings, address: str) -> None:
    runtime = build_runtime(settings)
    try:
        result = await runtime.session.balances.refresh(address)
    finally:
        await runtime.close()

    error = describe_failure(result)
    if error:
        typer.echo(error)
        raise typer.Exit(1)
    typer.echo(f"{address}: {format_balance(result)}")


@app.command()
def play(
    network: str | None = typer.Option(None, "--network", "-n", help="mainnet | testnet"),
    key_store: Path | None = typer.Option(None, "--key-store", help="Wallet file path"),
    log_level: str = typer.Option("INFO", "--log-level", "-l"),
) -> None:
    """Play the quiz and earn satoshis for correct answers."""
    setup_logging(log_level)
    settings = _load_settings(network, key_store)
    asyncio.run(_play(settings))


async def _play(settings: Settings) -> None:
    runtime = build_runtime(settings)
    session = runtime.session

    platform_wif = settings.platform_wif.get_secret_value() if settings.platform_wif else None
    session.load_platform_wallet(platform_wif)
    if session.load_user_wallet() is None:
        keypair = session.generate_user_wallet()
        _print_wallet("User", keypair.address, keypair.to_wif(), show_secret=False)

    quiz = QuizSession(runtime.engine, session)

    try:
        await session.refresh_balances()
        _print_balances(session)

        while True:
            question = quiz.current_question
            if question is None:
                typer.echo(f"\nFinal Score: {quiz.score}/{len(quiz.questions)}")
                await runtime.engine.wait_settled()
                _print_balances(session)
                # Prompts run in a worker thread so reconciliation keeps running
                if not await asyncio.to_thread(typer.confirm, "Play again?", default=False):
                    break
                quiz.reset()
                continue

            typer.echo(
                f"\nQuestion {quiz.current_index + 1} of {len(quiz.questions)}: "
                f"{question.prompt}"
            )
            for i, option in enumerate(question.options, start=1):
                typer.echo(f"  {i}. {option}")

            choice = await asyncio.to_thread(typer.prompt, "Your answer", type=int)
            try:
                answer = await quiz.answer(choice - 1)
            except ValueError as e:
                typer.echo(str(e))
                continue

            typer.echo("Correct!" if answer.correct else "Wrong answer.")
            outcome = answer.outcome
            if outcome is not None and outcome.message:
                typer.echo(outcome.message)
            if outcome is not None and outcome.result is not None:
                typer.echo(f"Transaction: {outcome.result.explorer_url}")
    finally:
        await runtime.close()


def _print_balances(session: WalletSession) -> None:
    for label, address, current in (
        ("Platform", session.platform_address, session.platform_balance),
        ("User", session.user_address, session.user_balance),
    ):
        if address is None:
            continue
        error = session.balances.last_error(address)
        typer.echo(f"{label} balance: {format_balance(current)}" + (f" ({error})" if error else ""))


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
