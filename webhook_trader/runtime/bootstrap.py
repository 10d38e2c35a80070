from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from dotenv import load_dotenv
from solders.pubkey import Pubkey

from webhook_trader.common import log_event
from webhook_trader.trading import (
    BalanceReader,
    DryRunSwapExecutor,
    JupiterQuoteClient,
    LiveSwapExecutor,
    SolanaRpcClient,
    SwapExecutor,
    SwapJournal,
    TradePolicy,
    TradingAgent,
    TransactionSender,
)

from .logging import setup_logger
from .server import create_app, serve
from .settings import AppSettings, ConfigurationError


def build_agent(settings: AppSettings, logger: logging.Logger) -> TradingAgent:
    signer = settings.keypair()
    rpc = SolanaRpcClient(
        logger=logger,
        rpc_url=settings.solana_endpoint,
        timeout_seconds=settings.http_timeout_seconds,
    )
    quotes = JupiterQuoteClient(
        logger=logger,
        api_base_url=settings.metis_endpoint,
        api_key=settings.jupiter_api_key,
        timeout_seconds=settings.http_timeout_seconds,
    )
    sender = TransactionSender(
        logger=logger,
        rpc=rpc,
        signer=signer,
        confirm_poll_interval_seconds=settings.confirm_poll_interval_seconds,
    )

    executor: SwapExecutor
    if settings.dry_run:
        executor = DryRunSwapExecutor(logger=logger)
    else:
        executor = LiveSwapExecutor(logger=logger, rpc=rpc, quotes=quotes, sender=sender, signer=signer)

    return TradingAgent(
        logger=logger,
        rpc=rpc,
        quotes=quotes,
        balances=BalanceReader(
            logger=logger,
            rpc=rpc,
            owner=signer.pubkey(),
            stable_mint=Pubkey.from_string(settings.quote_mint),
        ),
        policy=TradePolicy(
            gas_reserve_lamports=settings.gas_reserve_lamports,
            base_mint=settings.base_mint,
            quote_mint=settings.quote_mint,
        ),
        executor=executor,
        sender=sender,
        journal=SwapJournal(logger=logger, path=settings.swap_log_path),
        slippage_bps=settings.slippage_bps,
        dry_run=settings.dry_run,
    )


async def run() -> None:
    load_dotenv()

    try:
        settings = AppSettings.from_env()
        logger = setup_logger(settings.log_level)
        agent = build_agent(settings, logger)
    except ConfigurationError as error:
        logger = setup_logger()
        log_event(logger, level="critical", event="configuration_error", message=str(error))
        raise SystemExit(1) from error

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_shutdown(sig: signal.Signals) -> None:
        log_event(
            logger,
            level="info",
            event="shutdown_signal_received",
            message="Shutdown signal received",
            signal=sig.name,
        )
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, request_shutdown, sig)

    try:
        await agent.connect()
        await serve(
            app=create_app(agent=agent, logger=logger),
            host=settings.host,
            port=settings.port,
            stop_event=stop_event,
            logger=logger,
        )
    finally:
        await agent.close()
        log_event(logger, level="info", event="shutdown_completed", message="Shutdown completed")
