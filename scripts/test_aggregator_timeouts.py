from __future__ import annotations

import asyncio
import logging
import unittest
from unittest.mock import AsyncMock, MagicMock

from aiohttp import web
from aiohttp.test_utils import AioHTTPTestCase
from solders.keypair import Keypair

from webhook_trader.trading.agent import TradingAgent
from webhook_trader.trading.executors import LiveSwapExecutor
from webhook_trader.trading.journal import SwapJournal
from webhook_trader.trading.policy import TradePolicy
from webhook_trader.trading.quotes import AggregatorError, JupiterQuoteClient, QuoteUnavailableError
from webhook_trader.trading.types import (
    DEFAULT_GAS_RESERVE_LAMPORTS,
    LAMPORTS_PER_SOL,
    SOL_MINT,
    STATUS_NO_INSTRUCTIONS,
    STATUS_NO_QUOTE,
    USDC_MINT,
    SwapQuote,
    WalletBalances,
)

LOGGER = logging.getLogger("test.aggregator_timeouts")
SLOW_SECONDS = 1.0
CLIENT_TIMEOUT_SECONDS = 0.2

QUOTE_RESPONSE = {
    "inputMint": SOL_MINT,
    "inAmount": str(LAMPORTS_PER_SOL),
    "outputMint": USDC_MINT,
    "outAmount": "150000000",
    "slippageBps": 50,
}


class SlowAggregatorTests(AioHTTPTestCase):
    async def get_application(self) -> web.Application:
        self.slow_paths: set[str] = set()

        async def handle_quote(request: web.Request) -> web.Response:
            if "/quote" in self.slow_paths:
                await asyncio.sleep(SLOW_SECONDS)
            return web.json_response(QUOTE_RESPONSE)

        async def handle_swap_instructions(request: web.Request) -> web.Response:
            if "/swap-instructions" in self.slow_paths:
                await asyncio.sleep(SLOW_SECONDS)
            return web.json_response({"swapInstruction": None})

        app = web.Application()
        app.router.add_get("/quote", handle_quote)
        app.router.add_post("/swap-instructions", handle_swap_instructions)
        return app

    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.quotes = JupiterQuoteClient(
            logger=LOGGER,
            api_base_url=str(self.server.make_url("")),
            timeout_seconds=CLIENT_TIMEOUT_SECONDS,
        )
        self.signer = Keypair()

        self.balances = MagicMock()
        self.balances.fetch = AsyncMock(
            return_value=WalletBalances(sol_lamports=1_500_000_000, stable_amount=0, stable_decimals=6)
        )
        self.sender = MagicMock()
        self.sender.send_and_confirm = AsyncMock(return_value="sig-1")

        self.agent = TradingAgent(
            logger=LOGGER,
            rpc=MagicMock(),
            quotes=self.quotes,
            balances=self.balances,
            policy=TradePolicy(
                gas_reserve_lamports=DEFAULT_GAS_RESERVE_LAMPORTS,
                base_mint=SOL_MINT,
                quote_mint=USDC_MINT,
            ),
            executor=LiveSwapExecutor(
                logger=LOGGER,
                rpc=MagicMock(),
                quotes=self.quotes,
                sender=self.sender,
                signer=self.signer,
            ),
            sender=self.sender,
            journal=SwapJournal(logger=LOGGER),
            slippage_bps=50,
            dry_run=False,
        )

    async def asyncTearDown(self) -> None:
        await self.quotes.close()
        await super().asyncTearDown()

    async def test_quote_timeout_raises_quote_unavailable(self) -> None:
        self.slow_paths.add("/quote")

        with self.assertRaises(QuoteUnavailableError):
            await self.quotes.quote(
                input_mint=SOL_MINT,
                output_mint=USDC_MINT,
                amount=LAMPORTS_PER_SOL,
                slippage_bps=50,
            )

    async def test_quote_timeout_aborts_signal_as_no_quote(self) -> None:
        self.slow_paths.add("/quote")

        outcome = await self.agent.handle_signal("sell")

        self.assertEqual(outcome.status, STATUS_NO_QUOTE)
        self.assertFalse(outcome.failed)
        self.sender.send_and_confirm.assert_not_awaited()

    async def test_swap_instructions_timeout_raises_aggregator_error(self) -> None:
        self.slow_paths.add("/swap-instructions")

        with self.assertRaises(AggregatorError):
            await self.quotes.swap_instructions(
                quote=SwapQuote.from_response(dict(QUOTE_RESPONSE)),
                user_public_key=str(self.signer.pubkey()),
            )

    async def test_swap_instructions_timeout_is_no_instructions(self) -> None:
        self.slow_paths.add("/swap-instructions")

        outcome = await self.agent.handle_signal("sell")

        self.assertEqual(outcome.status, STATUS_NO_INSTRUCTIONS)
        self.assertFalse(outcome.failed)
        self.sender.send_and_confirm.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()
