from __future__ import annotations

import logging
import unittest
from unittest.mock import AsyncMock

import aiohttp

from webhook_trader.trading.quotes import AggregatorError, JupiterQuoteClient, QuoteUnavailableError
from webhook_trader.trading.types import SOL_MINT, USDC_MINT, SwapQuote

QUOTE_RESPONSE = {
    "inputMint": SOL_MINT,
    "inAmount": "1000000000",
    "outputMint": USDC_MINT,
    "outAmount": "148250000",
    "otherAmountThreshold": "147508750",
    "slippageBps": 50,
    "priceImpactPct": "0.0001",
    "routePlan": [{"swapInfo": {"ammKey": "pool", "label": "Whirlpool"}, "percent": 100}],
}


class JupiterQuoteClientTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.client = JupiterQuoteClient(
            logger=logging.getLogger("test.quotes"),
            api_base_url="https://public.jupiterapi.com/",
            api_key="secret",
        )

    async def test_quote_parses_amounts_and_keeps_raw_route(self) -> None:
        self.client._request = AsyncMock(return_value=(200, dict(QUOTE_RESPONSE), "{}"))  # type: ignore[method-assign]

        quote = await self.client.quote(
            input_mint=SOL_MINT,
            output_mint=USDC_MINT,
            amount=1_000_000_000,
            slippage_bps=50,
        )

        assert quote is not None
        self.assertEqual(quote.in_amount, 1_000_000_000)
        self.assertEqual(quote.out_amount, 148_250_000)
        self.assertEqual(quote.slippage_bps, 50)
        self.assertEqual(quote.raw["routePlan"], QUOTE_RESPONSE["routePlan"])

        method, path = self.client._request.await_args.args
        params = self.client._request.await_args.kwargs["params"]
        self.assertEqual((method, path), ("GET", "/quote"))
        self.assertEqual(params["amount"], "1000000000")
        self.assertEqual(params["inputMint"], SOL_MINT)
        self.assertEqual(params["outputMint"], USDC_MINT)

    async def test_no_route_returns_none(self) -> None:
        body = {"error": "Could not find any route", "errorCode": "COULD_NOT_FIND_ANY_ROUTE"}
        self.client._request = AsyncMock(return_value=(400, body, "{}"))  # type: ignore[method-assign]

        quote = await self.client.quote(input_mint=SOL_MINT, output_mint=USDC_MINT, amount=1, slippage_bps=50)

        self.assertIsNone(quote)

    async def test_missing_out_amount_returns_none(self) -> None:
        self.client._request = AsyncMock(return_value=(200, {"inputMint": SOL_MINT}, "{}"))  # type: ignore[method-assign]

        quote = await self.client.quote(input_mint=SOL_MINT, output_mint=USDC_MINT, amount=1, slippage_bps=50)

        self.assertIsNone(quote)

    async def test_server_error_raises_quote_unavailable(self) -> None:
        self.client._request = AsyncMock(return_value=(503, None, "upstream down"))  # type: ignore[method-assign]

        with self.assertRaises(QuoteUnavailableError):
            await self.client.quote(input_mint=SOL_MINT, output_mint=USDC_MINT, amount=1, slippage_bps=50)

    async def test_network_error_raises_quote_unavailable(self) -> None:
        self.client._request = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))  # type: ignore[method-assign]

        with self.assertRaises(QuoteUnavailableError):
            await self.client.quote(input_mint=SOL_MINT, output_mint=USDC_MINT, amount=1, slippage_bps=50)

    async def test_swap_instructions_posts_quote_and_wallet(self) -> None:
        response = {"swapInstruction": {"programId": "x", "accounts": [], "data": ""}}
        self.client._request = AsyncMock(return_value=(200, response, "{}"))  # type: ignore[method-assign]
        quote = SwapQuote.from_response(dict(QUOTE_RESPONSE))

        payload = await self.client.swap_instructions(quote=quote, user_public_key="wallet")

        self.assertEqual(payload, response)
        method, path = self.client._request.await_args.args
        body = self.client._request.await_args.kwargs["json"]
        self.assertEqual((method, path), ("POST", "/swap-instructions"))
        self.assertEqual(body["quoteResponse"], QUOTE_RESPONSE)
        self.assertEqual(body["userPublicKey"], "wallet")

    async def test_swap_instructions_error_payload_raises(self) -> None:
        self.client._request = AsyncMock(return_value=(200, {"error": "stale quote"}, "{}"))  # type: ignore[method-assign]
        quote = SwapQuote.from_response(dict(QUOTE_RESPONSE))

        with self.assertRaises(AggregatorError):
            await self.client.swap_instructions(quote=quote, user_public_key="wallet")

    def test_api_key_header_is_sent_when_configured(self) -> None:
        self.assertEqual(self.client._build_headers()["x-api-key"], "secret")


if __name__ == "__main__":
    unittest.main()
