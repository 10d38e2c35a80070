from __future__ import annotations

import logging
import unittest
from unittest.mock import AsyncMock, MagicMock

from aiohttp import web
from aiohttp.test_utils import AioHTTPTestCase

from webhook_trader.runtime.server import create_app
from webhook_trader.trading.types import (
    STATUS_EXECUTED,
    STATUS_FAILED,
    STATUS_NO_QUOTE,
    STATUS_SKIPPED,
    TradeOutcome,
)


class WebhookServerTests(AioHTTPTestCase):
    async def get_application(self) -> web.Application:
        self.agent = MagicMock()
        self.agent.handle_signal = AsyncMock(
            return_value=TradeOutcome(action="sell", status=STATUS_EXECUTED, reason="ok", tx_signature="sig-1")
        )
        self.agent.healthcheck = AsyncMock()
        return create_app(agent=self.agent, logger=logging.getLogger("test.server"))

    async def test_valid_action_returns_200(self) -> None:
        async with self.client.post("/webhook", json={"action": "sell"}) as response:
            text = await response.text()

        self.assertEqual(response.status, 200)
        self.assertEqual(text, "Action sell executed successfully.")
        self.agent.handle_signal.assert_awaited_once_with("sell")

    async def test_noop_outcome_still_returns_200(self) -> None:
        self.agent.handle_signal = AsyncMock(
            return_value=TradeOutcome(action="buy", status=STATUS_SKIPPED, reason="no USDC available for trade")
        )

        async with self.client.post("/webhook", json={"action": "buy"}) as response:
            self.assertEqual(response.status, 200)

    async def test_no_quote_outcome_returns_200(self) -> None:
        self.agent.handle_signal = AsyncMock(
            return_value=TradeOutcome(action="buy", status=STATUS_NO_QUOTE, reason="no quote available")
        )

        async with self.client.post("/webhook", json={"action": "buy"}) as response:
            self.assertEqual(response.status, 200)

    async def test_invalid_actions_return_400_without_downstream_calls(self) -> None:
        bodies = [
            {"action": "hold"},
            {"action": "BUY"},
            {"action": " sell"},
            {"action": None},
            {"action": ["buy"]},
            {},
            ["buy"],
        ]
        for body in bodies:
            with self.subTest(body=body):
                async with self.client.post("/webhook", json=body) as response:
                    text = await response.text()
                self.assertEqual(response.status, 400)
                self.assertEqual(text, "Invalid action. Must be 'buy' or 'sell'.")

        self.agent.handle_signal.assert_not_awaited()

    async def test_non_json_body_returns_400(self) -> None:
        async with self.client.post("/webhook", data="action=buy") as response:
            self.assertEqual(response.status, 400)
        self.agent.handle_signal.assert_not_awaited()

    async def test_failed_outcome_returns_500(self) -> None:
        self.agent.handle_signal = AsyncMock(
            return_value=TradeOutcome(action="sell", status=STATUS_FAILED, reason="expired")
        )

        async with self.client.post("/webhook", json={"action": "sell"}) as response:
            text = await response.text()

        self.assertEqual(response.status, 500)
        self.assertEqual(text, "Failed to execute sell.")

    async def test_unexpected_exception_returns_500(self) -> None:
        self.agent.handle_signal = AsyncMock(side_effect=RuntimeError("session closed"))

        async with self.client.post("/webhook", json={"action": "buy"}) as response:
            self.assertEqual(response.status, 500)

    async def test_get_on_webhook_is_not_allowed(self) -> None:
        async with self.client.get("/webhook") as response:
            self.assertEqual(response.status, 405)

    async def test_health_reports_ok(self) -> None:
        async with self.client.get("/health") as response:
            self.assertEqual(response.status, 200)

    async def test_health_reports_unavailable_rpc(self) -> None:
        self.agent.healthcheck = AsyncMock(side_effect=RuntimeError("rpc down"))

        async with self.client.get("/health") as response:
            self.assertEqual(response.status, 503)


if __name__ == "__main__":
    unittest.main()
