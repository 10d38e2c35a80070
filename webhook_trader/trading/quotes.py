from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from webhook_trader.common import log_event

from .types import SwapQuote


class AggregatorError(RuntimeError):
    pass


class QuoteUnavailableError(AggregatorError):
    pass


def _is_no_routes_error_text(text: str) -> bool:
    normalized = (text or "").lower()
    return (
        "no_routes_found" in normalized
        or "could_not_find_any_route" in normalized
        or "could not find any route" in normalized
        or "no route" in normalized
    )


def _error_message_from_payload(payload: Any) -> str:
    if isinstance(payload, dict):
        for key in ("error", "message", "details"):
            value = payload.get(key)
            if value:
                return str(value)
    return str(payload)


class JupiterQuoteClient:
    """Client for the Jupiter swap API (``/quote`` and ``/swap-instructions``).

    Works against the public Jupiter host as well as a QuickNode Metis
    endpoint; both expose the same paths under ``api_base_url``.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        api_base_url: str,
        api_key: str = "",
        timeout_seconds: float = 15.0,
    ) -> None:
        self._logger = logger
        self._api_base_url = api_base_url.rstrip("/")
        self._api_key = api_key.strip()
        self._timeout_seconds = timeout_seconds
        self._session: aiohttp.ClientSession | None = None

    async def connect(self) -> None:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": "webhook-trader/1.0",
        }
        if self._api_key:
            headers["x-api-key"] = self._api_key
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> tuple[int, Any, str]:
        if self._session is None:
            await self.connect()
        if self._session is None:
            raise RuntimeError("Jupiter HTTP session is not initialized.")

        endpoint = f"{self._api_base_url}{path}"
        async with self._session.request(method, endpoint, headers=self._build_headers(), **kwargs) as response:
            status = response.status
            body = await response.text()

        data: Any = None
        try:
            data = json.loads(body) if body else {}
        except json.JSONDecodeError:
            data = None
        return status, data, body

    async def quote(
        self,
        *,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int,
    ) -> SwapQuote | None:
        """Return the best route for ``amount`` or ``None`` when no route exists."""
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
        }

        try:
            status, data, body = await self._request("GET", "/quote", params=params)
        except (aiohttp.ClientError, asyncio.TimeoutError) as error:
            raise QuoteUnavailableError(f"Quote request failed: {error!r}") from error

        if status >= 400 or (isinstance(data, dict) and data.get("error")):
            message = _error_message_from_payload(data) if data is not None else body[:300]
            if _is_no_routes_error_text(message) or _is_no_routes_error_text(str(data)):
                log_event(
                    self._logger,
                    level="info",
                    event="quote_no_route",
                    message="Aggregator found no route for the requested swap",
                    input_mint=input_mint,
                    output_mint=output_mint,
                    amount=amount,
                )
                return None
            raise QuoteUnavailableError(f"Quote failed: status={status} error={message}")

        if not isinstance(data, dict):
            raise QuoteUnavailableError(f"Quote endpoint returned non-JSON response: status={status} body={body[:300]!r}")

        if "outAmount" not in data:
            return None

        return SwapQuote.from_response(data)

    async def swap_instructions(self, *, quote: SwapQuote, user_public_key: str) -> dict[str, Any]:
        payload = {
            "quoteResponse": quote.raw,
            "userPublicKey": user_public_key,
            "wrapAndUnwrapSol": True,
            "dynamicComputeUnitLimit": True,
        }

        try:
            status, data, body = await self._request("POST", "/swap-instructions", json=payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as error:
            raise AggregatorError(f"Swap-instructions request failed: {error!r}") from error

        if status >= 400 or not isinstance(data, dict):
            message = _error_message_from_payload(data) if data is not None else body[:300]
            raise AggregatorError(f"Swap-instructions API request failed: status={status} error={message}")

        if data.get("error"):
            raise AggregatorError(f"Swap-instructions API error: {_error_message_from_payload(data)}")

        return data
