#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import os
from pathlib import Path

import aiohttp
from dotenv import load_dotenv


def parse_args() -> argparse.Namespace:
    port = os.getenv("PORT", "3000").strip() or "3000"
    parser = argparse.ArgumentParser(description="Post a buy/sell signal to a running webhook trader.")
    parser.add_argument("action", help="Signal to send. The server accepts only 'buy' or 'sell'.")
    parser.add_argument(
        "--url",
        default=f"http://127.0.0.1:{port}/webhook",
        help="Webhook URL. Defaults to the local server on PORT.",
    )
    parser.add_argument("--timeout", type=float, default=120.0, help="Seconds to wait for the trade to settle.")
    return parser.parse_args()


async def send_signal(url: str, action: str, *, timeout_seconds: float) -> tuple[int, str]:
    timeout = aiohttp.ClientTimeout(total=timeout_seconds)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        async with session.post(url, json={"action": action}) as response:
            return response.status, await response.text()


def main() -> None:
    load_dotenv(Path(__file__).resolve().parents[1] / ".env")
    args = parse_args()

    status, text = asyncio.run(send_signal(args.url, args.action, timeout_seconds=args.timeout))
    print(f"[{status}] {text}")
    if status >= 400:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
