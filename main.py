from __future__ import annotations

import asyncio

from webhook_trader.runtime import run

if __name__ == "__main__":
    asyncio.run(run())
