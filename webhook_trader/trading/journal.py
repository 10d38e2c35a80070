from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from webhook_trader.common import log_event

from .types import SwapRecord


class SwapJournal:
    """Records every executed swap as a log event and, optionally, a JSON line."""

    def __init__(self, *, logger: logging.Logger, path: Path | None = None) -> None:
        self._logger = logger
        self._path = path

    def _append(self, line: str) -> None:
        assert self._path is not None
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    async def record(self, record: SwapRecord) -> None:
        payload = record.to_dict()
        log_event(
            self._logger,
            level="info",
            event="swap_recorded",
            message="Swap recorded",
            **{key: value for key, value in payload.items() if key != "timestamp"},
        )
        if self._path is None:
            return

        line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
        await asyncio.to_thread(self._append, line)
