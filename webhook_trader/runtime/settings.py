from __future__ import annotations

import json
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from base58 import b58decode
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from webhook_trader.trading.types import (
    DEFAULT_GAS_RESERVE_LAMPORTS,
    LAMPORTS_PER_SOL,
    SOL_MINT,
    USDC_MINT,
)

DEFAULT_SOLANA_ENDPOINT = "https://api.mainnet-beta.solana.com"
DEFAULT_METIS_ENDPOINT = "https://public.jupiterapi.com"


class ConfigurationError(ValueError):
    pass


def to_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def to_int(value: Any, default: int) -> int:
    try:
        if value is None or str(value).strip() == "":
            return default
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return default


def to_float(value: Any, default: float) -> float:
    try:
        if value is None or str(value).strip() == "":
            return default
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


def sol_to_lamports(value: Any, default: int) -> int:
    try:
        if value is None or str(value).strip() == "":
            return default
        return int(Decimal(str(value).strip()) * LAMPORTS_PER_SOL)
    except (InvalidOperation, OverflowError, ValueError):
        return default


def parse_mint(raw: str | None, default: str) -> str:
    value = (raw or "").strip() or default
    try:
        Pubkey.from_string(value)
    except ValueError as error:
        raise ConfigurationError(f"Invalid mint address: {value!r}") from error
    return value


def _keypair_from_bytes(raw: bytes) -> Keypair:
    if len(raw) != 64:
        raise ConfigurationError(f"Secret key must be 64 bytes, got {len(raw)}.")
    try:
        return Keypair.from_bytes(raw)
    except (TypeError, ValueError) as error:
        raise ConfigurationError(f"Secret key bytes are invalid: {error}") from error


def parse_keypair(raw: str) -> Keypair:
    """Accept a JSON byte array (Solana CLI format) or a base58 secret key."""
    value = raw.strip()
    if not value:
        raise ConfigurationError("Secret key is empty.")

    if value.startswith("["):
        try:
            arr = json.loads(value)
        except json.JSONDecodeError as error:
            raise ConfigurationError("SECRET_KEY JSON could not be parsed.") from error
        if not isinstance(arr, list) or not all(isinstance(item, int) and 0 <= item <= 255 for item in arr):
            raise ConfigurationError("SECRET_KEY JSON must be an array of byte values.")
        return _keypair_from_bytes(bytes(arr))

    try:
        decoded = b58decode(value)
    except ValueError as error:
        raise ConfigurationError("Unsupported SECRET_KEY format.") from error
    return _keypair_from_bytes(decoded)


@dataclass(slots=True, frozen=True)
class AppSettings:
    solana_endpoint: str
    metis_endpoint: str
    jupiter_api_key: str
    secret_key: str
    host: str
    port: int
    gas_reserve_lamports: int
    slippage_bps: int
    base_mint: str
    quote_mint: str
    dry_run: bool
    confirm_poll_interval_seconds: float
    http_timeout_seconds: float
    swap_log_path: Path | None
    log_level: str

    def __repr__(self) -> str:
        return (
            f"AppSettings(solana_endpoint={self.solana_endpoint!r}, metis_endpoint={self.metis_endpoint!r}, "
            f"port={self.port}, dry_run={self.dry_run})"
        )

    @staticmethod
    def _read_secret_key() -> str:
        inline = os.getenv("SECRET_KEY", "").strip()
        if inline:
            return inline

        key_file = os.getenv("SECRET_KEY_FILE", "").strip()
        if key_file:
            path = Path(key_file).expanduser()
            try:
                return path.read_text(encoding="utf-8").strip()
            except OSError as error:
                raise ConfigurationError(f"SECRET_KEY_FILE could not be read: {path}") from error

        raise ConfigurationError("SECRET_KEY environment variable not set")

    @classmethod
    def from_env(cls) -> "AppSettings":
        swap_log_path = os.getenv("SWAP_LOG_PATH", "").strip()
        return cls(
            solana_endpoint=os.getenv("SOLANA_ENDPOINT", "").strip() or DEFAULT_SOLANA_ENDPOINT,
            metis_endpoint=os.getenv("METIS_ENDPOINT", "").strip() or DEFAULT_METIS_ENDPOINT,
            jupiter_api_key=os.getenv("JUPITER_API_KEY", "").strip(),
            secret_key=cls._read_secret_key(),
            host=os.getenv("HOST", "0.0.0.0").strip() or "0.0.0.0",
            port=max(1, min(65535, to_int(os.getenv("PORT"), 3000))),
            gas_reserve_lamports=max(
                0,
                sol_to_lamports(os.getenv("GAS_RESERVE_SOL"), DEFAULT_GAS_RESERVE_LAMPORTS),
            ),
            slippage_bps=max(1, min(10_000, to_int(os.getenv("SLIPPAGE_BPS"), 50))),
            base_mint=parse_mint(os.getenv("BASE_MINT"), SOL_MINT),
            quote_mint=parse_mint(os.getenv("QUOTE_MINT"), USDC_MINT),
            dry_run=to_bool(os.getenv("DRY_RUN"), False),
            confirm_poll_interval_seconds=max(
                0.25,
                to_float(os.getenv("CONFIRM_POLL_INTERVAL_SECONDS"), 2.0),
            ),
            http_timeout_seconds=max(1.0, to_float(os.getenv("HTTP_TIMEOUT_SECONDS"), 15.0)),
            swap_log_path=Path(swap_log_path).expanduser() if swap_log_path else None,
            log_level=(os.getenv("LOG_LEVEL", "INFO").strip() or "INFO").upper(),
        )

    def keypair(self) -> Keypair:
        return parse_keypair(self.secret_key)
