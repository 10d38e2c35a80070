from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Literal

SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

LAMPORTS_PER_SOL = 1_000_000_000
DEFAULT_GAS_RESERVE_LAMPORTS = 201_000_000

Action = Literal["buy", "sell"]
VALID_ACTIONS: frozenset[str] = frozenset({"buy", "sell"})

STATUS_EXECUTED = "executed"
STATUS_DRY_RUN = "dry_run"
STATUS_SKIPPED = "skipped"
STATUS_NO_QUOTE = "no_quote"
STATUS_NO_INSTRUCTIONS = "no_instructions"
STATUS_FAILED = "failed"


def to_int(value: Any, default: int) -> int:
    try:
        if value is None or value == "":
            return default
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return default


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def lamports_to_sol(lamports: int) -> float:
    return float(Decimal(lamports) / Decimal(LAMPORTS_PER_SOL))


@dataclass(slots=True, frozen=True)
class WalletBalances:
    sol_lamports: int
    stable_amount: int
    stable_decimals: int

    @property
    def sol(self) -> float:
        return lamports_to_sol(self.sol_lamports)

    @property
    def stable_ui_amount(self) -> float:
        return float(Decimal(self.stable_amount) / (Decimal(10) ** self.stable_decimals))


@dataclass(slots=True, frozen=True)
class TradeDecision:
    action: str
    should_trade: bool
    input_mint: str
    output_mint: str
    amount: int
    reason: str


@dataclass(slots=True, frozen=True)
class SwapQuote:
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    slippage_bps: int
    price_impact_pct: str
    raw: dict[str, Any] = field(repr=False)

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "SwapQuote":
        return cls(
            input_mint=str(payload.get("inputMint") or ""),
            output_mint=str(payload.get("outputMint") or ""),
            in_amount=to_int(payload.get("inAmount"), 0),
            out_amount=to_int(payload.get("outAmount"), 0),
            slippage_bps=to_int(payload.get("slippageBps"), 0),
            price_impact_pct=str(payload.get("priceImpactPct") or "0"),
            raw=payload,
        )


@dataclass(slots=True, frozen=True)
class TradeOutcome:
    action: str
    status: str
    reason: str
    amount_in: int = 0
    expected_amount_out: int = 0
    tx_signature: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == STATUS_FAILED

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class SwapRecord:
    input_token: str
    in_amount: int
    output_token: str
    out_amount: int
    tx_id: str | None
    timestamp: str
    dry_run: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class ExecutionResult:
    status: str
    tx_signature: str | None
    instruction_count: int = 0
