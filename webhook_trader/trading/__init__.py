from .agent import TradingAgent
from .balances import BalanceReader
from .executors import (
    DryRunSwapExecutor,
    LiveSwapExecutor,
    SwapExecutionError,
    SwapExecutor,
    TransactionSender,
)
from .instructions import InstructionTranslationError, extract_swap_instructions
from .journal import SwapJournal
from .policy import TradePolicy
from .quotes import AggregatorError, JupiterQuoteClient, QuoteUnavailableError
from .rpc import RpcMethodError, SolanaRpcClient
from .types import (
    LAMPORTS_PER_SOL,
    SOL_MINT,
    STATUS_DRY_RUN,
    STATUS_EXECUTED,
    STATUS_FAILED,
    STATUS_NO_INSTRUCTIONS,
    STATUS_NO_QUOTE,
    STATUS_SKIPPED,
    USDC_MINT,
    VALID_ACTIONS,
    SwapQuote,
    TradeDecision,
    TradeOutcome,
    WalletBalances,
)

__all__ = [
    "AggregatorError",
    "BalanceReader",
    "DryRunSwapExecutor",
    "InstructionTranslationError",
    "JupiterQuoteClient",
    "LAMPORTS_PER_SOL",
    "LiveSwapExecutor",
    "QuoteUnavailableError",
    "RpcMethodError",
    "SOL_MINT",
    "STATUS_DRY_RUN",
    "STATUS_EXECUTED",
    "STATUS_FAILED",
    "STATUS_NO_INSTRUCTIONS",
    "STATUS_NO_QUOTE",
    "STATUS_SKIPPED",
    "SolanaRpcClient",
    "SwapExecutionError",
    "SwapExecutor",
    "SwapJournal",
    "SwapQuote",
    "TradeDecision",
    "TradeOutcome",
    "TradePolicy",
    "TradingAgent",
    "TransactionSender",
    "USDC_MINT",
    "VALID_ACTIONS",
    "WalletBalances",
    "extract_swap_instructions",
]
