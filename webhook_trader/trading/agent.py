from __future__ import annotations

import asyncio
import logging

from spl.token.instructions import create_associated_token_account

from webhook_trader.common import guarded_call, log_event

from .balances import BalanceReader
from .executors import SwapExecutionError, SwapExecutor, TransactionSender
from .instructions import InstructionTranslationError
from .journal import SwapJournal
from .policy import TradePolicy
from .quotes import AggregatorError, JupiterQuoteClient, QuoteUnavailableError
from .rpc import SolanaRpcClient
from .types import (
    SOL_MINT,
    STATUS_DRY_RUN,
    STATUS_FAILED,
    STATUS_NO_INSTRUCTIONS,
    STATUS_NO_QUOTE,
    STATUS_SKIPPED,
    USDC_MINT,
    VALID_ACTIONS,
    SwapRecord,
    TradeDecision,
    TradeOutcome,
    WalletBalances,
    now_iso,
)

TOKEN_SYMBOLS = {SOL_MINT: "SOL", USDC_MINT: "USDC"}


class TradingAgent:
    """Per-process trading context shared by every webhook request.

    Holds the wallet, the RPC and aggregator clients and the trade policy.
    Balances and quotes are fetched fresh on each signal; nothing about a
    trade outlives the call that produced it.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        rpc: SolanaRpcClient,
        quotes: JupiterQuoteClient,
        balances: BalanceReader,
        policy: TradePolicy,
        executor: SwapExecutor,
        sender: TransactionSender | None,
        journal: SwapJournal,
        slippage_bps: int,
        dry_run: bool,
    ) -> None:
        self._logger = logger
        self.rpc = rpc
        self.quotes = quotes
        self.balances = balances
        self.policy = policy
        self.executor = executor
        self._sender = sender
        self._journal = journal
        self._slippage_bps = slippage_bps
        self.dry_run = dry_run

    async def connect(self) -> None:
        await self.rpc.connect()
        await self.quotes.connect()
        log_event(
            self._logger,
            level="info",
            event="agent_started",
            message="Agent initiated for wallet",
            wallet=str(self.balances.owner),
            stable_token_account=str(self.balances.stable_token_account),
            dry_run=self.dry_run,
        )
        await self.ensure_token_account()
        await guarded_call(
            self.refresh_balances,
            logger=self._logger,
            event="startup_balance_refresh_failed",
            message="Initial balance refresh failed",
        )

    async def ensure_token_account(self) -> None:
        if await self.balances.token_account_exists():
            return

        if self.dry_run or self._sender is None:
            log_event(
                self._logger,
                level="warning",
                event="token_account_creation_skipped",
                message="Stable token account is missing and will not be created in dry-run mode",
                token_account=str(self.balances.stable_token_account),
            )
            return

        owner = self.balances.owner
        instruction = create_associated_token_account(owner, owner, self.balances.stable_mint)
        tx_signature = await self._sender.send_and_confirm([instruction])
        log_event(
            self._logger,
            level="info",
            event="token_account_created",
            message="Created stable token account",
            token_account=str(self.balances.stable_token_account),
            tx_signature=tx_signature,
        )

    async def refresh_balances(self) -> WalletBalances:
        return await self.balances.fetch()

    async def healthcheck(self) -> None:
        await self.rpc.get_latest_blockhash()

    async def close(self) -> None:
        await guarded_call(self.quotes.close, logger=self._logger, event="close_failed", message="Quote client close failed")
        await guarded_call(self.rpc.close, logger=self._logger, event="close_failed", message="RPC client close failed")

    async def handle_signal(self, action: str) -> TradeOutcome:
        if action not in VALID_ACTIONS:
            raise ValueError(f"Unsupported action: {action!r}")

        try:
            balances = await self.refresh_balances()
        except asyncio.CancelledError:
            raise
        except Exception as error:
            log_event(
                self._logger,
                level="error",
                event="balance_refresh_failed",
                message="Error refreshing balances",
                action=action,
                error=str(error),
            )
            return TradeOutcome(action=action, status=STATUS_FAILED, reason=f"balance refresh failed: {error}")

        decision = self.policy.evaluate(action, balances)
        if not decision.should_trade:
            log_event(
                self._logger,
                level="info",
                event="trade_skipped",
                message="Trade skipped by policy",
                action=action,
                reason=decision.reason,
                sol_lamports=balances.sol_lamports,
                stable_amount=balances.stable_amount,
            )
            return TradeOutcome(action=action, status=STATUS_SKIPPED, reason=decision.reason)

        return await self.execute_trade(decision)

    async def execute_trade(self, decision: TradeDecision) -> TradeOutcome:
        action = decision.action
        try:
            quote = await self.quotes.quote(
                input_mint=decision.input_mint,
                output_mint=decision.output_mint,
                amount=decision.amount,
                slippage_bps=self._slippage_bps,
            )
        except QuoteUnavailableError as error:
            quote = None
            reason = str(error)
        else:
            reason = "no quote available"

        if quote is None:
            log_event(
                self._logger,
                level="warning",
                event="quote_unavailable",
                message="No quote available; trade aborted",
                action=action,
                amount=decision.amount,
                reason=reason,
            )
            return TradeOutcome(action=action, status=STATUS_NO_QUOTE, reason=reason, amount_in=decision.amount)

        try:
            result = await self.executor.execute(quote)
        except asyncio.CancelledError:
            raise
        except (InstructionTranslationError, AggregatorError) as error:
            log_event(
                self._logger,
                level="warning",
                event="instruction_translation_failed",
                message="Swap instructions could not be prepared; trade skipped",
                action=action,
                error=str(error),
            )
            return TradeOutcome(
                action=action,
                status=STATUS_NO_INSTRUCTIONS,
                reason=str(error),
                amount_in=quote.in_amount,
                expected_amount_out=quote.out_amount,
            )
        except Exception as error:
            tx_signature = error.tx_signature if isinstance(error, SwapExecutionError) else None
            log_event(
                self._logger,
                level="exception",
                event="swap_failed",
                message="Error executing swap",
                action=action,
                tx_signature=tx_signature,
                error=str(error),
            )
            return TradeOutcome(
                action=action,
                status=STATUS_FAILED,
                reason=str(error),
                amount_in=quote.in_amount,
                expected_amount_out=quote.out_amount,
                tx_signature=tx_signature,
            )

        await guarded_call(
            lambda: self._journal.record(
                SwapRecord(
                    input_token=TOKEN_SYMBOLS.get(quote.input_mint, quote.input_mint),
                    in_amount=quote.in_amount,
                    output_token=TOKEN_SYMBOLS.get(quote.output_mint, quote.output_mint),
                    out_amount=quote.out_amount,
                    tx_id=result.tx_signature,
                    timestamp=now_iso(),
                    dry_run=result.status == STATUS_DRY_RUN,
                )
            ),
            logger=self._logger,
            event="swap_record_failed",
            message="Swap journal write failed",
            tx_signature=result.tx_signature,
        )

        return TradeOutcome(
            action=action,
            status=result.status,
            reason=decision.reason,
            amount_in=quote.in_amount,
            expected_amount_out=quote.out_amount,
            tx_signature=result.tx_signature,
        )
