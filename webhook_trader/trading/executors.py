from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0, to_bytes_versioned
from solders.transaction import VersionedTransaction

from webhook_trader.common import log_event

from .instructions import InstructionTranslationError, extract_swap_instructions
from .quotes import JupiterQuoteClient
from .rpc import RpcMethodError, SolanaRpcClient
from .types import STATUS_DRY_RUN, STATUS_EXECUTED, ExecutionResult, SwapQuote

MAX_TRANSACTION_SIZE = 1232


class SwapExecutionError(RuntimeError):
    def __init__(self, message: str, *, tx_signature: str | None = None) -> None:
        super().__init__(message)
        self.tx_signature = tx_signature


class SwapExecutor(Protocol):
    async def execute(self, quote: SwapQuote) -> ExecutionResult:
        ...


class DryRunSwapExecutor:
    def __init__(self, *, logger: logging.Logger) -> None:
        self._logger = logger

    async def execute(self, quote: SwapQuote) -> ExecutionResult:
        log_event(
            self._logger,
            level="info",
            event="swap_dry_run",
            message="DRY_RUN is enabled; swap was not submitted",
            input_mint=quote.input_mint,
            output_mint=quote.output_mint,
            in_amount=quote.in_amount,
            out_amount=quote.out_amount,
            price_impact_pct=quote.price_impact_pct,
        )
        return ExecutionResult(status=STATUS_DRY_RUN, tx_signature=None)


class TransactionSender:
    """Signs, submits and awaits finality for transactions paid by one wallet."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        rpc: SolanaRpcClient,
        signer: Keypair,
        confirm_poll_interval_seconds: float = 2.0,
    ) -> None:
        self._logger = logger
        self._rpc = rpc
        self._signer = signer
        self._confirm_poll_interval_seconds = max(0.0, confirm_poll_interval_seconds)

    async def build_signed_transaction(
        self,
        instructions: list[Instruction],
        lookup_table_accounts: list[AddressLookupTableAccount] | None = None,
    ) -> tuple[VersionedTransaction, int]:
        latest_blockhash, last_valid_block_height = await self._rpc.get_latest_blockhash()
        message = MessageV0.try_compile(
            self._signer.pubkey(),
            instructions,
            lookup_table_accounts or [],
            Hash.from_string(latest_blockhash),
        )
        signature = self._signer.sign_message(to_bytes_versioned(message))
        transaction = VersionedTransaction.populate(message, [signature])

        size = len(bytes(transaction))
        if size > MAX_TRANSACTION_SIZE:
            raise SwapExecutionError(f"Transaction is oversized: size={size} bytes")

        return transaction, last_valid_block_height

    async def wait_for_finality(self, *, tx_signature: str, last_valid_block_height: int) -> None:
        while True:
            status = await self._rpc.get_signature_status(tx_signature)
            if status is not None:
                if status.get("err"):
                    raise SwapExecutionError(
                        f"Transaction failed on-chain: {status['err']}",
                        tx_signature=tx_signature,
                    )
                if status.get("confirmationStatus") == "finalized":
                    return

            block_height = await self._rpc.get_block_height()
            if last_valid_block_height and block_height > last_valid_block_height:
                raise SwapExecutionError(
                    "Transaction expired before reaching finality: "
                    f"block_height={block_height} last_valid_block_height={last_valid_block_height}",
                    tx_signature=tx_signature,
                )

            await asyncio.sleep(self._confirm_poll_interval_seconds)

    async def send_and_confirm(
        self,
        instructions: list[Instruction],
        lookup_table_accounts: list[AddressLookupTableAccount] | None = None,
    ) -> str:
        transaction, last_valid_block_height = await self.build_signed_transaction(
            instructions,
            lookup_table_accounts,
        )

        try:
            tx_signature = await self._rpc.send_raw_transaction(bytes(transaction), skip_preflight=True)
        except RpcMethodError as error:
            raise SwapExecutionError(f"Transaction submission failed: {error}") from error

        log_event(
            self._logger,
            level="info",
            event="transaction_submitted",
            message="Transaction submitted; awaiting finality",
            tx_signature=tx_signature,
            instruction_count=len(instructions),
            last_valid_block_height=last_valid_block_height,
        )

        try:
            await self.wait_for_finality(
                tx_signature=tx_signature,
                last_valid_block_height=last_valid_block_height,
            )
        except RpcMethodError as error:
            raise SwapExecutionError(
                f"Transaction confirmation failed: {error}",
                tx_signature=tx_signature,
            ) from error

        return tx_signature


class LiveSwapExecutor:
    def __init__(
        self,
        *,
        logger: logging.Logger,
        rpc: SolanaRpcClient,
        quotes: JupiterQuoteClient,
        sender: TransactionSender,
        signer: Keypair,
    ) -> None:
        self._logger = logger
        self._rpc = rpc
        self._quotes = quotes
        self._sender = sender
        self._signer = signer

    async def execute(self, quote: SwapQuote) -> ExecutionResult:
        payload = await self._quotes.swap_instructions(
            quote=quote,
            user_public_key=str(self._signer.pubkey()),
        )
        instructions, lookup_addresses = extract_swap_instructions(payload)
        if not instructions:
            raise InstructionTranslationError("Aggregator returned no executable swap instructions.")

        try:
            lookup_table_accounts = await self._rpc.get_address_lookup_tables(lookup_addresses)
        except RpcMethodError as error:
            raise SwapExecutionError(f"Address lookup table fetch failed: {error}") from error

        try:
            tx_signature = await self._sender.send_and_confirm(instructions, lookup_table_accounts)
        except RpcMethodError as error:
            raise SwapExecutionError(f"Swap transaction build failed: {error}") from error

        log_event(
            self._logger,
            level="info",
            event="swap_confirmed",
            message="Swap executed successfully",
            tx_signature=tx_signature,
            input_mint=quote.input_mint,
            output_mint=quote.output_mint,
            in_amount=quote.in_amount,
            out_amount=quote.out_amount,
            lookup_table_count=len(lookup_table_accounts),
        )
        return ExecutionResult(
            status=STATUS_EXECUTED,
            tx_signature=tx_signature,
            instruction_count=len(instructions),
        )
