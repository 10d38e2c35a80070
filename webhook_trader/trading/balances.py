from __future__ import annotations

import asyncio
import logging

from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from webhook_trader.common import log_event

from .rpc import RpcMethodError, SolanaRpcClient, is_account_not_found
from .types import WalletBalances


class BalanceReader:
    def __init__(
        self,
        *,
        logger: logging.Logger,
        rpc: SolanaRpcClient,
        owner: Pubkey,
        stable_mint: Pubkey,
        stable_decimals: int = 6,
    ) -> None:
        self._logger = logger
        self._rpc = rpc
        self.owner = owner
        self.stable_mint = stable_mint
        self.stable_token_account = get_associated_token_address(owner, stable_mint)
        self._stable_decimals = stable_decimals

    async def token_account_exists(self) -> bool:
        return await self._rpc.get_account_data(self.stable_token_account) is not None

    async def _stable_balance(self) -> tuple[int, int]:
        try:
            amount, decimals = await self._rpc.get_token_account_balance(self.stable_token_account)
        except RpcMethodError as error:
            if not is_account_not_found(error):
                raise
            log_event(
                self._logger,
                level="warning",
                event="token_account_missing",
                message="Stable token account does not exist yet; treating balance as zero",
                token_account=str(self.stable_token_account),
            )
            return 0, self._stable_decimals

        self._stable_decimals = decimals
        return amount, decimals

    async def fetch(self) -> WalletBalances:
        sol_lamports, (stable_amount, stable_decimals) = await asyncio.gather(
            self._rpc.get_balance(self.owner),
            self._stable_balance(),
        )
        balances = WalletBalances(
            sol_lamports=sol_lamports,
            stable_amount=stable_amount,
            stable_decimals=stable_decimals,
        )
        log_event(
            self._logger,
            level="info",
            event="balances_refreshed",
            message="Wallet balances refreshed",
            sol=round(balances.sol, 4),
            usdc=round(balances.stable_ui_amount, 2),
            sol_lamports=balances.sol_lamports,
            stable_amount=balances.stable_amount,
        )
        return balances
