from __future__ import annotations

from .types import LAMPORTS_PER_SOL, TradeDecision, WalletBalances


class TradePolicy:
    """Turns a buy/sell signal and the current balances into a trade size.

    Sells only whole SOL above the gas reserve; buys spend the whole stable
    balance. Never performs I/O.
    """

    def __init__(
        self,
        *,
        gas_reserve_lamports: int,
        base_mint: str,
        quote_mint: str,
    ) -> None:
        self.gas_reserve_lamports = max(0, int(gas_reserve_lamports))
        self.base_mint = base_mint
        self.quote_mint = quote_mint

    def _skip(self, action: str, reason: str) -> TradeDecision:
        input_mint, output_mint = self._route(action)
        return TradeDecision(
            action=action,
            should_trade=False,
            input_mint=input_mint,
            output_mint=output_mint,
            amount=0,
            reason=reason,
        )

    def _route(self, action: str) -> tuple[str, str]:
        if action == "sell":
            return self.base_mint, self.quote_mint
        return self.quote_mint, self.base_mint

    def evaluate_sell(self, balances: WalletBalances) -> TradeDecision:
        if balances.sol_lamports <= self.gas_reserve_lamports:
            return self._skip("sell", "not enough SOL to cover gas fees")

        whole_sol = (balances.sol_lamports - self.gas_reserve_lamports) // LAMPORTS_PER_SOL
        if whole_sol < 1:
            return self._skip("sell", "no whole SOL available to sell")

        return TradeDecision(
            action="sell",
            should_trade=True,
            input_mint=self.base_mint,
            output_mint=self.quote_mint,
            amount=whole_sol * LAMPORTS_PER_SOL,
            reason=f"selling {whole_sol} whole SOL above gas reserve",
        )

    def evaluate_buy(self, balances: WalletBalances) -> TradeDecision:
        if balances.stable_amount <= 0:
            return self._skip("buy", "no USDC available for trade")

        return TradeDecision(
            action="buy",
            should_trade=True,
            input_mint=self.quote_mint,
            output_mint=self.base_mint,
            amount=balances.stable_amount,
            reason="spending entire USDC balance",
        )

    def evaluate(self, action: str, balances: WalletBalances) -> TradeDecision:
        if action == "sell":
            return self.evaluate_sell(balances)
        if action == "buy":
            return self.evaluate_buy(balances)
        raise ValueError(f"Unsupported action: {action!r}")
